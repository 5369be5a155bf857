"""Response parsing and contract enforcement for structured LLM output."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


class ContractViolation(Exception):
    """Raised when a payload does not match its declared contract."""

    def __init__(self, contract: str, errors: list[str]) -> None:
        self.contract = contract
        self.errors = errors
        super().__init__(f"{contract} contract violated: " + "; ".join(errors))


@dataclass
class ContractCheck:
    """Result of validating a payload against a contract model."""

    passed: bool
    errors: list[str] = field(default_factory=list)
    value: BaseModel | None = None
    contract_name: str = ""

    def unwrap(self) -> BaseModel:
        """Return the validated model, or raise ContractViolation."""
        if not self.passed or self.value is None:
            raise ContractViolation(self.contract_name, self.errors)
        return self.value


def format_validation_errors(exc: ValidationError) -> list[str]:
    """Flatten pydantic errors into ``"path: message"`` strings."""
    reasons: list[str] = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ())) or "<root>"
        reasons.append(f"{loc}: {err.get('msg', 'invalid')}")
    return reasons


def check_contract(contract: type[BaseModel], payload: Any) -> ContractCheck:
    """Validate ``payload`` against ``contract`` without raising."""
    try:
        value = contract.model_validate(payload)
    except ValidationError as exc:
        return ContractCheck(
            passed=False,
            errors=format_validation_errors(exc),
            contract_name=contract.__name__,
        )
    return ContractCheck(passed=True, value=value, contract_name=contract.__name__)


def extract_json_object(content: str) -> dict[str, Any]:
    """Pull the JSON object out of an LLM reply.

    Accepts a bare object, an object wrapped in a Markdown code fence, or an
    object surrounded by stray prose.

    Raises:
        ContractViolation: If no JSON object can be decoded.
    """
    text = content.strip()
    fenced = _FENCE_RE.search(text)
    if fenced:
        text = fenced.group(1).strip()

    candidates = [text]
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start : end + 1])

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except (json.JSONDecodeError, TypeError):
            continue
        if isinstance(parsed, dict):
            return parsed

    logger.warning("LLM reply did not contain a JSON object (%d chars)", len(content))
    raise ContractViolation("json", ["reply is not a JSON object"])
