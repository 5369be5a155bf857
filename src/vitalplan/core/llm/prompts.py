"""Prompt templates — YAML definitions rendered into system/user messages."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ["id", "version", "kind", "role", "user_template"]


class PromptNotFoundError(KeyError):
    """Raised when no template is registered for a kind."""


class PromptTemplateError(ValueError):
    """Raised when a template file is malformed or cannot be rendered."""


@dataclass
class PromptTemplate:
    """A prompt definition for one generation kind."""

    id: str
    version: str
    kind: str
    role: str
    user_template: str
    instructions: list[str] = field(default_factory=list)
    reference_ranges: dict[str, str] = field(default_factory=dict)
    max_tokens: int = 4096
    temperature: float = 0.3


@dataclass
class AssembledPrompt:
    """A fully rendered prompt, ready for a provider call."""

    system_message: str
    user_message: str
    metadata: dict[str, Any] = field(default_factory=dict)


def load_prompt_file(path: Path) -> PromptTemplate:
    """Parse a YAML file into a PromptTemplate."""
    with open(path, encoding="utf-8") as f:
        data: dict[str, Any] = yaml.safe_load(f) or {}

    missing = [name for name in REQUIRED_FIELDS if not data.get(name)]
    if missing:
        raise PromptTemplateError(f"{path.name}: missing required fields {missing}")

    return PromptTemplate(
        id=data["id"],
        version=str(data["version"]),
        kind=data["kind"],
        role=data["role"].strip(),
        user_template=data["user_template"],
        instructions=[s.strip() for s in data.get("instructions", [])],
        reference_ranges=dict(data.get("reference_ranges", {})),
        max_tokens=int(data.get("max_tokens", 4096)),
        temperature=float(data.get("temperature", 0.3)),
    )


class PromptLibrary:
    """Registry of prompt templates keyed by kind."""

    def __init__(self) -> None:
        self._templates: dict[str, PromptTemplate] = {}

    def register(self, template: PromptTemplate) -> None:
        if template.kind in self._templates:
            logger.warning("Replacing prompt template for kind %s", template.kind)
        self._templates[template.kind] = template

    def get(self, kind: str) -> PromptTemplate:
        try:
            return self._templates[kind]
        except KeyError:
            raise PromptNotFoundError(f"No prompt template registered for kind {kind!r}") from None

    def kinds(self) -> list[str]:
        return sorted(self._templates)

    def __len__(self) -> int:
        return len(self._templates)

    @classmethod
    def from_directory(cls, directory: str | Path) -> PromptLibrary:
        """Load every ``*.yaml`` under ``directory`` (files starting with ``_`` skipped)."""
        library = cls()
        directory = Path(directory)
        if not directory.is_dir():
            logger.warning("Prompt directory does not exist: %s", directory)
            return library

        for path in sorted(directory.glob("*.yaml")):
            if path.name.startswith("_"):
                continue
            template = load_prompt_file(path)
            library.register(template)
            logger.info("Loaded prompt template: %s (v%s)", template.id, template.version)
        return library


def render_prompt(template: PromptTemplate, values: dict[str, Any]) -> AssembledPrompt:
    """Render a template's system and user messages with ``values``."""
    parts = [f"## Your Role\n{template.role}"]
    if template.instructions:
        steps = "\n".join(f"{i}. {step}" for i, step in enumerate(template.instructions, 1))
        parts.append(f"## Instructions\n{steps}")
    if template.reference_ranges:
        ranges = "\n".join(f"- {name}: {desc}" for name, desc in template.reference_ranges.items())
        parts.append(f"## Reference Ranges\n{ranges}")

    try:
        user_message = template.user_template.format(**values)
    except (KeyError, IndexError) as exc:
        raise PromptTemplateError(
            f"Template {template.id} references a missing value: {exc}"
        ) from exc
    except ValueError as exc:
        raise PromptTemplateError(
            f"Template {template.id} is malformed: {exc}"
        ) from exc

    return AssembledPrompt(
        system_message="\n\n".join(parts),
        user_message=user_message.strip(),
        metadata={"template_id": template.id, "template_version": template.version},
    )
