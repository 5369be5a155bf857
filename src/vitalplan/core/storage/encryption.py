"""Fernet encryption for readings and generated suggestions at rest.

Ownership columns and timestamps stay in clear so rows can be filtered by
user and ordered by time; everything a user actually entered, and every
suggestion generated from it, is stored as a Fernet token.

``ENCRYPTION_KEY`` may hold several comma-separated keys to rotate: the
first key encrypts, any of them decrypts.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from cryptography.fernet import Fernet, InvalidToken, MultiFernet

logger = logging.getLogger(__name__)


class EncryptionError(Exception):
    """Raised when a key is unusable or a token cannot be read."""


def _parse_keys(key: str) -> list[str]:
    return [part.strip() for part in (key or "").split(",") if part.strip()]


class FieldEncryptor:
    """JSON-in, token-out wrapper around (Multi)Fernet.

    Usage::

        enc = FieldEncryptor(FieldEncryptor.generate_key())
        token = enc.encrypt({"bloodPressure": "120/80"})
        enc.decrypt(token)  # {"bloodPressure": "120/80"}
    """

    def __init__(self, key: str) -> None:
        keys = _parse_keys(key)
        if not keys:
            raise EncryptionError("Encryption key must not be empty")
        try:
            self._fernet = MultiFernet([Fernet(k.encode()) for k in keys])
        except ValueError as exc:
            raise EncryptionError(f"Invalid encryption key: {exc}") from exc
        if len(keys) > 1:
            logger.info("Field encryption using %d keys (first is active)", len(keys))

    def encrypt(self, data: Any) -> str:
        """Serialize ``data`` to compact JSON and encrypt it. ``None`` becomes ``""``."""
        if data is None:
            return ""
        try:
            payload = json.dumps(data, separators=(",", ":"))
        except (TypeError, ValueError) as exc:
            raise EncryptionError(f"Encryption failed: {exc}") from exc
        return self._fernet.encrypt(payload.encode()).decode()

    def decrypt(self, token: str) -> Any:
        """Inverse of :meth:`encrypt`. ``""`` decrypts to ``None``."""
        if not token:
            return None
        try:
            payload = self._fernet.decrypt(token.encode())
        except InvalidToken as exc:
            raise EncryptionError("Decryption failed: invalid token or wrong key") from exc
        return json.loads(payload)

    def rotate(self, token: str) -> str:
        """Re-encrypt a token under the active (first) key."""
        try:
            return self._fernet.rotate(token.encode()).decode()
        except InvalidToken as exc:
            raise EncryptionError("Rotation failed: invalid token or wrong key") from exc

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode()
