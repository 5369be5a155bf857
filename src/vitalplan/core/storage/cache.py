"""Suggestion cache — memoizes generated results per (user, record, kind).

Entries are written once per key and never expire: the record they were
generated from is immutable. A second write for the same key replaces the
first (last write wins).
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from vitalplan.core.storage.database import HealthDatabase
from vitalplan.core.storage.encryption import FieldEncryptor
from vitalplan.core.storage.models import CachedSuggestion

logger = logging.getLogger(__name__)


def cache_key(user_id: str, record_id: str, kind: str) -> str:
    """Composite document key: ``{user}_{record}_{kind}``."""
    return f"{user_id}_{record_id}_{kind}"


class SuggestionCache:
    """Point lookup/store of generated suggestions in ``generated_suggestions``."""

    def __init__(self, database: HealthDatabase, encryptor: FieldEncryptor) -> None:
        self._db = database
        self._enc = encryptor

    def get_entry(self, user_id: str, record_id: str, kind: str) -> CachedSuggestion | None:
        row = self._db.connection.execute(
            "SELECT * FROM generated_suggestions WHERE cache_key = ?",
            (cache_key(user_id, record_id, kind),),
        ).fetchone()
        if row is None:
            return None
        return CachedSuggestion(
            user_id=row["user_id"],
            health_data_id=row["health_data_id"],
            type=row["type"],
            suggestion_data=self._enc.decrypt(row["suggestion_enc"]) or {},
            created_at=row["created_at"],
        )

    def lookup(self, user_id: str, record_id: str, kind: str) -> dict[str, Any] | None:
        """Return the cached result payload, or None on a miss."""
        entry = self.get_entry(user_id, record_id, kind)
        if entry is None:
            logger.debug("Suggestion cache miss: %s", cache_key(user_id, record_id, kind))
            return None
        logger.debug("Suggestion cache hit: %s", cache_key(user_id, record_id, kind))
        return entry.suggestion_data

    def store(self, user_id: str, record_id: str, kind: str, result: dict[str, Any]) -> None:
        """Write a result under its key with a store-assigned timestamp."""
        with self._db.transaction() as conn:
            conn.execute(
                """INSERT OR REPLACE INTO generated_suggestions
                   (cache_key, user_id, health_data_id, type, suggestion_enc, created_at)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (
                    cache_key(user_id, record_id, kind),
                    user_id,
                    record_id,
                    kind,
                    self._enc.encrypt(result),
                    datetime.now(timezone.utc).isoformat(),
                ),
            )
        logger.info("Cached %s suggestions for record %s (user %s)", kind, record_id, user_id)

    def count(self) -> int:
        row = self._db.connection.execute("SELECT COUNT(*) FROM generated_suggestions").fetchone()
        return row[0]
