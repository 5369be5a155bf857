"""Health record repository — create and query operations over the data store.

The repository mediates between HealthRecord objects and the SQLite
database, using FieldEncryptor to encrypt/decrypt the raw readings.
Records are append-only: there is no update or delete.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from vitalplan.core.storage.database import HealthDatabase
from vitalplan.core.storage.encryption import FieldEncryptor
from vitalplan.core.storage.models import HealthRecord

logger = logging.getLogger(__name__)

VALID_METRICS = {
    "height",
    "weight",
    "age",
    "bmi",
    "cholesterol",
    "sugar_levels",
    "fats",
    "blood_points",
    "systolic",
    "diastolic",
}


class RepositoryError(Exception):
    """Raised when repository operations fail."""


class HealthRepository:
    """Append-only repository for encrypted health records.

    Usage::

        db = HealthDatabase(":memory:")
        db.initialize()
        repo = HealthRepository(db, FieldEncryptor(key="..."))

        record_id = repo.save_record(record)
        latest = repo.get_latest_record("user-1")
    """

    def __init__(self, database: HealthDatabase, encryptor: FieldEncryptor) -> None:
        self._db = database
        self._enc = encryptor

    @staticmethod
    def _new_id() -> str:
        return str(uuid.uuid4())

    @staticmethod
    def _now_iso() -> str:
        return datetime.now(timezone.utc).isoformat()

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def save_record(self, record: HealthRecord) -> HealthRecord:
        """Persist a health record.

        An empty ``id`` or ``created_at`` is assigned here (uuid4 / current
        UTC time). Returns the record as stored.

        Raises:
            RepositoryError: If a record with the same id already exists.
        """
        stored = replace(
            record,
            id=record.id or self._new_id(),
            created_at=record.created_at or self._now_iso(),
        )
        with self._db.transaction() as conn:
            exists = conn.execute(
                "SELECT 1 FROM health_records WHERE id = ?", (stored.id,)
            ).fetchone()
            if exists:
                raise RepositoryError(
                    f"Health record {stored.id} already exists; records are immutable"
                )
            conn.execute(
                """INSERT INTO health_records
                   (id, user_id, created_at, metrics_enc, bmi, blood_points)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (
                    stored.id,
                    stored.user_id,
                    stored.created_at,
                    self._enc.encrypt(stored.metrics()),
                    stored.bmi,
                    stored.blood_points,
                ),
            )
        logger.info("Saved health record %s for user %s", stored.id, stored.user_id)
        return stored

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_record(self, record_id: str) -> HealthRecord | None:
        """Retrieve a record by ID, or None if not found."""
        row = self._db.connection.execute(
            "SELECT * FROM health_records WHERE id = ?", (record_id,)
        ).fetchone()
        return self._row_to_record(row) if row is not None else None

    def get_records(
        self,
        user_id: str,
        *,
        since: str | None = None,
        limit: int = 100,
    ) -> list[HealthRecord]:
        """Query a user's records, newest first.

        Args:
            user_id: Owner of the records.
            since: ISO 8601 lower bound on ``created_at`` (inclusive).
            limit: Maximum results to return.
        """
        conditions = ["user_id = ?"]
        params: list[Any] = [user_id]
        if since:
            conditions.append("created_at >= ?")
            params.append(since)

        query = (
            "SELECT * FROM health_records WHERE "
            + " AND ".join(conditions)
            + " ORDER BY created_at DESC, rowid DESC LIMIT ?"
        )
        params.append(limit)
        rows = self._db.connection.execute(query, params).fetchall()
        return [self._row_to_record(row) for row in rows]

    def get_latest_record(self, user_id: str) -> HealthRecord | None:
        """Get the user's most recent record."""
        results = self.get_records(user_id, limit=1)
        return results[0] if results else None

    def count_records(self, user_id: str | None = None) -> int:
        """Return the number of stored records, optionally for one user."""
        conn = self._db.connection
        if user_id is None:
            row = conn.execute("SELECT COUNT(*) FROM health_records").fetchone()
        else:
            row = conn.execute(
                "SELECT COUNT(*) FROM health_records WHERE user_id = ?", (user_id,)
            ).fetchone()
        return row[0]

    def get_metric_history(
        self, user_id: str, metric: str, *, limit: int = 90
    ) -> list[tuple[str, float]]:
        """Get a time series of one metric for trend charts.

        Args:
            metric: One of VALID_METRICS; ``systolic``/``diastolic`` split the
                blood pressure reading.

        Returns:
            List of (created_at, value) tuples, oldest first.
        """
        if metric not in VALID_METRICS:
            raise RepositoryError(
                f"Invalid metric name: {metric!r}. Valid: {sorted(VALID_METRICS)}"
            )
        records = self.get_records(user_id, limit=limit)
        return [(r.created_at, float(getattr(r, metric))) for r in reversed(records)]

    def _row_to_record(self, row: Any) -> HealthRecord:
        metrics = self._enc.decrypt(row["metrics_enc"]) or {}
        return HealthRecord(
            id=row["id"],
            user_id=row["user_id"],
            created_at=row["created_at"],
            height=metrics["height"],
            weight=metrics["weight"],
            age=metrics["age"],
            blood_pressure=metrics["bloodPressure"],
            cholesterol=metrics["cholesterol"],
            sugar_levels=metrics["sugarLevels"],
            fats=metrics["fats"],
            blood_points=metrics["bloodPoints"],
            bmi=row["bmi"] if row["bmi"] is not None else metrics.get("bmi", 0.0),
        )
