"""MCP tools for logging health readings and reading them back.

Each reading becomes an immutable record; BMI is derived on entry.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP
from pydantic import ValidationError

from vitalplan.core.llm.response import format_validation_errors
from vitalplan.core.storage.repository import VALID_METRICS, RepositoryError
from vitalplan.domains.health.domain_logic.contracts import HealthEntry
from vitalplan.domains.health.domain_logic.metrics import (
    InvalidHealthDataError,
    build_health_record,
    classify_bmi,
)

if TYPE_CHECKING:
    from vitalplan.core.storage.repository import HealthRepository

logger = logging.getLogger(__name__)


def register_health_data_tools(mcp: FastMCP, repository: HealthRepository) -> None:
    """Register health data entry and history tools on the MCP server."""

    @mcp.tool
    async def log_health_data(
        ctx: Context,
        user_id: str,
        height: float,
        weight: float,
        age: int,
        blood_pressure: str,
        cholesterol: float,
        sugar_levels: float,
        fats: float,
        blood_points: float,
    ) -> str:
        """Record a new set of health readings.

        Args:
            user_id: Owner of the reading.
            height: Height in centimeters.
            weight: Weight in kilograms.
            age: Age in years.
            blood_pressure: Blood pressure as systolic/diastolic, e.g. '120/80'.
            cholesterol: Total cholesterol in mg/dL.
            sugar_levels: Blood sugar in mg/dL.
            fats: Body fat percentage (0-100).
            blood_points: Overall blood health score.
        """
        try:
            entry = HealthEntry.model_validate({
                "height": height,
                "weight": weight,
                "age": age,
                "bloodPressure": blood_pressure,
                "cholesterol": cholesterol,
                "sugarLevels": sugar_levels,
                "fats": fats,
                "bloodPoints": blood_points,
            })
            record = repository.save_record(build_health_record(user_id, entry))
        except ValidationError as exc:
            return json.dumps({
                "status": "error",
                "message": "Invalid health data",
                "errors": format_validation_errors(exc),
            })
        except (InvalidHealthDataError, RepositoryError) as exc:
            return json.dumps({"status": "error", "message": str(exc)})

        logger.info("Health record %s logged for user %s", record.id, user_id)
        return json.dumps({
            "status": "saved",
            "record_id": record.id,
            "created_at": record.created_at,
            "bmi": record.bmi,
            "bmi_category": classify_bmi(record.bmi),
        })

    @mcp.tool
    async def get_health_history(
        ctx: Context,
        user_id: str,
        limit: int = 20,
        metric: str | None = None,
    ) -> str:
        """List your past health readings, newest first.

        With ``metric`` set, returns that metric's time series (oldest first)
        for charting instead.

        Args:
            user_id: Owner of the records.
            limit: Maximum number of records to return.
            metric: Optional metric name, e.g. 'weight', 'cholesterol', 'systolic'.
        """
        if metric:
            try:
                series = repository.get_metric_history(user_id, metric, limit=limit)
            except RepositoryError as exc:
                return json.dumps({
                    "status": "error",
                    "message": str(exc),
                    "valid_metrics": sorted(VALID_METRICS),
                })
            return json.dumps({
                "status": "ok",
                "metric": metric,
                "points": [{"created_at": ts, "value": value} for ts, value in series],
            })

        records = repository.get_records(user_id, limit=limit)
        if not records:
            return json.dumps({
                "status": "no_data",
                "message": "No health data yet. Log a reading with log_health_data first.",
            })
        return json.dumps({
            "status": "ok",
            "count": len(records),
            "records": [r.to_document() for r in records],
        })
