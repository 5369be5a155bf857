"""Data models for the persistence layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class HealthRecord:
    """A single point-in-time snapshot of a user's biometrics.

    Records are immutable: a new reading is a new record.
    """

    id: str
    user_id: str
    created_at: str  # ISO 8601, UTC

    height: float  # cm
    weight: float  # kg
    age: int
    blood_pressure: str  # "systolic/diastolic"
    cholesterol: float  # mg/dL
    sugar_levels: float  # mg/dL
    fats: float  # body fat %
    blood_points: float
    bmi: float = 0.0

    @property
    def systolic(self) -> int:
        return int(self.blood_pressure.split("/")[0])

    @property
    def diastolic(self) -> int:
        return int(self.blood_pressure.split("/")[1])

    def metrics(self) -> dict[str, Any]:
        """Return the biometric fields only, keyed by wire name."""
        return {
            "height": self.height,
            "weight": self.weight,
            "age": self.age,
            "bmi": self.bmi,
            "bloodPressure": self.blood_pressure,
            "cholesterol": self.cholesterol,
            "sugarLevels": self.sugar_levels,
            "fats": self.fats,
            "bloodPoints": self.blood_points,
        }

    def to_document(self) -> dict[str, Any]:
        """Full record including identity fields, keyed by wire name."""
        return {
            "id": self.id,
            "userId": self.user_id,
            "createdAt": self.created_at,
            **self.metrics(),
        }


@dataclass
class CachedSuggestion:
    """A previously generated suggestion result for one (user, record, kind)."""

    user_id: str
    health_data_id: str
    type: str  # 'diet' | 'workout'
    suggestion_data: dict[str, Any] = field(default_factory=dict)
    created_at: str = ""

    def to_document(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "healthDataId": self.health_data_id,
            "type": self.type,
            "suggestionData": self.suggestion_data,
            "createdAt": self.created_at,
        }
