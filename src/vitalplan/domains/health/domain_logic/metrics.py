"""Reference ranges and derived values for biometric readings."""

from __future__ import annotations

import re

from vitalplan.core.storage.models import HealthRecord
from vitalplan.domains.health.domain_logic.contracts import HealthEntry

_BP_RE = re.compile(r"^(\d{2,3})/(\d{2,3})$")

# Reference thresholds (adult, fasting where relevant).
SYSTOLIC_HIGH = 130
DIASTOLIC_HIGH = 85
SYSTOLIC_LOW = 90
DIASTOLIC_LOW = 60
CHOLESTEROL_HIGH = 200
SUGAR_HIGH = 100
SUGAR_LOW = 70
FATS_HIGH = 30
FATS_LOW = 20
BMI_UNDERWEIGHT = 18.5
BMI_OVERWEIGHT = 25.0
BMI_OBESE = 30.0


class InvalidHealthDataError(ValueError):
    """Raised when a reading cannot be interpreted."""


def compute_bmi(height_cm: float, weight_kg: float) -> float:
    """BMI rounded to two decimals; 0.0 when it cannot be computed."""
    if height_cm <= 0 or weight_kg <= 0:
        return 0.0
    return round(weight_kg / ((height_cm / 100) ** 2), 2)


def parse_blood_pressure(value: str) -> tuple[int, int]:
    """Split "120/80" into (systolic, diastolic)."""
    match = _BP_RE.match(value.strip())
    if not match:
        raise InvalidHealthDataError(f"Blood pressure must look like 120/80, got {value!r}")
    return int(match.group(1)), int(match.group(2))


def classify_blood_pressure(value: str) -> str:
    systolic, diastolic = parse_blood_pressure(value)
    if systolic > SYSTOLIC_HIGH or diastolic > DIASTOLIC_HIGH:
        return "High"
    if systolic < SYSTOLIC_LOW or diastolic < DIASTOLIC_LOW:
        return "Low"
    return "Normal"


def classify_cholesterol(value: float) -> str:
    return "High" if value >= CHOLESTEROL_HIGH else "Normal"


def classify_sugar(value: float) -> str:
    if value >= SUGAR_HIGH:
        return "High"
    if value < SUGAR_LOW:
        return "Low"
    return "Normal"


def classify_fats(value: float) -> str:
    if value > FATS_HIGH:
        return "High"
    if value < FATS_LOW:
        return "Low"
    return "Normal"


def classify_bmi(value: float) -> str:
    if value < BMI_UNDERWEIGHT:
        return "Underweight"
    if value < BMI_OVERWEIGHT:
        return "Healthy"
    if value < BMI_OBESE:
        return "Overweight"
    return "Obese"


def build_health_record(user_id: str, entry: HealthEntry) -> HealthRecord:
    """Create an unsaved record from a validated entry, deriving BMI.

    ``id`` and ``created_at`` are left empty for the repository to assign.
    """
    if not user_id:
        raise InvalidHealthDataError("user_id is required")
    return HealthRecord(
        id="",
        user_id=user_id,
        created_at="",
        height=entry.height,
        weight=entry.weight,
        age=entry.age,
        blood_pressure=entry.blood_pressure,
        cholesterol=entry.cholesterol,
        sugar_levels=entry.sugar_levels,
        fats=entry.fats,
        blood_points=entry.blood_points,
        bmi=compute_bmi(entry.height, entry.weight),
    )
