"""Request/response contracts for suggestion generation.

Every model here is a closed contract: cardinality (exact analysis length,
minimum items per category, seven-day plans), enum membership and the
"each declared metric exactly once" rule are enforced at validation time.
A reply that fails any of them is rejected as a whole.

Python attributes are snake_case; the wire format (LLM replies, cached
payloads, tool output) uses the camelCase aliases.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from vitalplan.core.llm.client import GenerationContract

BLOOD_PRESSURE_PATTERN = r"^\d{2,3}/\d{2,3}$"

DIETARY_METRICS: tuple[str, ...] = ("Blood Pressure", "Cholesterol", "Sugar Levels", "Fats")
WORKOUT_METRICS: tuple[str, ...] = ("BMI", "Blood Pressure", "Cholesterol", "Sugar Levels", "Fats")
SUMMARY_METRICS: tuple[str, ...] = (
    "Weight",
    "BMI",
    "Blood Pressure",
    "Cholesterol",
    "Sugar Levels",
    "Fats",
)

# Attribute names of the dietary categories, in display order.
DIETARY_CATEGORIES: tuple[str, ...] = (
    "fruits",
    "vegetables",
    "proteins",
    "seeds_and_nuts",
    "foods_to_limit",
)

MetricStatus = Literal["High", "Low", "Normal"]
BodyMetricStatus = Literal["High", "Low", "Normal", "Underweight", "Healthy", "Overweight", "Obese"]
ProgressStatus = Literal["Improved", "Declined", "Maintained"]


class SuggestionKind(str, Enum):
    """Kinds of structured generation the service performs."""

    DIET = "diet"
    WORKOUT = "workout"
    SUMMARY = "summary"


class Contract(BaseModel):
    """Base for all contracts: accept both attribute names and aliases."""

    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict:
        """Serialize using wire (camelCase) names, omitting unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True)


def _require_each_once(metrics: list[str], declared: tuple[str, ...], label: str) -> None:
    missing = [m for m in declared if m not in metrics]
    duplicated = sorted({m for m in metrics if metrics.count(m) > 1})
    if missing or duplicated:
        parts = []
        if missing:
            parts.append(f"missing {missing}")
        if duplicated:
            parts.append(f"duplicated {duplicated}")
        raise ValueError(f"{label} must cover each of {list(declared)} exactly once: " + ", ".join(parts))


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


class WorkoutRequest(Contract):
    """Metrics sent for a workout plan."""

    age: float = Field(..., description="The age of the user in years.")
    weight: float = Field(..., description="The weight of the user in kilograms.")
    bmi: float = Field(..., description="The BMI (Body Mass Index) of the user.")
    blood_pressure: str = Field(
        ...,
        alias="bloodPressure",
        pattern=BLOOD_PRESSURE_PATTERN,
        description="The blood pressure of the user, e.g., 120/80.",
    )
    cholesterol: float = Field(..., description="Cholesterol level in mg/dL.")
    sugar_levels: float = Field(..., alias="sugarLevels", description="Blood sugar level in mg/dL.")
    fats: float = Field(..., description="Body fat percentage.")
    blood_points: float = Field(
        ..., alias="bloodPoints", description="A metric representing overall blood health."
    )


class HealthMetrics(WorkoutRequest):
    """The full metric set of one health record (identity fields stripped)."""

    height: float = Field(..., description="The height of the user in centimeters.")


class DietaryRequest(HealthMetrics):
    """Metrics sent for dietary suggestions (the full metric set)."""


class HealthEntry(Contract):
    """A new reading as entered by the user; BMI is derived, not entered."""

    height: float = Field(..., gt=0, description="Height in centimeters.")
    weight: float = Field(..., gt=0, description="Weight in kilograms.")
    age: int = Field(..., gt=0, description="Age in whole years.")
    blood_pressure: str = Field(..., alias="bloodPressure", pattern=BLOOD_PRESSURE_PATTERN)
    cholesterol: float = Field(..., gt=0)
    sugar_levels: float = Field(..., alias="sugarLevels", gt=0)
    fats: float = Field(..., ge=0, le=100)
    blood_points: float = Field(..., alias="bloodPoints", gt=0)


class HealthSummaryRequest(Contract):
    previous_data: HealthMetrics = Field(..., alias="previousData")
    latest_data: HealthMetrics = Field(..., alias="latestData")


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------


class SuggestionItem(Contract):
    name: str = Field(..., min_length=1, description="Name of the food item or food category.")
    reason: str = Field(
        ...,
        description=(
            "A one-sentence reason why this food is suggested or should be limited, "
            "tied explicitly to the user's health metrics."
        ),
    )
    image_hint: str | None = Field(
        None, alias="imageHint", description="Optional short subject for an illustrative image."
    )
    image_url: str | None = Field(None, alias="imageUrl")


class DietaryAnalysisItem(Contract):
    metric: Literal["Blood Pressure", "Cholesterol", "Sugar Levels", "Fats"]
    status: MetricStatus
    comment: str = Field(..., description="A brief, one-sentence comment on this metric.")


class DietarySuggestions(Contract):
    analysis: list[DietaryAnalysisItem] = Field(
        ...,
        min_length=len(DIETARY_METRICS),
        max_length=len(DIETARY_METRICS),
        description="One entry per metric: Blood Pressure, Cholesterol, Sugar Levels, Fats.",
    )
    summary: str = Field(..., description="A brief, encouraging 2-3 sentence summary.")
    fruits: list[SuggestionItem] = Field(..., min_length=3)
    vegetables: list[SuggestionItem] = Field(..., min_length=3)
    proteins: list[SuggestionItem] = Field(..., min_length=3)
    seeds_and_nuts: list[SuggestionItem] = Field(..., alias="seedsAndNuts", min_length=3)
    foods_to_limit: list[SuggestionItem] = Field(..., alias="foodsToLimit", min_length=3)

    @model_validator(mode="after")
    def _analysis_covers_metrics(self) -> DietarySuggestions:
        _require_each_once([a.metric for a in self.analysis], DIETARY_METRICS, "analysis")
        return self


class Exercise(Contract):
    name: str = Field(..., min_length=1, description='e.g. "Push-ups", "Running".')
    sets: str = Field(..., description='e.g. "3 sets".')
    reps: str = Field(..., description='e.g. "10-12 reps", "30 minutes".')
    image_url: str | None = Field(None, alias="imageUrl")


class DailyPlan(Contract):
    day: str = Field(..., description="Day of the week.")
    title: str = Field(..., description='e.g. "Cardio Blast", "Rest & Recovery".')
    description: str
    exercises: list[Exercise] = Field(
        default_factory=list, description="Empty on a rest day."
    )


class WorkoutAnalysisItem(Contract):
    metric: Literal["BMI", "Blood Pressure", "Cholesterol", "Sugar Levels", "Fats"]
    status: BodyMetricStatus
    comment: str


class WorkoutSuggestions(Contract):
    analysis: list[WorkoutAnalysisItem] = Field(
        ..., min_length=len(WORKOUT_METRICS), max_length=len(WORKOUT_METRICS)
    )
    summary: str
    weekly_plan: list[DailyPlan] = Field(..., alias="weeklyPlan", min_length=7, max_length=7)

    @model_validator(mode="after")
    def _analysis_covers_metrics(self) -> WorkoutSuggestions:
        _require_each_once([a.metric for a in self.analysis], WORKOUT_METRICS, "analysis")
        return self


class MetricChange(Contract):
    metric: Literal["Weight", "BMI", "Blood Pressure", "Cholesterol", "Sugar Levels", "Fats"]
    change: str = Field(..., description="e.g. '-2 kg', '+5 mg/dL', 'Maintained'.")
    comment: str
    status: ProgressStatus


class HealthSummary(Contract):
    overall_status: ProgressStatus = Field(..., alias="overallStatus")
    summary_text: str = Field(..., alias="summaryText")
    metric_changes: list[MetricChange] = Field(
        ..., alias="metricChanges", min_length=len(SUMMARY_METRICS), max_length=len(SUMMARY_METRICS)
    )

    @model_validator(mode="after")
    def _changes_cover_metrics(self) -> HealthSummary:
        _require_each_once([c.metric for c in self.metric_changes], SUMMARY_METRICS, "metricChanges")
        return self


SuggestionResult = DietarySuggestions | WorkoutSuggestions | HealthSummary

GENERATION_CONTRACTS: dict[str, GenerationContract] = {
    SuggestionKind.DIET.value: GenerationContract(DietaryRequest, DietarySuggestions),
    SuggestionKind.WORKOUT.value: GenerationContract(WorkoutRequest, WorkoutSuggestions),
    SuggestionKind.SUMMARY.value: GenerationContract(HealthSummaryRequest, HealthSummary),
}
