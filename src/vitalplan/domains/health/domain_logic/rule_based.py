"""Deterministic suggestion generator driven by reference ranges.

Used in place of the LLM when no provider key is configured. It honours
the same ``generate(kind, metrics)`` contract as GenerationClient and its
output goes through the same contract validation.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from vitalplan.core.llm.client import GenerationError
from vitalplan.core.llm.response import check_contract
from vitalplan.domains.health.domain_logic.contracts import (
    GENERATION_CONTRACTS,
    HealthMetrics,
    SuggestionKind,
    WorkoutRequest,
)
from vitalplan.domains.health.domain_logic.metrics import (
    classify_blood_pressure,
    classify_bmi,
    classify_cholesterol,
    classify_fats,
    classify_sugar,
    parse_blood_pressure,
)

logger = logging.getLogger(__name__)

# (name, concern it addresses, reason). Concern keys: bp, chol, sugar, fats, low_fats.
_FOODS: dict[str, list[tuple[str, str, str]]] = {
    "fruits": [
        ("Bananas", "bp", "Their potassium helps counter sodium and supports lowering your {bp} blood pressure."),
        ("Apples", "chol", "Pectin fibre binds cholesterol and helps bring down your {chol} mg/dL reading."),
        ("Blueberries", "sugar", "Low glycemic load and fibre help steady your {sugar} mg/dL blood sugar."),
        ("Grapefruit", "fats", "Low in calories and high in water, supporting a lower body-fat percentage than {fats}%."),
        ("Avocado", "low_fats", "Healthy monounsaturated fats help raise a body-fat level of {fats}% sensibly."),
        ("Oranges", "general", "Vitamin C and fibre support heart health alongside your current readings."),
    ],
    "vegetables": [
        ("Spinach", "bp", "Rich in potassium and magnesium, which relax blood vessels for your {bp} blood pressure."),
        ("Okra", "chol", "Soluble fibre in okra helps reduce LDL given your {chol} mg/dL cholesterol."),
        ("Broccoli", "sugar", "Sulforaphane and fibre improve insulin response for your {sugar} mg/dL sugar level."),
        ("Cauliflower", "fats", "A filling, low-calorie swap for starches that supports reducing {fats}% body fat."),
        ("Sweet potatoes", "low_fats", "Nutrient-dense energy to support healthy weight with {fats}% body fat."),
        ("Carrots", "general", "Beta-carotene and fibre support overall cardiovascular health."),
    ],
    "proteins": [
        ("Salmon", "chol", "Omega-3 fatty acids lower triglycerides and support your {chol} mg/dL cholesterol."),
        ("Lentils", "sugar", "Slow-digesting plant protein that keeps your {sugar} mg/dL blood sugar stable."),
        ("Skinless chicken breast", "fats", "Lean protein preserves muscle while reducing {fats}% body fat."),
        ("Tofu", "bp", "Soy protein is linked to modest reductions in blood pressure like your {bp}."),
        ("Eggs", "low_fats", "Complete protein and healthy fats to build up from {fats}% body fat."),
        ("Greek yogurt", "general", "High-protein, calcium-rich option that fits your current metrics."),
    ],
    "seeds_and_nuts": [
        ("Walnuts", "chol", "ALA omega-3s help improve your lipid profile at {chol} mg/dL cholesterol."),
        ("Chia seeds", "sugar", "Gel-forming fibre slows glucose absorption for your {sugar} mg/dL sugar level."),
        ("Unsalted pumpkin seeds", "bp", "Magnesium supports healthy blood pressure relative to your {bp} reading."),
        ("Flaxseeds", "fats", "Fibre increases fullness, helping reduce {fats}% body fat."),
        ("Almonds", "low_fats", "Calorie-dense healthy fats to support raising {fats}% body fat."),
        ("Sunflower seeds", "general", "Vitamin E and healthy fats support overall heart health."),
    ],
    "foods_to_limit": [
        ("Processed cheese", "bp", "Its high sodium content can push your {bp} blood pressure higher."),
        ("Fried foods", "chol", "Trans and saturated fats raise LDL on top of your {chol} mg/dL cholesterol."),
        ("Sugary drinks", "sugar", "Rapidly absorbed sugar spikes your already {sugar} mg/dL blood sugar."),
        ("Pastries", "fats", "Dense in refined flour and fat, working against reducing {fats}% body fat."),
        ("Processed meats", "general", "High in sodium and preservatives that strain the heart over time."),
        ("Refined white bread", "general", "Low fibre and quick to raise blood sugar."),
    ],
}

_CATEGORY_WIRE = {
    "fruits": "fruits",
    "vegetables": "vegetables",
    "proteins": "proteins",
    "seeds_and_nuts": "seedsAndNuts",
    "foods_to_limit": "foodsToLimit",
}

_DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def _concerns(m: WorkoutRequest) -> set[str]:
    concerns: set[str] = set()
    if classify_blood_pressure(m.blood_pressure) == "High":
        concerns.add("bp")
    if classify_cholesterol(m.cholesterol) == "High":
        concerns.add("chol")
    if classify_sugar(m.sugar_levels) == "High":
        concerns.add("sugar")
    fats = classify_fats(m.fats)
    if fats == "High":
        concerns.add("fats")
    elif fats == "Low":
        concerns.add("low_fats")
    return concerns


def _metric_comment(metric: str, status: str, reading: str) -> str:
    if status in ("Normal", "Healthy"):
        return f"Your {metric.lower()} of {reading} is within the healthy range."
    return f"Your {metric.lower()} of {reading} is {status.lower()} and deserves attention."


class RuleBasedGenerator:
    """Builds suggestions from reference ranges instead of an LLM."""

    def __init__(self) -> None:
        self.call_count = 0

    async def generate(self, kind: str, metrics: Mapping[str, Any] | BaseModel) -> BaseModel:
        key = getattr(kind, "value", kind)
        contract = GENERATION_CONTRACTS.get(key)
        if contract is None:
            raise GenerationError(f"Unknown generation kind: {key!r}", kind=key)
        self.call_count += 1

        payload = metrics.model_dump(by_alias=True) if isinstance(metrics, BaseModel) else metrics
        request = check_contract(contract.input, payload)
        if not request.passed:
            raise GenerationError(f"Invalid {key} request", kind=key, reasons=request.errors)

        if key == SuggestionKind.DIET.value:
            output = self._dietary(request.value)  # type: ignore[arg-type]
        elif key == SuggestionKind.WORKOUT.value:
            output = self._workout(request.value)  # type: ignore[arg-type]
        else:
            output = self._summary(request.value.previous_data, request.value.latest_data)  # type: ignore[union-attr]

        result = check_contract(contract.output, output)
        if not result.passed:
            raise GenerationError(
                f"Generated {key} result violated its contract", kind=key, reasons=result.errors
            )
        logger.info("Rule-based %s suggestions generated", key)
        return result.value  # type: ignore[return-value]

    # ------------------------------------------------------------------
    # Dietary
    # ------------------------------------------------------------------

    def _dietary(self, m: HealthMetrics) -> dict[str, Any]:
        readings = {
            "bp": m.blood_pressure,
            "chol": f"{m.cholesterol:g}",
            "sugar": f"{m.sugar_levels:g}",
            "fats": f"{m.fats:g}",
        }
        statuses = {
            "Blood Pressure": (classify_blood_pressure(m.blood_pressure), m.blood_pressure),
            "Cholesterol": (classify_cholesterol(m.cholesterol), f"{m.cholesterol:g} mg/dL"),
            "Sugar Levels": (classify_sugar(m.sugar_levels), f"{m.sugar_levels:g} mg/dL"),
            "Fats": (classify_fats(m.fats), f"{m.fats:g}%"),
        }
        analysis = [
            {"metric": metric, "status": status, "comment": _metric_comment(metric, status, reading)}
            for metric, (status, reading) in statuses.items()
        ]
        flagged = [metric for metric, (status, _) in statuses.items() if status != "Normal"]
        if flagged:
            summary = (
                f"Your plan focuses on {', '.join(flagged).lower()}. "
                "Each food below was chosen for the readings that need the most support."
            )
        else:
            summary = (
                "Your key metrics are all in range. "
                "The foods below help you keep them there with a varied, balanced diet."
            )

        concerns = _concerns(m)
        output: dict[str, Any] = {"analysis": analysis, "summary": summary}
        for category, foods in _FOODS.items():
            ranked = sorted(foods, key=lambda f: 0 if f[1] in concerns else 1)
            output[_CATEGORY_WIRE[category]] = [
                {"name": name, "reason": reason.format(**readings), "imageHint": name.lower()}
                for name, _, reason in ranked[:3]
            ]
        return output

    # ------------------------------------------------------------------
    # Workout
    # ------------------------------------------------------------------

    def _workout(self, m: WorkoutRequest) -> dict[str, Any]:
        bmi_status = classify_bmi(m.bmi)
        statuses = {
            "BMI": (bmi_status, f"{m.bmi:g}"),
            "Blood Pressure": (classify_blood_pressure(m.blood_pressure), m.blood_pressure),
            "Cholesterol": (classify_cholesterol(m.cholesterol), f"{m.cholesterol:g} mg/dL"),
            "Sugar Levels": (classify_sugar(m.sugar_levels), f"{m.sugar_levels:g} mg/dL"),
            "Fats": (classify_fats(m.fats), f"{m.fats:g}%"),
        }
        analysis = [
            {"metric": metric, "status": status, "comment": _metric_comment(metric, status, reading)}
            for metric, (status, reading) in statuses.items()
        ]
        concerns = _concerns(m)
        cardio_focus = bool(concerns & {"bp", "chol"}) or bmi_status in ("Overweight", "Obese")
        strength_focus = "sugar" in concerns or bmi_status == "Underweight" or "low_fats" in concerns

        cardio = {
            "title": "Steady Cardio",
            "description": "Moderate, continuous cardio to support heart health.",
            "exercises": [
                {"name": "Brisk walking", "sets": "1 set", "reps": "40 minutes" if cardio_focus else "30 minutes"},
                {"name": "Stationary cycling", "sets": "1 set", "reps": "15 minutes"},
            ],
        }
        strength = {
            "title": "Strength & Core",
            "description": "Full-body resistance work to build muscle and improve insulin sensitivity.",
            "exercises": [
                {"name": "Bodyweight squats", "sets": "3 sets", "reps": "12 reps"},
                {"name": "Push-ups", "sets": "3 sets", "reps": "10 reps"},
                {"name": "Plank", "sets": "3 sets", "reps": "30 seconds"},
            ],
        }
        intervals = {
            "title": "Interval Burn",
            "description": "Short intervals to raise calorie burn and glucose uptake.",
            "exercises": [
                {"name": "Jumping jacks", "sets": "4 sets", "reps": "45 seconds"},
                {"name": "Mountain climbers", "sets": "4 sets", "reps": "30 seconds"},
            ],
        }
        mobility = {
            "title": "Mobility & Stretch",
            "description": "Gentle yoga and stretching for recovery.",
            "exercises": [{"name": "Yoga flow", "sets": "1 set", "reps": "25 minutes"}],
        }
        rest = {
            "title": "Rest & Recovery",
            "description": "Full rest day; keep light movement like a short walk.",
            "exercises": [],
        }

        if strength_focus and not cardio_focus:
            week = [strength, cardio, intervals, strength, mobility, strength, rest]
        elif cardio_focus and not strength_focus:
            week = [cardio, strength, cardio, mobility, cardio, strength, rest]
        else:
            week = [cardio, strength, intervals, mobility, cardio, strength, rest]

        if cardio_focus and strength_focus:
            summary = "Your plan balances steady cardio for your heart with strength work for metabolic health."
        elif cardio_focus:
            summary = "Your plan leans on consistent, moderate cardio to support your cardiovascular readings."
        elif strength_focus:
            summary = "Your plan emphasises resistance training and intervals to improve how your body handles sugar."
        else:
            summary = "Your metrics look good; this balanced week keeps cardio, strength and recovery in rotation."

        return {
            "analysis": analysis,
            "summary": summary,
            "weeklyPlan": [{"day": day, **plan} for day, plan in zip(_DAYS, week)],
        }

    # ------------------------------------------------------------------
    # Progress summary
    # ------------------------------------------------------------------

    def _summary(self, previous: HealthMetrics, latest: HealthMetrics) -> dict[str, Any]:
        prev_sys, prev_dia = parse_blood_pressure(previous.blood_pressure)
        new_sys, new_dia = parse_blood_pressure(latest.blood_pressure)

        def lower_is_better(before: float, after: float) -> str:
            if after < before:
                return "Improved"
            if after > before:
                return "Declined"
            return "Maintained"

        def delta(before: float, after: float, unit: str) -> str:
            diff = round(after - before, 2)
            return "Maintained" if diff == 0 else f"{diff:+g}{unit}"

        fats_status = lower_is_better(previous.fats, latest.fats)
        if classify_fats(previous.fats) == "Low" and latest.fats > previous.fats:
            fats_status = "Improved"

        bp_score = (new_sys - prev_sys) + (new_dia - prev_dia)
        if (new_sys, new_dia) == (prev_sys, prev_dia):
            bp_change = "Maintained"
        else:
            bp_change = f"{new_sys - prev_sys:+d}/{new_dia - prev_dia:+d} mmHg"
        changes = [
            ("Weight", delta(previous.weight, latest.weight, " kg"), lower_is_better(previous.weight, latest.weight)),
            ("BMI", delta(previous.bmi, latest.bmi, ""), lower_is_better(previous.bmi, latest.bmi)),
            ("Blood Pressure", bp_change, lower_is_better(0, bp_score)),
            ("Cholesterol", delta(previous.cholesterol, latest.cholesterol, " mg/dL"),
             lower_is_better(previous.cholesterol, latest.cholesterol)),
            ("Sugar Levels", delta(previous.sugar_levels, latest.sugar_levels, " mg/dL"),
             lower_is_better(previous.sugar_levels, latest.sugar_levels)),
            ("Fats", delta(previous.fats, latest.fats, "%"), fats_status),
        ]
        metric_changes = [
            {
                "metric": metric,
                "change": change,
                "status": status,
                "comment": f"{metric} {status.lower()} since your previous entry.",
            }
            for metric, change, status in changes
        ]
        improved = sum(1 for *_, s in changes if s == "Improved")
        declined = sum(1 for *_, s in changes if s == "Declined")
        if improved > declined:
            overall, text = "Improved", "Great work: more of your metrics moved in the right direction than the wrong one."
        elif declined > improved:
            overall, text = "Declined", "Some metrics slipped since last time; focus on the ones marked declined."
        else:
            overall, text = "Maintained", "Your metrics are broadly steady since your previous entry."
        return {"overallStatus": overall, "summaryText": text, "metricChanges": metric_changes}
