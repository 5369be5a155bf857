"""Shared test fixtures for VitalPlan tests."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LLM_PROVIDER", "mock")
    monkeypatch.setenv("IMAGE_PROVIDER", "mock")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "")
    monkeypatch.setenv("OPENAI_API_KEY", "")
    monkeypatch.setenv("GEMINI_API_KEY", "")
    monkeypatch.setenv("ENCRYPTION_KEY", "")
    monkeypatch.setenv("DB_PATH", ":memory:")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from vitalplan.core.storage.models import HealthRecord  # noqa: E402


def make_record(**overrides: Any) -> HealthRecord:
    """Create an unsaved record with healthy defaults."""
    defaults: dict[str, Any] = dict(
        id="",
        user_id="user-1",
        created_at="",
        height=175.0,
        weight=70.0,
        age=35,
        blood_pressure="118/76",
        cholesterol=180.0,
        sugar_levels=90.0,
        fats=22.0,
        blood_points=95.0,
        bmi=22.86,
    )
    defaults.update(overrides)
    return HealthRecord(**defaults)


@pytest.fixture
def record_factory():
    """Factory for unsaved HealthRecords: ``record_factory(weight=80.0)``."""
    return make_record


# ---------------------------------------------------------------------------
# Canned generator replies (valid against the output contracts)
# ---------------------------------------------------------------------------

def _items(*names: str) -> list[dict[str, Any]]:
    return [{"name": n, "reason": f"{n} suits your readings.", "imageHint": n.lower()} for n in names]


@pytest.fixture
def dietary_payload() -> dict[str, Any]:
    return {
        "analysis": [
            {"metric": "Blood Pressure", "status": "High", "comment": "Your 150/95 reading is high."},
            {"metric": "Cholesterol", "status": "High", "comment": "220 mg/dL is above range."},
            {"metric": "Sugar Levels", "status": "High", "comment": "110 mg/dL is elevated."},
            {"metric": "Fats", "status": "High", "comment": "35% body fat is high."},
        ],
        "summary": "Several readings need attention. These foods help.",
        "fruits": _items("Bananas", "Apples", "Blueberries"),
        "vegetables": _items("Spinach", "Okra", "Broccoli"),
        "proteins": _items("Salmon", "Lentils", "Tofu"),
        "seedsAndNuts": _items("Walnuts", "Chia seeds", "Flaxseeds"),
        "foodsToLimit": _items("Fried foods", "Sugary drinks", "Processed cheese"),
    }


@pytest.fixture
def workout_payload() -> dict[str, Any]:
    days = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
    plan = [
        {
            "day": day,
            "title": "Cardio" if day != "Sunday" else "Rest & Recovery",
            "description": "Keep moving.",
            "exercises": [] if day == "Sunday" else [
                {"name": f"Walk {day}", "sets": "1 set", "reps": "30 minutes"},
                {"name": f"Squats {day}", "sets": "3 sets", "reps": "12 reps"},
            ],
        }
        for day in days
    ]
    return {
        "analysis": [
            {"metric": m, "status": "Normal", "comment": "In range."}
            for m in ("Blood Pressure", "Cholesterol", "Sugar Levels", "Fats")
        ] + [{"metric": "BMI", "status": "Healthy", "comment": "In range."}],
        "summary": "A balanced week.",
        "weeklyPlan": plan,
    }


@pytest.fixture
def summary_payload() -> dict[str, Any]:
    return {
        "overallStatus": "Improved",
        "summaryText": "Nice progress.",
        "metricChanges": [
            {"metric": m, "change": "Maintained", "comment": "Steady.", "status": "Maintained"}
            for m in ("Weight", "BMI", "Blood Pressure", "Cholesterol", "Sugar Levels", "Fats")
        ],
    }


@pytest.fixture
def dietary_reply(dietary_payload) -> str:
    return json.dumps(dietary_payload)


# ---------------------------------------------------------------------------
# In-memory storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def health_db():
    """Create an in-memory HealthDatabase for testing."""
    from vitalplan.core.storage.database import HealthDatabase

    db = HealthDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def field_encryptor():
    """Create a FieldEncryptor with a test key."""
    from cryptography.fernet import Fernet

    from vitalplan.core.storage.encryption import FieldEncryptor

    return FieldEncryptor(Fernet.generate_key().decode())


@pytest.fixture
def health_repository(health_db, field_encryptor):
    """Create a HealthRepository backed by in-memory SQLite."""
    from vitalplan.core.storage.repository import HealthRepository

    return HealthRepository(health_db, field_encryptor)


@pytest.fixture
def suggestion_cache(health_db, field_encryptor):
    """Create a SuggestionCache sharing the in-memory database."""
    from vitalplan.core.storage.cache import SuggestionCache

    return SuggestionCache(health_db, field_encryptor)
