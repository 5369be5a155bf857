"""Tests for HealthRepository — append-only records with in-memory SQLite."""

from __future__ import annotations

import pytest

from vitalplan.core.storage.repository import RepositoryError


class TestSaveAndRetrieve:
    def test_save_assigns_id_and_timestamp(self, health_repository, record_factory):
        stored = health_repository.save_record(record_factory())
        assert len(stored.id) == 36  # UUID format
        assert stored.created_at
        assert health_repository.count_records() == 1

    def test_round_trip_preserves_metrics(self, health_repository, record_factory):
        stored = health_repository.save_record(record_factory(blood_pressure="135/88", bmi=24.1))
        loaded = health_repository.get_record(stored.id)
        assert loaded == stored
        assert loaded.systolic == 135
        assert loaded.diastolic == 88

    def test_explicit_id_kept(self, health_repository, record_factory):
        stored = health_repository.save_record(record_factory(id="rec-1"))
        assert stored.id == "rec-1"

    def test_duplicate_id_rejected(self, health_repository, record_factory):
        health_repository.save_record(record_factory(id="rec-1"))
        with pytest.raises(RepositoryError, match="immutable"):
            health_repository.save_record(record_factory(id="rec-1", weight=90.0))

    def test_missing_record_returns_none(self, health_repository):
        assert health_repository.get_record("nope") is None

    def test_metrics_are_encrypted_at_rest(self, health_repository, health_db, record_factory):
        health_repository.save_record(record_factory(blood_pressure="142/91"))
        raw = health_db.connection.execute("SELECT metrics_enc FROM health_records").fetchone()[0]
        assert "142/91" not in raw


class TestQueries:
    def _seed(self, repo, record_factory):
        for i, weight in enumerate([80.0, 78.0, 76.0]):
            repo.save_record(record_factory(
                id=f"rec-{i}", weight=weight, created_at=f"2026-03-0{i + 1}T08:00:00+00:00"
            ))
        repo.save_record(record_factory(id="other", user_id="user-2",
                                        created_at="2026-03-09T08:00:00+00:00"))

    def test_records_newest_first_and_scoped_to_user(self, health_repository, record_factory):
        self._seed(health_repository, record_factory)
        records = health_repository.get_records("user-1")
        assert [r.id for r in records] == ["rec-2", "rec-1", "rec-0"]

    def test_latest_record(self, health_repository, record_factory):
        self._seed(health_repository, record_factory)
        assert health_repository.get_latest_record("user-1").id == "rec-2"
        assert health_repository.get_latest_record("nobody") is None

    def test_since_filter(self, health_repository, record_factory):
        self._seed(health_repository, record_factory)
        records = health_repository.get_records("user-1", since="2026-03-02T00:00:00+00:00")
        assert [r.id for r in records] == ["rec-2", "rec-1"]

    def test_count_per_user(self, health_repository, record_factory):
        self._seed(health_repository, record_factory)
        assert health_repository.count_records("user-1") == 3
        assert health_repository.count_records() == 4

    def test_metric_history_oldest_first(self, health_repository, record_factory):
        self._seed(health_repository, record_factory)
        history = health_repository.get_metric_history("user-1", "weight")
        assert [v for _, v in history] == [80.0, 78.0, 76.0]

    def test_metric_history_splits_blood_pressure(self, health_repository, record_factory):
        health_repository.save_record(record_factory(blood_pressure="128/84"))
        assert health_repository.get_metric_history("user-1", "diastolic")[0][1] == 84.0

    def test_invalid_metric_rejected(self, health_repository):
        with pytest.raises(RepositoryError, match="Invalid metric"):
            health_repository.get_metric_history("user-1", "bloodPressure")
