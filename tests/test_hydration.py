"""
Tests for the hydration predictor.

Covered scenarios:
  A) empty log → default six-item schedule
  B) 10 identical hour-8 entries of 0.5 L → prediction moves towards 0.5

Additional:
  - context captured at event time (time since last, events today, rolling average)
  - predict_optimal before and after training
  - model weights persisted and reloaded; malformed payload → fresh model
  - learning insights after training
  - clear_all_data
"""
from datetime import datetime, timedelta, timezone

import pytest

from sipsense.services.behavior_log import BehaviorEntry, Context, decode_entries
from sipsense.services.features import extract_drink_features
from sipsense.services.hydration import BEHAVIOR_KEY, MODEL_KEY
from sipsense.services.kv_store import MemoryKeyValueStore
from sipsense.services.suggestions import Priority

from helpers import START, FixedClock, build_session, make_entry

HOUR_8 = Context(
    hour_of_day=8,
    weekday=1,
    ambient_temperature=22.0,
    time_since_last_event=3600.0,
    events_so_far_today=2,
    rolling_average_amount=0.5,
)


def _add_identical(hydration, n: int = 10, amount: float = 0.5):
    for i in range(n):
        hydration.add_behavior_data(BehaviorEntry(
            timestamp=START.replace(hour=8) - timedelta(days=i),
            amount=amount,
            context=HOUR_8,
            was_successful=True,
        ))


class TestDefaultSchedule:
    def test_empty_log_returns_default_schedule(self, hydration):
        items = hydration.get_personalized_schedule()
        assert [(i.time.hour, i.amount) for i in items] == [
            (8, 0.3), (10, 0.25), (12, 0.4), (15, 0.3), (18, 0.25), (20, 0.2),
        ]
        assert all(i.priority == Priority.medium for i in items)

    def test_default_until_trained(self, hydration):
        _add_identical(hydration, n=9)
        assert hydration.training_status().is_trained is False
        assert len(hydration.get_personalized_schedule()) == 6


class TestTraining:
    def test_identical_entries_pull_prediction_to_target(self, hydration):
        features = extract_drink_features(HOUR_8)
        baseline = hydration.predictor.predict(features)

        _add_identical(hydration)
        state = hydration.wait_for_training(timeout=10)

        assert state is not None
        assert hydration.predictor.is_trained
        after = hydration.predictor.predict(features)
        assert abs(after - 0.5) <= abs(baseline - 0.5)
        assert abs(after - 0.5) < 0.05

    def test_below_threshold_does_not_train(self, hydration):
        _add_identical(hydration, n=9)
        assert hydration.wait_for_training(timeout=10) is None
        assert hydration.predictor.is_trained is False

    def test_add_reports_retraining(self, hydration):
        for i in range(9):
            assert hydration.add_behavior_data(make_entry(START - timedelta(hours=i))) is False
        assert hydration.add_behavior_data(make_entry(START)) is True
        hydration.wait_for_training(timeout=10)

    def test_entry_count_and_trained_flag(self, hydration):
        assert hydration.entry_count() == 0
        _add_identical(hydration)
        assert hydration.entry_count() == 10
        assert hydration.wait_for_training(timeout=10) is not None
        assert hydration.is_trained() is True

    def test_training_status(self, hydration):
        _add_identical(hydration)
        hydration.wait_for_training(timeout=10)
        status = hydration.training_status()
        assert status.is_training is False
        assert status.progress == 1.0
        assert status.completed_runs == 1
        assert status.prediction_accuracy == 1.0


class TestRecordDrink:
    def test_context_captured_at_event_time(self, hydration, clock):
        first = hydration.record_drink(0.25)
        assert first.timestamp == START
        assert first.context.hour_of_day == 9
        assert first.context.weekday == 1
        assert first.context.time_since_last_event is None
        assert first.context.events_so_far_today == 0
        assert first.context.rolling_average_amount == 0.0

        clock.advance(hours=1)
        second = hydration.record_drink(0.35)
        assert second.context.time_since_last_event == 3600.0
        assert second.context.events_so_far_today == 1
        assert second.context.rolling_average_amount == pytest.approx(0.25)

    def test_explicit_time_and_context(self, hydration):
        at = START.replace(hour=14)
        entry = hydration.record_drink(0.2, at=at, context=HOUR_8)
        assert entry.timestamp == at
        assert entry.context == HOUR_8
        assert len(hydration.log) == 1

    def test_aware_time_converted_to_local_wall_clock(self):
        session = build_session(MemoryKeyValueStore(), FixedClock(START), zone=timezone(timedelta(hours=2)))
        try:
            hydration = session.hydration
            first = hydration.record_drink(0.3, at=datetime(2026, 3, 2, 6, 0, tzinfo=timezone.utc))
            assert first.timestamp == START.replace(hour=8)
            assert first.timestamp.tzinfo is None
            assert first.context.hour_of_day == 8

            second = hydration.record_drink(0.2)
            assert second.context.time_since_last_event == 3600.0
            assert second.context.events_so_far_today == 1

            assert hydration.predict_optimal().optimal_time == START + timedelta(hours=1)
            assert hydration.analyze_patterns().patterns[0].time_slot == "Morning"
        finally:
            session.shutdown()


class TestPrediction:
    def test_untrained_prediction(self, hydration):
        prediction = hydration.predict_optimal()
        assert prediction.personalized is False
        assert prediction.optimal_time == START + timedelta(hours=1)
        assert 0.1 <= prediction.recommended_amount <= 0.5
        assert 0.1 <= prediction.confidence <= 1.0

    def test_trained_schedule_respects_bounds(self, hydration):
        _add_identical(hydration)
        hydration.wait_for_training(timeout=10)

        assert hydration.predict_optimal().personalized is True
        items = hydration.get_personalized_schedule()
        hours = [i.time.hour for i in items]
        assert len(hours) == len(set(hours))
        assert all(6 <= h <= 22 for h in hours)
        assert all(0.1 < i.amount <= 0.5 for i in items)


class TestInsightsAndPatterns:
    def test_learning_insights(self, hydration):
        _add_identical(hydration, n=12)
        hydration.wait_for_training(timeout=10)
        insights = hydration.get_learning_insights()
        assert insights.total_data_points == 12
        assert insights.recent_accuracy == 1.0
        assert insights.improvement_trend == 0.0
        assert insights.confidence_level == pytest.approx((0.12 + 1.0) / 2)

    def test_patterns_by_drink_time(self, hydration):
        hydration.add_behavior_data(make_entry(START.replace(hour=8)))
        hydration.add_behavior_data(make_entry(START.replace(hour=19)))
        analysis = hydration.analyze_patterns()
        assert [p.frequency for p in analysis.patterns] == [0.5, 0.5]


class TestPersistence:
    def test_model_reloaded_by_next_session(self, kv, hydration):
        _add_identical(hydration)
        trained = hydration.wait_for_training(timeout=10)
        assert kv.load(MODEL_KEY) is not None

        session = build_session(kv, FixedClock(START), seed=99)
        try:
            assert session.hydration.predictor.state == trained
            assert len(session.hydration.log) == 10
            assert session.hydration.training_status().prediction_accuracy == 1.0
        finally:
            session.shutdown()

    def test_malformed_model_falls_back_to_fresh_weights(self):
        kv = MemoryKeyValueStore({MODEL_KEY: b"\x00garbage", BEHAVIOR_KEY: b"[not json"})
        session = build_session(kv, FixedClock(START))
        try:
            assert session.hydration.predictor.is_trained is False
            assert len(session.hydration.log) == 0
        finally:
            session.shutdown()

    def test_clear_all_data(self, kv, hydration):
        _add_identical(hydration)
        hydration.wait_for_training(timeout=10)
        hydration.clear_all_data()

        assert len(hydration.log) == 0
        assert hydration.predictor.is_trained is False
        assert decode_entries(kv.load(BEHAVIOR_KEY)) == []
        assert hydration.get_learning_insights().total_data_points == 0
        assert len(hydration.get_personalized_schedule()) == 6
