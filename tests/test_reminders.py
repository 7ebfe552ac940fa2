"""
Tests for the reminder advisor.

Covered scenarios:
  D) decline a suggestion → entry recorded as not accepted, suggestion removed
  - accepting raises the acceptance rate (given a prior entry)

Additional:
  - cold-start suggestions at 08:00 / 12:00 / 18:00
  - acceptance promotes the suggestion into the persisted reminder list
  - unknown suggestion id → SuggestionNotFoundError
  - completed / skipped outcomes: contextual confidence and reason text
  - privacy modes: thresholds, pruning, strict reasons, persistence
  - insights, export summary, clear_all_data
"""
from datetime import timedelta, timezone

import pytest

from sipsense.core.errors import ReminderStoreError, SuggestionNotFoundError
from sipsense.services.behavior_log import encode_entries
from sipsense.services.kv_store import MemoryKeyValueStore
from sipsense.services.session import create_engine_session
from sipsense.services.reminders import (
    BEHAVIOR_KEY,
    PRIVACY_KEY,
    STRICT_REASON,
    PrivacyMode,
    completion_reason,
    contextual_confidence,
    skip_reason,
)

from helpers import START, FixedClock, build_session, make_entry


def _accepted(hour: int, days_ago: int = 0, confidence: float = 0.9, accepted: bool = True):
    when = START - timedelta(days=days_ago)
    return make_entry(
        when,
        amount=1.0 if accepted else 0.0,
        was_successful=accepted,
        scheduled_for=when.replace(hour=hour),
        confidence=confidence,
    )


class _FailingReminderStore:
    def add_reminder(self, time, message, source="ai_suggestion"):
        raise OSError("database is locked")

    def list_reminders(self, enabled_only=False):
        return []


def _session_with(entries, **kwargs):
    kv = MemoryKeyValueStore({BEHAVIOR_KEY: encode_entries(entries)})
    return build_session(kv, FixedClock(START), **kwargs)


class TestSuggestions:
    def test_cold_start_suggestions(self, reminders):
        result = reminders.analyze_and_suggest_reminders()
        assert [s.time.hour for s in result.suggestions] == [8, 12, 18]
        assert all(s.confidence == 0.5 for s in result.suggestions)
        assert all(s.acceptance_probability is None for s in result.suggestions)
        assert result.confidence == 0.0
        assert result.analyzed_at == START
        assert reminders.pending_suggestions() == result.suggestions

    def test_decline_records_entry_and_removes_suggestion(self, reminders):
        suggestion = reminders.analyze_and_suggest_reminders().suggestions[0]
        reminders.dismiss_suggestion(suggestion.id)

        (entry,) = reminders.log.entries
        assert entry.was_successful is False
        assert entry.amount == 0.0
        assert entry.scheduled_for == suggestion.time
        assert entry.confidence == suggestion.confidence
        assert suggestion.id not in [s.id for s in reminders.pending_suggestions()]
        assert reminders.scheduler.score_for(suggestion.time.hour) == pytest.approx(0.4)

    def test_accept_persists_reminder(self, reminders, engine_session):
        suggestion = reminders.analyze_and_suggest_reminders().suggestions[0]
        record = reminders.accept_suggestion(suggestion.id)

        assert record.hour == 8
        assert record.minute == 0
        assert record.message == suggestion.message
        assert record.source == "ai_suggestion"
        assert [r.id for r in engine_session.reminder_store.list_reminders()] == [record.id]
        assert reminders.log.last.was_successful is True
        assert reminders.log.last.reason == "User accepted AI suggestion"
        assert reminders.scheduler.score_for(8) == pytest.approx(0.6)
        assert len(reminders.pending_suggestions()) == 2

    def test_accepting_raises_acceptance_rate(self, reminders):
        reminders.record_reminder_skipped(START.replace(hour=12))
        before = reminders.get_reminder_insights().acceptance_rate
        suggestion = reminders.analyze_and_suggest_reminders().suggestions[0]
        reminders.accept_suggestion(suggestion.id)
        after = reminders.get_reminder_insights().acceptance_rate
        assert after > before

    def test_failed_save_keeps_suggestion_pending(self):
        session = create_engine_session(
            MemoryKeyValueStore(),
            _FailingReminderStore(),
            clock=FixedClock(START),
            temperature=lambda: 22.0,
            seed=42,
            training_steps=2,
            training_step_delay=0.0,
        )
        try:
            reminders = session.reminders
            suggestion = reminders.analyze_and_suggest_reminders().suggestions[0]
            with pytest.raises(ReminderStoreError) as exc_info:
                reminders.accept_suggestion(suggestion.id)

            assert exc_info.value.details == {"suggestion_id": suggestion.id}
            assert len(reminders.pending_suggestions()) == 3
            assert reminders.entry_count() == 0
            assert reminders.scheduler.score_for(suggestion.time.hour) == pytest.approx(0.5)

            reminders.dismiss_suggestion(suggestion.id)
            assert reminders.entry_count() == 1
        finally:
            session.shutdown()

    def test_unknown_suggestion(self, reminders):
        with pytest.raises(SuggestionNotFoundError):
            reminders.accept_suggestion("nope")
        with pytest.raises(SuggestionNotFoundError):
            reminders.dismiss_suggestion("nope")

    def test_suggestion_cannot_be_accepted_twice(self, reminders):
        suggestion = reminders.analyze_and_suggest_reminders().suggestions[0]
        reminders.accept_suggestion(suggestion.id)
        with pytest.raises(SuggestionNotFoundError):
            reminders.accept_suggestion(suggestion.id)

    def test_good_slots_drive_suggestions(self):
        session = _session_with([_accepted(15), _accepted(15, days_ago=1), _accepted(21, accepted=False)])
        try:
            hours = [s.time.hour for s in session.reminders.analyze_and_suggest_reminders().suggestions]
            assert hours == [8, 12, 15, 18]
        finally:
            session.shutdown()

    def test_trained_model_attaches_acceptance_probability(self, reminders):
        for hour in (8, 9, 10, 11, 12):
            reminders.record_reminder_completed(START.replace(hour=hour))
        assert reminders.wait_for_training(timeout=10) is not None

        for s in reminders.analyze_and_suggest_reminders().suggestions:
            assert 0.0 <= s.acceptance_probability <= 1.0


class TestOutcomes:
    def test_completed(self, reminders):
        entry = reminders.record_reminder_completed(START.replace(hour=8))
        assert entry.was_successful is True
        assert entry.amount == 1.0
        assert entry.reason == "Morning hydration routine completed"
        # clock at 09:00 falls in the 08–10 window
        assert entry.confidence == pytest.approx(0.7)

    def test_aware_reminder_time(self, reminders):
        entry = reminders.record_reminder_completed(START.replace(hour=8, tzinfo=timezone.utc))
        assert entry.scheduled_for == START.replace(hour=8)
        assert entry.reason == "Morning hydration routine completed"
        assert reminders.get_reminder_insights().total_reminders == 1

    def test_skipped(self, reminders):
        entry = reminders.record_reminder_skipped(START.replace(hour=7))
        assert entry.was_successful is False
        assert entry.reason == "Early morning reminder skipped"

    def test_hot_weather(self):
        session = build_session(MemoryKeyValueStore(), FixedClock(START), temperature=30.0)
        try:
            entry = session.reminders.record_reminder_completed(START.replace(hour=15))
            assert entry.reason == "Hot weather hydration completed"
            assert entry.confidence == pytest.approx(0.8)
        finally:
            session.shutdown()

    @pytest.mark.parametrize("hour, temperature, reason", [
        (6, 20.0, "Early morning reminder skipped"),
        (23, 20.0, "Late night reminder skipped"),
        (12, 10.0, "Cold weather reminder skipped"),
        (12, 20.0, "Reminder skipped by user"),
    ])
    def test_skip_reasons(self, hour, temperature, reason):
        entry = make_entry(START, temperature=temperature)
        assert skip_reason(START.replace(hour=hour), entry.context) == reason

    def test_completion_reason_default(self):
        entry = make_entry(START)
        assert completion_reason(START.replace(hour=15), entry.context) == "Regular hydration reminder completed"

    def test_contextual_confidence_off_peak(self):
        assert contextual_confidence(make_entry(START.replace(hour=16)).context) == 0.5


class TestPrivacyMode:
    def test_thresholds(self, reminders):
        assert reminders.min_training_entries == 5
        reminders.update_privacy_mode(PrivacyMode.enhanced)
        assert reminders.min_training_entries == 10
        reminders.update_privacy_mode(PrivacyMode.strict)
        assert reminders.min_training_entries == 15
        assert reminders._training_epochs() == 25

    def test_enhanced_prunes_old_entries(self):
        session = _session_with([_accepted(8, days_ago=40), _accepted(8, days_ago=10), _accepted(8)])
        try:
            assert session.reminders.update_privacy_mode(PrivacyMode.enhanced) == 1
            assert len(session.reminders.log) == 2
        finally:
            session.shutdown()

    def test_strict_keeps_last_fifty(self):
        entries = [_accepted(8, days_ago=d) for d in range(55, 0, -1)]
        session = _session_with(entries)
        try:
            assert session.reminders.update_privacy_mode(PrivacyMode.strict) == 5
            assert session.reminders.log.entries == tuple(entries[5:])
        finally:
            session.shutdown()

    def test_strict_replaces_reason(self, reminders):
        reminders.update_privacy_mode(PrivacyMode.strict)
        entry = reminders.record_reminder_completed(START.replace(hour=8))
        assert entry.reason == STRICT_REASON

    def test_mode_persisted(self, kv, reminders):
        reminders.update_privacy_mode(PrivacyMode.strict)
        assert kv.load(PRIVACY_KEY) == b"strict"

        session = build_session(kv, FixedClock(START))
        try:
            assert session.reminders.privacy_mode is PrivacyMode.strict
        finally:
            session.shutdown()

    def test_unknown_stored_mode_ignored(self):
        session = build_session(MemoryKeyValueStore({PRIVACY_KEY: b"paranoid"}), FixedClock(START))
        try:
            assert session.reminders.privacy_mode is PrivacyMode.standard
        finally:
            session.shutdown()


class TestInsights:
    def test_empty(self, reminders):
        insights = reminders.get_reminder_insights()
        assert insights.total_reminders == 0
        assert insights.acceptance_rate == 0.0
        assert insights.confidence == 0.0
        assert insights.data_quality == 0.0
        assert insights.adaptive_score == 0.5
        assert insights.last_analysis is None
        assert [i.kind for i in insights.insights] == ["effectiveness", "data_quality"]

    def test_optimal_times_and_most_effective(self):
        session = _session_with([_accepted(8), _accepted(9, days_ago=1), _accepted(19, days_ago=3, accepted=False)])
        try:
            reminders = session.reminders
            reminders.analyze_and_suggest_reminders()
            insights = reminders.get_reminder_insights()

            assert insights.total_reminders == 3
            assert insights.acceptance_rate == pytest.approx(2 / 3)
            assert insights.effectiveness == insights.acceptance_rate
            assert insights.optimal_times == ["Morning"]
            assert insights.data_quality == pytest.approx(2 / 3)
            assert insights.confidence > 0.0
            assert insights.last_analysis == START
            assert [i.kind for i in insights.insights] == [
                "most_effective_time", "effectiveness", "data_quality",
            ]
        finally:
            session.shutdown()


class TestExportAndReset:
    def test_export_summary(self, reminders):
        assert reminders.export_summary().total_entries == 0

        reminders.record_reminder_completed(START.replace(hour=8))
        reminders.analyze_and_suggest_reminders()
        summary = reminders.export_summary()
        assert summary.total_entries == 1
        assert summary.first_entry == START
        assert summary.last_entry == START
        assert summary.privacy_mode is PrivacyMode.standard
        assert summary.analysis_count == 1
        assert summary.exported_at == START

    def test_clear_all_data(self, reminders):
        suggestion = reminders.analyze_and_suggest_reminders().suggestions[0]
        reminders.accept_suggestion(suggestion.id)
        reminders.clear_all_data()

        assert len(reminders.log) == 0
        assert reminders.pending_suggestions() == []
        assert reminders.scheduler.overall_score() == 0.5
        assert reminders.predictor.is_trained is False
        assert reminders.get_reminder_insights().last_analysis is None
