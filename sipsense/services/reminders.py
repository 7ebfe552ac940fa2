"""
Reminder advisor — reminder-acceptance model, pending suggestions and the
accept / decline feedback loop.

Public API (all run on the session actor)
-----------------------------------------
analyze_and_suggest_reminders()     regenerate the pending suggestion list
pending_suggestions()               current pending list
accept_suggestion(id)               promote to a persisted reminder, record a success
dismiss_suggestion(id)              record a decline
record_reminder_completed(time)     outcome of a delivered reminder
record_reminder_skipped(time)       outcome of a delivered reminder
get_reminder_insights()             ReminderInsights
update_privacy_mode(mode)           switch mode, pruning the log where required
export_summary()                    ExportSummary (no raw entries)
training_status()                   TrainingStatus of the background trainer
clear_all_data()                    wipe log, model, suggestions and adaptive scores

Privacy modes
-------------
  standard   retrain from 5 entries
  enhanced   retrain from 10; switching to it drops entries older than 30 days
  strict     retrain from 15 with half the epochs; switching to it keeps the
             last 50 entries; reasons of new entries are replaced
"""
from __future__ import annotations

import enum
import random
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional

from sipsense.core.errors import ReminderStoreError, SuggestionNotFoundError
from sipsense.core.logging_config import get_logger
from sipsense.services.actor import SessionActor, serialized
from sipsense.services.behavior_log import BehaviorEntry, Context
from sipsense.services.features import REMINDER_FEATURE_COUNT, extract_reminder_features
from sipsense.services.insights import ACCURACY_WINDOW, success_rate, was_accepted
from sipsense.services.kv_store import KeyValueStore
from sipsense.services.learning import Clock, LearningManager, TemperatureSource, TrainingStatus
from sipsense.services.patterns import Pattern, analyze, scheduled_hour
from sipsense.services.reminder_store import ReminderRecord, ReminderSink
from sipsense.services.suggestions import (
    AdaptiveScheduler,
    Suggestion,
    reminder_hours,
    reminder_suggestions,
)

log = get_logger(__name__)

BEHAVIOR_KEY = "reminders.behavior"
MODEL_KEY = "reminders.model"
PRIVACY_KEY = "reminders.privacy_mode"
EPOCHS = 50

ENHANCED_RETENTION_DAYS = 30
STRICT_RETAINED_ENTRIES = 50
STRICT_REASON = "Data collected in strict privacy mode"

OPTIMAL_ACCEPTANCE = 0.7
OPTIMAL_CONFIDENCE = 0.6
MOST_EFFECTIVE_ACCEPTANCE = 0.8
MOST_EFFECTIVE_CONFIDENCE = 0.7
CONFIDENCE_DATA_SATURATION = 50


class PrivacyMode(str, enum.Enum):
    standard = "standard"
    enhanced = "enhanced"
    strict = "strict"

    @property
    def description(self) -> str:
        return _PRIVACY_DESCRIPTIONS[self]

    @property
    def min_data_points(self) -> int:
        return _MIN_DATA_POINTS[self]


_PRIVACY_DESCRIPTIONS = {
    PrivacyMode.standard: "Basic pattern analysis with local storage",
    PrivacyMode.enhanced: "Advanced analysis with anonymized data",
    PrivacyMode.strict: "Minimal data collection, maximum privacy",
}

_MIN_DATA_POINTS = {
    PrivacyMode.standard: 5,
    PrivacyMode.enhanced: 10,
    PrivacyMode.strict: 15,
}


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class ReminderInsight:
    kind: str                   # "most_effective_time" | "effectiveness" | "data_quality"
    title: str
    description: str
    confidence: float
    data_points: int
    recommendation: str


@dataclass
class ReminderInsights:
    total_reminders: int
    acceptance_rate: float
    optimal_times: list[str]
    effectiveness: float
    insights: list[ReminderInsight]
    confidence: float
    privacy_mode: PrivacyMode
    last_analysis: Optional[datetime]
    data_quality: float
    adaptive_score: float


@dataclass
class ExportSummary:
    total_entries: int
    first_entry: Optional[datetime]
    last_entry: Optional[datetime]
    privacy_mode: PrivacyMode
    analysis_count: int
    exported_at: datetime


@dataclass
class AnalysisResult:
    suggestions: list[Suggestion]
    patterns: list[Pattern] = field(default_factory=list)
    confidence: float = 0.0
    analyzed_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Heuristics for delivered reminders
# ---------------------------------------------------------------------------

def contextual_confidence(context: Context) -> float:
    confidence = 0.5
    hour = context.hour_of_day
    if 8 <= hour <= 10 or 12 <= hour <= 14 or 18 <= hour <= 20:
        confidence += 0.2
    if context.ambient_temperature > 25:
        confidence += 0.1
    return min(1.0, confidence)


def skip_reason(reminder_time: datetime, context: Context) -> str:
    hour = reminder_time.hour
    if hour < 8:
        return "Early morning reminder skipped"
    if hour > 22:
        return "Late night reminder skipped"
    if context.ambient_temperature < 15:
        return "Cold weather reminder skipped"
    return "Reminder skipped by user"


def completion_reason(reminder_time: datetime, context: Context) -> str:
    if context.ambient_temperature > 25:
        return "Hot weather hydration completed"
    if reminder_time.hour == 8:
        return "Morning hydration routine completed"
    return "Regular hydration reminder completed"


def overall_confidence(
    patterns: list[Pattern],
    suggestions: list[Suggestion],
    data_points: int,
) -> float:
    if not patterns or not suggestions:
        return 0.0
    pattern_conf = sum(p.confidence for p in patterns) / len(patterns)
    suggestion_conf = sum(s.confidence for s in suggestions) / len(suggestions)
    volume = min(1.0, data_points / CONFIDENCE_DATA_SATURATION)
    return pattern_conf * 0.4 + suggestion_conf * 0.4 + volume * 0.2


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------

class ReminderAdvisor(LearningManager):
    name = "reminders"

    def __init__(
        self,
        *,
        actor: SessionActor,
        store: KeyValueStore,
        sink: ReminderSink,
        clock: Clock,
        temperature: TemperatureSource,
        privacy_mode: PrivacyMode = PrivacyMode.standard,
        zone: tzinfo = timezone.utc,
        rng: Optional[random.Random] = None,
        training_steps: int = 10,
        training_step_delay: float = 0.1,
    ):
        self._sink = sink
        self.privacy_mode = PrivacyMode(privacy_mode)
        self.suggested_reminders: list[Suggestion] = []
        self.scheduler = AdaptiveScheduler()
        self.last_analysis: Optional[AnalysisResult] = None
        self.analysis_count = 0
        super().__init__(
            actor=actor,
            store=store,
            behavior_key=BEHAVIOR_KEY,
            model_key=MODEL_KEY,
            arity=REMINDER_FEATURE_COUNT,
            epochs=EPOCHS,
            extract=extract_reminder_features,
            clock=clock,
            temperature=temperature,
            zone=zone,
            rng=rng,
            training_steps=training_steps,
            training_step_delay=training_step_delay,
        )

    # -- LearningManager hooks -----------------------------------------------

    @property
    def min_training_entries(self) -> int:
        return self.privacy_mode.min_data_points

    def _training_epochs(self) -> Optional[int]:
        if self.privacy_mode is PrivacyMode.strict:
            return max(1, EPOCHS // 2)
        return None

    def _target(self, entry: BehaviorEntry) -> float:
        return 1.0 if entry.was_successful else 0.0

    def _rolling_average(self) -> float:
        return success_rate(self.log.entries, was_accepted)

    def _load(self) -> None:
        super()._load()
        self._load_privacy_mode()

    # -- persistence ---------------------------------------------------------

    def _load_privacy_mode(self) -> None:
        try:
            data = self._store.load(PRIVACY_KEY)
        except Exception as exc:
            log.warning("privacy_mode_load_failed", key=PRIVACY_KEY, error=str(exc))
            return
        if data is None:
            return
        try:
            self.privacy_mode = PrivacyMode(data.decode("utf-8"))
        except (ValueError, UnicodeDecodeError) as exc:
            log.warning("privacy_mode_discarded", key=PRIVACY_KEY, error=str(exc))

    def _flush_privacy_mode(self) -> None:
        try:
            self._store.save(PRIVACY_KEY, self.privacy_mode.value.encode("utf-8"))
        except Exception as exc:
            log.error("privacy_mode_save_failed", key=PRIVACY_KEY, error=str(exc))

    # -- internals -----------------------------------------------------------

    def _record(self, entry: BehaviorEntry) -> bool:
        if self.privacy_mode is PrivacyMode.strict:
            entry = replace(entry, reason=STRICT_REASON)
        self.log.append(entry)
        log.info(
            "reminder_outcome_recorded",
            accepted=entry.was_successful,
            total=len(self.log),
            privacy_mode=self.privacy_mode.value,
        )
        return self._retrain_if_ready()

    def _find_suggestion(self, suggestion_id: str) -> Suggestion:
        for suggestion in self.suggested_reminders:
            if suggestion.id == suggestion_id:
                return suggestion
        raise SuggestionNotFoundError(suggestion_id)

    def _pop_suggestion(self, suggestion_id: str) -> Suggestion:
        suggestion = self._find_suggestion(suggestion_id)
        self.suggested_reminders.remove(suggestion)
        return suggestion

    def _decision_entry(self, suggestion: Suggestion, accepted: bool, reason: str) -> BehaviorEntry:
        now = self._now()
        return BehaviorEntry(
            timestamp=now,
            amount=1.0 if accepted else 0.0,
            context=self._current_context(now),
            was_successful=accepted,
            scheduled_for=suggestion.time,
            confidence=suggestion.confidence,
            reason=reason,
        )

    def _acceptance_for_hour(self, hour: int) -> float:
        context = replace(self._current_context(), hour_of_day=hour)
        return self.predictor.predict(extract_reminder_features(context))

    def _patterns(self) -> list[Pattern]:
        return analyze(self.log.entries, scheduled_hour)

    def _data_quality(self) -> float:
        entries = self.log.entries
        if not entries:
            return 0.0
        since = self._since_start_of(1)
        recent = sum(1 for e in entries if e.timestamp >= since)
        return min(1.0, recent / len(entries))

    def _insights(self, patterns: list[Pattern], effectiveness: float, quality: float) -> list[ReminderInsight]:
        total = len(self.log)
        insights = []
        best = next(
            (p for p in patterns
             if p.acceptance_rate > MOST_EFFECTIVE_ACCEPTANCE
             and p.confidence > MOST_EFFECTIVE_CONFIDENCE),
            None,
        )
        if best is not None:
            insights.append(ReminderInsight(
                kind="most_effective_time",
                title="Most Effective Time",
                description=(
                    f"You're most responsive in the {best.time_slot.lower()} "
                    f"with {int(best.acceptance_rate * 100)}% acceptance"
                ),
                confidence=best.confidence,
                data_points=best.data_points,
                recommendation="Consider setting more reminders during this time",
            ))
        insights.append(ReminderInsight(
            kind="effectiveness",
            title="Reminder Effectiveness",
            description=f"Your overall reminder acceptance rate is {int(effectiveness * 100)}%",
            confidence=effectiveness,
            data_points=total,
            recommendation=(
                "Excellent! Keep up the good work"
                if effectiveness > 0.7
                else "Consider adjusting reminder times"
            ),
        ))
        insights.append(ReminderInsight(
            kind="data_quality",
            title="Data Quality",
            description=f"Your recent activity data quality is {int(quality * 100)}%",
            confidence=quality,
            data_points=total,
            recommendation=(
                "Good data quality for accurate predictions"
                if quality > 0.5
                else "More recent data needed for better predictions"
            ),
        ))
        return insights

    # -- public --------------------------------------------------------------

    @serialized
    def analyze_and_suggest_reminders(self) -> AnalysisResult:
        """Replace the pending list with fresh suggestions for today."""
        now = self._now()
        patterns = self._patterns()
        hours = reminder_hours(patterns, self.scheduler)
        suggestions = reminder_suggestions(
            now,
            hours,
            self.log.entries,
            self.scheduler,
            self._acceptance_for_hour if self.predictor.is_trained else None,
        )
        self.suggested_reminders = suggestions
        self.analysis_count += 1
        self.last_analysis = AnalysisResult(
            suggestions=list(suggestions),
            patterns=patterns,
            confidence=overall_confidence(patterns, suggestions, len(self.log)),
            analyzed_at=now,
        )
        log.info(
            "suggestions_generated",
            count=len(suggestions),
            hours=hours,
            confidence=round(self.last_analysis.confidence, 3),
        )
        return self.last_analysis

    @serialized
    def pending_suggestions(self) -> list[Suggestion]:
        return list(self.suggested_reminders)

    @serialized
    def accept_suggestion(self, suggestion_id: str) -> ReminderRecord:
        """Promote the suggestion into the reminder list and learn from the acceptance."""
        suggestion = self._find_suggestion(suggestion_id)
        try:
            record = self._sink.add_reminder(suggestion.time, suggestion.message, "ai_suggestion")
        except Exception as exc:
            log.error("reminder_save_failed", suggestion_id=suggestion_id, error=str(exc))
            raise ReminderStoreError(suggestion_id) from exc
        self._pop_suggestion(suggestion_id)
        self._record(self._decision_entry(suggestion, True, "User accepted AI suggestion"))
        self.scheduler.record_accepted(suggestion.time.hour)
        log.info("suggestion_accepted", suggestion_id=suggestion_id, hour=suggestion.time.hour)
        return record

    @serialized
    def dismiss_suggestion(self, suggestion_id: str) -> None:
        suggestion = self._pop_suggestion(suggestion_id)
        self._record(self._decision_entry(suggestion, False, "User dismissed AI suggestion"))
        self.scheduler.record_declined(suggestion.time.hour)
        log.info("suggestion_dismissed", suggestion_id=suggestion_id, hour=suggestion.time.hour)

    @serialized
    def record_reminder_completed(self, reminder_time: datetime) -> BehaviorEntry:
        reminder_time = self.log.local(reminder_time)
        now = self._now()
        context = self._current_context(now)
        entry = BehaviorEntry(
            timestamp=now,
            amount=1.0,
            context=context,
            was_successful=True,
            scheduled_for=reminder_time,
            confidence=contextual_confidence(context),
            reason=completion_reason(reminder_time, context),
        )
        self._record(entry)
        return self.log.last

    @serialized
    def record_reminder_skipped(self, reminder_time: datetime) -> BehaviorEntry:
        reminder_time = self.log.local(reminder_time)
        now = self._now()
        context = self._current_context(now)
        entry = BehaviorEntry(
            timestamp=now,
            amount=0.0,
            context=context,
            was_successful=False,
            scheduled_for=reminder_time,
            confidence=contextual_confidence(context),
            reason=skip_reason(reminder_time, context),
        )
        self._record(entry)
        return self.log.last

    @serialized
    def get_reminder_insights(self) -> ReminderInsights:
        patterns = self._patterns()
        acceptance = success_rate(self.log.entries, was_accepted)
        quality = self._data_quality()
        return ReminderInsights(
            total_reminders=len(self.log),
            acceptance_rate=acceptance,
            optimal_times=[
                p.time_slot for p in patterns
                if p.acceptance_rate > OPTIMAL_ACCEPTANCE and p.confidence > OPTIMAL_CONFIDENCE
            ],
            effectiveness=acceptance,
            insights=self._insights(patterns, acceptance, quality),
            confidence=overall_confidence(patterns, self.suggested_reminders, len(self.log)),
            privacy_mode=self.privacy_mode,
            last_analysis=self.last_analysis.analyzed_at if self.last_analysis else None,
            data_quality=quality,
            adaptive_score=self.scheduler.overall_score(),
        )

    @serialized
    def update_privacy_mode(self, mode: PrivacyMode) -> int:
        """Switch mode and prune the log. Returns how many entries were dropped."""
        self.privacy_mode = PrivacyMode(mode)
        self._flush_privacy_mode()

        removed = 0
        if self.privacy_mode is PrivacyMode.enhanced:
            cutoff = self._now() - timedelta(days=ENHANCED_RETENTION_DAYS)
            removed = self.log.retain(lambda e: e.timestamp > cutoff)
        elif self.privacy_mode is PrivacyMode.strict:
            removed = self.log.keep_last(STRICT_RETAINED_ENTRIES)
        log.info("privacy_mode_updated", mode=self.privacy_mode.value, removed=removed)
        return removed

    @serialized
    def export_summary(self) -> ExportSummary:
        entries = self.log.entries
        return ExportSummary(
            total_entries=len(entries),
            first_entry=entries[0].timestamp if entries else None,
            last_entry=entries[-1].timestamp if entries else None,
            privacy_mode=self.privacy_mode,
            analysis_count=self.analysis_count,
            exported_at=self._now(),
        )

    @serialized
    def training_status(self) -> TrainingStatus:
        return TrainingStatus(
            is_training=self.trainer.is_training,
            progress=self.trainer.progress,
            is_trained=self.predictor.is_trained,
            completed_runs=self.trainer.completed_runs,
            prediction_accuracy=success_rate(self.log.entries[-ACCURACY_WINDOW:], was_accepted),
        )

    @serialized
    def clear_all_data(self) -> None:
        self.log.reset()
        self._reset_model()
        self.scheduler.reset()
        self.suggested_reminders = []
        self.last_analysis = None
        log.info("behavior_reset", log=self.name)
