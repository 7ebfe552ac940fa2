"""
Suggestion Engine — turns patterns and model output into concrete proposals.

Drink timing
------------
One candidate per hour from 06:00 to 22:00. Each runs through the drink
model; the recommended amount is the prediction clamped to [0.1, 0.5] L and
only candidates strictly above 0.1 L survive. With an untrained model the
fixed six-item default schedule is used instead.

Reminders
---------
Slots whose acceptance rate is above 0.6 map to a canonical hour. While
fewer than three times are chosen, the adaptive scheduler's best hours (or
08:00 / 12:00 / 18:00 when it has none) pad the list. Times are deduplicated
by hour and sorted chronologically.

A Suggestion lives in the manager's pending list until it is accepted or
declined; either decision becomes a new BehaviorEntry.
"""
from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, Optional, Sequence

from sipsense.services.behavior_log import BehaviorEntry, Context
from sipsense.services.patterns import (
    CANONICAL_HOURS,
    Pattern,
    good_slots,
    scheduled_hour,
)


class Priority(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


MIN_RECOMMENDED_AMOUNT = 0.1
MAX_RECOMMENDED_AMOUNT = 0.5
DAY_START_HOUR = 6
DAY_END_HOUR = 22
DEFAULT_REMINDER_HOURS = (8, 12, 18)
MIN_REMINDER_SUGGESTIONS = 3

_DEFAULT_SCHEDULE = (
    (8, 0.3, "Morning hydration"),
    (10, 0.25, "Mid-morning break"),
    (12, 0.4, "Lunch hydration"),
    (15, 0.3, "Afternoon refresh"),
    (18, 0.25, "Evening hydration"),
    (20, 0.2, "Evening wind-down"),
)

_REMINDER_MESSAGES = (
    "Time to hydrate! 💧",
    "Stay refreshed with water",
    "Hydration reminder",
    "Don't forget to drink water",
    "Water break time!",
    "Keep yourself hydrated",
    "Perfect time for hydration",
    "Stay on track with water",
)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class Prediction:
    optimal_time: datetime
    recommended_amount: float
    message: str
    priority: Priority
    confidence: float
    personalized: bool          # False while the model still has its initial weights


@dataclass
class ScheduleItem:
    time: datetime
    amount: float
    message: str
    priority: Priority


@dataclass
class Suggestion:
    time: datetime
    message: str
    confidence: float
    reason: str
    priority: Priority = Priority.medium
    adaptive_score: float = 0.5
    data_points: int = 0
    acceptance_probability: Optional[float] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def confidence_level(self) -> str:
        if self.confidence >= 0.8:
            return "High"
        if self.confidence >= 0.6:
            return "Good"
        if self.confidence >= 0.4:
            return "Moderate"
        return "Low"


# ---------------------------------------------------------------------------
# Adaptive scheduler
# ---------------------------------------------------------------------------

class AdaptiveScheduler:
    """Per-hour score nudged up on every accepted suggestion and down on every decline."""

    NEUTRAL = 0.5
    STEP = 0.1

    def __init__(self) -> None:
        self._scores: dict[int, float] = {}

    def record_accepted(self, hour: int) -> None:
        self._scores[hour] = self._scores.get(hour, self.NEUTRAL) + self.STEP

    def record_declined(self, hour: int) -> None:
        self._scores[hour] = self._scores.get(hour, self.NEUTRAL) - self.STEP

    def suggested_hours(self, limit: int = 5) -> list[int]:
        ranked = sorted(self._scores.items(), key=lambda kv: kv[1], reverse=True)
        return [hour for hour, _ in ranked[:limit]]

    def score_for(self, hour: int) -> float:
        return self._scores.get(hour, self.NEUTRAL)

    def overall_score(self) -> float:
        if not self._scores:
            return self.NEUTRAL
        return sum(self._scores.values()) / len(self._scores)

    def reset(self) -> None:
        self._scores.clear()


# ---------------------------------------------------------------------------
# Drink timing
# ---------------------------------------------------------------------------

def clamp_amount(value: float) -> float:
    return max(MIN_RECOMMENDED_AMOUNT, min(MAX_RECOMMENDED_AMOUNT, value))


def drink_message(amount: float) -> str:
    if amount > 0.4:
        return "Time for a big drink! 💧"
    if amount > 0.2:
        return "Stay hydrated with water"
    return "Quick hydration reminder"


def drink_priority(amount: float) -> Priority:
    if amount > 0.4:
        return Priority.critical
    if amount > 0.25:
        return Priority.high
    if amount > 0.15:
        return Priority.medium
    return Priority.low


def at_hour(day: datetime, hour: int) -> datetime:
    return day.replace(hour=hour, minute=0, second=0, microsecond=0)


def default_schedule(day: datetime) -> list[ScheduleItem]:
    return [
        ScheduleItem(
            time=at_hour(day, hour),
            amount=amount,
            message=message,
            priority=Priority.medium,
        )
        for hour, amount, message in _DEFAULT_SCHEDULE
    ]


def drink_schedule(
    day: datetime,
    context_for_hour: Callable[[int], Context],
    predict: Callable[[Context], tuple[float, float]],
) -> list[ScheduleItem]:
    """`predict(context)` returns (raw prediction, confidence)."""
    items = []
    for hour in range(DAY_START_HOUR, DAY_END_HOUR + 1):
        value, _ = predict(context_for_hour(hour))
        amount = clamp_amount(value)
        if amount <= MIN_RECOMMENDED_AMOUNT:
            continue
        items.append(ScheduleItem(
            time=at_hour(day, hour),
            amount=amount,
            message=drink_message(amount),
            priority=drink_priority(amount),
        ))
    return items


# ---------------------------------------------------------------------------
# Reminders
# ---------------------------------------------------------------------------

def reminder_hours(patterns: Sequence[Pattern], scheduler: AdaptiveScheduler) -> list[int]:
    hours: list[int] = []
    for pattern in good_slots(patterns):
        hour = CANONICAL_HOURS.get(pattern.time_slot, 12)
        if hour not in hours:
            hours.append(hour)

    if len(hours) < MIN_REMINDER_SUGGESTIONS:
        padding = scheduler.suggested_hours() or list(DEFAULT_REMINDER_HOURS)
        for hour in padding:
            if hour not in hours:
                hours.append(hour)
    return sorted(hours)


def _at_hour_history(entries: Iterable[BehaviorEntry], hour: int) -> list[BehaviorEntry]:
    return [e for e in entries if scheduled_hour(e) == hour]


def time_confidence(entries: Sequence[BehaviorEntry], hour: int) -> float:
    """0.4 acceptance + 0.4 mean recorded confidence + 0.2 data volume; 0.5 without history."""
    relevant = _at_hour_history(entries, hour)
    if not relevant:
        return 0.5
    n = len(relevant)
    acceptance = sum(1 for e in relevant if e.was_successful) / n
    recorded = [e.confidence for e in relevant if e.confidence is not None]
    avg_conf = sum(recorded) / len(recorded) if recorded else acceptance
    volume = min(1.0, n / 10.0)
    return acceptance * 0.4 + avg_conf * 0.4 + volume * 0.2


def reminder_reason(hour: int, confidence: float) -> str:
    if 6 <= hour < 12:
        base = "Based on your morning hydration patterns"
    elif 12 <= hour < 17:
        base = "Optimal time for afternoon hydration"
    elif 17 <= hour < 21:
        base = "Evening hydration to meet daily goals"
    else:
        base = "Based on your drinking preferences"

    if confidence > 0.8:
        level = "high confidence"
    elif confidence > 0.6:
        level = "good confidence"
    else:
        level = "moderate confidence"
    return f"{base} ({level})"


def reminder_suggestions(
    day: datetime,
    hours: Sequence[int],
    entries: Sequence[BehaviorEntry],
    scheduler: AdaptiveScheduler,
    acceptance_for_hour: Optional[Callable[[int], float]] = None,
) -> list[Suggestion]:
    suggestions = []
    for index, hour in enumerate(hours):
        confidence = time_confidence(entries, hour)
        suggestions.append(Suggestion(
            time=at_hour(day, hour),
            message=_REMINDER_MESSAGES[index % len(_REMINDER_MESSAGES)],
            confidence=confidence,
            reason=reminder_reason(hour, confidence),
            priority=Priority.medium,
            adaptive_score=scheduler.score_for(hour),
            data_points=len(_at_hour_history(entries, hour)),
            acceptance_probability=(
                acceptance_for_hour(hour) if acceptance_for_hour is not None else None
            ),
        ))
    return suggestions
