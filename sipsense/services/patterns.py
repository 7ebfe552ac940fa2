"""
Pattern Analyzer — per-time-slot aggregates over a Behavior Log.

Time slots (by hour of day)
---------------------------
  Morning    [6, 12)
  Afternoon  [12, 17)
  Evening    [17, 21)
  Night      everything else

analyze() groups entries by slot in first-appearance order and returns one
Pattern per slot present, sorted by frequency descending. The sort is
stable, so tied slots keep their first-appearance order. Frequencies of the
returned patterns sum to 1.0 for any non-empty input.

analyze_with_insights() wraps the patterns with the human-readable insights
and recommendations shown on the statistics screen.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional, Sequence

from sipsense.services.behavior_log import BehaviorEntry


# ---------------------------------------------------------------------------
# Time slots
# ---------------------------------------------------------------------------

class TimeSlot:
    MORNING   = "Morning"
    AFTERNOON = "Afternoon"
    EVENING   = "Evening"
    NIGHT     = "Night"

    ALL = (MORNING, AFTERNOON, EVENING, NIGHT)


# Hour a reminder is placed at when a slot is chosen for a suggestion.
CANONICAL_HOURS: dict[str, int] = {
    TimeSlot.MORNING: 8,
    TimeSlot.AFTERNOON: 15,
    TimeSlot.EVENING: 18,
    TimeSlot.NIGHT: 20,
}

# Reminder slots above this acceptance rate receive new suggestions;
# slots below it do not.
ACCEPTANCE_THRESHOLD = 0.6
# A good slot must also be backed by entries recorded above this confidence.
GOOD_SLOT_CONFIDENCE = 0.5
LOW_AMOUNT_THRESHOLD = 0.2


def slot_for_hour(hour: int) -> str:
    if 6 <= hour < 12:
        return TimeSlot.MORNING
    if 12 <= hour < 17:
        return TimeSlot.AFTERNOON
    if 17 <= hour < 21:
        return TimeSlot.EVENING
    return TimeSlot.NIGHT


def event_hour(entry: BehaviorEntry) -> int:
    """Hour of the event itself (drink log)."""
    return entry.timestamp.hour


def scheduled_hour(entry: BehaviorEntry) -> int:
    """Hour of the reminder the outcome refers to, falling back to the event time."""
    return (entry.scheduled_for or entry.timestamp).hour


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class Pattern:
    time_slot: str
    frequency: float            # share of all entries falling in this slot
    average_amount: float
    acceptance_rate: float      # share of the slot's entries that succeeded
    confidence: float           # mean entry confidence (1.0 when entries carry none)
    data_points: int
    last_activity: Optional[datetime]


@dataclass
class Insight:
    kind: str                   # "most_active_time" | "consistency"
    title: str
    description: str
    confidence: float


@dataclass
class Recommendation:
    kind: str                   # "add_reminder" | "increase_amount"
    title: str
    description: str
    priority: str


@dataclass
class PatternAnalysis:
    patterns: list[Pattern]
    insights: list[Insight] = field(default_factory=list)
    recommendations: list[Recommendation] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Core
# ---------------------------------------------------------------------------

def analyze(
    entries: Sequence[BehaviorEntry],
    hour_of: Callable[[BehaviorEntry], int] = event_hour,
) -> list[Pattern]:
    if not entries:
        return []

    groups: dict[str, list[BehaviorEntry]] = {}
    for entry in entries:
        groups.setdefault(slot_for_hour(hour_of(entry)), []).append(entry)

    total = len(entries)
    patterns = []
    for slot, members in groups.items():
        n = len(members)
        confidences = [e.confidence for e in members if e.confidence is not None]
        patterns.append(Pattern(
            time_slot=slot,
            frequency=n / total,
            average_amount=sum(e.amount for e in members) / n,
            acceptance_rate=sum(1 for e in members if e.was_successful) / n,
            confidence=sum(confidences) / len(confidences) if confidences else 1.0,
            data_points=n,
            last_activity=max(e.timestamp for e in members),
        ))
    # sorted() is stable: ties keep first-appearance order
    return sorted(patterns, key=lambda p: p.frequency, reverse=True)


def find_gaps(patterns: Sequence[Pattern]) -> list[str]:
    present = {p.time_slot for p in patterns}
    return [slot for slot in TimeSlot.ALL if slot not in present]


def good_slots(
    patterns: Sequence[Pattern],
    threshold: float = ACCEPTANCE_THRESHOLD,
    min_confidence: float = GOOD_SLOT_CONFIDENCE,
) -> list[Pattern]:
    return [p for p in patterns if p.acceptance_rate > threshold and p.confidence > min_confidence]


def weak_slots(patterns: Sequence[Pattern], threshold: float = ACCEPTANCE_THRESHOLD) -> list[Pattern]:
    return [p for p in patterns if p.acceptance_rate < threshold]


def consistency(patterns: Sequence[Pattern]) -> float:
    """1 - std-dev of slot frequencies; 1.0 with a single slot or none."""
    if len(patterns) <= 1:
        return 1.0
    freqs = [p.frequency for p in patterns]
    mean = sum(freqs) / len(freqs)
    variance = sum((f - mean) ** 2 for f in freqs) / len(freqs)
    return max(0.0, 1.0 - math.sqrt(variance))


# ---------------------------------------------------------------------------
# Insights and recommendations
# ---------------------------------------------------------------------------

def _insights(patterns: Sequence[Pattern]) -> list[Insight]:
    insights = []
    if patterns:
        top = patterns[0]
        insights.append(Insight(
            kind="most_active_time",
            title="Peak Hydration Time",
            description=(
                f"You're most active in the {top.time_slot.lower()} "
                f"with {int(top.frequency * 100)}% of your drinks"
            ),
            confidence=top.frequency,
        ))
    score = consistency(patterns)
    insights.append(Insight(
        kind="consistency",
        title="Drinking Consistency",
        description=(
            "Your drinking pattern is "
            + ("consistent" if score > 0.7 else "inconsistent")
        ),
        confidence=score,
    ))
    return insights


def _recommendations(patterns: Sequence[Pattern]) -> list[Recommendation]:
    recs = [
        Recommendation(
            kind="add_reminder",
            title="Add Reminder",
            description=f"Consider adding a reminder in the {slot.lower()}",
            priority="medium",
        )
        for slot in find_gaps(patterns)
    ]
    low = next((p for p in patterns if p.average_amount < LOW_AMOUNT_THRESHOLD), None)
    if low is not None:
        recs.append(Recommendation(
            kind="increase_amount",
            title="Increase Amount",
            description=f"Try drinking more in the {low.time_slot.lower()}",
            priority="high",
        ))
    return recs


def analyze_with_insights(
    entries: Sequence[BehaviorEntry],
    hour_of: Callable[[BehaviorEntry], int] = event_hour,
) -> PatternAnalysis:
    patterns = analyze(entries, hour_of)
    return PatternAnalysis(
        patterns=patterns,
        insights=_insights(patterns),
        recommendations=_recommendations(patterns),
    )
