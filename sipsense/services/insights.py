"""
Insight Reporter — read-only aggregates over a Behavior Log.

All scores fall back to 0.0 when there is not enough history; nothing here
raises on empty input.

"Accuracy" is a proxy: the share of entries that count as a success (a
drink above the minimal amount, an accepted reminder). It is not a
held-out evaluation of the model.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence

from sipsense.services.behavior_log import BehaviorEntry

MIN_SUCCESS_AMOUNT = 0.1
RECENT_WINDOW = 10
ACCURACY_WINDOW = 5
MIN_ENTRIES_FOR_TREND = 20
DATA_VOLUME_SATURATION = 100

SuccessPredicate = Callable[[BehaviorEntry], bool]


def drank_enough(entry: BehaviorEntry) -> bool:
    return entry.amount > MIN_SUCCESS_AMOUNT


def was_accepted(entry: BehaviorEntry) -> bool:
    return entry.was_successful


@dataclass
class LearningInsights:
    total_data_points: int
    recent_accuracy: float
    improvement_trend: float
    confidence_level: float


def success_rate(entries: Sequence[BehaviorEntry], is_success: SuccessPredicate = drank_enough) -> float:
    if not entries:
        return 0.0
    return sum(1 for e in entries if is_success(e)) / len(entries)


def recent_accuracy(
    entries: Sequence[BehaviorEntry],
    window: int = RECENT_WINDOW,
    is_success: SuccessPredicate = drank_enough,
) -> float:
    return success_rate(list(entries)[-window:], is_success)


def improvement_trend(
    entries: Sequence[BehaviorEntry],
    is_success: SuccessPredicate = drank_enough,
) -> float:
    """Success rate of the newer half minus the older half (needs ≥ 20 entries)."""
    if len(entries) < MIN_ENTRIES_FOR_TREND:
        return 0.0
    items = list(entries)
    half = len(items) // 2
    return success_rate(items[-half:], is_success) - success_rate(items[:half], is_success)


def blended_confidence(data_points: int, accuracy: float) -> float:
    """Average of data volume (saturating at 100 entries) and the accuracy proxy."""
    volume = min(data_points / DATA_VOLUME_SATURATION, 1.0)
    return (volume + accuracy) / 2.0


def learning_insights(
    entries: Sequence[BehaviorEntry],
    prediction_accuracy: float,
    is_success: SuccessPredicate = drank_enough,
) -> LearningInsights:
    return LearningInsights(
        total_data_points=len(entries),
        recent_accuracy=recent_accuracy(entries, is_success=is_success),
        improvement_trend=improvement_trend(entries, is_success),
        confidence_level=blended_confidence(len(entries), prediction_accuracy),
    )
