"""
Tests for the pattern analyzer.

Covered:
  - slot boundaries
  - 50% morning / 50% evening → exactly two patterns of frequency 0.5
  - frequencies sum to 1.0
  - stable ordering of tied slots (first appearance wins)
  - insights and recommendations (gaps, low-amount slot)
"""
from datetime import timedelta

import pytest

from sipsense.services.patterns import (
    TimeSlot,
    analyze,
    analyze_with_insights,
    consistency,
    find_gaps,
    scheduled_hour,
    slot_for_hour,
)

from helpers import START, make_entry


def _at(hour: int, day_offset: int = 0):
    return START.replace(hour=hour) + timedelta(days=day_offset)


class TestSlots:
    @pytest.mark.parametrize("hour, slot", [
        (0, TimeSlot.NIGHT),
        (5, TimeSlot.NIGHT),
        (6, TimeSlot.MORNING),
        (11, TimeSlot.MORNING),
        (12, TimeSlot.AFTERNOON),
        (16, TimeSlot.AFTERNOON),
        (17, TimeSlot.EVENING),
        (20, TimeSlot.EVENING),
        (21, TimeSlot.NIGHT),
        (23, TimeSlot.NIGHT),
    ])
    def test_slot_for_hour(self, hour, slot):
        assert slot_for_hour(hour) == slot

    def test_scheduled_hour_prefers_reminder_time(self):
        entry = make_entry(_at(9), scheduled_for=_at(18))
        assert scheduled_hour(entry) == 18
        assert scheduled_hour(make_entry(_at(9))) == 9


class TestAnalyze:
    def test_empty_log(self):
        assert analyze([]) == []

    def test_half_morning_half_evening(self):
        entries = [make_entry(_at(8)), make_entry(_at(18)), make_entry(_at(9)), make_entry(_at(19))]
        patterns = analyze(entries)
        assert len(patterns) == 2
        assert [p.frequency for p in patterns] == [0.5, 0.5]
        # tie → first-appearance order
        assert [p.time_slot for p in patterns] == [TimeSlot.MORNING, TimeSlot.EVENING]

    def test_frequencies_sum_to_one(self):
        hours = [7, 8, 13, 13, 13, 18, 22, 2, 10]
        patterns = analyze([make_entry(_at(h)) for h in hours])
        assert sum(p.frequency for p in patterns) == pytest.approx(1.0)

    def test_sorted_by_frequency(self):
        hours = [8, 13, 13, 13, 18, 18]
        patterns = analyze([make_entry(_at(h)) for h in hours])
        assert [p.time_slot for p in patterns] == [
            TimeSlot.AFTERNOON, TimeSlot.EVENING, TimeSlot.MORNING,
        ]

    def test_aggregates(self):
        entries = [
            make_entry(_at(8), amount=0.2, was_successful=True, confidence=0.6),
            make_entry(_at(9, 1), amount=0.4, was_successful=False, confidence=0.8),
        ]
        (morning,) = analyze(entries)
        assert morning.average_amount == pytest.approx(0.3)
        assert morning.acceptance_rate == 0.5
        assert morning.confidence == pytest.approx(0.7)
        assert morning.data_points == 2
        assert morning.last_activity == _at(9, 1)

    def test_confidence_defaults_to_one_without_recorded_values(self):
        (pattern,) = analyze([make_entry(_at(8))])
        assert pattern.confidence == 1.0

    def test_custom_hour_function(self):
        entries = [make_entry(_at(9), scheduled_for=_at(18))]
        (pattern,) = analyze(entries, scheduled_hour)
        assert pattern.time_slot == TimeSlot.EVENING


class TestInsights:
    def test_gaps(self):
        patterns = analyze([make_entry(_at(8)), make_entry(_at(13))])
        assert find_gaps(patterns) == [TimeSlot.EVENING, TimeSlot.NIGHT]

    def test_consistency_single_slot(self):
        assert consistency(analyze([make_entry(_at(8))])) == 1.0

    def test_analysis_with_insights(self):
        entries = [make_entry(_at(8), amount=0.1), make_entry(_at(9), amount=0.15), make_entry(_at(13), amount=0.4)]
        analysis = analyze_with_insights(entries)

        kinds = [i.kind for i in analysis.insights]
        assert kinds == ["most_active_time", "consistency"]
        assert "morning" in analysis.insights[0].description

        add = [r for r in analysis.recommendations if r.kind == "add_reminder"]
        assert {r.description for r in add} == {
            "Consider adding a reminder in the evening",
            "Consider adding a reminder in the night",
        }
        increase = [r for r in analysis.recommendations if r.kind == "increase_amount"]
        assert len(increase) == 1
        assert increase[0].priority == "high"
        assert "morning" in increase[0].description

    def test_empty_analysis_recommends_every_slot(self):
        analysis = analyze_with_insights([])
        assert analysis.patterns == []
        assert len(analysis.recommendations) == 4
        assert [i.kind for i in analysis.insights] == ["consistency"]
