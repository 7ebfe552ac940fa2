"""
Feature extraction — Context → fixed-length normalized vector.

Both model families share the first six features; the drink model adds
time-since-last-event. Every feature lands roughly in [0, 1]:

  idx  feature                     normalization
  ---  --------------------------  ------------------------------------
  0    hour_of_day                 / 24
  1    weekday                     / 7
  2    ambient_temperature         / 50
  3    prior event present         0.0 | 1.0
  4    events_so_far_today         / 10
  5    rolling_average_amount      as-is (already a fraction)
  6    time_since_last_event       min(hours, 24) / 24   (drink model only)

The constants are part of the trained weights' meaning. Bump
FEATURE_VERSION whenever one of them changes so persisted weights are
discarded instead of being applied to differently scaled inputs.
"""
from __future__ import annotations

from sipsense.services.behavior_log import Context

FEATURE_VERSION = 1

REMINDER_FEATURE_COUNT = 6
DRINK_FEATURE_COUNT = 7

_HOURS_PER_DAY = 24.0
_DAYS_PER_WEEK = 7.0
_TEMPERATURE_SCALE = 50.0
_EVENTS_SCALE = 10.0
_SECONDS_PER_HOUR = 3600.0


def _base_features(context: Context) -> list[float]:
    return [
        context.hour_of_day / _HOURS_PER_DAY,
        context.weekday / _DAYS_PER_WEEK,
        context.ambient_temperature / _TEMPERATURE_SCALE,
        1.0 if context.time_since_last_event is not None else 0.0,
        context.events_so_far_today / _EVENTS_SCALE,
        context.rolling_average_amount,
    ]


def _time_since_last(context: Context) -> float:
    if context.time_since_last_event is None:
        return 0.0
    hours = max(context.time_since_last_event, 0.0) / _SECONDS_PER_HOUR
    return min(hours, _HOURS_PER_DAY) / _HOURS_PER_DAY


def extract_reminder_features(context: Context) -> tuple[float, ...]:
    return tuple(_base_features(context))


def extract_drink_features(context: Context) -> tuple[float, ...]:
    return tuple(_base_features(context) + [_time_since_last(context)])
