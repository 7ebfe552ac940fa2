"""
Behavior Log — append-only history of user interactions.

Every user-facing event (a drink logged, a reminder shown and resolved)
becomes one immutable BehaviorEntry carrying the Context captured at that
moment. The log is the only writer of its entries: nothing is mutated or
removed except by `reset()` (full data reset) or `retain()` (privacy pruning).

Persistence
-----------
The log serializes itself as a JSON list and hands the bytes to an opaque
key-value store. Writes are fire-and-forget: a failing store is logged and
the in-memory list stays authoritative for the session. Stored bytes that
fail to decode are treated as an empty log.

Timestamps are naive wall-clock times in the configured zone. Timezone-aware
values are converted on the way in (append and load), so every entry stays
comparable with the session clock.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, asdict, replace
from datetime import datetime, timezone, tzinfo
from typing import Callable, Iterable, Optional

from sipsense.core.logging_config import get_logger
from sipsense.services.kv_store import KeyValueStore

log = get_logger(__name__)


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Context:
    """Situational snapshot at event time. Never recomputed retroactively."""
    hour_of_day: int                # 0–23
    weekday: int                    # 1–7, ISO (Monday = 1)
    ambient_temperature: float      # °C
    time_since_last_event: Optional[float] = None   # seconds
    events_so_far_today: int = 0
    # Drink log: average liters per entry. Reminder log: running acceptance rate.
    rolling_average_amount: float = 0.0


@dataclass(frozen=True)
class BehaviorEntry:
    timestamp: datetime
    amount: float                   # liters drunk, or 1.0 / 0.0 for accepted / skipped
    context: Context
    was_successful: bool
    scheduled_for: Optional[datetime] = None    # reminder time (reminder log only)
    confidence: Optional[float] = None
    reason: Optional[str] = None


# ---------------------------------------------------------------------------
# Wall-clock time
# ---------------------------------------------------------------------------

def wall_clock(value: datetime, zone: tzinfo) -> datetime:
    """Naive local time in `zone`; naive input is already wall-clock and is returned as is."""
    if value.tzinfo is None:
        return value
    return value.astimezone(zone).replace(tzinfo=None)


def to_wall_clock(entry: BehaviorEntry, zone: tzinfo) -> BehaviorEntry:
    scheduled = entry.scheduled_for
    if entry.timestamp.tzinfo is None and (scheduled is None or scheduled.tzinfo is None):
        return entry
    return replace(
        entry,
        timestamp=wall_clock(entry.timestamp, zone),
        scheduled_for=wall_clock(scheduled, zone) if scheduled else None,
    )


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def _entry_to_dict(entry: BehaviorEntry) -> dict:
    payload = asdict(entry)
    payload["timestamp"] = entry.timestamp.isoformat()
    payload["scheduled_for"] = (
        entry.scheduled_for.isoformat() if entry.scheduled_for else None
    )
    return payload


def _entry_from_dict(raw: dict) -> BehaviorEntry:
    scheduled = raw.get("scheduled_for")
    return BehaviorEntry(
        timestamp=datetime.fromisoformat(raw["timestamp"]),
        amount=float(raw["amount"]),
        context=Context(**raw["context"]),
        was_successful=bool(raw["was_successful"]),
        scheduled_for=datetime.fromisoformat(scheduled) if scheduled else None,
        confidence=raw.get("confidence"),
        reason=raw.get("reason"),
    )


def encode_entries(entries: Iterable[BehaviorEntry]) -> bytes:
    return json.dumps([_entry_to_dict(e) for e in entries]).encode("utf-8")


def decode_entries(data: bytes, zone: tzinfo = timezone.utc) -> list[BehaviorEntry]:
    """Raises ValueError / KeyError / TypeError on malformed input."""
    raw = json.loads(data.decode("utf-8"))
    if not isinstance(raw, list):
        raise ValueError("behavior data must be a JSON list")
    return [to_wall_clock(_entry_from_dict(item), zone) for item in raw]


# ---------------------------------------------------------------------------
# Log
# ---------------------------------------------------------------------------

class BehaviorLog:
    def __init__(self, store: KeyValueStore, key: str, zone: tzinfo = timezone.utc):
        self._store = store
        self._key = key
        self._zone = zone
        self._entries: list[BehaviorEntry] = []

    @property
    def key(self) -> str:
        return self._key

    @property
    def entries(self) -> tuple[BehaviorEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def last(self) -> Optional[BehaviorEntry]:
        return self._entries[-1] if self._entries else None

    def load(self) -> None:
        """Replace the in-memory list with what the store holds (empty on any failure)."""
        try:
            data = self._store.load(self._key)
        except Exception as exc:
            log.warning("behavior_load_failed", key=self._key, error=str(exc))
            self._entries = []
            return
        if data is None:
            self._entries = []
            return
        try:
            self._entries = decode_entries(data, self._zone)
        except (ValueError, KeyError, TypeError) as exc:
            log.warning("behavior_data_malformed", key=self._key, error=str(exc))
            self._entries = []
            return
        log.info("behavior_loaded", key=self._key, total=len(self._entries))

    def local(self, value: datetime) -> datetime:
        return wall_clock(value, self._zone)

    def append(self, entry: BehaviorEntry) -> None:
        self._entries.append(to_wall_clock(entry, self._zone))
        self.flush()

    def retain(self, keep: Callable[[BehaviorEntry], bool]) -> int:
        """Drop every entry for which `keep` is false. Returns how many were removed."""
        before = len(self._entries)
        self._entries = [e for e in self._entries if keep(e)]
        removed = before - len(self._entries)
        if removed:
            self.flush()
        return removed

    def keep_last(self, count: int) -> int:
        """Drop all but the newest `count` entries. Returns how many were removed."""
        removed = max(0, len(self._entries) - count)
        if removed:
            self._entries = self._entries[removed:]
            self.flush()
        return removed

    def reset(self) -> None:
        self._entries = []
        self.flush()

    def flush(self) -> None:
        try:
            self._store.save(self._key, encode_entries(self._entries))
        except Exception as exc:
            log.error("behavior_save_failed", key=self._key, error=str(exc))
