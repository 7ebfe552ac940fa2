"""
Persisted reminder list — the collaborator an accepted suggestion is promoted into.

The suggestion engine calls `add_reminder()`; it never reads reminders back.
Scheduling the actual notifications is the client's job.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Protocol

from sqlalchemy.orm import Session

from sipsense.models.reminder import Reminder, ReminderSource


@dataclass
class ReminderRecord:
    id: int
    hour: int
    minute: int
    message: str
    is_enabled: bool
    is_adaptive: bool
    skip_count: int
    source: str
    created_at: Optional[datetime]


class ReminderSink(Protocol):
    def add_reminder(self, time: datetime, message: str, source: str) -> ReminderRecord: ...


def _to_record(row: Reminder) -> ReminderRecord:
    return ReminderRecord(
        id=row.id,
        hour=row.hour,
        minute=row.minute,
        message=row.message,
        is_enabled=row.is_enabled,
        is_adaptive=row.is_adaptive,
        skip_count=row.skip_count,
        source=row.source,
        created_at=row.created_at,
    )


class SqlReminderStore:
    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def add_reminder(
        self,
        time: datetime,
        message: str,
        source: str = ReminderSource.ai_suggestion.value,
    ) -> ReminderRecord:
        db = self._session_factory()
        try:
            row = Reminder(
                hour=time.hour,
                minute=time.minute,
                message=message,
                is_enabled=True,
                is_adaptive=True,
                skip_count=0,
                source=source,
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            return _to_record(row)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def list_reminders(self, enabled_only: bool = False) -> list[ReminderRecord]:
        db = self._session_factory()
        try:
            q = db.query(Reminder)
            if enabled_only:
                q = q.filter(Reminder.is_enabled == True)  # noqa
            rows = q.order_by(Reminder.hour, Reminder.minute, Reminder.id).all()
            return [_to_record(r) for r in rows]
        finally:
            db.close()
