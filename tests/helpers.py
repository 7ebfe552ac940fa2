"""
Test helpers shared by the suites: test database, fixed clock, entry factory.
"""
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from sipsense.services.behavior_log import BehaviorEntry, Context
from sipsense.services.reminder_store import SqlReminderStore
from sipsense.services.session import create_engine_session

SQLITE_URL = "sqlite:///./test_sipsense.db"

engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Monday 2026-03-02, 09:00
START = datetime(2026, 3, 2, 9, 0)


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def make_entry(
    when: datetime,
    amount: float = 0.3,
    was_successful: bool = True,
    scheduled_for: Optional[datetime] = None,
    confidence: Optional[float] = None,
    temperature: float = 22.0,
) -> BehaviorEntry:
    return BehaviorEntry(
        timestamp=when,
        amount=amount,
        context=Context(
            hour_of_day=when.hour,
            weekday=when.isoweekday(),
            ambient_temperature=temperature,
        ),
        was_successful=was_successful,
        scheduled_for=scheduled_for,
        confidence=confidence,
    )


def build_session(kv, clock, temperature: float = 22.0, seed: int = 42, zone: tzinfo = timezone.utc):
    return create_engine_session(
        kv,
        SqlReminderStore(TestingSessionLocal),
        clock=clock,
        temperature=lambda: temperature,
        zone=zone,
        seed=seed,
        training_steps=2,
        training_step_delay=0.0,
    )
