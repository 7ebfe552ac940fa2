"""
Engine session — owns the actor, the stores and both managers for one process.

Routes never build managers themselves; they receive the session through the
`get_engine` dependency, which lazily builds it on first use and caches it on
`app.state`. Tests override `get_engine` with a session built on an
in-memory store.
"""
from __future__ import annotations

import random
import threading
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from fastapi import Request
from sqlalchemy.orm import Session

from sipsense.core.config import Settings, settings
from sipsense.core.logging_config import get_logger
from sipsense.db.base import SessionLocal
from sipsense.services.actor import SessionActor
from sipsense.services.hydration import HydrationPredictor
from sipsense.services.kv_store import KeyValueStore, SqlKeyValueStore
from sipsense.services.learning import Clock, TemperatureSource
from sipsense.services.reminder_store import SqlReminderStore
from sipsense.services.reminders import PrivacyMode, ReminderAdvisor

log = get_logger(__name__)

_build_lock = threading.Lock()


@dataclass
class EngineSession:
    actor: SessionActor
    store: KeyValueStore
    reminder_store: SqlReminderStore
    hydration: HydrationPredictor
    reminders: ReminderAdvisor

    def shutdown(self) -> None:
        self.hydration.shutdown()
        self.reminders.shutdown()
        self.actor.shutdown()
        log.info("engine_session_closed")


def zone_clock(zone: tzinfo) -> Clock:
    def now() -> datetime:
        # Naive local time: hour-of-day features and slots are wall-clock based
        return datetime.now(zone).replace(tzinfo=None)

    return now


def constant_temperature(value: float) -> TemperatureSource:
    return lambda: value


def create_engine_session(
    store: KeyValueStore,
    reminder_store: SqlReminderStore,
    *,
    clock: Clock,
    temperature: TemperatureSource,
    privacy_mode: PrivacyMode = PrivacyMode.standard,
    zone: tzinfo = timezone.utc,
    seed: Optional[int] = None,
    training_steps: int = 10,
    training_step_delay: float = 0.1,
) -> EngineSession:
    actor = SessionActor()
    rng = random.Random(seed)
    common = dict(
        actor=actor,
        store=store,
        clock=clock,
        temperature=temperature,
        zone=zone,
        rng=rng,
        training_steps=training_steps,
        training_step_delay=training_step_delay,
    )
    session = EngineSession(
        actor=actor,
        store=store,
        reminder_store=reminder_store,
        hydration=HydrationPredictor(**common),
        reminders=ReminderAdvisor(sink=reminder_store, privacy_mode=privacy_mode, **common),
    )
    log.info("engine_session_started", privacy_mode=session.reminders.privacy_mode.value)
    return session


def build_engine_session(
    session_factory: Callable[[], Session],
    settings: Settings,
) -> EngineSession:
    """Production wiring: SQL-backed stores, configured clock and temperature."""
    zone = ZoneInfo(settings.TIMEZONE)
    return create_engine_session(
        SqlKeyValueStore(session_factory),
        SqlReminderStore(session_factory),
        clock=zone_clock(zone),
        temperature=constant_temperature(settings.DEFAULT_TEMPERATURE),
        privacy_mode=PrivacyMode(settings.PRIVACY_MODE),
        zone=zone,
        seed=settings.RANDOM_SEED,
        training_steps=settings.TRAINING_PROGRESS_STEPS,
        training_step_delay=settings.TRAINING_STEP_DELAY,
    )


def get_engine(request: Request) -> EngineSession:
    state = request.app.state
    engine = getattr(state, "engine", None)
    if engine is None:
        with _build_lock:
            engine = getattr(state, "engine", None)
            if engine is None:
                engine = build_engine_session(SessionLocal, settings)
                state.engine = engine
    return engine
