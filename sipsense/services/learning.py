"""
Shared plumbing of the two learning managers (hydration + reminders).

A manager owns one Behavior Log, one Linear Predictor and one Background
Trainer, and runs all of its public operations on the session actor.
Both the log and the model parameters are loaded from the key-value store
at construction and flushed back after each mutation; a missing, stale or
malformed model payload falls back to fresh random weights.
"""
from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Callable, Optional, Sequence

from sipsense.core.logging_config import get_logger
from sipsense.services.actor import SessionActor, serialized
from sipsense.services.behavior_log import BehaviorEntry, BehaviorLog, Context
from sipsense.services.kv_store import KeyValueStore
from sipsense.services.predictor import (
    LinearModelState,
    LinearPredictor,
    TrainingExample,
    decode_state,
    encode_state,
)
from sipsense.services.trainer import BackgroundTrainer

log = get_logger(__name__)

Clock = Callable[[], datetime]
TemperatureSource = Callable[[], float]


@dataclass
class TrainingStatus:
    is_training: bool
    progress: float
    is_trained: bool
    completed_runs: int
    prediction_accuracy: float


def build_context(
    entries: Sequence[BehaviorEntry],
    now: datetime,
    temperature: float,
    rolling_average: float,
) -> Context:
    """Context for an event happening at `now`, given the history before it."""
    last = entries[-1].timestamp if entries else None
    today = now.date()
    return Context(
        hour_of_day=now.hour,
        weekday=now.isoweekday(),
        ambient_temperature=temperature,
        time_since_last_event=(now - last).total_seconds() if last is not None else None,
        events_so_far_today=sum(1 for e in entries if e.timestamp.date() == today),
        rolling_average_amount=rolling_average,
    )


class LearningManager:
    name = "learning"

    def __init__(
        self,
        *,
        actor: SessionActor,
        store: KeyValueStore,
        behavior_key: str,
        model_key: str,
        arity: int,
        epochs: int,
        extract: Callable[[Context], tuple[float, ...]],
        clock: Clock,
        temperature: TemperatureSource,
        zone: tzinfo = timezone.utc,
        rng: Optional[random.Random] = None,
        training_steps: int = 10,
        training_step_delay: float = 0.1,
    ):
        self._actor = actor
        self._store = store
        self._model_key = model_key
        self._extract = extract
        self._clock = clock
        self._temperature = temperature

        self.log = BehaviorLog(store, behavior_key, zone)
        self.predictor = LinearPredictor(arity, epochs=epochs, rng=rng)
        self.trainer = BackgroundTrainer(
            self.predictor,
            actor,
            name=self.name,
            steps=training_steps,
            step_delay=training_step_delay,
            on_complete=self._on_trained,
        )
        self._actor.call(self._load)

    # -- persistence ---------------------------------------------------------

    def _load(self) -> None:
        self.log.load()
        self._load_model()

    def _load_model(self) -> None:
        try:
            data = self._store.load(self._model_key)
        except Exception as exc:
            log.warning("model_load_failed", key=self._model_key, error=str(exc))
            return
        if data is None:
            return
        try:
            self.predictor.replace_state(decode_state(data, self.predictor.arity))
        except (ValueError, KeyError, TypeError) as exc:
            log.warning("model_data_discarded", key=self._model_key, error=str(exc))
            return
        log.info("model_loaded", key=self._model_key)

    def _flush_model(self) -> None:
        try:
            self._store.save(self._model_key, encode_state(self.predictor.state))
        except Exception as exc:
            log.error("model_save_failed", key=self._model_key, error=str(exc))

    # -- training ------------------------------------------------------------

    @property
    def min_training_entries(self) -> int:
        raise NotImplementedError

    def _training_epochs(self) -> Optional[int]:
        return None

    def _target(self, entry: BehaviorEntry) -> float:
        raise NotImplementedError

    def _examples(self) -> list[TrainingExample]:
        return [
            TrainingExample(self._extract(e.context), self._target(e))
            for e in self.log.entries
        ]

    def _retrain_if_ready(self) -> bool:
        if len(self.log) < self.min_training_entries:
            return False
        self.trainer.submit(self._examples(), epochs=self._training_epochs())
        return True

    def _on_trained(self, state: LinearModelState) -> None:
        self._flush_model()

    # -- context -------------------------------------------------------------

    def _now(self) -> datetime:
        return self._clock()

    def _rolling_average(self) -> float:
        raise NotImplementedError

    def _current_context(self, at: Optional[datetime] = None) -> Context:
        return build_context(
            self.log.entries,
            self.log.local(at) if at else self._now(),
            self._temperature(),
            self._rolling_average(),
        )

    def _since_start_of(self, days: int) -> datetime:
        now = self._now()
        return now.replace(hour=0, minute=0, second=0, microsecond=0) - timedelta(days=days)

    # -- read-only views ------------------------------------------------------

    @serialized
    def entry_count(self) -> int:
        return len(self.log)

    @serialized
    def is_trained(self) -> bool:
        return self.predictor.is_trained

    # -- lifecycle -----------------------------------------------------------

    def _reset_model(self) -> None:
        self.trainer.cancel()
        self.predictor.reset()
        self._flush_model()

    def wait_for_training(self, timeout: Optional[float] = None) -> Optional[LinearModelState]:
        return self.trainer.wait(timeout)

    def shutdown(self) -> None:
        self.trainer.shutdown()
