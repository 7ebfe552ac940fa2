"""
Hydration predictor — drink-timing model and its feedback loop.

Public API (all run on the session actor)
-----------------------------------------
add_behavior_data(entry)        append a drink entry; retrain from 10 entries on
record_drink(amount, ...)       same, with the context captured at event time
predict_optimal()               Prediction for the next hour
get_personalized_schedule()     model schedule, or the default one while untrained
analyze_patterns()              PatternAnalysis over the drink log
get_learning_insights()         LearningInsights
training_status()               TrainingStatus of the background trainer
clear_all_data()                wipe the log and re-initialize the model
"""
from __future__ import annotations

import random
from dataclasses import replace
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional

from sipsense.core.logging_config import get_logger
from sipsense.services.actor import SessionActor, serialized
from sipsense.services.behavior_log import BehaviorEntry, Context
from sipsense.services.features import DRINK_FEATURE_COUNT, extract_drink_features
from sipsense.services.insights import (
    ACCURACY_WINDOW,
    LearningInsights,
    drank_enough,
    learning_insights,
    recent_accuracy,
)
from sipsense.services.kv_store import KeyValueStore
from sipsense.services.learning import Clock, LearningManager, TemperatureSource, TrainingStatus
from sipsense.services.patterns import PatternAnalysis, analyze_with_insights, event_hour
from sipsense.services.predictor import LinearModelState
from sipsense.services.suggestions import (
    Prediction,
    ScheduleItem,
    clamp_amount,
    default_schedule,
    drink_message,
    drink_priority,
    drink_schedule,
)

log = get_logger(__name__)

BEHAVIOR_KEY = "hydration.behavior"
MODEL_KEY = "hydration.model"
MIN_TRAINING_ENTRIES = 10
EPOCHS = 100


class HydrationPredictor(LearningManager):
    name = "hydration"

    def __init__(
        self,
        *,
        actor: SessionActor,
        store: KeyValueStore,
        clock: Clock,
        temperature: TemperatureSource,
        zone: tzinfo = timezone.utc,
        rng: Optional[random.Random] = None,
        training_steps: int = 10,
        training_step_delay: float = 0.1,
    ):
        self.prediction_accuracy = 0.0
        self.last_prediction: Optional[Prediction] = None
        super().__init__(
            actor=actor,
            store=store,
            behavior_key=BEHAVIOR_KEY,
            model_key=MODEL_KEY,
            arity=DRINK_FEATURE_COUNT,
            epochs=EPOCHS,
            extract=extract_drink_features,
            clock=clock,
            temperature=temperature,
            zone=zone,
            rng=rng,
            training_steps=training_steps,
            training_step_delay=training_step_delay,
        )

    # -- LearningManager hooks -----------------------------------------------

    @property
    def min_training_entries(self) -> int:
        return MIN_TRAINING_ENTRIES

    def _target(self, entry: BehaviorEntry) -> float:
        return entry.amount

    def _rolling_average(self) -> float:
        entries = self.log.entries
        if not entries:
            return 0.0
        return sum(e.amount for e in entries) / len(entries)

    def _load(self) -> None:
        super()._load()
        if self.predictor.is_trained:
            self.prediction_accuracy = recent_accuracy(self.log.entries, window=ACCURACY_WINDOW)

    def _on_trained(self, state: LinearModelState) -> None:
        self.prediction_accuracy = recent_accuracy(self.log.entries, window=ACCURACY_WINDOW)
        super()._on_trained(state)

    # -- public --------------------------------------------------------------

    @serialized
    def add_behavior_data(self, entry: BehaviorEntry) -> bool:
        """Append a drink entry. Returns True when a retraining run was started."""
        self.log.append(entry)
        log.info(
            "behavior_appended",
            log=self.name,
            total=len(self.log),
            amount=entry.amount,
        )
        return self._retrain_if_ready()

    @serialized
    def record_drink(
        self,
        amount: float,
        was_successful: bool = True,
        at: Optional[datetime] = None,
        context: Optional[Context] = None,
    ) -> BehaviorEntry:
        """Build the entry for a drink logged now (or at `at`) and append it."""
        timestamp = self.log.local(at) if at else self._now()
        entry = BehaviorEntry(
            timestamp=timestamp,
            amount=amount,
            context=context or self._current_context(timestamp),
            was_successful=was_successful,
        )
        self.add_behavior_data(entry)
        return entry

    def _predict_context(self, context: Context) -> tuple[float, float]:
        features = extract_drink_features(context)
        return self.predictor.predict(features), self.predictor.confidence(features)

    @serialized
    def predict_optimal(self) -> Prediction:
        now = self._now()
        value, confidence = self._predict_context(self._current_context(now))
        amount = clamp_amount(value)
        prediction = Prediction(
            optimal_time=now + timedelta(hours=1),
            recommended_amount=amount,
            message=drink_message(amount),
            priority=drink_priority(amount),
            confidence=confidence,
            personalized=self.predictor.is_trained,
        )
        self.last_prediction = prediction
        return prediction

    @serialized
    def get_personalized_schedule(self) -> list[ScheduleItem]:
        now = self._now()
        if not self.predictor.is_trained:
            return default_schedule(now)

        base = self._current_context(now)
        return drink_schedule(
            now,
            lambda hour: replace(base, hour_of_day=hour),
            self._predict_context,
        )

    @serialized
    def analyze_patterns(self) -> PatternAnalysis:
        return analyze_with_insights(self.log.entries, event_hour)

    @serialized
    def get_learning_insights(self) -> LearningInsights:
        return learning_insights(self.log.entries, self.prediction_accuracy, drank_enough)

    @serialized
    def training_status(self) -> TrainingStatus:
        return TrainingStatus(
            is_training=self.trainer.is_training,
            progress=self.trainer.progress,
            is_trained=self.predictor.is_trained,
            completed_runs=self.trainer.completed_runs,
            prediction_accuracy=self.prediction_accuracy,
        )

    @serialized
    def clear_all_data(self) -> None:
        self.log.reset()
        self._reset_model()
        self.prediction_accuracy = 0.0
        self.last_prediction = None
        log.info("behavior_reset", log=self.name)
