"""
Background trainer — cancel-and-supersede retraining off the actor thread.

Lifecycle of one job
--------------------
  submit(examples)      (actor thread)
     ├─ cancels the in-flight job's token, bumps the generation
     └─ queues _run on the training worker with a snapshot of the model state
  _run                  (training worker)
     ├─ progress ramp: `steps` fixed-duration steps, each reported via the actor
     ├─ fit() on the snapshot, checking the token between epochs
     └─ actor.call(_publish, ...)
  _publish              (actor thread)
     └─ swaps the new state in only if the job is still current

Last writer wins: a superseded job's result is dropped even when it finishes
after the newer job was submitted. The progress ramp is simulated; it is
not tied to epoch completion.
"""
from __future__ import annotations

import threading
import time
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from typing import Callable, Optional, Sequence

from sipsense.core.logging_config import get_logger
from sipsense.services.actor import SessionActor
from sipsense.services.predictor import (
    LinearModelState,
    LinearPredictor,
    TrainingExample,
    fit,
)

log = get_logger(__name__)


class BackgroundTrainer:
    def __init__(
        self,
        predictor: LinearPredictor,
        actor: SessionActor,
        *,
        name: str,
        steps: int = 10,
        step_delay: float = 0.1,
        on_complete: Optional[Callable[[LinearModelState], None]] = None,
    ):
        self._predictor = predictor
        self._actor = actor
        self._name = name
        self._steps = max(1, steps)
        self._step_delay = max(0.0, step_delay)
        self._on_complete = on_complete
        self._pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"{name}-trainer")

        # Touched on the actor thread only
        self._generation = 0
        self._token: Optional[threading.Event] = None
        self._future: Optional[Future] = None
        self.progress = 0.0
        self.is_training = False
        self.completed_runs = 0

    # -- actor thread --------------------------------------------------------

    def submit(self, examples: Sequence[TrainingExample], epochs: Optional[int] = None) -> Future:
        self.cancel()
        self._generation += 1
        token = threading.Event()
        self._token = token
        self.progress = 0.0
        self.is_training = True
        self._future = self._pool.submit(
            self._run,
            self._generation,
            token,
            self._predictor.state,
            tuple(examples),
            epochs if epochs is not None else self._predictor.epochs,
        )
        log.info(
            "training_submitted",
            model=self._name,
            generation=self._generation,
            examples=len(examples),
        )
        return self._future

    def cancel(self) -> None:
        if self._token is not None:
            self._token.set()
        if self._future is not None:
            self._future.cancel()
        if self.is_training:
            log.info("training_cancelled", model=self._name, generation=self._generation)
        self.is_training = False
        self._token = None

    def _set_progress(self, generation: int, value: float) -> None:
        if generation == self._generation and self.is_training:
            self.progress = value

    def _publish(
        self,
        generation: int,
        token: threading.Event,
        state: LinearModelState,
    ) -> Optional[LinearModelState]:
        if token.is_set() or generation != self._generation:
            log.info("training_result_discarded", model=self._name, generation=generation)
            return None
        self._predictor.replace_state(state)
        self.progress = 1.0
        self.is_training = False
        self.completed_runs += 1
        log.info(
            "training_completed",
            model=self._name,
            generation=generation,
            examples=state.trained_examples,
        )
        if self._on_complete is not None:
            self._on_complete(state)
        return state

    # -- training worker -----------------------------------------------------

    def _run(
        self,
        generation: int,
        token: threading.Event,
        snapshot: LinearModelState,
        examples: tuple[TrainingExample, ...],
        epochs: int,
    ) -> Optional[LinearModelState]:
        for step in range(1, self._steps + 1):
            if token.is_set():
                return None
            if self._step_delay:
                time.sleep(self._step_delay)
            self._actor.call(self._set_progress, generation, step / self._steps)

        new_state = fit(
            snapshot,
            examples,
            epochs=epochs,
            learning_rate=self._predictor.learning_rate,
            min_examples=self._predictor.min_examples,
            should_stop=token.is_set,
        )
        if new_state is None or token.is_set():
            return None
        return self._actor.call(self._publish, generation, token, new_state)

    # -- any thread but the actor's -------------------------------------------

    def wait(self, timeout: Optional[float] = None) -> Optional[LinearModelState]:
        """Block until the current job settles. Never call from the actor thread."""
        future = self._actor.call(lambda: self._future)
        if future is None:
            return None
        try:
            return future.result(timeout=timeout)
        except CancelledError:
            return None

    def shutdown(self) -> None:
        self._actor.call(self.cancel)
        self._pool.shutdown(wait=True)
