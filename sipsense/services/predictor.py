"""
Linear Predictor — weight vector + bias trained by batch gradient descent.

    predict(x) = clamp(bias + Σ w_i · x_i, 0, 1)

Training runs a fixed number of epochs over the whole example set with a
fixed learning rate; for each example

    err  = target - predict(x)
    w_i += lr · err · x_i
    b   += lr · err

No regularization and no convergence check: the epoch count is the only
stopping criterion. Results depend on the random initial weights and on
example order, so two runs over the same data are not guaranteed identical.

Fewer than `min_examples` examples is not an error: training is a no-op.

State is immutable (`LinearModelState`). `fit()` builds a new state from an
old one, and `LinearPredictor` swaps the whole state in one assignment, so a
reader never observes a half-updated weight vector.
"""
from __future__ import annotations

import json
import math
import random
from dataclasses import dataclass
from typing import Callable, NamedTuple, Optional, Sequence

from sipsense.core.errors import FeatureArityError
from sipsense.services.features import FEATURE_VERSION

DEFAULT_LEARNING_RATE = 0.01
DEFAULT_MIN_EXAMPLES = 5

_MIN_CONFIDENCE = 0.1
_MAX_CONFIDENCE = 1.0


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LinearModelState:
    weights: tuple[float, ...]
    bias: float
    trained_examples: int = 0    # size of the last training set; 0 = never trained

    @property
    def arity(self) -> int:
        return len(self.weights)

    @property
    def is_trained(self) -> bool:
        return self.trained_examples > 0


class TrainingExample(NamedTuple):
    features: tuple[float, ...]
    target: float


# ---------------------------------------------------------------------------
# Pure functions
# ---------------------------------------------------------------------------

def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def random_state(arity: int, rng: Optional[random.Random] = None) -> LinearModelState:
    rng = rng or random.Random()
    return LinearModelState(
        weights=tuple(rng.uniform(-1.0, 1.0) for _ in range(arity)),
        bias=rng.uniform(-1.0, 1.0),
    )


def _check_arity(state: LinearModelState, features: Sequence[float]) -> None:
    if len(features) != state.arity:
        raise FeatureArityError(expected=state.arity, received=len(features))


def evaluate(state: LinearModelState, features: Sequence[float]) -> float:
    _check_arity(state, features)
    total = state.bias
    for w, x in zip(state.weights, features):
        total += w * x
    return _clamp(total, 0.0, 1.0)


def fit(
    state: LinearModelState,
    examples: Sequence[TrainingExample],
    *,
    epochs: int,
    learning_rate: float = DEFAULT_LEARNING_RATE,
    min_examples: int = DEFAULT_MIN_EXAMPLES,
    should_stop: Optional[Callable[[], bool]] = None,
) -> Optional[LinearModelState]:
    """
    Return the state after `epochs` passes over `examples`.

    Returns `state` itself when there are fewer than `min_examples`, and None
    when `should_stop` reports cancellation between epochs.
    """
    if len(examples) < min_examples:
        return state
    for ex in examples:
        _check_arity(state, ex.features)

    weights = list(state.weights)
    bias = state.bias
    for _ in range(epochs):
        if should_stop is not None and should_stop():
            return None
        for features, target in examples:
            total = bias
            for w, x in zip(weights, features):
                total += w * x
            error = target - _clamp(total, 0.0, 1.0)
            for i, x in enumerate(features):
                weights[i] += learning_rate * error * x
            bias += learning_rate * error

    return LinearModelState(
        weights=tuple(weights),
        bias=bias,
        trained_examples=len(examples),
    )


def feature_confidence(features: Sequence[float]) -> float:
    """
    Dispersion heuristic: 1 - std-dev of the feature vector, clamped to [0.1, 1].
    Not a calibrated probability and independent of prediction accuracy.
    """
    if not features:
        return _MIN_CONFIDENCE
    mean = sum(features) / len(features)
    variance = sum((x - mean) ** 2 for x in features) / len(features)
    return _clamp(1.0 - math.sqrt(variance), _MIN_CONFIDENCE, _MAX_CONFIDENCE)


# ---------------------------------------------------------------------------
# Raw parameter serialization
# ---------------------------------------------------------------------------

def encode_state(state: LinearModelState) -> bytes:
    return json.dumps({
        "feature_version": FEATURE_VERSION,
        "weights": list(state.weights),
        "bias": state.bias,
        "trained_examples": state.trained_examples,
    }).encode("utf-8")


def decode_state(data: bytes, arity: int) -> LinearModelState:
    """Raises ValueError when the payload is malformed, stale or of the wrong arity."""
    raw = json.loads(data.decode("utf-8"))
    if raw.get("feature_version") != FEATURE_VERSION:
        raise ValueError(f"feature version {raw.get('feature_version')!r} is stale")
    weights = tuple(float(w) for w in raw["weights"])
    if len(weights) != arity:
        raise ValueError(f"expected {arity} weights, found {len(weights)}")
    return LinearModelState(
        weights=weights,
        bias=float(raw["bias"]),
        trained_examples=int(raw.get("trained_examples", 0)),
    )


# ---------------------------------------------------------------------------
# Stateful wrapper
# ---------------------------------------------------------------------------

class LinearPredictor:
    def __init__(
        self,
        arity: int,
        *,
        epochs: int,
        learning_rate: float = DEFAULT_LEARNING_RATE,
        min_examples: int = DEFAULT_MIN_EXAMPLES,
        rng: Optional[random.Random] = None,
        state: Optional[LinearModelState] = None,
    ):
        self.arity = arity
        self.epochs = epochs
        self.learning_rate = learning_rate
        self.min_examples = min_examples
        self._rng = rng or random.Random()
        self._state = state if state is not None else random_state(arity, self._rng)
        if self._state.arity != arity:
            raise FeatureArityError(expected=arity, received=self._state.arity)

    @property
    def state(self) -> LinearModelState:
        return self._state

    @property
    def is_trained(self) -> bool:
        return self._state.is_trained

    def predict(self, features: Sequence[float]) -> float:
        return evaluate(self._state, features)

    def train(self, examples: Sequence[TrainingExample], epochs: Optional[int] = None) -> None:
        new_state = fit(
            self._state,
            examples,
            epochs=epochs if epochs is not None else self.epochs,
            learning_rate=self.learning_rate,
            min_examples=self.min_examples,
        )
        if new_state is not None:
            self._state = new_state

    def replace_state(self, state: LinearModelState) -> None:
        if state.arity != self.arity:
            raise FeatureArityError(expected=self.arity, received=state.arity)
        self._state = state

    def reset(self) -> None:
        self._state = random_state(self.arity, self._rng)

    @staticmethod
    def confidence(features: Sequence[float]) -> float:
        return feature_confidence(features)
