"""
Hydration router.

POST   /hydration/behavior     — log a drink (context captured server-side unless given)
GET    /hydration/prediction   — optimal drink for the next hour
GET    /hydration/schedule     — personalized (or default) daily schedule
GET    /hydration/patterns     — per-slot pattern analysis
GET    /hydration/insights     — learning insights
GET    /hydration/training     — background trainer status
DELETE /hydration/data         — wipe the drink log and the model
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, status

from sipsense.schemas.common import ErrorResponse, TrainingStatusResponse
from sipsense.schemas.hydration import (
    BehaviorCreateRequest,
    BehaviorCreateResponse,
    BehaviorEntryOut,
    LearningInsightsResponse,
    PatternAnalysisResponse,
    PredictionResponse,
    ScheduleItemOut,
    ScheduleResponse,
)
from sipsense.services.behavior_log import Context
from sipsense.services.session import EngineSession, get_engine

router = APIRouter(prefix="/hydration", tags=["hydration"])


# ---------------------------------------------------------------------------
# POST /hydration/behavior
# ---------------------------------------------------------------------------

@router.post(
    "/behavior",
    response_model=BehaviorCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Log a drink",
    responses={
        201: {"description": "Entry appended; retraining may have started."},
        422: {"model": ErrorResponse, "description": "Validation error."},
    },
)
def add_behavior(body: BehaviorCreateRequest, engine: EngineSession = Depends(get_engine)):
    """
    Append one drink to the behavior log.

    Without an explicit `context` the server captures it from the log and
    the clock at `timestamp` (default: now). From the 10th entry on every
    append restarts background training; poll `GET /hydration/training`.
    """
    context = Context(**body.context.model_dump()) if body.context else None
    hydration = engine.hydration

    def record():
        entry = hydration.record_drink(
            body.amount,
            was_successful=body.was_successful,
            at=body.timestamp,
            context=context,
        )
        return entry, hydration.entry_count(), hydration.training_status()

    entry, total, training = engine.actor.call(record)
    return BehaviorCreateResponse(
        entry=BehaviorEntryOut.model_validate(entry),
        total_entries=total,
        training=TrainingStatusResponse.model_validate(training),
    )


# ---------------------------------------------------------------------------
# GET /hydration/prediction
# ---------------------------------------------------------------------------

@router.get(
    "/prediction",
    response_model=PredictionResponse,
    summary="Predict the optimal drink for the next hour",
)
def get_prediction(engine: EngineSession = Depends(get_engine)):
    """
    `personalized` is false while the model still has its initial weights;
    the amount is then driven by random parameters and should be shown
    with its (low) confidence.
    """
    return PredictionResponse.model_validate(engine.hydration.predict_optimal())


# ---------------------------------------------------------------------------
# GET /hydration/schedule
# ---------------------------------------------------------------------------

@router.get(
    "/schedule",
    response_model=ScheduleResponse,
    summary="Personalized drink schedule for today",
)
def get_schedule(engine: EngineSession = Depends(get_engine)):
    hydration = engine.hydration
    personalized, items = engine.actor.call(
        lambda: (hydration.is_trained(), hydration.get_personalized_schedule())
    )
    return ScheduleResponse(
        personalized=personalized,
        total=len(items),
        items=[ScheduleItemOut.model_validate(i) for i in items],
    )


# ---------------------------------------------------------------------------
# GET /hydration/patterns, /hydration/insights, /hydration/training
# ---------------------------------------------------------------------------

@router.get(
    "/patterns",
    response_model=PatternAnalysisResponse,
    summary="Drinking patterns per time slot",
)
def get_patterns(engine: EngineSession = Depends(get_engine)):
    return PatternAnalysisResponse.model_validate(engine.hydration.analyze_patterns())


@router.get(
    "/insights",
    response_model=LearningInsightsResponse,
    summary="Learning insights for the drink model",
)
def get_insights(engine: EngineSession = Depends(get_engine)):
    return LearningInsightsResponse.model_validate(engine.hydration.get_learning_insights())


@router.get(
    "/training",
    response_model=TrainingStatusResponse,
    summary="Background training status",
)
def get_training_status(engine: EngineSession = Depends(get_engine)):
    return TrainingStatusResponse.model_validate(engine.hydration.training_status())


# ---------------------------------------------------------------------------
# DELETE /hydration/data
# ---------------------------------------------------------------------------

@router.delete(
    "/data",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete the drink log and reset the model",
)
def clear_data(engine: EngineSession = Depends(get_engine)):
    engine.hydration.clear_all_data()
