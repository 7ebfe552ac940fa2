"""
Reminders router.

POST   /reminders/suggestions/analyze         — regenerate suggestions
GET    /reminders/suggestions                 — pending suggestions
POST   /reminders/suggestions/{id}/accept     — promote to a reminder
POST   /reminders/suggestions/{id}/dismiss    — decline
POST   /reminders/outcomes                    — completed / skipped reminder
GET    /reminders/insights                    — reminder effectiveness
GET    /reminders                             — persisted reminders
PUT    /reminders/privacy-mode                — switch privacy mode
GET    /reminders/export                      — summary export (no raw entries)
DELETE /reminders/data                        — wipe all reminder learning data
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from sipsense.schemas.common import ErrorResponse
from sipsense.schemas.hydration import BehaviorEntryOut
from sipsense.schemas.reminders import (
    AcceptResponse,
    AnalysisResponse,
    ExportResponse,
    OutcomeKind,
    OutcomeRequest,
    OutcomeResponse,
    PrivacyModeRequest,
    PrivacyModeResponse,
    ReminderInsightsResponse,
    ReminderListResponse,
    ReminderOut,
    SuggestionListResponse,
    SuggestionOut,
)
from sipsense.services.session import EngineSession, get_engine

router = APIRouter(prefix="/reminders", tags=["reminders"])

_NOT_FOUND = {"model": ErrorResponse, "description": "No pending suggestion with that id."}


# ---------------------------------------------------------------------------
# Suggestions
# ---------------------------------------------------------------------------

@router.post(
    "/suggestions/analyze",
    response_model=AnalysisResponse,
    summary="Analyze reminder history and regenerate suggestions",
)
def analyze_suggestions(engine: EngineSession = Depends(get_engine)):
    """
    Replaces the pending list. Slots with acceptance above 60% map to a
    canonical hour; fewer than three are padded with the adaptive
    scheduler's best hours (or 08:00 / 12:00 / 18:00).
    """
    return AnalysisResponse.model_validate(engine.reminders.analyze_and_suggest_reminders())


@router.get(
    "/suggestions",
    response_model=SuggestionListResponse,
    summary="List pending suggestions",
)
def list_suggestions(engine: EngineSession = Depends(get_engine)):
    items = engine.reminders.pending_suggestions()
    return SuggestionListResponse(
        total=len(items),
        items=[SuggestionOut.model_validate(s) for s in items],
    )


@router.post(
    "/suggestions/{suggestion_id}/accept",
    response_model=AcceptResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Accept a suggestion",
    responses={
        404: _NOT_FOUND,
        503: {
            "model": ErrorResponse,
            "description": "Reminder could not be saved; the suggestion stays pending.",
        },
    },
)
def accept_suggestion(suggestion_id: str, engine: EngineSession = Depends(get_engine)):
    record = engine.reminders.accept_suggestion(suggestion_id)
    return AcceptResponse(
        suggestion_id=suggestion_id,
        reminder=ReminderOut.model_validate(record),
    )


@router.post(
    "/suggestions/{suggestion_id}/dismiss",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Dismiss a suggestion",
    responses={404: _NOT_FOUND},
)
def dismiss_suggestion(suggestion_id: str, engine: EngineSession = Depends(get_engine)):
    engine.reminders.dismiss_suggestion(suggestion_id)


# ---------------------------------------------------------------------------
# Outcomes of delivered reminders
# ---------------------------------------------------------------------------

@router.post(
    "/outcomes",
    response_model=OutcomeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a completed or skipped reminder",
)
def record_outcome(body: OutcomeRequest, engine: EngineSession = Depends(get_engine)):
    reminders = engine.reminders
    if body.outcome == OutcomeKind.completed:
        record = reminders.record_reminder_completed
    else:
        record = reminders.record_reminder_skipped
    entry, total = engine.actor.call(
        lambda: (record(body.reminder_time), reminders.entry_count())
    )
    return OutcomeResponse(
        entry=BehaviorEntryOut.model_validate(entry),
        total_entries=total,
    )


# ---------------------------------------------------------------------------
# Insights and persisted reminders
# ---------------------------------------------------------------------------

@router.get(
    "/insights",
    response_model=ReminderInsightsResponse,
    summary="Reminder effectiveness insights",
)
def get_insights(engine: EngineSession = Depends(get_engine)):
    return ReminderInsightsResponse.model_validate(engine.reminders.get_reminder_insights())


@router.get(
    "",
    response_model=ReminderListResponse,
    summary="List persisted reminders",
)
def list_reminders(
    enabled_only: bool = Query(default=False, description="Only enabled reminders."),
    engine: EngineSession = Depends(get_engine),
):
    items = engine.reminder_store.list_reminders(enabled_only=enabled_only)
    return ReminderListResponse(
        total=len(items),
        items=[ReminderOut.model_validate(r) for r in items],
    )


# ---------------------------------------------------------------------------
# Privacy
# ---------------------------------------------------------------------------

@router.put(
    "/privacy-mode",
    response_model=PrivacyModeResponse,
    summary="Change the privacy mode",
    responses={422: {"model": ErrorResponse, "description": "Unknown mode."}},
)
def update_privacy_mode(body: PrivacyModeRequest, engine: EngineSession = Depends(get_engine)):
    """
    | Mode | Retrain from | On switch |
    |---|---|---|
    | `standard` | 5 entries | nothing removed |
    | `enhanced` | 10 entries | entries older than 30 days removed |
    | `strict`   | 15 entries | only the newest 50 entries kept |
    """
    removed = engine.reminders.update_privacy_mode(body.mode)
    mode = body.mode
    return PrivacyModeResponse(
        mode=mode,
        description=mode.description,
        min_data_points=mode.min_data_points,
        removed_entries=removed,
    )


@router.get(
    "/export",
    response_model=ExportResponse,
    summary="Privacy-compliant export summary",
)
def export_summary(engine: EngineSession = Depends(get_engine)):
    return ExportResponse.model_validate(engine.reminders.export_summary())


@router.delete(
    "/data",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete all reminder learning data",
)
def clear_data(engine: EngineSession = Depends(get_engine)):
    engine.reminders.clear_all_data()
