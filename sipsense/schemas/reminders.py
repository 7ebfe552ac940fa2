"""
Reminder request / response schemas.
"""
from __future__ import annotations

import enum
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from sipsense.schemas.hydration import BehaviorEntryOut, PatternOut
from sipsense.services.reminders import PrivacyMode
from sipsense.services.suggestions import Priority


class OutcomeKind(str, enum.Enum):
    completed = "completed"
    skipped = "skipped"


# ---------------------------------------------------------------------------
# Suggestions
# ---------------------------------------------------------------------------

class SuggestionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    time: datetime
    message: str
    confidence: float
    confidence_level: str = Field(description='"High" | "Good" | "Moderate" | "Low"')
    reason: str
    priority: Priority
    adaptive_score: float
    data_points: int
    acceptance_probability: Optional[float] = Field(
        default=None,
        description="Reminder model output for this hour; null while the model is untrained.",
    )


class SuggestionListResponse(BaseModel):
    total: int
    items: list[SuggestionOut]


class AnalysisResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    suggestions: list[SuggestionOut]
    patterns: list[PatternOut]
    confidence: float
    analyzed_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Persisted reminders
# ---------------------------------------------------------------------------

class ReminderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    hour: int
    minute: int
    message: str
    is_enabled: bool
    is_adaptive: bool
    skip_count: int
    source: str
    created_at: Optional[datetime] = None


class ReminderListResponse(BaseModel):
    total: int
    items: list[ReminderOut]


class AcceptResponse(BaseModel):
    suggestion_id: str
    reminder: ReminderOut


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------

class OutcomeRequest(BaseModel):
    reminder_time: datetime = Field(description="Time the delivered reminder was scheduled for.")
    outcome: OutcomeKind


class OutcomeResponse(BaseModel):
    entry: BehaviorEntryOut
    total_entries: int


# ---------------------------------------------------------------------------
# Insights, privacy and export
# ---------------------------------------------------------------------------

class ReminderInsightOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    kind: str
    title: str
    description: str
    confidence: float
    data_points: int
    recommendation: str


class ReminderInsightsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_reminders: int
    acceptance_rate: float
    optimal_times: list[str]
    effectiveness: float
    insights: list[ReminderInsightOut]
    confidence: float
    privacy_mode: PrivacyMode
    last_analysis: Optional[datetime] = None
    data_quality: float
    adaptive_score: float


class PrivacyModeRequest(BaseModel):
    mode: PrivacyMode


class PrivacyModeResponse(BaseModel):
    mode: PrivacyMode
    description: str
    min_data_points: int
    removed_entries: int


class ExportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_entries: int
    first_entry: Optional[datetime] = None
    last_entry: Optional[datetime] = None
    privacy_mode: PrivacyMode
    analysis_count: int
    exported_at: datetime
