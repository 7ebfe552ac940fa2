"""
Hydration request / response schemas.

POST /hydration/behavior     → BehaviorCreateRequest → BehaviorCreateResponse
GET  /hydration/prediction   → PredictionResponse
GET  /hydration/schedule     → ScheduleResponse
GET  /hydration/patterns     → PatternAnalysisResponse
GET  /hydration/insights     → LearningInsightsResponse
"""
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field

from sipsense.schemas.common import TrainingStatusResponse
from sipsense.services.suggestions import Priority


# ---------------------------------------------------------------------------
# Behavior entries
# ---------------------------------------------------------------------------

class ContextIn(BaseModel):
    """Situational snapshot supplied by the client instead of the captured one."""
    hour_of_day: Annotated[int, Field(ge=0, le=23)]
    weekday: Annotated[int, Field(ge=1, le=7, description="ISO weekday, Monday = 1.")]
    ambient_temperature: float = Field(description="°C", examples=[22.0])
    time_since_last_event: Optional[float] = Field(
        default=None, ge=0, description="Seconds since the previous entry."
    )
    events_so_far_today: int = Field(default=0, ge=0)
    rolling_average_amount: float = Field(default=0.0, ge=0)


class ContextOut(ContextIn):
    model_config = ConfigDict(from_attributes=True)


class BehaviorCreateRequest(BaseModel):
    amount: Annotated[float, Field(
        ge=0,
        le=5,
        description="Liters drunk.",
        examples=[0.25],
    )]
    was_successful: bool = True
    timestamp: Optional[datetime] = Field(
        default=None,
        description="Event time. Defaults to now; times with an offset are converted to the configured timezone.",
    )
    context: Optional[ContextIn] = Field(
        default=None,
        description="Explicit context. Omit to capture it from the log and the clock.",
    )


class BehaviorEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    timestamp: datetime
    amount: float
    context: ContextOut
    was_successful: bool
    scheduled_for: Optional[datetime] = None
    confidence: Optional[float] = None
    reason: Optional[str] = None


class BehaviorCreateResponse(BaseModel):
    entry: BehaviorEntryOut
    total_entries: int
    training: TrainingStatusResponse


# ---------------------------------------------------------------------------
# Predictions and schedule
# ---------------------------------------------------------------------------

class PredictionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    optimal_time: datetime
    recommended_amount: float = Field(description="Liters, within [0.1, 0.5].")
    message: str
    priority: Priority
    confidence: float
    personalized: bool = Field(description="False while the model is untrained.")


class ScheduleItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    time: datetime
    amount: float
    message: str
    priority: Priority


class ScheduleResponse(BaseModel):
    personalized: bool
    total: int
    items: list[ScheduleItemOut]


# ---------------------------------------------------------------------------
# Patterns and insights
# ---------------------------------------------------------------------------

class PatternOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    time_slot: str = Field(description='"Morning" | "Afternoon" | "Evening" | "Night"')
    frequency: float
    average_amount: float
    acceptance_rate: float
    confidence: float
    data_points: int
    last_activity: Optional[datetime] = None


class PatternInsightOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    kind: str
    title: str
    description: str
    confidence: float


class RecommendationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    kind: str
    title: str
    description: str
    priority: str


class PatternAnalysisResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    patterns: list[PatternOut]
    insights: list[PatternInsightOut]
    recommendations: list[RecommendationOut]


class LearningInsightsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_data_points: int
    recent_accuracy: float
    improvement_trend: float
    confidence_level: float
