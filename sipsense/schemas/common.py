"""
Shared schema primitives used across the API.
"""
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorDetail(BaseModel):
    """A single field-level validation error."""
    field: str
    message: str
    type: str


class ErrorResponse(BaseModel):
    """Standard error envelope returned for all 4xx/5xx responses."""
    model_config = ConfigDict(from_attributes=True)

    code: str
    message: str
    details: Optional[dict[str, Any]] = None


class TrainingStatusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    is_training: bool
    progress: float = Field(ge=0.0, le=1.0, description="Simulated progress ramp, 0–1.")
    is_trained: bool = Field(description="False while the model still has its initial random weights.")
    completed_runs: int
    prediction_accuracy: float
