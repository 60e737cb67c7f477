"""
CompletionForecastAgent — Pydantic Schemas
Contracts for velocity-based completion forecasts.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from shoppulse.core.entities import Job, JobSnapshot

VELOCITY_METHOD = "velocity"


# ── Input Schemas ──

class ForecastRequest(BaseModel):
    """A job with its recent snapshot history."""

    job: Job
    snapshots: list[JobSnapshot] = Field(default_factory=list)
    as_of: Optional[datetime] = None
    lookback_days: Optional[int] = Field(None, gt=0, description="Snapshot window in days")


# ── Output Schemas ──

class PredictionResult(BaseModel):
    """Completion forecast for one job.

    ``basis`` explains the result in plain words so operators can see why a
    forecast is weak.
    """

    method: str = VELOCITY_METHOD
    predicted_completion_date: Optional[datetime] = None
    predicted_lateness_days: int = Field(0, ge=0)
    confidence_score: float = Field(..., ge=0.0, le=1.0)
    basis: str
    velocity_per_day: Optional[float] = Field(None, description="Remaining-work units completed per day")
    snapshots_used: int = Field(0, ge=0)
