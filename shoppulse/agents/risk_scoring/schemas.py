"""
RiskScoringAgent — Pydantic Schemas
Request/response contracts for due-date urgency and capacity pressure scoring.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from shoppulse.core.entities import Job, RiskReason


# ── Input Schemas ──

class RiskScoreRequest(BaseModel):
    """Score a single job."""

    job: Job
    as_of: Optional[datetime] = None
    available_capacity: Optional[float] = Field(
        None,
        ge=0,
        allow_inf_nan=False,
        description="Capacity (hours) available before the due date; derived from the due date when omitted",
    )


class RiskRankRequest(BaseModel):
    """Score and order a list of jobs, highest risk first."""

    jobs: list[Job] = Field(default_factory=list)
    as_of: Optional[datetime] = None
    hours_per_day: Optional[float] = Field(None, gt=0, allow_inf_nan=False)


# ── Output Schemas ──

class RiskAssessment(BaseModel):
    """Risk score of one job with the reason that dominates it."""

    job_id: str
    risk_score: int = Field(..., ge=0, le=100)
    risk_reason: RiskReason
    days_until_due: Optional[int] = None
    available_capacity: float = Field(0.0, ge=0)
