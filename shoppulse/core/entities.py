"""
ShopPulse Risk Engine — Canonical Entities
Jobs, job snapshots and work-center metrics as the engine sees them, after the
ingestion layer has resolved field aliases and units.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

SECONDS_PER_DAY = 24 * 60 * 60


# ── Time helpers ──

def to_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime. Naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def days_between(start: datetime, end: datetime) -> float:
    """Fractional days from ``start`` to ``end`` (negative when end is earlier)."""
    return (to_utc(end) - to_utc(start)).total_seconds() / SECONDS_PER_DAY


def _coerce_datetime(value: Any) -> Any:
    if isinstance(value, datetime):
        return to_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    return value


# ── Enums ──

class RiskReason(str, Enum):
    PAST_DUE = "past_due"
    CAPACITY_OVERLOAD = "capacity_overload"
    DUE_SOON = "due_soon"
    ON_TRACK = "on_track"


# ── Entities ──

class Job(BaseModel):
    """Manufacturing work order tracked to a due date."""

    job_id: str = Field(..., description="Work order identifier")
    due_date: Optional[datetime] = Field(
        None, description="Due date; None when the upstream value could not be parsed"
    )
    status: str = "open"
    remaining_work: float = Field(
        0.0, allow_inf_nan=False, description="Remaining hours (or quantity units)"
    )
    risk_score: int = Field(0, ge=0, le=100)
    risk_reason: Optional[RiskReason] = None

    @field_validator("job_id")
    @classmethod
    def validate_job_id(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("job_id cannot be empty")
        return v.strip()

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Any) -> Any:
        # Unparseable strings degrade to "no due date" instead of failing the job
        if isinstance(v, str):
            text = v.strip()
            if not text:
                return None
            try:
                return to_utc(datetime.fromisoformat(text))
            except ValueError:
                return None
        return _coerce_datetime(v)

    @field_validator("remaining_work", mode="before")
    @classmethod
    def clamp_remaining_work(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and math.isfinite(v) and v < 0:
            return 0.0
        return v


class JobSnapshot(BaseModel):
    """Point-in-time capture of a job's remaining work."""

    snapshot_date: datetime
    hours_to_go: float = Field(0.0, ge=0, allow_inf_nan=False)
    qty_completed: float = Field(0.0, ge=0, allow_inf_nan=False)
    status: str = ""

    @field_validator("snapshot_date", mode="before")
    @classmethod
    def normalize_snapshot_date(cls, v: Any) -> Any:
        return _coerce_datetime(v)

    @field_validator("snapshot_date")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        return to_utc(v)


class WorkCenterMetric(BaseModel):
    """One sample of a work center's aggregate performance.

    Missing values are allowed; the anomaly checks treat them as zero.
    """

    metric_date: datetime
    throughput: Optional[float] = Field(None, ge=0, allow_inf_nan=False, description="Completions per unit time")
    queue_depth: Optional[int] = Field(None, ge=0, description="Jobs waiting")
    scrap_rate: Optional[float] = Field(None, ge=0.0, le=1.0, allow_inf_nan=False, description="Scrap fraction")

    @field_validator("metric_date", mode="before")
    @classmethod
    def normalize_metric_date(cls, v: Any) -> Any:
        return _coerce_datetime(v)

    @field_validator("metric_date")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        return to_utc(v)
