"""
AnomalyDetectionAgent — Pydantic Schemas
Contracts for work-center metric histories and the alerts raised against them.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from shoppulse.core.entities import WorkCenterMetric


# ── Enums ──

class AnomalyType(str, Enum):
    SLOWDOWN = "slowdown"
    QUEUE_BUILDUP = "queue_buildup"
    UNUSUAL_PATTERN = "unusual_pattern"


class AlertSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# ── Input Schemas ──

class AnomalyRequest(BaseModel):
    """Metric history for one work center."""

    work_center: str
    metrics: list[WorkCenterMetric] = Field(default_factory=list)
    as_of: Optional[datetime] = None
    lookback_days: Optional[int] = Field(None, gt=0)
    std_dev_threshold: Optional[float] = Field(None, gt=0, allow_inf_nan=False)

    @field_validator("work_center")
    @classmethod
    def validate_work_center(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("work_center cannot be empty")
        return v.strip()


class BatchAnomalyRequest(BaseModel):
    """Metric histories for several work centers, keyed by work center id."""

    metrics_by_work_center: dict[str, list[WorkCenterMetric]] = Field(default_factory=dict)
    as_of: Optional[datetime] = None
    lookback_days: Optional[int] = Field(None, gt=0)
    std_dev_threshold: Optional[float] = Field(None, gt=0, allow_inf_nan=False)


# ── Output Schemas ──

class AnomalyAlert(BaseModel):
    """One detected condition. Alerts are not deduplicated across calls."""

    type: AnomalyType
    work_center: str
    severity: AlertSeverity
    message: str
    metric_value: float
    historical_baseline: float
    deviation_percent: float
