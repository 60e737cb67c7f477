"""
JobEnrichmentAgent — Schemas, Service & Router
Thin composition layer for the job views: scored job + completion forecast +
immediate issues, and a portfolio summary over a job list.
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from shoppulse.agents.completion_forecast.schemas import PredictionResult
from shoppulse.agents.completion_forecast.service import DEFAULT_LOOKBACK_DAYS, completion_forecaster
from shoppulse.agents.immediate_issues.agent import Issue, IssueSeverity, immediate_issue_detector
from shoppulse.agents.risk_scoring.service import DEFAULT_HOURS_PER_DAY, risk_scorer
from shoppulse.core.config import get_settings
from shoppulse.core.entities import Job, JobSnapshot, RiskReason, days_between, to_utc
from shoppulse.core.http import observe_request, resolve_as_of

logger = logging.getLogger(__name__)
settings = get_settings()

DEFAULT_AT_RISK_THRESHOLD = 70
DUE_WINDOW_DAYS = 7


# ── Schemas ──

class JobRiskLevel(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    NORMAL = "normal"


class EnrichedJob(BaseModel):
    job: Job
    forecast: PredictionResult
    issues: list[Issue] = Field(default_factory=list)
    risk_level: JobRiskLevel = JobRiskLevel.NORMAL


class MetricsSummary(BaseModel):
    total_jobs: int = 0
    at_risk_count: int = 0
    due_next_7_days: int = 0
    past_due_count: int = 0


class EnrichRequest(BaseModel):
    job: Job
    snapshots: list[JobSnapshot] = Field(default_factory=list)
    as_of: Optional[datetime] = None
    lookback_days: Optional[int] = Field(None, gt=0)


class SummaryRequest(BaseModel):
    jobs: list[Job] = Field(default_factory=list)
    as_of: Optional[datetime] = None
    at_risk_threshold: Optional[int] = Field(None, ge=0, le=100)


# ── Service ──

class JobEnrichmentService:
    """Fetch-free adapter: callers pass the entities, this composes the engine."""

    def latest_pair(
        self,
        snapshots: list[JobSnapshot],
        as_of: datetime,
    ) -> tuple[Optional[JobSnapshot], Optional[JobSnapshot]]:
        """(latest, previous) snapshots recorded at or before ``as_of``."""
        as_of = to_utc(as_of)
        history = sorted(
            (s for s in snapshots if s.snapshot_date <= as_of),
            key=lambda s: s.snapshot_date,
        )
        latest = history[-1] if history else None
        previous = history[-2] if len(history) >= 2 else None
        return latest, previous

    def risk_level(self, issues: list[Issue]) -> JobRiskLevel:
        if any(i.severity == IssueSeverity.CRITICAL for i in issues):
            return JobRiskLevel.CRITICAL
        if issues:
            return JobRiskLevel.WARNING
        return JobRiskLevel.NORMAL

    def enrich(
        self,
        job: Job,
        snapshots: list[JobSnapshot],
        *,
        as_of: datetime,
        lookback_days: int = DEFAULT_LOOKBACK_DAYS,
        hours_per_day: float = DEFAULT_HOURS_PER_DAY,
    ) -> EnrichedJob:
        as_of = to_utc(as_of)
        scored = risk_scorer.apply(job, as_of=as_of, hours_per_day=hours_per_day)
        forecast = completion_forecaster.forecast(
            scored, snapshots, as_of=as_of, lookback_days=lookback_days,
        )
        latest, previous = self.latest_pair(snapshots, as_of)
        issues = immediate_issue_detector.detect_issues(scored, latest, previous, as_of=as_of)
        logger.debug(
            "Enriched job %s: risk=%d confidence=%.2f issues=%d",
            scored.job_id, scored.risk_score, forecast.confidence_score, len(issues),
        )

        return EnrichedJob(
            job=scored,
            forecast=forecast,
            issues=issues,
            risk_level=self.risk_level(issues),
        )

    def summarize(
        self,
        jobs: list[Job],
        *,
        as_of: datetime,
        at_risk_threshold: int = DEFAULT_AT_RISK_THRESHOLD,
        hours_per_day: float = DEFAULT_HOURS_PER_DAY,
    ) -> MetricsSummary:
        as_of = to_utc(as_of)
        scored = [risk_scorer.apply(job, as_of=as_of, hours_per_day=hours_per_day) for job in jobs]

        due_soon = 0
        for job in scored:
            if job.due_date is not None and 0 <= days_between(as_of, job.due_date) <= DUE_WINDOW_DAYS:
                due_soon += 1

        return MetricsSummary(
            total_jobs=len(scored),
            at_risk_count=sum(1 for j in scored if j.risk_score >= at_risk_threshold),
            due_next_7_days=due_soon,
            past_due_count=sum(1 for j in scored if j.risk_reason == RiskReason.PAST_DUE),
        )


job_enrichment_service = JobEnrichmentService()

# ── Router ──

router = APIRouter(prefix="/api/v1/jobs", tags=["Job Enrichment"])


@router.post("/enrich", response_model=EnrichedJob, summary="Score, forecast and check one job")
async def enrich_job(request: EnrichRequest):
    with observe_request("job_enrichment", "/enrich"):
        return job_enrichment_service.enrich(
            request.job,
            request.snapshots,
            as_of=resolve_as_of(request.as_of),
            lookback_days=request.lookback_days or settings.forecast_lookback_days,
            hours_per_day=settings.hours_per_day,
        )


@router.post("/summary", response_model=MetricsSummary, summary="Portfolio risk summary")
async def summary(request: SummaryRequest):
    with observe_request("job_enrichment", "/summary"):
        threshold = request.at_risk_threshold
        return job_enrichment_service.summarize(
            request.jobs,
            as_of=resolve_as_of(request.as_of),
            at_risk_threshold=settings.at_risk_threshold if threshold is None else threshold,
            hours_per_day=settings.hours_per_day,
        )
