"""
RiskScoringAgent — FastAPI Router
REST endpoints: POST /score, POST /rank
"""

from __future__ import annotations

from fastapi import APIRouter, status

from shoppulse.agents.risk_scoring.schemas import RiskAssessment, RiskRankRequest, RiskScoreRequest
from shoppulse.agents.risk_scoring.service import risk_scorer
from shoppulse.core.config import get_settings
from shoppulse.core.entities import Job
from shoppulse.core.http import observe_request, resolve_as_of

settings = get_settings()

router = APIRouter(
    prefix="/api/v1/risk",
    tags=["Risk Scoring"],
)


@router.post(
    "/score",
    response_model=RiskAssessment,
    status_code=status.HTTP_200_OK,
    summary="Score a job's due-date urgency and capacity pressure",
)
async def score_job(request: RiskScoreRequest):
    """Return the 0–100 risk score and the reason that dominates it."""
    with observe_request("risk_scoring", "/score"):
        return risk_scorer.assess(
            request.job,
            as_of=resolve_as_of(request.as_of),
            available_capacity=request.available_capacity,
            hours_per_day=settings.hours_per_day,
        )


@router.post(
    "/rank",
    response_model=list[Job],
    summary="Score jobs and order them highest risk first",
)
async def rank_jobs(request: RiskRankRequest):
    with observe_request("risk_scoring", "/rank"):
        return risk_scorer.rank(
            request.jobs,
            as_of=resolve_as_of(request.as_of),
            hours_per_day=request.hours_per_day or settings.hours_per_day,
        )
