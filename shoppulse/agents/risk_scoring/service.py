"""
RiskScoringAgent — Service Layer
Additive 0–100 risk score: due-date urgency step function plus capacity pressure.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Optional

import numpy as np

from shoppulse.agents.risk_scoring.schemas import RiskAssessment
from shoppulse.core.entities import Job, RiskReason, days_between, to_utc

logger = logging.getLogger(__name__)

# (max days until due, points), first match wins
URGENCY_BUCKETS: tuple[tuple[int, int], ...] = (
    (0, 60),
    (3, 50),
    (7, 40),
    (14, 25),
    (30, 10),
)

CAPACITY_POINTS_PER_OVERLOAD = 40
MAX_CAPACITY_SCORE = 40
DUE_SOON_DAYS = 7
DEFAULT_HOURS_PER_DAY = 8.0


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class RiskScorer:
    """Combines due-date urgency and capacity pressure into one score."""

    # ──────────────────────────────────────────────
    # Sub-scores
    # ──────────────────────────────────────────────

    def days_until_due(self, job: Job, as_of: datetime) -> Optional[int]:
        """Whole days from ``as_of`` to the due date, floored. None without a due date."""
        if job.due_date is None:
            return None
        return math.floor(days_between(as_of, job.due_date))

    def due_score(self, days_until_due: Optional[int]) -> int:
        if days_until_due is None:
            return 0
        for max_days, points in URGENCY_BUCKETS:
            if days_until_due <= max_days:
                return points
        return 0

    def capacity_score(self, remaining_work: float, available_capacity: Optional[float]) -> int:
        """No penalty until load exceeds capacity, then up to 40 points."""
        if not available_capacity or available_capacity <= 0:
            return 0
        load_ratio = max(0.0, remaining_work) / available_capacity
        penalty = (load_ratio - 1) * CAPACITY_POINTS_PER_OVERLOAD
        # Also true for inf and NaN
        if not penalty < MAX_CAPACITY_SCORE:
            return MAX_CAPACITY_SCORE
        raw = _round_half_up(penalty)
        return int(np.clip(raw, 0, MAX_CAPACITY_SCORE))

    # ──────────────────────────────────────────────
    # Public API
    # ──────────────────────────────────────────────

    def score(
        self,
        job: Job,
        *,
        as_of: datetime,
        available_capacity: Optional[float] = None,
    ) -> int:
        """Risk score in [0, 100]. Never raises for a missing due date."""
        due = self.due_score(self.days_until_due(job, as_of))
        capacity = self.capacity_score(job.remaining_work, available_capacity)
        return int(np.clip(due + capacity, 0, 100))

    def capacity_until_due(
        self,
        job: Job,
        *,
        as_of: datetime,
        hours_per_day: float = DEFAULT_HOURS_PER_DAY,
    ) -> float:
        """Working hours left before the due date; 0 once the job is due."""
        days = self.days_until_due(job, as_of)
        if days is None or days <= 0:
            return 0.0
        return days * hours_per_day

    def classify_reason(
        self,
        job: Job,
        *,
        as_of: datetime,
        available_capacity: float = 0.0,
    ) -> RiskReason:
        days = self.days_until_due(job, as_of)
        if days is None:
            return RiskReason.ON_TRACK
        if days <= 0:
            return RiskReason.PAST_DUE
        if available_capacity > 0 and job.remaining_work / available_capacity > 1:
            return RiskReason.CAPACITY_OVERLOAD
        if days <= DUE_SOON_DAYS:
            return RiskReason.DUE_SOON
        return RiskReason.ON_TRACK

    def assess(
        self,
        job: Job,
        *,
        as_of: datetime,
        available_capacity: Optional[float] = None,
        hours_per_day: float = DEFAULT_HOURS_PER_DAY,
    ) -> RiskAssessment:
        """Score and reason for one job.

        When ``available_capacity`` is not supplied it is derived from the time
        left before the due date at ``hours_per_day``.
        """
        as_of = to_utc(as_of)
        if available_capacity is None:
            available_capacity = self.capacity_until_due(job, as_of=as_of, hours_per_day=hours_per_day)

        return RiskAssessment(
            job_id=job.job_id,
            risk_score=self.score(job, as_of=as_of, available_capacity=available_capacity),
            risk_reason=self.classify_reason(job, as_of=as_of, available_capacity=available_capacity),
            days_until_due=self.days_until_due(job, as_of),
            available_capacity=available_capacity,
        )

    def apply(
        self,
        job: Job,
        *,
        as_of: datetime,
        available_capacity: Optional[float] = None,
        hours_per_day: float = DEFAULT_HOURS_PER_DAY,
    ) -> Job:
        """Copy of ``job`` with ``risk_score`` and ``risk_reason`` filled in."""
        assessment = self.assess(
            job,
            as_of=as_of,
            available_capacity=available_capacity,
            hours_per_day=hours_per_day,
        )
        return job.model_copy(
            update={
                "risk_score": assessment.risk_score,
                "risk_reason": assessment.risk_reason,
            }
        )

    def rank(
        self,
        jobs: list[Job],
        *,
        as_of: datetime,
        hours_per_day: float = DEFAULT_HOURS_PER_DAY,
    ) -> list[Job]:
        """Scored copies of ``jobs``, highest risk first (stable for ties)."""
        scored = [self.apply(job, as_of=as_of, hours_per_day=hours_per_day) for job in jobs]
        scored.sort(key=lambda j: j.risk_score, reverse=True)
        logger.debug("Ranked %d jobs by risk", len(scored))
        return scored


# Singleton
risk_scorer = RiskScorer()
