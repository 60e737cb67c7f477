"""
ImmediateIssueAgent — Schemas, Service & Router
Cheap rule checks on a job and its two latest snapshots: stalled, already late,
due soon with significant work remaining.
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel

from shoppulse.core.entities import Job, JobSnapshot, days_between, to_utc
from shoppulse.core.http import observe_request, resolve_as_of
from shoppulse.core.observability import IMMEDIATE_ISSUE_COUNT

logger = logging.getLogger(__name__)

LATE_STATUSES = frozenset({"Late", "LATE"})
STALL_MIN_DAYS = 1.0
STALL_MAX_HOURS_COMPLETED = 0.5
EXPIRING_WITHIN_DAYS = 3.0
EXPIRING_MIN_REMAINING_WORK = 10.0


# ── Schemas ──

class IssueSeverity(str, Enum):
    WARNING = "warning"
    CRITICAL = "critical"


class IssueKind(str, Enum):
    STALLED = "stalled"
    LATE = "late"
    EXPIRING_SOON = "expiring_soon"


class Issue(BaseModel):
    issue: str
    severity: IssueSeverity
    kind: IssueKind


class IssueRequest(BaseModel):
    job: Job
    latest_snapshot: Optional[JobSnapshot] = None
    previous_snapshot: Optional[JobSnapshot] = None
    as_of: Optional[datetime] = None


# ── Service ──

class ImmediateIssueDetector:
    """Deterministic rules; several issues may fire for one job."""

    def _stalled(
        self,
        job: Job,
        latest: Optional[JobSnapshot],
        previous: Optional[JobSnapshot],
    ) -> Optional[Issue]:
        if latest is None or previous is None:
            return None
        hours_completed = previous.hours_to_go - latest.hours_to_go
        elapsed = days_between(previous.snapshot_date, latest.snapshot_date)
        if elapsed >= STALL_MIN_DAYS and hours_completed < STALL_MAX_HOURS_COMPLETED:
            return Issue(
                issue=f"No progress on job {job.job_id} in {elapsed:.1f} days - stalled?",
                severity=IssueSeverity.CRITICAL,
                kind=IssueKind.STALLED,
            )
        return None

    def _late(self, job: Job) -> Optional[Issue]:
        if job.status not in LATE_STATUSES:
            return None
        due = job.due_date.date().isoformat() if job.due_date else "unknown"
        return Issue(
            issue=f"Job {job.job_id} is LATE - due {due}",
            severity=IssueSeverity.CRITICAL,
            kind=IssueKind.LATE,
        )

    def _expiring_soon(self, job: Job, as_of: datetime) -> Optional[Issue]:
        if job.due_date is None:
            return None
        days_until_due = days_between(as_of, job.due_date)
        if 0 < days_until_due <= EXPIRING_WITHIN_DAYS and job.remaining_work > EXPIRING_MIN_REMAINING_WORK:
            return Issue(
                issue=(
                    f"Job {job.job_id} due in {days_until_due:.1f} days "
                    f"with {job.remaining_work:g} hours remaining"
                ),
                severity=IssueSeverity.CRITICAL,
                kind=IssueKind.EXPIRING_SOON,
            )
        return None

    def detect_issues(
        self,
        job: Job,
        latest_snapshot: Optional[JobSnapshot],
        previous_snapshot: Optional[JobSnapshot],
        *,
        as_of: datetime,
    ) -> list[Issue]:
        as_of = to_utc(as_of)
        candidates = (
            self._stalled(job, latest_snapshot, previous_snapshot),
            self._late(job),
            self._expiring_soon(job, as_of),
        )
        issues = [issue for issue in candidates if issue is not None]
        for issue in issues:
            logger.info("Job %s: %s issue", job.job_id, issue.kind.value)
        return issues


immediate_issue_detector = ImmediateIssueDetector()

# ── Router ──

router = APIRouter(prefix="/api/v1/issues", tags=["Immediate Issues"])


@router.post("/detect", response_model=list[Issue], summary="Rule-based issue checks for one job")
async def detect_issues(request: IssueRequest):
    with observe_request("immediate_issues", "/detect"):
        issues = immediate_issue_detector.detect_issues(
            request.job,
            request.latest_snapshot,
            request.previous_snapshot,
            as_of=resolve_as_of(request.as_of),
        )
        for issue in issues:
            IMMEDIATE_ISSUE_COUNT.labels(severity=issue.severity.value).inc()
        return issues
