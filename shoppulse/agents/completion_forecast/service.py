"""
CompletionForecastAgent — Service Layer
Extrapolates recent progress velocity to a completion date, with confidence
derived from how consistent the day-over-day velocity has been.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta

import numpy as np

from shoppulse.agents.completion_forecast.schemas import VELOCITY_METHOD, PredictionResult
from shoppulse.core.entities import Job, JobSnapshot, days_between, to_utc

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_DAYS = 7

# Minimum hours burned down over the window to count as progress
MIN_PROGRESS_HOURS = 0.1

CONFIDENCE_COMPLETE = 1.0
CONFIDENCE_INSUFFICIENT = 0.3
CONFIDENCE_TOO_CLOSE = 0.2
CONFIDENCE_NO_PROGRESS = 0.4
CONFIDENCE_DEFAULT = 0.8
CONFIDENCE_FLOOR = 0.5


class CompletionForecaster:
    """Velocity-based completion forecasting over a short lookback window."""

    # ──────────────────────────────────────────────
    # Step 1: Windowing
    # ──────────────────────────────────────────────

    def window(
        self,
        snapshots: list[JobSnapshot],
        as_of: datetime,
        lookback_days: int = DEFAULT_LOOKBACK_DAYS,
    ) -> list[JobSnapshot]:
        """Snapshots in ``(as_of - lookback_days, as_of]``, oldest first."""
        as_of = to_utc(as_of)
        start = as_of - timedelta(days=lookback_days)
        recent = [s for s in snapshots if start < s.snapshot_date <= as_of]
        return sorted(recent, key=lambda s: s.snapshot_date)

    # ──────────────────────────────────────────────
    # Step 2: Velocity consistency
    # ──────────────────────────────────────────────

    def pairwise_velocities(self, snapshots: list[JobSnapshot]) -> list[float]:
        """Hours burned per day between each consecutive pair of snapshots."""
        velocities = []
        for prev, curr in zip(snapshots, snapshots[1:]):
            day_diff = days_between(prev.snapshot_date, curr.snapshot_date)
            if day_diff > 0:
                velocities.append((prev.hours_to_go - curr.hours_to_go) / day_diff)
        return velocities

    def confidence_from_velocities(self, velocities: list[float]) -> float:
        """1 - CV of the pairwise velocities, floored at 0.5.

        With fewer than two pairwise velocities there is nothing to compare
        and the default confidence applies.
        """
        if len(velocities) < 2:
            return CONFIDENCE_DEFAULT

        mean = float(np.mean(velocities))
        std = float(np.std(velocities))
        cv = std / mean if mean > 0 else 1.0
        return max(CONFIDENCE_FLOOR, 1.0 - min(cv, 1.0))

    # ──────────────────────────────────────────────
    # Main Forecast Entry Point
    # ──────────────────────────────────────────────

    def forecast(
        self,
        job: Job,
        snapshots: list[JobSnapshot],
        *,
        as_of: datetime,
        lookback_days: int = DEFAULT_LOOKBACK_DAYS,
    ) -> PredictionResult:
        """Forecast completion for ``job``. Sparse data lowers confidence, never raises."""
        as_of = to_utc(as_of)

        if job.remaining_work <= 0:
            return PredictionResult(
                method=VELOCITY_METHOD,
                predicted_completion_date=as_of,
                predicted_lateness_days=0,
                confidence_score=CONFIDENCE_COMPLETE,
                basis="Job already complete",
            )

        recent = self.window(snapshots, as_of, lookback_days)
        if len(recent) < 2:
            logger.debug("Job %s: %d snapshots in window", job.job_id, len(recent))
            return PredictionResult(
                confidence_score=CONFIDENCE_INSUFFICIENT,
                basis="Insufficient historical data (need 2+ snapshots)",
                snapshots_used=len(recent),
            )

        first, last = recent[0], recent[-1]
        span_days = days_between(first.snapshot_date, last.snapshot_date)
        if span_days == 0:
            return PredictionResult(
                confidence_score=CONFIDENCE_TOO_CLOSE,
                basis="Snapshots too close together",
                snapshots_used=len(recent),
            )

        hours_completed = first.hours_to_go - last.hours_to_go
        velocity_per_day = hours_completed / span_days
        if hours_completed < MIN_PROGRESS_HOURS or velocity_per_day <= 0:
            days_to_completion = math.inf
        else:
            days_to_completion = job.remaining_work / velocity_per_day

        # A velocity too small to finish in finite time counts as no progress
        if not math.isfinite(days_to_completion):
            logger.debug("Job %s: no progress over %.1f days", job.job_id, span_days)
            return PredictionResult(
                confidence_score=CONFIDENCE_NO_PROGRESS,
                basis="No progress detected in recent period",
                snapshots_used=len(recent),
            )

        try:
            predicted_completion = as_of + timedelta(days=days_to_completion)
        except OverflowError:
            # Beyond the representable calendar; lateness is still computed
            predicted_completion = None

        basis = f"Velocity: {velocity_per_day:.1f} hrs/day over {span_days:.1f} days"
        if job.due_date is None:
            lateness_days = 0
            basis += " (no due date)"
        else:
            lateness_days = max(0, math.ceil(days_to_completion - days_between(as_of, job.due_date)))

        confidence = self.confidence_from_velocities(self.pairwise_velocities(recent))

        return PredictionResult(
            method=VELOCITY_METHOD,
            predicted_completion_date=predicted_completion,
            predicted_lateness_days=lateness_days,
            confidence_score=confidence,
            basis=basis,
            velocity_per_day=velocity_per_day,
            snapshots_used=len(recent),
        )


# Singleton
completion_forecaster = CompletionForecaster()
