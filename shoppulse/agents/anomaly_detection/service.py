"""
AnomalyDetectionAgent — Service Layer
Rolling-baseline checks on work-center throughput, queue depth and scrap rate.
Each check compares the latest sample with mean ± k·σ of the window.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

import numpy as np

from shoppulse.agents.anomaly_detection.schemas import AlertSeverity, AnomalyAlert, AnomalyType
from shoppulse.core.entities import WorkCenterMetric, to_utc

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_DAYS = 30
DEFAULT_STD_DEV_THRESHOLD = 2.0  # ~95% of a normal baseline

MIN_POINTS = 3
TREND_POINTS = 5

SLOWDOWN_HIGH_DEVIATION_PCT = 30.0
QUEUE_HIGH_DEVIATION_PCT = 50.0
SCRAP_HIGH_ABSOLUTE = 0.10


def _baseline(values: list[float]) -> tuple[float, float]:
    """Population mean and standard deviation."""
    arr = np.asarray(values, dtype=float)
    return float(arr.mean()), float(arr.std())


class AnomalyDetector:
    """Flags statistically abnormal work-center metrics."""

    def window(
        self,
        metrics: list[WorkCenterMetric],
        as_of: datetime,
        lookback_days: int = DEFAULT_LOOKBACK_DAYS,
    ) -> list[WorkCenterMetric]:
        """Metrics newer than ``as_of - lookback_days``, oldest first."""
        start = to_utc(as_of) - timedelta(days=lookback_days)
        recent = [m for m in metrics if m.metric_date > start]
        return sorted(recent, key=lambda m: m.metric_date)

    # ──────────────────────────────────────────────
    # Checks
    # ──────────────────────────────────────────────

    def check_slowdown(
        self,
        work_center: str,
        metrics: list[WorkCenterMetric],
        threshold: float,
    ) -> Optional[AnomalyAlert]:
        # Zero throughput is treated as a missing sample
        throughputs = [m.throughput or 0.0 for m in metrics]
        throughputs = [t for t in throughputs if t > 0]
        if len(throughputs) < MIN_POINTS:
            return None

        mean, std = _baseline(throughputs)
        latest = throughputs[-1]
        if std <= 0 or latest >= mean - threshold * std:
            return None

        deviation = (mean - latest) / mean * 100
        return AnomalyAlert(
            type=AnomalyType.SLOWDOWN,
            work_center=work_center,
            severity=AlertSeverity.HIGH if deviation > SLOWDOWN_HIGH_DEVIATION_PCT else AlertSeverity.MEDIUM,
            message=f"Work center {work_center} throughput is {deviation:.1f}% below historical average",
            metric_value=latest,
            historical_baseline=mean,
            deviation_percent=deviation,
        )

    def check_queue_buildup(
        self,
        work_center: str,
        metrics: list[WorkCenterMetric],
        threshold: float,
    ) -> Optional[AnomalyAlert]:
        depths = [float(m.queue_depth or 0) for m in metrics]
        if len(depths) < MIN_POINTS:
            return None

        mean, std = _baseline(depths)
        latest = depths[-1]

        # Single spikes that are already reverting do not count
        trend = depths[-TREND_POINTS:]
        is_increasing = all(curr >= prev for prev, curr in zip(trend, trend[1:]))

        if std <= 0 or latest <= mean + threshold * std or not is_increasing:
            return None

        deviation = (latest - mean) / max(mean, 1.0) * 100
        return AnomalyAlert(
            type=AnomalyType.QUEUE_BUILDUP,
            work_center=work_center,
            severity=AlertSeverity.HIGH if deviation > QUEUE_HIGH_DEVIATION_PCT else AlertSeverity.MEDIUM,
            message=f"Queue building on {work_center}: {latest:.0f} jobs (normally {mean:.0f})",
            metric_value=latest,
            historical_baseline=mean,
            deviation_percent=deviation,
        )

    def check_scrap_rate(
        self,
        work_center: str,
        metrics: list[WorkCenterMetric],
        threshold: float,
    ) -> Optional[AnomalyAlert]:
        rates = [m.scrap_rate or 0.0 for m in metrics]
        if len(rates) < MIN_POINTS:
            return None

        mean, std = _baseline(rates)
        latest = rates[-1]
        if std <= 0 or latest <= mean + threshold * std:
            return None

        deviation = (latest - mean) / max(mean, 0.001) * 100
        return AnomalyAlert(
            type=AnomalyType.UNUSUAL_PATTERN,
            work_center=work_center,
            severity=AlertSeverity.HIGH if latest > SCRAP_HIGH_ABSOLUTE else AlertSeverity.MEDIUM,
            message=f"Elevated scrap rate on {work_center}: {latest * 100:.1f}%",
            metric_value=latest,
            historical_baseline=mean,
            deviation_percent=deviation,
        )

    # ──────────────────────────────────────────────
    # Public API
    # ──────────────────────────────────────────────

    def detect(
        self,
        work_center: str,
        metrics: list[WorkCenterMetric],
        *,
        as_of: datetime,
        lookback_days: int = DEFAULT_LOOKBACK_DAYS,
        std_dev_threshold: float = DEFAULT_STD_DEV_THRESHOLD,
    ) -> list[AnomalyAlert]:
        """Run all three checks; each contributes at most one alert.

        Fewer than three samples in the window yields no alerts at all.
        """
        recent = self.window(metrics, as_of, lookback_days)
        if len(recent) < MIN_POINTS:
            logger.debug("Work center %s: %d metrics in window", work_center, len(recent))
            return []

        alerts = []
        for check in (self.check_slowdown, self.check_queue_buildup, self.check_scrap_rate):
            alert = check(work_center, recent, std_dev_threshold)
            if alert is not None:
                alerts.append(alert)

        for alert in alerts:
            logger.info(
                "Anomaly %s on %s (%s): %s",
                alert.type.value,
                work_center,
                alert.severity.value,
                alert.message,
            )
        return alerts

    def detect_all(
        self,
        metrics_by_work_center: dict[str, list[WorkCenterMetric]],
        *,
        as_of: datetime,
        lookback_days: int = DEFAULT_LOOKBACK_DAYS,
        std_dev_threshold: float = DEFAULT_STD_DEV_THRESHOLD,
    ) -> dict[str, list[AnomalyAlert]]:
        """``detect`` per work center, keeping only work centers with alerts."""
        results = {}
        for work_center, metrics in metrics_by_work_center.items():
            alerts = self.detect(
                work_center,
                metrics,
                as_of=as_of,
                lookback_days=lookback_days,
                std_dev_threshold=std_dev_threshold,
            )
            if alerts:
                results[work_center] = alerts
        return results


# Singleton
anomaly_detector = AnomalyDetector()
