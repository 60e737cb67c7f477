"""
AnomalyDetectionAgent — FastAPI Router
REST endpoints: POST /detect, POST /detect_all
"""

from __future__ import annotations

from fastapi import APIRouter, status

from shoppulse.agents.anomaly_detection.schemas import AnomalyAlert, AnomalyRequest, BatchAnomalyRequest
from shoppulse.agents.anomaly_detection.service import anomaly_detector
from shoppulse.core.config import get_settings
from shoppulse.core.http import observe_request, resolve_as_of
from shoppulse.core.observability import ANOMALY_ALERT_COUNT

settings = get_settings()

router = APIRouter(prefix="/api/v1/anomalies", tags=["Anomaly Detection"])


def _count(alerts: list[AnomalyAlert]) -> None:
    for alert in alerts:
        ANOMALY_ALERT_COUNT.labels(alert_type=alert.type.value, severity=alert.severity.value).inc()


@router.post(
    "/detect",
    response_model=list[AnomalyAlert],
    status_code=status.HTTP_200_OK,
    summary="Detect throughput, queue and scrap anomalies for one work center",
)
async def detect(request: AnomalyRequest):
    with observe_request("anomaly_detection", "/detect"):
        alerts = anomaly_detector.detect(
            request.work_center,
            request.metrics,
            as_of=resolve_as_of(request.as_of),
            lookback_days=request.lookback_days or settings.anomaly_lookback_days,
            std_dev_threshold=request.std_dev_threshold or settings.anomaly_std_dev_threshold,
        )
        _count(alerts)
        return alerts


@router.post(
    "/detect_all",
    response_model=dict[str, list[AnomalyAlert]],
    summary="Detect anomalies across work centers; only those with alerts are returned",
)
async def detect_all(request: BatchAnomalyRequest):
    with observe_request("anomaly_detection", "/detect_all"):
        results = anomaly_detector.detect_all(
            request.metrics_by_work_center,
            as_of=resolve_as_of(request.as_of),
            lookback_days=request.lookback_days or settings.anomaly_lookback_days,
            std_dev_threshold=request.std_dev_threshold or settings.anomaly_std_dev_threshold,
        )
        for alerts in results.values():
            _count(alerts)
        return results
