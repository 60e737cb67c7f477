"""
CompletionForecastAgent — FastAPI Router
REST endpoints: POST /completion
"""

from __future__ import annotations

from fastapi import APIRouter, status

from shoppulse.agents.completion_forecast.schemas import ForecastRequest, PredictionResult
from shoppulse.agents.completion_forecast.service import completion_forecaster
from shoppulse.core.config import get_settings
from shoppulse.core.http import observe_request, resolve_as_of
from shoppulse.core.observability import FORECAST_CONFIDENCE

settings = get_settings()

router = APIRouter(
    prefix="/api/v1/forecast",
    tags=["Completion Forecast"],
)


@router.post(
    "/completion",
    response_model=PredictionResult,
    status_code=status.HTTP_200_OK,
    summary="Forecast a job's completion date from recent velocity",
    description="Extrapolates hours burned per day over the lookback window. "
                "Sparse or stalled histories return a low-confidence result with an explanation.",
)
async def forecast_completion(request: ForecastRequest):
    with observe_request("completion_forecast", "/completion"):
        result = completion_forecaster.forecast(
            request.job,
            request.snapshots,
            as_of=resolve_as_of(request.as_of),
            lookback_days=request.lookback_days or settings.forecast_lookback_days,
        )
        FORECAST_CONFIDENCE.observe(result.confidence_score)
        return result
