"""
ShopPulse Risk Engine — Main FastAPI Application
Thin HTTP adapter over the predictive-risk engine: risk scoring, completion
forecasting, work-center anomaly detection and immediate issue checks.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from shoppulse.core.config import get_settings
from shoppulse.core.observability import (
    AGENT_HEALTH,
    instrument_fastapi,
    setup_observability,
)

logger = logging.getLogger(__name__)
settings = get_settings()

AGENTS = [
    {"name": "RiskScoringAgent", "key": "risk_scoring", "prefix": "/api/v1/risk"},
    {"name": "CompletionForecastAgent", "key": "completion_forecast", "prefix": "/api/v1/forecast"},
    {"name": "AnomalyDetectionAgent", "key": "anomaly_detection", "prefix": "/api/v1/anomalies"},
    {"name": "ImmediateIssueAgent", "key": "immediate_issues", "prefix": "/api/v1/issues"},
    {"name": "JobEnrichmentAgent", "key": "job_enrichment", "prefix": "/api/v1/jobs"},
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup & shutdown hooks."""
    setup_observability()

    # The engine is stateless; every agent is healthy once imported
    for agent in AGENTS:
        AGENT_HEALTH.labels(agent_name=agent["key"]).set(1)

    yield

    for agent in AGENTS:
        AGENT_HEALTH.labels(agent_name=agent["key"]).set(0)


def create_app() -> FastAPI:
    """Application factory."""
    app = FastAPI(
        title="ShopPulse Risk Engine",
        version=settings.app_version,
        description=(
            "Decision-support signals for manufacturing work orders: "
            "risk scores, completion forecasts, work-center anomaly alerts "
            "and immediate rule-based issues."
        ),
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Middleware ──
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )

    # ── Error Handlers ──
    @app.exception_handler(Exception)
    async def unhandled_engine_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Internal Server Error",
                "detail": str(exc) if settings.debug else "Risk engine failed to evaluate the request",
                "path": request.url.path,
            },
        )

    # ── Register Agent Routers ──
    from shoppulse.agents.anomaly_detection.router import router as anomaly_router
    from shoppulse.agents.completion_forecast.router import router as forecast_router
    from shoppulse.agents.immediate_issues.agent import router as issues_router
    from shoppulse.agents.job_enrichment.agent import router as enrichment_router
    from shoppulse.agents.risk_scoring.router import router as risk_router

    app.include_router(risk_router)
    app.include_router(forecast_router)
    app.include_router(anomaly_router)
    app.include_router(issues_router)
    app.include_router(enrichment_router)

    # ── Prometheus exposition ──
    app.mount("/metrics", make_asgi_app())

    # ── Health & Root ──
    @app.get("/", tags=["System"])
    async def root():
        return {
            "service": "ShopPulse Risk Engine",
            "version": settings.app_version,
            "status": "operational",
            "agents": len(AGENTS),
            "docs": "/docs",
        }

    @app.get("/health", tags=["System"])
    async def health():
        return {
            "status": "healthy",
            "version": settings.app_version,
            "environment": settings.app_env.value,
            "agents": [agent["key"] for agent in AGENTS],
        }

    @app.get("/agents", tags=["System"])
    async def list_agents():
        return {
            "agents": [
                {"name": agent["name"], "prefix": agent["prefix"], "status": "active"}
                for agent in AGENTS
            ],
        }

    # Instrument with OpenTelemetry
    instrument_fastapi(app)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "shoppulse.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
