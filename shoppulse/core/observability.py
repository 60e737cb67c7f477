"""
ShopPulse Risk Engine — Observability Setup
Structured logging (structlog), metrics (Prometheus), tracing (OpenTelemetry / OTLP).
"""

from __future__ import annotations

import logging
import sys

import structlog
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import Counter, Gauge, Histogram, Info

from shoppulse.core.config import get_settings

settings = get_settings()

# ── Prometheus Metrics ──
AGENT_REQUEST_COUNT = Counter(
    "shoppulse_agent_requests_total",
    "Total engine API requests",
    ["agent_name", "endpoint", "method", "status_code"],
)

AGENT_REQUEST_LATENCY = Histogram(
    "shoppulse_agent_request_latency_seconds",
    "Engine API request latency",
    ["agent_name", "endpoint"],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)

AGENT_HEALTH = Gauge(
    "shoppulse_agent_health",
    "Agent health status (1=healthy, 0=unhealthy)",
    ["agent_name"],
)

ANOMALY_ALERT_COUNT = Counter(
    "shoppulse_anomaly_alerts_total",
    "Work-center anomaly alerts emitted",
    ["alert_type", "severity"],
)

IMMEDIATE_ISSUE_COUNT = Counter(
    "shoppulse_immediate_issues_total",
    "Rule-based job issues emitted",
    ["severity"],
)

FORECAST_CONFIDENCE = Histogram(
    "shoppulse_forecast_confidence",
    "Confidence score of completion forecasts",
    buckets=[0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0],
)

APP_INFO = Info(
    "shoppulse_app",
    "ShopPulse application information",
)


def setup_tracing() -> None:
    """Configure OpenTelemetry distributed tracing with an OTLP exporter."""
    resource = Resource.create(
        {
            "service.name": settings.otel_service_name,
            "service.version": settings.app_version,
            "deployment.environment": settings.app_env.value,
        }
    )

    tracer_provider = TracerProvider(resource=resource)

    otlp_exporter = OTLPSpanExporter(
        endpoint=settings.otel_exporter_otlp_endpoint,
        insecure=not settings.is_production,
    )
    tracer_provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

    trace.set_tracer_provider(tracer_provider)


def setup_logging() -> None:
    """Configure structured logging with structlog."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer() if settings.is_production else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Engine modules log through the standard library
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stdout,
        level=level,
    )
    structlog.contextvars.bind_contextvars(
        service=settings.app_name,
        environment=settings.app_env.value,
    )


def instrument_fastapi(app) -> None:
    """Trace the engine endpoints; scrapes and health probes are not traced."""
    FastAPIInstrumentor.instrument_app(app, excluded_urls="metrics,health")


def setup_observability() -> None:
    """Initialize all observability components."""
    setup_logging()
    if settings.tracing_enabled:
        setup_tracing()

    APP_INFO.info(
        {
            "version": settings.app_version,
            "environment": settings.app_env.value,
        }
    )
