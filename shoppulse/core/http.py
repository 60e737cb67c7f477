"""
ShopPulse Risk Engine — HTTP Adapter Helpers
Request accounting and clock resolution shared by the agent routers.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional

from fastapi import HTTPException

from shoppulse.core.entities import to_utc
from shoppulse.core.observability import AGENT_REQUEST_COUNT, AGENT_REQUEST_LATENCY

logger = logging.getLogger(__name__)


def resolve_as_of(as_of: Optional[datetime]) -> datetime:
    """The evaluation instant for a request: the supplied value, else now (UTC)."""
    if as_of is None:
        return datetime.now(timezone.utc)
    return to_utc(as_of)


@contextmanager
def observe_request(agent_name: str, endpoint: str, method: str = "POST") -> Iterator[None]:
    """Count the request by outcome and record its latency.

    Unexpected exceptions are logged and re-raised as HTTP 500.
    """
    start = time.monotonic()
    try:
        yield
        AGENT_REQUEST_COUNT.labels(
            agent_name=agent_name, endpoint=endpoint,
            method=method, status_code="200",
        ).inc()
    except HTTPException as e:
        AGENT_REQUEST_COUNT.labels(
            agent_name=agent_name, endpoint=endpoint,
            method=method, status_code=str(e.status_code),
        ).inc()
        raise
    except Exception as e:
        AGENT_REQUEST_COUNT.labels(
            agent_name=agent_name, endpoint=endpoint,
            method=method, status_code="500",
        ).inc()
        logger.exception("Request to %s%s failed", agent_name, endpoint)
        raise HTTPException(status_code=500, detail=str(e)) from e
    finally:
        AGENT_REQUEST_LATENCY.labels(
            agent_name=agent_name, endpoint=endpoint,
        ).observe(time.monotonic() - start)
