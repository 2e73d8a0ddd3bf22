# agenda/core/middleware.py
"""Custom middleware for request handling"""
from contextvars import ContextVar
import logging
import time
import uuid

from starlette.requests import Request

logger = logging.getLogger(__name__)

# Read by the logging filter so service-level log lines carry the request id
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="-")

SLOW_REQUEST_MS = 1000


async def correlation_id_middleware(request: Request, call_next):
    """Tag the request (and every log line it produces) with a correlation ID"""
    correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
    request.state.correlation_id = correlation_id
    token = correlation_id_var.set(correlation_id)

    try:
        response = await call_next(request)
    finally:
        correlation_id_var.reset(token)

    response.headers["X-Correlation-ID"] = correlation_id
    return response


async def request_logging_middleware(request: Request, call_next):
    """One line per request; slow ones and server errors stand out"""
    start_time = time.perf_counter()
    response = await call_next(request)
    duration_ms = round((time.perf_counter() - start_time) * 1000, 2)

    client = request.client.host if request.client else "unknown"
    message = f"{request.method} {request.url.path} -> {response.status_code} in {duration_ms}ms ({client})"
    if response.status_code >= 500 or duration_ms > SLOW_REQUEST_MS:
        logger.warning(message)
    else:
        logger.info(message)

    return response
