"""Structured logging middleware with correlation IDs."""
import structlog
import uuid
import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from typing import Any, Callable, Dict, Mapping
import time

from hippo.config import get_settings


# Configure structured logging
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        logging.getLevelName(get_settings().log_level.upper())
    ),
    context_class=dict,
    logger_factory=structlog.PrintLoggerFactory(),
    cache_logger_on_first_use=False
)

logger = structlog.get_logger()

# Path parameters worth carrying on every event of a request
RECORD_PATH_PARAMS = ("conversation_id", "loan_id", "user_id")


def record_ids(path_params: Mapping[str, Any]) -> Dict[str, str]:
    """Pick the conversation, loan and user ids out of a route's path parameters."""
    return {
        name: str(path_params[name])
        for name in RECORD_PATH_PARAMS
        if name in path_params
    }


def bind_record_ids(path_params: Mapping[str, Any]) -> Dict[str, str]:
    """Bind the request's record ids into the structlog context and return them."""
    ids = record_ids(path_params)
    if ids:
        structlog.contextvars.bind_contextvars(**ids)
    return ids


async def log_record_ids(request: Request) -> None:
    """
    Router dependency: registry and store events logged while serving a
    `/conversations/{conversation_id}/...` or `/loans/{loan_id}/...` route
    carry that id next to the trace_id.
    """
    bind_record_ids(request.path_params)


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add correlation IDs and log all requests.

    Adds a unique trace_id to each request so the store and registry events
    emitted while handling it can be grouped together. Completion and
    failure events also name the conversation or loan the route addressed.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        # Generate correlation ID
        trace_id = str(uuid.uuid4())
        request.state.trace_id = trace_id

        # Bind trace_id to structlog context
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(trace_id=trace_id)

        # Log request
        logger.info(
            "request_started",
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else None
        )

        # Process request and measure latency
        start_time = time.time()
        try:
            response = await call_next(request)
            latency_ms = int((time.time() - start_time) * 1000)

            # Log response; routing has filled in the path parameters by now
            logger.info(
                "request_completed",
                status_code=response.status_code,
                latency_ms=latency_ms,
                **record_ids(request.path_params)
            )

            # Add trace ID to response headers
            response.headers["X-Trace-ID"] = trace_id

            return response

        except Exception as e:
            latency_ms = int((time.time() - start_time) * 1000)

            # Log error
            logger.error(
                "request_failed",
                error=str(e),
                error_type=type(e).__name__,
                latency_ms=latency_ms,
                **record_ids(request.path_params)
            )
            raise


def get_logger():
    """Get configured structured logger."""
    return logger
