from __future__ import annotations

import time
import uuid
from collections.abc import Callable
from typing import Any, cast

import structlog
from fastapi import Request
from starlette.responses import Response

from .config import settings

_LEVELS = {
    "CRITICAL": 50,
    "ERROR": 40,
    "WARNING": 30,
    "WARN": 30,
    "INFO": 20,
    "DEBUG": 10,
    "NOTSET": 0,
}


def configure_logging(level: str | None = None) -> None:
    """JSON lines on stdout; request-scoped context comes from structlog contextvars."""
    numeric = _LEVELS.get((level or settings.LOG_LEVEL).strip().upper(), 20)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_context(**values: Any) -> Any:
    """Context manager adding `values` to every log line emitted inside it."""
    return structlog.contextvars.bound_contextvars(**values)


async def request_id_middleware(request: Request, call_next: Callable[[Request], Any]) -> Response:
    rid = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    start = time.perf_counter()
    with bind_context(request_id=rid):
        response = cast(Response, await call_next(request))
        structlog.get_logger().info(
            "request",
            method=request.method,
            path=request.url.path,
            status_code=getattr(response, "status_code", 0),
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
    response.headers["X-Request-ID"] = rid
    return response


def get_logger() -> Any:
    return structlog.get_logger()
