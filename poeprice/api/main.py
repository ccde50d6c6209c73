from __future__ import annotations

from collections.abc import Callable
from typing import Any, cast

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.responses import Response

from .. import __version__
from ..config import settings
from ..logging import configure_logging, request_id_middleware
from .routes import health, price

HTTP_PAYLOAD_TOO_LARGE = 413


async def body_size_middleware(request: Request, call_next: Callable[[Request], Any]) -> Response:
    """Reject bodies larger than MAX_BODY_BYTES based on Content-Length."""
    length = request.headers.get("content-length")
    if length is not None and length.isdigit() and int(length) > settings.MAX_BODY_BYTES:
        return JSONResponse(
            status_code=HTTP_PAYLOAD_TOO_LARGE, content={"error": "Request body too large."}
        )
    return cast(Response, await call_next(request))


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="PoE Price Backend", version=__version__)

    origins = settings.cors_origins()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(body_size_middleware)
    app.middleware("http")(request_id_middleware)

    app.include_router(health.router)
    app.include_router(price.router)

    return app


app = create_app()
