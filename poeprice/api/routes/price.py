from __future__ import annotations

from typing import Any

import pydantic
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from ...clients.errors import TradeApiError, UnexpectedUpstreamShape
from ...logging import get_logger
from ...models.price import PriceRequest
from ...services.pipeline import ValidationError, price_item

router = APIRouter(tags=["price"])
_log = get_logger()

HTTP_BAD_REQUEST = 400
HTTP_BAD_GATEWAY = 502
HTTP_INTERNAL_ERROR = 500


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


@router.post("/price", response_model=None)
async def price(request: Request) -> Any:
    """Price an item: `{league, item, mode?}` -> `{priceInfo, searchUrl}`.

    Upstream failures answer 502 so they never look like a zero-result price;
    a response the trade API should never send answers 500.
    """
    try:
        payload = await request.json()
    except ValueError:
        return _error(HTTP_BAD_REQUEST, "Request body must be JSON.")
    if not isinstance(payload, dict):
        return _error(HTTP_BAD_REQUEST, "Missing league or item in request body.")

    try:
        req = PriceRequest.model_validate(payload)
        res = await price_item(req.league, req.item, req.mode)
    except pydantic.ValidationError as exc:
        detail = exc.errors(include_url=False, include_context=False, include_input=False)
        return _error(HTTP_BAD_REQUEST, "Invalid request body.", detail=detail)
    except ValidationError as exc:
        return _error(HTTP_BAD_REQUEST, str(exc))
    except UnexpectedUpstreamShape as exc:
        _log.error("price_bad_upstream_shape", message=exc.message)
        return _error(HTTP_INTERNAL_ERROR, "Invalid search response from PoE API.", kind=exc.kind.value)
    except TradeApiError as exc:
        _log.error(
            "price_upstream_failed",
            kind=exc.kind.value,
            status_code=exc.status_code,
            message=exc.message,
        )
        return _error(HTTP_BAD_GATEWAY, exc.message, kind=exc.kind.value)
    except Exception as exc:
        _log.error("price_failed", error=str(exc), exc_info=True)
        return _error(HTTP_INTERNAL_ERROR, str(exc) or exc.__class__.__name__)

    return res.model_dump(mode="json", by_alias=True)
