from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import Any
from urllib.parse import quote

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)
from tenacity.wait import wait_base

from ..config import settings
from ..logging import get_logger
from ..models.price import SearchResult
from ..services.relaxation import SearchState, next_step
from .errors import (
    ErrorKind,
    QueryRejected,
    RateLimited,
    TradeApiError,
    UnexpectedUpstreamShape,
    UpstreamUnavailable,
    classify,
    error_message,
    parse_body,
    to_exception,
)

_log = get_logger()
HTTP_BAD_REQUEST = 400


class _Relaxed(QueryRejected):
    """The attempt was rejected and the query has been loosened for the next one."""


class _search_wait(wait_base):
    """Escalating pause on rate limits, short pause before a relaxed retry."""

    def __init__(self) -> None:
        self.rate_hits = 0
        self.last_rate_wait = 0.0

    def __call__(self, retry_state: RetryCallState) -> float:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        if isinstance(exc, RateLimited):
            self.rate_hits += 1
            wait = min(settings.SEARCH_RATE_LIMIT_WAIT * self.rate_hits, settings.SEARCH_RATE_LIMIT_WAIT_MAX)
            # the server's Retry-After wins over the local cap
            if exc.retry_after:
                wait = max(wait, exc.retry_after)
            wait = max(wait, self.last_rate_wait)
            self.last_rate_wait = wait
            return wait
        return settings.SEARCH_RELAX_WAIT


def _search_retryer(wait: _search_wait) -> AsyncRetrying:
    return AsyncRetrying(
        reraise=True,
        stop=stop_after_attempt(settings.SEARCH_MAX_ATTEMPTS),
        wait=wait,
        retry=retry_if_exception_type((RateLimited, _Relaxed)),
    )


def _fetch_retryer() -> AsyncRetrying:
    return AsyncRetrying(
        reraise=True,
        stop=stop_after_attempt(settings.FETCH_MAX_ATTEMPTS),
        wait=wait_incrementing(start=settings.FETCH_BACKOFF, increment=settings.FETCH_BACKOFF),
        retry=retry_if_exception_type((RateLimited, UpstreamUnavailable)),
    )


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.trade_api_base(),
        timeout=httpx.Timeout(settings.HTTP_TIMEOUT),
        headers={"User-Agent": settings.USER_AGENT, "Accept": "application/json"},
        http2=True,
    )


def _retry_after(resp: Any) -> float | None:
    raw = getattr(resp, "headers", {}).get("Retry-After")
    try:
        return float(raw) if raw is not None else None
    except (TypeError, ValueError):
        return None


def _error_from(resp: Any, kind: ErrorKind, body: Any, text: str) -> TradeApiError:
    message = error_message(body, text)[:300] or f"HTTP {resp.status_code}"
    return to_exception(kind, message, resp.status_code, _retry_after(resp))


async def _send(client: Any, method: str, path: str, **kwargs: Any) -> Any:
    try:
        if method == "POST":
            return await client.post(path, **kwargs)
        return await client.get(path, **kwargs)
    except httpx.TimeoutException as exc:
        raise UpstreamUnavailable(f"trade API timed out: {exc!r}") from exc
    except httpx.TransportError as exc:
        raise UpstreamUnavailable(f"trade API unreachable: {exc!r}") from exc


def _search_result(body: Any, status_code: int) -> SearchResult:
    if not isinstance(body, dict):
        raise UnexpectedUpstreamShape("search response is not a JSON object", status_code)
    ids = body.get("result")
    query_id = body.get("id")
    if not isinstance(ids, list) or not query_id:
        raise UnexpectedUpstreamShape("search response lacks result/id", status_code)
    try:
        total = max(0, int(body.get("total") or 0))
    except (TypeError, ValueError):
        total = 0
    return SearchResult(
        result_ids=[str(x) for x in ids[: settings.RESULT_LIMIT]],
        query_id=str(query_id),
        total=total,
    )


async def search(league: str, query: dict[str, Any]) -> SearchResult:
    """Run a trade search, loosening the query when the upstream rejects it.

    - rate limited: wait (escalating) and resend the same query
    - "Unknown item": drop the rarity filter once
    - "Invalid query": drop the stat group, then item level + links, once each
    - anything else, or running out of attempts: raise
    """
    path = f"/search/{quote(league, safe='')}"
    state = SearchState(query=query)
    waiter = _search_wait()

    async with _client() as client:
        async for attempt in _search_retryer(waiter):
            with attempt:
                resp = await _send(client, "POST", path, json=state.query)
                text = resp.text
                body = parse_body(text)
                kind = classify(resp.status_code, body, text)
                if kind is None:
                    result = _search_result(body, resp.status_code)
                    _log.info(
                        "trade_search_ok",
                        league=league,
                        query_id=result.query_id,
                        total=result.total,
                        returned=len(result.result_ids),
                        relaxed=sorted(s.value for s in state.steps_applied),
                    )
                    return result

                err = _error_from(resp, kind, body, text)
                if isinstance(err, RateLimited):
                    _log.warning(
                        "trade_search_rate_limited",
                        league=league,
                        attempt=attempt.retry_state.attempt_number,
                        retry_after=err.retry_after,
                    )
                    raise err

                step = next_step(state, kind)
                if step is not None:
                    _log.warning(
                        "trade_search_relaxed",
                        league=league,
                        reason=kind.value,
                        step=step.value,
                        message=err.message,
                    )
                    state = state.with_step(step)
                    raise _Relaxed(err.message, err.status_code, kind=kind)

                _log.warning(
                    "trade_search_failed",
                    league=league,
                    kind=kind.value,
                    status_code=err.status_code,
                    message=err.message,
                )
                raise err

    raise UpstreamUnavailable("trade search attempts exhausted")


def _chunks(seq: Iterable[str], size: int) -> Iterable[list[str]]:
    buf: list[str] = []
    for x in seq:
        buf.append(x)
        if len(buf) >= size:
            yield buf
            buf = []
    if buf:
        yield buf


def _listings(body: Any, status_code: int) -> list[dict[str, Any]]:
    result = body.get("result") if isinstance(body, dict) else None
    if not isinstance(result, list):
        raise UnexpectedUpstreamShape("fetch response lacks result list", status_code)
    return [r for r in result if isinstance(r, dict)]


async def _fetch_chunk(client: Any, query_id: str, ids: list[str]) -> list[dict[str, Any]]:
    path = f"/fetch/{','.join(ids)}"
    params: dict[str, str] | None = {"query": query_id}

    async for attempt in _fetch_retryer():
        with attempt:
            resp = await _send(client, "GET", path, params=params)
            text = resp.text
            body = parse_body(text)
            kind = classify(resp.status_code, body, text)

            if (
                kind is ErrorKind.INVALID_QUERY
                and resp.status_code == HTTP_BAD_REQUEST
                and params is not None
            ):
                _log.warning("trade_fetch_fallback_no_query", query_id=query_id, ids=len(ids))
                params = None
                await asyncio.sleep(settings.FETCH_FALLBACK_WAIT)
                resp = await _send(client, "GET", path, params=params)
                text = resp.text
                body = parse_body(text)
                kind = classify(resp.status_code, body, text)

            if kind is None:
                return _listings(body, resp.status_code)

            err = _error_from(resp, kind, body, text)
            if isinstance(err, (RateLimited, UpstreamUnavailable)):
                _log.warning(
                    "trade_fetch_retry",
                    kind=kind.value,
                    status_code=err.status_code,
                    attempt=attempt.retry_state.attempt_number,
                )
                raise err

            # Remaining client errors mean "no usable listings", not a failure.
            _log.warning(
                "trade_fetch_no_listings",
                kind=kind.value,
                status_code=err.status_code,
                message=err.message,
            )
            return []

    raise UpstreamUnavailable("trade fetch attempts exhausted")


async def fetch_listings(query_id: str, result_ids: list[str]) -> list[dict[str, Any]]:
    """Fetch listing records for result ids, in order, in chunks the API accepts."""
    if not result_ids:
        return []

    out: list[dict[str, Any]] = []
    async with _client() as client:
        for group in _chunks(result_ids, settings.FETCH_CHUNK_SIZE):
            out.extend(await _fetch_chunk(client, query_id, group))

    _log.info("trade_fetch_ok", query_id=query_id, requested=len(result_ids), listings=len(out))
    return out
