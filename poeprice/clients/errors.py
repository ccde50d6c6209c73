from __future__ import annotations

import enum
import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any


class ErrorKind(str, enum.Enum):
    RATE_LIMITED = "rate_limited"
    UNKNOWN_ITEM = "unknown_item"
    INVALID_QUERY = "invalid_query"
    UNAVAILABLE = "unavailable"
    CLIENT_ERROR = "client_error"
    BAD_SHAPE = "bad_shape"


class TradeApiError(Exception):
    """Failure talking to the trade API."""

    kind: ErrorKind = ErrorKind.CLIENT_ERROR

    def __init__(self, message: str, status_code: int | None = None, kind: ErrorKind | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        if kind is not None:
            self.kind = kind


class RateLimited(TradeApiError):
    kind = ErrorKind.RATE_LIMITED

    def __init__(
        self, message: str, status_code: int | None = None, retry_after: float | None = None
    ) -> None:
        super().__init__(message, status_code)
        self.retry_after = retry_after


class QueryRejected(TradeApiError):
    """Structural rejection (unknown item, invalid query or another 4xx)."""


class UpstreamUnavailable(TradeApiError):
    kind = ErrorKind.UNAVAILABLE


class UnexpectedUpstreamShape(TradeApiError):
    kind = ErrorKind.BAD_SHAPE


@dataclass(frozen=True)
class Rule:
    kind: ErrorKind
    status: Callable[[int], bool] | None = None
    contains: str | None = None

    def matches(self, status: int, message: str) -> bool:
        if self.status is not None and not self.status(status):
            return False
        if self.contains is not None and self.contains.lower() not in message.lower():
            return False
        return True


# First match wins. Message rules precede the status fallbacks because the
# upstream reports several of them with a plain 400.
ERROR_RULES: tuple[Rule, ...] = (
    Rule(ErrorKind.RATE_LIMITED, status=lambda s: s == 429),
    Rule(ErrorKind.RATE_LIMITED, contains="Rate limit exceeded"),
    Rule(ErrorKind.UNKNOWN_ITEM, contains="Unknown item"),
    Rule(ErrorKind.INVALID_QUERY, contains="Invalid query"),
    Rule(ErrorKind.UNAVAILABLE, status=lambda s: s >= 500),
    Rule(ErrorKind.CLIENT_ERROR, status=lambda s: s >= 400),
)


def error_message(body: Any, text: str = "") -> str:
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
        if isinstance(err, str) and err:
            return err
    return text


def parse_body(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return None


def classify(status: int, body: Any, text: str = "") -> ErrorKind | None:
    """Map an upstream response to an ErrorKind, or None when it is not an error."""
    message = error_message(body, text)
    has_error_object = isinstance(body, dict) and body.get("error") is not None
    if status < 400 and not has_error_object:
        return None
    for rule in ERROR_RULES:
        if rule.matches(status, message):
            return rule.kind
    # 2xx carrying an error object the table doesn't know about
    return ErrorKind.CLIENT_ERROR


def to_exception(
    kind: ErrorKind, message: str, status_code: int | None, retry_after: float | None = None
) -> TradeApiError:
    if kind is ErrorKind.RATE_LIMITED:
        return RateLimited(message, status_code, retry_after=retry_after)
    if kind is ErrorKind.UNAVAILABLE:
        return UpstreamUnavailable(message, status_code)
    if kind is ErrorKind.BAD_SHAPE:
        return UnexpectedUpstreamShape(message, status_code)
    return QueryRejected(message, status_code, kind=kind)
