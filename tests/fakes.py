from __future__ import annotations

import copy
import json
from collections.abc import Awaitable, Callable
from typing import Any


class FakeResponse:
    def __init__(
        self,
        payload: Any = None,
        status_code: int = 200,
        text: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.status_code = status_code
        self.text = text if text is not None else json.dumps(payload)
        self.headers = headers or {}


class FakeClient:
    """Stands in for httpx.AsyncClient; records every call."""

    def __init__(
        self,
        on_post: Callable[[str, dict[str, Any]], Awaitable[FakeResponse]] | None = None,
        on_get: Callable[[str, dict[str, str] | None], Awaitable[FakeResponse]] | None = None,
    ) -> None:
        self._on_post = on_post
        self._on_get = on_get
        self.posts: list[tuple[str, dict[str, Any]]] = []
        self.gets: list[tuple[str, dict[str, str] | None]] = []

    async def __aenter__(self) -> "FakeClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: D401
        return None

    async def post(self, url: str, json: dict[str, Any]) -> FakeResponse:
        body = copy.deepcopy(json)
        self.posts.append((url, body))
        assert self._on_post is not None, "unexpected POST"
        return await self._on_post(url, body)

    async def get(self, url: str, params: dict[str, str] | None = None) -> FakeResponse:
        self.gets.append((url, dict(params) if params else None))
        assert self._on_get is not None, "unexpected GET"
        return await self._on_get(url, params)

    @property
    def calls(self) -> int:
        return len(self.posts) + len(self.gets)


def listing(amount: Any, currency: Any) -> dict[str, Any]:
    price = {"amount": amount, "currency": currency}
    return {"id": f"{amount}-{currency}", "listing": {"price": price}}
