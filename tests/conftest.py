from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from poeprice.api.main import create_app
from poeprice.config import settings


@pytest.fixture(autouse=True)
def _no_waits(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    # Keep retry/backoff paths instant in tests
    monkeypatch.setattr(settings, "SEARCH_RATE_LIMIT_WAIT", 0.0)
    monkeypatch.setattr(settings, "SEARCH_RATE_LIMIT_WAIT_MAX", 0.0)
    monkeypatch.setattr(settings, "SEARCH_RELAX_WAIT", 0.0)
    monkeypatch.setattr(settings, "FETCH_BACKOFF", 0.0)
    monkeypatch.setattr(settings, "FETCH_FALLBACK_WAIT", 0.0)
    yield


@pytest.fixture()
def client() -> Iterator[TestClient]:
    app = create_app()
    with TestClient(app) as c:
        yield c
