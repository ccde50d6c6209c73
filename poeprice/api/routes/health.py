from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from ... import __version__

router = APIRouter()


@router.get("/", response_class=PlainTextResponse)
async def root() -> str:
    return "PoE Price Backend is running."


@router.get("/healthz")
async def healthz() -> dict[str, object]:
    return {"status": "ok", "version": __version__}
