from __future__ import annotations

import math
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from ..config import settings
from ..models.price import PriceMode, PriceObservation, PriceSummary

TRIM_MIN_SAMPLES = 10
TRIM_FRACTION = 0.1


def parse_price(
    listing: dict[str, Any] | None, supported: set[str] | None = None
) -> PriceObservation | None:
    """Extract `listing.price` from a fetched record; None when unusable."""
    if not isinstance(listing, dict):
        return None
    inner = listing.get("listing")
    price = inner.get("price") if isinstance(inner, dict) else None
    if not isinstance(price, dict):
        return None

    raw_amount = price.get("amount")
    if isinstance(raw_amount, bool):
        return None
    try:
        amount = float(raw_amount)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if math.isnan(amount) or math.isinf(amount) or amount < 0:
        return None

    currency = str(price.get("currency") or "").strip()
    if not currency:
        return None
    allowed = settings.supported_currencies() if supported is None else supported
    if currency not in allowed:
        return None
    return PriceObservation(amount=amount, currency=currency)


def parse_prices(
    listings: Iterable[dict[str, Any] | None], supported: set[str] | None = None
) -> list[PriceObservation]:
    out: list[PriceObservation] = []
    for rec in listings:
        obs = parse_price(rec, supported)
        if obs is not None:
            out.append(obs)
    return out


def dominant_currency(prices: Iterable[PriceObservation], primary: str | None = None) -> str | None:
    """Currency with the most observations.

    Ties go to the primary currency when it is among them, else to whichever
    tied currency showed up first.
    """
    counts: dict[str, int] = {}
    for p in prices:
        counts[p.currency] = counts.get(p.currency, 0) + 1
    if not counts:
        return None
    best = max(counts.values())
    tied = [cur for cur, n in counts.items() if n == best]
    primary = settings.PRIMARY_CURRENCY if primary is None else primary
    if primary in tied:
        return primary
    return tied[0]


def trim_outliers(amounts: list[float]) -> list[float]:
    """Drop the lowest and highest 10% of a sorted series once it exceeds 10 values."""
    n = len(amounts)
    if n <= TRIM_MIN_SAMPLES:
        return amounts
    start = math.floor(n * TRIM_FRACTION)
    end = math.ceil(n * (1.0 - TRIM_FRACTION))
    return amounts[start:end]


def round_half_up(x: float) -> float:
    return float(Decimal(str(x)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def median_amount(amounts: list[float]) -> float:
    n = len(amounts)
    mid = n // 2
    if n % 2 == 1:
        # an observed price; only the even-length mean is rounded
        return amounts[mid]
    return round_half_up((amounts[mid - 1] + amounts[mid]) / 2)


def _summary(
    amounts: list[float], currency: str, sample: list[PriceObservation], total_results: int
) -> PriceSummary:
    return PriceSummary(
        min=PriceObservation(amount=amounts[0], currency=currency),
        median=PriceObservation(amount=median_amount(amounts), currency=currency),
        max=PriceObservation(amount=amounts[-1], currency=currency),
        sample=sample,
        total_results=total_results,
    )


def summarize_median(prices: list[PriceObservation], total_results: int = 0) -> PriceSummary:
    """Dominant currency, trimmed by 10% per tail when there are more than 10 prices."""
    currency = dominant_currency(prices)
    if currency is None:
        return PriceSummary(total_results=total_results)
    amounts = sorted(p.amount for p in prices if p.currency == currency)
    return _summary(trim_outliers(amounts), currency, list(prices), total_results)


def summarize_lowest(prices: list[PriceObservation], total_results: int = 0) -> PriceSummary:
    """Dominant currency, untrimmed, strict ascending order."""
    currency = dominant_currency(prices)
    if currency is None:
        return PriceSummary(total_results=total_results)
    amounts = sorted(p.amount for p in prices if p.currency == currency)
    return _summary(amounts, currency, list(prices), total_results)


_MODES = {
    "median": summarize_median,
    "lowest": summarize_lowest,
}


def aggregate(
    listings: Iterable[dict[str, Any] | None],
    mode: PriceMode | str | None = None,
    total_results: int = 0,
) -> PriceSummary:
    fn = _MODES.get(mode or "median")
    if fn is None:
        raise ValueError(f"unknown price mode: {mode!r}")
    return fn(parse_prices(listings), total_results)
