from __future__ import annotations

from urllib.parse import quote

from ..clients import trade
from ..config import settings
from ..logging import bind_context, get_logger
from ..models.item import ItemDescription
from ..models.price import PriceResponse, PriceSummary
from .pricing import aggregate
from .query import build_search_query

_log = get_logger()

PRICE_MODES = ("median", "lowest")


class ValidationError(Exception):
    """The request is missing something the pipeline cannot do without."""


def search_url(league: str, query_id: str) -> str:
    return f"{settings.trade_site_url()}/search/{quote(league, safe='')}/{query_id}"


async def price_item(
    league: str | None, item: ItemDescription | None, mode: str | None = None
) -> PriceResponse:
    """Build query -> search -> fetch listings -> aggregate.

    Zero search hits short-circuit to an empty summary without a fetch; the
    search URL is returned either way.
    """
    if not league or not league.strip() or item is None:
        raise ValidationError("Missing league or item in request body.")
    if mode is not None and mode not in PRICE_MODES:
        raise ValidationError(f"Unknown mode {mode!r}; expected one of {', '.join(PRICE_MODES)}.")
    league = league.strip()

    with bind_context(league=league, mode=mode or "median"):
        query = build_search_query(item, with_values=settings.STAT_VALUE_BOUNDS)
        found = await trade.search(league, query)
        url = search_url(league, found.query_id)

        if not found.result_ids:
            _log.info("price_no_results", query_id=found.query_id)
            return PriceResponse(
                price_info=PriceSummary(total_results=found.total), search_url=url
            )

        listings = await trade.fetch_listings(found.query_id, found.result_ids)
        summary = aggregate(listings, mode=mode, total_results=found.total)
        _log.info(
            "price_computed",
            listings=len(listings),
            sampled=len(summary.sample),
            currency=summary.median.currency if summary.median else None,
            median=summary.median.amount if summary.median else None,
        )
        return PriceResponse(price_info=summary, search_url=url)
