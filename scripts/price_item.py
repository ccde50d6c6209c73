from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from poeprice.clients.errors import TradeApiError
from poeprice.logging import configure_logging
from poeprice.models.item import ItemDescription
from poeprice.services.pipeline import ValidationError, price_item
from poeprice.services.query import build_search_query


async def main() -> int:
    ap = argparse.ArgumentParser(description="Price one item against the trade API")
    ap.add_argument("--league", required=True, help="League name e.g. Standard")
    ap.add_argument("--item", required=True, help="Path to item JSON ('-' for stdin)")
    ap.add_argument("--mode", choices=["median", "lowest"], default=None)
    ap.add_argument("--query-only", action="store_true", help="Print the search query and exit")
    ap.add_argument("--log-level", default="WARNING")
    args = ap.parse_args()

    configure_logging(args.log_level)

    raw = sys.stdin.read() if args.item == "-" else Path(args.item).read_text(encoding="utf-8")
    item = ItemDescription.model_validate(json.loads(raw))

    if args.query_only:
        print(json.dumps(build_search_query(item), indent=2))
        return 0

    try:
        res = await price_item(args.league, item, args.mode)
    except (ValidationError, TradeApiError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(res.model_dump(mode="json", by_alias=True), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
