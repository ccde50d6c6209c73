from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any

from ..models.item import ItemDescription, Mod

STAT_NAMESPACES = frozenset({"explicit", "implicit", "pseudo", "fractured", "crafted", "enchant"})

RARITY_TOKENS = {
    "normal": "normal",
    "magic": "magic",
    "rare": "rare",
    "unique": "unique",
}

INFLUENCE_FILTERS = {
    "Shaper": "shaper_item",
    "Elder": "elder_item",
    "Crusader": "crusader_item",
    "Redeemer": "redeemer_item",
    "Hunter": "hunter_item",
    "Warlord": "warlord_item",
}

_NUMBER_RE = re.compile(r"[-+]?\d+(?:\.\d+)?")


def is_filterable_stat(stat_id: str | None) -> bool:
    """`<namespace>.<rest>` with a known namespace and a non-empty rest."""
    if not stat_id:
        return False
    namespace, sep, rest = stat_id.partition(".")
    return bool(sep) and namespace in STAT_NAMESPACES and bool(rest)


def stat_bounds(display_text: str | None) -> tuple[float | None, float | None]:
    """First embedded number is the lower bound, second (if any) the upper bound."""
    if not display_text:
        return None, None
    nums = [float(m) for m in _NUMBER_RE.findall(display_text)[:2]]
    low = nums[0] if nums else None
    high = nums[1] if len(nums) > 1 else None
    return _tidy(low), _tidy(high)


def _tidy(x: float | None) -> float | None:
    if x is not None and x.is_integer():
        return int(x)
    return x


def stat_filters(mods: Iterable[Mod], with_values: bool = False) -> list[dict[str, Any]]:
    seen: set[str] = set()
    out: list[dict[str, Any]] = []
    for mod in mods:
        sid = mod.stat_id
        if sid is None or not is_filterable_stat(sid) or sid in seen:
            continue
        seen.add(sid)
        low, high = stat_bounds(mod.display_text) if with_values else (None, None)
        out.append({"id": sid, "disabled": False, "value": {"min": low, "max": high}})
    return out


def rarity_token(rarity: str) -> str:
    key = rarity.strip().lower()
    return RARITY_TOKENS.get(key, key)


def build_search_query(item: ItemDescription, with_values: bool = False) -> dict[str, Any]:
    """Translate an item description into a trade search document.

    The stats field always holds exactly one AND group; an empty group means
    "no stat filters".
    """
    query: dict[str, Any] = {"status": {"option": "online"}}

    if (item.rarity or "").lower() == "unique" and item.name:
        query["name"] = item.name
        if item.base_type:
            query["type"] = item.base_type
    elif item.base_type:
        query["type"] = item.base_type
    elif item.name:
        query["type"] = item.name

    type_filters: dict[str, Any] = {}
    if item.rarity:
        type_filters["rarity"] = {"option": rarity_token(item.rarity)}

    misc_filters: dict[str, Any] = {}
    if item.item_level is not None:
        misc_filters["ilvl"] = {"min": item.item_level}
    if item.quality is not None:
        misc_filters["quality"] = {"min": item.quality}
    for influence in item.influences:
        key = INFLUENCE_FILTERS.get(influence)
        if key:
            misc_filters[key] = {"option": "true"}

    filters: dict[str, Any] = {
        "type_filters": {"filters": type_filters},
        "misc_filters": {"filters": misc_filters},
    }
    if item.links is not None and item.links > 0:
        filters["socket_filters"] = {"filters": {"links": {"min": item.links}}}
    query["filters"] = filters

    mods = [*item.implicit_mods, *item.explicit_mods]
    query["stats"] = [{"type": "and", "filters": stat_filters(mods, with_values=with_values)}]

    return {"query": query, "sort": {"price": "asc"}}


# Accessors shared with the relaxation steps.


def has_stat_filters(doc: dict[str, Any]) -> bool:
    groups = doc.get("query", {}).get("stats") or []
    return any(g.get("filters") for g in groups)


def has_rarity_filter(doc: dict[str, Any]) -> bool:
    flt = doc.get("query", {}).get("filters", {})
    return "rarity" in flt.get("type_filters", {}).get("filters", {})


def has_level_or_link_filters(doc: dict[str, Any]) -> bool:
    flt = doc.get("query", {}).get("filters", {})
    return "ilvl" in flt.get("misc_filters", {}).get("filters", {}) or "socket_filters" in flt
