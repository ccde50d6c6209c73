from __future__ import annotations

import copy
import enum
from dataclasses import dataclass, field
from typing import Any

from ..clients.errors import ErrorKind
from .query import has_level_or_link_filters, has_rarity_filter, has_stat_filters


class RelaxationStep(str, enum.Enum):
    DROP_RARITY = "drop_rarity"
    DROP_STATS = "drop_stats"
    DROP_LEVEL_AND_LINKS = "drop_level_and_links"


@dataclass(frozen=True)
class SearchState:
    """A search query plus the one-shot relaxations already applied to it.

    Transitions return new states; the wrapped document is never mutated.
    """

    query: dict[str, Any]
    steps_applied: frozenset[RelaxationStep] = field(default_factory=frozenset)

    def applied(self, step: RelaxationStep) -> bool:
        return step in self.steps_applied

    def with_step(self, step: RelaxationStep) -> SearchState:
        doc = copy.deepcopy(self.query)
        _APPLY[step](doc)
        return SearchState(query=doc, steps_applied=self.steps_applied | {step})


def _drop_rarity(doc: dict[str, Any]) -> None:
    doc["query"]["filters"]["type_filters"]["filters"].pop("rarity", None)


def _drop_stats(doc: dict[str, Any]) -> None:
    doc["query"]["stats"] = [{"type": "and", "filters": []}]


def _drop_level_and_links(doc: dict[str, Any]) -> None:
    filters = doc["query"]["filters"]
    filters.get("misc_filters", {}).get("filters", {}).pop("ilvl", None)
    filters.pop("socket_filters", None)


_APPLY = {
    RelaxationStep.DROP_RARITY: _drop_rarity,
    RelaxationStep.DROP_STATS: _drop_stats,
    RelaxationStep.DROP_LEVEL_AND_LINKS: _drop_level_and_links,
}


def next_step(state: SearchState, kind: ErrorKind) -> RelaxationStep | None:
    """Pick the relaxation that answers a rejection, or None when none is left."""
    if kind is ErrorKind.UNKNOWN_ITEM:
        if not state.applied(RelaxationStep.DROP_RARITY) and has_rarity_filter(state.query):
            return RelaxationStep.DROP_RARITY
        return None
    if kind is ErrorKind.INVALID_QUERY:
        if not state.applied(RelaxationStep.DROP_STATS) and has_stat_filters(state.query):
            return RelaxationStep.DROP_STATS
        if not state.applied(RelaxationStep.DROP_LEVEL_AND_LINKS) and has_level_or_link_filters(
            state.query
        ):
            return RelaxationStep.DROP_LEVEL_AND_LINKS
        return None
    return None


def relax(state: SearchState, kind: ErrorKind) -> SearchState | None:
    step = next_step(state, kind)
    return state.with_step(step) if step is not None else None
