from __future__ import annotations

import pytest
from fakes import listing

from poeprice.models.price import PriceObservation
from poeprice.services.pricing import (
    aggregate,
    dominant_currency,
    median_amount,
    parse_price,
    parse_prices,
    summarize_lowest,
    summarize_median,
    trim_outliers,
)


def _obs(amount: float, currency: str = "chaos") -> PriceObservation:
    return PriceObservation(amount=amount, currency=currency)


def test_parse_price_skips_unusable_records() -> None:
    assert parse_price(listing(5, "chaos")) == _obs(5)
    assert parse_price(listing("2.5", "divine")) == _obs(2.5, "divine")
    assert parse_price(listing("abc", "chaos")) is None
    assert parse_price(listing(None, "chaos")) is None
    assert parse_price(listing(-1, "chaos")) is None
    assert parse_price(listing(3, "")) is None
    assert parse_price(listing(3, "  ")) is None
    assert parse_price(listing(3, "exalted")) is None
    assert parse_price({"listing": {}}) is None
    assert parse_price({"id": "x"}) is None
    assert parse_price(None) is None


def test_supported_currencies_are_configurable() -> None:
    assert parse_price(listing(3, "exalted"), supported={"exalted"}) == _obs(3, "exalted")
    assert parse_price(listing(3, "chaos"), supported={"exalted"}) is None


def test_trimmed_median_on_eleven_values() -> None:
    prices = [_obs(x) for x in range(1, 12)]
    s = summarize_median(prices, total_results=11)
    assert s.min == _obs(2)
    assert s.max == _obs(10)
    assert s.median == _obs(6)
    assert s.total_results == 11
    assert len(s.sample) == 11


def test_trim_indices() -> None:
    assert trim_outliers([1.0] * 10) == [1.0] * 10
    twelve = [float(x) for x in range(12)]
    # floor(1.2)=1, ceil(10.8)=11
    assert trim_outliers(twelve) == twelve[1:11]


def test_empty_sample_is_all_absent() -> None:
    s = summarize_median([], total_results=57)
    assert s.min is None and s.median is None and s.max is None
    assert s.sample == []
    assert s.total_results == 57
    assert aggregate([], mode="lowest").median is None


def test_single_observation() -> None:
    s = summarize_median([_obs(42, "divine")])
    assert s.min == s.median == s.max == _obs(42, "divine")


def test_dominant_currency_wins_and_sample_keeps_everything() -> None:
    prices = [_obs(1, "divine")] * 3 + [_obs(x) for x in (30, 10, 20, 50, 40, 60, 70)]
    s = summarize_median(prices)
    assert s.median is not None and s.median.currency == "chaos"
    assert s.min == _obs(10)
    assert s.max == _obs(70)
    assert s.median == _obs(40)
    assert len(s.sample) == 10
    assert sum(1 for p in s.sample if p.currency == "divine") == 3


def test_dominance_ties() -> None:
    div_first = [_obs(1, "divine"), _obs(5), _obs(2, "divine"), _obs(6)]
    assert dominant_currency(div_first) == "chaos"
    assert dominant_currency(div_first, primary="divine") == "divine"
    assert dominant_currency([_obs(1, "divine"), _obs(1, "mirror")], primary="chaos") == "divine"
    assert dominant_currency([]) is None


def test_even_median_rounds_to_integer() -> None:
    assert median_amount([10.0, 12.0]) == 11
    assert median_amount([10.0, 11.0]) == 11
    assert median_amount([1.0, 2.0, 3.0, 4.0]) == 3
    assert median_amount([0.2, 0.4]) == 0
    assert median_amount([3.0]) == 3.0


def test_odd_median_keeps_fractional_price() -> None:
    assert median_amount([0.5, 1.5, 2.5]) == 1.5
    assert median_amount([0.25]) == 0.25


def test_lowest_mode_does_not_trim() -> None:
    prices = [_obs(x) for x in (11, 1, 9, 3, 5, 7, 2, 4, 6, 8, 10)]
    s = summarize_lowest(prices)
    assert s.min == _obs(1)
    assert s.max == _obs(11)
    assert s.median == _obs(6)


def test_aggregate_parses_and_dispatches_on_mode() -> None:
    listings = [listing(x, "chaos") for x in range(1, 12)] + [{"bad": True}]
    med = aggregate(listings, total_results=99)
    low = aggregate(listings, mode="lowest")
    assert (med.min, med.max) == (_obs(2), _obs(10))
    assert (low.min, low.max) == (_obs(1), _obs(11))
    assert med.total_results == 99
    assert len(parse_prices(listings)) == 11

    with pytest.raises(ValueError):
        aggregate(listings, mode="average")


def test_summary_serialises_with_wire_names() -> None:
    data = summarize_median([_obs(3)], total_results=1).model_dump(by_alias=True)
    assert set(data) == {"min", "median", "max", "results", "totalResults"}


def test_empty_summary_serialises_all_absent() -> None:
    data = aggregate([], total_results=7).model_dump(by_alias=True)
    assert data == {"min": None, "median": None, "max": None, "results": [], "totalResults": 7}
