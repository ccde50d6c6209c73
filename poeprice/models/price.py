from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .item import ItemDescription

PriceMode = Literal["lowest", "median"]


class PriceObservation(BaseModel):
    amount: float = Field(..., ge=0)
    currency: str = Field(..., min_length=1)


class PriceSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    min: PriceObservation | None = None
    median: PriceObservation | None = None
    max: PriceObservation | None = None
    sample: list[PriceObservation] = Field(default_factory=list, alias="results")
    total_results: int = Field(default=0, ge=0, alias="totalResults")


class SearchResult(BaseModel):
    result_ids: list[str]
    query_id: str
    total: int = Field(default=0, ge=0)


class PriceRequest(BaseModel):
    league: str | None = None
    item: ItemDescription | None = None
    mode: PriceMode | None = None


class PriceResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    price_info: PriceSummary = Field(..., alias="priceInfo")
    search_url: str = Field(..., alias="searchUrl")
