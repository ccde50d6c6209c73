from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def _lenient_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _lenient_str(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


class Mod(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    stat_id: str | None = Field(default=None, alias="statId")
    display_text: str | None = Field(
        default=None, validation_alias=AliasChoices("displayText", "text", "display_text")
    )

    @field_validator("stat_id", "display_text", mode="before")
    @classmethod
    def _strings_only(cls, v: Any) -> str | None:
        return _lenient_str(v)


class ItemDescription(BaseModel):
    """Item as sent by the client (clipboard parser / overlay).

    Every field is optional; a missing field never becomes a filter.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str | None = None
    base_type: str | None = Field(default=None, alias="baseType")
    rarity: str | None = None
    item_level: int | None = Field(default=None, alias="itemLevel")
    quality: int | None = None
    links: int | None = None
    influences: list[str] = Field(default_factory=list)
    implicit_mods: list[Mod] = Field(
        default_factory=list,
        validation_alias=AliasChoices("implicitMods", "implicits", "implicit_mods"),
    )
    explicit_mods: list[Mod] = Field(
        default_factory=list,
        validation_alias=AliasChoices("explicitMods", "explicits", "explicit_mods"),
    )

    @field_validator("name", "base_type", "rarity", mode="before")
    @classmethod
    def _strings(cls, v: Any) -> str | None:
        return _lenient_str(v)

    @field_validator("item_level", "quality", "links", mode="before")
    @classmethod
    def _ints(cls, v: Any) -> int | None:
        return _lenient_int(v)

    @field_validator("influences", mode="before")
    @classmethod
    def _influences(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            return []
        return [x for x in v if isinstance(x, str)]

    @field_validator("implicit_mods", "explicit_mods", mode="before")
    @classmethod
    def _mods(cls, v: Any) -> list[Any]:
        if not isinstance(v, list):
            return []
        return [m for m in v if isinstance(m, (dict, Mod))]
