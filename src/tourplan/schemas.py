"""Pydantic schemas for timeline YAML data validation."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Union

from pydantic import AliasChoices, BaseModel, Field, field_validator

# Timestamps stay unparsed here; the engine treats bad values as "unscheduled"
RawTimestamp = Union[datetime, date, str, None]


class ItemSchema(BaseModel):
    """Schema for one timeline item."""

    id: str
    title: str
    type: str
    lane: str | None = None
    starts_at: RawTimestamp = Field(
        default=None, validation_alias=AliasChoices("starts_at", "startsAt")
    )
    ends_at: RawTimestamp = Field(
        default=None, validation_alias=AliasChoices("ends_at", "endsAt")
    )
    territory: str | None = None
    priority: int | None = None
    status: str | None = None
    labels: dict[str, Any] = Field(default_factory=dict)

    @field_validator("id", "title", "type", mode="before")
    @classmethod
    def coerce_required_to_string(cls, v: Any) -> Any:
        """Accept numeric ids and titles from YAML."""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("id")
    @classmethod
    def id_not_blank(cls, v: str) -> str:
        """Items must carry a usable id."""
        if not v.strip():
            raise ValueError("id must not be empty")
        return v.strip()

    @field_validator("territory", "lane", mode="before")
    @classmethod
    def coerce_optional_to_string(cls, v: Any) -> Any:
        """Convert scalar values to strings."""
        if v is None or isinstance(v, str):
            return v
        return str(v)

    @field_validator("labels", mode="before")
    @classmethod
    def labels_default(cls, v: Any) -> Any:
        """Treat a null labels block as empty."""
        return {} if v is None else v


class DependencySchema(BaseModel):
    """Schema for one dependency edge."""

    from_item_id: str = Field(validation_alias=AliasChoices("from", "from_item_id", "fromItemId"))
    to_item_id: str = Field(validation_alias=AliasChoices("to", "to_item_id", "toItemId"))
    kind: Any = None  # Coerced to FS/SS by the model; never rejected
    note: str | None = None
    id: str | None = None

    @field_validator("from_item_id", "to_item_id", mode="before")
    @classmethod
    def coerce_to_string(cls, v: Any) -> Any:
        """Accept numeric ids from YAML."""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class TimelineSchema(BaseModel):
    """Schema for the entire timeline YAML document."""

    project: str | None = None
    version: str = "1.0"
    items: list[ItemSchema] = Field(default_factory=list[ItemSchema])
    dependencies: list[DependencySchema] = Field(default_factory=list[DependencySchema])

    @field_validator("version", mode="before")
    @classmethod
    def coerce_version_to_string(cls, v: Any) -> str:
        """Ensure version is a string."""
        return str(v)

    @field_validator("items", "dependencies", mode="before")
    @classmethod
    def none_to_list(cls, v: Any) -> Any:
        """Treat an empty section as an empty list."""
        return [] if v is None else v
