"""Data models for Tourplan."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Union

# Raw timestamp as supplied by the item source; resolved by the engine
TimestampValue = Union[str, datetime, date, None]


class ItemType(str, Enum):
    """Semantic category of a schedulable item."""

    LIVE_HOLD = "live_hold"
    TRAVEL_SEGMENT = "travel_segment"
    PROMO_SLOT = "promo_slot"
    RELEASE_MILESTONE = "release_milestone"
    LEGAL_ACTION = "legal_action"
    FINANCE_ACTION = "finance_action"

    @classmethod
    def parse(cls, value: str | ItemType) -> ItemType:
        """Parse an item type, tolerating case and separator variations.

        Accepts "live_hold", "Live Hold", "LIVE-HOLD" and so on.

        Raises:
            ValueError: If the value does not name a known item type
        """
        if isinstance(value, ItemType):
            return value
        key = re.sub(r"[\s\-]+", "_", str(value).strip()).lower()
        try:
            return cls(key)
        except ValueError:
            valid = ", ".join(member.value for member in cls)
            raise ValueError(f"Unknown item type '{value}'. Valid types are: {valid}") from None


# Canonical lane for each item type
ITEM_TYPE_LANES: dict[ItemType, str] = {
    ItemType.LIVE_HOLD: "LIVE_HOLDS",
    ItemType.TRAVEL_SEGMENT: "TRAVEL",
    ItemType.PROMO_SLOT: "PROMO",
    ItemType.RELEASE_MILESTONE: "RELEASE",
    ItemType.LEGAL_ACTION: "LEGAL",
    ItemType.FINANCE_ACTION: "FINANCE",
}

ITEM_TYPE_LABELS: dict[ItemType, str] = {
    ItemType.LIVE_HOLD: "Live hold",
    ItemType.TRAVEL_SEGMENT: "Travel",
    ItemType.PROMO_SLOT: "Promo slot",
    ItemType.RELEASE_MILESTONE: "Release milestone",
    ItemType.LEGAL_ACTION: "Legal action",
    ItemType.FINANCE_ACTION: "Finance action",
}


def lane_for_type(item_type: ItemType) -> str:
    """Return the canonical lane slug for an item type."""
    return ITEM_TYPE_LANES[item_type]


class DependencyKind(str, Enum):
    """Ordering relationship between two items."""

    FINISH_TO_START = "FS"  # `to` should not start before `from` finishes
    START_TO_START = "SS"  # `to` should not start before `from` starts

    @classmethod
    def coerce(cls, value: object) -> DependencyKind:
        """Coerce any value to a dependency kind, defaulting to finish-to-start."""
        if isinstance(value, DependencyKind):
            return value
        if isinstance(value, str):
            normalized = value.strip().upper()
            for member in cls:
                if member.value == normalized:
                    return member
        return cls.FINISH_TO_START


@dataclass(frozen=True)
class ScheduleItem:
    """A thing placed on the timeline.

    Timestamps are kept exactly as supplied; the engine parses them and treats
    unparsable values as absent. An item without a resolvable start is
    "unscheduled".
    """

    id: str
    title: str
    type: ItemType
    lane: str | None = None
    starts_at: TimestampValue = None
    ends_at: TimestampValue = None
    territory: str | None = None
    priority: int | None = None  # Display only
    status: str | None = None
    labels: dict[str, Any] = field(default_factory=dict[str, Any], compare=False, hash=False)


@dataclass(frozen=True)
class DependencyEdge:
    """A directed relationship between two items."""

    from_item_id: str
    to_item_id: str
    kind: DependencyKind = DependencyKind.FINISH_TO_START
    note: str | None = None
    id: str = ""

    def __post_init__(self) -> None:
        # Frozen dataclass: normalize via object.__setattr__
        object.__setattr__(self, "kind", DependencyKind.coerce(self.kind))
        if not self.id:
            object.__setattr__(self, "id", f"{self.from_item_id}->{self.to_item_id}")


@dataclass
class TimelineMetadata:
    """Metadata about a timeline document."""

    project: str | None = None
    version: str = "1.0"


@dataclass
class Timeline:
    """A loaded timeline: items plus dependency edges."""

    metadata: TimelineMetadata
    items: list[ScheduleItem] = field(default_factory=list[ScheduleItem])
    dependencies: list[DependencyEdge] = field(default_factory=list[DependencyEdge])
