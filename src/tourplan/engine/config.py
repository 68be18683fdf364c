"""Configuration classes for the timeline engine."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from .lanes import DEFAULT_LANE, PREFERRED_LANE_ORDER


class ViewGranularity(str, Enum):
    """Time-axis granularity of the studio view."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


class CalendarView(str, Enum):
    """Column granularity of the calendar grid."""

    WEEK = "week"  # One column per day
    MONTH = "month"  # One column per day, with ISO week numbers
    QUARTER = "quarter"  # One column per Monday-aligned week, at most 13


class LayoutConfig(BaseModel):
    """Pixel constants for the stacked lane layout."""

    axis_header_height: int = 56  # Reserved above the first lane for the time axis
    lane_padding_y: int = 28  # Above the first row and below the last row
    item_height: int = 110
    row_gap: int = 20

    def lane_height(self, row_count: int) -> int:
        """Height of a lane holding row_count rows (at least one)."""
        rows = max(1, row_count)
        return self.lane_padding_y * 2 + rows * self.item_height + (rows - 1) * self.row_gap

    def row_offset(self, row_index: int) -> int:
        """Offset of a row's top edge from its lane's top edge."""
        return self.lane_padding_y + row_index * (self.item_height + self.row_gap)


class ConflictConfig(BaseModel):
    """Display weights per conflict category.

    Weights only feed scoring; they never decide whether a conflict is reported.
    """

    weights: dict[str, float] = Field(
        default_factory=lambda: {"lane": 1.0, "territory": 3.0, "travel": 2.0}
    )


class EngineConfig(BaseModel):
    """Tolerances and lane settings for an engine run."""

    buffer_hours: float = Field(default=4.0, ge=0, le=24)
    min_duration_hours: float = Field(default=2.0, gt=0)
    default_lane: str = DEFAULT_LANE
    lane_order: list[str] = Field(default_factory=lambda: list(PREFERRED_LANE_ORDER))
    default_view: ViewGranularity = ViewGranularity.WEEK

    # Fallback window when no item has a resolvable time
    fallback_days_before: int = 3
    fallback_days_after: int = 10

    layout: LayoutConfig = LayoutConfig()
    conflicts: ConflictConfig = ConflictConfig()
