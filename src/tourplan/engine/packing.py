"""Greedy interval packing of lane items into rows, and vertical lane stacking."""

from __future__ import annotations

from collections.abc import Sequence

from tourplan.logger import get_logger

from .config import LayoutConfig
from .core import LaneLayout, PositionedItem, ResolvedItem, TimeWindow
from .lanes import PREFERRED_LANE_ORDER, order_lanes

logger = get_logger()


def assign_rows(items: Sequence[ResolvedItem]) -> list[tuple[ResolvedItem, int]]:
    """Assign each item of one lane a row index.

    Items are visited by start time (ties keep input order). Each goes into the
    first row whose last-placed item ends at or before its start; otherwise a new
    row is opened. Because items arrive in start order, the number of rows equals
    the maximum number of items overlapping at any instant.

    Args:
        items: Items of a single lane, in any order

    Returns:
        (item, row_index) pairs in placement order
    """
    ordered = sorted(items, key=lambda item: (item.start_ms, item.order))
    row_ends: list[int] = []
    placements: list[tuple[ResolvedItem, int]] = []

    for item in ordered:
        row_index = next(
            (index for index, end in enumerate(row_ends) if end <= item.start_ms),
            len(row_ends),
        )
        if row_index == len(row_ends):
            row_ends.append(item.end_ms)
        else:
            row_ends[row_index] = item.end_ms
        logger.debug(f"    {item.id} -> row {row_index}")
        placements.append((item, row_index))

    return placements


def row_count(placements: Sequence[tuple[ResolvedItem, int]]) -> int:
    """Number of rows used by a set of placements."""
    return max((row for _, row in placements), default=-1) + 1


def group_by_lane(items: Sequence[ResolvedItem]) -> dict[str, list[ResolvedItem]]:
    """Group items by normalized lane, preserving input order within each lane."""
    lanes: dict[str, list[ResolvedItem]] = {}
    for item in items:
        lanes.setdefault(item.lane, []).append(item)
    return lanes


def pack_lanes(
    items: Sequence[ResolvedItem],
    window: TimeWindow,
    layout: LayoutConfig | None = None,
    lane_order: Sequence[str] = PREFERRED_LANE_ORDER,
) -> tuple[LaneLayout, ...]:
    """Pack every lane into rows and stack lanes top to bottom.

    Lanes appear in canonical order: lanes listed in lane_order first, then any
    other lane alphabetically. Only lanes holding at least one item are emitted.
    The first lane starts below the time-axis header.

    Args:
        items: Scheduled items of all lanes
        window: Active time window for horizontal ratios
        layout: Pixel constants (defaults to LayoutConfig())
        lane_order: Preferred sequence of known lanes

    Returns:
        One LaneLayout per non-empty lane
    """
    layout = layout or LayoutConfig()
    by_lane = group_by_lane(items)

    layouts: list[LaneLayout] = []
    offset = layout.axis_header_height

    for lane in order_lanes(by_lane, lane_order):
        placements = assign_rows(by_lane[lane])
        rows = row_count(placements)
        positioned = tuple(
            PositionedItem(
                resolved=item,
                left_ratio=window.ratio(item.start_ms),
                width_ratio=window.length_ratio(item.end_ms - item.start_ms),
                row_index=row_index,
                top=offset + layout.row_offset(row_index),
                height=layout.item_height,
            )
            for item, row_index in placements
        )
        height = layout.lane_height(rows)
        logger.checks(f"  Lane {lane}: {len(positioned)} items in {rows} rows")
        layouts.append(
            LaneLayout(lane=lane, items=positioned, row_count=rows, top=offset, height=height)
        )
        offset += height

    return tuple(layouts)


def total_height(layouts: Sequence[LaneLayout], layout: LayoutConfig | None = None) -> int:
    """Full height of the stacked layout including the axis header."""
    layout = layout or LayoutConfig()
    if not layouts:
        return layout.axis_header_height
    last = layouts[-1]
    return last.top + last.height
