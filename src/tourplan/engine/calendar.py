"""Calendar grid: day or week columns, and per-cell conflict checks.

Each lane x column cell re-runs the pairwise conflict rules over the items visible
in that cell only. Results can differ from the global pass at column edges, since
a neighbour just outside the column is not a candidate.
"""

from __future__ import annotations

from collections.abc import Sequence

from tourplan.logger import get_logger

from .config import CalendarView
from .conflicts import DEFAULT_BUFFER_HOURS, detect_conflicts
from .core import CalendarCell, CalendarColumn, CalendarGrid, Conflict, ResolvedItem
from .lanes import PREFERRED_LANE_ORDER, order_lanes
from .packing import group_by_lane
from .scale import MAX_QUARTER_WEEKS, compact_date
from .timeutil import (
    DAY_MS,
    WEEK_MS,
    format_iso,
    from_epoch_ms,
    iso_week_number,
    start_of_day,
    start_of_week,
)

logger = get_logger()


def build_daily_columns(
    start_ms: int, end_ms: int, include_week_number: bool = False
) -> tuple[CalendarColumn, ...]:
    """One column per UTC day from the day of start_ms through the day of end_ms."""
    columns: list[CalendarColumn] = []
    limit = start_of_day(end_ms) + DAY_MS
    day = start_of_day(start_ms)
    while day < limit:
        moment = from_epoch_ms(day)
        columns.append(
            CalendarColumn(
                id=format_iso(day),
                label=f"{moment:%a}, {moment:%b} {moment.day}",
                range_start_ms=day,
                range_end_ms=day + DAY_MS - 1,
                week_number=iso_week_number(day) if include_week_number else None,
            )
        )
        day += DAY_MS
    return tuple(columns)


def build_week_columns(start_ms: int, end_ms: int) -> tuple[CalendarColumn, ...]:
    """Monday-aligned week columns covering the range, at most 13."""
    columns: list[CalendarColumn] = []
    limit = start_of_day(end_ms) + WEEK_MS
    week = start_of_week(start_ms)
    while week < limit and len(columns) < MAX_QUARTER_WEEKS:
        index = len(columns) + 1
        columns.append(
            CalendarColumn(
                id=f"{format_iso(week)}::{index}",
                label=f"Week {index}",
                sub_label=f"{compact_date(week)} - {compact_date(week + 6 * DAY_MS)}",
                range_start_ms=week,
                range_end_ms=week + WEEK_MS - 1,
                week_number=iso_week_number(week),
            )
        )
        week += WEEK_MS
    return tuple(columns)


def build_columns(view: CalendarView, start_ms: int, end_ms: int) -> tuple[CalendarColumn, ...]:
    """Decompose a display range into columns for the given calendar view."""
    if view is CalendarView.QUARTER:
        return build_week_columns(start_ms, end_ms)
    return build_daily_columns(start_ms, end_ms, include_week_number=view is CalendarView.MONTH)


def item_overlaps_column(item: ResolvedItem, column: CalendarColumn) -> bool:
    """True if the item's [start, end) intersects the column's inclusive range."""
    return item.start_ms <= column.range_end_ms and item.end_ms > column.range_start_ms


def build_calendar_grid(
    items: Sequence[ResolvedItem],
    columns: Sequence[CalendarColumn],
    *,
    buffer_hours: float = DEFAULT_BUFFER_HOURS,
    lane_order: Sequence[str] = PREFERRED_LANE_ORDER,
) -> CalendarGrid:
    """Place items into lane x column cells and check each cell for conflicts.

    Items within a cell are ordered by start time (ties keep input order).
    """
    by_lane = group_by_lane(items)
    lanes = order_lanes(by_lane, lane_order)

    cells: list[CalendarCell] = []
    for lane in lanes:
        lane_items = sorted(by_lane[lane], key=lambda item: (item.start_ms, item.order))
        for column in columns:
            visible = tuple(item for item in lane_items if item_overlaps_column(item, column))
            conflicts: tuple[Conflict, ...] = ()
            if len(visible) > 1:
                conflicts = detect_conflicts(visible, buffer_hours, summarize=False)
            cells.append(
                CalendarCell(lane=lane, column_id=column.id, items=visible, conflicts=conflicts)
            )

    flagged = sum(1 for cell in cells if cell.conflicts)
    logger.changes(
        f"Calendar: {len(columns)} columns x {len(lanes)} lanes, {flagged} cells with conflicts"
    )
    return CalendarGrid(columns=tuple(columns), lanes=tuple(lanes), cells=tuple(cells))
