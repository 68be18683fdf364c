"""High-level timeline engine service."""

from __future__ import annotations

import time
from collections.abc import Sequence

from tourplan.logger import get_logger
from tourplan.models import DependencyEdge, ScheduleItem, TimestampValue

from .calendar import build_calendar_grid, build_columns
from .config import CalendarView, EngineConfig, ViewGranularity
from .conflicts import build_conflict_index, detect_conflicts
from .core import CalendarGrid, ResolvedItem, TimelineResult, TimeWindow
from .dependencies import resolve_dependencies
from .packing import pack_lanes, total_height
from .resolve import resolve_items
from .scale import build_ticks, derive_range, describe_range
from .timeutil import HOUR_MS, parse_timestamp

logger = get_logger()


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class TimelineEngine:
    """Layout, conflict and dependency engine for the timeline studio.

    The engine coordinates:
    - resolve_items (timestamp parsing, duration floor, lane normalization)
    - pack_lanes (greedy row packing, lane stacking)
    - build_ticks (time axis)
    - detect_conflicts (pairwise rules)
    - resolve_dependencies (edge filtering and anchoring)

    It holds nothing but its configuration: every run starts from the items it is
    given, so equal input always produces equal output.
    """

    def __init__(self, config: EngineConfig | None = None):
        """Initialize the engine.

        Args:
            config: Tolerances, lane order and layout constants (defaults to EngineConfig())
        """
        self.config = config or EngineConfig()

    @property
    def min_duration_ms(self) -> int:
        return int(self.config.min_duration_hours * HOUR_MS)

    def resolve(
        self, items: Sequence[ScheduleItem]
    ) -> tuple[list[ResolvedItem], list[ScheduleItem]]:
        """Split items into time-resolved scheduled items and unscheduled items."""
        return resolve_items(
            items,
            default_lane=self.config.default_lane,
            min_duration_ms=self.min_duration_ms,
        )

    def window_for(
        self,
        scheduled: Sequence[ResolvedItem],
        view: ViewGranularity,
        start: TimestampValue = None,
        end: TimestampValue = None,
        now_ms: int | None = None,
    ) -> TimeWindow:
        """Pick the active window: explicit bounds when both parse, else derived."""
        start_ms = parse_timestamp(start)
        end_ms = parse_timestamp(end)
        if start_ms is not None and end_ms is not None:
            return describe_range(view, start_ms, end_ms)
        return derive_range(
            scheduled,
            now_ms if now_ms is not None else _now_ms(),
            days_before=self.config.fallback_days_before,
            days_after=self.config.fallback_days_after,
        )

    def run(  # noqa: PLR0913 - mirrors the engine's input contract
        self,
        items: Sequence[ScheduleItem],
        dependencies: Sequence[DependencyEdge] = (),
        *,
        view: ViewGranularity | None = None,
        start: TimestampValue = None,
        end: TimestampValue = None,
        buffer_hours: float | None = None,
        now_ms: int | None = None,
    ) -> TimelineResult:
        """Run the full engine over one item set.

        Args:
            items: All items, scheduled or not
            dependencies: Dependency edges; edges to unknown items are dropped
            view: Axis granularity (defaults to config.default_view)
            start: Explicit window start (ISO string, datetime or date)
            end: Explicit window end
            buffer_hours: Conflict buffer (defaults to config.buffer_hours)
            now_ms: Clock reading for the fallback window (defaults to now)

        Returns:
            TimelineResult holding the complete render contract
        """
        view = view or self.config.default_view
        buffer = self.config.buffer_hours if buffer_hours is None else buffer_hours

        scheduled, unscheduled = self.resolve(items)
        window = self.window_for(scheduled, view, start, end, now_ms)
        logger.changes(
            f"Engine run: {len(scheduled)} scheduled, {len(unscheduled)} unscheduled, "
            f"view={view.value}, buffer={buffer}h"
        )

        lanes = pack_lanes(scheduled, window, self.config.layout, self.config.lane_order)
        conflicts = detect_conflicts(scheduled, buffer)
        resolution = resolve_dependencies(dependencies, [item.id for item in items], lanes)

        return TimelineResult(
            window=window,
            ticks=build_ticks(window, view),
            lanes=lanes,
            unscheduled=tuple(unscheduled),
            conflicts=conflicts,
            dependencies=resolution,
            conflict_index=build_conflict_index(conflicts),
            total_height=total_height(lanes, self.config.layout),
        )

    def calendar(
        self,
        items: Sequence[ScheduleItem],
        *,
        view: CalendarView = CalendarView.WEEK,
        start: TimestampValue = None,
        end: TimestampValue = None,
        buffer_hours: float | None = None,
        now_ms: int | None = None,
    ) -> CalendarGrid:
        """Build the calendar grid for the alternate view."""
        buffer = self.config.buffer_hours if buffer_hours is None else buffer_hours
        scheduled, _ = self.resolve(items)
        window = self.window_for(scheduled, ViewGranularity(view.value), start, end, now_ms)
        columns = build_columns(view, window.start_ms, window.end_ms)
        return build_calendar_grid(
            scheduled, columns, buffer_hours=buffer, lane_order=self.config.lane_order
        )
