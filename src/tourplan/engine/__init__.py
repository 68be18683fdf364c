"""Timeline engine package - lane layout, conflicts and dependencies.

The engine is pure: given items, dependency edges, a view window and a buffer
tolerance it returns positioned lanes, axis ticks, conflicts and anchored edges.

Main entry points:
- TimelineEngine: runs every component over one item set
- detect_conflicts, assign_rows, build_ticks, resolve_dependencies,
  build_columns: the individual components

Configuration:
- EngineConfig: buffer, lane order, minimum duration, layout constants
- LayoutConfig: pixel constants
- ViewGranularity / CalendarView: view selection
"""

from .calendar import build_calendar_grid, build_columns, item_overlaps_column
from .config import CalendarView, ConflictConfig, EngineConfig, LayoutConfig, ViewGranularity
from .conflicts import (
    build_conflict_index,
    conflict_penalties,
    detect_conflicts,
)
from .core import (
    Anchor,
    AnchoredEdge,
    CalendarCell,
    CalendarColumn,
    CalendarGrid,
    Conflict,
    ConflictCategory,
    DependencyResolution,
    LaneLayout,
    PositionedItem,
    ResolvedItem,
    Severity,
    Tick,
    TimelineResult,
    TimeWindow,
)
from .dependencies import resolve_dependencies
from .lanes import DEFAULT_LANE, PREFERRED_LANE_ORDER, normalize_lane, order_lanes
from .packing import assign_rows, pack_lanes
from .resolve import resolve_item, resolve_items
from .scale import build_ticks, derive_range, describe_range
from .service import TimelineEngine
from .timeutil import MIN_DURATION_MS, parse_timestamp, resolve_end

__all__ = [
    # Service
    "TimelineEngine",
    # Configuration
    "EngineConfig",
    "LayoutConfig",
    "ConflictConfig",
    "ViewGranularity",
    "CalendarView",
    # Core dataclasses
    "Anchor",
    "AnchoredEdge",
    "CalendarCell",
    "CalendarColumn",
    "CalendarGrid",
    "Conflict",
    "ConflictCategory",
    "DependencyResolution",
    "LaneLayout",
    "PositionedItem",
    "ResolvedItem",
    "Severity",
    "Tick",
    "TimelineResult",
    "TimeWindow",
    # Time utilities
    "MIN_DURATION_MS",
    "parse_timestamp",
    "resolve_end",
    # Lanes
    "DEFAULT_LANE",
    "PREFERRED_LANE_ORDER",
    "normalize_lane",
    "order_lanes",
    # Components
    "resolve_item",
    "resolve_items",
    "assign_rows",
    "pack_lanes",
    "build_ticks",
    "derive_range",
    "describe_range",
    "detect_conflicts",
    "build_conflict_index",
    "conflict_penalties",
    "resolve_dependencies",
    "build_columns",
    "build_calendar_grid",
    "item_overlaps_column",
]
