"""Core dataclasses for the timeline engine.

Every engine output is an immutable value built fresh on each run, so two runs
over equal input compare equal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from tourplan.models import DependencyEdge, ScheduleItem

from .timeutil import DAY_MS, format_iso


class Severity(str, Enum):
    """How serious a conflict is."""

    WARNING = "warning"
    ERROR = "error"


class ConflictCategory(str, Enum):
    """Kind of scheduling problem between two items."""

    LANE = "lane"  # Overlap within one lane
    TERRITORY = "territory"  # Same territory, starts closer than the buffer
    TRAVEL = "travel"  # Different territories, not enough transition time

    @property
    def severity(self) -> Severity:
        """Severity attached to this category."""
        return Severity.ERROR if self is ConflictCategory.TERRITORY else Severity.WARNING


@dataclass(frozen=True, slots=True)
class TimeWindow:
    """An absolute time range the view is rendered against."""

    start_ms: int
    end_ms: int

    @property
    def span_ms(self) -> int:
        """Denominator for ratio conversion, floored to one day."""
        return max(self.end_ms - self.start_ms, DAY_MS)

    def ratio(self, ms: int) -> float:
        """Convert an absolute time to a horizontal position within the window."""
        return (ms - self.start_ms) / self.span_ms

    def length_ratio(self, duration_ms: int) -> float:
        """Convert a duration to a width relative to the window."""
        return duration_ms / self.span_ms


@dataclass(frozen=True, slots=True)
class ResolvedItem:
    """A scheduled item with its resolved interval and normalized lane."""

    item: ScheduleItem
    start_ms: int
    end_ms: int  # Exclusive, always > start_ms
    lane: str
    order: int  # Position in the caller's input, used as the stable tie-break

    @property
    def id(self) -> str:
        return self.item.id

    @property
    def title(self) -> str:
        return self.item.title

    @property
    def territory(self) -> str | None:
        """Stripped territory, or None when blank."""
        if self.item.territory is None:
            return None
        return self.item.territory.strip() or None

    def overlaps(self, other: ResolvedItem) -> bool:
        """True if the two [start, end) intervals intersect."""
        return self.end_ms > other.start_ms and other.end_ms > self.start_ms


@dataclass(frozen=True, slots=True)
class PositionedItem:
    """A scheduled item placed in the layout."""

    resolved: ResolvedItem
    left_ratio: float
    width_ratio: float
    row_index: int
    top: int
    height: int

    @property
    def item(self) -> ScheduleItem:
        return self.resolved.item

    @property
    def id(self) -> str:
        return self.resolved.item.id

    @property
    def lane(self) -> str:
        return self.resolved.lane

    @property
    def right_ratio(self) -> float:
        return self.left_ratio + self.width_ratio


@dataclass(frozen=True, slots=True)
class LaneLayout:
    """Packed rows and vertical placement of one lane."""

    lane: str
    items: tuple[PositionedItem, ...]
    row_count: int
    top: int
    height: int


@dataclass(frozen=True, slots=True)
class Tick:
    """A labelled mark on the time axis."""

    position_ms: int
    left_ratio: float
    label: str
    sub_label: str | None = None
    week_number: int | None = None


@dataclass(frozen=True, slots=True)
class Conflict:
    """A detected scheduling problem between exactly two items."""

    id: str
    items: tuple[ScheduleItem, ScheduleItem]
    category: ConflictCategory
    severity: Severity
    message: str


@dataclass(frozen=True, slots=True)
class Anchor:
    """Connection point of a dependency edge on an item box."""

    item_id: str
    x: float  # Horizontal ratio within the window
    y: float  # Vertical pixel centre of the item box
    lane: str
    row_index: int


@dataclass(frozen=True, slots=True)
class AnchoredEdge:
    """A dependency edge with both rendering anchors resolved."""

    edge: DependencyEdge
    source: Anchor
    target: Anchor


@dataclass(frozen=True, slots=True)
class DependencyResolution:
    """Dependency edges restricted to the active item set."""

    edges: tuple[DependencyEdge, ...]
    blocked_by: dict[str, tuple[DependencyEdge, ...]]  # to_item_id -> incoming edges
    anchored: tuple[AnchoredEdge, ...]
    dropped: int = 0  # Edges referencing items outside the active set

    def anchor_for(self, edge: DependencyEdge) -> AnchoredEdge | None:
        """The anchored form of a kept edge, or None when an endpoint is unscheduled.

        Edges are matched by identity; two edges may share an id.
        """
        for anchored in self.anchored:
            if anchored.edge is edge:
                return anchored
        return None


@dataclass(frozen=True, slots=True)
class CalendarColumn:
    """One day or week column of the calendar grid."""

    id: str
    label: str
    range_start_ms: int
    range_end_ms: int  # Inclusive: last millisecond of the column
    sub_label: str | None = None
    week_number: int | None = None

    def contains(self, ms: int) -> bool:
        return self.range_start_ms <= ms <= self.range_end_ms


@dataclass(frozen=True, slots=True)
class CalendarCell:
    """Items of one lane visible in one column, with their local conflicts."""

    lane: str
    column_id: str
    items: tuple[ResolvedItem, ...]
    conflicts: tuple[Conflict, ...]

    @property
    def conflicted_item_ids(self) -> frozenset[str]:
        return frozenset(item.id for conflict in self.conflicts for item in conflict.items)


@dataclass(frozen=True, slots=True)
class CalendarGrid:
    """Lane x column decomposition of a display range."""

    columns: tuple[CalendarColumn, ...]
    lanes: tuple[str, ...]
    cells: tuple[CalendarCell, ...]

    def cell(self, lane: str, column_id: str) -> CalendarCell | None:
        for cell in self.cells:
            if cell.lane == lane and cell.column_id == column_id:
                return cell
        return None


def _default_conflict_index() -> dict[str, tuple[Conflict, ...]]:
    return {}


@dataclass(frozen=True, slots=True)
class TimelineResult:
    """Complete output of one engine run, consumed by rendering."""

    window: TimeWindow
    ticks: tuple[Tick, ...]
    lanes: tuple[LaneLayout, ...]
    unscheduled: tuple[ScheduleItem, ...]
    conflicts: tuple[Conflict, ...]
    dependencies: DependencyResolution
    conflict_index: dict[str, tuple[Conflict, ...]] = field(
        default_factory=_default_conflict_index
    )
    total_height: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Render contract as plain JSON-ready data."""
        return {
            "window": {
                "start": format_iso(self.window.start_ms),
                "end": format_iso(self.window.end_ms),
            },
            "ticks": [
                {
                    "position": format_iso(tick.position_ms),
                    "leftRatio": tick.left_ratio,
                    "label": tick.label,
                    "subLabel": tick.sub_label,
                    "weekNumber": tick.week_number,
                }
                for tick in self.ticks
            ],
            "lanes": [
                {
                    "lane": layout.lane,
                    "rowCount": layout.row_count,
                    "top": layout.top,
                    "height": layout.height,
                    "items": [
                        {
                            "id": positioned.id,
                            "title": positioned.item.title,
                            "type": positioned.item.type.value,
                            "start": format_iso(positioned.resolved.start_ms),
                            "end": format_iso(positioned.resolved.end_ms),
                            "leftRatio": positioned.left_ratio,
                            "widthRatio": positioned.width_ratio,
                            "rowIndex": positioned.row_index,
                            "top": positioned.top,
                            "height": positioned.height,
                        }
                        for positioned in layout.items
                    ],
                }
                for layout in self.lanes
            ],
            "unscheduled": [item.id for item in self.unscheduled],
            "conflicts": [
                {
                    "id": conflict.id,
                    "items": [item.id for item in conflict.items],
                    "category": conflict.category.value,
                    "severity": conflict.severity.value,
                    "message": conflict.message,
                }
                for conflict in self.conflicts
            ],
            "dependencies": [
                {
                    "id": anchored.edge.id,
                    "from": anchored.edge.from_item_id,
                    "to": anchored.edge.to_item_id,
                    "kind": anchored.edge.kind.value,
                    "note": anchored.edge.note,
                    "source": {"x": anchored.source.x, "y": anchored.source.y},
                    "target": {"x": anchored.target.x, "y": anchored.target.y},
                }
                for anchored in self.dependencies.anchored
            ],
            "totalHeight": self.total_height,
        }
