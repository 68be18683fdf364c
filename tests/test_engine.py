"""End-to-end tests for the TimelineEngine service."""

import io
import json
from collections.abc import Callable
from datetime import datetime, timezone

import pytest

from tourplan.engine import (
    CalendarView,
    EngineConfig,
    LayoutConfig,
    Severity,
    TimelineEngine,
    ViewGranularity,
)
from tourplan.engine.timeutil import DAY_MS, HOUR_MS, parse_timestamp
from tourplan.logger import setup_logger
from tourplan.models import DependencyEdge, ItemType, ScheduleItem

Make = Callable[..., ScheduleItem]

NOW_MS = 1_735_689_600_000  # 2025-01-01T00:00:00Z


class TestScenarios:
    """Concrete behaviours of a single engine run."""

    def test_overlap_in_one_lane(self, engine: TimelineEngine, make_item: Make) -> None:
        """Two overlapping items in one lane: one warning, two rows."""
        items = [
            make_item("a", "2025-01-01T10:00:00Z", "2025-01-01T12:00:00Z", lane="Live"),
            make_item("b", "2025-01-01T11:00:00Z", "2025-01-01T13:00:00Z", lane="Live"),
        ]
        result = engine.run(items, now_ms=NOW_MS)

        (conflict,) = result.conflicts
        assert conflict.severity is Severity.WARNING
        (lane,) = result.lanes
        assert lane.row_count == 2
        assert [positioned.row_index for positioned in lane.items] == [0, 1]

    def test_territory_buffer(self, engine: TimelineEngine, make_item: Make) -> None:
        """Two UK starts 90 minutes apart with a 4h buffer: one error."""
        items = [
            make_item("a", "2025-01-01T10:00:00Z", lane="PROMO", territory="UK"),
            make_item("b", "2025-01-01T11:30:00Z", lane="LIVE_HOLDS", territory="UK"),
        ]
        result = engine.run(items, buffer_hours=4, now_ms=NOW_MS)
        (conflict,) = result.conflicts
        assert conflict.severity is Severity.ERROR

    def test_travel_gap(self, engine: TimelineEngine, make_item: Make) -> None:
        """UK ends 12:00, JP starts 14:00: one travel warning mentioning 2h."""
        items = [
            make_item("a", "2025-01-01T10:00:00Z", "2025-01-01T12:00:00Z", territory="UK"),
            make_item("b", "2025-01-01T14:00:00Z", "2025-01-01T16:00:00Z", territory="JP"),
        ]
        result = engine.run(items, buffer_hours=4, now_ms=NOW_MS)
        (conflict,) = result.conflicts
        assert conflict.severity is Severity.WARNING
        assert "2h" in conflict.message

    def test_missing_end_gets_two_hours(self, engine: TimelineEngine, make_item: Make) -> None:
        """An item without an end is drawn two hours wide."""
        items = [make_item("a", "2025-03-01T09:00:00Z")]
        result = engine.run(
            items, start="2025-03-01T00:00:00Z", end="2025-03-02T00:00:00Z", now_ms=NOW_MS
        )
        positioned = result.lanes[0].items[0]
        assert positioned.width_ratio == 2 * HOUR_MS / DAY_MS
        assert result.to_dict()["lanes"][0]["items"][0]["end"] == "2025-03-01T11:00:00Z"

    def test_edge_to_unknown_item_dropped(self, engine: TimelineEngine, make_item: Make) -> None:
        """An edge from an id not in the item set disappears."""
        items = [make_item("y", "2025-01-01T10:00:00Z")]
        result = engine.run(items, [DependencyEdge("x", "y")], now_ms=NOW_MS)
        assert result.dependencies.edges == ()
        assert result.dependencies.dropped == 1
        assert result.to_dict()["dependencies"] == []


class TestEngineProperties:
    """Cross-cutting guarantees of the engine."""

    def _items(self, make_item: Make) -> list[ScheduleItem]:
        return [
            make_item(
                "hold",
                "2025-04-10T19:00:00Z",
                "2025-04-10T23:00:00Z",
                territory="UK",
                lane="LIVE_HOLDS",
            ),
            make_item(
                "radio",
                "2025-04-10T21:00:00Z",
                "2025-04-10T22:00:00Z",
                territory="UK",
                lane="PROMO",
                item_type=ItemType.PROMO_SLOT,
            ),
            make_item(
                "flight",
                "2025-04-11T01:00:00Z",
                "2025-04-11T15:00:00Z",
                territory="JP",
                lane="TRAVEL",
                item_type=ItemType.TRAVEL_SEGMENT,
            ),
            make_item(
                "tokyo",
                "2025-04-11T17:00:00Z",
                "2025-04-11T21:00:00Z",
                territory="JP",
                lane="LIVE_HOLDS",
            ),
            make_item("draft", None, lane="PROMO", item_type=ItemType.PROMO_SLOT),
            make_item("bad", "not a date", lane="PROMO", item_type=ItemType.PROMO_SLOT),
        ]

    def test_deterministic(self, engine: TimelineEngine, make_item: Make) -> None:
        """Equal input produces equal output."""
        edges = [DependencyEdge("hold", "flight"), DependencyEdge("flight", "tokyo")]
        first = engine.run(self._items(make_item), edges, now_ms=NOW_MS)
        second = engine.run(self._items(make_item), edges, now_ms=NOW_MS)
        assert first == second
        assert json.dumps(first.to_dict()) == json.dumps(second.to_dict())

    def test_input_order_does_not_change_conflicts(
        self, engine: TimelineEngine, make_item: Make
    ) -> None:
        """Conflict ids and severities do not depend on input order."""
        items = self._items(make_item)
        forward = engine.run(items, now_ms=NOW_MS)
        backward = engine.run(items[::-1], now_ms=NOW_MS)
        assert {(c.id, c.severity) for c in forward.conflicts} == {
            (c.id, c.severity) for c in backward.conflicts
        }

    def test_unscheduled_items_excluded(self, engine: TimelineEngine, make_item: Make) -> None:
        """Items without a usable start are listed, never placed or checked."""
        result = engine.run(self._items(make_item), now_ms=NOW_MS)
        assert [item.id for item in result.unscheduled] == ["draft", "bad"]
        placed = {positioned.id for lane in result.lanes for positioned in lane.items}
        assert placed.isdisjoint({"draft", "bad"})
        involved = {item.id for c in result.conflicts for item in c.items}
        assert involved.isdisjoint({"draft", "bad"})

    def test_far_future_item_unscheduled(self, engine: TimelineEngine, make_item: Make) -> None:
        """An item at the end of year 9999 is listed as unscheduled, not fatal."""
        items = [
            make_item("show", "2025-01-01T10:00:00Z"),
            make_item("far", "9999-12-31T23:00:00Z"),
        ]
        result = engine.run(items, view=ViewGranularity.YEAR, now_ms=NOW_MS)

        assert [item.id for item in result.unscheduled] == ["far"]
        data = result.to_dict()
        assert data["unscheduled"] == ["far"]
        json.dumps(data)

    def test_edges_to_unscheduled_items_kept(
        self, engine: TimelineEngine, make_item: Make
    ) -> None:
        """Edges resolve against all items, but only scheduled pairs are anchored."""
        edges = [
            DependencyEdge("draft", "tokyo", kind="SS"),  # type: ignore[arg-type]
            DependencyEdge("hold", "flight"),
            DependencyEdge("archived", "tokyo"),
        ]
        result = engine.run(self._items(make_item), edges, now_ms=NOW_MS)
        assert [edge.id for edge in result.dependencies.edges] == ["draft->tokyo", "hold->flight"]
        assert [a.edge.id for a in result.dependencies.anchored] == ["hold->flight"]
        assert result.dependencies.dropped == 1
        assert [e.from_item_id for e in result.dependencies.blocked_by["tokyo"]] == ["draft"]

    def test_expected_conflicts(self, engine: TimelineEngine, make_item: Make) -> None:
        """The sample tour raises the territory and travel problems it contains."""
        result = engine.run(self._items(make_item), now_ms=NOW_MS)
        ids = [c.id for c in result.conflicts]
        assert "hold:radio:territory" in ids
        assert "flight:tokyo:travel" not in ids  # Same territory
        assert "flight:tokyo:territory" not in ids  # 16h apart
        assert "radio:flight:travel" in ids  # 3h gap
        assert result.conflict_index["radio"]

    def test_buffer_monotonic(self, engine: TimelineEngine, make_item: Make) -> None:
        """Raising the buffer never lowers the territory and travel count."""
        items = self._items(make_item)
        counts = []
        for hours in range(25):
            conflicts = engine.run(items, buffer_hours=hours, now_ms=NOW_MS).conflicts
            counts.append(sum(1 for c in conflicts if c.category.value != "lane"))
        assert counts == sorted(counts)


class TestWindow:
    """Window selection inside the engine."""

    def test_explicit_window(self, engine: TimelineEngine, make_item: Make) -> None:
        """Explicit bounds are used verbatim."""
        result = engine.run(
            [make_item("a", "2025-01-01T10:00:00Z")],
            start="2025-01-01",
            end="2025-01-08",
            now_ms=NOW_MS,
        )
        assert result.window.start_ms == parse_timestamp("2025-01-01")
        assert result.window.end_ms == parse_timestamp("2025-01-08")
        assert len(result.ticks) == 8

    def test_datetime_bounds(self, engine: TimelineEngine, make_item: Make) -> None:
        """Bounds may be datetime objects."""
        start = datetime(2025, 1, 1, tzinfo=timezone.utc)
        end = datetime(2025, 1, 2, tzinfo=timezone.utc)
        result = engine.run([make_item("a", start)], start=start, end=end, now_ms=NOW_MS)
        assert result.lanes[0].items[0].left_ratio == 0.0

    def test_half_window_falls_back_to_derived(
        self, engine: TimelineEngine, make_item: Make
    ) -> None:
        """With only one bound the range is derived from the items."""
        result = engine.run(
            [make_item("a", "2025-01-01T10:00:00Z")], start="2024-01-01", now_ms=NOW_MS
        )
        assert result.window.start_ms == parse_timestamp("2024-12-31T10:00:00Z")

    def test_empty_explicit_window_widened(self, engine: TimelineEngine) -> None:
        """start == end widens to the view's span."""
        result = engine.run(
            [], view=ViewGranularity.DAY, start="2025-01-01", end="2025-01-01", now_ms=NOW_MS
        )
        assert result.window.end_ms - result.window.start_ms == DAY_MS
        assert len(result.ticks) == 25

    def test_fallback_window_without_items(self, engine: TimelineEngine) -> None:
        """No scheduled items falls back to the configured distances around now."""
        result = engine.run([], now_ms=NOW_MS)
        assert result.window.start_ms == NOW_MS - 3 * DAY_MS
        assert result.window.end_ms == NOW_MS + 10 * DAY_MS
        assert result.lanes == ()
        assert result.total_height == 56


class TestConfiguration:
    """Engine configuration knobs."""

    def test_default_buffer_from_config(self, make_item: Make) -> None:
        """The configured buffer applies when none is passed."""
        items = [
            make_item("a", "2025-01-01T10:00:00Z", lane="P", territory="UK"),
            make_item("b", "2025-01-01T15:00:00Z", lane="Q", territory="UK"),
        ]
        assert TimelineEngine().run(items, now_ms=NOW_MS).conflicts == ()
        wide = TimelineEngine(EngineConfig(buffer_hours=6))
        assert len(wide.run(items, now_ms=NOW_MS).conflicts) == 1

    def test_custom_lane_settings(self, make_item: Make) -> None:
        """Default lane, lane order and layout constants come from config."""
        config = EngineConfig(
            default_lane="MISC",
            lane_order=["PROMO"],
            layout=LayoutConfig(axis_header_height=10),
        )
        items = [
            make_item("a", "2025-01-01T10:00:00Z"),
            make_item("b", "2025-01-01T10:00:00Z", lane="PROMO"),
        ]
        result = TimelineEngine(config).run(items, now_ms=NOW_MS)
        assert [lane.lane for lane in result.lanes] == ["PROMO", "MISC"]
        assert result.lanes[0].top == 10

    def test_min_duration(self, make_item: Make) -> None:
        """The duration floor is configurable."""
        engine = TimelineEngine(EngineConfig(min_duration_hours=1))
        result = engine.run(
            [make_item("a", "2025-01-01T00:00:00Z")],
            start="2025-01-01",
            end="2025-01-02",
            now_ms=NOW_MS,
        )
        assert result.lanes[0].items[0].width_ratio == HOUR_MS / DAY_MS

    def test_buffer_out_of_range_rejected(self) -> None:
        """Buffers above 24 hours are invalid configuration."""
        with pytest.raises(ValueError):
            EngineConfig(buffer_hours=30)


class TestCalendar:
    """Calendar grid via the engine."""

    def test_week_calendar(self, engine: TimelineEngine, make_item: Make) -> None:
        """The week calendar has one column per day of the explicit window."""
        items = [
            make_item("a", "2025-01-06T10:00:00Z", lane="PROMO"),
            make_item("b", "2025-01-06T11:00:00Z", lane="PROMO"),
            make_item("c", None, lane="PROMO"),
        ]
        grid = engine.calendar(items, start="2025-01-06", end="2025-01-12", now_ms=NOW_MS)
        assert len(grid.columns) == 7
        cell = grid.cell("PROMO", grid.columns[0].id)
        assert cell is not None
        assert [item.id for item in cell.items] == ["a", "b"]
        assert len(cell.conflicts) == 1

    def test_quarter_calendar(self, engine: TimelineEngine, make_item: Make) -> None:
        """The quarter calendar uses week columns."""
        grid = engine.calendar(
            [make_item("a", "2025-01-06T10:00:00Z")],
            view=CalendarView.QUARTER,
            start="2025-01-01",
            end="2025-06-30",
        )
        assert len(grid.columns) == 13
        assert grid.columns[0].label == "Week 1"


class TestToDict:
    """The JSON render contract."""

    def test_shape(self, engine: TimelineEngine, make_item: Make) -> None:
        """The dict holds every render field with camelCase keys."""
        items = [
            make_item("a", "2025-01-01T10:00:00Z", lane="Live"),
            make_item("b", "2025-01-01T11:00:00Z", lane="Live"),
            make_item("c", None),
        ]
        data = engine.run(
            items,
            [DependencyEdge("a", "b", note="soundcheck")],
            start="2025-01-01",
            end="2025-01-02",
            now_ms=NOW_MS,
        ).to_dict()

        assert data["window"] == {"start": "2025-01-01T00:00:00Z", "end": "2025-01-02T00:00:00Z"}
        assert data["unscheduled"] == ["c"]
        lane = data["lanes"][0]
        assert lane["lane"] == "Live"
        assert lane["rowCount"] == 2
        assert set(lane["items"][0]) == {
            "id",
            "title",
            "type",
            "start",
            "end",
            "leftRatio",
            "widthRatio",
            "rowIndex",
            "top",
            "height",
        }
        assert data["conflicts"][0]["items"] == ["a", "b"]
        assert data["conflicts"][0]["severity"] == "warning"
        assert data["dependencies"][0]["note"] == "soundcheck"
        assert data["totalHeight"] == 56 + 28 * 2 + 2 * 110 + 20
        json.dumps(data)


def test_engine_logs_summary(engine: TimelineEngine, make_item: Make) -> None:
    """At verbosity 1 the engine logs a run summary."""
    stream = io.StringIO()
    setup_logger(1, stream)
    engine.run([make_item("a", "2025-01-01T10:00:00Z")], now_ms=NOW_MS)
    output = stream.getvalue()
    assert "Engine run: 1 scheduled, 0 unscheduled" in output
    assert "Detected 0 conflicts" in output
