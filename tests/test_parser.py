"""Tests for the timeline YAML parser."""

from datetime import date, datetime, timezone
from pathlib import Path

import pytest

from tourplan.config import TourplanConfig
from tourplan.engine import TimelineEngine
from tourplan.engine.timeutil import parse_timestamp
from tourplan.exceptions import ParseError, ValidationError
from tourplan.lane_rules import LaneDefinition
from tourplan.models import DependencyKind, ItemType
from tourplan.parser import TimelineParser

BASIC = """
project: Spring Tour
version: 2
items:
  - id: hold-london
    title: London hold
    type: live_hold
    lane: LIVE_HOLDS
    starts_at: "2025-04-10T19:00:00Z"
    ends_at: "2025-04-10T23:00:00Z"
    territory: UK
    priority: 1
    labels:
      venue: O2
  - id: radio
    title: Radio spot
    type: Promo Slot
    startsAt: "2025-04-10T21:00:00Z"
    endsAt: "2025-04-10T22:00:00Z"
    territory: UK
  - id: contract
    title: Contract review
    type: legal_action
dependencies:
  - from: hold-london
    to: radio
    kind: ss
    note: Same night
  - from: contract
    to: hold-london
"""


class TestParseString:
    """Test parsing valid documents."""

    def test_basic_document(self) -> None:
        """Items, metadata and dependencies are built."""
        timeline = TimelineParser().parse_string(BASIC)

        assert timeline.metadata.project == "Spring Tour"
        assert timeline.metadata.version == "2"
        assert [item.id for item in timeline.items] == ["hold-london", "radio", "contract"]

        hold = timeline.items[0]
        assert hold.type is ItemType.LIVE_HOLD
        assert hold.lane == "LIVE_HOLDS"
        assert hold.starts_at == "2025-04-10T19:00:00Z"
        assert hold.priority == 1
        assert hold.labels == {"venue": "O2"}

    def test_camel_case_aliases(self) -> None:
        """startsAt/endsAt are accepted and type names are normalized."""
        radio = TimelineParser().parse_string(BASIC).items[1]
        assert radio.type is ItemType.PROMO_SLOT
        assert radio.starts_at == "2025-04-10T21:00:00Z"
        assert radio.lane is None

    def test_dependencies(self) -> None:
        """Dependency kinds are coerced and ids generated."""
        timeline = TimelineParser().parse_string(BASIC)
        first, second = timeline.dependencies
        assert first.kind is DependencyKind.START_TO_START
        assert first.note == "Same night"
        assert first.id == "hold-london->radio"
        assert second.kind is DependencyKind.FINISH_TO_START

    def test_unquoted_timestamps(self) -> None:
        """YAML-native dates and datetimes are kept and resolve like strings."""
        timeline = TimelineParser().parse_string(
            """
items:
  - id: a
    title: A
    type: release_milestone
    starts_at: 2025-04-12
  - id: b
    title: B
    type: release_milestone
    starts_at: 2025-04-12T10:00:00Z
"""
        )
        a, b = timeline.items
        assert isinstance(a.starts_at, date)
        assert parse_timestamp(a.starts_at) == parse_timestamp("2025-04-12")
        assert isinstance(b.starts_at, datetime)
        assert parse_timestamp(b.starts_at) == parse_timestamp(
            datetime(2025, 4, 12, 10, tzinfo=timezone.utc)
        )

    def test_bad_timestamp_kept_for_the_engine(self) -> None:
        """Unparsable timestamps are not rejected; the item ends up unscheduled."""
        timeline = TimelineParser().parse_string(
            "items:\n  - {id: a, title: A, type: live_hold, starts_at: 'next tuesday'}\n"
        )
        result = TimelineEngine().run(timeline.items, now_ms=0)
        assert [item.id for item in result.unscheduled] == ["a"]

    def test_numeric_ids(self) -> None:
        """Numeric ids and titles are read as strings."""
        timeline = TimelineParser().parse_string(
            "items:\n  - {id: 42, title: 7, type: live_hold}\n"
            "dependencies:\n  - {from: 42, to: 42}\n"
        )
        assert timeline.items[0].id == "42"
        assert timeline.items[0].title == "7"
        assert timeline.dependencies[0].from_item_id == "42"

    def test_empty_sections(self) -> None:
        """Null sections are treated as empty."""
        timeline = TimelineParser().parse_string("items:\ndependencies:\n")
        assert timeline.items == []
        assert timeline.dependencies == []


class TestParseErrors:
    """Test rejected documents."""

    def test_non_mapping_root(self) -> None:
        """A list at the root is a parse error."""
        with pytest.raises(ParseError, match="dictionary at the root"):
            TimelineParser().parse_string("- a\n- b\n")

    def test_invalid_yaml(self) -> None:
        """Broken YAML is a parse error."""
        with pytest.raises(ParseError, match="Failed to parse YAML"):
            TimelineParser().parse_string("items: [unclosed\n")

    def test_missing_required_field(self) -> None:
        """Items need a title."""
        with pytest.raises(ValidationError, match="Invalid YAML structure"):
            TimelineParser().parse_string("items:\n  - {id: a, type: live_hold}\n")

    def test_blank_id(self) -> None:
        """Blank ids are rejected."""
        with pytest.raises(ValidationError):
            TimelineParser().parse_string("items:\n  - {id: '  ', title: A, type: live_hold}\n")

    def test_duplicate_id(self) -> None:
        """Item ids must be unique."""
        with pytest.raises(ValidationError, match="Duplicate item id 'a'"):
            TimelineParser().parse_string(
                "items:\n"
                "  - {id: a, title: A, type: live_hold}\n"
                "  - {id: a, title: B, type: live_hold}\n"
            )

    def test_unknown_type(self) -> None:
        """Unknown item types name the item."""
        with pytest.raises(ValidationError, match="Item 'a': Unknown item type 'gig'"):
            TimelineParser().parse_string("items:\n  - {id: a, title: A, type: gig}\n")

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing file is a parse error."""
        with pytest.raises(ParseError, match="File not found"):
            TimelineParser().parse_file(tmp_path / "missing.yaml")


class TestLaneInference:
    """Test lane filling from configuration."""

    DOC = (
        "items:\n"
        "  - {id: f, title: Flight, type: travel_segment, territory: JP}\n"
        "  - {id: p, title: Press, type: promo_slot}\n"
        "  - {id: m, title: Manual, type: promo_slot, lane: CUSTOM}\n"
    )

    def test_no_config_leaves_lanes_empty(self) -> None:
        """Without configuration lanes stay as written."""
        items = TimelineParser().parse_string(self.DOC).items
        assert [item.lane for item in items] == [None, None, "CUSTOM"]

    def test_rules_then_type_table(self) -> None:
        """Lane rules win; the type table fills the rest when enabled."""
        config = TourplanConfig(
            lanes=[LaneDefinition(slug="ASIA", auto_assign_rules={"territory": "JP"})],
            infer_lanes_from_type=True,
        )
        items = TimelineParser().parse_string(self.DOC, config).items
        assert [item.lane for item in items] == ["ASIA", "PROMO", "CUSTOM"]

    def test_type_table_disabled(self) -> None:
        """Without infer_lanes_from_type unmatched items keep no lane."""
        config = TourplanConfig(
            lanes=[LaneDefinition(slug="ASIA", auto_assign_rules={"territory": "JP"})]
        )
        items = TimelineParser().parse_string(self.DOC, config).items
        assert [item.lane for item in items] == ["ASIA", None, "CUSTOM"]


def test_parse_file(tmp_path: Path) -> None:
    """Files are read as UTF-8."""
    path = tmp_path / "tour.yaml"
    path.write_text(BASIC, encoding="utf-8")
    timeline = TimelineParser().parse_file(path)
    assert len(timeline.items) == 3
