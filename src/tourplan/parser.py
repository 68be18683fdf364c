"""YAML parser for timeline documents."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ParseError, ValidationError
from .lane_rules import item_context, resolve_auto_assigned_lane
from .logger import get_logger
from .models import (
    DependencyEdge,
    DependencyKind,
    ItemType,
    ScheduleItem,
    Timeline,
    TimelineMetadata,
    lane_for_type,
)
from .schemas import ItemSchema, TimelineSchema

if TYPE_CHECKING:
    from .config import TourplanConfig

logger = get_logger()


class TimelineParser:
    """Parser for timeline YAML files.

    Validates structure and required fields. Timestamps are passed through
    untouched so the engine can degrade unparsable values to "unscheduled".
    """

    def parse_file(self, file_path: Path | str, config: TourplanConfig | None = None) -> Timeline:
        """Parse a YAML file into a Timeline."""
        path = Path(file_path)
        if not path.exists():
            raise ParseError(f"File not found: {file_path}")

        try:
            with path.open(encoding="utf-8") as f:
                data: Any = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ParseError(f"Failed to parse YAML: {e}") from e

        return self.parse_data(data, config)

    def parse_string(self, text: str, config: TourplanConfig | None = None) -> Timeline:
        """Parse YAML text into a Timeline."""
        try:
            data: Any = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ParseError(f"Failed to parse YAML: {e}") from e
        return self.parse_data(data, config)

    def parse_data(self, data: Any, config: TourplanConfig | None = None) -> Timeline:
        """Validate loaded YAML data and convert it to domain models."""
        if not isinstance(data, dict):
            raise ParseError("YAML must contain a dictionary at the root level")

        try:
            schema = TimelineSchema.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid YAML structure: {e}") from e

        items: list[ScheduleItem] = []
        seen: set[str] = set()
        for item_data in schema.items:
            if item_data.id in seen:
                raise ValidationError(f"Duplicate item id '{item_data.id}'")
            seen.add(item_data.id)
            items.append(self._build_item(item_data, config))

        dependencies = [
            DependencyEdge(
                from_item_id=dep.from_item_id,
                to_item_id=dep.to_item_id,
                kind=DependencyKind.coerce(dep.kind),
                note=dep.note,
                id=dep.id or "",
            )
            for dep in schema.dependencies
        ]

        return Timeline(
            metadata=TimelineMetadata(project=schema.project, version=schema.version),
            items=items,
            dependencies=dependencies,
        )

    def _build_item(self, data: ItemSchema, config: TourplanConfig | None) -> ScheduleItem:
        try:
            item_type = ItemType.parse(data.type)
        except ValueError as e:
            raise ValidationError(f"Item '{data.id}': {e}") from e

        item = ScheduleItem(
            id=data.id,
            title=data.title,
            type=item_type,
            lane=data.lane,
            starts_at=data.starts_at,
            ends_at=data.ends_at,
            territory=data.territory,
            priority=data.priority,
            status=data.status,
            labels=dict(data.labels),
        )
        if (data.lane or "").strip() or config is None:
            return item
        return _with_inferred_lane(item, config)


def _with_inferred_lane(item: ScheduleItem, config: TourplanConfig) -> ScheduleItem:
    """Fill a missing lane from lane rules, then from the type table if enabled."""
    lane = resolve_auto_assigned_lane(config.lanes, item_context(item))
    if lane is not None:
        logger.checks(f"  {item.id}: auto-assigned to lane {lane.slug}")
        return replace(item, lane=lane.slug)
    if config.infer_lanes_from_type:
        slug = lane_for_type(item.type)
        logger.checks(f"  {item.id}: lane {slug} inferred from type {item.type.value}")
        return replace(item, lane=slug)
    return item
