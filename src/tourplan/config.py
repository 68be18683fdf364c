"""Unified configuration loader for engine, layout and lane settings.

A single YAML file (tourplan_config.yaml) holds every section::

    engine:
      buffer_hours: 6
      lane_order: [LIVE_HOLDS, TRAVEL, PROMO]
    layout:
      item_height: 96
    conflicts:
      weights: {territory: 5}
    lanes:
      - slug: TRAVEL
        auto_assign_rules: {type: travel_segment}
    infer_lanes_from_type: true
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from .engine.config import ConflictConfig, EngineConfig, LayoutConfig
from .lane_rules import LaneDefinition

CONFIG_FILENAME = "tourplan_config.yaml"

# Path given with the CLI --config option; consulted by discover_config()
_cli_config_path: Path | None = None


def set_cli_config_path(path: Path | None) -> None:
    """Remember the config path passed on the command line."""
    global _cli_config_path  # noqa: PLW0603
    _cli_config_path = path


class TourplanConfig(BaseModel):
    """Unified configuration for a timeline project."""

    engine: EngineConfig = Field(default_factory=EngineConfig)
    lanes: list[LaneDefinition] = Field(default_factory=list[LaneDefinition])
    infer_lanes_from_type: bool = False  # Fill missing lanes from the item type table

    def lane_order(self) -> list[str]:
        """Lane order: configured lane definitions by sort order, else engine.lane_order."""
        if self.lanes:
            ordered = sorted(self.lanes, key=lambda lane: (lane.sort_order, lane.label))
            return [lane.slug for lane in ordered]
        return list(self.engine.lane_order)

    def engine_config(self) -> EngineConfig:
        """Engine config with the effective lane order applied."""
        return self.engine.model_copy(update={"lane_order": self.lane_order()})


def load_config(config_path: Path | str) -> TourplanConfig:
    """Load unified configuration from a YAML file.

    The top-level ``layout`` and ``conflicts`` sections are folded into the
    engine section.

    Args:
        config_path: Path to tourplan_config.yaml

    Returns:
        Validated TourplanConfig

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ValueError: If the config is empty or invalid
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with config_path.open(encoding="utf-8") as f:
        data: Any = yaml.safe_load(f)

    if not data:
        raise ValueError("Empty configuration file")
    if not isinstance(data, dict):
        raise ValueError("Configuration must be a mapping at the root level")

    engine_data: dict[str, Any] = dict(data.get("engine") or {})

    try:
        if "layout" in data:
            engine_data["layout"] = LayoutConfig.model_validate(data["layout"] or {})
        if "conflicts" in data:
            engine_data["conflicts"] = ConflictConfig.model_validate(data["conflicts"] or {})
        return TourplanConfig(
            engine=EngineConfig.model_validate(engine_data),
            lanes=[LaneDefinition.model_validate(lane) for lane in data.get("lanes") or []],
            infer_lanes_from_type=bool(data.get("infer_lanes_from_type", False)),
        )
    except PydanticValidationError as e:
        raise ValueError(f"Invalid configuration: {e}") from e


def discover_config(
    timeline_path: Path | None = None, config_path: Path | None = None
) -> TourplanConfig | None:
    """Find and load a config file.

    Search order:
    1. Explicit config_path argument
    2. Path set via CLI --config
    3. Timeline file directory / tourplan_config.yaml
    4. Current directory / tourplan_config.yaml
    """
    candidates: list[Path | None] = [config_path, _cli_config_path]
    if timeline_path is not None:
        candidates.append(Path(timeline_path).parent / CONFIG_FILENAME)
    candidates.append(Path(CONFIG_FILENAME))

    for candidate in candidates:
        if candidate is not None and candidate.exists():
            return load_config(candidate)
    return None
