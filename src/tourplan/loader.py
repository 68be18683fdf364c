"""Timeline loading with config discovery."""

from __future__ import annotations

from pathlib import Path

from .config import TourplanConfig, discover_config
from .models import Timeline
from .parser import TimelineParser


def load_timeline(
    path: Path | str,
    config_path: Path | None = None,
    *,
    config: TourplanConfig | None = None,
) -> tuple[Timeline, TourplanConfig]:
    """Load a timeline file together with its effective configuration.

    Args:
        path: Path to the timeline YAML file
        config_path: Optional explicit path to a config file
        config: Optional explicit config (skips discovery)

    Returns:
        (timeline, config); config defaults to TourplanConfig() when none is found
    """
    path = Path(path)
    if config is None:
        config = discover_config(path, config_path) or TourplanConfig()
    timeline = TimelineParser().parse_file(path, config=config)
    return timeline, config
