"""Shared fixtures for engine tests."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from typing import Any

import pytest

from tourplan.config import set_cli_config_path
from tourplan.engine import TimelineEngine
from tourplan.engine.core import ResolvedItem
from tourplan.engine.resolve import resolve_items
from tourplan.logger import reset_logger
from tourplan.models import ItemType, ScheduleItem

# Fixed clock for fallback windows: 2025-01-01T00:00:00Z
NOW_MS = 1_735_689_600_000


@pytest.fixture(autouse=True)
def clean_global_state() -> Iterator[None]:
    """Reset the logger and CLI config path around every test."""
    reset_logger()
    set_cli_config_path(None)
    yield
    reset_logger()
    set_cli_config_path(None)


@pytest.fixture
def make_item() -> Callable[..., ScheduleItem]:
    """Factory for schedule items with sensible defaults."""

    def _make(  # noqa: PLR0913 - mirrors ScheduleItem fields
        item_id: str,
        starts_at: Any = None,
        ends_at: Any = None,
        *,
        lane: str | None = None,
        territory: str | None = None,
        item_type: ItemType = ItemType.LIVE_HOLD,
        title: str | None = None,
        **extra: Any,
    ) -> ScheduleItem:
        return ScheduleItem(
            id=item_id,
            title=title or item_id.upper(),
            type=item_type,
            lane=lane,
            starts_at=starts_at,
            ends_at=ends_at,
            territory=territory,
            **extra,
        )

    return _make


@pytest.fixture
def resolve() -> Callable[[Sequence[ScheduleItem]], list[ResolvedItem]]:
    """Resolve items with default settings, returning only the scheduled ones."""

    def _resolve(items: Sequence[ScheduleItem]) -> list[ResolvedItem]:
        scheduled, _ = resolve_items(items)
        return scheduled

    return _resolve


@pytest.fixture
def engine() -> TimelineEngine:
    """Engine with default configuration."""
    return TimelineEngine()
