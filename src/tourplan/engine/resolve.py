"""Turn raw schedule items into time-resolved engine items."""

from __future__ import annotations

from collections.abc import Sequence

from tourplan.logger import get_logger
from tourplan.models import ScheduleItem

from .core import ResolvedItem
from .lanes import DEFAULT_LANE, normalize_lane
from .timeutil import MIN_DURATION_MS, parse_timestamp, resolve_end

logger = get_logger()


def resolve_item(
    item: ScheduleItem,
    order: int = 0,
    *,
    default_lane: str = DEFAULT_LANE,
    min_duration_ms: int = MIN_DURATION_MS,
) -> ResolvedItem | None:
    """Resolve an item's interval and lane; None when it has no usable start."""
    start = parse_timestamp(item.starts_at)
    if start is None:
        return None
    raw_end = parse_timestamp(item.ends_at)
    end = resolve_end(start, raw_end, min_duration_ms)
    if raw_end is None or raw_end <= start:
        logger.debug(f"  {item.id}: end floored to {min_duration_ms // 60000} minutes")
    return ResolvedItem(
        item=item,
        start_ms=start,
        end_ms=end,
        lane=normalize_lane(item.lane, default_lane),
        order=order,
    )


def resolve_items(
    items: Sequence[ScheduleItem],
    *,
    default_lane: str = DEFAULT_LANE,
    min_duration_ms: int = MIN_DURATION_MS,
) -> tuple[list[ResolvedItem], list[ScheduleItem]]:
    """Split items into (scheduled, unscheduled), both in input order."""
    scheduled: list[ResolvedItem] = []
    unscheduled: list[ScheduleItem] = []
    for order, item in enumerate(items):
        resolved = resolve_item(
            item, order, default_lane=default_lane, min_duration_ms=min_duration_ms
        )
        if resolved is None:
            logger.checks(f"  {item.id}: no resolvable start, listed as unscheduled")
            unscheduled.append(item)
        else:
            scheduled.append(resolved)
    return scheduled, unscheduled
