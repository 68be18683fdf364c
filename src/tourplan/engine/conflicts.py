"""Pairwise scheduling conflict detection.

Three independent rules are checked for every unordered pair of scheduled items:

- lane: same lane and overlapping intervals (warning)
- territory: same territory and starts closer together than the buffer (error)
- travel: different territories and the gap between the first item's end and the
  second item's start is shorter than the buffer (warning)

Conflict ids are built from the item ids and the category, so re-running the
detector over the same items yields the same ids.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from tourplan.logger import get_logger

from .core import Conflict, ConflictCategory, ResolvedItem
from .timeutil import HOUR_MS

logger = get_logger()

DEFAULT_BUFFER_HOURS = 4.0


def buffer_ms(buffer_hours: float) -> int:
    """Convert a buffer in hours to milliseconds; negative buffers clamp to zero."""
    return int(max(buffer_hours, 0) * HOUR_MS)


def format_hours(hours: float) -> str:
    """Render an hour value without a trailing ".0"."""
    return f"{hours:g}"


def _by_id(a: ResolvedItem, b: ResolvedItem) -> tuple[ResolvedItem, ResolvedItem]:
    return (a, b) if a.id <= b.id else (b, a)


def _chronological(a: ResolvedItem, b: ResolvedItem) -> tuple[ResolvedItem, ResolvedItem]:
    """Order a pair by end time, then start time, then id."""
    key_a = (a.end_ms, a.start_ms, a.id)
    key_b = (b.end_ms, b.start_ms, b.id)
    return (a, b) if key_a <= key_b else (b, a)


def _make_conflict(
    first: ResolvedItem, second: ResolvedItem, category: ConflictCategory, message: str
) -> Conflict:
    return Conflict(
        id=f"{first.id}:{second.id}:{category.value}",
        items=(first.item, second.item),
        category=category,
        severity=category.severity,
        message=message,
    )


def check_lane_overlap(a: ResolvedItem, b: ResolvedItem) -> Conflict | None:
    """Same lane with overlapping [start, end) intervals."""
    if a.lane != b.lane or not a.overlaps(b):
        return None
    first, second = _by_id(a, b)
    return _make_conflict(
        first,
        second,
        ConflictCategory.LANE,
        f"{first.title} overlaps with {second.title} in the {first.lane} lane",
    )


def check_territory_buffer(
    a: ResolvedItem, b: ResolvedItem, buffer_hours: float
) -> Conflict | None:
    """Same non-empty territory with start times closer than the buffer."""
    territory = a.territory
    if territory is None or territory != b.territory:
        return None
    if abs(a.start_ms - b.start_ms) >= buffer_ms(buffer_hours):
        return None
    first, second = _by_id(a, b)
    return _make_conflict(
        first,
        second,
        ConflictCategory.TERRITORY,
        f"{first.title} and {second.title} are both in {territory} "
        f"without the {format_hours(max(buffer_hours, 0))}h buffer",
    )


def check_travel_gap(a: ResolvedItem, b: ResolvedItem, buffer_hours: float) -> Conflict | None:
    """Different non-empty territories with too little time between them."""
    if a.territory is None or b.territory is None or a.territory == b.territory:
        return None
    first, second = _chronological(a, b)
    gap = second.start_ms - first.end_ms
    if gap >= buffer_ms(buffer_hours):
        return None
    # Whole hours, rounded half-up; overlapping items report 0
    hours_gap = int(gap / HOUR_MS + 0.5) if gap > 0 else 0
    return _make_conflict(
        first,
        second,
        ConflictCategory.TRAVEL,
        f"{second.title} starts {hours_gap}h after {first.title} in a different territory",
    )


def check_pair(a: ResolvedItem, b: ResolvedItem, buffer_hours: float) -> list[Conflict]:
    """Run every rule over one pair; each category contributes at most one conflict."""
    found = [
        check_lane_overlap(a, b),
        check_territory_buffer(a, b, buffer_hours),
        check_travel_gap(a, b, buffer_hours),
    ]
    return [conflict for conflict in found if conflict is not None]


def detect_conflicts(
    items: Sequence[ResolvedItem],
    buffer_hours: float = DEFAULT_BUFFER_HOURS,
    *,
    summarize: bool = True,
) -> tuple[Conflict, ...]:
    """Detect conflicts across all unordered pairs of scheduled items.

    Pairs are visited in start order so the output order is deterministic. Items
    sharing an id are never compared, and a seen-key set keeps duplicate input
    records from reporting the same conflict twice.

    Args:
        items: Time-resolved items
        buffer_hours: Minimum gap tolerance in hours
        summarize: Log the pass summary at changes level; otherwise at debug

    Returns:
        Conflicts, in detection order
    """
    ordered = sorted(items, key=lambda item: (item.start_ms, item.order))
    conflicts: list[Conflict] = []
    seen: set[str] = set()

    for index, a in enumerate(ordered):
        for b in ordered[index + 1 :]:
            if a.id == b.id:
                continue
            for conflict in check_pair(a, b, buffer_hours):
                if conflict.id in seen:
                    continue
                seen.add(conflict.id)
                logger.checks(f"  {conflict.severity.value}: {conflict.message}")
                conflicts.append(conflict)

    summary = f"Detected {len(conflicts)} conflicts across {len(ordered)} items"
    if summarize:
        logger.changes(summary)
    else:
        logger.debug(summary)
    return tuple(conflicts)


def build_conflict_index(conflicts: Iterable[Conflict]) -> dict[str, tuple[Conflict, ...]]:
    """Map each item id to the conflicts it takes part in."""
    index: dict[str, list[Conflict]] = {}
    for conflict in conflicts:
        for item in conflict.items:
            index.setdefault(item.id, []).append(conflict)
    return {item_id: tuple(entries) for item_id, entries in index.items()}


def conflict_penalties(
    conflicts: Iterable[Conflict], weights: Mapping[str, float]
) -> dict[str, float]:
    """Score each item by the weighted categories of its conflicts.

    Categories missing from weights count 1.0. Used for display emphasis only.
    """
    scores: dict[str, float] = {}
    for conflict in conflicts:
        weight = weights.get(conflict.category.value, 1.0)
        for item in conflict.items:
            scores[item.id] = scores.get(item.id, 0.0) + weight
    return scores
