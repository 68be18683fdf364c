"""Dependency edge filtering, indexing and anchor computation.

This is a rendering-oriented resolver: it neither detects cycles nor checks that
an edge's ordering actually holds in the schedule.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from tourplan.logger import get_logger
from tourplan.models import DependencyEdge, DependencyKind

from .core import Anchor, AnchoredEdge, DependencyResolution, LaneLayout, PositionedItem

logger = get_logger()


def filter_edges(
    edges: Iterable[DependencyEdge], item_ids: Iterable[str]
) -> tuple[list[DependencyEdge], int]:
    """Keep edges whose endpoints are both in the active item set.

    Returns:
        (kept edges in input order, number of dropped edges)
    """
    known = set(item_ids)
    kept: list[DependencyEdge] = []
    dropped = 0
    for edge in edges:
        if edge.from_item_id in known and edge.to_item_id in known:
            kept.append(edge)
        else:
            dropped += 1
            logger.checks(f"  Dropping edge {edge.id}: endpoint not in the active item set")
    return kept, dropped


def build_blocked_by_index(
    edges: Iterable[DependencyEdge],
) -> dict[str, tuple[DependencyEdge, ...]]:
    """Reverse index: to_item_id -> edges pointing at it ("what blocks me")."""
    index: dict[str, list[DependencyEdge]] = {}
    for edge in edges:
        index.setdefault(edge.to_item_id, []).append(edge)
    return {item_id: tuple(entries) for item_id, entries in index.items()}


def _anchor(positioned: PositionedItem, at_finish: bool) -> Anchor:
    return Anchor(
        item_id=positioned.id,
        x=positioned.right_ratio if at_finish else positioned.left_ratio,
        y=positioned.top + positioned.height / 2,
        lane=positioned.lane,
        row_index=positioned.row_index,
    )


def anchor_edge(
    edge: DependencyEdge, source: PositionedItem, target: PositionedItem
) -> AnchoredEdge:
    """Compute rendering anchors for one edge.

    FS edges leave the source's right edge; SS edges leave its left edge. Both
    arrive at the target's left edge.
    """
    return AnchoredEdge(
        edge=edge,
        source=_anchor(source, at_finish=edge.kind is DependencyKind.FINISH_TO_START),
        target=_anchor(target, at_finish=False),
    )


def resolve_dependencies(
    edges: Sequence[DependencyEdge],
    item_ids: Iterable[str],
    layouts: Sequence[LaneLayout] = (),
) -> DependencyResolution:
    """Filter, index and anchor dependency edges.

    Args:
        edges: Edges as supplied by the caller
        item_ids: Ids of every item in the active set, scheduled or not
        layouts: Packed lanes; edges are anchored only when both endpoints are
            positioned in them

    Returns:
        The kept edges, the reverse index and the anchored edges
    """
    kept, dropped = filter_edges(edges, item_ids)
    positioned = {item.id: item for layout in layouts for item in layout.items}

    anchored: list[AnchoredEdge] = []
    for edge in kept:
        source = positioned.get(edge.from_item_id)
        target = positioned.get(edge.to_item_id)
        if source is None or target is None:
            logger.debug(f"    Edge {edge.id} kept but not anchored: endpoint unscheduled")
            continue
        anchored.append(anchor_edge(edge, source, target))

    logger.changes(
        f"Dependencies: {len(kept)} kept, {dropped} dropped, {len(anchored)} anchored"
    )
    return DependencyResolution(
        edges=tuple(kept),
        blocked_by=build_blocked_by_index(kept),
        anchored=tuple(anchored),
        dropped=dropped,
    )
