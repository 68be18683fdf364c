"""Tourplan - timeline layout, conflict detection and dependency rendering."""

from .engine import TimelineEngine
from .models import DependencyEdge, DependencyKind, ItemType, ScheduleItem, Timeline

__all__ = [
    "DependencyEdge",
    "DependencyKind",
    "ItemType",
    "ScheduleItem",
    "Timeline",
    "TimelineEngine",
]
