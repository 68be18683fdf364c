"""Time window derivation and axis tick generation."""

from __future__ import annotations

from collections.abc import Callable, Sequence

from .config import ViewGranularity
from .core import ResolvedItem, Tick, TimeWindow
from .timeutil import (
    DAY_MS,
    HOUR_MS,
    WEEK_MS,
    add_months,
    from_epoch_ms,
    iso_week_number,
    start_of_day,
    start_of_hour,
    start_of_month,
    start_of_week,
)

# Quarter views show at most this many week ticks/columns
MAX_QUARTER_WEEKS = 13

# Minimum fractional padding on each side of a derived range
RANGE_PADDING_FRACTION = 0.05

# Natural span of each view, used when an explicit window is empty
VIEW_SPAN_MS: dict[ViewGranularity, int] = {
    ViewGranularity.DAY: DAY_MS,
    ViewGranularity.WEEK: 7 * DAY_MS,
    ViewGranularity.MONTH: 30 * DAY_MS,
    ViewGranularity.QUARTER: MAX_QUARTER_WEEKS * WEEK_MS,
    ViewGranularity.YEAR: 365 * DAY_MS,
}


def derive_range(
    items: Sequence[ResolvedItem],
    now_ms: int,
    *,
    days_before: int = 3,
    days_after: int = 10,
) -> TimeWindow:
    """Derive a view window from the scheduled items.

    Scans for the earliest start and the latest end, then pads each side by the
    larger of one day and 5% of the span. With no scheduled items the window
    falls back to [now - days_before, now + days_after].
    """
    if not items:
        return TimeWindow(now_ms - days_before * DAY_MS, now_ms + days_after * DAY_MS)

    start = min(item.start_ms for item in items)
    end = max(item.end_ms for item in items)
    padding = max(DAY_MS, round((end - start) * RANGE_PADDING_FRACTION))
    return TimeWindow(start - padding, end + padding)


def describe_range(view: ViewGranularity, start_ms: int, end_ms: int) -> TimeWindow:
    """Build an explicit window, widening it by the view's span when end <= start."""
    if end_ms <= start_ms:
        end_ms = start_ms + VIEW_SPAN_MS[view]
    return TimeWindow(start_ms, end_ms)


def _day_label(ms: int) -> str:
    moment = from_epoch_ms(ms)
    return f"{moment:%a}, {moment:%b} {moment.day}"


def compact_date(ms: int) -> str:
    """Short date label such as "Jan 6"."""
    moment = from_epoch_ms(ms)
    return f"{moment:%b} {moment.day}"


def _ticks_every(
    window: TimeWindow,
    first_ms: int,
    step: Callable[[int], int],
    make: Callable[[int, int], Tick],
    limit: int | None = None,
) -> tuple[Tick, ...]:
    last_ms = window.start_ms + window.span_ms
    ticks: list[Tick] = []
    ms = first_ms
    while ms <= last_ms and (limit is None or len(ticks) < limit):
        ticks.append(make(ms, len(ticks)))
        ms = step(ms)
    return tuple(ticks)


def build_ticks(window: TimeWindow, view: ViewGranularity) -> tuple[Tick, ...]:
    """Generate axis ticks at calendar boundaries for the given view.

    - day: every hour
    - week, month: every UTC midnight (month ticks carry the ISO week number)
    - quarter: every Monday, labelled "Week N", at most 13 ticks
    - year: the first of every month

    Ticks start at the boundary at or before the window start, so the first tick
    may sit slightly left of zero. The window span used for ratios is floored to
    one day, which guarantees at least one tick inside the view.
    """
    if view is ViewGranularity.DAY:
        return _ticks_every(
            window,
            start_of_hour(window.start_ms),
            lambda ms: ms + HOUR_MS,
            lambda ms, _: Tick(ms, window.ratio(ms), f"{from_epoch_ms(ms):%H:%M}"),
        )

    if view is ViewGranularity.QUARTER:
        return _ticks_every(
            window,
            start_of_week(window.start_ms),
            lambda ms: ms + WEEK_MS,
            lambda ms, index: Tick(
                ms,
                window.ratio(ms),
                f"Week {index + 1}",
                sub_label=f"{compact_date(ms)} - {compact_date(ms + 6 * DAY_MS)}",
                week_number=iso_week_number(ms),
            ),
            limit=MAX_QUARTER_WEEKS,
        )

    if view is ViewGranularity.YEAR:
        return _ticks_every(
            window,
            start_of_month(window.start_ms),
            lambda ms: add_months(ms, 1),
            lambda ms, _: Tick(ms, window.ratio(ms), f"{from_epoch_ms(ms):%b %Y}"),
        )

    with_week = view is ViewGranularity.MONTH
    return _ticks_every(
        window,
        start_of_day(window.start_ms),
        lambda ms: ms + DAY_MS,
        lambda ms, _: Tick(
            ms,
            window.ratio(ms),
            _day_label(ms),
            week_number=iso_week_number(ms) if with_week else None,
        ),
    )
