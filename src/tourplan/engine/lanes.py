"""Lane normalization and canonical lane ordering."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

DEFAULT_LANE = "GENERAL"

# Known lanes render first, in this order
PREFERRED_LANE_ORDER: tuple[str, ...] = (
    "LIVE_HOLDS",
    "TRAVEL",
    "PROMO",
    "RELEASE",
    "LEGAL",
    "FINANCE",
)


def normalize_lane(raw: str | None, default_lane: str = DEFAULT_LANE) -> str:
    """Map a raw lane label to its canonical identifier.

    Only trims whitespace; a missing or blank label becomes the default lane.
    """
    if raw is None:
        return default_lane
    lane = str(raw).strip()
    return lane or default_lane


def order_lanes(
    lanes: Iterable[str], preferred: Sequence[str] = PREFERRED_LANE_ORDER
) -> list[str]:
    """Order lanes canonically: preferred lanes first, then the rest alphabetically."""
    present = set(lanes)
    known = [lane for lane in preferred if lane in present]
    custom = sorted(present.difference(preferred))
    return known + custom
