"""Status tiers derived from status points.

Tiers are never stored; every caller recomputes them from a wallet's
``status_pts`` through the helpers below.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Mapping


class StatusTier(str, Enum):
    CADET = "cadet"
    RESIDENT = "resident"
    HEADLINER = "headliner"
    SUPERFAN = "superfan"


STATUS_ORDER: tuple[StatusTier, ...] = (
    StatusTier.CADET,
    StatusTier.RESIDENT,
    StatusTier.HEADLINER,
    StatusTier.SUPERFAN,
)

STATUS_THRESHOLDS: Mapping[StatusTier, int] = {
    StatusTier.CADET: 0,
    StatusTier.RESIDENT: 5_000,
    StatusTier.HEADLINER: 15_000,
    StatusTier.SUPERFAN: 40_000,
}


def _assert_thresholds_increasing(thresholds: Mapping[StatusTier, int]) -> None:
    previous: int | None = None
    for tier in STATUS_ORDER:
        value = thresholds[tier]
        if previous is not None and value <= previous:
            raise ValueError(
                f"Status threshold for {tier.value} ({value}) must exceed the previous tier ({previous})"
            )
        previous = value


_assert_thresholds_increasing(STATUS_THRESHOLDS)


@dataclass(slots=True, frozen=True)
class StatusProgress:
    current: StatusTier
    next: StatusTier | None
    current_threshold: int
    next_threshold: int | None
    points_to_next: int
    progress_percentage: float


def _sanitize(status_points: float) -> float:
    if status_points is None or not math.isfinite(status_points) or status_points < 0:
        return 0
    return status_points


def threshold_for(tier: StatusTier) -> int:
    return STATUS_THRESHOLDS[StatusTier(tier)]


def compute_status(status_points: float) -> StatusTier:
    """Return the highest tier whose threshold the points reach."""

    points = _sanitize(status_points)
    for tier in reversed(STATUS_ORDER):
        if points >= STATUS_THRESHOLDS[tier]:
            return tier
    return StatusTier.CADET


def get_next_status(tier: StatusTier) -> StatusTier | None:
    index = STATUS_ORDER.index(StatusTier(tier))
    if index + 1 >= len(STATUS_ORDER):
        return None
    return STATUS_ORDER[index + 1]


def calculate_status_progress(status_points: float) -> StatusProgress:
    points = _sanitize(status_points)
    current = compute_status(points)
    upcoming = get_next_status(current)
    current_threshold = STATUS_THRESHOLDS[current]

    if upcoming is None:
        return StatusProgress(
            current=current,
            next=None,
            current_threshold=current_threshold,
            next_threshold=None,
            points_to_next=0,
            progress_percentage=100.0,
        )

    next_threshold = STATUS_THRESHOLDS[upcoming]
    span = next_threshold - current_threshold
    percentage = (points - current_threshold) / span * 100
    return StatusProgress(
        current=current,
        next=upcoming,
        current_threshold=current_threshold,
        next_threshold=next_threshold,
        points_to_next=max(0, math.ceil(next_threshold - points)),
        progress_percentage=min(100.0, max(0.0, percentage)),
    )


def is_status_at_least(current: StatusTier, required: StatusTier) -> bool:
    return STATUS_ORDER.index(StatusTier(current)) >= STATUS_ORDER.index(StatusTier(required))


__all__ = [
    "STATUS_ORDER",
    "STATUS_THRESHOLDS",
    "StatusProgress",
    "StatusTier",
    "calculate_status_progress",
    "compute_status",
    "get_next_status",
    "is_status_at_least",
    "threshold_for",
]
