"""Whether a reward can be redeemed right now."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from .status import StatusTier, is_status_at_least

INACTIVE = "inactive"
NOT_STARTED = "not_started"
ENDED = "ended"
SOLD_OUT = "sold_out"
STATUS_TOO_LOW = "status_too_low"


@dataclass(slots=True)
class AvailabilityResult:
    available: bool
    reasons: list[str] = field(default_factory=list)


def _ensure_aware(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _value(raw: Any) -> Any:
    return getattr(raw, "value", raw)


def check_reward_availability(reward: Any, now: datetime) -> AvailabilityResult:
    """Collect every reason the reward cannot be redeemed, in a fixed order."""

    now = _ensure_aware(now)
    reasons: list[str] = []

    if _value(reward.status) != "active":
        reasons.append(INACTIVE)

    window_start = _ensure_aware(reward.window_start)
    if window_start is not None and now < window_start:
        reasons.append(NOT_STARTED)

    window_end = _ensure_aware(reward.window_end)
    if window_end is not None and now > window_end:
        reasons.append(ENDED)

    if reward.inventory is not None and reward.inventory <= 0:
        reasons.append(SOLD_OUT)

    return AvailabilityResult(available=not reasons, reasons=reasons)


def check_reward_eligibility(reward: Any, now: datetime, status: StatusTier) -> AvailabilityResult:
    result = check_reward_availability(reward, now)
    min_status = getattr(reward, "min_status", None)
    if min_status is not None and not is_status_at_least(status, min_status):
        result.reasons.append(STATUS_TOO_LOW)
        result.available = False
    return result


def is_reward_available(reward: Any, now: datetime) -> bool:
    return check_reward_availability(reward, now).available


__all__ = [
    "AvailabilityResult",
    "ENDED",
    "INACTIVE",
    "NOT_STARTED",
    "SOLD_OUT",
    "STATUS_TOO_LOW",
    "check_reward_availability",
    "check_reward_eligibility",
    "is_reward_available",
]
