"""Redemption lifecycle rules.

HELD -> CONFIRMED -> FULFILLED, with REFUNDED reachable from HELD and
CONFIRMED. FULFILLED is terminal: a consumed reward is never refunded.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Annotated, Any, Literal, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from superfan_api.models.rewards import RedemptionState, RewardKind

from .errors import InvalidRedemptionTransitionError

DEFAULT_HOLD_HOURS = 24

_ALLOWED_TRANSITIONS: Mapping[RedemptionState, set[RedemptionState]] = {
    RedemptionState.HELD: {RedemptionState.CONFIRMED, RedemptionState.REFUNDED},
    RedemptionState.CONFIRMED: {RedemptionState.FULFILLED, RedemptionState.REFUNDED},
    RedemptionState.FULFILLED: set(),
    RedemptionState.REFUNDED: set(),
}


def can_transition(current: RedemptionState, target: RedemptionState) -> bool:
    return RedemptionState(target) in _ALLOWED_TRANSITIONS[RedemptionState(current)]


def assert_transition(current: RedemptionState, target: RedemptionState) -> None:
    if not can_transition(current, target):
        raise InvalidRedemptionTransitionError(
            RedemptionState(current).value, RedemptionState(target).value
        )


def initial_state_for(kind: RewardKind) -> RedemptionState:
    if RewardKind(kind) is RewardKind.PRESALE_LOCK:
        return RedemptionState.HELD
    return RedemptionState.CONFIRMED


def calculate_hold_expiry(now: datetime, hours: int = DEFAULT_HOLD_HOURS) -> datetime:
    return now + timedelta(hours=hours)


def is_hold_expired(redemption: Any, now: datetime) -> bool:
    if RedemptionState(redemption.state) is not RedemptionState.HELD:
        return False
    expires_at = redemption.hold_expires_at
    if expires_at is None:
        return False
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return expires_at <= now


class _RedemptionMetadataBase(BaseModel):
    model_config = ConfigDict(extra="forbid")

    note: str | None = None


class AccessRedemptionMetadata(_RedemptionMetadataBase):
    kind: Literal["ACCESS"] = "ACCESS"
    access_code: str | None = None
    event_id: str | None = None


class PresaleLockRedemptionMetadata(_RedemptionMetadataBase):
    kind: Literal["PRESALE_LOCK"] = "PRESALE_LOCK"
    presale_id: str | None = None
    ticket_quantity: int = Field(default=1, ge=1)


class VariantRedemptionMetadata(_RedemptionMetadataBase):
    kind: Literal["VARIANT"] = "VARIANT"
    variant_sku: str | None = None
    size: str | None = None
    shipping_required: bool = False


RedemptionMetadata = Annotated[
    Union[AccessRedemptionMetadata, PresaleLockRedemptionMetadata, VariantRedemptionMetadata],
    Field(discriminator="kind"),
]

_METADATA_ADAPTER: TypeAdapter[RedemptionMetadata] = TypeAdapter(RedemptionMetadata)


def parse_redemption_metadata(kind: RewardKind, payload: Mapping[str, Any] | None) -> RedemptionMetadata:
    """Validate caller-supplied metadata against the shape for ``kind``.

    A ``kind`` key in the payload that disagrees with the reward kind fails
    validation.
    """

    data = dict(payload or {})
    data.setdefault("kind", RewardKind(kind).value)
    metadata = _METADATA_ADAPTER.validate_python(data)
    if metadata.kind != RewardKind(kind).value:
        raise ValueError(f"Metadata kind {metadata.kind} does not match reward kind {RewardKind(kind).value}")
    return metadata


__all__ = [
    "AccessRedemptionMetadata",
    "DEFAULT_HOLD_HOURS",
    "PresaleLockRedemptionMetadata",
    "RedemptionMetadata",
    "VariantRedemptionMetadata",
    "assert_transition",
    "calculate_hold_expiry",
    "can_transition",
    "initial_state_for",
    "is_hold_expired",
    "parse_redemption_metadata",
]
