from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from superfan_api.domain.economy.availability import (
    check_reward_availability,
    check_reward_eligibility,
    is_reward_available,
)
from superfan_api.domain.economy.errors import InvalidRedemptionTransitionError
from superfan_api.domain.economy.redemption_states import (
    assert_transition,
    calculate_hold_expiry,
    initial_state_for,
    is_hold_expired,
    parse_redemption_metadata,
)
from superfan_api.domain.economy.status import StatusTier
from superfan_api.models.rewards import RedemptionState, RewardKind, RewardStatus


NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)


def _reward(**overrides):
    values = {
        "status": RewardStatus.ACTIVE,
        "window_start": None,
        "window_end": None,
        "inventory": None,
        "min_status": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def test_sold_out_reward_is_never_available() -> None:
    reward = _reward(inventory=0)

    result = check_reward_availability(reward, NOW)
    assert result.available is False
    assert result.reasons == ["sold_out"]


def test_future_window_blocks_otherwise_eligible_reward() -> None:
    reward = _reward(window_start=NOW + timedelta(days=1), inventory=5)

    assert not is_reward_available(reward, NOW)
    assert check_reward_availability(reward, NOW).reasons == ["not_started"]


def test_unlimited_inventory_is_never_blocked_by_stock() -> None:
    assert is_reward_available(_reward(inventory=None), NOW)


def test_all_reasons_reported_in_order() -> None:
    reward = _reward(
        status=RewardStatus.INACTIVE,
        window_end=(NOW - timedelta(days=1)).replace(tzinfo=None),
        inventory=0,
    )

    assert check_reward_availability(reward, NOW).reasons == ["inactive", "ended", "sold_out"]


def test_min_status_is_checked_for_eligibility() -> None:
    reward = _reward(min_status=StatusTier.HEADLINER)

    blocked = check_reward_eligibility(reward, NOW, StatusTier.RESIDENT)
    assert blocked.reasons == ["status_too_low"]
    assert check_reward_eligibility(reward, NOW, StatusTier.SUPERFAN).available


def test_redemption_transitions() -> None:
    assert_transition(RedemptionState.HELD, RedemptionState.CONFIRMED)
    assert_transition(RedemptionState.CONFIRMED, RedemptionState.FULFILLED)
    assert_transition(RedemptionState.HELD, RedemptionState.REFUNDED)
    assert_transition(RedemptionState.CONFIRMED, RedemptionState.REFUNDED)

    with pytest.raises(InvalidRedemptionTransitionError):
        assert_transition(RedemptionState.FULFILLED, RedemptionState.REFUNDED)
    with pytest.raises(InvalidRedemptionTransitionError):
        assert_transition(RedemptionState.HELD, RedemptionState.FULFILLED)
    with pytest.raises(InvalidRedemptionTransitionError):
        assert_transition(RedemptionState.REFUNDED, RedemptionState.CONFIRMED)


def test_presale_locks_start_held() -> None:
    assert initial_state_for(RewardKind.PRESALE_LOCK) == RedemptionState.HELD
    assert initial_state_for(RewardKind.ACCESS) == RedemptionState.CONFIRMED
    assert initial_state_for(RewardKind.VARIANT) == RedemptionState.CONFIRMED


def test_hold_expiry() -> None:
    expires_at = calculate_hold_expiry(NOW)
    held = SimpleNamespace(state=RedemptionState.HELD, hold_expires_at=expires_at)
    confirmed = SimpleNamespace(state=RedemptionState.CONFIRMED, hold_expires_at=expires_at)

    assert expires_at == NOW + timedelta(hours=24)
    assert not is_hold_expired(held, NOW)
    assert is_hold_expired(held, expires_at)
    assert not is_hold_expired(confirmed, expires_at + timedelta(hours=1))


def test_metadata_is_validated_per_kind() -> None:
    metadata = parse_redemption_metadata(RewardKind.VARIANT, {"variant_sku": "TEE-L", "size": "L"})
    assert metadata.kind == "VARIANT"
    assert metadata.variant_sku == "TEE-L"

    with pytest.raises(ValueError):
        parse_redemption_metadata(RewardKind.ACCESS, {"variant_sku": "TEE-L"})
    with pytest.raises(ValueError):
        parse_redemption_metadata(RewardKind.ACCESS, {"kind": "VARIANT"})
