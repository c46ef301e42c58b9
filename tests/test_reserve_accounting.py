from superfan_api.domain.economy.reserve import (
    build_purchase_split,
    calculate_coverage_ratio,
    calculate_platform_fee,
    calculate_reserve_delta,
    calculate_reserve_target,
    calculate_upfront_amount,
    derive_unit_sell_cents,
)


def test_reserve_target_applies_breakage_and_buffer() -> None:
    # 1000 pts * 60c * 0.95
    assert calculate_reserve_target(1_000, 60) == 57_000
    assert calculate_reserve_target(3, 7) == 20
    assert calculate_reserve_target(0, 60) == 0


def test_reserve_delta_matches_target_for_single_purchase() -> None:
    assert calculate_reserve_delta(1_000, 1) == calculate_reserve_target(1_000, 1) == 950


def test_upfront_amount_never_negative() -> None:
    assert calculate_upfront_amount(1_000, 500) == 400
    assert calculate_upfront_amount(1_000, 5_000) == 0


def test_platform_fee_rounds_to_cents() -> None:
    assert calculate_platform_fee(1_000) == 100
    assert calculate_platform_fee(1_005) == 101


def test_coverage_ratio_is_placeholder() -> None:
    assert calculate_coverage_ratio(57_000) == 1.0
    assert calculate_coverage_ratio(0) == 1.0
    assert calculate_coverage_ratio(100, simulated_nav=50) == 0.5


def test_purchase_split() -> None:
    split = build_purchase_split(1_000, 1_000, 1)

    assert split.platform_fee_cents == 100
    assert split.reserve_delta_cents == 950
    assert split.upfront_cents == 0


def test_unit_sell_is_derived_from_paid_points() -> None:
    assert derive_unit_sell_cents(1_000, 1_000) == 1
    assert derive_unit_sell_cents(5_000, 5_000) == 1
    assert derive_unit_sell_cents(1_200, 1_000) == 1
    assert derive_unit_sell_cents(1_500, 1_000) == 2
    assert derive_unit_sell_cents(1_000, 0) == 0
