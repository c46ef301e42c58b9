import datetime as dt
from uuid import uuid4

import pytest
from sqlalchemy import select

from superfan_api.domain.economy.errors import (
    InsufficientPointsError,
    InvalidRedemptionTransitionError,
    RedemptionHoldExpiredError,
    RewardNotFoundError,
    RewardUnavailableError,
)
from superfan_api.domain.economy.status import StatusTier
from superfan_api.jobs.redemption_holds import release_expired_redemption_holds
from superfan_api.models.points import PointTransaction, PointTransactionType
from superfan_api.models.rewards import RedemptionState, Reward, RewardKind, RewardStatus
from superfan_api.services.points import PointsService, RedemptionService
from superfan_api.workers.redemption_holds import RedemptionHoldReleaseWorker


async def _add_reward(session, club_id, **overrides) -> Reward:
    values = {
        "club_id": club_id,
        "kind": RewardKind.ACCESS,
        "title": "Soundcheck pass",
        "points_price": 300,
        "inventory": 2,
    }
    values.update(overrides)
    reward = Reward(**values)
    session.add(reward)
    await session.commit()
    await session.refresh(reward)
    return reward


async def _fund(service: PointsService, user_id, club_id, *, earned: int = 0, purchased: int = 0) -> None:
    if earned:
        await service.record_tap_in(user_id, club_id, "qr_code", points_override=earned)
    if purchased:
        await service.record_purchase(user_id, club_id, purchased, 0, purchased, None, None, f"fund-{uuid4().hex}")


@pytest.mark.asyncio
async def test_end_to_end_tap_purchase_redeem(session_factory, club, member_id) -> None:
    async with session_factory() as session:
        service = PointsService(session)

        wallet = await service.ledger.get_or_create_point_wallet(member_id, club.id)
        assert (wallet.balance_pts, wallet.earned_pts, wallet.purchased_pts) == (0, 0, 0)

        tap = await service.record_tap_in(member_id, club.id, "show_entry")
        assert (tap.wallet.balance_pts, tap.wallet.earned_pts) == (100, 100)

        purchase = await service.record_purchase(member_id, club.id, 1_000, 0, 1_000, None, None, "sess_1")
        assert (purchase.wallet.balance_pts, purchase.wallet.purchased_pts) == (1_100, 1_000)
        assert purchase.split.reserve_delta_cents == 950

        reward = await _add_reward(session, club.id, points_price=1_050, inventory=3)
        redemption = await service.redeem_reward(member_id, club.id, reward.id)

        assert redemption.state == RedemptionState.CONFIRMED
        assert redemption.spent_purchased == 1_000
        assert redemption.spent_earned == 50

        current = await service.ledger.get_wallet_by_id(wallet.id)
        assert current.balance_pts == 50
        assert current.purchased_pts == 0
        assert current.earned_pts == 50
        assert current.spent_pts == 1_050

        spends = (
            await session.execute(
                select(PointTransaction).where(PointTransaction.type == PointTransactionType.SPEND)
            )
        ).scalars().all()
        assert [entry.pts for entry in spends] == [1_050]

        await session.refresh(reward)
        assert reward.inventory == 2

        replay = await service.record_purchase(member_id, club.id, 1_000, 0, 1_000, None, None, "sess_1")
        assert replay.duplicate is True
        assert replay.wallet.balance_pts == 50


@pytest.mark.asyncio
async def test_presale_lock_is_held_until_confirmed(session_factory, club, member_id) -> None:
    now = dt.datetime(2026, 6, 1, 18, 0, tzinfo=dt.timezone.utc)
    async with session_factory() as session:
        service = PointsService(session)
        await _fund(service, member_id, club.id, purchased=500)
        reward = await _add_reward(session, club.id, kind=RewardKind.PRESALE_LOCK, inventory=None)

        redemption = await service.redeem_reward(
            member_id,
            club.id,
            reward.id,
            metadata={"presale_id": "tour-2026", "ticket_quantity": 2},
            now=now,
        )
        assert redemption.state == RedemptionState.HELD
        assert redemption.metadata_json["kind"] == "PRESALE_LOCK"
        assert redemption.metadata_json["ticket_quantity"] == 2

        redemptions = RedemptionService(session)
        confirmed = await redemptions.confirm(redemption.id, now=now + dt.timedelta(hours=1))
        assert confirmed.state == RedemptionState.CONFIRMED
        assert confirmed.hold_expires_at is None

        fulfilled = await redemptions.fulfill(redemption.id)
        assert fulfilled.state == RedemptionState.FULFILLED

        with pytest.raises(InvalidRedemptionTransitionError):
            await redemptions.refund(redemption.id)


@pytest.mark.asyncio
async def test_expired_hold_cannot_be_confirmed(session_factory, club, member_id) -> None:
    now = dt.datetime(2026, 6, 1, 18, 0, tzinfo=dt.timezone.utc)
    async with session_factory() as session:
        service = PointsService(session)
        await _fund(service, member_id, club.id, purchased=500)
        reward = await _add_reward(session, club.id, kind=RewardKind.PRESALE_LOCK)
        redemption = await service.redeem_reward(member_id, club.id, reward.id, now=now)

        with pytest.raises(RedemptionHoldExpiredError):
            await RedemptionService(session).confirm(redemption.id, now=now + dt.timedelta(hours=25))


@pytest.mark.asyncio
async def test_refund_restores_split_and_inventory(session_factory, club, member_id) -> None:
    async with session_factory() as session:
        service = PointsService(session)
        await _fund(service, member_id, club.id, earned=200, purchased=150)
        reward = await _add_reward(session, club.id, points_price=300, inventory=1)

        redemption = await service.redeem_reward(member_id, club.id, reward.id)
        assert (redemption.spent_purchased, redemption.spent_earned) == (150, 150)

        refunded = await RedemptionService(session).refund(redemption.id, reason="event_cancelled")
        assert refunded.state == RedemptionState.REFUNDED
        assert refunded.refund_reason == "event_cancelled"

        wallet = await service.ledger.get_wallet(member_id, club.id)
        assert (wallet.balance_pts, wallet.earned_pts, wallet.purchased_pts, wallet.spent_pts) == (350, 200, 150, 0)

        await session.refresh(reward)
        assert reward.inventory == 1

        with pytest.raises(InvalidRedemptionTransitionError):
            await RedemptionService(session).refund(redemption.id)


@pytest.mark.asyncio
async def test_redeem_rejections_leave_wallet_untouched(session_factory, club, member_id) -> None:
    async with session_factory() as session:
        service = PointsService(session)
        await _fund(service, member_id, club.id, earned=100)

        sold_out = await _add_reward(session, club.id, inventory=0)
        with pytest.raises(RewardUnavailableError) as excinfo:
            await service.redeem_reward(member_id, club.id, sold_out.id)
        assert excinfo.value.reasons == ["sold_out"]

        later = await _add_reward(
            session,
            club.id,
            window_start=dt.datetime.now(dt.timezone.utc) + dt.timedelta(days=3),
        )
        with pytest.raises(RewardUnavailableError) as excinfo:
            await service.redeem_reward(member_id, club.id, later.id)
        assert excinfo.value.reasons == ["not_started"]

        vip = await _add_reward(session, club.id, points_price=10, min_status=StatusTier.RESIDENT)
        with pytest.raises(RewardUnavailableError) as excinfo:
            await service.redeem_reward(member_id, club.id, vip.id)
        assert excinfo.value.reasons == ["status_too_low"]

        pricey = await _add_reward(session, club.id, points_price=5_000)
        with pytest.raises(InsufficientPointsError):
            await service.redeem_reward(member_id, club.id, pricey.id)

        with pytest.raises(RewardNotFoundError):
            await service.redeem_reward(member_id, uuid4(), pricey.id)

        await session.refresh(pricey)
        assert pricey.inventory == 2
        wallet = await service.ledger.get_wallet(member_id, club.id)
        assert wallet.balance_pts == 100


@pytest.mark.asyncio
async def test_last_unit_goes_to_one_member(session_factory, club) -> None:
    first_member, second_member = uuid4(), uuid4()
    async with session_factory() as session:
        service = PointsService(session)
        await _fund(service, first_member, club.id, purchased=500)
        await _fund(service, second_member, club.id, purchased=500)
        reward = await _add_reward(session, club.id, inventory=1)

        await service.redeem_reward(first_member, club.id, reward.id)
        with pytest.raises(RewardUnavailableError):
            await service.redeem_reward(second_member, club.id, reward.id)

        await session.refresh(reward)
        assert reward.inventory == 0
        wallet = await service.ledger.get_wallet(second_member, club.id)
        assert wallet.balance_pts == 500


@pytest.mark.asyncio
async def test_redemption_ref_replay_charges_once(session_factory, club, member_id) -> None:
    async with session_factory() as session:
        service = PointsService(session)
        await _fund(service, member_id, club.id, purchased=1_000)
        reward = await _add_reward(session, club.id, inventory=None)

        first = await service.redeem_reward(member_id, club.id, reward.id, ref="checkout-9")
        second = await service.redeem_reward(member_id, club.id, reward.id, ref="checkout-9")

        assert first.id == second.id
        wallet = await service.ledger.get_wallet(member_id, club.id)
        assert wallet.balance_pts == 700


@pytest.mark.asyncio
async def test_release_job_refunds_expired_holds(session_factory, club, member_id) -> None:
    placed_at = dt.datetime.now(dt.timezone.utc) - dt.timedelta(hours=30)
    async with session_factory() as session:
        service = PointsService(session)
        await _fund(service, member_id, club.id, purchased=1_000)
        reward = await _add_reward(session, club.id, kind=RewardKind.PRESALE_LOCK, inventory=5)
        stale = await service.redeem_reward(member_id, club.id, reward.id, now=placed_at)
        fresh = await service.redeem_reward(member_id, club.id, reward.id)
        stale_id, fresh_id, reward_id = stale.id, fresh.id, reward.id

    summary = await release_expired_redemption_holds(session_factory=session_factory)
    assert summary["released"] == 1
    assert summary["redemption_ids"] == [str(stale_id)]

    async with session_factory() as session:
        redemptions = RedemptionService(session)
        assert (await redemptions.get_redemption(stale_id)).state == RedemptionState.REFUNDED
        assert (await redemptions.get_redemption(stale_id)).refund_reason == "hold_expired"
        assert (await redemptions.get_redemption(fresh_id)).state == RedemptionState.HELD

        reward = await session.get(Reward, reward_id)
        assert reward.inventory == 4
        wallet = await PointsService(session).ledger.get_wallet(member_id, club.id)
        assert wallet.balance_pts == 700


@pytest.mark.asyncio
async def test_hold_release_worker_run_once_tracks_metrics(session_factory, club, member_id) -> None:
    async with session_factory() as session:
        service = PointsService(session)
        await _fund(service, member_id, club.id, purchased=400)
        reward = await _add_reward(session, club.id, kind=RewardKind.PRESALE_LOCK, status=RewardStatus.ACTIVE)
        await service.redeem_reward(
            member_id,
            club.id,
            reward.id,
            now=dt.datetime.now(dt.timezone.utc) - dt.timedelta(days=2),
        )

    worker = RedemptionHoldReleaseWorker(session_factory, interval_seconds=60, batch_size=10)
    summary = await worker.run_once()

    assert summary["released"] == 1
    assert worker.metrics.runs == 1
    assert worker.metrics.released_total == 1
    assert worker.metrics.last_success_at is not None
    assert worker.is_running is False
