from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient

from superfan_api.core.settings import settings
from superfan_api.models.rewards import Reward, RewardKind
from superfan_api.services.points import PointsService


API_KEY = "ledger-secret"


@pytest.fixture
def ledger_api_key(monkeypatch):
    monkeypatch.setattr(settings, "ledger_api_key", API_KEY)
    return API_KEY


def _client(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_tap_in_and_wallet_breakdown(app_with_db, club, member_id) -> None:
    app, _ = app_with_db
    headers = {"X-Session-User": str(member_id)}

    async with _client(app) as client:
        tap = await client.post(
            "/api/v1/points/tap-ins",
            json={"clubId": str(club.id), "source": "show_entry", "ref": "door-1"},
            headers=headers,
        )
        assert tap.status_code == 201
        body = tap.json()
        assert body["pointsEarned"] == 100
        assert body["wallet"]["balancePts"] == 100
        assert body["duplicate"] is False

        replay = await client.post(
            "/api/v1/points/tap-ins",
            json={"clubId": str(club.id), "source": "show_entry", "ref": "door-1"},
            headers=headers,
        )
        assert replay.status_code == 200
        assert replay.json()["duplicate"] is True
        assert replay.json()["wallet"]["balancePts"] == 100

        wallet = await client.get(f"/api/v1/points/clubs/{club.id}/wallet", headers=headers)
        assert wallet.status_code == 200
        snapshot = wallet.json()
        assert snapshot["status"]["current"] == "cadet"
        assert snapshot["status"]["next"] == "resident"
        assert snapshot["spendingPower"]["totalSpendable"] == 100
        assert [entry["type"] for entry in snapshot["recentTransactions"]] == ["BONUS"]

        counters = await client.get("/api/v1/observability/economy")
        assert counters.json()["tapIns"]["show_entry"] == 1
        assert counters.json()["duplicates"]["tap_in"] == 1


@pytest.mark.asyncio
async def test_wallet_read_for_new_member_is_empty(app_with_db, club, member_id) -> None:
    app, session_factory = app_with_db

    async with _client(app) as client:
        response = await client.get(
            f"/api/v1/points/clubs/{club.id}/wallet",
            headers={"X-Session-User": str(member_id)},
        )

    assert response.status_code == 200
    body = response.json()
    assert body["wallet"]["id"] is None
    assert body["wallet"]["balancePts"] == 0
    assert body["recentTransactions"] == []

    async with session_factory() as session:
        assert await PointsService(session).ledger.get_wallet(member_id, club.id) is None


@pytest.mark.asyncio
async def test_member_header_is_required(app_with_db, club) -> None:
    app, _ = app_with_db

    async with _client(app) as client:
        missing = await client.get(f"/api/v1/points/clubs/{club.id}/wallet")
        invalid = await client.get(
            f"/api/v1/points/clubs/{club.id}/wallet",
            headers={"X-Session-User": "not-a-uuid"},
        )

    assert missing.status_code == 401
    assert invalid.status_code == 400


@pytest.mark.asyncio
async def test_spend_without_balance_returns_payment_required(app_with_db, club, member_id) -> None:
    app, _ = app_with_db

    async with _client(app) as client:
        response = await client.post(
            "/api/v1/points/spend",
            json={"clubId": str(club.id), "points": 50},
            headers={"X-Session-User": str(member_id)},
        )

    assert response.status_code == 402
    detail = response.json()["detail"]
    assert detail["needed"] == 50
    assert detail["available"] == 0
    assert detail["shortfall"] == 50
    assert detail["statusProtected"] is False


@pytest.mark.asyncio
async def test_spend_rejects_non_positive_amount(app_with_db, club, member_id) -> None:
    app, _ = app_with_db

    async with _client(app) as client:
        response = await client.post(
            "/api/v1/points/spend",
            json={"clubId": str(club.id), "points": 0},
            headers={"X-Session-User": str(member_id)},
        )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_purchase_requires_api_key(app_with_db, club, member_id, ledger_api_key) -> None:
    app, _ = app_with_db
    payload = {
        "userId": str(member_id),
        "clubId": str(club.id),
        "points": 1000,
        "usdGrossCents": 1000,
        "ref": "cs_test_1",
    }

    async with _client(app) as client:
        denied = await client.post("/api/v1/points/purchases", json=payload)
        assert denied.status_code == 401

        accepted = await client.post(
            "/api/v1/points/purchases",
            json=payload,
            headers={"X-API-Key": ledger_api_key},
        )
        assert accepted.status_code == 200
        body = accepted.json()
        assert body["pointsCredited"] == 1000
        assert body["wallet"]["purchasedPts"] == 1000
        assert body["split"]["platformFeeCents"] == 100
        assert body["split"]["reserveDeltaCents"] == 950

        replay = await client.post(
            "/api/v1/points/purchases",
            json=payload,
            headers={"X-API-Key": ledger_api_key},
        )
        assert replay.json()["duplicate"] is True
        assert replay.json()["split"] is None
        assert replay.json()["wallet"]["balancePts"] == 1000

        balance = await client.get(
            "/api/v1/points/global-balance",
            headers={"X-Session-User": str(member_id)},
        )
        assert balance.status_code == 200
        assert balance.json()["totalBalance"] == 1000
        assert balance.json()["clubs"][0]["clubName"] == "Night Owls"


@pytest.mark.asyncio
async def test_redeem_and_lifecycle_endpoints(app_with_db, club, member_id, ledger_api_key) -> None:
    app, session_factory = app_with_db

    async with session_factory() as session:
        reward = Reward(club_id=club.id, kind=RewardKind.ACCESS, title="Meet and greet", points_price=80, inventory=1)
        session.add(reward)
        await session.commit()
        reward_id = reward.id

    member = {"X-Session-User": str(member_id)}
    trusted = {"X-API-Key": ledger_api_key}

    async with _client(app) as client:
        await client.post(
            "/api/v1/points/tap-ins",
            json={"clubId": str(club.id), "source": "show_entry"},
            headers=member,
        )

        listing = await client.get(f"/api/v1/clubs/{club.id}/rewards")
        assert listing.status_code == 200
        assert listing.json()[0]["available"] is True

        redeemed = await client.post(
            f"/api/v1/clubs/{club.id}/rewards/{reward_id}/redeem",
            json={"ref": "mg-1", "metadata": {"event_id": "tour-stop-4"}},
            headers=member,
        )
        assert redeemed.status_code == 201
        redemption = redeemed.json()
        assert redemption["state"] == "CONFIRMED"
        assert redemption["spentEarned"] == 80

        sold_out = await client.post(
            f"/api/v1/clubs/{club.id}/rewards/{reward_id}/redeem",
            json={},
            headers=member,
        )
        assert sold_out.status_code == 409
        assert sold_out.json()["detail"]["reasons"] == ["sold_out"]

        fulfilled = await client.post(f"/api/v1/redemptions/{redemption['id']}/fulfill", headers=trusted)
        assert fulfilled.status_code == 200
        assert fulfilled.json()["state"] == "FULFILLED"

        refund = await client.post(
            f"/api/v1/redemptions/{redemption['id']}/refund",
            json={"reason": "changed mind"},
            headers=trusted,
        )
        assert refund.status_code == 409

        missing = await client.post(f"/api/v1/redemptions/{uuid4()}/confirm", headers=trusted)
        assert missing.status_code == 404


@pytest.mark.asyncio
async def test_redeem_rejects_mismatched_metadata(app_with_db, club, member_id) -> None:
    app, session_factory = app_with_db

    async with session_factory() as session:
        reward = Reward(club_id=club.id, kind=RewardKind.VARIANT, title="Signed vinyl", points_price=10)
        session.add(reward)
        await session.commit()
        reward_id = reward.id

    async with _client(app) as client:
        response = await client.post(
            f"/api/v1/clubs/{club.id}/rewards/{reward_id}/redeem",
            json={"metadata": {"kind": "ACCESS"}},
            headers={"X-Session-User": str(member_id)},
        )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_pricing_endpoints_enforce_guardrails(app_with_db, club, ledger_api_key) -> None:
    app, _ = app_with_db
    headers = {"X-API-Key": ledger_api_key}

    async with _client(app) as client:
        check = await client.post(
            f"/api/v1/clubs/{club.id}/pricing/validate",
            json={"sellCents": 50, "settleCents": 60},
            headers=headers,
        )
        assert check.status_code == 200
        assert check.json()["isValid"] is False
        assert check.json()["errors"]

        rejected = await client.put(
            f"/api/v1/clubs/{club.id}/pricing",
            json={"sellCents": 50, "settleCents": 60},
            headers=headers,
        )
        assert rejected.status_code == 422
        assert rejected.json()["detail"]["errors"]

        accepted = await client.put(
            f"/api/v1/clubs/{club.id}/pricing",
            json={"sellCents": 150, "settleCents": 70},
            headers=headers,
        )
        assert accepted.status_code == 200
        assert accepted.json() == {"clubId": str(club.id), "sellCents": 150, "settleCents": 70}

        reserve = await client.get(f"/api/v1/clubs/{club.id}/reserve", headers=headers)
        assert reserve.status_code == 200
        assert reserve.json()["coverageRatioProvisional"] is True
        assert reserve.json()["outstandingPoints"] == 0

        unknown = await client.get(f"/api/v1/clubs/{uuid4()}/reserve", headers=headers)
        assert unknown.status_code == 404
