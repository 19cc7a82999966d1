"""
Integration tests for swipe and deal feed endpoints.

Covers:
  POST /api/v1/swipes
  GET  /api/v1/deals/feed
"""

from __future__ import annotations

import uuid

from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dealmatch.core.exceptions import StorageUnavailableError
from dealmatch.models.deal import Deal
from dealmatch.models.match import Match
from dealmatch.models.swipe import Swipe
from dealmatch.models.user import User
from dealmatch.services.match_service import MatchService
from tests.factories import DealFactory, SwipeFactory, UserFactory


async def _swipe(client: AsyncClient, headers: dict, deal_id, direction: str = "right"):
    return await client.post(
        "/api/v1/swipes",
        json={"deal_id": str(deal_id), "direction": direction},
        headers=headers,
    )


async def _match_count(db: AsyncSession) -> int:
    return (await db.execute(select(func.count(Match.id)))).scalar()


# ---------------------------------------------------------------------------
# POST /api/v1/swipes
# ---------------------------------------------------------------------------
class TestCreateSwipe:
    async def test_right_swipe_without_counterpart(
        self,
        async_client: AsyncClient,
        alice_headers: dict,
        test_deal: Deal,
    ):
        response = await _swipe(async_client, alice_headers, test_deal.id, "right")

        assert response.status_code == 200
        data = response.json()
        assert data["swipe"]["direction"] == "right"
        assert data["swipe"]["deal_id"] == str(test_deal.id)
        assert data["match"] is None

    async def test_direction_is_case_insensitive(
        self,
        async_client: AsyncClient,
        alice_headers: dict,
        test_deal: Deal,
    ):
        response = await _swipe(async_client, alice_headers, test_deal.id, "LEFT")

        assert response.status_code == 200
        assert response.json()["swipe"]["direction"] == "left"

    async def test_invalid_direction_returns_422(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        alice_headers: dict,
        test_deal: Deal,
    ):
        response = await _swipe(async_client, alice_headers, test_deal.id, "up")

        assert response.status_code == 422
        assert response.json()["code"] == "invalid_swipe"
        count = (await db_session.execute(select(func.count(Swipe.id)))).scalar()
        assert count == 0

    async def test_unknown_deal_returns_404(
        self,
        async_client: AsyncClient,
        alice_headers: dict,
    ):
        response = await _swipe(async_client, alice_headers, uuid.uuid4())

        assert response.status_code == 404
        assert response.json()["code"] == "deal_not_found"

    async def test_inactive_deal_returns_404(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        alice_headers: dict,
    ):
        deal = await DealFactory.create_async(db_session, is_active=False)

        response = await _swipe(async_client, alice_headers, deal.id)
        assert response.status_code == 404

    async def test_swipe_without_token_is_rejected(
        self,
        async_client: AsyncClient,
        test_deal: Deal,
    ):
        response = await async_client.post(
            "/api/v1/swipes", json={"deal_id": str(test_deal.id), "direction": "right"}
        )
        assert response.status_code in (401, 403)

    async def test_duplicate_swipe_returns_409_and_keeps_first_decision(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        alice: User,
        alice_headers: dict,
        test_deal: Deal,
    ):
        first = await _swipe(async_client, alice_headers, test_deal.id, "left")
        assert first.status_code == 200

        second = await _swipe(async_client, alice_headers, test_deal.id, "right")
        assert second.status_code == 409
        assert second.json()["code"] == "duplicate_swipe"
        assert second.json()["retryable"] is False

        rows = (await db_session.execute(
            select(Swipe).where(Swipe.user_id == alice.id, Swipe.deal_id == test_deal.id)
        )).scalars().all()
        assert [s.direction for s in rows] == ["left"]


# ---------------------------------------------------------------------------
# Match resolution through the swipe endpoint
# ---------------------------------------------------------------------------
class TestSwipeMatching:
    async def test_mutual_right_swipes_create_one_match(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        alice: User,
        bob: User,
        alice_headers: dict,
        bob_headers: dict,
        test_deal: Deal,
    ):
        bob_response = await _swipe(async_client, bob_headers, test_deal.id)
        assert bob_response.json()["match"] is None

        alice_response = await _swipe(async_client, alice_headers, test_deal.id)

        assert alice_response.status_code == 200
        match = alice_response.json()["match"]
        assert match is not None
        assert match["user1_id"] == str(alice.id)
        assert match["user2_id"] == str(bob.id)
        assert match["deal_id"] == str(test_deal.id)
        assert await _match_count(db_session) == 1

        row = await db_session.get(Match, uuid.UUID(match["id"]))
        assert row.notified_user1 is False
        assert row.notified_user2 is False

    async def test_left_swipe_never_creates_match(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        alice_headers: dict,
        bob_headers: dict,
        test_deal: Deal,
    ):
        await _swipe(async_client, bob_headers, test_deal.id, "right")
        response = await _swipe(async_client, alice_headers, test_deal.id, "left")

        assert response.json()["match"] is None
        assert await _match_count(db_session) == 0

    async def test_incompatible_users_do_not_match(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        alice_headers: dict,
        test_deal: Deal,
    ):
        # Only interested in non-binary users; alice is female
        picky = await UserFactory.create_async(db_session, gender="male", preferred_gender="non_binary")
        await SwipeFactory.create_async(db_session, user_id=picky.id, deal_id=test_deal.id)

        response = await _swipe(async_client, alice_headers, test_deal.id)

        assert response.json()["match"] is None
        assert await _match_count(db_session) == 0

        # The decision itself is still recorded
        again = await _swipe(async_client, alice_headers, test_deal.id)
        assert again.status_code == 409

    async def test_matches_are_per_deal(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        alice_headers: dict,
        bob_headers: dict,
        test_deal: Deal,
    ):
        other_deal = await DealFactory.create_async(db_session)

        await _swipe(async_client, bob_headers, test_deal.id)
        await _swipe(async_client, alice_headers, other_deal.id)

        assert await _match_count(db_session) == 0

        await _swipe(async_client, alice_headers, test_deal.id)
        await _swipe(async_client, bob_headers, other_deal.id)

        assert await _match_count(db_session) == 2

    async def test_earliest_compatible_candidate_wins(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        alice_headers: dict,
        bob_headers: dict,
        test_deal: Deal,
    ):
        from datetime import datetime, timedelta, timezone

        earlier = await UserFactory.create_async(db_session, display_name="Early")
        await SwipeFactory.create_async(
            db_session,
            user_id=earlier.id,
            deal_id=test_deal.id,
            created_at=datetime.now(timezone.utc) - timedelta(hours=1),
        )
        await _swipe(async_client, bob_headers, test_deal.id)

        alice_response = await _swipe(async_client, alice_headers, test_deal.id)

        # Candidates are tried oldest right swipe first
        assert alice_response.json()["match"]["user2_id"] == str(earlier.id)


# ---------------------------------------------------------------------------
# GET /api/v1/deals/feed
# ---------------------------------------------------------------------------
class TestDealFeed:
    async def test_feed_excludes_swiped_and_inactive_deals(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        alice_headers: dict,
        test_deal: Deal,
    ):
        fresh = await DealFactory.create_async(db_session)
        await DealFactory.create_async(db_session, is_active=False)
        await _swipe(async_client, alice_headers, test_deal.id, "left")

        response = await async_client.get("/api/v1/deals/feed", headers=alice_headers)

        assert response.status_code == 200
        ids = [item["id"] for item in response.json()]
        assert ids == [str(fresh.id)]

    async def test_feed_limit_is_validated(
        self,
        async_client: AsyncClient,
        alice_headers: dict,
    ):
        response = await async_client.get("/api/v1/deals/feed?limit=0", headers=alice_headers)
        assert response.status_code == 422


class TestSwipeRetry:
    async def test_retry_after_failed_resolution_creates_the_match(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        monkeypatch,
        alice_headers: dict,
        bob_headers: dict,
        test_deal: Deal,
    ):
        await _swipe(async_client, bob_headers, test_deal.id)

        real_try_match = MatchService.try_match
        calls = []

        async def flaky_try_match(self, db, user_id, deal_id):
            calls.append(user_id)
            if len(calls) == 1:
                raise StorageUnavailableError("storage timed out")
            return await real_try_match(self, db, user_id, deal_id)

        monkeypatch.setattr(MatchService, "try_match", flaky_try_match)

        first = await _swipe(async_client, alice_headers, test_deal.id)
        assert first.status_code == 200
        assert first.json()["match"] is None
        assert await _match_count(db_session) == 0

        retry = await _swipe(async_client, alice_headers, test_deal.id)
        assert retry.status_code == 409
        assert retry.json()["code"] == "duplicate_swipe"
        assert len(calls) == 2
        assert await _match_count(db_session) == 1

        # A further retry finds the existing match instead of adding one
        await _swipe(async_client, alice_headers, test_deal.id)
        assert await _match_count(db_session) == 1

    async def test_retried_left_swipe_does_not_resolve(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        alice_headers: dict,
        bob_headers: dict,
        test_deal: Deal,
    ):
        await _swipe(async_client, bob_headers, test_deal.id)
        await _swipe(async_client, alice_headers, test_deal.id, "left")

        retry = await _swipe(async_client, alice_headers, test_deal.id, "right")

        assert retry.status_code == 409
        assert await _match_count(db_session) == 0
