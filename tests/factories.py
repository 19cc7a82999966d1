"""
Async factories for the ORM models.

Usage example (inside an async test with db_session fixture):

    user = await UserFactory.create_async(db_session, gender="female")
    deal = await DealFactory.create_async(db_session)
    await SwipeFactory.create_async(db_session, user_id=user.id, deal_id=deal.id)
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Any

from dealmatch.models.deal import Deal
from dealmatch.models.match import Match, ordered_pair
from dealmatch.models.message import Message
from dealmatch.models.swipe import Swipe
from dealmatch.models.user import User


# ---------------------------------------------------------------------------
# Base async factory helper
# ---------------------------------------------------------------------------
class _AsyncFactory:
    """Minimal async factory helper.

    Subclasses declare ``_model`` (the ORM class) and override ``_defaults()``
    to supply default column values.  Call ``create_async(session, **kwargs)``
    to insert a row and return the flushed instance.
    """

    _model: type

    @classmethod
    def _defaults(cls) -> dict[str, Any]:
        return {}

    @classmethod
    def _prepare(cls, data: dict[str, Any]) -> dict[str, Any]:
        return data

    @classmethod
    async def create_async(cls, session, **kwargs) -> Any:
        """Create and flush an ORM instance within the given session."""
        instance = cls.build(**kwargs)
        session.add(instance)
        await session.flush()
        return instance

    @classmethod
    def build(cls, **kwargs) -> Any:
        """Build an unsaved ORM instance (no DB interaction)."""
        data = cls._prepare({**cls._defaults(), **kwargs})
        return cls._model(**data)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------
class UserFactory(_AsyncFactory):
    """Users default to no match settings, so everyone accepts everyone."""

    _model = User

    @classmethod
    def _defaults(cls) -> dict[str, Any]:
        suffix = uuid.uuid4().hex[:8]
        return {
            "id": uuid.uuid4(),
            "display_name": f"User {suffix}",
            "gender": "female",
            "date_of_birth": date(1994, 6, 15),
            "latitude": 37.7749,
            "longitude": -122.4194,
            "preferred_gender": None,
            "min_age": None,
            "max_age": None,
            "max_distance_km": None,
            "preferences_version": 0,
        }


class DealFactory(_AsyncFactory):
    _model = Deal

    @classmethod
    def _defaults(cls) -> dict[str, Any]:
        suffix = uuid.uuid4().hex[:8]
        now = datetime.now(timezone.utc)
        return {
            "id": uuid.uuid4(),
            "merchant_name": f"Merchant {suffix}",
            "deal_nature": "2-for-1 brunch",
            "terms_conditions": "Weekdays only",
            "time_period_start": now,
            "time_period_end": now + timedelta(days=30),
            "is_active": True,
            "created_at": now,
        }


class SwipeFactory(_AsyncFactory):
    _model = Swipe

    @classmethod
    def _defaults(cls) -> dict[str, Any]:
        return {
            "id": uuid.uuid4(),
            "user_id": None,  # caller must supply
            "deal_id": None,  # caller must supply
            "direction": "right",
            "created_at": datetime.now(timezone.utc),
        }


class MatchFactory(_AsyncFactory):
    """Requires user1_id, user2_id and deal_id; the sorted pair is derived."""

    _model = Match

    @classmethod
    def _defaults(cls) -> dict[str, Any]:
        return {
            "id": uuid.uuid4(),
            "user1_id": None,  # caller must supply
            "user2_id": None,  # caller must supply
            "deal_id": None,  # caller must supply
            "notified_user1": False,
            "notified_user2": False,
            "created_at": datetime.now(timezone.utc),
        }

    @classmethod
    def _prepare(cls, data: dict[str, Any]) -> dict[str, Any]:
        low, high = ordered_pair(data["user1_id"], data["user2_id"])
        data.setdefault("user_low_id", low)
        data.setdefault("user_high_id", high)
        return data


class MessageFactory(_AsyncFactory):
    _model = Message

    @classmethod
    def _defaults(cls) -> dict[str, Any]:
        return {
            "id": uuid.uuid4(),
            "match_id": None,  # caller must supply
            "sender_id": None,  # caller must supply
            "text": "hello",
            "created_at": datetime.now(timezone.utc),
        }
