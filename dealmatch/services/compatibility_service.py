"""
Compatibility checks between two users' stated match preferences.

The predicate is pure: it only looks at the two User rows. A pair is
compatible when each user's preferences accept the other, which makes the
result symmetric by construction. CompatibilityService wraps the predicate
with user loading and a Redis memo keyed on both users' preference versions.
"""

from __future__ import annotations
from datetime import date
from typing import Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
import logging
import math

from dealmatch.core.cache import (
    compatibility_cache_key,
    get_cached_compatibility,
    set_cached_compatibility,
)
from dealmatch.core.database import bounded
from dealmatch.core.exceptions import CompatibilityLookupError, StorageUnavailableError
from dealmatch.models.user import User

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0088
ANY_GENDER = "any"


def age_on(date_of_birth: Optional[date], today: date) -> Optional[int]:
    """Whole years between date_of_birth and today, or None if unknown."""
    if date_of_birth is None:
        return None
    had_birthday = (today.month, today.day) >= (date_of_birth.month, date_of_birth.day)
    return today.year - date_of_birth.year - (0 if had_birthday else 1)


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points (haversine)."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))


def _has_location(user: User) -> bool:
    return user.latitude is not None and user.longitude is not None


def accepts(viewer: User, candidate: User, today: date) -> bool:
    """
    Whether viewer's match settings accept candidate.

    - gender: unset or "any" accepts everyone, otherwise exact match
      (case-insensitive)
    - age: candidate's age must fall inside whichever of min_age/max_age
      are set; an unknown age fails a set bound
    - distance: only enforced when the radius is set and both users have
      coordinates
    """
    preferred = (viewer.preferred_gender or ANY_GENDER).strip().lower()
    if preferred != ANY_GENDER and (candidate.gender or "").strip().lower() != preferred:
        return False

    if viewer.min_age is not None or viewer.max_age is not None:
        age = age_on(candidate.date_of_birth, today)
        if age is None:
            return False
        if viewer.min_age is not None and age < viewer.min_age:
            return False
        if viewer.max_age is not None and age > viewer.max_age:
            return False

    if viewer.max_distance_km is not None and _has_location(viewer) and _has_location(candidate):
        km = distance_km(viewer.latitude, viewer.longitude, candidate.latitude, candidate.longitude)
        if km > viewer.max_distance_km:
            return False

    return True


def is_compatible(user_a: User, user_b: User, today: Optional[date] = None) -> bool:
    """Both users' preferences must accept the other. Symmetric in its arguments."""
    today = today or date.today()
    return accepts(user_a, user_b, today) and accepts(user_b, user_a, today)


class CompatibilityService:
    """
    Remote-procedure form of the compatibility predicate.

    Takes two user ids, returns a bool. Any failure to evaluate (missing
    user, storage down) raises CompatibilityLookupError, which the match
    resolver treats as "not a match yet".
    """

    async def check(
        self,
        db: AsyncSession,
        user_a_id: UUID,
        user_b_id: UUID
    ) -> bool:
        """
        Evaluate compatibility between two users, memoized in Redis.

        Args:
            db: Active database session
            user_a_id: UUID of one user
            user_b_id: UUID of the other user

        Returns:
            True if each user's preferences accept the other

        Raises:
            CompatibilityLookupError: A user is missing or storage failed

        Example:
            if await service.check(db, alice_id, bob_id):
                ...
        """
        try:
            user_a = await bounded(db.get(User, user_a_id), "load user for compatibility")
            user_b = await bounded(db.get(User, user_b_id), "load user for compatibility")
        except StorageUnavailableError as e:
            raise CompatibilityLookupError(str(e)) from e

        if user_a is None or user_b is None:
            missing = user_a_id if user_a is None else user_b_id
            raise CompatibilityLookupError(f"User {missing} not found")

        key = compatibility_cache_key(
            user_a.id, user_b.id, user_a.preferences_version, user_b.preferences_version
        )
        cached = await get_cached_compatibility(key)
        if cached is not None:
            return cached

        compatible = is_compatible(user_a, user_b)
        await set_cached_compatibility(key, compatible)
        logger.debug(f"Compatibility {user_a_id} <-> {user_b_id}: {compatible}")
        return compatible
