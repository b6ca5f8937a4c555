from __future__ import annotations

import logging

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from aggregation.models.domain import UserPreferences
from aggregation.services.cache import CacheKeys, CacheStore

from . import db_models

logger = logging.getLogger(__name__)


def _cache_params(user_id: str) -> dict[str, str]:
    return {"userId": user_id}


def get_preferences(
    session: Session,
    cache: CacheStore,
    user_id: str,
    *,
    ttl_seconds: int,
) -> UserPreferences | None:
    """Return a user's preferences, reading through the preference cache."""
    cached = cache.get(CacheKeys.USER_PREFERENCES, _cache_params(user_id))
    if cached is not None:
        try:
            return UserPreferences.model_validate(cached)
        except PydanticValidationError:
            logger.warning("preferences.cache.invalid", extra={"user_id": user_id})

    row = session.get(db_models.UserProfile, user_id)
    if row is None:
        return None
    preferences = UserPreferences.model_validate(row.preferences or {})
    cache.set(
        CacheKeys.USER_PREFERENCES,
        _cache_params(user_id),
        preferences.model_dump(mode="json"),
        ttl_seconds,
    )
    return preferences


def upsert_preferences(
    session: Session,
    cache: CacheStore,
    user_id: str,
    preferences: UserPreferences,
) -> UserPreferences:
    row = session.get(db_models.UserProfile, user_id)
    payload = preferences.model_dump(mode="json")
    if row is None:
        row = db_models.UserProfile(user_id=user_id, preferences=payload)
        session.add(row)
    else:
        row.preferences = payload
    # invalidate only after the new row is committed
    session.commit()
    cache.delete(CacheKeys.USER_PREFERENCES, _cache_params(user_id))
    logger.info("preferences.updated", extra={"user_id": user_id})
    return preferences
