"""Query rewriting from stored user preferences."""

from __future__ import annotations

from typing import Any, Dict, Optional

from aggregation.models.domain import AggregatedResult, NewsQuery, UserPreferences

from .aggregator import NewsAggregator


def keyword_clause(keywords: list[str]) -> Optional[str]:
    cleaned = [kw.strip() for kw in keywords if kw and kw.strip()]
    if not cleaned:
        return None
    return " OR ".join(cleaned)


def personalize(preferences: UserPreferences, query: NewsQuery) -> NewsQuery:
    """Blend ``preferences`` into ``query``; anything the caller set explicitly wins."""
    explicit = query.model_fields_set
    update: Dict[str, Any] = {}

    if not query.category and preferences.categories:
        update["category"] = preferences.categories[0]

    for name in ("country", "language"):
        preferred = getattr(preferences, name)
        if name not in explicit and preferred:
            update[name] = preferred

    clause = keyword_clause(preferences.keywords)
    if clause:
        text = (query.q or "").strip()
        update["q"] = f"{text} AND ({clause})" if text else clause

    if not update:
        return query
    return query.model_copy(update=update)


async def get_personalized_news(
    aggregator: NewsAggregator,
    preferences: UserPreferences,
    query: NewsQuery,
) -> AggregatedResult:
    return await aggregator.aggregate(personalize(preferences, query))
