from __future__ import annotations

import math
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from sqlalchemy.orm import Session

from aggregation.models.domain import AggregatedResult, NewsQuery, UserPreferences
from aggregation.query import ValidationError, normalize
from aggregation.services.aggregator import NewsAggregator
from aggregation.services.cache import CacheStore
from aggregation.services.personalizer import get_personalized_news
from aggregation.settings import Settings

from .database import session_dependency
from .models import (
    CATEGORY_CATALOG,
    COUNTRY_CATALOG,
    NewsResponse,
    Pagination,
    PreferencesResponse,
    PreferencesUpdate,
    TrendingData,
    TrendingItem,
    TrendingResponse,
)
from .repositories import get_preferences, upsert_preferences

router = APIRouter(prefix="/api")

SessionDep = Annotated[Session, Depends(session_dependency)]

TRENDING_PAGE_SIZE = "10"


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_cache(request: Request) -> CacheStore:
    return request.app.state.cache


def get_aggregator(request: Request) -> NewsAggregator:
    return request.app.state.aggregator


async def current_user_id(x_user_id: Annotated[str | None, Header()] = None) -> str | None:
    # Identity is asserted by the upstream auth layer
    if x_user_id is None or not x_user_id.strip():
        return None
    return x_user_id.strip()


async def require_user_id(user_id: Annotated[str | None, Depends(current_user_id)]) -> str:
    if user_id is None:
        raise HTTPException(status_code=401, detail="Authentication required.")
    return user_id


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
CacheDep = Annotated[CacheStore, Depends(get_cache)]
AggregatorDep = Annotated[NewsAggregator, Depends(get_aggregator)]
OptionalUserDep = Annotated[str | None, Depends(current_user_id)]
UserDep = Annotated[str, Depends(require_user_id)]


def _news_params(
    q: str | None = Query(default=None),
    category: str | None = Query(default=None),
    country: str | None = Query(default=None),
    language: str | None = Query(default=None),
    page: str | None = Query(default=None),
    page_size: str | None = Query(default=None, alias="pageSize"),
) -> dict[str, Any]:
    # kept as raw strings; the normalizer owns validation
    return {
        "q": q,
        "category": category,
        "country": country,
        "language": language,
        "page": page,
        "pageSize": page_size,
    }


NewsParams = Annotated[dict[str, Any], Depends(_news_params)]


async def _fetch(
    query: NewsQuery,
    user_id: str | None,
    aggregator: NewsAggregator,
    session: Session,
    cache: CacheStore,
    settings: Settings,
) -> AggregatedResult:
    preferences: UserPreferences | None = None
    if user_id is not None:
        preferences = get_preferences(
            session, cache, user_id, ttl_seconds=int(settings.preferences_cache_ttl_seconds)
        )
    if preferences is not None:
        return await get_personalized_news(aggregator, preferences, query)
    return await aggregator.aggregate(query)


def _pagination(query: NewsQuery, result: AggregatedResult) -> Pagination:
    return Pagination(
        page=query.page,
        page_size=query.page_size,
        total_results=result.total_results,
        total_pages=math.ceil(result.total_results / query.page_size),
    )


@router.get("/news/headlines", response_model=NewsResponse)
async def headlines_route(
    params: NewsParams,
    user_id: OptionalUserDep,
    aggregator: AggregatorDep,
    session: SessionDep,
    cache: CacheDep,
    settings: SettingsDep,
) -> NewsResponse:
    query = normalize(params)
    result = await _fetch(query, user_id, aggregator, session, cache, settings)
    return NewsResponse(data=result, pagination=_pagination(query, result))


@router.get("/news/search", response_model=NewsResponse)
async def search_route(
    params: NewsParams,
    user_id: OptionalUserDep,
    aggregator: AggregatorDep,
    session: SessionDep,
    cache: CacheDep,
    settings: SettingsDep,
) -> NewsResponse:
    if not (params.get("q") or "").strip():
        raise ValidationError("q", "search query is required")
    query = normalize(params)
    result = await _fetch(query, user_id, aggregator, session, cache, settings)
    return NewsResponse(data=result, pagination=_pagination(query, result), search_query=query.q)


@router.get("/news/category/{category}", response_model=NewsResponse)
async def category_route(
    category: str,
    user_id: OptionalUserDep,
    aggregator: AggregatorDep,
    session: SessionDep,
    cache: CacheDep,
    settings: SettingsDep,
    country: str | None = Query(default=None),
    language: str | None = Query(default=None),
    page: str | None = Query(default=None),
    page_size: str | None = Query(default=None, alias="pageSize"),
) -> NewsResponse:
    query = normalize(
        {"category": category, "country": country, "language": language, "page": page, "pageSize": page_size}
    )
    result = await _fetch(query, user_id, aggregator, session, cache, settings)
    return NewsResponse(data=result, pagination=_pagination(query, result), category=query.category)


@router.get("/news/trending", response_model=TrendingResponse)
async def trending_route(
    user_id: OptionalUserDep,
    aggregator: AggregatorDep,
    session: SessionDep,
    cache: CacheDep,
    settings: SettingsDep,
    country: str | None = Query(default=None),
    language: str | None = Query(default=None),
    page_size: str | None = Query(default=None, alias="pageSize"),
) -> TrendingResponse:
    if page_size is None or not page_size.strip():
        page_size = TRENDING_PAGE_SIZE
    query = normalize(
        {"category": "general", "country": country, "language": language, "page": 1, "pageSize": page_size}
    )
    result = await _fetch(query, user_id, aggregator, session, cache, settings)
    trending = [
        TrendingItem(
            title=article.title,
            description=article.description,
            url=article.url,
            published_at=article.published_at,
            source=article.source_name,
        )
        for article in result.articles[: query.page_size]
    ]
    return TrendingResponse(data=TrendingData(trending=trending, total_results=len(trending)))


@router.get("/news/categories")
async def categories_route() -> dict[str, Any]:
    return {"success": True, "data": {"categories": [c.model_dump() for c in CATEGORY_CATALOG]}}


@router.get("/news/countries")
async def countries_route() -> dict[str, Any]:
    return {"success": True, "data": {"countries": [c.model_dump() for c in COUNTRY_CATALOG]}}


@router.get("/users/preferences", response_model=PreferencesResponse)
async def get_preferences_route(
    user_id: UserDep,
    session: SessionDep,
    cache: CacheDep,
    settings: SettingsDep,
) -> PreferencesResponse:
    preferences = get_preferences(
        session, cache, user_id, ttl_seconds=int(settings.preferences_cache_ttl_seconds)
    )
    if preferences is None:
        raise HTTPException(status_code=404, detail="User not found.")
    return PreferencesResponse(preferences=preferences)


@router.put("/users/preferences", response_model=PreferencesResponse)
async def update_preferences_route(
    payload: PreferencesUpdate,
    user_id: UserDep,
    session: SessionDep,
    cache: CacheDep,
) -> PreferencesResponse:
    preferences = upsert_preferences(session, cache, user_id, payload.preferences)
    return PreferencesResponse(preferences=preferences)
