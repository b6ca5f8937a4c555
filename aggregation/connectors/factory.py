"""Builds the configured connectors in priority order."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from aggregation.services.cache import CacheStore
from aggregation.settings import Settings, get_settings

from .base import BaseConnector
from .gnews import GNewsConnector
from .news_api import NewsAPIConnector
from .newscatcher import NewsCatcherConnector

ConnectorBuilder = Callable[[Settings, Optional[CacheStore]], BaseConnector]


def _common(settings: Settings, cache: Optional[CacheStore]) -> Dict[str, Any]:
    return {
        "cache": cache,
        "cache_ttl_seconds": int(settings.news_cache_ttl_seconds),
        "timeout_seconds": float(settings.provider_timeout_seconds),
    }


CONNECTOR_BUILDERS: Dict[str, ConnectorBuilder] = {
    "newsapi": lambda s, c: NewsAPIConnector(api_key=s.news_api_key, endpoint=s.news_api_endpoint, **_common(s, c)),
    "gnews": lambda s, c: GNewsConnector(api_key=s.gnews_api_key, endpoint=s.gnews_endpoint, **_common(s, c)),
    "newscatcher": lambda s, c: NewsCatcherConnector(
        api_key=s.newscatcher_api_key,
        endpoint=s.newscatcher_endpoint,
        **_common(s, c),
    ),
}


def build_connectors(settings: Settings | None = None, cache: Optional[CacheStore] = None) -> List[BaseConnector]:
    """Return one connector per ``NEWS_PROVIDERS`` entry, highest priority first.

    Connectors without credentials are still returned; they fail fast on every
    call so their absence shows up in ``partial_errors``.
    """
    config = settings or get_settings()
    return [CONNECTOR_BUILDERS[name](config, cache) for name in config.news_providers]
