"""Connector abstraction, errors, and helpers."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
from pydantic import SecretStr
from pydantic import ValidationError as PydanticValidationError

from aggregation.models.domain import NewsQuery, NormalizedArticle, ProviderResult
from aggregation.services.cache import CacheKeys, CacheStore
from aggregation.utils.logging import get_logger

logger = get_logger(__name__)


class ProviderError(Exception):
    """A single upstream provider failed; ``str()`` is ``"<provider>: <cause>"``."""

    def __init__(self, provider_name: str, cause: str) -> None:
        super().__init__(f"{provider_name}: {cause}")
        self.provider_name = provider_name
        self.cause = cause


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    text = _text(value)
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


class BaseConnector(ABC):
    """Abstract provider adapter: credential check, cache, HTTP call, mapping.

    Subclasses describe only what differs per provider: request parameters,
    the total-results field and the per-article field mapping.
    """

    source: str
    api_key_param: str

    def __init__(
        self,
        *,
        api_key: Optional[SecretStr],
        endpoint: str,
        cache: Optional[CacheStore] = None,
        cache_ttl_seconds: int = 300,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._api_key = api_key
        self._endpoint = endpoint
        self._cache = cache
        self._cache_ttl = cache_ttl_seconds
        self._timeout = timeout_seconds

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key and self._api_key.get_secret_value())

    async def fetch(self, query: NewsQuery) -> ProviderResult:
        if not self.is_configured:
            raise ProviderError(self.source, "API key not configured")

        cache_params = {**query.cache_params(), "source": self.source}
        cached = await self._read_cache(cache_params)
        if cached is not None:
            logger.debug("provider.cache.hit", extra={"provider": self.source})
            return cached

        payload = await self._request(query)
        result = self._to_result(payload)
        if self._cache is not None:
            # redis calls block; run them off the event loop
            await asyncio.to_thread(
                self._cache.set, CacheKeys.NEWS, cache_params, result.model_dump(mode="json"), self._cache_ttl
            )
        logger.info(
            "provider.fetch.ok",
            extra={"provider": self.source, "articles": len(result.articles), "total": result.total_results},
        )
        return result

    async def _read_cache(self, cache_params: Dict[str, Any]) -> Optional[ProviderResult]:
        if self._cache is None:
            return None
        cached = await asyncio.to_thread(self._cache.get, CacheKeys.NEWS, cache_params)
        if cached is None:
            return None
        try:
            return ProviderResult.model_validate(cached)
        except PydanticValidationError:
            logger.warning("provider.cache.invalid", extra={"provider": self.source})
            return None

    async def _request(self, query: NewsQuery) -> Dict[str, Any]:
        assert self._api_key is not None
        params = self._build_params(query)
        params[self.api_key_param] = self._api_key.get_secret_value()
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.get(self._endpoint, params=params)
        except httpx.TimeoutException as exc:
            raise ProviderError(self.source, f"timed out after {self._timeout:g}s") from exc
        except httpx.HTTPError as exc:
            raise ProviderError(self.source, f"request failed: {exc.__class__.__name__}") from exc

        if resp.status_code >= 400:
            raise ProviderError(self.source, f"HTTP {resp.status_code}{_upstream_message(resp)}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise ProviderError(self.source, "malformed payload: body is not JSON") from exc
        if not isinstance(data, dict):
            raise ProviderError(self.source, "malformed payload: expected a JSON object")
        return data

    def _to_result(self, payload: Dict[str, Any]) -> ProviderResult:
        items = payload.get("articles")
        if items is None:
            items = []
        if not isinstance(items, list):
            raise ProviderError(self.source, "malformed payload: articles is not a list")

        articles: List[NormalizedArticle] = []
        for item in items:
            if not isinstance(item, dict):
                continue
            article = self._normalize_item(item)
            if article is None:
                continue
            articles.append(article)

        try:
            total = int(self._total(payload) or 0)
        except (TypeError, ValueError):
            total = 0
        return ProviderResult(articles=articles, total_results=total, provider_name=self.source)

    @abstractmethod
    def _build_params(self, query: NewsQuery) -> Dict[str, Any]:
        """Return provider-specific query parameters (without credentials)."""

    @abstractmethod
    def _total(self, payload: Dict[str, Any]) -> Any:
        """Return the upstream-reported total result count."""

    @abstractmethod
    def _normalize_item(self, item: Dict[str, Any]) -> Optional[NormalizedArticle]:
        """Map one upstream item; ``None`` drops it."""


def _upstream_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return ""
    if isinstance(body, dict):
        message = body.get("message") or body.get("errors")
        if message:
            return f" ({_text(message)})"
    return ""
