"""Concurrent fan-out over providers with merge, dedup and partial-failure tolerance."""

from __future__ import annotations

import asyncio
from time import perf_counter
from typing import List, Protocol, Sequence, Union

from aggregation.connectors.base import ProviderError
from aggregation.models.domain import AggregatedResult, NewsQuery, NormalizedArticle, ProviderResult
from aggregation.utils.logging import get_logger

logger = get_logger(__name__)


class NewsProvider(Protocol):
    source: str

    async def fetch(self, query: NewsQuery) -> ProviderResult: ...  # noqa: D401


class AggregationError(Exception):
    """Every configured provider failed for one call."""

    def __init__(self, attempted: Sequence[str], causes: Sequence[str]) -> None:
        self.attempted = list(attempted)
        self.causes = list(causes)
        detail = ", ".join(self.causes) if self.causes else "no providers configured"
        super().__init__(f"All news providers failed: {detail}")


def dedupe_by_url(articles: Sequence[NormalizedArticle]) -> List[NormalizedArticle]:
    """Keep the first article seen for each URL, preserving order."""
    seen: set[str] = set()
    unique: List[NormalizedArticle] = []
    for article in articles:
        if article.url in seen:
            continue
        seen.add(article.url)
        unique.append(article)
    return unique


class NewsAggregator:
    """Queries every provider concurrently and merges what comes back.

    Provider order is priority order: results are merged in that order no
    matter which call finished first, so on a duplicate URL the copy from the
    earlier provider is kept. ``total_results`` is the sum of the upstream
    totals and is not adjusted for duplicates.
    """

    def __init__(self, providers: Sequence[NewsProvider], *, timeout_seconds: float = 10.0) -> None:
        self._providers = list(providers)
        self._timeout = timeout_seconds

    @property
    def provider_names(self) -> List[str]:
        return [p.source for p in self._providers]

    async def aggregate(self, query: NewsQuery) -> AggregatedResult:
        started = perf_counter()
        outcomes = await asyncio.gather(*(self._call(p, query) for p in self._providers))

        results: List[ProviderResult] = []
        errors: List[str] = []
        for outcome in outcomes:
            if isinstance(outcome, ProviderError):
                errors.append(str(outcome))
            else:
                results.append(outcome)

        if not results:
            logger.error(
                "aggregate.failed",
                extra={"providers": self.provider_names, "errors": errors},
            )
            raise AggregationError(self.provider_names, errors)

        merged: List[NormalizedArticle] = []
        for result in results:
            merged.extend(result.articles)
        articles = dedupe_by_url(merged)

        aggregated = AggregatedResult(
            articles=articles,
            total_results=sum(r.total_results for r in results),
            contributing_providers=[r.provider_name for r in results],
            partial_errors=errors or None,
        )
        logger.info(
            "aggregate.done",
            extra={
                "providers": aggregated.contributing_providers,
                "failed": len(errors),
                "fetched": len(merged),
                "unique": len(articles),
                "elapsed_ms": round((perf_counter() - started) * 1000, 1),
            },
        )
        return aggregated

    async def _call(self, provider: NewsProvider, query: NewsQuery) -> Union[ProviderResult, ProviderError]:
        try:
            return await asyncio.wait_for(provider.fetch(query), timeout=self._timeout)
        except ProviderError as exc:
            logger.warning("provider.fetch.failed", extra={"provider": provider.source, "cause": exc.cause})
            return exc
        except asyncio.TimeoutError:
            logger.warning("provider.fetch.timeout", extra={"provider": provider.source})
            return ProviderError(provider.source, f"timed out after {self._timeout:g}s")
        except Exception as exc:  # noqa: BLE001
            logger.exception("provider.fetch.unexpected", extra={"provider": provider.source})
            return ProviderError(provider.source, f"unexpected error: {exc}")
