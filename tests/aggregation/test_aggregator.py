from __future__ import annotations

import asyncio
from typing import Iterable, List, Optional

import pytest

from aggregation.connectors.base import ProviderError
from aggregation.models.domain import NewsQuery, NormalizedArticle, ProviderResult
from aggregation.services.aggregator import AggregationError, NewsAggregator, dedupe_by_url


def _article(url: str, title: str = "") -> NormalizedArticle:
    return NormalizedArticle(url=url, title=title)


class StubProvider:
    def __init__(
        self,
        source: str,
        urls: Iterable[str] = (),
        *,
        total: int = 0,
        error: Optional[Exception] = None,
        delay: float = 0.0,
        wait_for: Optional[asyncio.Event] = None,
        signal: Optional[asyncio.Event] = None,
    ) -> None:
        self.source = source
        self._urls = list(urls)
        self._total = total
        self._error = error
        self._delay = delay
        self._wait_for = wait_for
        self._signal = signal
        self.queries: List[NewsQuery] = []

    async def fetch(self, query: NewsQuery) -> ProviderResult:
        self.queries.append(query)
        if self._signal is not None:
            self._signal.set()
        if self._wait_for is not None:
            await self._wait_for.wait()
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        return ProviderResult(
            articles=[_article(url, title=f"{self.source}:{url}") for url in self._urls],
            total_results=self._total,
            provider_name=self.source,
        )


@pytest.mark.asyncio
async def test_merges_dedupes_and_reports_partial_errors():
    aggregator = NewsAggregator(
        [
            StubProvider("A", ["x", "y"], total=50),
            StubProvider("B", ["y", "z"], total=30),
            StubProvider("C", error=ProviderError("C", "HTTP 500")),
        ]
    )

    result = await aggregator.aggregate(NewsQuery())

    assert [a.url for a in result.articles] == ["x", "y", "z"]
    assert result.articles[1].title == "A:y"
    assert result.total_results == 80
    assert result.contributing_providers == ["A", "B"]
    assert result.partial_errors == ["C: HTTP 500"]


@pytest.mark.asyncio
async def test_priority_order_wins_over_completion_order():
    aggregator = NewsAggregator(
        [
            StubProvider("slow", ["shared", "s1"], total=1, delay=0.05),
            StubProvider("fast", ["shared", "f1"], total=1),
        ]
    )

    result = await aggregator.aggregate(NewsQuery())

    assert [a.url for a in result.articles] == ["shared", "s1", "f1"]
    assert result.articles[0].title == "slow:shared"
    assert result.contributing_providers == ["slow", "fast"]
    assert result.partial_errors is None


@pytest.mark.asyncio
async def test_total_results_is_not_the_deduplicated_count():
    aggregator = NewsAggregator([StubProvider("A", ["u"], total=10), StubProvider("B", ["u"], total=7)])

    result = await aggregator.aggregate(NewsQuery())

    assert len(result.articles) == 1
    assert result.total_results == 17


@pytest.mark.asyncio
async def test_all_failures_raise_aggregation_error():
    aggregator = NewsAggregator(
        [
            StubProvider("A", error=ProviderError("A", "API key not configured")),
            StubProvider("B", error=ProviderError("B", "HTTP 401")),
        ]
    )

    with pytest.raises(AggregationError) as exc:
        await aggregator.aggregate(NewsQuery())

    assert exc.value.attempted == ["A", "B"]
    assert exc.value.causes == ["A: API key not configured", "B: HTTP 401"]
    assert "All news providers failed" in str(exc.value)


@pytest.mark.asyncio
async def test_no_providers_is_an_aggregation_error():
    with pytest.raises(AggregationError):
        await NewsAggregator([]).aggregate(NewsQuery())


@pytest.mark.asyncio
async def test_providers_run_concurrently():
    # "first" only finishes once "second" has started; sequential dispatch would time out
    started = asyncio.Event()
    aggregator = NewsAggregator(
        [
            StubProvider("first", ["a"], total=1, wait_for=started),
            StubProvider("second", ["b"], total=1, signal=started),
        ],
        timeout_seconds=1.0,
    )

    result = await aggregator.aggregate(NewsQuery())

    assert result.contributing_providers == ["first", "second"]
    assert result.partial_errors is None


@pytest.mark.asyncio
async def test_slow_provider_times_out_without_blocking_others():
    aggregator = NewsAggregator(
        [StubProvider("slow", ["a"], total=1, delay=5), StubProvider("ok", ["b"], total=3)],
        timeout_seconds=0.05,
    )

    result = await aggregator.aggregate(NewsQuery())

    assert [a.url for a in result.articles] == ["b"]
    assert result.total_results == 3
    assert result.partial_errors == ["slow: timed out after 0.05s"]


@pytest.mark.asyncio
async def test_unexpected_exception_becomes_provider_error():
    aggregator = NewsAggregator([StubProvider("bad", error=KeyError("boom")), StubProvider("ok", ["b"])])

    result = await aggregator.aggregate(NewsQuery())

    assert result.contributing_providers == ["ok"]
    assert result.partial_errors is not None
    assert result.partial_errors[0].startswith("bad: unexpected error")


@pytest.mark.asyncio
async def test_every_provider_receives_the_same_query():
    providers = [StubProvider("A", ["a"]), StubProvider("B", ["b"])]
    query = NewsQuery(q="ai", category="science")

    await NewsAggregator(providers).aggregate(query)

    assert providers[0].queries == [query]
    assert providers[1].queries == [query]


def test_dedupe_by_url_keeps_first_occurrence():
    articles = [_article("1", "first"), _article("2"), _article("1", "second")]

    unique = dedupe_by_url(articles)

    assert [a.url for a in unique] == ["1", "2"]
    assert unique[0].title == "first"
