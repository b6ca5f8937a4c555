from __future__ import annotations

from pathlib import Path
from typing import Iterator, List

import pytest
from fastapi.testclient import TestClient

from aggregation.models.domain import AggregatedResult, NewsQuery, NormalizedArticle
from aggregation.services.aggregator import AggregationError
from aggregation.settings import Settings


class StubAggregator:
    def __init__(self) -> None:
        self.queries: List[NewsQuery] = []
        self.fail = False

    async def aggregate(self, query: NewsQuery) -> AggregatedResult:
        self.queries.append(query)
        if self.fail:
            raise AggregationError(["newsapi", "gnews"], ["newsapi: HTTP 500", "gnews: API key not configured"])
        return AggregatedResult(
            articles=[
                NormalizedArticle(url="https://ex.com/1", title="One", source_name="Wire"),
                NormalizedArticle(url="https://ex.com/2", title="Two", source_name="Daily"),
            ],
            total_results=45,
            contributing_providers=["newsapi"],
            partial_errors=["gnews: API key not configured"],
        )


@pytest.fixture
def stub_aggregator() -> StubAggregator:
    return StubAggregator()


@pytest.fixture
def client(tmp_path: Path, stub_aggregator: StubAggregator) -> Iterator[TestClient]:
    from api.main import create_app
    from api.routes import get_aggregator

    settings = Settings(_env_file=None, database_url=f"sqlite:///{tmp_path}/app.db")
    app = create_app(settings)
    app.dependency_overrides[get_aggregator] = lambda: stub_aggregator
    with TestClient(app) as test_client:
        yield test_client
