from __future__ import annotations


def test_headlines_without_user_aggregates_directly(client, stub_aggregator):
    response = client.get("/api/news/headlines", params={"category": "business", "pageSize": "10"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert [a["url"] for a in payload["data"]["articles"]] == ["https://ex.com/1", "https://ex.com/2"]
    assert payload["data"]["partial_errors"] == ["gnews: API key not configured"]
    assert payload["pagination"] == {"page": 1, "page_size": 10, "total_results": 45, "total_pages": 5}

    query = stub_aggregator.queries[0]
    assert query.category == "business"
    assert query.country == "us"


def test_headlines_rejects_invalid_params(client, stub_aggregator):
    for params, field in (
        ({"pageSize": "101"}, "pageSize"),
        ({"category": "sports!"}, "category"),
        ({"country": "usa"}, "country"),
    ):
        response = client.get("/api/news/headlines", params=params)
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Validation failed"
        assert body["details"][0]["field"] == field

    assert stub_aggregator.queries == []


def test_all_providers_failing_returns_502(client, stub_aggregator):
    stub_aggregator.fail = True

    response = client.get("/api/news/headlines")

    assert response.status_code == 502
    body = response.json()
    assert body["error"] == "Failed to fetch news"
    assert body["causes"] == ["newsapi: HTTP 500", "gnews: API key not configured"]


def test_search_requires_query(client):
    response = client.get("/api/news/search", params={"q": "  "})

    assert response.status_code == 400
    assert response.json()["details"][0]["field"] == "q"


def test_search_passes_query_text(client, stub_aggregator):
    response = client.get("/api/news/search", params={"q": "tesla"})

    assert response.status_code == 200
    assert response.json()["search_query"] == "tesla"
    assert stub_aggregator.queries[0].q == "tesla"


def test_category_route(client, stub_aggregator):
    ok = client.get("/api/news/category/health")
    assert ok.status_code == 200
    assert ok.json()["category"] == "health"
    assert stub_aggregator.queries[0].category == "health"

    bad = client.get("/api/news/category/weather")
    assert bad.status_code == 400


def test_trending_uses_general_category_and_trims(client, stub_aggregator):
    response = client.get("/api/news/trending", params={"pageSize": "1"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["total_results"] == 1
    assert data["trending"][0] == {
        "title": "One",
        "description": "",
        "url": "https://ex.com/1",
        "published_at": None,
        "source": "Wire",
    }
    query = stub_aggregator.queries[0]
    assert (query.category, query.page, query.page_size) == ("general", 1, 1)


def test_trending_defaults_to_ten(client, stub_aggregator):
    client.get("/api/news/trending")

    assert stub_aggregator.queries[0].page_size == 10


def test_reference_lists(client):
    categories = client.get("/api/news/categories").json()["data"]["categories"]
    countries = client.get("/api/news/countries").json()["data"]["countries"]

    assert [c["id"] for c in categories] == [
        "business",
        "entertainment",
        "general",
        "health",
        "science",
        "sports",
        "technology",
    ]
    assert {"code": "us", "name": "United States"} in countries


def test_healthcheck_reports_cache_stats(client):
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert set(response.json()["cache"]) == {"hits", "misses", "keys"}


def test_trending_blank_page_size_falls_back_to_ten(client, stub_aggregator):
    response = client.get("/api/news/trending", params={"pageSize": ""})

    assert response.status_code == 200
    assert stub_aggregator.queries[0].page_size == 10
