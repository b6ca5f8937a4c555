from __future__ import annotations

from aggregation.services.cache import CacheKeys

PREFS = {
    "categories": ["science"],
    "sources": ["bbc-news"],
    "keywords": ["ai", "robotics"],
    "language": "en",
    "country": "gb",
}


def _headers(user_id: str = "user-1") -> dict[str, str]:
    return {"X-User-Id": user_id}


def test_preferences_require_user(client):
    assert client.get("/api/users/preferences").status_code == 401
    assert client.put("/api/users/preferences", json={"preferences": PREFS}).status_code == 401


def test_unknown_user_is_404(client):
    assert client.get("/api/users/preferences", headers=_headers("ghost")).status_code == 404


def test_invalid_preferences_are_rejected(client):
    response = client.put(
        "/api/users/preferences",
        headers=_headers(),
        json={"preferences": {"categories": ["weather"]}},
    )

    assert response.status_code == 422


def test_update_then_read_through_cache(client):
    put = client.put("/api/users/preferences", headers=_headers(), json={"preferences": PREFS})
    assert put.status_code == 200
    assert put.json()["preferences"]["keywords"] == ["ai", "robotics"]

    first = client.get("/api/users/preferences", headers=_headers())
    assert first.status_code == 200
    assert first.json()["preferences"] == PREFS

    cache = client.app.state.cache
    assert cache.get(CacheKeys.USER_PREFERENCES, {"userId": "user-1"}) == PREFS


def test_update_invalidates_cached_preferences(client):
    client.put("/api/users/preferences", headers=_headers(), json={"preferences": PREFS})
    client.get("/api/users/preferences", headers=_headers())

    changed = {**PREFS, "keywords": ["space"]}
    client.put("/api/users/preferences", headers=_headers(), json={"preferences": changed})

    cache = client.app.state.cache
    assert cache.get(CacheKeys.USER_PREFERENCES, {"userId": "user-1"}) is None
    response = client.get("/api/users/preferences", headers=_headers())
    assert response.json()["preferences"]["keywords"] == ["space"]


def test_headlines_are_personalized_for_known_user(client, stub_aggregator):
    client.put("/api/users/preferences", headers=_headers(), json={"preferences": PREFS})

    response = client.get("/api/news/headlines", headers=_headers(), params={"q": "election"})

    assert response.status_code == 200
    query = stub_aggregator.queries[0]
    assert query.q == "election AND (ai OR robotics)"
    assert query.category == "science"
    assert query.country == "gb"
    assert query.language == "en"


def test_caller_params_override_preferences(client, stub_aggregator):
    client.put("/api/users/preferences", headers=_headers(), json={"preferences": PREFS})

    client.get("/api/news/headlines", headers=_headers(), params={"category": "sports", "country": "us"})

    query = stub_aggregator.queries[0]
    assert query.category == "sports"
    assert query.country == "us"
    assert query.q == "ai OR robotics"


def test_user_without_stored_preferences_gets_plain_aggregation(client, stub_aggregator):
    client.get("/api/news/headlines", headers=_headers("newcomer"), params={"q": "election"})

    assert stub_aggregator.queries[0].q == "election"
