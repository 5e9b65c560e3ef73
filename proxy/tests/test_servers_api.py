from fastapi.testclient import TestClient

from proxy_api.app import create_app
from proxy_api.db.session import build_engine, build_session_factory
from proxy_api.service.cache import EnrichedServerCache
from proxy_api.service.container import build_services


def test_list_enhanced_servers(client) -> None:
    response = client.get(
        "/v0/enhanced/servers",
        params={"min_rating": 4, "registry_types": "npm", "sort": "rating_desc", "limit": 2},
    )

    assert response.status_code == 200
    assert response.headers["X-Total-Count"] == "3"
    body = response.json()
    assert [server["name"] for server in body["servers"]] == ["io.example/alpha", "io.example/bravo"]
    assert body["total_count"] == 3
    assert body["limit"] == 2
    assert body["offset"] == 0
    assert body["sort"] == "rating_desc"
    assert body["filters"] == {"min_rating": 4.0, "registry_types": ["npm"]}
    first = body["servers"][0]
    assert first["stats"] == {"rating": 4.8, "rating_count": 12, "install_count": 150}
    assert [badge["type"] for badge in first["badges"]] == ["top_rated", "popular", "official"]


def test_default_listing_is_served_from_cache(client) -> None:
    body = client.get("/v0/enhanced/servers").json()

    assert body["total_count"] == 5
    assert body["sort"] == "created"
    assert body["servers"][0]["name"] == "io.example/echo"
    assert "cached_at" in body


def test_comma_separated_filters(client) -> None:
    response = client.get("/v0/enhanced/servers", params={"tags": "local, sql", "sort": "name_asc"})

    assert response.headers["X-Total-Count"] == "3"
    assert [server["name"] for server in response.json()["servers"]] == [
        "io.example/alpha",
        "io.example/charlie",
        "io.example/delta",
    ]


def test_invalid_sort_is_bad_request(client) -> None:
    response = client.get("/v0/enhanced/servers", params={"sort": "popularity"})

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["error"] == "invalid_sort"
    assert "rating_desc" in detail["message"]


def test_invalid_filter_is_bad_request(client) -> None:
    response = client.get("/v0/enhanced/servers", params={"registry_types": "cargo"})

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "validation_error"


def test_negative_offset_is_bad_request(client) -> None:
    response = client.get("/v0/enhanced/servers", params={"offset": -1})

    assert response.status_code == 400


def test_server_detail(client) -> None:
    response = client.get("/v0/servers/io.example/alpha")

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == "io.example/alpha"
    assert body["quality_score"] > 0


def test_server_detail_not_found(client) -> None:
    response = client.get("/v0/servers/io.example/missing")

    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "not_found"


def test_server_detail_invalid_id(client) -> None:
    response = client.get("/v0/servers/bad..id")

    assert response.status_code == 400


def test_rate_and_read_back(client) -> None:
    response = client.post(
        "/v0/servers/io.example/echo/rate",
        json={"rating": 5, "userId": "user-1", "comment": "great"},
    )

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "stats": {"server_id": "io.example/echo", "rating": 5.0, "rating_count": 1, "installation_count": 0},
    }

    rating = client.get("/v0/servers/io.example/echo/rating/user-1").json()
    assert rating["has_rated"] is True
    assert rating["comment"] == "great"

    reviews = client.get("/v0/servers/io.example/echo/reviews").json()
    assert reviews["total_count"] == 1
    assert reviews["has_more"] is False
    assert reviews["reviews"][0]["user_id"] == "user-1"

    stats = client.get("/v0/servers/io.example/echo/stats").json()
    assert stats["stats"]["rating_count"] == 1

    detail = client.get("/v0/servers/io.example/echo").json()
    assert detail["rating"] == 5.0


def test_rate_rejects_out_of_range(client) -> None:
    response = client.post("/v0/servers/io.example/echo/rate", json={"rating": 6, "userId": "user-1"})

    assert response.status_code == 400


def test_rate_requires_user(client) -> None:
    response = client.post("/v0/servers/io.example/echo/rate", json={"rating": 4})

    assert response.status_code == 400
    assert response.json()["detail"]["message"] == "User ID is required"


def test_rate_unknown_server(client) -> None:
    response = client.post("/v0/servers/io.example/missing/rate", json={"rating": 4, "userId": "user-1"})

    assert response.status_code == 404


def test_install_without_body(client) -> None:
    response = client.post("/v0/servers/io.example/echo/install")

    assert response.status_code == 200
    assert response.json()["stats"]["installation_count"] == 1


def test_install_with_body(client) -> None:
    response = client.post(
        "/v0/servers/io.example/echo/install",
        json={"userId": "user-1", "source": "cli", "platform": "linux"},
    )

    assert response.status_code == 200
    assert response.json()["success"] is True


def test_user_rating_not_found(client) -> None:
    response = client.get("/v0/servers/io.example/echo/rating/nobody")

    assert response.status_code == 404


def test_reviews_invalid_sort(client) -> None:
    response = client.get("/v0/servers/io.example/echo/reviews", params={"sort": "loudest"})

    assert response.status_code == 400


def test_aggregate_stats_endpoint(client) -> None:
    body = client.get("/v0/enhanced/stats/aggregate").json()

    assert body["total_servers"] == 5
    assert body["registry_breakdown"]["npm"] == 4


def test_trending_endpoint(client) -> None:
    body = client.get("/v0/enhanced/stats/trending", params={"limit": 2}).json()

    assert body["period"] == "30_days"
    assert [server["name"] for server in body["trending"]] == ["io.example/delta", "io.example/charlie"]
    assert "trending_score" in body["trending"][0]


def test_cache_refresh_endpoint(client, cache) -> None:
    body = client.post("/v0/cache/refresh").json()

    assert body["message"] == "Cache refreshed successfully"
    assert body["servers"] == 5
    assert body["updated_at"] is not None
    assert cache.get()[1] is True


def test_health(client) -> None:
    body = client.get("/health").json()

    assert body["status"] == "healthy"


def test_database_failure_is_generic_500(tmp_path, settings) -> None:
    engine = build_engine(f"sqlite:///{(tmp_path / 'empty.db').as_posix()}")
    services = build_services(
        bind=engine,
        session_factory=build_session_factory(engine),
        settings=settings,
        cache=EnrichedServerCache(60, 60),
    )
    try:
        response = TestClient(create_app(services)).get("/v0/enhanced/servers")
    finally:
        engine.dispose()

    assert response.status_code == 500
    detail = response.json()["detail"]
    assert detail["message"] == "Internal server error"
    assert "documents" not in detail["message"]
