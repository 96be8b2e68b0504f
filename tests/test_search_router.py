"""HTTP-level tests for /api/search."""

import json

import httpx
import pytest
import uvicorn
from fastapi.testclient import TestClient

from src import main
from src.main import app
from src.modules.search.router import get_search_service
from src.modules.search.service import SearchService

from conftest import chat_payload, gnews_item


@pytest.fixture
def client_for(upstream):
    def build(cfg):
        service = SearchService.with_transport(cfg, upstream.transport)
        app.dependency_overrides[get_search_service] = lambda: service
        return TestClient(app)

    yield build
    app.dependency_overrides.clear()


def test_missing_query_returns_400(make_settings, client_for, upstream):
    client = client_for(make_settings(gnews_api_key="gn"))

    response = client.post("/api/search", json={"dateFrom": "2025-01-01"})

    assert response.status_code == 400
    assert response.json() == {"error": "Query is required"}
    assert upstream.calls == []


def test_malformed_body_returns_400(make_settings, client_for):
    client = client_for(make_settings(gnews_api_key="gn"))

    response = client.post(
        "/api/search", content="not json", headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request"


def test_no_credentials_returns_setup_guidance(make_settings, client_for, upstream):
    client = client_for(make_settings())

    response = client.post("/api/search", json={"query": "climate policy"})

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "No API keys configured"
    assert "gnews" in body["setup"]
    assert upstream.calls == []


def test_rate_limit_returns_429_with_retry_after(make_settings, client_for, upstream):
    upstream.route(
        "api.groq.com",
        lambda r: httpx.Response(
            429, json={"error": {"message": "Rate limit reached"}}, headers={"Retry-After": "30"}
        ),
    )
    client = client_for(make_settings(groq_api_key="g"))

    response = client.post("/api/search", json={"query": "climate policy"})

    assert response.status_code == 429
    assert response.json()["retryAfter"] == 30


def test_successful_search_uses_camel_case(make_settings, client_for, upstream):
    upstream.route(
        "gnews.io",
        lambda r: httpx.Response(
            200, json={"articles": [gnews_item("Story", "https://n.example/story")]}
        ),
    )
    client = client_for(make_settings(gnews_api_key="gn"))

    response = client.post("/api/search", json={"query": "ai", "deepResearch": True})

    assert response.status_code == 200
    body = response.json()
    assert body["totalResults"] == 1
    assert body["provider"] == "gnews"
    assert body["sources"] == {"gnews": 1, "ai": 0}
    article = body["articles"][0]
    assert article["publishedDate"] == "Jan 10, 2025"
    assert article["relevanceScore"] == 98
    assert article["source"] == "gnews"
    assert float(body["searchTime"]) >= 0
    assert len(upstream.calls) == 4


def test_ai_only_search_over_http(make_settings, client_for, upstream):
    content = json.dumps({"articles": [{"title": "A", "url": "https://a.example"}], "searchSummary": "S"})
    upstream.route("api.groq.com", lambda r: httpx.Response(200, json=chat_payload(content)))
    client = client_for(make_settings(groq_api_key="g"))

    response = client.post("/api/search", json={"query": "ai"})

    assert response.status_code == 200
    body = response.json()
    assert body["provider"] == "groq"
    assert body["model"] == "llama-3.3-70b-versatile"
    assert body["searchSummary"] == "S"
    assert body["sources"] == {"gnews": 0, "ai": 1}


def test_direct_search_get(make_settings, client_for, upstream):
    payload = {
        "queries": {"nextPage": [{"startIndex": 21}]},
        "searchInformation": {"searchTime": 0.12, "totalResults": "40"},
        "items": [{"title": "Result", "link": "https://r.example/1", "displayLink": "r.example"}],
    }
    upstream.route("www.googleapis.com", lambda r: httpx.Response(200, json=payload))
    client = client_for(make_settings(google_api_key="k", google_cse_id="cx"))

    response = client.get("/api/search", params={"q": "climate", "start": 11})

    assert response.status_code == 200
    body = response.json()
    assert body["nextPage"] == 21
    assert body["searchInfo"] == {"totalResults": 40, "searchTime": "0.12", "query": "climate"}
    assert body["articles"][0]["publisher"] == "r.example"
    assert upstream.calls[0].url.params["start"] == "11"


def test_direct_search_without_query_returns_400(make_settings, client_for):
    client = client_for(make_settings(google_api_key="k", google_cse_id="cx"))

    response = client.get("/api/search")

    assert response.status_code == 400


def test_direct_search_without_credentials(make_settings, client_for):
    client = client_for(make_settings())

    response = client.get("/api/search", params={"q": "climate"})

    assert response.status_code == 500
    assert "google" in response.json()["setup"]


def test_health_and_index():
    client = TestClient(app)
    assert client.get("/health").json() == {"status": "ok"}
    assert "News" in client.get("/").text


def test_provider_listing():
    client = TestClient(app)
    body = client.get("/api/inference/providers").json()
    assert [p["id"] for p in body["providers"]] == ["gemini", "groq", "openai", "together", "openrouter"]


def test_run_serves_app_on_configured_address(monkeypatch):
    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
    monkeypatch.setattr(main.settings, "app_host", "127.0.0.1")
    monkeypatch.setattr(main.settings, "app_port", 9001)

    main.run()

    assert calls == [(app, {"host": "127.0.0.1", "port": 9001})]
