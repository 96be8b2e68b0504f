"""Shared fixtures: isolated settings and a fake upstream HTTP layer."""

from __future__ import annotations

import inspect
import json
from typing import Any, Callable

import httpx
import pytest

from src.config.settings import Settings

_CREDENTIALS = (
    "gnews_api_key",
    "google_api_key",
    "google_cse_id",
    "gemini_api_key",
    "groq_api_key",
    "openai_api_key",
    "together_api_key",
    "openrouter_api_key",
)


def build_settings(**overrides: Any) -> Settings:
    """Settings that ignore the developer's environment and .env file."""
    values: dict[str, Any] = {name: None for name in _CREDENTIALS}
    values.update(
        gnews_stagger=0.0,
        fallback_delay=0.0,
        request_timeout=5.0,
        race_timeout=5.0,
        enhance_timeout=5.0,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    return build_settings


Handler = Callable[[httpx.Request], Any]


class FakeUpstream:
    """Routes outgoing requests to handlers by host and records every call."""

    def __init__(self) -> None:
        self.calls: list[httpx.Request] = []
        self._routes: list[tuple[str, str, Handler]] = []

    def route(self, host: str, handler: Handler, path: str = "") -> None:
        self._routes.append((host, path, handler))

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        for host, path, handler in self._routes:
            if request.url.host == host and path in request.url.path:
                result = handler(request)
                if inspect.isawaitable(result):
                    result = await result
                return result
        return httpx.Response(404, json={"error": f"no route for {request.url}"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def hosts(self) -> list[str]:
        return [call.url.host for call in self.calls]

    def bodies(self) -> list[dict]:
        return [json.loads(call.content) for call in self.calls if call.content]


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


def chat_payload(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def gemini_payload(text: str, grounding: list[tuple[str, str]] | None = None) -> dict:
    candidate: dict[str, Any] = {"content": {"parts": [{"text": text}]}}
    if grounding:
        candidate["groundingMetadata"] = {
            "groundingChunks": [{"web": {"title": t, "uri": u}} for t, u in grounding]
        }
    return {"candidates": [candidate]}


def gnews_item(title: str, url: str, published_at: str = "2025-01-10T14:30:00Z", **extra) -> dict:
    item = {
        "title": title,
        "description": f"About {title}",
        "content": f"Full text of {title}",
        "url": url,
        "image": None,
        "publishedAt": published_at,
        "source": {"name": "Reuters", "url": "https://www.reuters.com"},
    }
    item.update(extra)
    return item
