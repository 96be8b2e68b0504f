import asyncio
import logging
from dataclasses import dataclass
from typing import Callable

import httpx

from src.common.exceptions import (
    ConfigurationError,
    ParseError,
    RateLimitError,
    UpstreamError,
    looks_rate_limited,
)
from src.config.settings import Settings, settings
from src.modules.inference.models import (
    PROVIDERS,
    SETUP_GUIDANCE,
    Candidate,
    ProviderInfo,
    ProviderKind,
    WireFormat,
    build_candidates,
)
from src.modules.inference.schemas import Completion, GroundingSource
from src.modules.normalizer.service import extract_json_object

logger = logging.getLogger(__name__)

TEMPERATURE = 0.7
CHAT_MAX_TOKENS = 4096
GEMINI_MAX_TOKENS = 8192


@dataclass(frozen=True)
class ProviderRequest:
    url: str
    headers: dict[str, str]
    params: dict[str, str]
    body: dict


# ── Wire formats ────────────────────────────────────────────

def _gemini_request(
    info: ProviderInfo, model: str, api_key: str, prompt: str, cfg: Settings
) -> ProviderRequest:
    return ProviderRequest(
        url=info.url.format(model=model),
        headers={"Content-Type": "application/json"},
        params={"key": api_key},
        body={
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "tools": [{"google_search": {}}],
            "generationConfig": {
                "temperature": TEMPERATURE,
                "maxOutputTokens": GEMINI_MAX_TOKENS,
            },
        },
    )


def _chat_request(
    info: ProviderInfo, model: str, api_key: str, prompt: str, cfg: Settings
) -> ProviderRequest:
    headers = {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {api_key}",
    }
    if info.kind is ProviderKind.OPENROUTER:
        headers["HTTP-Referer"] = cfg.site_url
    return ProviderRequest(
        url=info.url,
        headers=headers,
        params={},
        body={
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": TEMPERATURE,
            "max_tokens": CHAT_MAX_TOKENS,
        },
    )


def _first_dict(items) -> dict:
    if isinstance(items, list) and items and isinstance(items[0], dict):
        return items[0]
    return {}


def _gemini_content(data: dict) -> str:
    content = _first_dict(data.get("candidates")).get("content")
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        return ""
    texts = [
        p["text"]
        for p in parts
        if isinstance(p, dict) and isinstance(p.get("text"), str) and not p.get("thought")
    ]
    return "".join(texts).strip()


def _chat_content(data: dict) -> str:
    message = _first_dict(data.get("choices")).get("message")
    content = message.get("content") if isinstance(message, dict) else None
    return content.strip() if isinstance(content, str) else ""


def _gemini_grounding(data: dict) -> tuple[GroundingSource, ...]:
    metadata = _first_dict(data.get("candidates")).get("groundingMetadata")
    chunks = metadata.get("groundingChunks") if isinstance(metadata, dict) else None
    sources: list[GroundingSource] = []
    for chunk in chunks if isinstance(chunks, list) else []:
        web = chunk.get("web") if isinstance(chunk, dict) else None
        if isinstance(web, dict) and isinstance(web.get("uri"), str) and web["uri"]:
            sources.append(GroundingSource(title=str(web.get("title") or ""), url=web["uri"]))
    return tuple(sources)


def _no_grounding(data: dict) -> tuple[GroundingSource, ...]:
    return ()


_REQUEST_BUILDERS: dict[WireFormat, Callable[..., ProviderRequest]] = {
    WireFormat.GEMINI: _gemini_request,
    WireFormat.OPENAI_CHAT: _chat_request,
}

_CONTENT_EXTRACTORS: dict[WireFormat, Callable[[dict], str]] = {
    WireFormat.GEMINI: _gemini_content,
    WireFormat.OPENAI_CHAT: _chat_content,
}

_GROUNDING_EXTRACTORS: dict[WireFormat, Callable[[dict], tuple[GroundingSource, ...]]] = {
    WireFormat.GEMINI: _gemini_grounding,
    WireFormat.OPENAI_CHAT: _no_grounding,
}


def _error_message(data: dict) -> str | None:
    error = data.get("error")
    if not error:
        return None
    if isinstance(error, dict):
        return str(error.get("message") or error.get("status") or error)
    return str(error)


def _retry_after(response: httpx.Response, default: int) -> int:
    raw = response.headers.get("Retry-After")
    try:
        return max(int(float(raw)), 1) if raw else default
    except ValueError:
        return default


def parse_completion(completion: Completion, expect_key: str | None) -> Completion:
    """Attach the JSON object embedded in the completion text.

    When ``expect_key`` is given the object must hold a list under that key.
    """
    payload = extract_json_object(completion.content)
    if expect_key is not None and not isinstance(payload.get(expect_key), list):
        raise ParseError(f"AI response has no '{expect_key}' list")
    return completion.with_payload(payload)


class InferenceService:
    """Calls generative-AI providers with sequential-fallback and race strategies."""

    def __init__(
        self,
        config: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = config or settings
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self._transport, timeout=self._settings.request_timeout
        )

    # ── Single call ─────────────────────────────────────────────

    async def complete(
        self, candidate: Candidate, prompt: str, timeout: float | None = None
    ) -> Completion:
        async with self._client() as client:
            return await self._complete(client, candidate, prompt, timeout)

    async def _complete(
        self,
        client: httpx.AsyncClient,
        candidate: Candidate,
        prompt: str,
        timeout: float | None,
    ) -> Completion:
        info = PROVIDERS[candidate.provider]
        api_key = getattr(self._settings, info.credential) or ""
        request = _REQUEST_BUILDERS[info.wire_format](
            info, candidate.model, api_key, prompt, self._settings
        )
        timeout = timeout or self._settings.request_timeout
        provider = candidate.provider.value

        try:
            response = await asyncio.wait_for(
                client.post(
                    request.url,
                    headers=request.headers,
                    params=request.params,
                    json=request.body,
                ),
                timeout,
            )
        except asyncio.TimeoutError as exc:
            raise UpstreamError(
                f"{candidate.label} timed out after {timeout:g}s", provider=provider
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(
                f"{candidate.label} request failed: {exc}", provider=provider
            ) from exc

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        message = _error_message(data)
        if response.status_code >= 400 or message:
            message = message or f"HTTP {response.status_code}"
            if response.status_code == 429 or looks_rate_limited(message):
                raise RateLimitError(
                    f"{candidate.label}: {message}",
                    provider=provider,
                    retry_after=_retry_after(response, self._settings.rate_limit_retry_after),
                )
            raise UpstreamError(f"{candidate.label}: {message}", provider=provider)

        content = _CONTENT_EXTRACTORS[info.wire_format](data)
        if not content:
            raise UpstreamError(f"{candidate.label}: no content in response", provider=provider)

        return Completion(
            provider=candidate.provider,
            model=candidate.model,
            content=content,
            grounding=_GROUNDING_EXTRACTORS[info.wire_format](data),
        )

    # ── Sequential fallback ─────────────────────────────────────

    async def complete_sequential(
        self,
        prompt: str,
        candidates: list[Candidate],
        expect_key: str | None = "articles",
    ) -> Completion:
        if not candidates:
            raise ConfigurationError("No AI provider configured", setup=SETUP_GUIDANCE)

        rate_limited: RateLimitError | None = None
        async with self._client() as client:
            for attempt, candidate in enumerate(candidates):
                if attempt and self._settings.fallback_delay:
                    await asyncio.sleep(self._settings.fallback_delay)
                logger.info(
                    "Trying %s (%d/%d)", candidate.label, attempt + 1, len(candidates)
                )
                try:
                    completion = await self._complete(client, candidate, prompt, None)
                    parsed = parse_completion(completion, expect_key)
                except RateLimitError as exc:
                    rate_limited = exc
                    logger.warning("%s rate limited: %s", candidate.label, exc)
                    continue
                except (UpstreamError, ParseError) as exc:
                    logger.warning("%s failed: %s", candidate.label, exc)
                    continue
                logger.info("%s succeeded", candidate.label)
                return parsed

        if rate_limited is not None:
            raise RateLimitError(
                "AI providers are rate limited or out of quota. Please retry later.",
                provider=rate_limited.provider,
                retry_after=rate_limited.retry_after,
            )
        raise UpstreamError(
            "All AI providers failed",
            suggestion="Check your API keys or try again later",
        )

    # ── Race ────────────────────────────────────────────────────

    async def race(
        self,
        prompt: str,
        providers: list[ProviderKind],
        timeout: float | None = None,
        expect_key: str | None = None,
    ) -> Completion | None:
        """Return the first usable completion among ``providers``, or None.

        Only the first model of each provider is raced. Losing calls are
        cancelled as soon as a winner is known.
        """
        candidates = build_candidates(providers, first_model_only=True)
        if not candidates:
            return None
        timeout = timeout or self._settings.race_timeout

        async with self._client() as client:

            async def attempt(candidate: Candidate) -> Completion:
                try:
                    completion = await self._complete(client, candidate, prompt, timeout)
                    if expect_key is not None:
                        completion = parse_completion(completion, expect_key)
                    return completion
                except (UpstreamError, ParseError) as exc:
                    logger.info("%s failed: %s", candidate.label, exc)
                    raise

            tasks = [asyncio.create_task(attempt(c)) for c in candidates]
            try:
                for next_done in asyncio.as_completed(tasks):
                    try:
                        winner = await next_done
                    except (UpstreamError, ParseError):
                        continue
                    logger.info("Race won by %s/%s", winner.provider.value, winner.model)
                    return winner
            finally:
                for task in tasks:
                    if not task.done():
                        task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)

        logger.error("All AI providers failed")
        return None


inference_service = InferenceService()
