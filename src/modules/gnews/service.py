import asyncio
import logging

import httpx

from src.common.exceptions import RateLimitError, UpstreamError, looks_rate_limited
from src.config.settings import Settings, settings
from src.modules.articles.schemas import Article
from src.modules.articles.service import dedupe_by_url, parse_display_date
from src.modules.normalizer.service import normalize_gnews_articles

logger = logging.getLogger(__name__)

GNEWS_URL = "https://gnews.io/api/v4/search"
MAX_PER_REQUEST = 10
TARGET_RESULTS = 15
DEEP_TARGET_RESULTS = 25
VARIANT_SUFFIXES = ("latest", "news", "update")


class GNewsService:
    """Fetches structured news articles from the GNews search API."""

    def __init__(
        self,
        config: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = config or settings
        self._transport = transport

    @property
    def configured(self) -> bool:
        return self._settings.has_credential("gnews_api_key")

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self._transport, timeout=self._settings.request_timeout
        )

    # ── Request building ────────────────────────────────────────

    @staticmethod
    def _date_bound(value: str | None, end_of_day: bool) -> str | None:
        if not value:
            return None
        day = parse_display_date(value)
        if day is None:
            logger.warning("Not passing unparseable date %r to GNews", value)
            return None
        clock = "23:59:59" if end_of_day else "00:00:00"
        return f"{day.isoformat()}T{clock}Z"

    def _build_params(
        self,
        query: str,
        date_from: str | None,
        date_to: str | None,
        max_results: int,
    ) -> dict[str, str]:
        params = {
            "q": query,
            "lang": "en",
            "max": str(min(max_results, MAX_PER_REQUEST)),
            "apikey": self._settings.gnews_api_key or "",
        }
        lower = self._date_bound(date_from, end_of_day=False)
        upper = self._date_bound(date_to, end_of_day=True)
        if lower:
            params["from"] = lower
        if upper:
            params["to"] = upper
        return params

    @staticmethod
    def query_variants(query: str, deep_research: bool = False) -> list[str]:
        variants = [query] + [f"{query} {suffix}" for suffix in VARIANT_SUFFIXES]
        return variants if deep_research else variants[:3]

    # ── HTTP layer ──────────────────────────────────────────────

    async def _fetch(
        self,
        client: httpx.AsyncClient,
        query: str,
        date_from: str | None,
        date_to: str | None,
        max_results: int,
    ) -> list[Article]:
        params = self._build_params(query, date_from, date_to, max_results)
        timeout = self._settings.request_timeout
        try:
            response = await asyncio.wait_for(client.get(GNEWS_URL, params=params), timeout)
        except asyncio.TimeoutError as exc:
            raise UpstreamError(f"GNews timed out after {timeout:g}s", provider="gnews") from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"GNews request failed: {exc}", provider="gnews") from exc

        try:
            data = response.json()
        except ValueError:
            data = {}

        errors = data.get("errors") if isinstance(data, dict) else None
        if errors or response.status_code >= 400 or "articles" not in data:
            if isinstance(errors, dict):
                errors = list(errors.values())
            elif isinstance(errors, str):
                errors = [errors]
            message = str(errors[0]) if errors else f"GNews API error (HTTP {response.status_code})"
            if response.status_code == 429 or looks_rate_limited(message):
                raise RateLimitError(
                    message,
                    provider="gnews",
                    retry_after=self._settings.rate_limit_retry_after,
                )
            raise UpstreamError(message, provider="gnews")

        return normalize_gnews_articles(data.get("articles") or [])

    async def fetch(
        self,
        query: str,
        date_from: str | None = None,
        date_to: str | None = None,
        max_results: int = MAX_PER_REQUEST,
    ) -> list[Article]:
        async with self._client() as client:
            return await self._fetch(client, query, date_from, date_to, max_results)

    # ── Orchestration ───────────────────────────────────────────

    async def fetch_multiple(
        self,
        query: str,
        date_from: str | None = None,
        date_to: str | None = None,
        deep_research: bool = False,
    ) -> list[Article]:
        """Query several variants concurrently and merge them by URL.

        Variants are merged in the order they were issued, not the order they
        finished. A failing variant contributes nothing; if every variant fails
        an error is raised, preferring a rate-limit error.
        """
        variants = self.query_variants(query, deep_research)
        target = DEEP_TARGET_RESULTS if deep_research else TARGET_RESULTS
        failures: list[UpstreamError] = []

        async with self._client() as client:

            async def fetch_variant(index: int, variant: str) -> list[Article]:
                # Staggered start per variant
                await asyncio.sleep(index * self._settings.gnews_stagger)
                try:
                    return await self._fetch(client, variant, date_from, date_to, MAX_PER_REQUEST)
                except UpstreamError as exc:
                    logger.error("GNews query %r failed: %s", variant, exc)
                    failures.append(exc)
                    return []

            results = await asyncio.gather(
                *(fetch_variant(i, v) for i, v in enumerate(variants))
            )

        if len(failures) == len(variants):
            rate_limited = [f for f in failures if isinstance(f, RateLimitError)]
            raise (rate_limited or failures)[0]

        merged = dedupe_by_url(*results)
        logger.info(
            "GNews: %d variants, %d raw, %d after dedup, keeping %d",
            len(variants),
            sum(len(r) for r in results),
            len(merged),
            min(len(merged), target),
        )
        return merged[:target]


gnews_service = GNewsService()
