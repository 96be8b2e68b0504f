import asyncio
import logging
from datetime import date

import httpx

from src.common.exceptions import (
    ConfigurationError,
    RateLimitError,
    UpstreamError,
    looks_rate_limited,
)
from src.config.settings import Settings, settings
from src.modules.articles.service import parse_display_date
from src.modules.normalizer.service import normalize_search_items
from src.modules.web_search.schemas import WebSearchPage

logger = logging.getLogger(__name__)

CUSTOM_SEARCH_URL = "https://www.googleapis.com/customsearch/v1"
RESULTS_PER_PAGE = 10
# The API serves at most 100 results: start + num - 1 <= 100
MAX_START = 100 - RESULTS_PER_PAGE + 1
EARLIEST_DATE = date(1970, 1, 1)
SETUP = {
    "google": (
        "Create an API key and a Programmable Search Engine ID at "
        "https://developers.google.com/custom-search/v1/overview "
        "and set GOOGLE_API_KEY and GOOGLE_CSE_ID"
    ),
}


class WebSearchService:
    """Direct Google Custom Search client with cursor-based pagination."""

    def __init__(
        self,
        config: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = config or settings
        self._transport = transport

    @property
    def configured(self) -> bool:
        return self._settings.has_credential("google_api_key") and self._settings.has_credential(
            "google_cse_id"
        )

    @staticmethod
    def _date_sort(date_from: str | None, date_to: str | None) -> str | None:
        lower = parse_display_date(date_from)
        upper = parse_display_date(date_to)
        if lower is None and upper is None:
            return None
        lower = lower or EARLIEST_DATE
        upper = upper or date.today()
        return f"date:r:{lower:%Y%m%d}:{upper:%Y%m%d}"

    def _build_params(
        self, query: str, date_from: str | None, date_to: str | None, start: int
    ) -> dict[str, str]:
        params = {
            "key": self._settings.google_api_key or "",
            "cx": self._settings.google_cse_id or "",
            "q": query,
            "num": str(RESULTS_PER_PAGE),
            "start": str(min(max(start, 1), MAX_START)),
        }
        sort = self._date_sort(date_from, date_to)
        if sort:
            params["sort"] = sort
        return params

    @staticmethod
    def _error_message(data: dict) -> str | None:
        error = data.get("error")
        if not error:
            return None
        if not isinstance(error, dict):
            return str(error)
        reasons = ",".join(
            e.get("reason", "") for e in error.get("errors", []) if isinstance(e, dict)
        )
        message = str(error.get("message") or "Google Custom Search error")
        return f"{message} ({reasons})" if reasons else message

    @staticmethod
    def _next_page(queries) -> int | None:
        next_pages = queries.get("nextPage") if isinstance(queries, dict) else None
        if not isinstance(next_pages, list) or not next_pages:
            return None
        entry = next_pages[0]
        try:
            start = int(entry.get("startIndex")) if isinstance(entry, dict) else None
        except (TypeError, ValueError):
            return None
        if start is None or start > MAX_START:
            return None
        return start

    async def search(
        self,
        query: str,
        date_from: str | None = None,
        date_to: str | None = None,
        start: int = 1,
    ) -> WebSearchPage:
        if not self.configured:
            raise ConfigurationError("Google Custom Search is not configured", setup=SETUP)

        params = self._build_params(query, date_from, date_to, start)
        timeout = self._settings.request_timeout
        logger.info("Google Custom Search for %r (start=%s)", query, params["start"])

        async with httpx.AsyncClient(transport=self._transport, timeout=timeout) as client:
            try:
                response = await asyncio.wait_for(
                    client.get(CUSTOM_SEARCH_URL, params=params), timeout
                )
            except asyncio.TimeoutError as exc:
                raise UpstreamError(
                    f"Google Custom Search timed out after {timeout:g}s", provider="google"
                ) from exc
            except httpx.HTTPError as exc:
                raise UpstreamError(
                    f"Google Custom Search request failed: {exc}", provider="google"
                ) from exc

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        message = self._error_message(data)
        if response.status_code >= 400 or message:
            message = message or f"HTTP {response.status_code}"
            if response.status_code == 429 or looks_rate_limited(message):
                raise RateLimitError(
                    message,
                    provider="google",
                    retry_after=self._settings.rate_limit_retry_after,
                )
            raise UpstreamError(message, provider="google")

        info = data.get("searchInformation") or {}
        try:
            total_results = int(info.get("totalResults") or 0)
        except (TypeError, ValueError):
            total_results = 0
        try:
            search_time = float(info.get("searchTime") or 0.0)
        except (TypeError, ValueError):
            search_time = 0.0

        offset = int(params["start"]) - 1
        articles = normalize_search_items(data.get("items") or [], offset=offset)

        next_page = self._next_page(data.get("queries"))

        logger.info(
            "Google Custom Search returned %d items (total %d)", len(articles), total_results
        )
        return WebSearchPage(
            articles=articles,
            total_results=total_results,
            search_time=search_time,
            next_page=next_page,
        )


web_search_service = WebSearchService()
