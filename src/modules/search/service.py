import logging
import time
from dataclasses import dataclass

import httpx

from src.common.exceptions import (
    ConfigurationError,
    UpstreamError,
    ValidationError,
)
from src.config.settings import Settings, settings
from src.modules.articles.schemas import Article, ArticleSource
from src.modules.articles.service import filter_by_date, merge_and_rank
from src.modules.gnews.service import GNewsService
from src.modules.inference.models import (
    SETUP_GUIDANCE,
    ProviderKind,
    available_providers,
    build_candidates,
)
from src.modules.inference.schemas import GroundingSource
from src.modules.inference.service import InferenceService
from src.modules.normalizer.service import normalize_ai_articles
from src.modules.search.prompts import (
    ENHANCE_LIMIT,
    build_enhance_prompt,
    build_search_prompt,
)
from src.modules.search.schemas import (
    DirectSearchResponse,
    GroundingSourceResponse,
    SearchInfo,
    SearchRequest,
    SearchResponse,
    SourceCounts,
)
from src.modules.web_search.service import WebSearchService

logger = logging.getLogger(__name__)

AI_SUGGESTION = "Try adding a GNews API key for real article links"


@dataclass
class _Retrieval:
    articles: list[Article]
    summary: str
    provider: str | None = None
    model: str | None = None
    grounding: tuple[GroundingSource, ...] = ()


class SearchService:
    """Decides which providers answer a search and assembles the response."""

    def __init__(
        self,
        config: Settings | None = None,
        gnews: GNewsService | None = None,
        inference: InferenceService | None = None,
        web_search: WebSearchService | None = None,
    ) -> None:
        self._settings = config or settings
        self._gnews = gnews or GNewsService(self._settings)
        self._inference = inference or InferenceService(self._settings)
        self._web_search = web_search or WebSearchService(self._settings)

    @classmethod
    def with_transport(
        cls, config: Settings, transport: httpx.AsyncBaseTransport
    ) -> "SearchService":
        return cls(
            config,
            gnews=GNewsService(config, transport),
            inference=InferenceService(config, transport),
            web_search=WebSearchService(config, transport),
        )

    # ── AI helpers ──────────────────────────────────────────────

    async def _search_ai_only(
        self,
        query: str,
        request: SearchRequest,
        providers: list[ProviderKind],
    ) -> _Retrieval:
        prompt = build_search_prompt(
            query, request.date_from, request.date_to, request.deep_research
        )
        if self._settings.ai_search_strategy == "race":
            completion = await self._inference.race(prompt, providers, expect_key="articles")
            if completion is None:
                raise UpstreamError("No AI provider available", suggestion=AI_SUGGESTION)
        else:
            completion = await self._inference.complete_sequential(
                prompt, build_candidates(providers), expect_key="articles"
            )

        payload = completion.payload or {}
        summary = payload.get("searchSummary")
        return _Retrieval(
            articles=normalize_ai_articles(payload.get("articles") or [], ArticleSource.AI),
            summary=summary if isinstance(summary, str) else "",
            provider=completion.provider.value,
            model=completion.model,
            grounding=completion.grounding,
        )

    async def _enhance(
        self,
        query: str,
        articles: list[Article],
        providers: list[ProviderKind],
    ) -> tuple[list[Article], str | None]:
        completion = await self._inference.race(
            build_enhance_prompt(query, articles),
            providers,
            timeout=self._settings.enhance_timeout,
            expect_key="summaries",
        )
        if completion is None:
            logger.info("AI enhancement failed, using original summaries")
            return articles, None

        summaries = completion.payload["summaries"]
        enhanced: list[Article] = []
        for index, article in enumerate(articles):
            summary = summaries[index] if index < min(len(summaries), ENHANCE_LIMIT) else None
            if isinstance(summary, str) and summary.strip():
                article = article.model_copy(update={"summary": summary.strip()})
            enhanced.append(article)

        analysis = completion.payload.get("overallAnalysis")
        return enhanced, analysis if isinstance(analysis, str) and analysis.strip() else None

    # ── Retrieval ───────────────────────────────────────────────

    async def _retrieve(
        self, query: str, request: SearchRequest, providers: list[ProviderKind]
    ) -> _Retrieval:
        if not self._gnews.configured:
            logger.info("Using AI-only search")
            return await self._search_ai_only(query, request, providers)

        logger.info("Fetching from GNews")
        try:
            articles = await self._gnews.fetch_multiple(
                query, request.date_from, request.date_to, request.deep_research
            )
        except UpstreamError as exc:
            logger.error("GNews failed: %s", exc)
            if not providers:
                raise
            logger.info("Falling back to AI-only search")
            return await self._search_ai_only(query, request, providers)

        summary = f'Found {len(articles)} articles about "{query}"'
        if providers and articles:
            logger.info("Enhancing with AI")
            articles, analysis = await self._enhance(query, articles, providers)
            summary = analysis or summary
        return _Retrieval(articles=articles, summary=summary, provider="gnews")

    async def search(self, request: SearchRequest) -> SearchResponse:
        started = time.perf_counter()
        query = (request.query or "").strip()
        if not query:
            raise ValidationError("Query is required")

        providers = available_providers(self._settings)
        if not self._gnews.configured and not providers:
            raise ConfigurationError("No API keys configured", setup=SETUP_GUIDANCE)

        retrieval = await self._retrieve(query, request, providers)

        articles = retrieval.articles
        if request.date_from or request.date_to:
            articles = filter_by_date(articles, request.date_from, request.date_to)
        articles = merge_and_rank(articles)

        elapsed = time.perf_counter() - started
        logger.info(
            "Search %r returned %d articles via %s in %.2fs",
            query,
            len(articles),
            retrieval.provider,
            elapsed,
        )
        return SearchResponse(
            articles=articles,
            search_summary=retrieval.summary,
            total_results=len(articles),
            total_sources=len(retrieval.grounding) or len(articles),
            provider=retrieval.provider,
            model=retrieval.model,
            search_time=f"{elapsed:.2f}",
            sources=SourceCounts(
                gnews=sum(1 for a in articles if a.source is ArticleSource.GNEWS),
                ai=sum(1 for a in articles if a.source is ArticleSource.AI),
            ),
            grounding_sources=[
                GroundingSourceResponse(title=g.title, url=g.url) for g in retrieval.grounding
            ],
        )

    # ── Direct web search ───────────────────────────────────────

    async def direct_search(
        self,
        q: str | None,
        date_from: str | None = None,
        date_to: str | None = None,
        start: int = 1,
    ) -> DirectSearchResponse:
        started = time.perf_counter()
        query = (q or "").strip()
        if not query:
            raise ValidationError("Query parameter 'q' is required")

        page = await self._web_search.search(query, date_from, date_to, start)
        articles = merge_and_rank(filter_by_date(page.articles, date_from, date_to))
        search_time = page.search_time or (time.perf_counter() - started)

        return DirectSearchResponse(
            articles=articles,
            search_info=SearchInfo(
                total_results=page.total_results,
                search_time=f"{search_time:.2f}",
                query=query,
            ),
            next_page=page.next_page,
        )


search_service = SearchService()
