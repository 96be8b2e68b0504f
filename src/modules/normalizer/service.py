"""Turns heterogeneous provider payloads into ``Article`` records.

Two families of input are handled here:

* chat-completion text that embeds a JSON object, possibly wrapped in
  Markdown code fences (``extract_json_object``);
* structured search-API JSON from GNews and Google Custom Search.
"""

import json
import logging
import re
from datetime import datetime

from bs4 import BeautifulSoup
from dateutil import parser as date_parser
from pydantic import ValidationError as PydanticValidationError

from src.common.exceptions import ParseError
from src.modules.articles.schemas import Article, ArticleSource

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?[ \t]*\n?", re.IGNORECASE)
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")

_MONTHS = r"(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Sept|Oct|Nov|Dec)[a-z]*\.?"
_SNIPPET_DATE_PATTERNS = [
    re.compile(rf"\b{_MONTHS} \d{{1,2}}, \d{{4}}\b"),
    re.compile(rf"\b\d{{1,2}} {_MONTHS} \d{{4}}\b"),
    re.compile(r"\b\d{4}-\d{2}-\d{2}\b"),
]

_METATAG_DATE_KEYS = (
    "article:published_time",
    "datepublished",
    "og:updated_time",
    "pubdate",
    "date",
    "dc.date",
)

GNEWS_SUMMARY_CHARS = 200


# ── JSON embedded in generated text ─────────────────────────

def extract_json_object(text: str | None) -> dict:
    if not text:
        raise ParseError("Empty response content")

    cleaned = _FENCE_RE.sub("", text).strip()
    match = _OBJECT_RE.search(cleaned)
    if not match:
        raise ParseError("Could not locate a JSON object in the response")

    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise ParseError(f"Could not parse AI response: {exc.msg}") from exc

    if not isinstance(parsed, dict):
        raise ParseError("AI response JSON is not an object")
    return parsed


# ── Shared helpers ──────────────────────────────────────────

def strip_html(value: str | None) -> str:
    if not value:
        return ""
    if "<" not in value and "&" not in value:
        return value.strip()
    return BeautifulSoup(value, "lxml").get_text(" ", strip=True)


def format_display_date(moment: datetime) -> str:
    return f"{moment:%b} {moment.day}, {moment.year}"


def format_display_time(moment: datetime) -> str:
    return moment.strftime("%I:%M %p")


def _parse_timestamp(raw: str | None) -> datetime | None:
    if not raw:
        return None
    try:
        return date_parser.parse(raw)
    except (ValueError, OverflowError):
        return None


def clean_domain(host: str | None) -> str:
    if not host:
        return ""
    host = host.strip().lower()
    host = re.sub(r"^https?://", "", host).split("/")[0]
    if host.startswith("www."):
        host = host[4:]
    return host


# ── Chat-completion articles ────────────────────────────────

def normalize_ai_articles(
    items: list, source: ArticleSource = ArticleSource.AI
) -> list[Article]:
    articles: list[Article] = []
    for item in items or []:
        if not isinstance(item, dict):
            logger.warning("Skipping non-object AI article: %r", item)
            continue
        try:
            articles.append(Article.model_validate({**item, "source": source}))
        except PydanticValidationError:
            logger.warning("Skipping malformed AI article: %s", item.get("title"))
    return articles


# ── GNews ───────────────────────────────────────────────────

def gnews_score(index: int) -> int:
    return max(98 - index * 3, 60)


def normalize_gnews_articles(items: list[dict]) -> list[Article]:
    articles: list[Article] = []
    for index, item in enumerate(items):
        published = _parse_timestamp(item.get("publishedAt"))
        summary = item.get("description") or (item.get("content") or "")[:GNEWS_SUMMARY_CHARS]
        articles.append(
            Article(
                title=strip_html(item.get("title")),
                publisher=(item.get("source") or {}).get("name"),
                published_date=format_display_date(published) if published else "",
                published_time=format_display_time(published) if published else "",
                url=item.get("url"),
                summary=strip_html(summary),
                image=item.get("image"),
                relevance_score=gnews_score(index),
                source=ArticleSource.GNEWS,
            )
        )
    return articles


# ── Google Custom Search ────────────────────────────────────

def search_score(position: int) -> int:
    return max(100 - position * 3, 50)


def _first_entry(pagemap: dict, key: str) -> dict:
    entries = pagemap.get(key) or []
    if entries and isinstance(entries[0], dict):
        return entries[0]
    return {}


def _metatags(pagemap: dict) -> dict:
    return {str(k).lower(): v for k, v in _first_entry(pagemap, "metatags").items()}


def derive_publisher(item: dict) -> str:
    pagemap = item.get("pagemap") or {}

    organization = _first_entry(pagemap, "organization").get("name")
    if organization:
        return organization
    news_publisher = _first_entry(pagemap, "newsarticle").get("publisher")
    if isinstance(news_publisher, str) and news_publisher.strip():
        return news_publisher

    site_name = _metatags(pagemap).get("og:site_name")
    if site_name:
        return site_name

    return clean_domain(item.get("displayLink") or item.get("link")) or "Unknown"


def derive_published(item: dict) -> tuple[str, str]:
    """Return the display date and time for a search result, or empty strings."""
    pagemap = item.get("pagemap") or {}
    sources = [_metatags(pagemap), _first_entry(pagemap, "newsarticle")]
    for entry in sources:
        lowered = {str(k).lower(): v for k, v in entry.items()}
        for key in _METATAG_DATE_KEYS:
            raw = lowered.get(key)
            moment = _parse_timestamp(raw) if isinstance(raw, str) else None
            if moment:
                time_part = format_display_time(moment) if ":" in raw else ""
                return format_display_date(moment), time_part

    snippet = item.get("snippet") or ""
    for pattern in _SNIPPET_DATE_PATTERNS:
        match = pattern.search(snippet)
        if not match:
            continue
        moment = _parse_timestamp(match.group(0))
        if moment:
            return format_display_date(moment), ""
    return "", ""


def _image(item: dict) -> str | None:
    pagemap = item.get("pagemap") or {}
    return _first_entry(pagemap, "cse_image").get("src") or _metatags(pagemap).get("og:image")


def normalize_search_items(items: list[dict], offset: int = 0) -> list[Article]:
    articles: list[Article] = []
    for index, item in enumerate(items):
        published_date, published_time = derive_published(item)
        articles.append(
            Article(
                title=strip_html(item.get("htmlTitle") or item.get("title")),
                publisher=derive_publisher(item),
                published_date=published_date,
                published_time=published_time,
                url=item.get("link"),
                summary=strip_html(item.get("htmlSnippet") or item.get("snippet")),
                image=_image(item),
                relevance_score=search_score(offset + index),
                source=ArticleSource.GOOGLE,
            )
        )
    return articles
