import logging
from datetime import date

from dateutil import parser as date_parser

from src.modules.articles.schemas import Article

logger = logging.getLogger(__name__)


def parse_display_date(value: str | None) -> date | None:
    """Best-effort parse of a display date such as "Jan 28, 2025" or "2025-01-28"."""
    if not value or not value.strip():
        return None
    try:
        return date_parser.parse(value.strip()).date()
    except (ValueError, OverflowError):
        return None


def filter_by_date(
    articles: list[Article],
    date_from: str | None = None,
    date_to: str | None = None,
) -> list[Article]:
    lower = parse_display_date(date_from)
    upper = parse_display_date(date_to)
    if date_from and lower is None:
        logger.warning("Ignoring unparseable dateFrom bound %r", date_from)
    if date_to and upper is None:
        logger.warning("Ignoring unparseable dateTo bound %r", date_to)
    if lower is None and upper is None:
        return list(articles)

    kept: list[Article] = []
    for article in articles:
        published = parse_display_date(article.published_date)
        # Unknown dates are kept
        if published is None:
            kept.append(article)
            continue
        if lower is not None and published < lower:
            continue
        if upper is not None and published > upper:
            continue
        kept.append(article)

    logger.info("Date filter kept %d/%d articles", len(kept), len(articles))
    return kept


def dedupe_by_url(*article_lists: list[Article]) -> list[Article]:
    """Concatenate lists keeping the first article per non-empty URL.

    Articles without a URL cannot be told apart, so every one of them is kept.
    """
    seen: set[str] = set()
    merged: list[Article] = []
    for articles in article_lists:
        for article in articles:
            if article.url:
                if article.url in seen:
                    continue
                seen.add(article.url)
            merged.append(article)
    return merged


def rank_by_relevance(articles: list[Article]) -> list[Article]:
    # sorted() is stable: equal scores keep merge order
    return sorted(articles, key=lambda a: a.relevance_score or 0, reverse=True)


def merge_and_rank(*article_lists: list[Article]) -> list[Article]:
    return rank_by_relevance(dedupe_by_url(*article_lists))
