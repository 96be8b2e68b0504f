from datetime import datetime

from src.modules.articles.schemas import Article

SEARCH_PROMPT_TEMPLATE = """\
You are a news research assistant. Today is {today}.

Search for 20+ news articles about: "{query}"

{date_context}
{depth}

For EACH article provide:
- title: Realistic headline
- publisher: Real news org (BBC, Reuters, CNN, NYT, AP, Bloomberg, etc.)
- publishedDate: Recent realistic date (e.g., "Jan 28, 2025")
- publishedTime: Time (e.g., "2:30 PM")
- url: Realistic URL for that publisher
- summary: 2-3 sentence summary
- relevanceScore: 60-98

Return ONLY valid JSON:
{{
  "articles": [...],
  "searchSummary": "Overview of coverage"
}}

Provide at least 15-20 articles from diverse sources."""

ENHANCE_PROMPT_TEMPLATE = """\
Analyze these news articles about "{query}" and provide enhanced summaries.

Articles:
{listing}

Return JSON array with enhanced 2-3 sentence summaries for each:
{{
  "summaries": ["summary1", "summary2", ...],
  "overallAnalysis": "Brief analysis of the news coverage"
}}"""

ENHANCE_LIMIT = 15


def _date_context(date_from: str | None, date_to: str | None) -> str:
    if date_from and date_to:
        return f"Focus on news published between {date_from} and {date_to}."
    if date_from:
        return f"Focus on news published after {date_from}."
    if date_to:
        return f"Focus on news published before {date_to}."
    return ""


def build_search_prompt(
    query: str,
    date_from: str | None,
    date_to: str | None,
    deep_research: bool,
    today: datetime | None = None,
) -> str:
    today = today or datetime.now()
    return SEARCH_PROMPT_TEMPLATE.format(
        today=f"{today:%A, %B} {today.day}, {today.year}",
        query=query,
        date_context=_date_context(date_from, date_to),
        depth="Provide comprehensive coverage with multiple perspectives." if deep_research else "",
    )


def build_enhance_prompt(query: str, articles: list[Article]) -> str:
    listing = "\n".join(
        f'{i + 1}. "{a.title}" - {a.publisher}' for i, a in enumerate(articles[:ENHANCE_LIMIT])
    )
    return ENHANCE_PROMPT_TEMPLATE.format(query=query, listing=listing)
