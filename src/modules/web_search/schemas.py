from pydantic import BaseModel

from src.modules.articles.schemas import Article


class WebSearchPage(BaseModel):
    """One page of Google Custom Search results, already normalized."""

    articles: list[Article]
    total_results: int
    search_time: float
    next_page: int | None = None
