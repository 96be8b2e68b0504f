from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from src.modules.articles.schemas import Article


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SearchRequest(CamelModel):
    # Optional here so a missing query is reported as a 400, not a schema error
    query: str | None = None
    date_from: str | None = None
    date_to: str | None = None
    deep_research: bool = False


class SourceCounts(BaseModel):
    gnews: int = 0
    ai: int = 0


class GroundingSourceResponse(BaseModel):
    title: str
    url: str


class SearchResponse(CamelModel):
    articles: list[Article]
    search_summary: str
    total_results: int
    total_sources: int
    provider: str | None = None
    model: str | None = None
    search_time: str
    sources: SourceCounts
    grounding_sources: list[GroundingSourceResponse] = []


class SearchInfo(CamelModel):
    total_results: int
    search_time: str
    query: str


class DirectSearchResponse(CamelModel):
    articles: list[Article]
    search_info: SearchInfo
    next_page: int | None = None
