import math
from enum import Enum

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


class ArticleSource(str, Enum):
    GNEWS = "gnews"
    AI = "ai"
    GOOGLE = "google"


class Article(BaseModel):
    """Common article record every provider response is normalized into."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str = ""
    publisher: str = "Unknown"
    published_date: str = ""  # display string, parsed best-effort when filtering
    published_time: str = ""
    url: str = ""
    summary: str = ""
    image: str | None = None
    relevance_score: int = 0
    source: ArticleSource | None = None

    @field_validator("title", "published_date", "published_time", "url", "summary", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        if value is None:
            return ""
        return str(value).strip()

    @field_validator("publisher", mode="before")
    @classmethod
    def _default_publisher(cls, value):
        if value is None or not str(value).strip():
            return "Unknown"
        return str(value).strip()

    @field_validator("relevance_score", mode="before")
    @classmethod
    def _clamp_score(cls, value):
        try:
            score = float(value)
        except (TypeError, ValueError):
            return 0
        if math.isnan(score):
            return 0
        return int(max(0.0, min(score, 100.0)))
