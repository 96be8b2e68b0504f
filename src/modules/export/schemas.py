from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from src.modules.articles.schemas import Article


class ExportFormat(str, Enum):
    CSV = "csv"
    JSON = "json"
    HTML = "html"


class ExportRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    query: str = ""
    date_from: str | None = None
    date_to: str | None = None
    articles: list[Article] = []
