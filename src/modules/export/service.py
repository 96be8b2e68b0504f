import csv
import io
import json
from datetime import datetime, timezone
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from src.modules.articles.schemas import Article

CSV_HEADERS = ["Title", "Publisher", "Date", "Time", "URL", "Summary", "Relevance Score"]

_env = Environment(
    loader=FileSystemLoader(Path(__file__).parent / "templates"),
    autoescape=select_autoescape(["html"]),
)


def to_csv(articles: list[Article]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for a in articles:
        writer.writerow([
            a.title,
            a.publisher,
            a.published_date,
            a.published_time,
            a.url,
            a.summary,
            a.relevance_score,
        ])
    return buffer.getvalue()


def to_json(
    query: str,
    date_from: str | None,
    date_to: str | None,
    articles: list[Article],
    exported_at: datetime | None = None,
) -> str:
    exported_at = exported_at or datetime.now(timezone.utc)
    document = {
        "searchQuery": query,
        "dateRange": {"from": date_from or "", "to": date_to or ""},
        "exportedAt": exported_at.isoformat(),
        "totalResults": len(articles),
        "articles": [a.model_dump(by_alias=True, mode="json") for a in articles],
    }
    return json.dumps(document, indent=2, ensure_ascii=False)


def to_html(
    query: str,
    date_from: str | None,
    date_to: str | None,
    articles: list[Article],
    generated_at: datetime | None = None,
) -> str:
    """Render a printable results document; the browser prints it to PDF."""
    template = _env.get_template("report.html")
    return template.render(
        query=query,
        date_from=date_from,
        date_to=date_to,
        articles=articles,
        generated_at=(generated_at or datetime.now()).strftime("%Y-%m-%d %H:%M"),
    )
