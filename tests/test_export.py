"""Tests for CSV, JSON and printable HTML exports."""

import csv
import io
import json
from datetime import datetime, timezone

from fastapi.testclient import TestClient

from src.main import app
from src.modules.articles.schemas import Article
from src.modules.export.service import to_csv, to_html, to_json

ARTICLES = [
    Article(
        title='Climate "deal" reached',
        publisher="Reuters",
        published_date="Jan 10, 2025",
        published_time="02:30 PM",
        url="https://n.example/1",
        summary="Leaders agreed, finally.",
        relevance_score=92,
        source="gnews",
    ),
    Article(title="<script>alert(1)</script>", url=""),
]


def test_csv_export():
    rows = list(csv.reader(io.StringIO(to_csv(ARTICLES))))
    assert rows[0] == ["Title", "Publisher", "Date", "Time", "URL", "Summary", "Relevance Score"]
    assert rows[1][0] == 'Climate "deal" reached'
    assert rows[1][5] == "Leaders agreed, finally."
    assert rows[1][6] == "92"
    assert len(rows) == 3


def test_json_export():
    exported_at = datetime(2025, 2, 1, 12, 0, tzinfo=timezone.utc)
    document = json.loads(to_json("climate", "2025-01-01", None, ARTICLES, exported_at))
    assert document["searchQuery"] == "climate"
    assert document["dateRange"] == {"from": "2025-01-01", "to": ""}
    assert document["exportedAt"] == "2025-02-01T12:00:00+00:00"
    assert document["totalResults"] == 2
    assert document["articles"][0]["relevanceScore"] == 92
    assert document["articles"][0]["source"] == "gnews"


def test_html_export_escapes_content():
    html = to_html("climate", "2025-01-01", "2025-01-31", ARTICLES)
    assert "News Search Results - climate" in html
    assert "2025-01-01" in html and "2025-01-31" in html
    assert "92% relevant" in html
    assert "<script>alert(1)</script>" not in html
    assert "&lt;script&gt;" in html
    assert "No URL" in html


def test_export_routes():
    client = TestClient(app)
    body = {
        "query": "climate",
        "articles": [a.model_dump(by_alias=True, mode="json") for a in ARTICLES],
    }

    csv_response = client.post("/api/export/csv", json=body)
    assert csv_response.status_code == 200
    assert csv_response.headers["content-type"].startswith("text/csv")
    assert "news-results.csv" in csv_response.headers["content-disposition"]

    json_response = client.post("/api/export/json", json=body)
    assert json.loads(json_response.text)["totalResults"] == 2

    html_response = client.post("/api/export/html", json=body)
    assert html_response.headers["content-type"].startswith("text/html")

    assert client.post("/api/export/xml", json=body).status_code == 404
