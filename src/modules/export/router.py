from fastapi import APIRouter, HTTPException
from fastapi.responses import HTMLResponse, Response

from src.modules.export import service
from src.modules.export.schemas import ExportFormat, ExportRequest

router = APIRouter()


@router.post("/{fmt}")
async def export(fmt: str, body: ExportRequest) -> Response:
    try:
        export_format = ExportFormat(fmt.lower())
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unsupported export format '{fmt}'")

    if export_format is ExportFormat.CSV:
        return Response(
            service.to_csv(body.articles),
            media_type="text/csv",
            headers={"Content-Disposition": 'attachment; filename="news-results.csv"'},
        )
    if export_format is ExportFormat.JSON:
        return Response(
            service.to_json(body.query, body.date_from, body.date_to, body.articles),
            media_type="application/json",
            headers={"Content-Disposition": 'attachment; filename="news-results.json"'},
        )
    return HTMLResponse(
        service.to_html(body.query, body.date_from, body.date_to, body.articles)
    )
