import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
import uvicorn

from src.common.exceptions import NewsSearchError
from src.config.settings import settings
from src.modules.export.router import router as export_router
from src.modules.inference.models import available_providers
from src.modules.inference.router import router as inference_router
from src.modules.search.router import router as search_router

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    providers = [p.value for p in available_providers(settings)]
    logger.info(
        "Configured: gnews=%s, google_search=%s, ai=%s",
        settings.has_credential("gnews_api_key"),
        settings.has_credential("google_api_key") and settings.has_credential("google_cse_id"),
        ", ".join(providers) or "none",
    )
    yield


app = FastAPI(title="News Search", lifespan=lifespan)


@app.exception_handler(NewsSearchError)
async def news_search_error_handler(request: Request, exc: NewsSearchError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Search error on %s: %s", request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "error": "Invalid request",
            "details": [
                {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
                for err in exc.errors()
            ],
        },
    )


# API routes
app.include_router(search_router, prefix="/api/search", tags=["search"])
app.include_router(export_router, prefix="/api/export", tags=["export"])
app.include_router(inference_router, prefix="/api/inference", tags=["inference"])

# Static files
static_dir = Path(__file__).parent / "static"
app.mount("/static", StaticFiles(directory=static_dir), name="static")


@app.get("/")
async def root():
    return FileResponse(static_dir / "index.html")


@app.get("/health")
async def health():
    return {"status": "ok"}


def run() -> None:
    uvicorn.run(app, host=settings.app_host, port=settings.app_port)


if __name__ == "__main__":
    run()
