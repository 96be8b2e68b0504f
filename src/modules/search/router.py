from fastapi import APIRouter, Depends, Query

from src.modules.search.schemas import DirectSearchResponse, SearchRequest, SearchResponse
from src.modules.search.service import SearchService, search_service

router = APIRouter()


def get_search_service() -> SearchService:
    return search_service


@router.post("", response_model=SearchResponse)
async def search(
    request: SearchRequest, service: SearchService = Depends(get_search_service)
):
    return await service.search(request)


@router.get("", response_model=DirectSearchResponse)
async def direct_search(
    q: str = "",
    date_from: str | None = Query(default=None, alias="dateFrom"),
    date_to: str | None = Query(default=None, alias="dateTo"),
    start: int = Query(default=1, ge=1),
    service: SearchService = Depends(get_search_service),
):
    return await service.direct_search(q, date_from, date_to, start)
