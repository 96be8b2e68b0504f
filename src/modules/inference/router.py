from fastapi import APIRouter

from src.config.settings import settings
from src.modules.inference.models import PROVIDERS, available_providers
from src.modules.inference.schemas import ProviderResponse

router = APIRouter()


@router.get("/providers")
async def list_providers() -> dict:
    configured = set(available_providers(settings))
    providers = [
        ProviderResponse(
            id=info.kind.value,
            name=info.name,
            models=list(info.models),
            configured=info.kind in configured,
        )
        for info in PROVIDERS.values()
    ]
    return {
        "providers": providers,
        "gnews": settings.has_credential("gnews_api_key"),
        "googleSearch": settings.has_credential("google_api_key")
        and settings.has_credential("google_cse_id"),
    }
