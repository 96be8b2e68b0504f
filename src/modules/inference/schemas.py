from dataclasses import dataclass, field, replace

from pydantic import BaseModel

from src.modules.inference.models import ProviderKind


@dataclass(frozen=True)
class GroundingSource:
    title: str
    url: str


@dataclass(frozen=True)
class Completion:
    provider: ProviderKind
    model: str
    content: str
    grounding: tuple[GroundingSource, ...] = ()
    payload: dict | None = field(default=None, compare=False)

    def with_payload(self, payload: dict) -> "Completion":
        return replace(self, payload=payload)


class ProviderResponse(BaseModel):
    id: str
    name: str
    models: list[str]
    configured: bool
