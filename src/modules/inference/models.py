from dataclasses import dataclass
from enum import Enum

from src.config.settings import Settings


class ProviderKind(str, Enum):
    GEMINI = "gemini"
    GROQ = "groq"
    OPENAI = "openai"
    TOGETHER = "together"
    OPENROUTER = "openrouter"


class WireFormat(str, Enum):
    GEMINI = "gemini"  # generateContent with Google Search grounding
    OPENAI_CHAT = "openai_chat"  # {model, messages, temperature, max_tokens}


@dataclass(frozen=True)
class ProviderInfo:
    kind: ProviderKind
    name: str
    url: str
    models: tuple[str, ...]
    credential: str
    wire_format: WireFormat
    signup_url: str


@dataclass(frozen=True)
class Candidate:
    provider: ProviderKind
    model: str

    @property
    def label(self) -> str:
        return f"{self.provider.value}/{self.model}"


# Registry order is the fallback priority order
PROVIDERS: dict[ProviderKind, ProviderInfo] = {p.kind: p for p in [
    ProviderInfo(
        ProviderKind.GEMINI,
        "Google Gemini",
        "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent",
        ("gemini-2.0-flash", "gemini-1.5-flash"),
        "gemini_api_key",
        WireFormat.GEMINI,
        "https://aistudio.google.com/app/apikey",
    ),
    ProviderInfo(
        ProviderKind.GROQ,
        "Groq",
        "https://api.groq.com/openai/v1/chat/completions",
        ("llama-3.3-70b-versatile", "mixtral-8x7b-32768"),
        "groq_api_key",
        WireFormat.OPENAI_CHAT,
        "https://console.groq.com/keys",
    ),
    ProviderInfo(
        ProviderKind.OPENAI,
        "OpenAI",
        "https://api.openai.com/v1/chat/completions",
        ("gpt-4o-mini", "gpt-3.5-turbo"),
        "openai_api_key",
        WireFormat.OPENAI_CHAT,
        "https://platform.openai.com/api-keys",
    ),
    ProviderInfo(
        ProviderKind.TOGETHER,
        "Together AI",
        "https://api.together.xyz/v1/chat/completions",
        ("meta-llama/Llama-3.3-70B-Instruct-Turbo",),
        "together_api_key",
        WireFormat.OPENAI_CHAT,
        "https://api.together.xyz/settings/api-keys",
    ),
    ProviderInfo(
        ProviderKind.OPENROUTER,
        "OpenRouter",
        "https://openrouter.ai/api/v1/chat/completions",
        ("meta-llama/llama-3.3-70b-instruct:free", "google/gemini-2.0-flash-exp:free"),
        "openrouter_api_key",
        WireFormat.OPENAI_CHAT,
        "https://openrouter.ai/keys",
    ),
]}

SETUP_GUIDANCE: dict[str, str] = {
    "gnews": "Get free key (100 req/day) at https://gnews.io",
    "gemini": "Get free key at https://aistudio.google.com/app/apikey",
    "groq": "Get free key at https://console.groq.com/keys",
    "openrouter": "Free models at https://openrouter.ai/keys",
}


def available_providers(settings: Settings) -> list[ProviderKind]:
    return [
        info.kind for info in PROVIDERS.values() if settings.has_credential(info.credential)
    ]


def build_candidates(
    providers: list[ProviderKind], first_model_only: bool = False
) -> list[Candidate]:
    candidates: list[Candidate] = []
    for kind in providers:
        models = PROVIDERS[kind].models
        if first_model_only:
            models = models[:1]
        candidates.extend(Candidate(kind, model) for model in models)
    return candidates
