from src.config.settings import Settings
from src.modules.inference.models import (
    PROVIDERS,
    Candidate,
    ProviderKind,
    WireFormat,
    available_providers,
    build_candidates,
)


def test_registry_covers_every_provider_kind():
    assert set(PROVIDERS) == set(ProviderKind)
    assert PROVIDERS[ProviderKind.GEMINI].wire_format is WireFormat.GEMINI
    assert PROVIDERS[ProviderKind.GROQ].wire_format is WireFormat.OPENAI_CHAT


def test_available_providers_without_credentials(make_settings):
    assert available_providers(make_settings()) == []


def test_available_providers_in_registry_order(make_settings):
    cfg = make_settings(openrouter_api_key="or-key", groq_api_key="groq-key")
    assert available_providers(cfg) == [ProviderKind.GROQ, ProviderKind.OPENROUTER]


def test_blank_credentials_are_ignored(make_settings):
    assert available_providers(make_settings(openai_api_key="   ")) == []


def test_available_providers_from_environment(monkeypatch):
    monkeypatch.setenv("TOGETHER_API_KEY", "tg-key")
    assert ProviderKind.TOGETHER in available_providers(Settings(_env_file=None))


def test_build_candidates_orders_models_per_provider():
    candidates = build_candidates([ProviderKind.GROQ, ProviderKind.TOGETHER])
    assert candidates == [
        Candidate(ProviderKind.GROQ, "llama-3.3-70b-versatile"),
        Candidate(ProviderKind.GROQ, "mixtral-8x7b-32768"),
        Candidate(ProviderKind.TOGETHER, "meta-llama/Llama-3.3-70B-Instruct-Turbo"),
    ]


def test_build_candidates_first_model_only():
    candidates = build_candidates([ProviderKind.OPENAI, ProviderKind.GEMINI], first_model_only=True)
    assert [c.label for c in candidates] == ["openai/gpt-4o-mini", "gemini/gemini-2.0-flash"]
