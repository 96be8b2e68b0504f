from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Search APIs
    gnews_api_key: str | None = None
    google_api_key: str | None = None
    google_cse_id: str | None = None

    # Generative AI providers
    gemini_api_key: str | None = None
    groq_api_key: str | None = None
    openai_api_key: str | None = None
    together_api_key: str | None = None
    openrouter_api_key: str | None = None

    site_url: str = "http://localhost:8000"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    log_level: str = "INFO"

    # Seconds
    request_timeout: float = 30.0
    race_timeout: float = 15.0
    enhance_timeout: float = 10.0
    fallback_delay: float = 0.0
    gnews_stagger: float = 0.1
    rate_limit_retry_after: int = 60

    ai_search_strategy: Literal["sequential", "race"] = "sequential"

    def has_credential(self, name: str) -> bool:
        value = getattr(self, name, None)
        return bool(value and value.strip())


settings = Settings()
