"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    debug: bool = False
    log_level: str = "INFO"
    default_timezone: str = "UTC"  # IANA name, grounds naive ISO date-times
    default_calendar_id: str = "primary"

    # OpenAI
    openai_api_key: str = ""

    # LLM
    llm_model: str = "gpt-4o"
    llm_intent_temperature: float = 0.1
    llm_summary_temperature: float = 0.7
    llm_query_summary_max_tokens: int = 350
    llm_creation_summary_max_tokens: int = 200
    llm_timeout_seconds: float = 10.0

    # Google Calendar backend
    google_calendar_api_url: str = "https://www.googleapis.com/calendar/v3"
    google_token_url: str = "https://oauth2.googleapis.com/token"
    google_auth_url: str = "https://accounts.google.com/o/oauth2/v2/auth"
    google_calendar_scopes: list[str] = [
        "https://www.googleapis.com/auth/calendar",
        "https://www.googleapis.com/auth/calendar.events",
    ]
    calendar_timeout_seconds: float = 10.0
    calendar_page_size: int = 100

    # Service identity (non-interactive)
    google_service_account_email: str = ""
    google_service_account_private_key: str = ""

    # Delegated OAuth (user consent)
    google_client_id: str = ""
    google_client_secret: str = ""
    google_redirect_uri: str = "http://localhost:8000/api/v1/auth/google/callback"

    # Clerk Authentication
    clerk_jwks_url: str = ""  # https://<clerk-domain>/.well-known/jwks.json

    # Dev mode: bypass Clerk auth
    dev_auth_bypass: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
