"""
Configuration settings for the invocation engine.

All settings are loaded from environment variables with sensible defaults.
Use .env file for local development.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Application ===
    APP_NAME: str = "Resilient Invocation Engine"
    APP_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"  # Default level for configure_logging()
    ENVIRONMENT: str = "development"  # "production" switches logs to JSON

    # === Models ===
    DEFAULT_MODEL: str = "gemini-2.5-pro"
    FALLBACK_MODELS: list[str] = ["gemini-2.5-flash"]  # Ordered fallback chain
    WRAP_FALLBACK_CHAIN: bool = False  # Consider upstream models after the failed one

    # Per-model state transition overrides, e.g.
    # {"gemini-2.5-flash": {"transient": "sticky_retry", "unknown": "terminal"}}
    MODEL_POLICIES: dict[str, dict[str, str]] = {}

    # === Retry & Backoff ===
    RETRY_MAX_ATTEMPTS: int = 3
    RETRY_INITIAL_DELAY_MS: float = 5000.0
    RETRY_MAX_DELAY_MS: float = 30000.0  # 30 seconds
    RETRY_FETCH_ERRORS: bool = False  # Retry ambiguous "fetch failed" errors


# Global settings instance
settings = Settings()
