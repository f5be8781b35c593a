"""Runtime configuration for the NLInterface voice engine."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven runtime settings."""

    model_config = SettingsConfigDict(env_prefix="NLINTERFACE_", env_file=".env", extra="ignore")

    app_name: str = "nlinterface"
    log_level: str = "INFO"
    locale: str = "en-US"
    phrase_book_path: str | None = Field(
        default=None,
        description="JSON file with localized phrase tables; built-in English tables when unset.",
    )
    preferences_path: str | None = Field(
        default=None,
        description="JSON file backing the preference store; in-memory when unset.",
    )
    narration_enabled: bool = True
    narration_max_chars: int = 500
    capture_timeout_seconds: float | None = Field(
        default=10.0,
        description="Upper bound for one capture session; expiry is reported as no-match.",
    )
    phrase_time_limit: float = 5.0


settings = Settings()
