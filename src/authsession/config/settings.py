"""Session configuration loaded from environment variables and .env.

Hey future me - every setting can be overridden with an AUTHSESSION_* env var:

    AUTHSESSION_SCOPE=app                 -> storage key "app:token"
    AUTHSESSION_STORAGE_BACKEND=file
    AUTHSESSION_STORAGE_PATH=~/.myapp/session.json
    AUTHSESSION_RETRY_STATUS_CODES=401,419
    AUTHSESSION_LOG_LEVEL=DEBUG

Settings only describe HOW the session is stored and logged. The authorize /
refresh / sign-out callbacks are code, they're passed to create_session_manager().
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Auth session settings."""

    model_config = SettingsConfigDict(
        env_prefix="AUTHSESSION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: str = "authsession"

    # === Storage ===
    storage_key: str = Field(default="token", min_length=1)
    scope: str | None = None
    storage_backend: Literal["memory", "file"] = "memory"
    storage_path: Path = Path(".authsession") / "session.json"

    # === HTTP middleware ===
    retry_status_codes: Annotated[list[int], NoDecode] = Field(default_factory=lambda: [401])

    # === Expiry worker ===
    expiry_check_interval: int = Field(default=60, ge=1)

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_json: bool = False

    @field_validator("scope", mode="before")
    @classmethod
    def empty_scope_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    @field_validator("retry_status_codes", mode="before")
    @classmethod
    def parse_status_codes(cls, v: Any) -> Any:
        # Env vars arrive as "401,403"; code passes real lists
        if isinstance(v, str):
            return [int(part) for part in v.split(",") if part.strip()]
        if isinstance(v, int):
            return [v]
        return v

    @field_validator("retry_status_codes")
    @classmethod
    def check_status_codes(cls, v: list[int]) -> list[int]:
        for code in v:
            if not 400 <= code <= 599:
                raise ValueError(f"retry status code {code} is not an HTTP error status")
        return v

    @field_validator("storage_path")
    @classmethod
    def expand_storage_path(cls, v: Path) -> Path:
        return v.expanduser()


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings (loaded once)."""
    return Settings()
