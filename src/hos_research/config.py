from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from hos_research.errors import ConfigError


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    openai_api_key: Optional[str] = None
    openai_model: str = Field(default="gpt-4o-mini")
    openai_base_url: Optional[str] = None

    route_prefix: str = Field(default="/make-server-8d51d9e2")
    public_anon_key: Optional[str] = None
    ai_server_url: str = Field(default="http://127.0.0.1:8000/make-server-8d51d9e2")
    ai_timeout_sec: float = Field(default=45.0)

    chat_max_tokens: int = Field(default=1000)
    analysis_temperature: float = Field(default=0.7)
    analysis_max_tokens: int = Field(default=1500)
    report_max_tokens: int = Field(default=3000)

    kv_db_path: Path = Field(default=Path("data/kv_store.db"))
    log_level: str = Field(default="INFO")


def get_settings() -> Settings:
    settings = Settings()
    settings.kv_db_path.parent.mkdir(parents=True, exist_ok=True)
    return settings


def validate_server_settings(settings: Settings) -> None:
    if not settings.openai_api_key:
        raise ConfigError("OPENAI_API_KEY is not configured")
    if not settings.route_prefix.startswith("/"):
        raise ConfigError(f"route_prefix must start with '/': {settings.route_prefix!r}")
    if settings.ai_timeout_sec <= 0:
        raise ConfigError("ai_timeout_sec must be positive")
