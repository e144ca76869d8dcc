"""Runtime configuration based on environment variables."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, HttpUrl, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseModel):
    dsn: str = Field(
        default="sqlite+aiosqlite:///./paws.db",
        description="SQLAlchemy async DSN (aiosqlite by default, asyncmy for MySQL).",
    )
    pool_size: int = Field(default=5, ge=1, le=50)
    max_overflow: int = Field(default=10, ge=0, le=100)
    echo: bool = False
    pool_recycle: int = Field(default=3600, ge=30)
    pool_pre_ping: bool = Field(default=True)

    @property
    def is_sqlite(self) -> bool:
        return self.dsn.startswith("sqlite")

    @property
    def is_sqlite_memory(self) -> bool:
        if not self.is_sqlite:
            return False
        database = self.dsn.split("://", 1)[-1]
        return database in {"", "/"} or ":memory:" in database


class AuthSettings(BaseModel):
    cookie_name: str = "paws_token"
    cookie_secure: bool = False
    token_ttl_seconds: int = Field(default=60 * 60 * 24 * 7, ge=60)
    jwt_algorithm: Literal["HS256", "HS384", "HS512"] = "HS256"
    bcrypt_rounds: int = Field(default=10, ge=4, le=16)


class MeteringSettings(BaseModel):
    free_grant_seconds: int = Field(default=120, ge=0)
    free_period_days: int = Field(default=30, ge=1)
    free_session_cap_seconds: int = Field(default=90, ge=1)
    grace_threshold: float = Field(default=0.9, gt=0, le=1)
    grace_allowance_seconds: int = Field(default=120, ge=0)
    stale_session_seconds: int = Field(default=120, ge=10)
    heartbeat_interval_seconds: int = Field(default=5, ge=1)
    payperuse_validity_days: int = Field(default=3650, ge=1)
    history_max_limit: int = Field(default=100, ge=1)


class AzureProviderSettings(BaseModel):
    api_key: SecretStr | None = None
    base_url: HttpUrl | None = None
    api_version: str | None = None


class LLMSettings(BaseModel):
    provider: Literal["openai", "azure", "azure_openai", "custom"] = "openai"
    chat_model: str = "gpt-4o-mini"
    debrief_model: str = "gpt-4o"
    api_key: SecretStr | None = None
    base_url: HttpUrl | None = None
    azure: AzureProviderSettings = Field(default_factory=AzureProviderSettings)
    request_timeout_seconds: int = Field(default=60, ge=5, le=600)
    debrief_temperature: float = Field(default=0.7, ge=0, le=2)

    @field_validator("api_key", "base_url", mode="before")
    @classmethod
    def _empty_str_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class VoiceSettings(BaseModel):
    base_url: HttpUrl = Field(default="https://api.openai.com/v1")
    api_key: SecretStr | None = None
    realtime_model: str = "gpt-4o-realtime-preview-2024-12-17"
    tts_model: str = "gpt-4o-mini-tts"
    default_voice: str = "verse"
    request_timeout_seconds: int = Field(default=30, ge=1, le=300)


class PawsSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PAWS_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__"
    )

    environment: Literal["dev", "staging", "prod"] = "dev"
    jwt_secret: SecretStr
    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    metering: MeteringSettings = Field(default_factory=MeteringSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    voice: VoiceSettings = Field(default_factory=VoiceSettings)

    def voice_api_key(self) -> SecretStr | None:
        """Voice calls fall back to the LLM key when no dedicated key is set."""

        return self.voice.api_key or self.llm.api_key


@lru_cache
def get_settings() -> PawsSettings:
    """Return cached settings instance."""

    return PawsSettings()  # type: ignore[call-arg]


__all__ = [
    "AuthSettings",
    "AzureProviderSettings",
    "DatabaseSettings",
    "LLMSettings",
    "MeteringSettings",
    "PawsSettings",
    "VoiceSettings",
    "get_settings",
]
