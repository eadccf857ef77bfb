"""Sync server configuration via environment variables."""

from typing import TYPE_CHECKING

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from shared.validators import StringListEnvSettingsSource, parse_string_list

if TYPE_CHECKING:
    from pydantic_settings.sources.base import PydanticBaseSettingsSource


class SyncServerSettings(BaseSettings):
    model_config = {"env_prefix": "SYNC_"}

    database_path: str = Field(default="backend/data/rooms.db", min_length=1)
    log_dir: str | None = "backend/logs/sync"
    cors_origins: list[str] = ["*"]
    keepalive_interval_seconds: float = Field(default=10.0, gt=0)
    store_timeout_seconds: float = Field(default=5.0, gt=0)
    store_read_retries: int = Field(default=2, ge=0, le=10)
    store_retry_backoff_seconds: float = Field(default=0.1, ge=0)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_string_list(v)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, StringListEnvSettingsSource(settings_cls), dotenv_settings, file_secret_settings
