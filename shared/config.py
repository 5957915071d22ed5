"""Exporter configuration with startup validation.

Settings are loaded once at startup via pydantic-settings and passed
explicitly to whatever needs them. Sources, highest precedence first:
command-line overrides, PVDB_* environment variables, .env, the TOML
config file, defaults.
"""

import logging
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from shared.exceptions import ConfigFileNotFoundError

CONFIG_FILE_NAME = "pvdb-metrics.toml"


def default_search_dirs() -> list[Path]:
    return [Path("/etc"), Path.home() / ".config", Path(".")]


class DatabaseSettings(BaseModel):
    # libpq keyword DSN ("host=... port=...") or a postgresql:// URL
    url: str = "host=localhost port=5432"
    pool_size: int = Field(5, ge=1)
    max_overflow: int = Field(5, ge=0)
    pool_timeout_seconds: float = Field(10.0, gt=0)
    # 0 disables the server-side statement_timeout
    query_timeout_seconds: float = Field(0.0, ge=0)
    connect_attempts: int = Field(3, ge=1)
    fail_on_connect_error: bool = False

    @field_validator("url")
    @classmethod
    def url_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("database url must not be empty")
        return v.strip()


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = Field(2112, ge=1, le=65535)


class LogSettings(BaseModel):
    as_json: bool = Field(False, validation_alias=AliasChoices("json", "as_json"))
    level: str = "INFO"

    @field_validator("level")
    @classmethod
    def known_level(cls, v: str) -> str:
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level '{v}'")
        return level


class CollectorSettings(BaseModel):
    max_workers: int = Field(4, ge=1)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PVDB_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    database: DatabaseSettings = DatabaseSettings()
    server: ServerSettings = ServerSettings()
    log: LogSettings = LogSettings()
    collector: CollectorSettings = CollectorSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )

    @model_validator(mode="after")
    def validate_pool_capacity(self) -> "Settings":
        """Fail fast if the collector can fan out wider than the pool can lend."""
        capacity = self.database.pool_size + self.database.max_overflow
        if self.collector.max_workers > capacity:
            raise ValueError(
                f"collector.max_workers ({self.collector.max_workers}) exceeds database "
                f"pool capacity ({capacity} = pool_size + max_overflow)"
            )
        return self


def find_config_file(search_dirs: list[Path] | None = None) -> Path | None:
    """Return the first pvdb-metrics.toml found in the search path, if any."""
    for directory in search_dirs if search_dirs is not None else default_search_dirs():
        candidate = directory / CONFIG_FILE_NAME
        if candidate.is_file():
            return candidate
    return None


def resolve_config_file(
    explicit: Path | None, search_dirs: list[Path] | None = None
) -> Path | None:
    """An explicitly requested file must exist; a discovered one is optional."""
    if explicit is not None:
        if not explicit.is_file():
            raise ConfigFileNotFoundError(explicit)
        return explicit
    return find_config_file(search_dirs)


def load_settings(config_file: Path | None = None, **overrides: Any) -> Settings:
    """Build Settings from all sources, reading TOML from config_file when given.

    overrides are nested dicts keyed like the TOML sections, e.g.
    ``database={"url": "..."}``, and take precedence over everything else.
    """
    if config_file is None:
        return Settings(**overrides)

    class FileSettings(Settings):
        model_config = SettingsConfigDict(toml_file=config_file)

    return FileSettings(**overrides)
