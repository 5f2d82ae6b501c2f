"""Application configuration loaded from config.yaml + environment variables.

Precedence, highest first: constructor arguments, environment, ``.env``,
config.yaml, field defaults. Nested sections use ``__`` in env names, e.g.
``AUTH__LOGIN_MAX_ATTEMPTS=10``.
"""

from __future__ import annotations

from typing import Any

import yaml
from pathlib import Path
from pydantic import Field
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.yaml"


def _load_yaml() -> dict:
    if _CONFIG_PATH.exists():
        with open(_CONFIG_PATH) as f:
            return yaml.safe_load(f) or {}
    return {}


_yaml = _load_yaml()


class YamlSettingsSource(PydanticBaseSettingsSource):
    """Feeds config.yaml into Settings below env and .env."""

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        return self._values().get(field_name), field_name, False

    def _values(self) -> dict[str, Any]:
        values = {k: v for k, v in _yaml.items() if k != "database"}
        db_url = (_yaml.get("database") or {}).get("url")
        if db_url:
            values["database_url"] = db_url
        return values

    def __call__(self) -> dict[str, Any]:
        return {k: v for k, v in self._values().items() if k in self.settings_cls.model_fields}


class UploadConfig(BaseSettings):
    base_dir: str = "uploads"
    url_prefix: str = "/uploads"
    max_images_per_request: int = 5
    max_bytes: int = 10 * 1024 * 1024
    thumbnail_size: tuple[int, int] = (320, 240)


class AuthConfig(BaseSettings):
    session_max_age_days: int = 7
    login_max_attempts: int = 5
    login_window_seconds: int = 15 * 60


class ListingConfig(BaseSettings):
    default_limit: int = 20
    max_limit: int = 100


class Settings(BaseSettings):
    app_name: str = "RescueHub"
    database_url: str = "sqlite+aiosqlite:///data/rescuehub.db"
    cors_origins: list[str] = Field(default_factory=list)
    uploads: UploadConfig = Field(default_factory=UploadConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    listing: ListingConfig = Field(default_factory=ListingConfig)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_nested_delimiter": "__",
        "extra": "ignore",
    }

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
            YamlSettingsSource(settings_cls),
            file_secret_settings,
        )


def get_settings() -> Settings:
    return Settings()
