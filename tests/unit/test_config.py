import pytest

from rescuehub import config
from rescuehub.config import AuthConfig, Settings, get_settings

_YAML = {
    "database": {"url": "sqlite+aiosqlite:///from_yaml.db"},
    "auth": {"login_max_attempts": 7, "login_window_seconds": 60},
    "listing": {"max_limit": 30},
}


@pytest.fixture
def yaml_config(monkeypatch):
    monkeypatch.setattr(config, "_yaml", _YAML)
    for name in ("DATABASE_URL", "AUTH__LOGIN_MAX_ATTEMPTS", "LISTING__MAX_LIMIT"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_yaml_values_apply(yaml_config):
    settings = get_settings()
    assert settings.database_url == "sqlite+aiosqlite:///from_yaml.db"
    assert settings.auth.login_max_attempts == 7
    assert settings.listing.max_limit == 30


def test_env_overrides_yaml(yaml_config):
    yaml_config.setenv("DATABASE_URL", "sqlite+aiosqlite:///from_env.db")
    yaml_config.setenv("AUTH__LOGIN_MAX_ATTEMPTS", "11")

    settings = get_settings()
    assert settings.database_url == "sqlite+aiosqlite:///from_env.db"
    assert settings.auth.login_max_attempts == 11
    # untouched keys in the same section still come from yaml
    assert settings.auth.login_window_seconds == 60


def test_constructor_arguments_win(yaml_config):
    yaml_config.setenv("DATABASE_URL", "sqlite+aiosqlite:///from_env.db")
    settings = Settings(database_url="sqlite+aiosqlite:///explicit.db", auth=AuthConfig(login_max_attempts=2))
    assert settings.database_url == "sqlite+aiosqlite:///explicit.db"
    assert settings.auth.login_max_attempts == 2


def test_missing_yaml_falls_back_to_defaults(monkeypatch):
    monkeypatch.setattr(config, "_yaml", {})
    monkeypatch.delenv("DATABASE_URL", raising=False)
    settings = get_settings()
    assert settings.database_url == "sqlite+aiosqlite:///data/rescuehub.db"
    assert settings.listing.default_limit == 20
