"""Tests for Settings validation."""

import pytest
from pydantic import ValidationError

from roboct.api.core.config import Settings


def make_settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)  # type: ignore[call-arg]


def test_defaults():
    settings = make_settings()

    assert settings.environment == "production"
    assert settings.is_production
    assert not settings.is_development
    assert settings.refresh_window_minutes == 30
    assert settings.state_ttl_seconds == 3600
    assert settings.http_timeout == 10.0


def test_api_url_trailing_slash_is_stripped():
    assert make_settings(api_url="https://api.example.com/").api_url == "https://api.example.com"


def test_database_url_must_be_postgres():
    with pytest.raises(ValidationError):
        make_settings(database_url="mysql://localhost/roboct")


def test_unknown_log_level_falls_back_to_info():
    assert make_settings(log_level="verbose").log_level == "INFO"
    assert make_settings(log_level="debug").log_level == "DEBUG"


def test_development_mode():
    assert make_settings(environment="Development").is_development


def test_sweep_concurrency_must_be_positive():
    with pytest.raises(ValidationError):
        make_settings(sweep_concurrency=0)
