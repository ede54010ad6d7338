import logging

import pytest

from github_mcp_http.config import DETAILED_LEVEL, Settings, _resolve_log_level, load_settings

SETTINGS_ENV_VARS = (
    "PORT",
    "HOST",
    "GITHUB_API_BASE",
    "HTTPX_TIMEOUT",
    "HTTPX_MAX_CONNECTIONS",
    "HTTPX_MAX_KEEPALIVE",
    "MAX_CONCURRENCY",
    "GITHUB_RATE_LIMIT_RETRY_MAX_ATTEMPTS",
    "GITHUB_RATE_LIMIT_RETRY_BASE_DELAY_SECONDS",
    "GITHUB_RATE_LIMIT_RETRY_MAX_WAIT_SECONDS",
    "SESSION_CACHE_MAX_ENTRIES",
    "ALLOWED_HOSTS",
)


def test_defaults_without_environment(monkeypatch):
    for name in SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)

    settings = load_settings()

    assert settings == Settings()
    assert settings.port == 8080
    assert settings.has_default_token is False
    assert settings.allowed_hosts == ("*",)


def test_token_env_precedence(monkeypatch):
    monkeypatch.setenv("GITHUB_PAT", "legacy")
    assert load_settings().default_token == "legacy"

    monkeypatch.setenv("GITHUB_PERSONAL_ACCESS_TOKEN", "  primary  ")
    assert load_settings().default_token == "primary"


def test_numeric_and_list_settings(monkeypatch):
    monkeypatch.setenv("PORT", "9000")
    monkeypatch.setenv("HTTPX_TIMEOUT", "2.5")
    monkeypatch.setenv("SESSION_CACHE_MAX_ENTRIES", "-3")
    monkeypatch.setenv("ALLOWED_HOSTS", "a.example.com, b.example.com,")
    monkeypatch.setenv("GITHUB_API_BASE", "https://ghe.example.com/api/v3/")

    settings = load_settings()

    assert settings.port == 9000
    assert settings.http_timeout == 2.5
    assert settings.session_cache_max_entries == 0
    assert settings.allowed_hosts == ("a.example.com", "b.example.com")
    assert settings.github_api_base == "https://ghe.example.com/api/v3"


def test_invalid_numbers_fail_loudly(monkeypatch):
    monkeypatch.setenv("PORT", "not-a-port")

    with pytest.raises(ValueError):
        load_settings()


def test_blank_numbers_use_defaults(monkeypatch):
    monkeypatch.setenv("PORT", "  ")
    assert load_settings().port == 8080


def test_resolve_log_level():
    assert _resolve_log_level("DETAILED") == DETAILED_LEVEL
    assert _resolve_log_level("warning") == logging.WARNING
    assert _resolve_log_level("bogus") == logging.INFO
    assert hasattr(logging.getLogger("github_mcp_http.tools"), "detailed")
