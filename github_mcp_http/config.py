"""Configuration and logging helpers for the GitHub MCP HTTP gateway."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

# Custom log levels
# ------------------------------------------------------------------------------
#
# DETAILED: verbose operational logging that is more detailed than INFO but less
# noisy than full DEBUG (per-tool call events land here).

DETAILED_LEVEL = 15


def _install_custom_log_levels() -> None:
    if not hasattr(logging, "DETAILED"):
        logging.addLevelName(DETAILED_LEVEL, "DETAILED")
        setattr(logging, "DETAILED", DETAILED_LEVEL)

    if not hasattr(logging.Logger, "detailed"):
        def detailed(self: logging.Logger, msg, *args, **kwargs):
            if self.isEnabledFor(DETAILED_LEVEL):
                self._log(DETAILED_LEVEL, msg, args, **kwargs)
        logging.Logger.detailed = detailed  # type: ignore[attr-defined]


def _resolve_log_level(level_name: str | None) -> int:
    if not level_name:
        return logging.INFO

    name = str(level_name).strip().upper()
    if not name:
        return logging.INFO

    # Numeric levels are allowed.
    if name.lstrip("-").isdigit():
        return int(name)

    if name == "DETAILED":
        return DETAILED_LEVEL

    return getattr(logging, name, logging.INFO)


_install_custom_log_levels()

# Server identity
# ------------------------------------------------------------------------------

SERVER_NAME = "GitHub MCP Server"
SERVER_VERSION = "1.0.0"
TRANSPORT_NAME = "streamable-http"

# Token sources, in order, for the server-wide default credential.
GITHUB_TOKEN_ENV_VARS = ("GITHUB_PERSONAL_ACCESS_TOKEN", "GITHUB_TOKEN", "GITHUB_PAT")

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
LOG_STYLE = os.environ.get("LOG_STYLE", "color").lower()

# Default to a compact, scannable format.
LOG_FORMAT = os.environ.get(
    "LOG_FORMAT",
    "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


def _default_token_from_env() -> str:
    """Return the first non-empty token among GITHUB_TOKEN_ENV_VARS, or ''."""

    for env_var in GITHUB_TOKEN_ENV_VARS:
        candidate = (os.environ.get(env_var) or "").strip()
        if candidate:
            return candidate
    return ""


@dataclass(frozen=True)
class Settings:
    """Process configuration.

    Built from the environment by :func:`load_settings` when the ASGI app is
    created, so tests can construct their own instance instead of patching
    module globals.
    """

    host: str = "0.0.0.0"
    port: int = 8080
    default_token: str = ""
    github_api_base: str = "https://api.github.com"
    http_timeout: float = 30.0
    max_connections: int = 100
    max_keepalive: int = 20
    max_concurrency: int = 20
    rate_limit_retry_max_attempts: int = 2
    rate_limit_retry_base_delay: float = 1.0
    rate_limit_retry_max_wait: float = 30.0
    session_cache_max_entries: int = 0
    allowed_hosts: tuple[str, ...] = field(default_factory=lambda: ("*",))

    @property
    def has_default_token(self) -> bool:
        return bool(self.default_token)


def load_settings() -> Settings:
    """Read Settings from the current environment.

    Reads happen on every call instead of at import time so tests that
    monkeypatch the environment stay deterministic.
    """

    allowed_hosts_env = (os.environ.get("ALLOWED_HOSTS") or "").strip()
    if allowed_hosts_env:
        allowed_hosts = tuple(h.strip() for h in allowed_hosts_env.split(",") if h.strip())
    else:
        allowed_hosts = ("*",)

    return Settings(
        host=(os.environ.get("HOST") or "0.0.0.0").strip(),
        port=_env_int("PORT", 8080),
        default_token=_default_token_from_env(),
        github_api_base=os.environ.get("GITHUB_API_BASE", "https://api.github.com").rstrip("/"),
        http_timeout=_env_float("HTTPX_TIMEOUT", 30.0),
        max_connections=_env_int("HTTPX_MAX_CONNECTIONS", 100),
        max_keepalive=_env_int("HTTPX_MAX_KEEPALIVE", 20),
        max_concurrency=max(1, _env_int("MAX_CONCURRENCY", 20)),
        rate_limit_retry_max_attempts=max(0, _env_int("GITHUB_RATE_LIMIT_RETRY_MAX_ATTEMPTS", 2)),
        rate_limit_retry_base_delay=_env_float("GITHUB_RATE_LIMIT_RETRY_BASE_DELAY_SECONDS", 1.0),
        rate_limit_retry_max_wait=_env_float("GITHUB_RATE_LIMIT_RETRY_MAX_WAIT_SECONDS", 30.0),
        session_cache_max_entries=max(0, _env_int("SESSION_CACHE_MAX_ENTRIES", 0)),
        allowed_hosts=allowed_hosts or ("*",),
    )


class _ColorFormatter(logging.Formatter):
    """Level-colored formatter for stdout logs."""

    _C = {
        "DEBUG": "\x1b[36m",  # cyan
        "DETAILED": "\x1b[36m",  # cyan
        "INFO": "\x1b[32m",  # green
        "WARNING": "\x1b[33m",  # yellow
        "ERROR": "\x1b[31m",  # red
        "CRITICAL": "\x1b[35m",  # magenta
        "RESET": "\x1b[0m",
    }

    def __init__(self, fmt: str, *, use_color: bool) -> None:
        super().__init__(fmt)
        self._use_color = bool(use_color)

    def format(self, record: logging.LogRecord) -> str:  # pragma: no cover - formatting
        levelname = record.levelname
        if self._use_color and levelname in self._C:
            record.levelname = f"{self._C[levelname]}{levelname}{self._C['RESET']}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def _configure_logging() -> None:
    # Avoid reconfiguring during module reloads.
    root = logging.getLogger()
    if getattr(root, "_github_mcp_http_configured", False):
        return

    use_color = LOG_STYLE in {"color", "ansi", "colored"}

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(_ColorFormatter(LOG_FORMAT, use_color=use_color))

    logging.basicConfig(
        level=_resolve_log_level(LOG_LEVEL),
        handlers=[console_handler],
        force=True,
    )

    # Reduce noisy framework logs.
    for noisy in ("uvicorn.access", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    setattr(root, "_github_mcp_http_configured", True)


_configure_logging()

BASE_LOGGER = logging.getLogger("github_mcp_http")
GITHUB_LOGGER = logging.getLogger("github_mcp_http.github_client")
TOOLS_LOGGER = logging.getLogger("github_mcp_http.tools")
SESSIONS_LOGGER = logging.getLogger("github_mcp_http.sessions")

__all__ = [
    "BASE_LOGGER",
    "DETAILED_LEVEL",
    "GITHUB_LOGGER",
    "GITHUB_TOKEN_ENV_VARS",
    "SERVER_NAME",
    "SERVER_VERSION",
    "SESSIONS_LOGGER",
    "Settings",
    "TOOLS_LOGGER",
    "TRANSPORT_NAME",
    "load_settings",
]
