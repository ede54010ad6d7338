from __future__ import annotations

import argparse
import sys
from pathlib import Path


def _load_project_version(pyproject_path: Path | None = None) -> str:
    """Best-effort loader for the project version from pyproject.toml.

    This avoids importing the server module (and its Starlette wiring) just to
    answer a simple CLI query like `--version`.
    """
    if pyproject_path is None:
        pyproject_path = Path(__file__).with_name("pyproject.toml")

    try:
        import tomllib  # Python 3.11+
    except ImportError:  # pragma: no cover - Python 3.10
        return "0.0.0"

    try:
        data = tomllib.loads(pyproject_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return "0.0.0"
    except tomllib.TOMLDecodeError:
        return "0.0.0"

    project = data.get("project") or {}
    version = project.get("version")
    if isinstance(version, str) and version.strip():
        return version.strip()
    return "0.0.0"


def _collect_checks() -> list[dict[str, str]]:
    from github_mcp_http.config import load_settings
    from github_mcp_http.exceptions import DuplicateToolError
    from github_mcp_http.mcp_server.registry import build_default_registry

    settings = load_settings()
    checks: list[dict[str, str]] = []

    if settings.has_default_token:
        checks.append({"name": "github_token", "level": "ok", "message": "Default GitHub token is configured"})
    else:
        checks.append(
            {
                "name": "github_token",
                "level": "warning",
                "message": "No default token; clients must send ?token= or X-GitHub-Token",
            }
        )

    if settings.github_api_base.startswith(("https://", "http://")):
        checks.append({"name": "github_api_base", "level": "ok", "message": settings.github_api_base})
    else:
        checks.append(
            {
                "name": "github_api_base",
                "level": "error",
                "message": f"GITHUB_API_BASE is not an http(s) URL: {settings.github_api_base!r}",
            }
        )

    try:
        registry = build_default_registry()
    except DuplicateToolError as exc:
        checks.append({"name": "tool_registry", "level": "error", "message": str(exc)})
    else:
        checks.append({"name": "tool_registry", "level": "ok", "message": f"{len(registry)} tools registered"})

    bound = settings.session_cache_max_entries
    checks.append(
        {
            "name": "session_cache",
            "level": "ok",
            "message": f"max {bound} sessions" if bound else "unbounded",
        }
    )
    return checks


def _run_doctor() -> int:
    """Run configuration checks and print a human-readable summary."""

    checks = _collect_checks()
    ok = sum(1 for c in checks if c.get("level") == "ok")
    warning = sum(1 for c in checks if c.get("level") == "warning")
    error = sum(1 for c in checks if c.get("level") == "error")
    status = "error" if error else ("warning" if warning else "ok")

    print(f"Status: {status}")
    print(f"Checks: ok={ok}, warning={warning}, error={error}")
    for check in checks:
        name = check.get("name", "?")
        level = check.get("level", "?")
        message = check.get("message", "")
        print(f"- [{level}] {name}: {message}")

    return 0 if status != "error" else 1


def _run_serve(host: str | None, port: int | None) -> int:
    import uvicorn

    from github_mcp_http.config import load_settings

    settings = load_settings()
    uvicorn.run(
        "main:app",
        host=host or settings.host,
        port=port or settings.port,
        log_config=None,
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="github-mcp-http",
        description="GitHub MCP HTTP gateway CLI helpers.",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print the gateway version and exit.",
    )

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser(
        "doctor",
        help="Check configuration and the tool registry and print a summary.",
    )
    serve = subparsers.add_parser("serve", help="Run the HTTP server with uvicorn.")
    serve.add_argument("--host", default=None, help="Bind address (default: $HOST or 0.0.0.0).")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: $PORT or 8080).")

    if argv is None:
        argv = sys.argv[1:]

    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        # When used as a library function in tests, return the exit code
        # instead of raising.
        return int(getattr(exc, "code", 1) or 0)

    if args.version and not args.command:
        print(_load_project_version())
        return 0

    if args.command == "doctor":
        return _run_doctor()

    if args.command == "serve":
        return _run_serve(args.host, args.port)

    parser.print_help()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
