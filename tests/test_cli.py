import importlib
import sys

import pytest


@pytest.mark.parametrize("argv", [["--version"], ["-h"], []])
def test_main_basic_cli(argv, capsys):
    cli = importlib.import_module("cli")
    exit_code = cli.main(argv)

    # argparse raises SystemExit for -h; main returns that exit code instead.
    assert exit_code == 0
    out, err = capsys.readouterr()
    assert out.strip() != ""
    assert err == ""


@pytest.mark.skipif(sys.version_info < (3, 11), reason="tomllib requires Python 3.11")
def test_version_reads_pyproject(tmp_path):
    cli = importlib.import_module("cli")
    pyproject = tmp_path / "pyproject.toml"
    pyproject.write_text('[project]\nname = "x"\nversion = "9.8.7"\n', encoding="utf-8")

    assert cli._load_project_version(pyproject) == "9.8.7"
    assert cli._load_project_version(tmp_path / "missing.toml") == "0.0.0"


def test_doctor_warns_without_default_token(capsys):
    cli = importlib.import_module("cli")

    exit_code = cli.main(["doctor"])

    assert exit_code == 0
    out, err = capsys.readouterr()
    assert "Status: warning" in out
    assert "Checks: ok=3, warning=1, error=0" in out
    assert "[warning] github_token" in out
    assert "tools registered" in out
    assert err == ""


def test_doctor_ok_with_token_and_bounded_cache(monkeypatch, capsys):
    monkeypatch.setenv("GITHUB_PERSONAL_ACCESS_TOKEN", "ghp_example")
    monkeypatch.setenv("SESSION_CACHE_MAX_ENTRIES", "64")
    cli = importlib.import_module("cli")

    assert cli.main(["doctor"]) == 0
    out, _ = capsys.readouterr()
    assert "Status: ok" in out
    assert "max 64 sessions" in out
    assert "ghp_example" not in out


def test_doctor_fails_on_bad_api_base(monkeypatch, capsys):
    monkeypatch.setenv("GITHUB_API_BASE", "api.github.com")
    cli = importlib.import_module("cli")

    assert cli.main(["doctor"]) == 1
    out, _ = capsys.readouterr()
    assert "Status: error" in out


def test_serve_runs_uvicorn_with_settings(monkeypatch):
    cli = importlib.import_module("cli")
    uvicorn = importlib.import_module("uvicorn")
    captured = {}

    def fake_run(app, **kwargs):
        captured["app"] = app
        captured.update(kwargs)

    monkeypatch.setattr(uvicorn, "run", fake_run)
    monkeypatch.setenv("PORT", "9001")

    assert cli.main(["serve", "--host", "127.0.0.1"]) == 0
    assert captured["app"] == "main:app"
    assert captured["host"] == "127.0.0.1"
    assert captured["port"] == 9001
