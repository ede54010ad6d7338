import asyncio
import inspect

import pytest

from github_mcp_http.config import GITHUB_TOKEN_ENV_VARS, Settings


def pytest_configure(config):
    config.addinivalue_line("markers", "asyncio: mark test to run in event loop")


def pytest_pyfunc_call(pyfuncitem):
    if "asyncio" not in pyfuncitem.keywords:
        return None

    test_func = pyfuncitem.obj
    if not inspect.iscoroutinefunction(test_func):
        return None

    # Autouse fixtures are in funcargs but not in the test signature.
    wanted = inspect.signature(test_func).parameters
    funcargs = {name: value for name, value in pyfuncitem.funcargs.items() if name in wanted}

    loop = asyncio.new_event_loop()
    try:
        asyncio.set_event_loop(loop)
        loop.run_until_complete(test_func(**funcargs))
    finally:
        loop.close()
        asyncio.set_event_loop(None)

    return True


class FakeGitHubClient:
    """Stands in for GitHubClient: records calls and replays canned bodies."""

    def __init__(self, responses=None, *, token="test-token", exc=None):
        self._responses = list(responses or [])
        self._exc = exc
        self.token = token
        self.calls = []
        self.closed = False

    @property
    def has_token(self):
        return bool(self.token)

    async def request(self, method, path, *, params=None, json_body=None, headers=None, expect_json=True):
        self.calls.append({"method": method, "path": path, "params": params, "json_body": json_body})
        if self._exc is not None:
            raise self._exc
        if self._responses:
            return self._responses.pop(0)
        return None

    async def aclose(self):
        self.closed = True


@pytest.fixture(autouse=True)
def _no_ambient_github_token(monkeypatch):
    for name in GITHUB_TOKEN_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings():
    return Settings(rate_limit_retry_max_attempts=0)


@pytest.fixture
def fake_client_factory():
    return FakeGitHubClient
