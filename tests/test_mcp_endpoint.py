import json

import pytest
from starlette.testclient import TestClient

from github_mcp_http.analytics import AnalyticsState
from github_mcp_http.config import Settings
from github_mcp_http.credentials import CREDENTIAL_MISSING_MESSAGE
from github_mcp_http.mcp_server.registry import build_default_registry
from github_mcp_http.mcp_server.sessions import Session, SessionCache
from github_mcp_http.mcp_server.transport import StatelessTransport
from main import create_app

MCP_HEADERS = {"Accept": "application/json, text/event-stream"}


def _rpc(method, params=None, request_id=1):
    payload = {"jsonrpc": "2.0", "id": request_id, "method": method}
    if params is not None:
        payload["params"] = params
    return payload


class RecordingFactory:
    def __init__(self, client_cls):
        self.client_cls = client_cls
        self.registry = build_default_registry()
        self.tokens = []

    def __call__(self, token):
        self.tokens.append(token)
        client = self.client_cls(token=token)
        return Session(fingerprint=token, client=client, transport=StatelessTransport(self.registry, client))


@pytest.fixture
def make_app(fake_client_factory):
    def _make(default_token="", *, factory=None):
        factory = factory or RecordingFactory(fake_client_factory)
        analytics = AnalyticsState()
        sessions = SessionCache(factory)
        app = create_app(Settings(default_token=default_token), analytics=analytics, sessions=sessions)
        return TestClient(app, headers=MCP_HEADERS), factory, analytics, sessions

    return _make


def test_missing_credential_returns_401_envelope(make_app):
    client, factory, analytics, _ = make_app()

    resp = client.post("/mcp", json=_rpc("tools/list"))

    assert resp.status_code == 401
    assert resp.json() == {
        "jsonrpc": "2.0",
        "error": {"code": -32001, "message": CREDENTIAL_MISSING_MESSAGE},
        "id": None,
    }
    assert factory.tokens == []
    assert analytics.requests_by_endpoint == {"/mcp": 1}


@pytest.mark.parametrize(
    "query, headers, default, expected",
    [
        ({"token": "q"}, {"X-GitHub-Token": "h"}, "d", "q"),
        ({}, {"X-GitHub-Token": "h"}, "d", "h"),
        ({}, {"x-github-token": "h"}, "", "h"),
        ({}, {}, "d", "d"),
    ],
)
def test_credential_precedence(make_app, query, headers, default, expected):
    client, factory, _, _ = make_app(default)

    resp = client.post("/mcp", params=query, headers=headers, json=_rpc("ping"))

    assert resp.status_code == 200
    assert factory.tokens == [expected]


def test_same_token_reuses_session(make_app):
    client, factory, _, sessions = make_app("shared")

    for _ in range(3):
        assert client.post("/mcp", json=_rpc("ping")).status_code == 200

    assert factory.tokens == ["shared"]
    assert len(sessions) == 1


def test_distinct_tokens_get_distinct_sessions(make_app):
    client, factory, _, sessions = make_app()

    client.post("/mcp", params={"token": "a"}, json=_rpc("ping"))
    client.post("/mcp", params={"token": "b"}, json=_rpc("ping"))

    assert factory.tokens == ["a", "b"]
    assert sessions.get("a").client is not sessions.get("b").client


def test_tools_list_includes_hello(make_app):
    client, _, _, _ = make_app("tok")

    resp = client.post("/mcp", json=_rpc("tools/list"))

    assert resp.status_code == 200
    tools = {t["name"]: t for t in resp.json()["result"]["tools"]}
    assert {"name", "description", "inputSchema"} <= set(tools["hello"])


def test_hello_call_reports_token_and_is_counted(make_app):
    client, _, analytics, _ = make_app()

    resp = client.post(
        "/mcp",
        params={"token": "tok"},
        headers={"X-Forwarded-For": "198.51.100.4"},
        json=_rpc("tools/call", {"name": "hello", "arguments": {}}),
    )

    assert resp.status_code == 200
    text = resp.json()["result"]["content"][0]["text"]
    assert json.loads(text)["hasToken"] is True
    assert analytics.tool_calls == {"hello": 1}
    assert analytics.recent_tool_calls[0]["clientIp"] == "198.51.100.4"


def test_unknown_tool_is_error_result_and_still_counted(make_app):
    client, _, analytics, _ = make_app("tok")

    resp = client.post("/mcp", json=_rpc("tools/call", {"name": "nonexistent"}, request_id=9))

    assert resp.status_code == 200
    body = resp.json()
    assert body["id"] == 9
    assert body["result"]["isError"] is True
    error = json.loads(body["result"]["content"][0]["text"])["error"]
    assert error["category"] == "unknown_tool"
    assert analytics.tool_calls == {"nonexistent": 1}


def test_null_optional_arguments_reach_the_tool(make_app, fake_client_factory):
    clients = []

    def factory(token):
        client = fake_client_factory(responses=[[]], token=token)
        clients.append(client)
        return Session(fingerprint=token, client=client, transport=StatelessTransport(build_default_registry(), client))

    client, _, _, _ = make_app("tok", factory=factory)

    resp = client.post(
        "/mcp",
        json=_rpc(
            "tools/call",
            {"name": "list_issues", "arguments": {"owner": "a", "repo": "b", "labels": None, "sort": None}},
        ),
    )

    assert resp.status_code == 200
    assert resp.json()["result"]["isError"] is False
    assert clients[0].calls[0]["path"] == "/repos/a/b/issues"


def test_upstream_failure_is_counted_and_reported_in_result(make_app):
    client, _, analytics, _ = make_app("tok")

    resp = client.post(
        "/mcp",
        json=_rpc("tools/call", {"name": "get_repository", "arguments": {"owner": "o", "repo": "r"}}),
    )

    # FakeGitHubClient returns None, so the handler fails inside the tool.
    assert resp.status_code == 200
    assert resp.json()["result"]["isError"] is True
    assert analytics.total_tool_calls == 1


def test_notification_returns_202_without_body(make_app):
    client, _, _, _ = make_app("tok")

    resp = client.post("/mcp", json={"jsonrpc": "2.0", "method": "notifications/initialized"})

    assert resp.status_code == 202
    assert resp.content == b""


def test_invalid_json_returns_parse_error(make_app):
    client, _, _, _ = make_app("tok")

    resp = client.post("/mcp", content=b"{not json", headers={"Content-Type": "application/json"})

    assert resp.status_code == 400
    body = resp.json()
    assert body["error"]["code"] == -32700
    assert body["id"] is None


def test_internal_error_returns_500_envelope(make_app):
    def broken_factory(token):
        raise RuntimeError("boom")

    client, _, _, _ = make_app("tok", factory=broken_factory)

    resp = client.post("/mcp", json=_rpc("ping"))

    assert resp.status_code == 500
    assert resp.json() == {
        "jsonrpc": "2.0",
        "error": {"code": -32603, "message": "Internal server error"},
        "id": None,
    }


def test_transport_failure_returns_500_envelope(make_app, fake_client_factory):
    class BrokenTransport:
        async def handle_request(self, scope, receive, send):
            raise RuntimeError("stream closed")

    def factory(token):
        return Session(fingerprint=token, client=fake_client_factory(token=token), transport=BrokenTransport())

    client, _, _, _ = make_app("tok", factory=factory)

    resp = client.post("/mcp", json=_rpc("ping"))

    assert resp.status_code == 500
    assert resp.json()["error"]["code"] == -32603


def test_get_is_method_not_allowed(make_app):
    client, factory, _, _ = make_app("tok")

    resp = client.get("/mcp")

    assert resp.status_code == 405
    assert resp.json()["jsonrpc"] == "2.0"
    assert factory.tokens == []


def test_get_without_credential_is_still_401(make_app):
    client, _, _, _ = make_app()
    assert client.get("/mcp").status_code == 401


def test_delete_discards_session(make_app):
    client, _, _, sessions = make_app("tok")
    client.post("/mcp", json=_rpc("ping"))
    assert "tok" in sessions

    resp = client.delete("/mcp")

    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "closed": True}
    assert "tok" not in sessions
    assert client.delete("/mcp").json() == {"ok": True, "closed": False}


def test_responses_are_not_cacheable_and_allow_cors(make_app):
    client, _, _, _ = make_app("tok")

    resp = client.post("/mcp", json=_rpc("ping"), headers={"Origin": "https://example.com"})

    assert resp.headers["cache-control"] == "no-store"
    assert resp.headers["access-control-allow-origin"] == "*"
    assert "mcp-session-id" in resp.headers["access-control-expose-headers"].lower()


def test_cors_preflight_allows_token_header(make_app):
    client, _, _, _ = make_app()

    resp = client.options(
        "/mcp",
        headers={
            "Origin": "https://example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "X-GitHub-Token",
        },
    )

    assert resp.status_code == 200
    assert "x-github-token" in resp.headers["access-control-allow-headers"].lower()
