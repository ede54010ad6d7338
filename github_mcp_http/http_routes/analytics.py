"""Read-only analytics endpoints.

``/analytics`` and ``/analytics/tools`` return JSON snapshots of the injected
``AnalyticsState``; ``/analytics/dashboard`` is a static page that polls
``/analytics`` and renders plain tables.
"""

from __future__ import annotations

from typing import Any

from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse

from github_mcp_http.analytics import AnalyticsState
from github_mcp_http.config import SERVER_NAME

DASHBOARD_REFRESH_SECONDS = 30

_DASHBOARD_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>__SERVER_NAME__ - Analytics</title>
<style>
  body { font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, sans-serif;
         background: #0d1117; color: #c9d1d9; margin: 0; padding: 20px; }
  h1 { color: #58a6ff; }
  h2 { color: #8b949e; font-size: 1rem; margin-top: 24px; }
  .stats { display: flex; gap: 16px; flex-wrap: wrap; }
  .stat { background: #161b22; border: 1px solid #30363d; border-radius: 8px; padding: 16px; min-width: 160px; }
  .stat .value { font-size: 1.8rem; color: #58a6ff; }
  table { border-collapse: collapse; width: 100%; max-width: 900px; }
  th, td { text-align: left; padding: 6px 10px; border-bottom: 1px solid #30363d; }
  th { color: #8b949e; }
  .muted { color: #8b949e; font-size: 0.85rem; }
</style>
</head>
<body>
<h1>__SERVER_NAME__</h1>
<p class="muted">Uptime <span id="uptime">-</span>; refreshes every __REFRESH__s.</p>
<div class="stats">
  <div class="stat"><div class="muted">Total requests</div><div class="value" id="totalRequests">0</div></div>
  <div class="stat"><div class="muted">Tool calls</div><div class="value" id="totalToolCalls">0</div></div>
  <div class="stat"><div class="muted">Unique clients</div><div class="value" id="uniqueClients">0</div></div>
</div>
<h2>Tools</h2><table id="byTool"></table>
<h2>Endpoints</h2><table id="byEndpoint"></table>
<h2>Clients</h2><table id="byUserAgent"></table>
<h2>Hourly requests</h2><table id="hourlyRequests"></table>
<h2>Recent tool calls</h2><table id="recentToolCalls"></table>
<script>
function esc(value) {
  return String(value).replace(/[&<>"']/g, function (c) {
    return {"&": "&amp;", "<": "&lt;", ">": "&gt;", '"': "&quot;", "'": "&#39;"}[c];
  });
}
function fillCounts(id, counts, label) {
  var rows = Object.keys(counts || {}).map(function (k) {
    return "<tr><td>" + esc(k) + "</td><td>" + esc(counts[k]) + "</td></tr>";
  });
  document.getElementById(id).innerHTML =
    "<tr><th>" + label + "</th><th>Count</th></tr>" + (rows.join("") || "<tr><td colspan=2>No data</td></tr>");
}
// Served behind a path prefix (e.g. /github/), fetch relative to it.
function basePath() {
  var path = window.location.pathname;
  var at = path.lastIndexOf("/analytics/dashboard");
  return at >= 0 ? path.slice(0, at) : "";
}
function refresh() {
  fetch(basePath() + "/analytics").then(function (r) { return r.json(); }).then(function (data) {
    document.getElementById("uptime").textContent = data.uptime;
    document.getElementById("totalRequests").textContent = data.summary.totalRequests;
    document.getElementById("totalToolCalls").textContent = data.summary.totalToolCalls;
    document.getElementById("uniqueClients").textContent = data.summary.uniqueClients;
    fillCounts("byTool", data.breakdown.byTool, "Tool");
    fillCounts("byEndpoint", data.breakdown.byEndpoint, "Endpoint");
    fillCounts("byUserAgent", data.clients.byUserAgent, "User agent");
    fillCounts("hourlyRequests", data.hourlyRequests, "Hour (UTC)");
    var recent = (data.recentToolCalls || []).map(function (c) {
      return "<tr><td>" + esc(c.tool) + "</td><td>" + esc(c.timestamp) + "</td><td>" + esc(c.clientIp) + "</td></tr>";
    });
    document.getElementById("recentToolCalls").innerHTML =
      "<tr><th>Tool</th><th>Time</th><th>Client</th></tr>" + (recent.join("") || "<tr><td colspan=3>No calls yet</td></tr>");
  }).catch(function (err) { console.error("analytics refresh failed", err); });
}
refresh();
setInterval(refresh, __REFRESH__ * 1000);
</script>
</body>
</html>
"""


def render_dashboard(server_name: str = SERVER_NAME) -> str:
    return _DASHBOARD_HTML.replace("__SERVER_NAME__", server_name).replace(
        "__REFRESH__", str(DASHBOARD_REFRESH_SECONDS)
    )


def build_analytics_endpoint(analytics: AnalyticsState) -> Any:
    async def _endpoint(request: Request) -> JSONResponse:
        analytics.track(request, "/analytics")
        return JSONResponse(analytics.summary(SERVER_NAME))

    return _endpoint


def build_tool_stats_endpoint(analytics: AnalyticsState) -> Any:
    async def _endpoint(request: Request) -> JSONResponse:
        analytics.track(request, "/analytics/tools")
        return JSONResponse(analytics.tool_stats())

    return _endpoint


def build_dashboard_endpoint(analytics: AnalyticsState) -> Any:
    page = render_dashboard()

    async def _endpoint(request: Request) -> HTMLResponse:
        analytics.track(request, "/analytics/dashboard")
        return HTMLResponse(page)

    return _endpoint


def register_analytics_routes(app: Any, analytics: AnalyticsState) -> None:
    app.add_route("/analytics", build_analytics_endpoint(analytics), methods=["GET"])
    app.add_route("/analytics/tools", build_tool_stats_endpoint(analytics), methods=["GET"])
    app.add_route("/analytics/dashboard", build_dashboard_endpoint(analytics), methods=["GET"])


__all__ = ["register_analytics_routes", "render_dashboard"]
