"""In-process usage analytics for the gateway.

One ``AnalyticsState`` instance is created per app and injected into the
routes that update or read it. Every mutation and every snapshot runs under a
single lock, so readers never see a half-applied update. No lock is held
across an ``await``.
"""

from __future__ import annotations

import copy
import threading
import time
from collections import deque
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional

RECENT_TOOL_CALLS_CAPACITY = 100
SUMMARY_RECENT_CALLS = 20
SUMMARY_TOP_CLIENTS = 20
SUMMARY_HOURS = 24
USER_AGENT_MAX_CHARS = 50


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(dt: datetime) -> str:
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def hour_bucket(dt: datetime) -> str:
    """``YYYY-MM-DDTHH:00`` in UTC."""

    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:00")


def normalize_user_agent(user_agent: Optional[str]) -> str:
    """Collapse a User-Agent into its product family (``curl/8.1`` -> ``curl``)."""

    if not user_agent:
        return "unknown"
    head = user_agent.split("/", 1)[0] if "/" in user_agent else ""
    return head or user_agent[:USER_AGENT_MAX_CHARS]


def client_ip(request: Any) -> str:
    """First X-Forwarded-For hop, else the socket peer, else ``unknown``."""

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    client = getattr(request, "client", None)
    host = getattr(client, "host", None) if client is not None else None
    return host or "unknown"


def _increment(bucket: Dict[str, int], key: str) -> None:
    bucket[key] = bucket.get(key, 0) + 1


def _sorted_by_count(bucket: Dict[str, int], limit: Optional[int] = None) -> Dict[str, int]:
    items = sorted(bucket.items(), key=lambda kv: kv[1], reverse=True)
    if limit is not None:
        items = items[:limit]
    return dict(items)


def format_uptime(seconds: float) -> str:
    seconds = max(0, int(seconds))
    days, rem = divmod(seconds, 86400)
    hours, rem = divmod(rem, 3600)
    minutes = rem // 60
    if days > 0:
        return f"{days}d {hours}h {minutes}m"
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def _new_upstream_state() -> Dict[str, int]:
    return {
        "requests_total": 0,
        "errors_total": 0,
        "rate_limit_events_total": 0,
        "timeouts_total": 0,
    }


class AnalyticsState:
    """Process-wide counters plus a bounded list of recent tool calls."""

    def __init__(self, *, clock=_utc_now, monotonic=time.time) -> None:
        self._lock = threading.Lock()
        self._clock = clock
        self._monotonic = monotonic
        self._started_at = clock()
        self._started_monotonic = monotonic()

        self.total_requests = 0
        self.total_tool_calls = 0
        self.requests_by_method: Dict[str, int] = {}
        self.requests_by_endpoint: Dict[str, int] = {}
        self.tool_calls: Dict[str, int] = {}
        self.clients_by_ip: Dict[str, int] = {}
        self.clients_by_user_agent: Dict[str, int] = {}
        self.hourly_requests: Dict[str, int] = {}
        # appendleft keeps most-recent-first; maxlen drops the oldest.
        self.recent_tool_calls: Deque[Dict[str, str]] = deque(maxlen=RECENT_TOOL_CALLS_CAPACITY)
        self.upstream: Dict[str, int] = _new_upstream_state()

    @property
    def server_start_time(self) -> str:
        return _iso(self._started_at)

    def uptime(self) -> str:
        return format_uptime(self._monotonic() - self._started_monotonic)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def record_request(
        self,
        method: str,
        endpoint: str,
        client_ip: str,
        user_agent: Optional[str],
    ) -> None:
        bucket = hour_bucket(self._clock())
        family = normalize_user_agent(user_agent)
        with self._lock:
            self.total_requests += 1
            _increment(self.requests_by_method, method.upper())
            _increment(self.requests_by_endpoint, endpoint)
            _increment(self.clients_by_ip, client_ip)
            _increment(self.clients_by_user_agent, family)
            _increment(self.hourly_requests, bucket)

    def track(self, request: Any, endpoint: str) -> None:
        """Record a Starlette request against ``endpoint``."""

        self.record_request(
            request.method,
            endpoint,
            client_ip(request),
            request.headers.get("user-agent"),
        )

    def record_tool_call(self, tool_name: str, client_ip: str) -> None:
        entry = {"tool": tool_name, "timestamp": _iso(self._clock()), "clientIp": client_ip}
        with self._lock:
            self.total_tool_calls += 1
            _increment(self.tool_calls, tool_name)
            self.recent_tool_calls.appendleft(entry)

    def record_upstream_request(
        self,
        *,
        status_code: Optional[int],
        error: bool,
        rate_limited: bool = False,
        timed_out: bool = False,
    ) -> None:
        with self._lock:
            self.upstream["requests_total"] += 1
            if error:
                self.upstream["errors_total"] += 1
            if rate_limited:
                self.upstream["rate_limit_events_total"] += 1
            if timed_out:
                self.upstream["timeouts_total"] += 1

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _copy_state(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "total_requests": self.total_requests,
                "total_tool_calls": self.total_tool_calls,
                "requests_by_method": dict(self.requests_by_method),
                "requests_by_endpoint": dict(self.requests_by_endpoint),
                "tool_calls": dict(self.tool_calls),
                "clients_by_ip": dict(self.clients_by_ip),
                "clients_by_user_agent": dict(self.clients_by_user_agent),
                "hourly_requests": dict(self.hourly_requests),
                "recent_tool_calls": copy.deepcopy(list(self.recent_tool_calls)),
                "upstream": dict(self.upstream),
            }

    def summary(self, server_name: str) -> Dict[str, Any]:
        """Body of ``GET /analytics``."""

        state = self._copy_state()
        hours = sorted(state["hourly_requests"].items(), key=lambda kv: kv[0], reverse=True)
        last_hours = dict(reversed(hours[:SUMMARY_HOURS]))

        return {
            "server": server_name,
            "uptime": self.uptime(),
            "serverStartTime": self.server_start_time,
            "summary": {
                "totalRequests": state["total_requests"],
                "totalToolCalls": state["total_tool_calls"],
                "uniqueClients": len(state["clients_by_ip"]),
            },
            "breakdown": {
                "byMethod": state["requests_by_method"],
                "byEndpoint": state["requests_by_endpoint"],
                "byTool": _sorted_by_count(state["tool_calls"]),
            },
            "clients": {
                "byIp": _sorted_by_count(state["clients_by_ip"], SUMMARY_TOP_CLIENTS),
                "byUserAgent": state["clients_by_user_agent"],
            },
            "hourlyRequests": last_hours,
            "recentToolCalls": state["recent_tool_calls"][:SUMMARY_RECENT_CALLS],
            "upstream": state["upstream"],
        }

    def tool_stats(self) -> Dict[str, Any]:
        """Body of ``GET /analytics/tools``."""

        state = self._copy_state()
        total = state["total_tool_calls"]
        tools: List[Dict[str, Any]] = []
        for tool, count in _sorted_by_count(state["tool_calls"]).items():
            percentage = f"{(count / total) * 100:.1f}%" if total > 0 else "0%"
            tools.append({"tool": tool, "count": count, "percentage": percentage})

        return {
            "totalToolCalls": total,
            "tools": tools,
            "recentCalls": state["recent_tool_calls"],
        }


__all__ = [
    "AnalyticsState",
    "RECENT_TOOL_CALLS_CAPACITY",
    "client_ip",
    "format_uptime",
    "hour_bucket",
    "normalize_user_agent",
]
