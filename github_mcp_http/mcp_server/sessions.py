"""Credential-keyed cache of live sessions.

A Session pairs one token-bound GitHub client with one stateless transport.
Requests that present the same token reuse the same Session. Construction
does no I/O, so the cache lock is only held for the dictionary work and
never across an upstream call.
"""

from __future__ import annotations

import asyncio
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from github_mcp_http.config import SESSIONS_LOGGER, Settings
from github_mcp_http.credentials import token_fingerprint
from github_mcp_http.http_clients import RequestObserver, build_github_client
from github_mcp_http.mcp_server.registry import ToolRegistry
from github_mcp_http.mcp_server.transport import StatelessTransport


@dataclass(eq=False)
class Session:
    fingerprint: str
    client: Any
    transport: StatelessTransport
    created_at: float = field(default_factory=time.time)


SessionFactory = Callable[[str], Session]


def make_session_factory(
    registry: ToolRegistry,
    settings: Settings,
    *,
    observer: Optional[RequestObserver] = None,
) -> SessionFactory:
    """Return a factory that binds a fresh client and transport to a token."""

    def _factory(token: str) -> Session:
        client = build_github_client(token, settings, observer=observer)
        transport = StatelessTransport(registry, client)
        return Session(fingerprint=token_fingerprint(token), client=client, transport=transport)

    return _factory


async def _close_client(client: Any) -> None:
    closer = getattr(client, "aclose", None)
    if closer is None:
        return
    try:
        await closer()
    except Exception:  # noqa: BLE001
        SESSIONS_LOGGER.exception("Failed to close evicted session client")


class SessionCache:
    """Thread-safe token -> Session map with optional LRU bound.

    ``max_entries == 0`` keeps every session until process exit.
    """

    def __init__(self, factory: SessionFactory, *, max_entries: int = 0) -> None:
        self._factory = factory
        self._max_entries = max(0, int(max_entries))
        self._lock = threading.Lock()
        self._sessions: "OrderedDict[str, Session]" = OrderedDict()
        self._pending_closes: "set[asyncio.Task[None]]" = set()

    def _schedule_close(self, client: Any) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop (e.g. called from a worker thread): let GC reclaim the pool.
            return
        task = loop.create_task(_close_client(client))
        self._pending_closes.add(task)
        task.add_done_callback(self._pending_closes.discard)

    def get_or_create(self, token: str) -> Session:
        evicted: list[Session] = []
        with self._lock:
            session = self._sessions.get(token)
            if session is not None:
                self._sessions.move_to_end(token)
                return session

            session = self._factory(token)
            self._sessions[token] = session
            if self._max_entries:
                while len(self._sessions) > self._max_entries:
                    _, old = self._sessions.popitem(last=False)
                    evicted.append(old)

        SESSIONS_LOGGER.info(
            "Created session %s (%d active)", session.fingerprint, len(self._sessions)
        )
        for old in evicted:
            SESSIONS_LOGGER.info("Evicted session %s", old.fingerprint)
            self._schedule_close(old.client)
        return session

    def get(self, token: str) -> Optional[Session]:
        with self._lock:
            return self._sessions.get(token)

    def discard(self, token: str) -> bool:
        with self._lock:
            session = self._sessions.pop(token, None)
        if session is None:
            return False
        SESSIONS_LOGGER.info("Closed session %s", session.fingerprint)
        self._schedule_close(session.client)
        return True

    async def aclose(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            await _close_client(session.client)
        pending = list(self._pending_closes)
        if pending:
            await asyncio.gather(*pending)

    def __contains__(self, token: object) -> bool:
        with self._lock:
            return token in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


__all__ = [
    "Session",
    "SessionCache",
    "SessionFactory",
    "make_session_factory",
]
