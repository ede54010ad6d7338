"""Token-bound async GitHub REST client with lightweight metrics hooks."""

from __future__ import annotations

import asyncio
import time
import weakref
from typing import Any, Callable, Dict, Optional, Set

import httpx

from .config import GITHUB_LOGGER, Settings
from .exceptions import GitHubAPIError, GitHubAuthError, GitHubRateLimitError

# observer(status_code=..., error=..., rate_limited=..., timed_out=...)
RequestObserver = Callable[..., None]


def _active_event_loop() -> asyncio.AbstractEventLoop:
    """Return the active asyncio event loop, tolerant of missing running loop."""

    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.get_event_loop()


def _parse_rate_limit_delay_seconds(resp: httpx.Response) -> Optional[float]:
    retry_after = resp.headers.get("Retry-After")
    if retry_after:
        try:
            return max(0.0, float(retry_after))
        except ValueError:
            return None

    reset_header = resp.headers.get("X-RateLimit-Reset")
    if reset_header:
        try:
            reset_epoch = float(reset_header)
        except ValueError:
            return None
        return max(0.0, reset_epoch - time.time())
    return None


def _is_rate_limit_response(
    *, resp: httpx.Response, message_lower: str, error_flag: bool
) -> bool:
    if not error_flag:
        return False

    if resp.status_code == 429:
        return True
    if resp.headers.get("X-RateLimit-Remaining") == "0":
        return True
    if "rate limit" in message_lower:
        return True
    if "abuse detection" in message_lower:
        return True
    return False


class GitHubClient:
    """GitHub REST client bound to exactly one token.

    Construction performs no I/O; the token is only checked by GitHub on the
    first real request. The underlying ``httpx.AsyncClient`` is created lazily
    and rebuilt when the running event loop changes, because pooled
    connections are bound to the loop that opened them.
    """

    def __init__(
        self,
        token: str,
        *,
        settings: Optional[Settings] = None,
        observer: Optional[RequestObserver] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._token = token
        self._settings = settings or Settings()
        self._observer = observer
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._client_loop: Optional[asyncio.AbstractEventLoop] = None
        # Scheduled closes of replaced clients, held until done.
        self._pending_closes: Set["asyncio.Task[None]"] = set()
        self._semaphores: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, asyncio.Semaphore]" = (
            weakref.WeakKeyDictionary()
        )

    @property
    def has_token(self) -> bool:
        return bool(self._token)

    @property
    def base_url(self) -> str:
        return self._settings.github_api_base

    def __repr__(self) -> str:
        # Never include the token.
        return f"GitHubClient(base_url={self.base_url!r}, has_token={self.has_token})"

    # ------------------------------------------------------------------
    # Client lifecycle
    # ------------------------------------------------------------------

    def _build_client(self) -> httpx.AsyncClient:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        kwargs: Dict[str, Any] = {
            "base_url": self._settings.github_api_base,
            "timeout": self._settings.http_timeout,
            "limits": httpx.Limits(
                max_connections=self._settings.max_connections,
                max_keepalive_connections=self._settings.max_keepalive,
            ),
            "headers": headers,
        }
        if self._transport is not None:
            kwargs["transport"] = self._transport
        return httpx.AsyncClient(**kwargs)

    def _http_client(self) -> httpx.AsyncClient:
        loop = _active_event_loop()
        client = self._client

        needs_refresh = client is None or client.is_closed
        if not needs_refresh and self._client_loop is not None and self._client_loop is not loop:
            needs_refresh = True

        if needs_refresh:
            if client is not None and not client.is_closed:
                old_loop = self._client_loop
                if old_loop is not None and not old_loop.is_closed():
                    task = old_loop.create_task(client.aclose())
                    self._pending_closes.add(task)
                    task.add_done_callback(self._pending_closes.discard)
            self._client = self._build_client()
            self._client_loop = loop

        return self._client  # type: ignore[return-value]

    def _concurrency_semaphore(self) -> asyncio.Semaphore:
        """Per-event-loop semaphore capping concurrent outbound requests."""

        loop = _active_event_loop()
        semaphore = self._semaphores.get(loop)
        if semaphore is None:
            semaphore = asyncio.Semaphore(self._settings.max_concurrency)
            self._semaphores[loop] = semaphore
        return semaphore

    async def aclose(self) -> None:
        client, self._client, self._client_loop = self._client, None, None
        if client is not None and not client.is_closed:
            await client.aclose()

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def _observe(self, **fields: Any) -> None:
        if self._observer is None:
            return
        try:
            self._observer(**fields)
        except Exception:  # noqa: BLE001
            GITHUB_LOGGER.exception("GitHub request observer failed")

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
        expect_json: bool = True,
    ) -> Any:
        """Perform a GitHub API request and return the decoded body.

        Returns parsed JSON (``None`` for empty bodies) or raw text when
        ``expect_json`` is False. Raises GitHubAuthError, GitHubRateLimitError
        or GitHubAPIError on failure; timeouts propagate as
        ``httpx.TimeoutException``.
        """

        if params:
            params = {k: v for k, v in params.items() if v is not None}

        attempt = 0
        max_attempts = self._settings.rate_limit_retry_max_attempts

        while True:
            start = time.time()
            client = self._http_client()
            try:
                async with self._concurrency_semaphore():
                    resp = await client.request(
                        method, path, params=params, json=json_body, headers=headers
                    )
            except httpx.TimeoutException:
                self._observe(status_code=None, error=True, timed_out=True)
                GITHUB_LOGGER.warning("GitHub %s %s timed out", method, path)
                raise
            except httpx.HTTPError as exc:
                self._observe(status_code=None, error=True)
                raise GitHubAPIError(f"GitHub request failed: {exc}") from exc

            duration_ms = int((time.time() - start) * 1000)
            error_flag = resp.status_code >= 400

            body: Any = None
            try:
                body = resp.json() if resp.content else None
            except ValueError:
                body = None

            message = body.get("message", "") if isinstance(body, dict) else ""
            message_lower = message.lower() if isinstance(message, str) else ""
            rate_limited = _is_rate_limit_response(
                resp=resp, message_lower=message_lower, error_flag=error_flag
            )

            self._observe(status_code=resp.status_code, error=error_flag, rate_limited=rate_limited)
            GITHUB_LOGGER.debug(
                "GitHub %s %s -> %s (%sms)", method, path, resp.status_code, duration_ms
            )

            if rate_limited:
                reset_hint = resp.headers.get("X-RateLimit-Reset") or resp.headers.get("Retry-After")
                retry_delay = _parse_rate_limit_delay_seconds(resp)
                if retry_delay is None:
                    retry_delay = self._settings.rate_limit_retry_base_delay * (2**attempt)

                if attempt < max_attempts and retry_delay <= self._settings.rate_limit_retry_max_wait:
                    await asyncio.sleep(retry_delay)
                    attempt += 1
                    continue

                raise GitHubRateLimitError(
                    f"GitHub rate limit exceeded; retry after {reset_hint}"
                    if reset_hint
                    else "GitHub rate limit exceeded",
                    status_code=resp.status_code,
                    response_payload=body,
                )

            if resp.status_code in (401, 403):
                raise GitHubAuthError(
                    f"GitHub authentication failed: {resp.status_code} {message or 'Authentication failed'}"
                )

            if error_flag:
                raise GitHubAPIError(
                    f"GitHub API error {resp.status_code}: {message or resp.text[:200]}",
                    status_code=resp.status_code,
                    response_payload=body,
                )

            if not expect_json:
                return resp.text
            return body


def build_github_client(
    token: str,
    settings: Optional[Settings] = None,
    *,
    observer: Optional[RequestObserver] = None,
) -> GitHubClient:
    """Construct a client bound to ``token``. Pure construction, no network."""

    return GitHubClient(token, settings=settings, observer=observer)


__all__ = [
    "GitHubClient",
    "build_github_client",
]
