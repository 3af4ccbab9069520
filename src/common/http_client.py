"""Shared async HTTP client used by the registry adapters.

Encapsulates timeouts, retries, bounded concurrency and redirect probing so
registry modules only deal with decoded payloads. Non-OK answers surface as
HttpError carrying the failing URL.
"""
from __future__ import annotations

import asyncio
import json
import logging
import urllib.parse
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import aiohttp

from constants import Constants
from common.errors import HttpError, SchemaError
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)

_REDIRECT_STATUSES = (301, 302, 303, 307, 308)
_RETRY_STATUSES = (429, 500, 502, 503, 504)


@dataclass
class HttpResponse:
    """Fully read response; header names are lower-cased."""
    status: int
    reason: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def ok(self) -> bool:
        """True for 2xx statuses."""
        return 200 <= self.status < 300


class RegistryClient:
    """Async HTTP client for registries and remote module hosts."""

    def __init__(
        self,
        timeout: Optional[float] = None,
        max_concurrency: Optional[int] = None,
        user_agent: Optional[str] = None,
    ):
        """Initialize the client.

        Args:
            timeout: Total request timeout in seconds.
            max_concurrency: Maximum number of in-flight requests.
            user_agent: User-Agent header sent with every request.
        """
        self._timeout = aiohttp.ClientTimeout(total=timeout or Constants.REQUEST_TIMEOUT)
        self._semaphore = asyncio.Semaphore(max_concurrency or Constants.HTTP_MAX_CONCURRENCY)
        self._headers = {"User-Agent": user_agent or Constants.USER_AGENT}
        self._session: Optional[aiohttp.ClientSession] = None

    async def start(self) -> None:
        """Start the HTTP session."""
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)

    async def stop(self) -> None:
        """Stop the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "RegistryClient":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()

    async def get_json(self, url: str, *, headers: Optional[Dict[str, str]] = None) -> Any:
        """GET a JSON document.

        Raises:
            HttpError: On a non-2xx answer or a transport failure.
            SchemaError: When the body is not valid JSON.
        """
        response = await self._request("GET", url, headers=headers)
        if not response.ok:
            raise HttpError(url, response.status, response.reason)
        try:
            return json.loads(response.body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise SchemaError(safe_url(url), f"response is not JSON ({exc})") from exc

    async def get_bytes(self, url: str, *, headers: Optional[Dict[str, str]] = None) -> bytes:
        """GET a raw body, raising HttpError on a non-2xx answer."""
        response = await self._request("GET", url, headers=headers)
        if not response.ok:
            raise HttpError(url, response.status, response.reason)
        return response.body

    async def resolve_redirect(self, url: str) -> Optional[str]:
        """Follow HEAD redirects from url.

        Returns:
            The final URL when the host redirected somewhere else, otherwise
            None. The status of the final answer is not inspected.
        """
        current = url
        for _ in range(Constants.HTTP_MAX_REDIRECTS + 1):
            response = await self._request("HEAD", current, allow_redirects=False)
            if response.status not in _REDIRECT_STATUSES:
                break
            location = response.headers.get("location")
            if not location:
                break
            current = urllib.parse.urljoin(current, location)
        else:
            logger.warning("Too many redirects from %s", safe_url(url))
        return current if current != url else None

    async def _request(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        allow_redirects: bool = True,
    ) -> HttpResponse:
        """Perform a request with retries on transport errors and transient statuses."""
        if self._session is None:
            await self.start()
        assert self._session is not None
        request_headers = {**self._headers, **(headers or {})}
        safe_target = safe_url(url)
        attempts = max(1, Constants.HTTP_RETRY_MAX)
        last_exception: Optional[BaseException] = None
        last_response: Optional[HttpResponse] = None

        for attempt in range(attempts):
            with Timer() as t:
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request",
                        extra=extra_context(
                            event="http_request",
                            component="http_client",
                            action=method,
                            target=safe_target,
                            attempt=attempt + 1,
                        ),
                    )
                try:
                    async with self._semaphore:
                        async with self._session.request(
                            method,
                            url,
                            headers=request_headers,
                            allow_redirects=allow_redirects,
                        ) as res:
                            body = await res.read()
                            last_response = HttpResponse(
                                status=res.status,
                                reason=res.reason or "",
                                url=str(res.url),
                                headers={k.lower(): v for k, v in res.headers.items()},
                                body=body,
                            )
                    last_exception = None
                except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                    last_exception = exc
                    last_response = None
                    logger.debug(
                        "HTTP request failed",
                        extra=extra_context(
                            event="http_error",
                            component="http_client",
                            action=method,
                            outcome="transport_error",
                            target=safe_target,
                            attempt=attempt + 1,
                            duration_ms=t.duration_ms(),
                        ),
                    )

            if last_response is not None:
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP response",
                        extra=extra_context(
                            event="http_response",
                            component="http_client",
                            action=method,
                            outcome="success" if last_response.ok else "error",
                            status_code=last_response.status,
                            duration_ms=t.duration_ms(),
                            target=safe_target,
                        ),
                    )
                if last_response.status not in _RETRY_STATUSES:
                    return last_response

            if attempt + 1 < attempts:
                await asyncio.sleep(Constants.HTTP_RETRY_BASE_DELAY_SEC * (2 ** attempt))

        if last_response is not None:
            return last_response
        logger.error("%s %s failed after %d attempts: %s", method, safe_target, attempts, last_exception)
        raise HttpError(url, 0, str(last_exception) or type(last_exception).__name__)
