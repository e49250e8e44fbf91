"""
HTTP client utilities for renvkeeper.

A thin asynchronous wrapper around :class:`httpx.AsyncClient` used by the
registry validator. It adds a shared User-Agent, a concurrency cap,
optional pacing between requests, per-request timeouts, and a uniform
error contract: every failure (timeout, connection error, non-2xx status,
non-JSON body) is raised as :class:`~renvkeeper.exceptions.NetworkError`,
with 404 specialised to :class:`~renvkeeper.exceptions.RegistryError`.

Retries are off by default because a registry lookup must produce one
terminal outcome per call.
"""

from __future__ import annotations

import time
import random
import asyncio
from typing import Any, Dict, Optional, cast

import httpx

from renvkeeper.utils.logger import get_logger
from renvkeeper.__version__ import __version__
from renvkeeper.exceptions import NetworkError, RegistryError
from renvkeeper.constants import (
    DEFAULT_TIMEOUT,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MAX_CONCURRENCY,
    USER_AGENT_TEMPLATE,
)

logger = get_logger("http")


class HTTPClient:
    """Asynchronous HTTP client with timeouts and concurrency control.

    Args:
        timeout: Default request timeout in seconds.
        max_retries: Extra attempts after a timeout or connection error.
            HTTP error statuses are never retried.
        rate_limit_delay: Minimum delay (seconds) between requests.
        verify_ssl: Whether to verify SSL certificates.
        user_agent: Custom User-Agent header value.
        max_concurrency: Maximum number of concurrent requests.

    Example:
        >>> async with HTTPClient() as client:
        ...     info = await client.get_json("https://crandb.r-pkg.org/dplyr")
    """

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        rate_limit_delay: float = 0.0,
        verify_ssl: bool = True,
        user_agent: Optional[str] = None,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ) -> None:
        self.timeout = timeout
        self.max_retries = max_retries
        self.rate_limit_delay = rate_limit_delay
        self.verify_ssl = verify_ssl
        self.user_agent = user_agent or USER_AGENT_TEMPLATE.format(version=__version__)
        self.max_concurrency = max_concurrency

        self._client: Optional[httpx.AsyncClient] = None
        self._last_request_time: float = 0.0
        self._rate_limit_lock = asyncio.Lock()
        self._semaphore = asyncio.Semaphore(max_concurrency)

    async def __aenter__(self) -> "HTTPClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.close()

    async def _ensure_client(self) -> None:
        """Create the underlying httpx client on first use."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                http2=True,
                verify=self.verify_ssl,
                follow_redirects=True,
                headers={"User-Agent": self.user_agent},
            )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _rate_limit(self) -> None:
        """Enforce a minimum delay between outgoing requests."""
        if self.rate_limit_delay <= 0:
            return

        async with self._rate_limit_lock:
            now = time.monotonic()
            elapsed = now - self._last_request_time

            if elapsed < self.rate_limit_delay:
                delay = self.rate_limit_delay - elapsed
                self._last_request_time = now + delay
                await asyncio.sleep(delay)
            else:
                self._last_request_time = now

    async def request(
        self,
        method: str,
        url: str,
        *,
        timeout: Optional[float] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request and return a successful (2xx/3xx) response.

        Args:
            method: HTTP method.
            url: Target URL.
            timeout: Per-request timeout overriding the client default.
            **kwargs: Forwarded to :meth:`httpx.AsyncClient.request`.

        Raises:
            RegistryError: The server answered 404.
            NetworkError: Any other failure.
        """
        await self._ensure_client()
        assert self._client is not None

        if timeout is not None:
            kwargs["timeout"] = httpx.Timeout(timeout)

        last_exc: Optional[Exception] = None

        for attempt in range(self.max_retries + 1):
            try:
                await self._rate_limit()

                async with self._semaphore:
                    response = await self._client.request(method, url, **kwargs)

            except httpx.TimeoutException as exc:
                last_exc = exc
                logger.debug(
                    "Request timeout (%d/%d): %s",
                    attempt + 1,
                    self.max_retries + 1,
                    url,
                )

            except httpx.HTTPError as exc:
                last_exc = exc
                logger.debug(
                    "Network error (%d/%d) for %s: %s",
                    attempt + 1,
                    self.max_retries + 1,
                    url,
                    exc,
                )

            else:
                if response.status_code == 404:
                    raise RegistryError(
                        f"Resource not found: {url}",
                        url=url,
                        status_code=404,
                    )

                if response.status_code >= 400:
                    raise NetworkError(
                        f"HTTP {response.status_code} error for {url}",
                        url=url,
                        status_code=response.status_code,
                        response_body=response.text,
                    )

                return response

            if attempt < self.max_retries:
                delay = (2**attempt) + random.uniform(0.0, 0.3)
                logger.debug("Retrying in %.2fs", delay)
                await asyncio.sleep(delay)

        raise NetworkError(
            f"Request failed after {self.max_retries + 1} attempt(s): {url}",
            url=url,
        ) from last_exc

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        """Perform a GET request."""
        return await self.request("GET", url, **kwargs)

    async def get_json(self, url: str, **kwargs: Any) -> Dict[str, Any]:
        """GET ``url`` and decode the body as a JSON object.

        Raises:
            NetworkError: The request failed, or the body is not a JSON object.
        """
        response = await self.get(url, **kwargs)

        try:
            data = response.json()
        except ValueError as exc:
            raise NetworkError(
                f"Invalid JSON response from {url}",
                url=url,
                response_body=response.text,
            ) from exc

        if not isinstance(data, dict):
            raise NetworkError(
                f"Expected JSON object from {url}",
                url=url,
                response_body=response.text,
            )

        return cast(Dict[str, Any], data)
