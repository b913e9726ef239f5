"""HTTP transport adapters over :mod:`httpx`.

The cache core only needs one capability from the network:
``fetch(url, method, headers) -> TransportResponse``. This module provides it
twice:

- :class:`Transport` -- blocking, backed by :class:`httpx.Client`.
- :class:`AsyncTransport` -- non-blocking, backed by :class:`httpx.AsyncClient`.

Both treat *any* HTTP response, including 4xx and 5xx, as a successful
fetch. Only failures that produce no usable body (timeouts, DNS errors,
refused connections, malformed URLs, undecodable bodies) are raised, as
:class:`~request_cache.exceptions.FetchError`. Nothing is retried; the
configured httpx timeout is the only timeout.

Both adapters accept an injected httpx client, which is how the test suite
plugs in :class:`httpx.MockTransport`. An injected client is never closed by
the adapter.
"""

from __future__ import annotations

from typing import Optional

import httpx

from request_cache.exceptions import FetchError, InvalidUsageError
from request_cache.models import TransportConfig, TransportResponse


def _merge_headers(
    config: TransportConfig,
    headers: Optional[dict[str, str]],
) -> httpx.Headers:
    """Apply the configured default User-Agent under caller-supplied headers.

    Header names compare case-insensitively, so a caller's ``user-agent``
    replaces the configured one rather than being sent alongside it.

    Raises:
        InvalidUsageError: If a header name or value is not ASCII.
    """
    try:
        merged = httpx.Headers({"User-Agent": config.user_agent} if config.user_agent else None)
        merged.update(headers or {})
    except UnicodeEncodeError as exc:
        raise InvalidUsageError(f"Request headers must be ASCII: {exc}") from exc
    return merged


def _to_transport_response(response: httpx.Response, method: str, url: str) -> TransportResponse:
    # Strict decode; httpx's .text would substitute U+FFFD for bad bytes.
    try:
        body = response.content.decode(response.encoding or "utf-8")
    except (UnicodeDecodeError, LookupError) as exc:
        raise FetchError(f"{method} {url}: cannot decode response body: {exc}") from exc
    return TransportResponse(body=body, status_code=response.status_code)


class Transport:
    """Blocking transport adapter.

    Args:
        config: Timeout, SSL and redirect settings. Defaults to
            :class:`~request_cache.models.TransportConfig`.
        client: Pre-built :class:`httpx.Client`. When given, *config*'s
            connection settings are not applied to it.

    Example::

        with Transport(TransportConfig(timeout=10)) as transport:
            response = transport.fetch("https://example.com", "GET")
    """

    def __init__(
        self,
        config: Optional[TransportConfig] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._config = config or TransportConfig()
        self._client = client
        self._owns_client = client is None

    def __enter__(self) -> Transport:
        self._ensure_client()
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def fetch(
        self,
        url: str,
        method: str,
        headers: Optional[dict[str, str]] = None,
    ) -> TransportResponse:
        """Perform one request and return its body and status.

        Raises:
            InvalidUsageError: If a header is not ASCII; nothing is sent.
            FetchError: On any transport-level failure.
        """
        merged = _merge_headers(self._config, headers)
        client = self._ensure_client()
        try:
            response = client.request(method, url, headers=merged)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise FetchError(f"{method} {url} failed: {exc}") from exc
        return _to_transport_response(response, method, url)

    def close(self) -> None:
        """Close the underlying client if this adapter created it."""
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None

    def _ensure_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                timeout=self._config.timeout,
                verify=self._config.verify_ssl,
                follow_redirects=self._config.follow_redirects,
            )
            self._owns_client = True
        return self._client


class AsyncTransport:
    """Non-blocking counterpart of :class:`Transport`.

    Must be closed with :meth:`aclose` (or used as an async context manager)
    when it created its own client.
    """

    def __init__(
        self,
        config: Optional[TransportConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._config = config or TransportConfig()
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> AsyncTransport:
        self._ensure_client()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def fetch(
        self,
        url: str,
        method: str,
        headers: Optional[dict[str, str]] = None,
    ) -> TransportResponse:
        """Perform one request and return its body and status.

        Raises:
            InvalidUsageError: If a header is not ASCII; nothing is sent.
            FetchError: On any transport-level failure.
        """
        merged = _merge_headers(self._config, headers)
        client = self._ensure_client()
        try:
            response = await client.request(method, url, headers=merged)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise FetchError(f"{method} {url} failed: {exc}") from exc
        return _to_transport_response(response, method, url)

    async def aclose(self) -> None:
        """Close the underlying client if this adapter created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._config.timeout,
                verify=self._config.verify_ssl,
                follow_redirects=self._config.follow_redirects,
            )
            self._owns_client = True
        return self._client
