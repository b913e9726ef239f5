"""Canonical Pydantic models shared across all request-cache modules.

This is the single source of truth for data shapes in the project. The models
fall into two groups:

**Cache models** -- the unit of caching and the values passed between the
fetcher, the store, and the transport:
    :class:`Identity`, :class:`Origin`, :class:`Entry`, and
    :class:`TransportResponse`.

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`TransportConfig`, :class:`CacheConfig`, and :class:`GlobalConfig`.

All models use Pydantic v2.
"""

from __future__ import annotations

import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_TTL_SECONDS = 300
"""Freshness granted to fetched bodies when the caller does not choose one."""


# --- Cache Models ---


class Identity(BaseModel):
    """The ``(url, method)`` pair naming a cacheable request.

    Equality is exact string equality on both fields. No normalisation is
    applied: ``GET`` and ``get`` are different identities, and so are
    ``http://example.com`` and ``http://example.com/``.
    """

    model_config = ConfigDict(frozen=True)

    url: str
    method: str

    def __str__(self) -> str:
        return f"{self.method} {self.url}"


class Origin(str, enum.Enum):
    """How an :class:`Entry` reached the caller on this particular call.

    Never persisted; attached freshly on every read or fetch.
    """

    FROM_CACHE = "cache"
    FROM_NETWORK = "network"


class Entry(BaseModel):
    """A cached response body together with its identity and absolute expiry.

    ``expires_at`` is a Unix timestamp in whole seconds, always
    ``fetched_at + ttl_seconds`` for the TTL supplied when the body was
    fetched. A hit never changes it.

    Example::

        Entry(
            url="http://example.com",
            method="GET",
            body="<html>...</html>",
            expires_at=1760000000,
            origin=Origin.FROM_NETWORK,
        )
    """

    url: str
    method: str
    body: str
    expires_at: int
    origin: Origin = Origin.FROM_NETWORK
    status_code: Optional[int] = Field(
        default=None,
        description="Status of the network response; None for cache hits",
    )

    @property
    def identity(self) -> Identity:
        """The :class:`Identity` this entry is stored under."""
        return Identity(url=self.url, method=self.method)

    @property
    def cached(self) -> bool:
        """``True`` when this entry was served from the cache."""
        return self.origin == Origin.FROM_CACHE

    def is_live(self, now: int) -> bool:
        """Return ``True`` if the entry is still valid at *now*."""
        return self.expires_at > now


class TransportResponse(BaseModel):
    """What the transport adapter hands back for a successful fetch."""

    body: str
    status_code: int


# --- Configuration Models ---


class TransportConfig(BaseModel):
    """HTTP transport settings applied to every network fetch."""

    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    follow_redirects: bool = Field(default=True, description="Follow HTTP redirects")
    user_agent: Optional[str] = Field(
        default=None, description="Default User-Agent header for fetches"
    )


class CacheConfig(BaseModel):
    """Cache database location and default freshness."""

    db_path: Optional[str] = Field(
        default=None,
        description="SQLite database path; defaults to requests.db in the cache dir",
    )
    ttl_seconds: int = Field(
        default=DEFAULT_TTL_SECONDS, ge=0, description="Default TTL in seconds"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/request-cache/config.json``.

    Loaded and saved by :func:`~request_cache.config.load_global_config` and
    :func:`~request_cache.config.save_global_config`. Fields here have the
    lowest precedence and can be overridden by environment variables or CLI
    flags. See :func:`~request_cache.config.resolve_config`.
    """

    cache: CacheConfig = Field(default_factory=CacheConfig)
    transport: TransportConfig = Field(default_factory=TransportConfig)
