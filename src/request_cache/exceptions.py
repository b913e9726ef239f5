"""Exception hierarchy for request-cache.

All exceptions inherit from :class:`RequestCacheError`, which carries an
``exit_code`` attribute mapped to a constant from
:mod:`request_cache.exit_codes`. The top-level error handler in
:func:`request_cache.app.main` catches ``RequestCacheError`` and exits with
the appropriate code.

A cache miss is never an exception; lookups return ``None``.

Subclass hierarchy::

    RequestCacheError          (exit 1)
    +-- InvalidUsageError      (exit 2)
    +-- ConfigError            (exit 1)
    +-- FetchError             (exit 6)
    +-- StorageError           (exit 7)
        +-- CachePersistError  (exit 8)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from request_cache.exit_codes import (
    EXIT_FETCH_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_CACHED,
    EXIT_STORAGE_ERROR,
)

if TYPE_CHECKING:
    from request_cache.models import Entry


class RequestCacheError(Exception):
    """Base exception for all request-cache errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(RequestCacheError):
    """Raised for invalid arguments (e.g. a negative TTL)."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(RequestCacheError):
    """Raised for configuration problems (invalid JSON, bad environment values)."""

    exit_code = EXIT_GENERIC_FAILURE


class FetchError(RequestCacheError):
    """Raised when the transport produced no usable body.

    Covers timeouts, DNS failures, refused connections and undecodable
    bodies. HTTP error statuses are *not* fetch errors: any response the
    server returns is cached like any other.
    """

    exit_code = EXIT_FETCH_ERROR


class StorageError(RequestCacheError):
    """Raised when the cache database cannot be opened, queried, or written.

    Args:
        message: Human-readable error description.
        cause: The underlying exception, when there is one.
    """

    exit_code = EXIT_STORAGE_ERROR

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class CachePersistError(StorageError):
    """Raised when a response was fetched but writing it to the cache failed.

    The fetched entry is attached as :attr:`entry` so that callers who only
    need the content can carry on with an uncached result.
    """

    exit_code = EXIT_NOT_CACHED

    def __init__(
        self,
        message: str,
        entry: Entry,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, cause)
        self.entry = entry
