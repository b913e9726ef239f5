"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~request_cache.exceptions.RequestCacheError` subclass.
Shell wrappers can inspect the exit code to tell "nothing could be fetched"
apart from "fetched but not cached" without parsing stderr.

Example::

    $ request-cache fetch https://example.com
    $ echo $?
    6   # EXIT_FETCH_ERROR -- the transport produced no usable body
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_NOT_FOUND = 4
"""No live cache entry exists for the requested identity."""

EXIT_FETCH_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_STORAGE_ERROR = 7
"""The cache database could not be opened, queried, or written."""

EXIT_NOT_CACHED = 8
"""The response was fetched but could not be written to the cache."""
