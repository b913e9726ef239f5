"""SQLite-backed persistence for cached responses.

All rows live in a single ``requests`` table whose column order is fixed for
positional decoding::

    requests(method TEXT, request TEXT, response TEXT, expires INTEGER)

``request`` holds the URL and ``response`` the body. Rows are keyed by the
``(request, method)`` identity but the table has no unique constraint; the
single-row invariant is kept by :meth:`CacheStore.replace`, which deletes and
inserts inside one ``BEGIN IMMEDIATE`` transaction. The write lock that
statement takes serialises writers across threads and processes, so the last
writer to commit wins and two rows for one identity never survive together.

Staleness is decided at read time. Expired rows are left in place until the
next successful fetch for the same identity supersedes them.

See Also:
    :class:`~request_cache.fetcher.CachedFetcher` -- the only writer.
"""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path
from typing import Any, Optional

from request_cache.exceptions import StorageError
from request_cache.models import Entry, Identity, Origin

MEMORY = ":memory:"

_CREATE_TABLE = (
    "CREATE TABLE IF NOT EXISTS requests "
    "(method TEXT, request TEXT, response TEXT, expires INTEGER)"
)
_CREATE_INDEX = (
    "CREATE INDEX IF NOT EXISTS requests_identity "
    "ON requests (request, method, expires)"
)
_SELECT_LIVE = (
    "SELECT method, request, response, expires FROM requests "
    "WHERE request = ? AND method = ? AND expires > ? "
    "ORDER BY expires DESC, rowid DESC LIMIT 1"
)
_DELETE_IDENTITY = "DELETE FROM requests WHERE request = ? AND method = ?"
_INSERT = "INSERT INTO requests (method, request, response, expires) VALUES (?, ?, ?, ?)"


class CacheStore:
    """Durable store of :class:`~request_cache.models.Entry` rows.

    One :class:`sqlite3.Connection` is shared by every caller and guarded by
    a lock, so a single store may be used from several threads at once.
    Transactions are explicit (``isolation_level=None``).

    Prefer :meth:`open` over the constructor; it also bootstraps the schema.

    Args:
        connection: An open SQLite connection in autocommit mode.
        location: Where the database lives, for diagnostics.

    Example::

        with CacheStore.open("/tmp/requests.db") as store:
            entry = store.find_live(Identity(url="http://example.com", method="GET"), now)
    """

    def __init__(self, connection: sqlite3.Connection, location: str = MEMORY) -> None:
        self._conn: Optional[sqlite3.Connection] = connection
        self._location = location
        self._lock = threading.Lock()

    @classmethod
    def open(cls, location: str | Path = MEMORY, timeout: float = 5.0) -> CacheStore:
        """Open (creating if needed) the database at *location* and ensure the schema.

        Args:
            location: Filesystem path or ``":memory:"``. Missing parent
                directories are created.
            timeout: Seconds to wait on a locked database before failing.

        Returns:
            A ready-to-use store.

        Raises:
            StorageError: If the file cannot be created or opened, or the
                schema cannot be bootstrapped.
        """
        location = str(location)
        try:
            if location != MEMORY:
                Path(location).expanduser().parent.mkdir(parents=True, exist_ok=True)
                location = str(Path(location).expanduser())
            conn = sqlite3.connect(
                location,
                timeout=timeout,
                isolation_level=None,
                check_same_thread=False,
            )
        except (sqlite3.Error, OSError) as exc:
            raise StorageError(f"Cannot open cache database at {location}: {exc}", exc) from exc

        store = cls(conn, location)
        try:
            store.ensure_schema()
        except StorageError:
            store.close()
            raise
        return store

    @property
    def location(self) -> str:
        """Path of the backing database, or ``":memory:"``."""
        return self._location

    @property
    def closed(self) -> bool:
        """Whether :meth:`close` has been called."""
        return self._conn is None

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> CacheStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    def ensure_schema(self) -> None:
        """Create the ``requests`` table and its lookup index if absent.

        Safe to call on every startup and against a concurrent caller doing
        the same; an "already exists" failure counts as success.

        Raises:
            StorageError: On any other database failure.
        """
        conn = self._connection()
        with self._lock:
            for statement in (_CREATE_TABLE, _CREATE_INDEX):
                try:
                    conn.execute(statement)
                except sqlite3.OperationalError as exc:
                    if "already exists" in str(exc):
                        continue
                    raise StorageError(f"Cannot create cache schema: {exc}", exc) from exc
                except sqlite3.Error as exc:
                    raise StorageError(f"Cannot create cache schema: {exc}", exc) from exc

    def find_live(self, identity: Identity, now: int) -> Optional[Entry]:
        """Return the live entry for *identity*, or ``None`` on a miss.

        A row is live when ``expires > now``. Should several live rows exist,
        the one with the largest ``expires`` wins and, among equals, the
        most recently inserted.

        Args:
            identity: Exact ``(url, method)`` to look up.
            now: Current Unix time in seconds.

        Returns:
            An :class:`Entry` tagged :attr:`Origin.FROM_CACHE`, or ``None``.

        Raises:
            StorageError: If the database cannot be queried.
        """
        conn = self._connection()
        try:
            with self._lock:
                row = conn.execute(_SELECT_LIVE, (identity.url, identity.method, now)).fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"Cache lookup failed for {identity}: {exc}", exc) from exc

        if row is None:
            return None
        method, request, response, expires = row
        return Entry(
            url=request,
            method=method,
            body=response,
            expires_at=expires,
            origin=Origin.FROM_CACHE,
        )

    def replace(self, entry: Entry) -> None:
        """Make *entry* the sole row for its identity.

        Deletes every existing row for the identity and inserts *entry* in a
        single ``BEGIN IMMEDIATE`` transaction. On failure the transaction is
        rolled back and the table is left as it was.

        Raises:
            StorageError: If the transaction cannot be completed.
        """
        conn = self._connection()
        with self._lock:
            try:
                conn.execute("BEGIN IMMEDIATE")
                conn.execute(_DELETE_IDENTITY, (entry.url, entry.method))
                conn.execute(
                    _INSERT,
                    (entry.method, entry.url, entry.body, entry.expires_at),
                )
                conn.execute("COMMIT")
            except sqlite3.Error as exc:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise StorageError(
                    f"Cannot store {entry.identity} in cache: {exc}", exc
                ) from exc

    def count(self, identity: Optional[Identity] = None) -> int:
        """Return the number of physical rows, live or not.

        Args:
            identity: Restrict the count to one identity; ``None`` counts all.
        """
        conn = self._connection()
        try:
            with self._lock:
                if identity is None:
                    row = conn.execute("SELECT COUNT(*) FROM requests").fetchone()
                else:
                    row = conn.execute(
                        "SELECT COUNT(*) FROM requests WHERE request = ? AND method = ?",
                        (identity.url, identity.method),
                    ).fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot count cache rows: {exc}", exc) from exc
        return int(row[0])

    def stats(self, now: int) -> dict[str, Any]:
        """Return cache statistics.

        Returns:
            A ``dict`` with ``location``, ``rows`` (all physical rows) and
            ``live`` (rows still valid at *now*).
        """
        conn = self._connection()
        try:
            with self._lock:
                total, live = conn.execute(
                    "SELECT COUNT(*), COALESCE(SUM(expires > ?), 0) FROM requests",
                    (now,),
                ).fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot read cache statistics: {exc}", exc) from exc
        return {"location": self._location, "rows": int(total), "live": int(live)}

    def close(self) -> None:
        """Close the underlying connection. Calling it twice is harmless."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageError(f"Cache store at {self._location} is closed")
        return self._conn
