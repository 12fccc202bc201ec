"""
Database connection management for the API.

``HubStore`` is the store client: it is constructed explicitly by
``create_app()``, opened in the application lifespan and closed on
shutdown.  It owns a bounded pool of read-only SQLite connections.

The ``get_db()`` FastAPI dependency checks one connection out of the store
attached to ``app.state.store`` for the duration of a request and returns
it afterwards, whether the handler succeeded or raised.

Pool behaviour:
  - connections are created lazily up to ``pool_size``
  - a checkout waits at most ``checkout_timeout`` seconds for a free one
  - connections held longer than ``reclaim_after`` seconds are considered
    stale; when the pool is exhausted they are force-closed and their slots
    reused
  - if no connection can be obtained, ``DataAccessError`` is raised
"""

import logging
import queue
import sqlite3
import threading
import time
from collections.abc import Generator, Iterator
from contextlib import contextmanager
from pathlib import Path

from fastapi import Request

from utils.errors import ConfigurationError, DataAccessError

logger = logging.getLogger("climate_hub_api.store")


class HubStore:
    """Pooled, read-only SQLite store client with an explicit lifecycle."""

    def __init__(
        self,
        db_path: Path,
        pool_size: int = 10,
        checkout_timeout: float = 30.0,
        reclaim_after: float = 60.0,
    ) -> None:
        self.db_path = Path(db_path)
        self._max_size = pool_size
        self._checkout_timeout = checkout_timeout
        self._reclaim_after = reclaim_after
        self._pool: queue.Queue[sqlite3.Connection] = queue.Queue(maxsize=pool_size)
        # id(conn) -> (conn, checkout time)
        self._checked_out: dict[int, tuple[sqlite3.Connection, float]] = {}
        self._active = 0
        self._lock = threading.Lock()
        self._open = False

    # ── lifecycle ─────────────────────────────────────────────────────────

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        """Verify the database is reachable and start serving connections.

        Raises:
            ConfigurationError: The database file is missing or unreadable.
        """
        if not self.db_path.exists():
            raise ConfigurationError(
                f"Database not found at '{self.db_path}'. "
                "Run 'python seed_hub_db.py' to build it."
            )
        try:
            conn = self._make_conn()
            conn.execute("SELECT 1").fetchone()
        except sqlite3.Error as exc:
            raise ConfigurationError(
                f"Cannot open database at '{self.db_path}': {exc}"
            ) from exc
        self._open = True
        with self._lock:
            self._active += 1
        self._pool.put_nowait(conn)
        logger.info("Database connected path=%s pool_size=%d",
                    self.db_path, self._max_size)

    def close(self) -> None:
        """Close all pooled and checked-out connections."""
        self._open = False
        while True:
            try:
                conn = self._pool.get_nowait()
            except queue.Empty:
                break
            conn.close()
        with self._lock:
            for conn, _ in self._checked_out.values():
                conn.close()
            self._checked_out.clear()
            self._active = 0
        logger.info("Database connections closed path=%s", self.db_path)

    # ── pool ──────────────────────────────────────────────────────────────

    def _make_conn(self) -> sqlite3.Connection:
        """Open a new read-only connection with standard pragmas."""
        uri = f"file:{self.db_path}?mode=ro"
        conn = sqlite3.connect(uri, uri=True, check_same_thread=False,
                               timeout=10)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA busy_timeout=5000")
        return conn

    def _reclaim_stale(self) -> int:
        """Force-close connections held longer than ``reclaim_after``."""
        now = time.monotonic()
        reclaimed = 0
        with self._lock:
            for key, (conn, since) in list(self._checked_out.items()):
                if now - since >= self._reclaim_after:
                    del self._checked_out[key]
                    self._active -= 1
                    conn.close()
                    reclaimed += 1
        if reclaimed:
            logger.warning("Reclaimed %d stale connection(s)", reclaimed)
        return reclaimed

    def _track(self, conn: sqlite3.Connection) -> sqlite3.Connection:
        with self._lock:
            self._checked_out[id(conn)] = (conn, time.monotonic())
        return conn

    def _new_slot_conn(self) -> sqlite3.Connection | None:
        with self._lock:
            if self._active >= self._max_size:
                return None
            self._active += 1
        try:
            return self._make_conn()
        except sqlite3.Error as exc:
            with self._lock:
                self._active -= 1
            raise DataAccessError(str(exc)) from exc

    def acquire(self) -> sqlite3.Connection:
        """Check a connection out of the pool.

        Raises:
            DataAccessError: The store is closed or no connection became
                available within ``checkout_timeout``.
        """
        if not self._open:
            raise DataAccessError("Database store is not open")
        try:
            return self._track(self._pool.get_nowait())
        except queue.Empty:
            pass
        conn = self._new_slot_conn()
        if conn is not None:
            return self._track(conn)
        try:
            return self._track(self._pool.get(timeout=self._checkout_timeout))
        except queue.Empty:
            pass
        if self._reclaim_stale():
            conn = self._new_slot_conn()
            if conn is not None:
                return self._track(conn)
        raise DataAccessError("Timed out waiting for a database connection")

    def release(self, conn: sqlite3.Connection) -> None:
        """Return a connection to the pool.

        Connections that were reclaimed while checked out are not tracked
        any more and are simply closed.
        """
        with self._lock:
            tracked = self._checked_out.pop(id(conn), None)
        if tracked is None or not self._open:
            conn.close()
            return
        try:
            self._pool.put_nowait(conn)
        except queue.Full:
            conn.close()
            with self._lock:
                self._active -= 1

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Context manager: acquire a connection, release it on exit."""
        conn = self.acquire()
        try:
            yield conn
        finally:
            self.release(conn)

    def ping(self) -> bool:
        """Return True if the store answers ``SELECT 1``."""
        try:
            with self.connection() as conn:
                conn.execute("SELECT 1").fetchone()
        except (DataAccessError, sqlite3.Error) as exc:
            logger.warning("Health check failed: %s", exc)
            return False
        return True

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {
                "pool_size": self._max_size,
                "active": self._active,
                "checked_out": len(self._checked_out),
                "idle": self._pool.qsize(),
            }


def get_db(request: Request) -> Generator[sqlite3.Connection, None, None]:
    """FastAPI dependency: yield a pooled connection, release on exit.

    Usage in a route::

        from api.database import get_db
        from fastapi import Depends

        @router.get("/example")
        def example(conn=Depends(get_db)):
            ...
    """
    store: HubStore = request.app.state.store
    with store.connection() as conn:
        yield conn
