"""
Embedded Store Connection Manager

@.architecture
Incoming: app.py (startup_event), api/dependencies.py, data/database/repositories/*.py, data/storage/user_files.py, security/auth.py --- {store path, bucket names, pool config, view/update transaction requests}
Processing: connect(), disconnect(), ensure_buckets(), view(), update(), health_check(), Transaction.bucket(), Bucket.get/put/delete/keys() --- {6 jobs: connection_pooling, lifecycle_management, transaction_management, bucket_management, health_monitoring, key_value_access}
Outgoing: SQLite file (WAL journal), data/database/repositories/*.py --- {Transaction/Bucket context objects, bytes values, health status Dict}

Ordered key-value store with named buckets, built on a single SQLite file:
- One table per bucket (key BLOB PRIMARY KEY, value BLOB)
- Bounded connection pool, one connection per open transaction
- Read-only transactions see a consistent snapshot (WAL)
- Read-write transactions are serialized by the engine (BEGIN IMMEDIATE)
- Commit on success, full rollback on any exception

Usage:
    db = DatabaseConnection(path, buckets=["user_files", "file_blobs"])
    db.connect()

    with db.update() as tx:
        tx.bucket("file_blobs").put(content_id, data)

    with db.view() as tx:
        data = tx.bucket("file_blobs").get(content_id)

    db.disconnect()
"""

import queue
import re
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Union

from monitoring import get_logger

from .errors import StorageError

logger = get_logger(__name__)

Key = Union[str, bytes]

_BUCKET_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")


def _as_key(key: Key) -> bytes:
    """Keys are stored as raw bytes so ordering is plain bytewise order."""
    if isinstance(key, str):
        return key.encode("utf-8")
    return bytes(key)


def _validate_bucket_name(name: str) -> str:
    if not _BUCKET_NAME.match(name):
        raise ValueError(f"Invalid bucket name: {name!r}")
    return name


# =============================================================================
# TRANSACTION OBJECTS
# =============================================================================

class Bucket:
    """A named key space inside an open transaction."""

    def __init__(self, tx: "Transaction", name: str):
        self._tx = tx
        self.name = name
        self._table = f"bucket_{name}"

    def get(self, key: Key) -> Optional[bytes]:
        """Return the stored value, or None when the key is absent."""
        row = self._tx._fetch_one(
            f"SELECT value FROM {self._table} WHERE key = ?",
            (_as_key(key),),
        )
        return None if row is None else bytes(row[0])

    def put(self, key: Key, value: bytes) -> None:
        """Insert or overwrite a value."""
        self._tx._require_writable()
        self._tx._execute(
            f"INSERT OR REPLACE INTO {self._table} (key, value) VALUES (?, ?)",
            (_as_key(key), bytes(value)),
        )

    def delete(self, key: Key) -> None:
        """Remove a key. Deleting a missing key is not an error."""
        self._tx._require_writable()
        self._tx._execute(
            f"DELETE FROM {self._table} WHERE key = ?",
            (_as_key(key),),
        )

    def keys(self) -> List[bytes]:
        """All keys in ascending byte order."""
        rows = self._tx._fetch_all(f"SELECT key FROM {self._table} ORDER BY key")
        return [bytes(row[0]) for row in rows]

    def count(self) -> int:
        row = self._tx._fetch_one(f"SELECT COUNT(*) FROM {self._table}")
        return int(row[0]) if row else 0

    def __contains__(self, key: Key) -> bool:
        return self.get(key) is not None


class Transaction:
    """
    An open read-only or read-write transaction.

    Only valid inside the view()/update() block that created it.
    """

    def __init__(self, conn: sqlite3.Connection, writable: bool, buckets: frozenset):
        self._conn = conn
        self.writable = writable
        self._buckets = buckets
        self._closed = False

    def bucket(self, name: str) -> Bucket:
        """
        Get a bucket by name.

        Raises:
            StorageError: If the bucket was never created on this store
        """
        if name not in self._buckets:
            raise StorageError(f"Bucket not found: {name}")
        return Bucket(self, name)

    def _require_writable(self) -> None:
        if not self.writable:
            raise StorageError("Transaction is read-only")

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        if self._closed:
            raise StorageError("Transaction is closed")
        try:
            return self._conn.execute(sql, params)
        except sqlite3.Error as e:
            raise StorageError(f"Store operation failed: {e}") from e

    def _fetch_one(self, sql: str, params: tuple = ()) -> Optional[tuple]:
        cursor = self._execute(sql, params)
        try:
            return cursor.fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Store read failed: {e}") from e

    def _fetch_all(self, sql: str, params: tuple = ()) -> List[tuple]:
        cursor = self._execute(sql, params)
        try:
            return cursor.fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Store read failed: {e}") from e

    def _close(self) -> None:
        self._closed = True


# =============================================================================
# CONNECTION MANAGER
# =============================================================================

class DatabaseConnection:
    """
    Embedded key-value store with pooling and lifecycle management.

    Opened once at startup and closed once at shutdown; every operation
    borrows a pooled connection for the length of one transaction.
    """

    def __init__(
        self,
        path: Union[str, Path],
        buckets: Sequence[str] = (),
        max_size: int = 8,
        timeout: float = 30.0,
        busy_timeout: float = 5.0,
    ):
        """
        Initialize store manager.

        Args:
            path: SQLite database file
            buckets: Buckets to create on connect
            max_size: Maximum number of pooled connections
            timeout: Connection acquisition timeout (seconds)
            busy_timeout: How long a writer waits for the write lock (seconds)
        """
        self.path = Path(path)
        self.buckets = tuple(_validate_bucket_name(name) for name in buckets)
        self.max_size = max(1, max_size)
        self.timeout = timeout
        self.busy_timeout = busy_timeout

        self._pool: Optional[queue.LifoQueue] = None
        self._connections: List[sqlite3.Connection] = []
        self._bucket_names: frozenset = frozenset()
        self._lock = threading.Lock()
        self._connected = False

    # =========================================================================
    # CONNECTION LIFECYCLE
    # =========================================================================

    def connect(self) -> None:
        """
        Open the store file and create configured buckets.

        Raises:
            StorageError: If the file cannot be opened
        """
        if self._connected:
            logger.warning(f"Store already connected: {self.path}")
            return

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._pool = queue.LifoQueue(maxsize=self.max_size)
            with self._lock:
                conn = self._open_connection()
            self._pool.put(conn)
            self._connected = True
        except (OSError, sqlite3.Error) as e:
            self._close_all()
            raise StorageError(f"Failed to open store {self.path}: {e}") from e

        self.ensure_buckets(self.buckets)
        logger.info(f"Store opened: {self.path} (buckets={list(self.buckets)}, max={self.max_size})")

    def disconnect(self) -> None:
        """Close every pooled connection."""
        if not self._connected:
            return
        self._close_all()
        logger.info(f"Store closed: {self.path}")

    def _open_connection(self) -> sqlite3.Connection:
        """Open one connection. Caller holds self._lock."""
        conn = sqlite3.connect(
            str(self.path),
            timeout=self.busy_timeout,
            isolation_level=None,  # explicit BEGIN/COMMIT
            check_same_thread=False,
        )
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=FULL")
        self._connections.append(conn)
        return conn

    def _close_all(self) -> None:
        with self._lock:
            for conn in self._connections:
                try:
                    conn.close()
                except sqlite3.Error as e:
                    logger.warning(f"Error closing store connection: {e}")
            self._connections = []
            self._pool = None
            self._connected = False

    def ensure_buckets(self, names: Sequence[str]) -> None:
        """
        Create buckets if they don't exist.

        Args:
            names: Bucket names (letters, digits, underscore)
        """
        names = [_validate_bucket_name(name) for name in names]
        if not names:
            return
        with self._transaction(writable=True) as tx:
            for name in names:
                tx._execute(
                    f"CREATE TABLE IF NOT EXISTS bucket_{name} "
                    "(key BLOB PRIMARY KEY, value BLOB NOT NULL) WITHOUT ROWID"
                )
        self._bucket_names = self._bucket_names | frozenset(names)

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    @contextmanager
    def _acquire(self) -> Iterator[sqlite3.Connection]:
        pool = self._pool
        if not self._connected or pool is None:
            raise StorageError("Store not connected. Call connect() first.")

        conn = None
        try:
            conn = pool.get_nowait()
        except queue.Empty:
            with self._lock:
                if len(self._connections) < self.max_size:
                    try:
                        conn = self._open_connection()
                    except sqlite3.Error as e:
                        raise StorageError(f"Failed to open store connection: {e}") from e

        if conn is None:
            try:
                conn = pool.get(timeout=self.timeout)
            except queue.Empty:
                raise StorageError(
                    f"Timed out after {self.timeout}s waiting for a store connection"
                ) from None

        try:
            yield conn
        finally:
            pool.put(conn)

    @contextmanager
    def _transaction(self, writable: bool) -> Iterator[Transaction]:
        with self._acquire() as conn:
            try:
                conn.execute("BEGIN IMMEDIATE" if writable else "BEGIN DEFERRED")
            except sqlite3.Error as e:
                raise StorageError(f"Failed to begin transaction: {e}") from e

            tx = Transaction(conn, writable, self._bucket_names)
            try:
                yield tx
            except BaseException:
                tx._close()
                self._rollback(conn)
                raise

            tx._close()
            try:
                conn.execute("COMMIT")
            except sqlite3.Error as e:
                self._rollback(conn)
                raise StorageError(f"Commit failed: {e}") from e

    @staticmethod
    def _rollback(conn: sqlite3.Connection) -> None:
        if not conn.in_transaction:
            return
        try:
            conn.execute("ROLLBACK")
        except sqlite3.Error as e:
            logger.warning(f"Rollback failed: {e}")

    def view(self):
        """
        Read-only transaction context manager.

        Usage:
            with db.view() as tx:
                value = tx.bucket("file_blobs").get(key)
        """
        return self._transaction(writable=False)

    def update(self):
        """
        Read-write transaction with automatic commit/rollback.

        Usage:
            with db.update() as tx:
                tx.bucket("user_files").put(user_id, record)
                tx.bucket("file_blobs").put(content_id, data)
        """
        return self._transaction(writable=True)

    # =========================================================================
    # HEALTH CHECKS
    # =========================================================================

    def health_check(self) -> Dict[str, Any]:
        """
        Perform store health check.

        Returns:
            Dict with health status and per-bucket record counts
        """
        result: Dict[str, Any] = {
            "healthy": False,
            "connected": self._connected,
            "path": str(self.path),
            "error": None,
        }

        if not self._connected:
            result["error"] = "Store not connected"
            return result

        try:
            with self.view() as tx:
                result["counts"] = {
                    name: tx.bucket(name).count() for name in sorted(self._bucket_names)
                }
            result["pool"] = {
                "size": len(self._connections),
                "max_size": self.max_size,
            }
            result["healthy"] = True
        except StorageError as e:
            result["error"] = str(e)
            logger.error(f"Store health check failed: {e}")

        return result

    def is_connected(self) -> bool:
        """Check if store is open."""
        return self._connected
