import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import closing

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 1000


class StoreError(Exception):
    """Raised when the backing store fails a read, write, list or delete."""


class ListResult:
    """
    One page of a key listing.
    `cursor` is opaque; pass it back to list() to get the next page.
    It is None once `complete` is True.
    """

    def __init__(self, keys, cursor=None, complete=True):
        self.keys = list(keys)
        self.cursor = cursor
        self.complete = complete

    def __repr__(self):
        return f"ListResult(keys={len(self.keys)}, cursor={self.cursor!r}, complete={self.complete})"


class KVStore(ABC):
    """
    String keys to string values, enumerated in ascending key order.
    """

    @abstractmethod
    def put(self, key: str, value: str) -> None: ...

    @abstractmethod
    def get(self, key: str) -> str | None: ...

    @abstractmethod
    def list(self, prefix: str = "", cursor: str | None = None, limit: int = DEFAULT_PAGE_SIZE) -> ListResult: ...

    @abstractmethod
    def delete(self, key: str) -> None: ...


def iter_keys(store: KVStore, prefix: str = "", page_size: int = DEFAULT_PAGE_SIZE):
    """
    Yield every key under `prefix`, following continuation cursors until the listing is complete.
    """
    cursor = None
    while True:
        page = store.list(prefix=prefix, cursor=cursor, limit=page_size)
        yield from page.keys
        if page.complete or page.cursor is None:
            return
        cursor = page.cursor


def list_all_keys(store: KVStore, prefix: str = "", page_size: int = DEFAULT_PAGE_SIZE) -> list[str]:
    return list(iter_keys(store, prefix=prefix, page_size=page_size))


# -----------------------------------------------------------------------------
# In-process backend
# -----------------------------------------------------------------------------
class MemoryStore(KVStore):
    """Dict-backed store. Useful for development and tests."""

    def __init__(self):
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def put(self, key, value):
        with self._lock:
            self._data[key] = value

    def get(self, key):
        with self._lock:
            return self._data.get(key)

    def list(self, prefix="", cursor=None, limit=DEFAULT_PAGE_SIZE):
        if limit < 1:
            raise ValueError("limit must be positive")
        with self._lock:
            keys = sorted(k for k in self._data if k.startswith(prefix))
        if cursor is not None:
            keys = [k for k in keys if k > cursor]
        page = keys[:limit]
        if len(keys) > limit:
            return ListResult(page, cursor=page[-1], complete=False)
        return ListResult(page)

    def delete(self, key):
        with self._lock:
            self._data.pop(key, None)

    def __len__(self):
        with self._lock:
            return len(self._data)


# -----------------------------------------------------------------------------
# SQLite backend
# -----------------------------------------------------------------------------
class SQLiteStore(KVStore):
    """
    Single-table key/value store. A connection is opened per operation
    so the store can be shared across request threads and the flush pool.
    """

    def __init__(self, path: str):
        self.path = path
        self._run("CREATE TABLE IF NOT EXISTS kv (key TEXT PRIMARY KEY, value TEXT NOT NULL);")

    def _connect(self):
        return sqlite3.connect(self.path, timeout=30)

    def _run(self, sql, params=(), fetch=False):
        try:
            with closing(self._connect()) as db:
                with db:
                    rows = db.execute(sql, params).fetchall()
                return rows if fetch else None
        except sqlite3.Error as e:
            raise StoreError(f"sqlite error on {self.path}: {e}") from e

    def put(self, key, value):
        self._run(
            "INSERT INTO kv (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value;",
            (key, value),
        )

    def get(self, key):
        rows = self._run("SELECT value FROM kv WHERE key = ?;", (key,), fetch=True)
        return rows[0][0] if rows else None

    def list(self, prefix="", cursor=None, limit=DEFAULT_PAGE_SIZE):
        if limit < 1:
            raise ValueError("limit must be positive")
        # fetch one extra row to know whether another page exists
        rows = self._run(
            """
            SELECT key FROM kv
            WHERE substr(key, 1, ?) = ? AND key > ?
            ORDER BY key ASC
            LIMIT ?;
            """,
            (len(prefix), prefix, cursor or "", limit + 1),
            fetch=True,
        )
        keys = [row[0] for row in rows]
        if len(keys) > limit:
            page = keys[:limit]
            return ListResult(page, cursor=page[-1], complete=False)
        return ListResult(keys)

    def delete(self, key):
        self._run("DELETE FROM kv WHERE key = ?;", (key,))


def create_store(config) -> KVStore:
    backend = config.store_backend
    if backend == "memory":
        logger.warning("Using in-memory store; records are lost on restart")
        return MemoryStore()
    if backend == "sqlite":
        logger.info("Using sqlite store at %s", config.db_path)
        return SQLiteStore(config.db_path)
    raise ValueError(f"Unknown store backend: {backend!r}")
