"""
backend/kv_store.py

Key-value storage underlying project and preference persistence.

Keys are plain strings namespaced by owner, e.g.:
    user:<actor_id>:projects:<project_id>
    user:<actor_id>:preferences
Values are JSON-serialisable documents.

Implementations:
- InMemoryKVStore: dict-backed, for tests and throwaway dev servers
- SqliteKVStore: single-table SQLite file (local dev)
- SqlAlchemyKVStore: same table through SQLAlchemy (managed Postgres)

Every implementation provides atomic single-key get/set/delete. Nothing here
spans more than one key in a transaction.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional, Protocol, Sequence

from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, delete, select, update
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)


class KVStore(Protocol):
    """Interface for the key-value backend."""

    def get(self, key: str) -> Optional[Any]:
        ...

    def set(self, key: str, value: Any) -> None:
        ...

    def delete(self, key: str) -> None:
        ...

    def get_by_prefix(self, prefix: str) -> List[Any]:
        ...

    def mget(self, keys: Sequence[str]) -> List[Any]:
        ...

    def mset(self, keys: Sequence[str], values: Sequence[Any]) -> None:
        ...

    def mdel(self, keys: Sequence[str]) -> None:
        ...


def _check_pairs(keys: Sequence[str], values: Sequence[Any]) -> None:
    if len(keys) != len(values):
        raise ValueError(f"mset needs one value per key (got {len(keys)} keys, {len(values)} values)")


def _like_pattern(prefix: str) -> str:
    escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return escaped + "%"


class InMemoryKVStore:
    """Dict-backed store. Values are copied through JSON so callers never share state."""

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            raw = self._data.get(key)
        return None if raw is None else json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        encoded = json.dumps(value)
        with self._lock:
            self._data[key] = encoded

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def get_by_prefix(self, prefix: str) -> List[Any]:
        with self._lock:
            matches = sorted((k, v) for k, v in self._data.items() if k.startswith(prefix))
        return [json.loads(v) for _, v in matches]

    def mget(self, keys: Sequence[str]) -> List[Any]:
        return [v for v in (self.get(k) for k in keys) if v is not None]

    def mset(self, keys: Sequence[str], values: Sequence[Any]) -> None:
        _check_pairs(keys, values)
        for key, value in zip(keys, values):
            self.set(key, value)

    def mdel(self, keys: Sequence[str]) -> None:
        for key in keys:
            self.delete(key)


class SqliteKVStore:
    """
    SQLite-backed store: one row per key in table kv_store(key, value).
    Opens a short-lived connection per operation and commits immediately.
    """

    def __init__(self, db_path: str) -> None:
        self.db_path = str(Path(db_path).expanduser())
        self._init_db()

    @contextmanager
    def _connect(self) -> Generator[sqlite3.Connection, None, None]:
        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute(
                "CREATE TABLE IF NOT EXISTS kv_store (key TEXT PRIMARY KEY, value TEXT NOT NULL)"
            )
        logger.debug("[KV] SQLite store ready at %s", self.db_path)

    def get(self, key: str) -> Optional[Any]:
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        return None if row is None else json.loads(row["value"])

    def set(self, key: str, value: Any) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO kv_store (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, json.dumps(value)),
            )

    def delete(self, key: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))

    def get_by_prefix(self, prefix: str) -> List[Any]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT key, value FROM kv_store WHERE key LIKE ? ESCAPE '\\' ORDER BY key",
                (_like_pattern(prefix),),
            ).fetchall()
        # LIKE is case-insensitive in SQLite; keep exact prefix matches only
        return [json.loads(row["value"]) for row in rows if row["key"].startswith(prefix)]

    def mget(self, keys: Sequence[str]) -> List[Any]:
        if not keys:
            return []
        placeholders = ", ".join("?" for _ in keys)
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT key, value FROM kv_store WHERE key IN ({placeholders})", tuple(keys)
            ).fetchall()
        found = {row["key"]: json.loads(row["value"]) for row in rows}
        return [found[k] for k in keys if k in found]

    def mset(self, keys: Sequence[str], values: Sequence[Any]) -> None:
        _check_pairs(keys, values)
        with self._connect() as conn:
            conn.executemany(
                "INSERT INTO kv_store (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                [(k, json.dumps(v)) for k, v in zip(keys, values)],
            )

    def mdel(self, keys: Sequence[str]) -> None:
        with self._connect() as conn:
            conn.executemany("DELETE FROM kv_store WHERE key = ?", [(k,) for k in keys])


_metadata = MetaData()
kv_table = Table(
    "kv_store",
    _metadata,
    Column("key", String(512), primary_key=True),
    Column("value", Text, nullable=False),
)


class SqlAlchemyKVStore:
    """Same table layout as SqliteKVStore, through a pooled SQLAlchemy engine (Postgres in production)."""

    def __init__(self, database_url: str, engine: Optional[Engine] = None) -> None:
        if database_url.startswith("postgres://"):
            # Render/Heroku style URLs; SQLAlchemy only accepts the long scheme
            database_url = "postgresql://" + database_url[len("postgres://"):]
        self.engine = engine or create_engine(database_url, pool_pre_ping=True)
        _metadata.create_all(self.engine)

    def get(self, key: str) -> Optional[Any]:
        with self.engine.connect() as conn:
            raw = conn.execute(select(kv_table.c.value).where(kv_table.c.key == key)).scalar_one_or_none()
        return None if raw is None else json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        encoded = json.dumps(value)
        with self.engine.begin() as conn:
            result = conn.execute(update(kv_table).where(kv_table.c.key == key).values(value=encoded))
            if result.rowcount == 0:
                conn.execute(kv_table.insert().values(key=key, value=encoded))

    def delete(self, key: str) -> None:
        with self.engine.begin() as conn:
            conn.execute(delete(kv_table).where(kv_table.c.key == key))

    def get_by_prefix(self, prefix: str) -> List[Any]:
        stmt = (
            select(kv_table.c.key, kv_table.c.value)
            .where(kv_table.c.key.like(_like_pattern(prefix), escape="\\"))
            .order_by(kv_table.c.key)
        )
        with self.engine.connect() as conn:
            return [json.loads(v) for k, v in conn.execute(stmt) if k.startswith(prefix)]

    def mget(self, keys: Sequence[str]) -> List[Any]:
        if not keys:
            return []
        with self.engine.connect() as conn:
            rows = conn.execute(select(kv_table.c.key, kv_table.c.value).where(kv_table.c.key.in_(list(keys))))
            found = {k: json.loads(v) for k, v in rows}
        return [found[k] for k in keys if k in found]

    def mset(self, keys: Sequence[str], values: Sequence[Any]) -> None:
        _check_pairs(keys, values)
        for key, value in zip(keys, values):
            self.set(key, value)

    def mdel(self, keys: Sequence[str]) -> None:
        if not keys:
            return
        with self.engine.begin() as conn:
            conn.execute(delete(kv_table).where(kv_table.c.key.in_(list(keys))))


def create_kv_store(database_url: str = "", database_path: str = "") -> KVStore:
    """Pick the KV backend from configuration."""
    if database_url:
        return SqlAlchemyKVStore(database_url)
    if database_path:
        return SqliteKVStore(database_path)
    logger.info("[KV] No database configured, using in-memory store")
    return InMemoryKVStore()
