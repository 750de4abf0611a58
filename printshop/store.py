from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from printshop.db import q, x
from printshop.utils import iso_now

log = logging.getLogger("printshop.store")


class MemoryStore:
    """Dict-backed store. Transactions snapshot the dict and restore it on error."""

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = str(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)

    @contextmanager
    def transaction(self) -> Iterator["MemoryStore"]:
        snapshot = dict(self._data)
        try:
            yield self
        except Exception:
            self._data = snapshot
            raise


class SqliteStore:
    """
    Key-value store on the ``kv_store`` table.

    Outside a transaction every write commits immediately (like ``x()``).
    Inside ``transaction()`` writes are batched and committed once at the end,
    or rolled back if the block raises. Nested transactions join the outer one.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn
        self._depth = 0

    def get(self, key: str) -> Optional[str]:
        rows = q(self.conn, "SELECT value FROM kv_store WHERE key=?", (key,))
        return str(rows[0]["value"]) if rows else None

    def set(self, key: str, value: str) -> None:
        x(
            self.conn,
            """
            INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at
            """,
            (key, str(value), iso_now()),
            commit=self._depth == 0,
        )

    def delete(self, key: str) -> None:
        x(self.conn, "DELETE FROM kv_store WHERE key=?", (key,), commit=self._depth == 0)

    def keys(self) -> list[str]:
        return [str(r["key"]) for r in q(self.conn, "SELECT key FROM kv_store ORDER BY key")]

    @contextmanager
    def transaction(self) -> Iterator["SqliteStore"]:
        self._depth += 1
        try:
            yield self
        except Exception:
            self._depth -= 1
            if self._depth == 0:
                self.conn.rollback()
                log.warning("Rolled back storage transaction")
            raise
        else:
            self._depth -= 1
            if self._depth == 0:
                self.conn.commit()


def read_json(store, key: str, default: Any) -> Any:
    """
    Decode the JSON value at ``key``. Missing keys and corrupt JSON both yield
    ``default``; corruption is logged, never raised.
    """
    raw = store.get(key)
    if raw is None or raw == "":
        return default
    try:
        value = json.loads(raw)
    except ValueError:
        log.error("Corrupt JSON at %s; falling back to default", key)
        return default
    if default is not None and not isinstance(value, type(default)):
        log.error("Unexpected %s at %s; falling back to default", type(value).__name__, key)
        return default
    return value


def write_json(store, key: str, value: Any) -> None:
    store.set(key, json.dumps(value, ensure_ascii=False))


def read_text(store, key: str) -> str:
    return store.get(key) or ""


def write_text(store, key: str, value: str) -> None:
    store.set(key, str(value or ""))
