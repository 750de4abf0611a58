from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Any, Iterable

import streamlit as st

from printshop.schema import SCHEMA_SQL
from printshop.utils import iso_now

log = logging.getLogger("printshop.db")

# Storage keys that changed name over time (old -> current).
RENAMED_KEYS = {
    "printshop.products_v1": "printshop.products",
    "printshop.store_stock": "printshop.depot_stock",
}


def _connect(db_path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def connect(db_path: Path) -> sqlite3.Connection:
    """Uncached connection with the schema in place (scripts and tests)."""
    conn = _connect(db_path)
    ensure_schema(conn)
    return conn


@st.cache_resource
def get_conn(db_path: Path) -> sqlite3.Connection:
    return _connect(db_path)


def _rename_key(conn: sqlite3.Connection, old_key: str, new_key: str) -> None:
    old = conn.execute("SELECT value, updated_at FROM kv_store WHERE key=?", (old_key,)).fetchone()
    if old is None:
        return
    exists = conn.execute("SELECT 1 FROM kv_store WHERE key=?", (new_key,)).fetchone()
    if exists is None:
        conn.execute(
            "INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)",
            (new_key, old["value"], old["updated_at"]),
        )
    conn.execute("DELETE FROM kv_store WHERE key=?", (old_key,))
    conn.execute(
        "INSERT INTO kv_migrations (old_key, new_key, migrated_at) VALUES (?, ?, ?)",
        (old_key, new_key, iso_now()),
    )
    log.info("Migrated storage key %s -> %s", old_key, new_key)


def ensure_schema(conn: sqlite3.Connection) -> None:
    # Create base schema (for new installs)
    conn.executescript(SCHEMA_SQL)

    # ---- migrations for existing installs ----
    for old_key, new_key in RENAMED_KEYS.items():
        _rename_key(conn, old_key, new_key)

    conn.commit()


def q(conn: sqlite3.Connection, sql: str, params: Iterable[Any] = ()) -> list[sqlite3.Row]:
    cur = conn.execute(sql, tuple(params))
    rows = cur.fetchall()
    cur.close()
    return rows


def x(conn: sqlite3.Connection, sql: str, params: Iterable[Any] = (), *, commit: bool = True) -> int:
    cur = conn.execute(sql, tuple(params))
    if commit:
        conn.commit()
    last = cur.lastrowid
    cur.close()
    return int(last or 0)
