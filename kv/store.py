"""
kv/store.py -- SQLAlchemy-backed key-value store for Alumni Connect.

Every record in the application (users, sessions, events, jobs, news) lives
in one table keyed by a namespaced string such as "user:alice@alumni.edu" or
"event:e1". Values are arbitrary JSON documents. Readers retrieve a whole
namespace with get_by_prefix().

Uses SQLAlchemy Core so swapping SQLite for PostgreSQL is a connection string
change, not a rewrite. Upserts use the dialect's native ON CONFLICT clause.

Security: all queries use bound parameters. LIKE wildcards in a prefix are
escaped (autoescape=True), so get_by_prefix("a_b") never matches "axb".

Usage:
    store = KVStore()                                 # SQLite default
    store = KVStore("postgresql://user:pw@host/db")   # PostgreSQL
    store.set("event:e1", {"id": "e1", "title": "Homecoming"})
    store.get("event:e1")              # returns the value or None
    store.get_by_prefix("event:")      # every event, ordered by key
    store.items_by_prefix("event:")    # same, as (key, value) pairs
    store.add("user:a@b.c", {...})     # insert-if-absent, returns bool
    store.delete("event:e1")
    store.close()

Layer rule: no imports from api/, auth/, or admin/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy import JSON, Column, MetaData, String, Table, create_engine, event
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError

from core.config import get_settings

logger = logging.getLogger("alumni.kv")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_kv = Table(
    "kv_store",
    _metadata,
    Column("key", String(512), primary_key=True),
    Column("value", JSON, nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block during writes."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class KVStore:
    """Durable string-key -> JSON-value mapping with prefix scans.

    Writes are committed before the method returns, so every subsequent call
    (from any thread) observes them.
    """

    def __init__(self, db_url: str | None = None) -> None:
        db_url = db_url or get_settings().database_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite") and ":memory:" not in db_url and "mode=memory" not in db_url:
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Single-key operations
    # ------------------------------------------------------------------

    def get(self, key: str) -> Any | None:
        """Return the value stored at key, or None if absent."""
        with self.engine.connect() as conn:
            row = conn.execute(_kv.select().where(_kv.c.key == key)).fetchone()
        return row.value if row is not None else None

    def set(self, key: str, value: Any) -> None:
        """Store value at key, replacing any existing value."""
        with self.engine.begin() as conn:
            self._upsert(conn, [{"key": key, "value": value}])

    def add(self, key: str, value: Any) -> bool:
        """Insert value at key only if the key is absent.

        Returns True if the value was written, False if the key already held a
        value (which is left untouched). The primary key makes this safe
        against concurrent writers: of two racing adds, exactly one wins.
        """
        try:
            with self.engine.begin() as conn:
                conn.execute(_kv.insert().values(key=key, value=value))
        except IntegrityError:
            return False
        return True

    def delete(self, key: str) -> None:
        """Remove key. Deleting an absent key is a no-op."""
        with self.engine.begin() as conn:
            conn.execute(_kv.delete().where(_kv.c.key == key))

    # ------------------------------------------------------------------
    # Batch operations
    # ------------------------------------------------------------------

    def mget(self, keys: Iterable[str]) -> list[Any]:
        """Return the values present at keys, in the order given. Absent keys are skipped."""
        keys = list(keys)
        if not keys:
            return []
        with self.engine.connect() as conn:
            rows = conn.execute(_kv.select().where(_kv.c.key.in_(keys))).fetchall()
        found = {row.key: row.value for row in rows}
        return [found[k] for k in keys if k in found]

    def mset(self, items: Mapping[str, Any]) -> None:
        """Upsert several key/value pairs in one transaction."""
        if not items:
            return
        with self.engine.begin() as conn:
            self._upsert(conn, [{"key": k, "value": v} for k, v in items.items()])

    def mdel(self, keys: Iterable[str]) -> None:
        """Delete several keys in one transaction. Absent keys are ignored."""
        keys = list(keys)
        if not keys:
            return
        with self.engine.begin() as conn:
            conn.execute(_kv.delete().where(_kv.c.key.in_(keys)))

    # ------------------------------------------------------------------
    # Prefix scan
    # ------------------------------------------------------------------

    def get_by_prefix(self, prefix: str) -> list[Any]:
        """Return every value whose key starts with prefix, ordered by key."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _kv.select().where(_kv.c.key.startswith(prefix, autoescape=True)).order_by(_kv.c.key)
            ).fetchall()
        return [row.value for row in rows]

    def items_by_prefix(self, prefix: str) -> list[tuple[str, Any]]:
        """Like get_by_prefix, but returns (key, value) pairs."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _kv.select().where(_kv.c.key.startswith(prefix, autoescape=True)).order_by(_kv.c.key)
            ).fetchall()
        return [(row.key, row.value) for row in rows]

    def close(self) -> None:
        self.engine.dispose()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _upsert(self, conn: Connection, rows: list[dict]) -> None:
        dialect = self.engine.dialect.name
        if dialect == "postgresql":
            stmt = pg_insert(_kv).values(rows)
        elif dialect == "sqlite":
            stmt = sqlite_insert(_kv).values(rows)
        else:
            raise NotImplementedError(f"Upsert is not supported for the {dialect!r} dialect")
        conn.execute(stmt.on_conflict_do_update(index_elements=[_kv.c.key], set_={"value": stmt.excluded.value}))
