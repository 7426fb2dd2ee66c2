from __future__ import annotations

import logging
import os
import sqlite3
import threading
from typing import Optional, Set, Union

logger = logging.getLogger("config_vault.store")
logger.addHandler(logging.NullHandler())

_SCHEMA = """
CREATE TABLE IF NOT EXISTS {table} (
    name TEXT PRIMARY KEY,
    data TEXT NOT NULL
)
"""


class SqlitePrimaryStore:
    """Primary store backed by a single SQLite table keyed by config name."""

    def __init__(
        self, path: Union[str, "os.PathLike[str]"] = ":memory:", table: str = "config"
    ) -> None:
        if not table.isidentifier():
            raise ValueError(f"Invalid table name: {table!r}")
        self._table = table
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(str(path), check_same_thread=False)
        with self._conn:
            self._conn.execute(_SCHEMA.format(table=table))
        logger.debug("SqlitePrimaryStore opened path=%s table=%s", path, table)

    def get(self, name: str) -> Optional[str]:
        with self._lock:
            row = self._conn.execute(
                f"SELECT data FROM {self._table} WHERE name = ?", (name,)
            ).fetchone()
        return None if row is None else row[0]

    def put(self, name: str, data: str) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                f"INSERT INTO {self._table} (name, data) VALUES (?, ?) "
                "ON CONFLICT(name) DO UPDATE SET data = excluded.data",
                (name, data),
            )
        logger.debug("Primary record upserted name=%r", name)

    def list_names_with_prefix(self, prefix: str) -> Set[str]:
        # substr avoids LIKE wildcards in the prefix ('_' is legal in names)
        with self._lock:
            rows = self._conn.execute(
                f"SELECT name FROM {self._table} WHERE substr(name, 1, ?) = ?",
                (len(prefix), prefix),
            ).fetchall()
        return {r[0] for r in rows}

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self) -> "SqlitePrimaryStore":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
