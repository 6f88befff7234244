"""Cache journal: tracks tags and priorities of cache entries.

The journal answers "which cache keys must be invalidated" for a set of
conditions. ``SQLiteJournal`` keeps that index in a SQLite file inside
the container's temp directory.
"""

import logging
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


class Journal(ABC):
    """Abstract cache journal."""

    TAGS = "tags"
    PRIORITY = "priority"
    ALL = "all"

    @abstractmethod
    def write(self, key: str, dependencies: dict[str, Any]) -> None:
        """Record the tags/priority of a cache entry, replacing older ones."""
        pass

    @abstractmethod
    def clean(self, conditions: dict[str, Any]) -> Optional[list[str]]:
        """Remove matching entries.

        Returns the removed keys, or None when ``conditions[ALL]`` is set
        and the whole journal was dropped.
        """
        pass

    def close(self) -> None:
        """Release any open handles."""


class SQLiteJournal(Journal):
    """SQLite-backed journal.

    Note: All methods are synchronous; the connection is opened lazily
    and the database file (and its directory) is created on first use.
    """

    def __init__(self, path: str):
        self.path = path
        self._conn: Optional[sqlite3.Connection] = None

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.path)
            self._conn.row_factory = sqlite3.Row
            self._ensure_initialized()
        return self._conn

    def _ensure_initialized(self) -> None:
        conn = self._conn
        conn.execute("""
            CREATE TABLE IF NOT EXISTS tags (
                key TEXT NOT NULL,
                tag TEXT NOT NULL
            )
        """)
        conn.execute("CREATE INDEX IF NOT EXISTS tags_tag ON tags (tag)")
        conn.execute("CREATE INDEX IF NOT EXISTS tags_key ON tags (key)")
        conn.execute("""
            CREATE TABLE IF NOT EXISTS priorities (
                key TEXT PRIMARY KEY,
                priority INTEGER NOT NULL
            )
        """)
        conn.commit()

    def write(self, key: str, dependencies: dict[str, Any]) -> None:
        conn = self._get_conn()
        conn.execute("DELETE FROM tags WHERE key = ?", (key,))
        conn.execute("DELETE FROM priorities WHERE key = ?", (key,))

        tags = dependencies.get(self.TAGS) or []
        conn.executemany(
            "INSERT INTO tags (key, tag) VALUES (?, ?)",
            [(key, tag) for tag in dict.fromkeys(tags)],
        )
        priority = dependencies.get(self.PRIORITY)
        if priority is not None:
            conn.execute(
                "INSERT INTO priorities (key, priority) VALUES (?, ?)",
                (key, int(priority)),
            )
        conn.commit()

    def clean(self, conditions: dict[str, Any]) -> Optional[list[str]]:
        conn = self._get_conn()
        if conditions.get(self.ALL):
            conn.execute("DELETE FROM tags")
            conn.execute("DELETE FROM priorities")
            conn.commit()
            logger.debug(f"Journal {self.path} cleaned")
            return None

        keys: set[str] = set()
        tags = conditions.get(self.TAGS) or []
        if tags:
            placeholders = ", ".join("?" for _ in tags)
            rows = conn.execute(
                f"SELECT DISTINCT key FROM tags WHERE tag IN ({placeholders})",
                list(tags),
            ).fetchall()
            keys.update(row["key"] for row in rows)

        priority = conditions.get(self.PRIORITY)
        if priority is not None:
            rows = conn.execute(
                "SELECT key FROM priorities WHERE priority <= ?", (int(priority),)
            ).fetchall()
            keys.update(row["key"] for row in rows)

        if keys:
            placeholders = ", ".join("?" for _ in keys)
            conn.execute(f"DELETE FROM tags WHERE key IN ({placeholders})", list(keys))
            conn.execute(f"DELETE FROM priorities WHERE key IN ({placeholders})", list(keys))
            conn.commit()
        return sorted(keys)

    def keys(self) -> list[str]:
        """All keys currently recorded in the journal."""
        conn = self._get_conn()
        rows = conn.execute(
            "SELECT key FROM tags UNION SELECT key FROM priorities ORDER BY key"
        ).fetchall()
        return [row["key"] for row in rows]

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
