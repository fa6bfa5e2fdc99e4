# src/terceiro_olho/storage/store.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import time
from collections.abc import Iterable
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Nominal browser localStorage quota, used for usage reports only.
_QUOTA_BYTES = 5 * 1024 * 1024


class LocalStore:
    """
    SQLite key/value store standing in for the browser's localStorage.

    Values are raw JSON blobs under string keys. Reads and writes are "safe":
    - undecodable values read as the default
    - failed writes are logged and reported as False

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "local_store.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("LocalStore ready db=%s keys=%s", self._db_path, len(self.keys()))

    @property
    def path(self) -> Path:
        return self._db_path

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    def _get_raw(self, key: str) -> str | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
            return None if row is None else str(row["value"])
        finally:
            conn.close()

    def _set_raw(self, key: str, raw: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                "INSERT INTO kv(key, value, updated_at) VALUES (?, ?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at",
                (key, raw, time.time()),
            )
            conn.commit()
        finally:
            conn.close()

    # ---- public API ----

    def get(self, key: str, default: Any = None) -> Any:
        try:
            raw = self._get_raw(key)
        except sqlite3.Error:
            logger.exception("Failed to read %s from the local store", key)
            return default
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError:
            logger.error("Undecodable value under %s; using default", key)
            return default

    def set(self, key: str, value: Any) -> bool:
        try:
            raw = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError):
            logger.exception("Failed to JSON-encode value for %s", key)
            return False
        try:
            self._set_raw(key, raw)
        except sqlite3.Error:
            logger.exception("Failed to save %s to the local store", key)
            return False
        return True

    def remove(self, key: str) -> bool:
        conn = None
        try:
            conn = self._get_conn()
            conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            conn.commit()
            return True
        except sqlite3.Error:
            logger.exception("Failed to remove %s from the local store", key)
            return False
        finally:
            if conn is not None:
                conn.close()

    def clear(self) -> bool:
        conn = None
        try:
            conn = self._get_conn()
            conn.execute("DELETE FROM kv")
            conn.commit()
            return True
        except sqlite3.Error:
            logger.exception("Failed to clear the local store")
            return False
        finally:
            if conn is not None:
                conn.close()

    def keys(self, prefix: str = "") -> list[str]:
        conn = None
        try:
            conn = self._get_conn()
            if prefix:
                # Escape LIKE wildcards in the prefix.
                pattern = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_") + "%"
                rows = conn.execute(
                    "SELECT key FROM kv WHERE key LIKE ? ESCAPE '\\' ORDER BY key", (pattern,)
                ).fetchall()
            else:
                rows = conn.execute("SELECT key FROM kv ORDER BY key").fetchall()
            return [str(r["key"]) for r in rows]
        except sqlite3.Error:
            logger.exception("Failed to list keys of the local store")
            return []
        finally:
            if conn is not None:
                conn.close()

    def is_available(self) -> bool:
        probe = "__store_probe__"
        try:
            self._set_raw(probe, "1")
            self.remove(probe)
            return True
        except sqlite3.Error:
            return False

    def usage_info(self) -> dict[str, float]:
        conn = None
        try:
            conn = self._get_conn()
            row = conn.execute(
                "SELECT COALESCE(SUM(LENGTH(key) + LENGTH(value)), 0) AS used FROM kv"
            ).fetchone()
            used = int(row["used"] or 0)
        except sqlite3.Error:
            logger.exception("Failed to measure the local store")
            return {"used": 0, "total": _QUOTA_BYTES, "available": 0, "percentage": 0}
        finally:
            if conn is not None:
                conn.close()
        available = _QUOTA_BYTES - used
        percentage = round(used / _QUOTA_BYTES * 100, 2)
        return {"used": used, "total": _QUOTA_BYTES, "available": available, "percentage": percentage}

    def export_data(self, keys: Iterable[str] | None = None) -> dict[str, str]:
        """Raw JSON blobs for the given keys (all keys by default). Unreadable keys are skipped."""
        wanted = list(keys) if keys is not None else self.keys()
        out: dict[str, str] = {}
        for key in wanted:
            try:
                raw = self._get_raw(key)
            except sqlite3.Error:
                logger.exception("Failed to export %s", key)
                continue
            if raw is not None:
                out[key] = raw
        return out

    def import_data(self, data: dict[str, str], *, overwrite: bool = False) -> int:
        """Load raw blobs; existing keys are kept unless overwrite is set. Returns keys written."""
        written = 0
        for key, raw in data.items():
            try:
                json.loads(raw)
            except (TypeError, ValueError):
                logger.warning("Skipping import of %s: value is not JSON", key)
                continue
            try:
                if not overwrite and self._get_raw(key) is not None:
                    continue
                self._set_raw(key, raw)
            except sqlite3.Error:
                logger.exception("Failed to import %s", key)
                continue
            written += 1
        return written
