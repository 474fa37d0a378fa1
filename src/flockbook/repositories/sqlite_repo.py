from __future__ import annotations

import json
import sqlite3
import time
from pathlib import Path
from typing import Any, Callable, Optional


class SqliteRepository:
    """Local key/value storage for offline collections and the snapshot cache."""

    def __init__(self, db_path: Path | str, clock: Callable[[], float] = time.time):
        self.db_path = str(db_path)
        self.clock = clock

    def _conn(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def init_db(self) -> None:
        self.run_migrations()

    def run_migrations(self) -> None:
        conn = self._conn()
        try:
            cur = conn.cursor()
            cur.execute("BEGIN")
            cur.execute("CREATE TABLE IF NOT EXISTS schema_migrations (version INTEGER PRIMARY KEY, applied_at TEXT NOT NULL)")
            cur.execute("SELECT COALESCE(MAX(version), 0) FROM schema_migrations")
            current_version = int(cur.fetchone()[0])

            migrations = [
                (1, self._migration_v1_kv_store),
                (2, self._migration_v2_snapshot_cache),
            ]

            for version, migration in migrations:
                if version <= current_version:
                    continue
                migration(cur)
                cur.execute(
                    "INSERT INTO schema_migrations (version, applied_at) VALUES (?, datetime('now'))",
                    (version,),
                )
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise RuntimeError("Local store migration failed.") from exc
        finally:
            conn.close()

    def _migration_v1_kv_store(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS kv_store (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TEXT NOT NULL DEFAULT (datetime('now'))
        )
        """
        )

    def _migration_v2_snapshot_cache(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS snapshot_cache (
            user_key TEXT PRIMARY KEY,
            payload TEXT NOT NULL,
            stored_at REAL NOT NULL,
            ttl_seconds INTEGER NOT NULL CHECK(ttl_seconds > 0)
        )
        """
        )

    # ---------------- key/value ----------------
    def get_value(self, key: str, default: Any = None) -> Any:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT value FROM kv_store WHERE key=?", (key,))
        row = cur.fetchone()
        conn.close()
        if row is None:
            return default
        return json.loads(row[0])

    def set_value(self, key: str, value: Any) -> None:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, datetime('now'))
            ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at
            """,
            (key, json.dumps(value, ensure_ascii=False)),
        )
        conn.commit()
        conn.close()

    def delete_value(self, key: str) -> None:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("DELETE FROM kv_store WHERE key=?", (key,))
        conn.commit()
        conn.close()

    # ---------------- snapshot cache ----------------
    def get_snapshot(self, user_key: str) -> Optional[dict]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT payload, stored_at, ttl_seconds FROM snapshot_cache WHERE user_key=?", (user_key,))
        row = cur.fetchone()
        conn.close()
        if row is None:
            return None
        payload, stored_at, ttl = row
        if self.clock() - float(stored_at) > int(ttl):
            self.clear_snapshot(user_key)
            return None
        return json.loads(payload)

    def set_snapshot(self, user_key: str, payload: dict, ttl_minutes: int = 10) -> None:
        conn = self._conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO snapshot_cache (user_key, payload, stored_at, ttl_seconds) VALUES (?, ?, ?, ?)
                ON CONFLICT(user_key) DO UPDATE SET
                    payload=excluded.payload, stored_at=excluded.stored_at, ttl_seconds=excluded.ttl_seconds
                """,
                (user_key, json.dumps(payload, ensure_ascii=False), float(self.clock()), int(ttl_minutes) * 60),
            )
            conn.commit()
        finally:
            conn.close()

    def clear_snapshot(self, user_key: str) -> None:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("DELETE FROM snapshot_cache WHERE user_key=?", (user_key,))
        conn.commit()
        conn.close()

