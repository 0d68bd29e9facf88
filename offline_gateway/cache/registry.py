from __future__ import annotations

import json
import os
import sqlite3
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable

from offline_gateway.worker.types import WorkerRequest, WorkerResponse


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class CacheHandle:
    name: str
    registry: "CacheRegistry"

    def put(self, request: WorkerRequest, response: WorkerResponse) -> None:
        self.registry.put(self, request, response)

    def match(self, request: WorkerRequest) -> WorkerResponse | None:
        return self.registry.match_in(self.name, request)


class CacheRegistry:
    """Named cache partitions of request/response pairs backed by SQLite.

    Each (partition, request key) holds at most one entry; ``put`` overwrites.
    Partitions are matched in creation order, oldest first.
    """

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        self._lock = threading.Lock()
        directory = os.path.dirname(db_path)
        if directory and db_path != ":memory:":
            os.makedirs(directory, exist_ok=True)

        self._conn = sqlite3.connect(
            db_path,
            check_same_thread=False,
            timeout=5,
            isolation_level=None,
        )
        if db_path != ":memory:":
            self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute("PRAGMA synchronous=NORMAL;")
        self._conn.execute("PRAGMA busy_timeout=5000;")
        self._conn.execute("PRAGMA foreign_keys=ON;")
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS cache_partitions (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE,
                created_at TEXT NOT NULL
            );
            """
        )
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS cache_entries (
                partition TEXT NOT NULL REFERENCES cache_partitions (name) ON DELETE CASCADE,
                request_key TEXT NOT NULL,
                method TEXT NOT NULL,
                url TEXT NOT NULL,
                status INTEGER NOT NULL,
                headers_json TEXT NOT NULL,
                body BLOB NOT NULL,
                stored_at TEXT NOT NULL,
                PRIMARY KEY (partition, request_key)
            );
            """
        )

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def open(self, name: str) -> CacheHandle:
        with self._lock:
            self._conn.execute(
                "INSERT OR IGNORE INTO cache_partitions (name, created_at) VALUES (?, ?)",
                (name, _utc_now()),
            )
        return CacheHandle(name=name, registry=self)

    def has(self, name: str) -> bool:
        with self._lock:
            row = self._conn.execute(
                "SELECT 1 FROM cache_partitions WHERE name = ?", (name,)
            ).fetchone()
        return row is not None

    def keys(self) -> list[str]:
        with self._lock:
            rows = self._conn.execute("SELECT name FROM cache_partitions ORDER BY seq").fetchall()
        return [row[0] for row in rows]

    def delete(self, name: str) -> bool:
        with self._lock:
            cur = self._conn.execute("DELETE FROM cache_partitions WHERE name = ?", (name,))
        return cur.rowcount > 0

    def delete_all_except(self, keep: Iterable[str]) -> list[str]:
        keep_names = set(keep)
        deleted = []
        for name in self.keys():
            if name in keep_names:
                continue
            if self.delete(name):
                deleted.append(name)
        return deleted

    def put(self, handle: CacheHandle | str, request: WorkerRequest, response: WorkerResponse) -> None:
        name = handle.name if isinstance(handle, CacheHandle) else handle
        self.put_many(name, [(request, response)])

    def put_many(self, name: str, entries: Iterable[tuple[WorkerRequest, WorkerResponse]]) -> int:
        """Store every entry in one transaction; either all land or none do."""
        rows = [
            (
                name,
                request.key,
                request.method,
                request.url,
                response.status,
                json.dumps(response.headers, ensure_ascii=False),
                bytes(response.body),
                _utc_now(),
            )
            for request, response in entries
        ]
        with self._lock:
            cursor = self._conn.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            try:
                cursor.execute(
                    "INSERT OR IGNORE INTO cache_partitions (name, created_at) VALUES (?, ?)",
                    (name, _utc_now()),
                )
                cursor.executemany(
                    """
                    INSERT INTO cache_entries (
                        partition, request_key, method, url, status, headers_json, body, stored_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT (partition, request_key) DO UPDATE SET
                        status = excluded.status,
                        headers_json = excluded.headers_json,
                        body = excluded.body,
                        stored_at = excluded.stored_at
                    """,
                    rows,
                )
                cursor.execute("COMMIT")
            except Exception:
                cursor.execute("ROLLBACK")
                raise
        return len(rows)

    def match_in(self, name: str, request: WorkerRequest) -> WorkerResponse | None:
        with self._lock:
            row = self._conn.execute(
                """
                SELECT status, headers_json, body, url
                FROM cache_entries
                WHERE partition = ? AND request_key = ?
                """,
                (name, request.key),
            ).fetchone()
        return _row_to_response(row)

    def match(self, request: WorkerRequest) -> WorkerResponse | None:
        with self._lock:
            row = self._conn.execute(
                """
                SELECT e.status, e.headers_json, e.body, e.url
                FROM cache_entries e
                JOIN cache_partitions p ON p.name = e.partition
                WHERE e.request_key = ?
                ORDER BY p.seq
                LIMIT 1
                """,
                (request.key,),
            ).fetchone()
        return _row_to_response(row)

    def entries(self, name: str) -> list[str]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT request_key FROM cache_entries WHERE partition = ? ORDER BY request_key",
                (name,),
            ).fetchall()
        return [row[0] for row in rows]


def _row_to_response(row) -> WorkerResponse | None:
    if not row:
        return None
    return WorkerResponse(
        status=int(row[0]),
        headers=json.loads(row[1]) if row[1] else {},
        body=bytes(row[2] or b""),
        url=row[3] or "",
    )
