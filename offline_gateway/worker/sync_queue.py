from __future__ import annotations

import json
import logging
import os
import sqlite3
import threading
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from offline_gateway.worker.network import NetworkError
from offline_gateway.worker.types import WorkerRequest

logger = logging.getLogger(__name__)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class PendingSyncItem:
    """A client write captured while offline, waiting to be replayed."""

    id: str
    seq: int
    tag: str
    endpoint: str
    payload: Any
    synced: bool = False
    attempts: int = 0
    abandoned: bool = False
    last_error: str | None = None
    created_at: str = ""
    synced_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "tag": self.tag,
            "endpoint": self.endpoint,
            "payload": self.payload,
            "synced": self.synced,
            "attempts": self.attempts,
            "abandoned": self.abandoned,
            "last_error": self.last_error,
            "created_at": self.created_at,
            "synced_at": self.synced_at,
        }


@dataclass
class SyncReport:
    """Result of one replay pass over the pending queue."""

    tag: str
    synced_ids: list[str] = field(default_factory=list)
    failed_ids: list[str] = field(default_factory=list)
    abandoned_ids: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return not self.failed_ids

    def to_dict(self) -> dict[str, Any]:
        return {
            "tag": self.tag,
            "success": self.success,
            "synced_ids": list(self.synced_ids),
            "failed_ids": list(self.failed_ids),
            "abandoned_ids": list(self.abandoned_ids),
            "duration_seconds": self.duration_seconds,
        }


_COLUMNS = "id, seq, tag, endpoint, payload_json, synced, attempts, abandoned, last_error, created_at, synced_at"


class SyncStore:
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
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS pending_sync_items (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT NOT NULL UNIQUE,
                tag TEXT NOT NULL,
                endpoint TEXT NOT NULL,
                payload_json TEXT NOT NULL,
                synced INTEGER NOT NULL DEFAULT 0,
                attempts INTEGER NOT NULL DEFAULT 0,
                abandoned INTEGER NOT NULL DEFAULT 0,
                last_error TEXT,
                created_at TEXT NOT NULL,
                synced_at TEXT
            );
            """
        )
        self._conn.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_pending_sync_lookup
            ON pending_sync_items (tag, synced, abandoned, seq);
            """
        )

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def enqueue(self, payload: Any, *, tag: str, endpoint: str) -> PendingSyncItem:
        item_id = uuid.uuid4().hex
        created_at = _utc_now()
        with self._lock:
            cur = self._conn.execute(
                """
                INSERT INTO pending_sync_items (id, tag, endpoint, payload_json, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (item_id, tag, endpoint, json.dumps(payload, ensure_ascii=False), created_at),
            )
            seq = int(cur.lastrowid or 0)
        logger.info("sw_sync_enqueued id=%s tag=%s endpoint=%s", item_id, tag, endpoint)
        return PendingSyncItem(id=item_id, seq=seq, tag=tag, endpoint=endpoint, payload=payload, created_at=created_at)

    def get(self, item_id: str) -> PendingSyncItem | None:
        with self._lock:
            row = self._conn.execute(
                f"SELECT {_COLUMNS} FROM pending_sync_items WHERE id = ?", (item_id,)
            ).fetchone()
        return _row_to_item(row) if row else None

    def pending(self, tag: str) -> list[PendingSyncItem]:
        with self._lock:
            rows = self._conn.execute(
                f"""
                SELECT {_COLUMNS} FROM pending_sync_items
                WHERE tag = ? AND synced = 0 AND abandoned = 0
                ORDER BY seq
                """,
                (tag,),
            ).fetchall()
        return [_row_to_item(row) for row in rows]

    def all(self, tag: str | None = None) -> list[PendingSyncItem]:
        query = f"SELECT {_COLUMNS} FROM pending_sync_items"
        params: tuple[Any, ...] = ()
        if tag is not None:
            query += " WHERE tag = ?"
            params = (tag,)
        with self._lock:
            rows = self._conn.execute(query + " ORDER BY seq", params).fetchall()
        return [_row_to_item(row) for row in rows]

    def mark_synced(self, item_id: str) -> None:
        with self._lock:
            self._conn.execute(
                """
                UPDATE pending_sync_items
                SET synced = 1, attempts = attempts + 1, last_error = NULL, synced_at = ?
                WHERE id = ?
                """,
                (_utc_now(), item_id),
            )

    def record_failure(self, item_id: str, error: str, *, max_attempts: int = 0) -> bool:
        """Count a failed replay. Returns True when the item is now abandoned."""
        with self._lock:
            self._conn.execute(
                "UPDATE pending_sync_items SET attempts = attempts + 1, last_error = ? WHERE id = ?",
                (error[:500], item_id),
            )
            if max_attempts <= 0:
                return False
            cur = self._conn.execute(
                """
                UPDATE pending_sync_items SET abandoned = 1
                WHERE id = ? AND synced = 0 AND attempts >= ?
                """,
                (item_id, max_attempts),
            )
        return cur.rowcount > 0


def _row_to_item(row) -> PendingSyncItem:
    return PendingSyncItem(
        id=row[0],
        seq=int(row[1]),
        tag=row[2],
        endpoint=row[3],
        payload=json.loads(row[4]) if row[4] else None,
        synced=bool(row[5]),
        attempts=int(row[6] or 0),
        abandoned=bool(row[7]),
        last_error=row[8],
        created_at=row[9] or "",
        synced_at=row[10],
    )


async def replay_pending(state, tag: str) -> SyncReport:
    """POST every unsynced item for ``tag`` in enqueue order, one at a time."""
    started_at = time.perf_counter()
    report = SyncReport(tag=tag)
    store: SyncStore = state.sync_store
    max_attempts = state.settings.sync_max_attempts

    for item in store.pending(tag):
        request = WorkerRequest(
            url=item.endpoint,
            method="POST",
            headers={
                "content-type": "application/json",
                "idempotency-key": item.id,
            },
            body=json.dumps(item.payload, ensure_ascii=False).encode("utf-8"),
        )
        try:
            response = await state.network.fetch(request)
        except NetworkError as exc:
            error = str(exc)
        else:
            if response.ok:
                store.mark_synced(item.id)
                report.synced_ids.append(item.id)
                continue
            error = f"HTTP {response.status}"

        logger.warning("sw_sync_replay_failed id=%s tag=%s error=%s", item.id, tag, error)
        report.failed_ids.append(item.id)
        if store.record_failure(item.id, error, max_attempts=max_attempts):
            logger.warning(
                "sw_sync_item_abandoned id=%s tag=%s max_attempts=%d", item.id, tag, max_attempts
            )
            report.abandoned_ids.append(item.id)

    report.duration_seconds = round(time.perf_counter() - started_at, 4)
    logger.info(
        "sw_sync_complete tag=%s synced=%d failed=%d",
        tag,
        len(report.synced_ids),
        len(report.failed_ids),
    )
    return report
