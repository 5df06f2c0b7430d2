"""SQLite persistence for the in-progress (pending) order snapshot."""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from pos_billing.config import SNAPSHOT_DB_PATH
from pos_billing.errors import PersistenceWriteFailure
from pos_billing.models import PendingOrder

logger = logging.getLogger(__name__)

PENDING_ORDER_KEY = "pending_order"


class SnapshotStore(Protocol):
    def save(self, order: PendingOrder) -> None: ...

    def load(self) -> PendingOrder | None: ...

    def clear(self) -> None: ...


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SqliteSnapshotStore:
    """Key/value snapshot table holding the pending order as JSON."""

    def __init__(self, db_path: str | Path = SNAPSHOT_DB_PATH, key: str = PENDING_ORDER_KEY) -> None:
        self.db_path = Path(db_path)
        self.key = key
        self._bootstrapped = False

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        if not self._bootstrapped:
            self._bootstrap_schema(conn)
        return conn

    def _bootstrap_schema(self, conn: sqlite3.Connection) -> None:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS snapshots (
                key TEXT PRIMARY KEY,
                payload TEXT NOT NULL,
                saved_at TEXT NOT NULL
            );
            """
        )
        self._bootstrapped = True

    def save(self, order: PendingOrder) -> None:
        payload = json.dumps(order.to_dict(), separators=(",", ":"))
        conn = self._connect()
        try:
            with conn:
                conn.execute(
                    """
                    INSERT INTO snapshots (key, payload, saved_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET payload = excluded.payload, saved_at = excluded.saved_at
                    """,
                    (self.key, payload, _utc_now_iso()),
                )
        finally:
            conn.close()

    def load(self) -> PendingOrder | None:
        conn = self._connect()
        try:
            row = conn.execute("SELECT payload FROM snapshots WHERE key = ?", (self.key,)).fetchone()
        finally:
            conn.close()
        if row is None:
            return None
        return PendingOrder.from_dict(json.loads(row[0]))

    def clear(self) -> None:
        conn = self._connect()
        try:
            with conn:
                conn.execute("DELETE FROM snapshots WHERE key = ?", (self.key,))
        finally:
            conn.close()


class MemorySnapshotStore:
    """In-process store; keeps the serialized form so loads return fresh copies."""

    def __init__(self) -> None:
        self._payload: str | None = None

    def save(self, order: PendingOrder) -> None:
        self._payload = json.dumps(order.to_dict())

    def load(self) -> PendingOrder | None:
        if self._payload is None:
            return None
        return PendingOrder.from_dict(json.loads(self._payload))

    def clear(self) -> None:
        self._payload = None


class PersistenceBridge:
    """
    Best-effort wrapper around a snapshot store.

    Write failures are logged and reported through the return value; they
    never propagate into the cart mutation that triggered them.
    """

    def __init__(self, store: SnapshotStore) -> None:
        self.store = store
        self._restore_attempted = False
        self.last_failure: PersistenceWriteFailure | None = None

    def save(self, order: PendingOrder) -> bool:
        try:
            self.store.save(order)
        except (sqlite3.Error, OSError, TypeError, ValueError) as exc:
            return self._fail(f"Could not save pending order: {exc}")
        self.last_failure = None
        logger.debug("pending order saved lines=%d", len(order.lines))
        return True

    def clear(self) -> bool:
        try:
            self.store.clear()
        except (sqlite3.Error, OSError) as exc:
            return self._fail(f"Could not clear pending order: {exc}")
        self.last_failure = None
        logger.debug("pending order cleared")
        return True

    def _fail(self, message: str) -> bool:
        self.last_failure = PersistenceWriteFailure(message)
        logger.warning("%s", message)
        return False

    def restore_once(self) -> PendingOrder | None:
        """Load the snapshot on the first call only. Empty snapshots count as absent."""
        if self._restore_attempted:
            return None
        self._restore_attempted = True

        try:
            order = self.store.load()
        except (sqlite3.Error, OSError) as exc:
            logger.warning("Could not read pending order: %s", exc)
            return None
        except (KeyError, TypeError, ValueError, ArithmeticError) as exc:
            logger.warning("Discarding unreadable pending order: %s", exc)
            self.clear()
            return None

        if order is None or not order.lines:
            return None
        logger.info("pending order found lines=%d", len(order.lines))
        return order
