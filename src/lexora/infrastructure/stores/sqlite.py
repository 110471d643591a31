"""
SQLite repositories.

Two tables:
- card_states: one row per (user_id, word_id), full-row replace guarded by `version`
- quota_ledger: one row per (user_id, day_key), atomic upsert-increment;
  `updated_at` holds the newest write time for stale-write detection

Timestamps are stored as integer microseconds since the Unix epoch (UTC) so
ordering in SQL matches ordering in Python.
"""

import logging
import sqlite3
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path

from lexora.domain.errors import ConcurrentModification, StoreUnavailable
from lexora.domain.models import CardState, DailyEntry, QueueState
from lexora.domain.ports import CardStateRepository, QuotaLedgerRepository

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
MICROSECOND = timedelta(microseconds=1)

SCHEMA = """
CREATE TABLE IF NOT EXISTS card_states (
    id TEXT NOT NULL UNIQUE,
    user_id TEXT NOT NULL,
    word_id TEXT NOT NULL,
    queue_state TEXT NOT NULL,
    interval_days REAL NOT NULL,
    ease_factor REAL NOT NULL,
    due_at INTEGER NOT NULL,
    lapses INTEGER NOT NULL DEFAULT 0,
    reps INTEGER NOT NULL DEFAULT 0,
    created_at INTEGER,
    last_reviewed_at INTEGER,
    version INTEGER NOT NULL,
    PRIMARY KEY (user_id, word_id)
);
CREATE INDEX IF NOT EXISTS idx_card_states_due ON card_states (user_id, due_at, id);

CREATE TABLE IF NOT EXISTS quota_ledger (
    user_id TEXT NOT NULL,
    day_key TEXT NOT NULL,
    used_today INTEGER NOT NULL DEFAULT 0,
    reviewed_count INTEGER NOT NULL DEFAULT 0,
    correct_count INTEGER NOT NULL DEFAULT 0,
    updated_at INTEGER NOT NULL,
    PRIMARY KEY (user_id, day_key)
);
"""

CARD_COLUMNS = (
    "id, user_id, word_id, queue_state, interval_days, ease_factor, due_at, "
    "lapses, reps, created_at, last_reviewed_at, version"
)


def to_micros(dt: datetime | None) -> int | None:
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return (dt - EPOCH) // MICROSECOND


def from_micros(value: int | None) -> datetime | None:
    if value is None:
        return None
    return EPOCH + timedelta(microseconds=value)


class SqliteDatabase:
    """
    Shared connection wrapper.

    Usage:
        db = SqliteDatabase(path)
        with db.transaction() as conn:
            conn.execute(...)
    """

    def __init__(self, path: Path | str = ":memory:"):
        self.path = str(path)
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        try:
            self._conn = sqlite3.connect(
                self.path, check_same_thread=False, isolation_level=None
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.executescript(SCHEMA)
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Cannot open database {self.path}: {e}") from e
        logger.debug(f"SQLite store ready at {self.path}")

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                self._conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                raise StoreUnavailable(f"Database busy: {e}") from e
            try:
                yield self._conn
            except sqlite3.Error as e:
                self._conn.execute("ROLLBACK")
                raise StoreUnavailable(f"Database error: {e}") from e
            except BaseException:
                self._conn.execute("ROLLBACK")
                raise
            else:
                self._conn.execute("COMMIT")

    def query(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        with self._lock:
            try:
                return self._conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                raise StoreUnavailable(f"Database error: {e}") from e

    def close(self):
        with self._lock:
            self._conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def _row_to_card(row: sqlite3.Row) -> CardState:
    return CardState(
        id=row["id"],
        user_id=row["user_id"],
        word_id=row["word_id"],
        queue_state=QueueState(row["queue_state"]),
        interval_days=row["interval_days"],
        ease_factor=row["ease_factor"],
        due_at=from_micros(row["due_at"]),
        lapses=row["lapses"],
        reps=row["reps"],
        created_at=from_micros(row["created_at"]),
        last_reviewed_at=from_micros(row["last_reviewed_at"]),
        version=row["version"],
    )


class SqliteCardStateRepository(CardStateRepository):
    def __init__(self, db: SqliteDatabase):
        self.db = db

    async def get(self, user_id: str, word_id: str) -> CardState | None:
        rows = self.db.query(
            f"SELECT {CARD_COLUMNS} FROM card_states WHERE user_id = ? AND word_id = ?",
            (user_id, word_id),
        )
        return _row_to_card(rows[0]) if rows else None

    async def due_before(
        self,
        user_id: str,
        now: datetime,
        limit: int | None = None,
        states: Iterable[QueueState] | None = None,
    ) -> list[CardState]:
        sql = f"SELECT {CARD_COLUMNS} FROM card_states WHERE user_id = ? AND due_at <= ?"
        params: list = [user_id, to_micros(now)]
        if states is not None:
            values = [s.value for s in states]
            if not values:
                return []
            sql += f" AND queue_state IN ({','.join('?' for _ in values)})"
            params.extend(values)
        sql += " ORDER BY due_at ASC, id ASC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        return [_row_to_card(row) for row in self.db.query(sql, tuple(params))]

    async def put(self, state: CardState, expected_version: int | None) -> CardState:
        values = (
            state.id,
            state.queue_state.value,
            state.interval_days,
            state.ease_factor,
            to_micros(state.due_at),
            state.lapses,
            state.reps,
            to_micros(state.created_at),
            to_micros(state.last_reviewed_at),
        )
        with self.db.transaction() as conn:
            row = conn.execute(
                "SELECT version FROM card_states WHERE user_id = ? AND word_id = ?",
                (state.user_id, state.word_id),
            ).fetchone()
            actual = row["version"] if row else None
            if actual != expected_version:
                raise ConcurrentModification(state.user_id, state.word_id, expected_version, actual)

            new_version = (actual or 0) + 1
            if actual is None:
                conn.execute(
                    f"INSERT INTO card_states ({CARD_COLUMNS}) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        state.id,
                        state.user_id,
                        state.word_id,
                        *values[1:],
                        new_version,
                    ),
                )
            else:
                conn.execute(
                    "UPDATE card_states SET id = ?, queue_state = ?, interval_days = ?, "
                    "ease_factor = ?, due_at = ?, lapses = ?, reps = ?, created_at = ?, "
                    "last_reviewed_at = ?, version = ? "
                    "WHERE user_id = ? AND word_id = ? AND version = ?",
                    (*values, new_version, state.user_id, state.word_id, actual),
                )

        return replace(state, version=new_version)

    async def list_for_user(self, user_id: str) -> list[CardState]:
        rows = self.db.query(
            f"SELECT {CARD_COLUMNS} FROM card_states WHERE user_id = ? ORDER BY id",
            (user_id,),
        )
        return [_row_to_card(row) for row in rows]


class SqliteQuotaLedgerRepository(QuotaLedgerRepository):
    def __init__(self, db: SqliteDatabase):
        self.db = db

    async def get(self, user_id: str, day_key: str) -> DailyEntry | None:
        rows = self.db.query(
            "SELECT user_id, day_key, used_today, reviewed_count, correct_count "
            "FROM quota_ledger WHERE user_id = ? AND day_key = ?",
            (user_id, day_key),
        )
        return DailyEntry(**dict(rows[0])) if rows else None

    async def increment(
        self,
        user_id: str,
        day_key: str,
        at: datetime,
        used: int = 0,
        reviewed: int = 0,
        correct: int = 0,
    ) -> DailyEntry:
        at_micros = to_micros(at)
        with self.db.transaction() as conn:
            newest = conn.execute(
                "SELECT day_key, updated_at FROM quota_ledger WHERE user_id = ? "
                "ORDER BY updated_at DESC LIMIT 1",
                (user_id,),
            ).fetchone()
            if (
                newest is not None
                and at_micros < newest["updated_at"]
                and newest["day_key"] > day_key
            ):
                day_key = newest["day_key"]

            conn.execute(
                "INSERT INTO quota_ledger "
                "(user_id, day_key, used_today, reviewed_count, correct_count, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?) "
                "ON CONFLICT (user_id, day_key) DO UPDATE SET "
                "used_today = used_today + excluded.used_today, "
                "reviewed_count = reviewed_count + excluded.reviewed_count, "
                "correct_count = correct_count + excluded.correct_count, "
                "updated_at = MAX(updated_at, excluded.updated_at)",
                (user_id, day_key, used, reviewed, correct, at_micros),
            )
            row = conn.execute(
                "SELECT user_id, day_key, used_today, reviewed_count, correct_count "
                "FROM quota_ledger WHERE user_id = ? AND day_key = ?",
                (user_id, day_key),
            ).fetchone()
        return DailyEntry(**dict(row))
