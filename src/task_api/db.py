from __future__ import annotations

import logging
import os
import queue
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Generator, List, Optional

from .errors import InternalError, NotFoundError
from .models import TaskEntity
from .repositories import TASK_NOT_FOUND_MESSAGE, ListQuery, TaskStorage, check_patch
from .schemas import TaskPatch

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"
# Largest value sqlite3 can bind as an INTEGER
SQLITE_MAX_INT = 2**63 - 1


@dataclass(frozen=True)
class _Cols:
    table: str = "tasks"
    id: str = "id"
    title: str = "title"
    completed: str = "completed"
    created_at: str = "created_at"


_COLS = _Cols()
_SELECT = f"SELECT {_COLS.id}, {_COLS.title}, {_COLS.completed}, {_COLS.created_at} FROM {_COLS.table}"


def _format_ts(value: datetime) -> str:
    # Fixed-width text keeps lexical order equal to chronological order
    return value.isoformat(timespec="microseconds")


class ConnectionPool:
    """
    Bounded pool of sqlite3 connections shared across request threads.

    At most `size` connections are checked out at once; further callers block
    until one is returned. Connections are opened lazily and reused. Once the
    pool is closed, connections are closed on return instead of being reused.
    """

    def __init__(self, db_path: str, size: int = 5, timeout: float = 5.0) -> None:
        self._db_path = db_path
        self._timeout = timeout
        self._idle: "queue.LifoQueue[sqlite3.Connection]" = queue.LifoQueue()
        self._slots = threading.BoundedSemaphore(max(size, 1))
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _open(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, timeout=self._timeout, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Check out a connection; commit on success, roll back on error."""
        with self._slots:
            try:
                conn = self._idle.get_nowait()
            except queue.Empty:
                conn = self._open()
            try:
                yield conn
                conn.commit()
            except BaseException:
                conn.rollback()
                raise
            finally:
                if self._closed:
                    conn.close()
                else:
                    self._idle.put(conn)

    def close(self) -> None:
        """Close idle connections now; checked-out ones are closed when returned."""
        self._closed = True
        while True:
            try:
                conn = self._idle.get_nowait()
            except queue.Empty:
                break
            conn.close()


class SQLiteTaskStorage(TaskStorage):
    """
    SQLite storage implementing the TaskStorage contract.

    Each operation checks out one pooled connection and commits on its own;
    there is no transaction spanning two operations, so a concurrent update
    and delete on the same id may land in either order.
    """

    def __init__(self, db_path: str, pool_size: int = 5) -> None:
        if db_path != MEMORY_DB:
            os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        else:
            # Every connection to :memory: is its own database
            pool_size = 1
        self._db_path = db_path
        self._pool = ConnectionPool(db_path, size=pool_size)
        self._init_db()

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        try:
            with self._pool.connection() as conn:
                yield conn
        except sqlite3.Error as e:
            raise InternalError(str(e)) from e

    def _init_db(self) -> None:
        with self._conn() as conn:
            if self._db_path != MEMORY_DB:
                conn.execute("PRAGMA journal_mode=WAL")
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_COLS.table} (
                    {_COLS.id} TEXT PRIMARY KEY,
                    {_COLS.title} TEXT,
                    {_COLS.completed} BOOLEAN,
                    {_COLS.created_at} TIMESTAMP
                )
                """
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_COLS.table}_created_at ON {_COLS.table}({_COLS.created_at})"
            )

    def _row_to_entity(self, row: sqlite3.Row) -> TaskEntity:
        return {
            "id": str(row[_COLS.id]),
            "title": str(row[_COLS.title]),
            "completed": bool(row[_COLS.completed]),
            "created_at": datetime.fromisoformat(row[_COLS.created_at]),
        }

    def insert(self, task: TaskEntity) -> None:
        with self._conn() as conn:
            conn.execute(
                f"""
                INSERT INTO {_COLS.table} ({_COLS.id}, {_COLS.title}, {_COLS.completed}, {_COLS.created_at})
                VALUES (?, ?, ?, ?)
                """,
                (task["id"], task["title"], 1 if task["completed"] else 0, _format_ts(task["created_at"])),
            )

    def list(self, query: Optional[ListQuery] = None) -> List[TaskEntity]:
        q = query or ListQuery()
        clauses = []
        params: list = []

        if q.completed is not None:
            clauses.append(f"{_COLS.completed} = ?")
            params.append(1 if q.completed else 0)

        where_sql = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        order_sql = f"ORDER BY {_COLS.created_at} DESC, {_COLS.id} DESC"

        # SQLite needs a LIMIT for OFFSET; -1 means unbounded
        limit = -1 if q.limit is None or q.limit > SQLITE_MAX_INT else max(q.limit, 0)
        offset = min(max(q.offset or 0, 0), SQLITE_MAX_INT)

        with self._conn() as conn:
            rows = conn.execute(
                f"{_SELECT} {where_sql} {order_sql} LIMIT ? OFFSET ?",
                [*params, limit, offset],
            ).fetchall()
        return [self._row_to_entity(r) for r in rows]

    def get(self, task_id: str) -> Optional[TaskEntity]:
        with self._conn() as conn:
            row = conn.execute(f"{_SELECT} WHERE {_COLS.id} = ?", (task_id,)).fetchone()
        return self._row_to_entity(row) if row else None

    def update(self, task_id: str, patch: TaskPatch) -> TaskEntity:
        completed = None if patch.completed is None else (1 if patch.completed else 0)
        with self._conn() as conn:
            if conn.execute(f"SELECT 1 FROM {_COLS.table} WHERE {_COLS.id} = ?", (task_id,)).fetchone() is None:
                raise NotFoundError(TASK_NOT_FOUND_MESSAGE)
            check_patch(patch)
            cur = conn.execute(
                f"""
                UPDATE {_COLS.table}
                SET {_COLS.title} = COALESCE(?, {_COLS.title}),
                    {_COLS.completed} = COALESCE(?, {_COLS.completed})
                WHERE {_COLS.id} = ?
                """,
                (patch.title, completed, task_id),
            )
            if cur.rowcount == 0:
                raise NotFoundError(TASK_NOT_FOUND_MESSAGE)
            row = conn.execute(f"{_SELECT} WHERE {_COLS.id} = ?", (task_id,)).fetchone()
        if row is None:
            raise NotFoundError(TASK_NOT_FOUND_MESSAGE)
        return self._row_to_entity(row)

    def delete(self, task_id: str) -> None:
        with self._conn() as conn:
            cur = conn.execute(f"DELETE FROM {_COLS.table} WHERE {_COLS.id} = ?", (task_id,))
            if cur.rowcount == 0:
                raise NotFoundError(TASK_NOT_FOUND_MESSAGE)

    def close(self) -> None:
        logger.info("Closing SQLite connection pool for %s", self._db_path)
        self._pool.close()
