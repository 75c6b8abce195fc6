from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from threading import Lock
from typing import List, Optional

from .errors import BadRequestError, NotFoundError
from .models import TaskEntity, is_blank
from .schemas import TaskPatch
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

TITLE_EMPTY_MESSAGE = "Title cannot be empty"
TASK_NOT_FOUND_MESSAGE = "Task not found"


@dataclass(frozen=True)
class ListQuery:
    """
    Query parameters for listing tasks.
    None means "not constrained" for every field.
    """
    completed: Optional[bool] = None
    limit: Optional[int] = None
    offset: Optional[int] = None


# PUBLIC_INTERFACE
class TaskStorage(ABC):
    """Storage contract shared by the in-memory and SQLite backends."""

    @abstractmethod
    def insert(self, task: TaskEntity) -> None:
        """Store a fully-populated task. Raises InternalError on backend faults."""

    @abstractmethod
    def list(self, query: Optional[ListQuery] = None) -> List[TaskEntity]:
        """
        Return tasks matching the query, newest first (created_at descending).
        - Filter by completed
        - Offset, then limit, applied to the ordered result
        An empty list is returned when nothing matches.
        """

    @abstractmethod
    def get(self, task_id: str) -> Optional[TaskEntity]:
        """Return a task by id, or None if not found."""

    @abstractmethod
    def update(self, task_id: str, patch: TaskPatch) -> TaskEntity:
        """
        Apply the provided fields of `patch` and return the updated task.
        Raises NotFoundError for an unknown id, checked first, then
        BadRequestError for a blank title.
        """

    @abstractmethod
    def delete(self, task_id: str) -> None:
        """Delete a task by id. Raises NotFoundError if it does not exist."""

    def close(self) -> None:
        """Release backend resources. Safe to call more than once."""


def check_patch(patch: TaskPatch) -> None:
    """Reject a patch whose provided title is blank."""
    if patch.title is not None and is_blank(patch.title):
        raise BadRequestError(TITLE_EMPTY_MESSAGE)


class InMemoryTaskStorage(TaskStorage):
    """
    In-memory storage for tests and the default runtime.

    Every operation, reads included, runs under one exclusive lock.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._items: dict[str, TaskEntity] = {}

    def insert(self, task: TaskEntity) -> None:
        with self._lock:
            self._items[task["id"]] = task.copy()

    def list(self, query: Optional[ListQuery] = None) -> List[TaskEntity]:
        q = query or ListQuery()
        with self._lock:
            items = list(self._items.values())

            if q.completed is not None:
                items = [t for t in items if t["completed"] == q.completed]

            items.sort(key=lambda t: (t["created_at"], t["id"]), reverse=True)

            start = max(q.offset or 0, 0)
            end = None if q.limit is None else start + max(q.limit, 0)

            # Return copies to avoid external mutation
            return [t.copy() for t in items[start:end]]

    def get(self, task_id: str) -> Optional[TaskEntity]:
        with self._lock:
            item = self._items.get(task_id)
            return None if item is None else item.copy()

    def update(self, task_id: str, patch: TaskPatch) -> TaskEntity:
        with self._lock:
            existing = self._items.get(task_id)
            if existing is None:
                raise NotFoundError(TASK_NOT_FOUND_MESSAGE)
            check_patch(patch)

            updated = existing.copy()
            if patch.title is not None:
                updated["title"] = patch.title
            if patch.completed is not None:
                updated["completed"] = patch.completed

            self._items[task_id] = updated
            return updated.copy()

    def delete(self, task_id: str) -> None:
        with self._lock:
            if self._items.pop(task_id, None) is None:
                raise NotFoundError(TASK_NOT_FOUND_MESSAGE)


# PUBLIC_INTERFACE
def build_storage(settings: Optional[Settings] = None) -> TaskStorage:
    """
    Factory returning the storage backend selected by DATABASE_URL.
    - memory: InMemoryTaskStorage
    - sqlite: SQLiteTaskStorage (stdlib sqlite3 with a bounded connection pool)
    """
    settings = settings or get_settings()
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteTaskStorage

        logger.info("Using SQLite storage at %s (pool size %d)", settings.sqlite_db_path, settings.pool_size)
        return SQLiteTaskStorage(settings.sqlite_db_path, pool_size=settings.pool_size)
    logger.info("Using in-memory storage")
    return InMemoryTaskStorage()
