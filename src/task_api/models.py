from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional, TypedDict

from .utils import utc_now


# PUBLIC_INTERFACE
class TaskEntity(TypedDict):
    """
    Storage-level representation of a task, shared by every storage backend.

    Fields:
    - id: UUID4 string assigned on creation, never changed
    - title: Title as submitted; never blank after trimming
    - completed: Boolean completion flag, False on creation
    - created_at: UTC creation timestamp (aware datetime), never changed
    """

    id: str
    title: str
    completed: bool
    created_at: datetime


# PUBLIC_INTERFACE
def is_blank(title: Optional[str]) -> bool:
    """Return True when a title is missing or contains only whitespace."""
    return title is None or not title.strip()


# PUBLIC_INTERFACE
def new_task(title: str) -> TaskEntity:
    """
    Build a fully-populated TaskEntity for insertion.

    The caller is responsible for rejecting blank titles first.
    """
    return {
        "id": str(uuid.uuid4()),
        "title": title,
        "completed": False,
        "created_at": utc_now(),
    }
