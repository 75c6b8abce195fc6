from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status

from ..errors import BadRequestError, NotFoundError
from ..models import is_blank, new_task
from ..repositories import TASK_NOT_FOUND_MESSAGE, TITLE_EMPTY_MESSAGE, ListQuery, TaskStorage
from ..schemas import ErrorOut, TaskCreate, TaskOut, TaskPatch

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/tasks",
    tags=["tasks"],
)


# PUBLIC_INTERFACE
def get_storage(request: Request) -> TaskStorage:
    """
    Dependency returning the storage handle attached to the application.
    """
    return request.app.state.storage


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[TaskOut],
    summary="List Tasks",
    description=(
        "List tasks, newest first.\n\n"
        "Query parameters:\n"
        "- completed: filter by completion status\n"
        "- limit: max number of items to return (>=0)\n"
        "- offset: number of items to skip (>=0)"
    ),
    responses={
        200: {"description": "List retrieved successfully"},
        500: {"model": ErrorOut, "description": "Storage failure"},
    },
)
def list_tasks(
    completed: Optional[bool] = Query(None, description="Filter by completion status"),
    limit: Optional[int] = Query(None, ge=0, description="Maximum number of items to return"),
    offset: Optional[int] = Query(None, ge=0, description="Number of items to skip"),
    storage: TaskStorage = Depends(get_storage),
) -> List[TaskOut]:
    """
    List tasks with an optional completion filter and limit/offset pagination.
    """
    items = storage.list(ListQuery(completed=completed, limit=limit, offset=offset))
    logger.debug("Listed %d tasks (completed=%s, limit=%s, offset=%s)", len(items), completed, limit, offset)
    return [TaskOut(**it) for it in items]


# PUBLIC_INTERFACE
@router.get(
    "/{task_id}",
    response_model=TaskOut,
    summary="Get Task",
    description="Get a single task by ID.",
    responses={
        200: {"description": "Task found"},
        404: {"model": ErrorOut, "description": "Task not found"},
    },
)
def get_task(task_id: str, storage: TaskStorage = Depends(get_storage)) -> TaskOut:
    item = storage.get(task_id)
    if item is None:
        raise NotFoundError(TASK_NOT_FOUND_MESSAGE)
    return TaskOut(**item)


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TaskOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    description="Create a new task and return it with its generated id and created_at.",
    responses={
        201: {"description": "Task created successfully"},
        400: {"model": ErrorOut, "description": "Title is empty"},
    },
)
def create_task(payload: TaskCreate, storage: TaskStorage = Depends(get_storage)) -> TaskOut:
    """
    Create a new task. Blank titles are rejected before anything is stored.
    """
    if is_blank(payload.title):
        raise BadRequestError(TITLE_EMPTY_MESSAGE)

    task = new_task(payload.title)
    storage.insert(task)
    logger.info("Created task %s", task["id"])
    return TaskOut(**task)


# PUBLIC_INTERFACE
@router.patch(
    "/{task_id}",
    response_model=TaskOut,
    summary="Update Task",
    description="Partially update the title and/or completion status of a task.",
    responses={
        200: {"description": "Task updated"},
        400: {"model": ErrorOut, "description": "Title is empty"},
        404: {"model": ErrorOut, "description": "Task not found"},
    },
)
def patch_task(task_id: str, payload: TaskPatch, storage: TaskStorage = Depends(get_storage)) -> TaskOut:
    """
    Partial update of a task; only the fields present in the body are changed.
    An unknown id is reported before the title is validated.
    """
    if storage.get(task_id) is None:
        raise NotFoundError(TASK_NOT_FOUND_MESSAGE)
    if payload.title is not None and is_blank(payload.title):
        raise BadRequestError(TITLE_EMPTY_MESSAGE)

    updated = storage.update(task_id, payload)
    if not payload.is_empty():
        logger.info("Updated task %s", task_id)
    return TaskOut(**updated)


# PUBLIC_INTERFACE
@router.delete(
    "/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Task",
    description="Delete a task by ID.",
    responses={
        204: {"description": "Task deleted"},
        404: {"model": ErrorOut, "description": "Task not found"},
    },
)
def delete_task(task_id: str, storage: TaskStorage = Depends(get_storage)) -> None:
    """
    Delete a task. Returns 204 on success, 404 if not found.
    """
    storage.delete(task_id)
    logger.info("Deleted task %s", task_id)
    return None
