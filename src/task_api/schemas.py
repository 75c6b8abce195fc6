from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# PUBLIC_INTERFACE
class TaskCreate(BaseModel):
    """
    Schema for creating a new task.

    Blank titles are rejected by the handler with a 400 rather than by schema
    validation, so only the presence and type of `title` are enforced here.
    """

    model_config = ConfigDict(json_schema_extra={"example": {"title": "Buy milk"}})

    title: str = Field(..., description="Title of the task; must not be blank")


# PUBLIC_INTERFACE
class TaskPatch(BaseModel):
    """
    Schema for partially updating a task.
    A field is applied only when it is present and not null.
    """

    model_config = ConfigDict(
        json_schema_extra={"example": {"title": "Buy oat milk", "completed": True}}
    )

    title: Optional[str] = Field(default=None, description="New title; must not be blank when provided")
    completed: Optional[bool] = Field(default=None, description="New completion status")

    def is_empty(self) -> bool:
        """Return True when the patch carries no field to apply."""
        return self.title is None and self.completed is None


# PUBLIC_INTERFACE
class TaskOut(BaseModel):
    """
    Schema returned by the API for a task.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "6f1c2a4e-3b7d-4f0a-9d51-2c8e7b0a4f13",
                "title": "Buy milk",
                "completed": False,
                "created_at": "2025-01-25T10:15:30.123456Z",
            }
        }
    )

    id: str = Field(..., description="Unique identifier of the task")
    title: str = Field(..., description="Title of the task")
    completed: bool = Field(..., description="Completion status flag")
    created_at: datetime = Field(..., description="Creation timestamp (UTC)")


# PUBLIC_INTERFACE
class ErrorOut(BaseModel):
    """
    Body of every error response.
    """

    error: str = Field(..., description="Human-readable error message")
    timestamp: datetime = Field(..., description="Time the error was produced (UTC)")
    detail: Optional[List[Any]] = Field(
        default=None, description="Validation error entries; only set on 422 responses"
    )
