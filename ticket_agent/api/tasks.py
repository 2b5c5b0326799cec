"""Read-only task endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from ticket_agent.core.auth import verify_api_key
from ticket_agent.models import Task, TaskStatus
from ticket_agent.services import TaskService

router = APIRouter()


class TaskResponse(BaseModel):
    """Response model for task data."""

    id: int
    external_id: str
    external_key: str
    external_status: str
    status: TaskStatus
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_task(cls, task: Task) -> "TaskResponse":
        return cls(
            id=task.id,
            external_id=task.external_id,
            external_key=task.external_key,
            external_status=task.external_status,
            status=task.status,
            created_at=task.created_at,
            updated_at=task.updated_at,
        )


class TaskListResponse(BaseModel):
    """Response model for list of tasks."""

    tasks: list[TaskResponse]
    total: int
    limit: int
    offset: int


@router.get("/tasks", response_model=TaskListResponse)
def list_tasks(
    status_filter: TaskStatus | None = Query(default=None, alias="status"),
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    api_key: str = Depends(verify_api_key),
):
    """List tasks newest first, optionally filtered by status."""
    tasks, total = TaskService.list_tasks(
        status=status_filter, limit=limit, offset=offset
    )

    return TaskListResponse(
        tasks=[TaskResponse.from_task(task) for task in tasks],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/tasks/{task_id}", response_model=TaskResponse)
def get_task(task_id: int, api_key: str = Depends(verify_api_key)):
    """Get a task by ID."""
    task = TaskService.find_by_id(task_id)
    if task is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Task with id {task_id} not found",
        )

    return TaskResponse.from_task(task)
