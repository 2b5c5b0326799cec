"""Business logic services."""

from .git import GitService
from .task import TaskService
from .task_workflow import TaskWorkflow

__all__ = ["GitService", "TaskService", "TaskWorkflow"]
