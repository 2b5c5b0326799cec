"""Database and API models."""

from .jira import JiraComment, JiraIssue
from .task import ACTIVE_STATUSES, Task, TaskDraft, TaskStatus

__all__ = [
    "ACTIVE_STATUSES",
    "JiraComment",
    "JiraIssue",
    "Task",
    "TaskDraft",
    "TaskStatus",
]
