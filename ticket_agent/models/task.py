"""Task model for ticket orchestration."""

from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import Column, DateTime, Index, Text, text
from sqlalchemy import Enum as SAEnum
from sqlmodel import Field, SQLModel


class TaskStatus(str, Enum):
    """Orchestration status of a task."""

    WAITING_TO_WORK = "WAITING_TO_WORK"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


# Tasks in these statuses are in flight and block a new task for the same issue
ACTIVE_STATUSES = frozenset({TaskStatus.WAITING_TO_WORK, TaskStatus.IN_PROGRESS})
TERMINAL_STATUSES = frozenset({TaskStatus.DONE, TaskStatus.FAILED})

# Source status -> statuses it may move to. Terminal statuses have no exits.
ALLOWED_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.WAITING_TO_WORK: frozenset({TaskStatus.IN_PROGRESS, TaskStatus.FAILED}),
    TaskStatus.IN_PROGRESS: frozenset({TaskStatus.DONE, TaskStatus.FAILED}),
    TaskStatus.DONE: frozenset(),
    TaskStatus.FAILED: frozenset(),
}

_ACTIVE_SQL = text("status IN ('WAITING_TO_WORK', 'IN_PROGRESS')")


class TaskDraft(SQLModel):
    """Fields supplied by the poller when a new issue is discovered."""

    external_id: str
    external_key: str
    external_status: str
    snapshot: str


class Task(SQLModel, table=True):
    """One Jira issue tracked through the agent workflow."""

    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_external_id_status", "external_id", "status"),
        # At most one active task per issue
        Index(
            "uq_tasks_active_external_id",
            "external_id",
            unique=True,
            sqlite_where=_ACTIVE_SQL,
            postgresql_where=_ACTIVE_SQL,
        ),
        {"sqlite_autoincrement": True},
    )

    # Primary key and timestamps
    id: int | None = Field(
        default=None,
        primary_key=True,
        description="Auto-incrementing task identifier, never reused",
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(DateTime(timezone=True), nullable=False),
        description="Timestamp when the task was created",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(DateTime(timezone=True), nullable=False),
        description="Timestamp of the last status change",
    )

    # Source issue
    external_id: str = Field(description="Jira issue id, e.g. 10001")
    external_key: str = Field(description="Jira issue key, e.g. PROJ-123")
    external_status: str = Field(
        description="Jira status name observed when the task was created"
    )

    # Orchestration
    status: TaskStatus = Field(
        default=TaskStatus.WAITING_TO_WORK,
        sa_column=Column(
            SAEnum(TaskStatus, native_enum=False, length=32),
            nullable=False,
        ),
        description="WAITING_TO_WORK, IN_PROGRESS, DONE or FAILED",
    )
    snapshot: str = Field(
        sa_column=Column(Text, nullable=False),
        description="JSON copy of the full Jira issue at discovery time",
    )
