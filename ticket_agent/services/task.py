"""Task store: persistence and lifecycle rules for tasks."""

import logging
import threading
from datetime import UTC, datetime

from sqlalchemy import func
from sqlmodel import select

from ticket_agent.core.database import get_session
from ticket_agent.core.errors import (
    InvalidTransitionError,
    NotFoundError,
    RecordAlreadyExistsError,
)
from ticket_agent.models.task import (
    ACTIVE_STATUSES,
    ALLOWED_TRANSITIONS,
    Task,
    TaskDraft,
    TaskStatus,
)

logger = logging.getLogger(__name__)

# Serializes the find-active-then-insert sequence within this process
_insert_lock = threading.Lock()


class TaskService:
    """Service for task persistence."""

    @staticmethod
    def find_active(external_id: str) -> Task | None:
        """Return the newest WAITING_TO_WORK or IN_PROGRESS task for an issue."""
        with get_session() as session:
            statement = (
                select(Task)
                .where(Task.external_id == external_id)
                .where(Task.status.in_(list(ACTIVE_STATUSES)))
                .order_by(Task.id.desc())
                .limit(1)
            )
            return session.execute(statement).scalar_one_or_none()

    @staticmethod
    def insert(draft: TaskDraft) -> Task:
        """Create a new WAITING_TO_WORK task from a draft."""
        with get_session() as session:
            task = Task(
                external_id=draft.external_id,
                external_key=draft.external_key,
                external_status=draft.external_status,
                status=TaskStatus.WAITING_TO_WORK,
                snapshot=draft.snapshot,
            )
            session.add(task)
            session.commit()
            session.refresh(task)
            return task

    @staticmethod
    def create_if_not_active(draft: TaskDraft) -> Task | None:
        """Insert a task unless the issue already has an active one.

        Returns the new task, or None when an active task exists. The partial
        unique index on active tasks backs this up across processes.
        """
        with _insert_lock:
            existing = TaskService.find_active(draft.external_id)
            if existing is not None:
                logger.debug(
                    f"Issue {draft.external_key} already has active task {existing.id}"
                )
                return None

            try:
                return TaskService.insert(draft)
            except RecordAlreadyExistsError:
                logger.info(
                    f"Concurrent insert for {draft.external_key} lost the race, "
                    "skipping"
                )
                return None

    @staticmethod
    def update_status(task_id: int, status: TaskStatus) -> Task:
        """Move a task to a new status and refresh updated_at.

        Raises:
            NotFoundError: If task not found
            InvalidTransitionError: If the task cannot move to ``status``
        """
        status = TaskStatus(status)
        with get_session() as session:
            statement = select(Task).where(Task.id == task_id)
            task = session.execute(statement).scalar_one_or_none()

            if task is None:
                raise NotFoundError(f"Task with id {task_id} not found")

            current = TaskStatus(task.status)
            if current.is_terminal:
                raise InvalidTransitionError(
                    f"Task {task_id} is already {current.value} and cannot change"
                )
            if status not in ALLOWED_TRANSITIONS[current]:
                raise InvalidTransitionError(
                    f"Task {task_id} cannot move from {current.value} to {status.value}"
                )

            task.status = status
            task.updated_at = datetime.now(UTC)

            session.add(task)
            session.commit()
            session.refresh(task)
            return task

    @staticmethod
    def find_by_id(task_id: int) -> Task | None:
        with get_session() as session:
            return session.get(Task, task_id)

    @staticmethod
    def find_by_status(status: TaskStatus) -> list[Task]:
        """Tasks with the given status, oldest first."""
        with get_session() as session:
            statement = (
                select(Task).where(Task.status == TaskStatus(status)).order_by(Task.id)
            )
            return list(session.execute(statement).scalars().all())

    @staticmethod
    def find_all() -> list[Task]:
        """All tasks, newest first."""
        with get_session() as session:
            statement = select(Task).order_by(Task.id.desc())
            return list(session.execute(statement).scalars().all())

    @staticmethod
    def list_tasks(
        status: TaskStatus | None = None, limit: int = 100, offset: int = 0
    ) -> tuple[list[Task], int]:
        """List tasks newest first with pagination and an optional status filter."""
        with get_session() as session:
            count_statement = select(func.count()).select_from(Task)
            statement = select(Task)
            if status is not None:
                status = TaskStatus(status)
                count_statement = count_statement.where(Task.status == status)
                statement = statement.where(Task.status == status)

            total = session.execute(count_statement).scalar()

            statement = statement.order_by(Task.id.desc()).offset(offset).limit(limit)
            tasks = session.execute(statement).scalars().all()

            return list(tasks), total
