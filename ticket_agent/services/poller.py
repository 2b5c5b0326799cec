"""Polls Jira for assigned issues and turns new ones into queued tasks."""

import logging
import threading

from ticket_agent.core.errors import AppError
from ticket_agent.models.jira import JiraIssue
from ticket_agent.models.task import Task, TaskDraft
from ticket_agent.services.jira_client import JiraClient
from ticket_agent.services.task import TaskService
from ticket_agent.services.work_queue import WorkQueue

logger = logging.getLogger(__name__)


class Poller:
    def __init__(self, jira: JiraClient, work_queue: WorkQueue):
        self.jira = jira
        self.work_queue = work_queue

    def process_issue(self, issue: JiraIssue) -> Task | None:
        """Create a task for ``issue`` unless it already has an active one."""
        draft = TaskDraft(
            external_id=issue.id,
            external_key=issue.key,
            external_status=issue.status_name,
            snapshot=issue.to_snapshot(),
        )
        task = TaskService.create_if_not_active(draft)
        if task is None:
            logger.info(f"[Poll] Skipping {issue.key}: already has an active task")
            return None

        logger.info(
            f"[Poll] Created task {task.id} for {issue.key} ({issue.status_name})"
        )
        return task

    def poll_once(self) -> list[Task]:
        """Run one cycle and return the tasks it queued.

        Jira errors propagate and abort the cycle.
        """
        logger.info("[Poll] Fetching issues from Jira...")
        issues = self.jira.search_assigned_issues()
        logger.info(f"[Poll] Found {len(issues)} issues matching filter")

        created = []
        for issue in issues:
            task = self.process_issue(issue)
            if task is not None:
                self.work_queue.enqueue(task)
                created.append(task)

        logger.info(
            f"[Poll] Cycle complete, {len(created)} new task(s), "
            f"{len(self.work_queue)} waiting in queue"
        )
        return created

    def run_forever(
        self, interval: float, stop_event: threading.Event | None = None
    ) -> None:
        """Poll every ``interval`` seconds until ``stop_event`` is set.

        Cycles never overlap: the wait starts after the previous cycle ends.
        A failed cycle is logged and the next one runs on schedule.
        """
        stop_event = stop_event or threading.Event()

        while not stop_event.is_set():
            try:
                self.poll_once()
            except AppError as e:
                logger.error(f"[Poll] Error: {e}")
            stop_event.wait(interval)
