"""Per-task workflow: from a discovered Jira issue to a pushed branch."""

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import ValidationError

from ticket_agent.core.config import settings
from ticket_agent.core.errors import AppError, DecodeError, InvalidTransitionError
from ticket_agent.models.jira import JiraComment, JiraIssue
from ticket_agent.models.task import Task, TaskStatus
from ticket_agent.services.git import GitError, GitService
from ticket_agent.services.jira_client import JiraClient
from ticket_agent.services.opencode_client import OpenCodeClient
from ticket_agent.services.prompt import adf_to_text, build_prompt, format_comments
from ticket_agent.services.saga import Saga, SagaResult, SagaState, SagaStep
from ticket_agent.services.task import TaskService

logger = logging.getLogger(__name__)


class TaskAlreadyClaimedError(InvalidTransitionError):
    """Raised when a task is no longer waiting, so another run owns or finished it."""


@dataclass
class TaskRun:
    """Mutable state threaded through the steps of one task."""

    task: Task
    work_dir: Path
    branch_name: str
    comments: list[JiraComment] = field(default_factory=list)
    prompt: str | None = None
    session_id: str | None = None
    pr_url: str | None = None


class TaskWorkflow:
    """Drives one task through the agent workflow.

    Steps: mark in progress, prepare workspace, gather context, build prompt,
    invoke agent, finalize. The workspace directory is derived from the task id
    so a re-run after a crash reuses (and first wipes) the same path.
    """

    def __init__(
        self,
        jira: JiraClient,
        agent: OpenCodeClient,
        repository_url: str,
        base_branch: str = "main",
        review_status: str | None = None,
        workspace_root: str | Path | None = None,
        agent_poll_interval: float | None = None,
        agent_max_wait: float | None = None,
    ):
        self.jira = jira
        self.agent = agent
        self.repository_url = repository_url
        self.base_branch = base_branch
        self.review_status = review_status or settings.jira_review_status
        self.workspace_root = Path(workspace_root or settings.workspace_root)
        self.agent_poll_interval = agent_poll_interval
        self.agent_max_wait = agent_max_wait

    def work_dir_for(self, task: Task) -> Path:
        return self.workspace_root / f"agent-task-{task.id}"

    @staticmethod
    def branch_name_for(task: Task) -> str:
        return f"feature/{task.external_key}-{task.id}"

    def build_saga(self, task: Task) -> Saga[TaskRun]:
        steps = [
            SagaStep("mark_in_progress", SagaState.STARTED, self.mark_in_progress),
            SagaStep(
                "prepare_workspace",
                SagaState.PREPARING,
                self.prepare_workspace,
                compensation=self.remove_workspace,
            ),
            SagaStep(
                "gather_context", SagaState.CONTEXT_GATHERING, self.gather_context
            ),
            SagaStep("build_prompt", SagaState.CONTEXT_GATHERING, self.render_prompt),
            SagaStep("invoke_agent", SagaState.AGENT_RUNNING, self.invoke_agent),
            SagaStep("finalize", SagaState.FINALIZING, self.finalize),
        ]
        return Saga(f"Task {task.id}", steps, on_failure=self.mark_failed)

    def run(self, task: Task) -> SagaResult:
        """Execute every step for ``task``; never raises for step failures."""
        logger.info(f"[Task {task.id}] Starting {task.external_key}")
        run = TaskRun(
            task=task,
            work_dir=self.work_dir_for(task),
            branch_name=self.branch_name_for(task),
        )
        result = self.build_saga(task).run(run)

        if result.succeeded:
            logger.info(
                f"[Task {task.id}] {task.external_key} done on {run.branch_name} "
                f"(session {run.session_id})"
            )
        else:
            logger.error(
                f"[Task {task.id}] {task.external_key} failed at "
                f"{result.failed_step}: {result.error}"
            )
        return result

    # Steps

    def mark_in_progress(self, run: TaskRun) -> None:
        try:
            TaskService.update_status(run.task.id, TaskStatus.IN_PROGRESS)
        except InvalidTransitionError as e:
            raise TaskAlreadyClaimedError(e.message, e) from e
        logger.info(f"[Task {run.task.id}] IN_PROGRESS")

    def prepare_workspace(self, run: TaskRun) -> None:
        # Leftovers from an interrupted earlier attempt
        shutil.rmtree(run.work_dir, ignore_errors=True)

        logger.info(
            f"[Task {run.task.id}] Cloning {self.repository_url} to {run.work_dir}"
        )
        GitService.clone(self.repository_url, run.work_dir)

        if not run.work_dir.is_dir():
            raise GitError(
                f"Clone succeeded but {run.work_dir} does not exist",
                command="git clone",
            )

        GitService.create_branch(run.work_dir, run.branch_name)
        logger.info(f"[Task {run.task.id}] Created branch {run.branch_name}")

    def remove_workspace(self, run: TaskRun) -> None:
        logger.info(f"[Task {run.task.id}] Removing {run.work_dir}")
        shutil.rmtree(run.work_dir, ignore_errors=True)

    def gather_context(self, run: TaskRun) -> None:
        run.comments = self.jira.get_comments(run.task.external_key)
        logger.info(
            f"[Task {run.task.id}] Fetched {len(run.comments)} comments "
            f"for {run.task.external_key}"
        )

    def render_prompt(self, run: TaskRun) -> None:
        try:
            issue = JiraIssue.model_validate_json(run.task.snapshot)
        except ValidationError as e:
            message = f"Task {run.task.id} has an unreadable snapshot"
            raise DecodeError(message, e) from e

        run.prompt = build_prompt(
            task_id=run.task.id,
            issue_key=run.task.external_key,
            summary=issue.fields.summary,
            description=adf_to_text(issue.fields.description),
            comments=format_comments(run.comments),
            branch_name=run.branch_name,
            base_branch=self.base_branch,
        )

    def invoke_agent(self, run: TaskRun) -> None:
        run.session_id = self.agent.create_session(run.work_dir)
        logger.info(f"[Task {run.task.id}] Running agent session {run.session_id}")

        self.agent.send_prompt(run.session_id, run.work_dir, run.prompt)
        self.agent.wait_for_idle(
            run.session_id,
            run.work_dir,
            poll_interval=self.agent_poll_interval,
            max_wait=self.agent_max_wait,
        )

    def finalize(self, run: TaskRun) -> None:
        key = run.task.external_key

        try:
            self.jira.transition_status(key, self.review_status)
        except AppError as e:
            logger.warning(
                f"[Task {run.task.id}] Could not transition {key} to "
                f"{self.review_status}: {e}"
            )

        try:
            remote_url = GitService.get_remote_url(run.work_dir)
            run.pr_url = GitService.build_pull_request_url(
                remote_url, run.branch_name, self.base_branch
            )
            self.jira.add_comment(key, f"Pull Request: {run.pr_url}")
            logger.info(f"[Task {run.task.id}] Posted PR link to {key}")
        except AppError as e:
            logger.warning(f"[Task {run.task.id}] Could not post PR link to {key}: {e}")

        TaskService.update_status(run.task.id, TaskStatus.DONE)
        logger.info(f"[Task {run.task.id}] DONE")

        self.remove_workspace(run)

    def mark_failed(self, run: TaskRun, error: Exception) -> None:
        if isinstance(error, TaskAlreadyClaimedError):
            # The status belongs to whoever claimed the task
            logger.warning(f"[Task {run.task.id}] Not claimed, leaving status as is")
            return

        try:
            TaskService.update_status(run.task.id, TaskStatus.FAILED)
        except AppError as e:
            logger.error(f"[Task {run.task.id}] Could not record FAILED status: {e}")
