"""Wires the poller, work queue, worker pool and task workflow together."""

import logging
import threading

from pydantic import BaseModel, Field, SecretStr, field_validator

from ticket_agent.core.config import settings
from ticket_agent.core.database import create_tables
from ticket_agent.services.jira_client import JiraClient
from ticket_agent.services.opencode_client import OpenCodeClient
from ticket_agent.services.poller import Poller
from ticket_agent.services.task_workflow import TaskWorkflow
from ticket_agent.services.work_queue import WorkQueue
from ticket_agent.services.worker_pool import WorkerPool

logger = logging.getLogger(__name__)


class StartOptions(BaseModel):
    """Validated options for the start command."""

    email: str = Field(min_length=1)
    token: SecretStr
    domain: str = Field(min_length=1)
    jira_status: str = Field(min_length=1)
    interval: int = Field(default=60, gt=0)
    concurrency: int = Field(default=5, gt=0)
    repository_url: str = Field(min_length=1)
    base_branch: str = Field(default="main", min_length=1)

    @field_validator("token")
    @classmethod
    def token_not_empty(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value():
            raise ValueError("Atlassian API token is required")
        return value


class Orchestrator:
    """Owns one poller and one worker pool sharing a bounded queue."""

    def __init__(
        self,
        options: StartOptions,
        jira: JiraClient | None = None,
        agent: OpenCodeClient | None = None,
        queue_capacity: int | None = None,
    ):
        self.options = options
        self.jira = jira or JiraClient(
            domain=options.domain,
            email=options.email,
            api_token=options.token.get_secret_value(),
            jira_status=options.jira_status,
        )
        self.agent = agent or OpenCodeClient()
        self.work_queue = WorkQueue(queue_capacity or settings.queue_capacity)
        self.workflow = TaskWorkflow(
            jira=self.jira,
            agent=self.agent,
            repository_url=options.repository_url,
            base_branch=options.base_branch,
        )
        self.pool = WorkerPool(
            self.work_queue, self.workflow.run, concurrency=options.concurrency
        )
        self.poller = Poller(self.jira, self.work_queue)

    def run(self, stop_event: threading.Event | None = None) -> None:
        """Start the workers and poll until ``stop_event`` is set."""
        create_tables()

        self.pool.start()
        logger.info(f"[Main] Started {self.options.concurrency} workflow workers")
        logger.info("[Main] Starting polling loop...")

        try:
            self.poller.run_forever(self.options.interval, stop_event)
        finally:
            logger.info("[Main] Stopping workers")
            self.pool.stop(timeout=1)
            self.jira.close()
            self.agent.close()
