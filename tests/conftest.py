"""Pytest configuration and fixtures."""

import json
import os
import tempfile

# Settings are read at import time, so the test environment must come first
_TEST_DB_DIR = tempfile.mkdtemp(prefix="ticket-agent-tests-")
os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DB_DIR}/tasks.db"
os.environ["API_SECRET_KEY"] = "test-secret-key"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from ticket_agent.core.database import (  # noqa: E402
    clean_database,
    close_db,
    create_tables,
)
from ticket_agent.main import app  # noqa: E402
from ticket_agent.models import JiraIssue, Task, TaskDraft  # noqa: E402
from ticket_agent.services import TaskService  # noqa: E402


def make_issue(
    key: str = "PROJ-1",
    issue_id: str = "10001",
    summary: str = "Add a health endpoint",
    status: str = "To Do",
    description=None,
) -> JiraIssue:
    """Build a Jira issue the way the search endpoint returns it."""
    return JiraIssue.model_validate(
        {
            "id": issue_id,
            "key": key,
            "self": f"https://example.atlassian.net/rest/api/3/issue/{issue_id}",
            "fields": {
                "summary": summary,
                "description": description,
                "status": {"name": status, "id": "1"},
                "project": {"id": "100", "key": key.split("-")[0], "name": "Project"},
                "customfield_10010": "kept in snapshot",
            },
        }
    )


def make_draft(key: str = "PROJ-1", issue_id: str = "10001") -> TaskDraft:
    issue = make_issue(key=key, issue_id=issue_id)
    return TaskDraft(
        external_id=issue.id,
        external_key=issue.key,
        external_status=issue.status_name,
        snapshot=issue.to_snapshot(),
    )


def create_test_task(key: str = "PROJ-1", issue_id: str = "10001") -> Task:
    """Helper function to create a test task with default values."""
    return TaskService.insert(make_draft(key=key, issue_id=issue_id))


def adf_doc(*blocks: dict) -> dict:
    return {"type": "doc", "version": 1, "content": list(blocks)}


def adf_block(block_type: str, text: str) -> dict:
    return {"type": block_type, "content": [{"type": "text", "text": text}]}


def json_body(request) -> dict:
    return json.loads(request.content)


@pytest.fixture(autouse=True, scope="function")
def clean_db():
    """Initialize and clean database for each test."""
    create_tables()

    # Clean all tables before test to ensure isolation
    clean_database()

    yield

    # Close DB connections
    close_db()


@pytest.fixture(scope="function")
def test_client():
    """Create a test client."""
    with TestClient(app) as client:
        yield client


@pytest.fixture(scope="function")
def auth_headers():
    """Provide authentication headers for API requests."""
    from ticket_agent.core.config import settings

    return {"X-API-Key": settings.api_secret_key}
