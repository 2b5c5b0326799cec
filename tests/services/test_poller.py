"""Tests for the Jira poller."""

import threading

import pytest

from ticket_agent.core.errors import TransportError
from ticket_agent.models import TaskStatus
from ticket_agent.services import TaskService
from ticket_agent.services.poller import Poller
from ticket_agent.services.work_queue import WorkQueue
from tests.conftest import make_issue


@pytest.fixture
def jira(mocker):
    return mocker.Mock()


def test_new_issue_becomes_queued_task(jira):
    """Test a new issue is stored as a waiting task and queued."""
    jira.search_assigned_issues.return_value = [make_issue(key="PROJ-1", issue_id="1")]
    work_queue = WorkQueue()

    created = Poller(jira, work_queue).poll_once()

    assert len(created) == 1
    task = created[0]
    assert task.external_key == "PROJ-1"
    assert task.external_id == "1"
    assert task.external_status == "To Do"
    assert task.status == TaskStatus.WAITING_TO_WORK
    assert '"key":"PROJ-1"' in task.snapshot
    assert work_queue.dequeue(timeout=1).id == task.id


def test_issue_seen_twice_is_queued_once(jira):
    """Test an issue still returned on the next cycle is not duplicated."""
    jira.search_assigned_issues.return_value = [make_issue(key="PROJ-2", issue_id="2")]
    work_queue = WorkQueue()
    poller = Poller(jira, work_queue)

    first = poller.poll_once()
    second = poller.poll_once()

    assert len(first) == 1
    assert second == []
    assert len(work_queue) == 1
    assert len(TaskService.find_all()) == 1


def test_issue_in_progress_is_skipped(jira):
    """Test an issue whose task is being worked on is not queued again."""
    jira.search_assigned_issues.return_value = [make_issue(key="PROJ-3", issue_id="3")]
    work_queue = WorkQueue()
    poller = Poller(jira, work_queue)
    (task,) = poller.poll_once()
    work_queue.dequeue(timeout=1)
    TaskService.update_status(task.id, TaskStatus.IN_PROGRESS)

    assert poller.poll_once() == []
    assert len(work_queue) == 0


def test_finished_issue_gets_new_task(jira):
    """Test an issue that comes back after its task finished is queued again."""
    jira.search_assigned_issues.return_value = [make_issue(key="PROJ-4", issue_id="4")]
    work_queue = WorkQueue()
    poller = Poller(jira, work_queue)
    (task,) = poller.poll_once()
    TaskService.update_status(task.id, TaskStatus.FAILED)

    (retry,) = poller.poll_once()

    assert retry.id > task.id
    assert retry.status == TaskStatus.WAITING_TO_WORK


def test_jira_error_aborts_cycle(jira):
    """Test a Jira failure propagates out of a single cycle."""
    jira.search_assigned_issues.side_effect = TransportError("Jira API returned 500")

    with pytest.raises(TransportError):
        Poller(jira, WorkQueue()).poll_once()

    assert TaskService.find_all() == []


def test_run_forever_survives_errors(jira):
    """Test a failed cycle is logged and polling continues."""
    stop_event = threading.Event()
    calls = []

    def search():
        calls.append(1)
        if len(calls) == 1:
            raise TransportError("Jira API returned 503")
        stop_event.set()
        return [make_issue(key="PROJ-5", issue_id="5")]

    jira.search_assigned_issues.side_effect = search
    work_queue = WorkQueue()

    Poller(jira, work_queue).run_forever(interval=0.01, stop_event=stop_event)

    assert len(calls) == 2
    assert len(work_queue) == 1


def test_run_forever_stops_when_event_set(jira):
    """Test no cycle runs once the stop event is set."""
    stop_event = threading.Event()
    stop_event.set()

    Poller(jira, WorkQueue()).run_forever(interval=60, stop_event=stop_event)

    jira.search_assigned_issues.assert_not_called()
