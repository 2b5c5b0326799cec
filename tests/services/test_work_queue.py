"""Tests for the bounded work queue."""

import queue
import threading

import pytest

from ticket_agent.services.work_queue import WorkQueue
from tests.conftest import create_test_task


def test_fifo_order():
    """Test tasks come out in the order they went in."""
    work_queue = WorkQueue(capacity=5)
    tasks = [create_test_task(key=f"PROJ-{i}", issue_id=str(i)) for i in range(3)]

    for task in tasks:
        work_queue.enqueue(task)

    assert len(work_queue) == 3
    assert [work_queue.dequeue(timeout=1).id for _ in tasks] == [t.id for t in tasks]
    assert len(work_queue) == 0


def test_dequeue_timeout_returns_none():
    """Test an empty queue yields None after the timeout."""
    assert WorkQueue().dequeue(timeout=0.01) is None


def test_default_capacity():
    assert WorkQueue().capacity == 100


def test_invalid_capacity():
    with pytest.raises(ValueError):
        WorkQueue(capacity=0)


def test_full_queue_times_out():
    """Test enqueue on a full queue raises once the timeout elapses."""
    work_queue = WorkQueue(capacity=1)
    task = create_test_task()
    work_queue.enqueue(task)

    with pytest.raises(queue.Full):
        work_queue.enqueue(task, timeout=0.01)


def test_full_queue_blocks_until_space():
    """Test a producer waits on a full queue and resumes after a dequeue."""
    work_queue = WorkQueue(capacity=1)
    first = create_test_task(key="PROJ-1", issue_id="1")
    second = create_test_task(key="PROJ-2", issue_id="2")
    work_queue.enqueue(first)
    enqueued = threading.Event()

    def produce():
        work_queue.enqueue(second)
        enqueued.set()

    producer = threading.Thread(target=produce, daemon=True)
    producer.start()

    assert not enqueued.wait(0.2)

    assert work_queue.dequeue(timeout=1).id == first.id
    assert enqueued.wait(2)
    producer.join(2)
    assert work_queue.dequeue(timeout=1).id == second.id


def test_join_waits_for_task_done():
    """Test join returns once every task is marked done."""
    work_queue = WorkQueue()
    work_queue.enqueue(create_test_task())
    joined = threading.Event()

    def wait():
        work_queue.join()
        joined.set()

    threading.Thread(target=wait, daemon=True).start()
    work_queue.dequeue(timeout=1)
    assert not joined.wait(0.1)

    work_queue.task_done()
    assert joined.wait(2)
