"""Bounded FIFO hand-off between the poller and the workers."""

import queue

from ticket_agent.models.task import Task

DEFAULT_CAPACITY = 100


class WorkQueue:
    """Thread-safe bounded queue of tasks.

    ``enqueue`` blocks while the queue is full, which throttles the poller
    when every worker is busy. ``dequeue`` blocks while it is empty.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("Queue capacity must be at least 1")
        self.capacity = capacity
        self._queue: queue.Queue[Task] = queue.Queue(maxsize=capacity)

    def enqueue(self, task: Task, timeout: float | None = None) -> None:
        """Add a task, waiting for free space.

        Raises:
            queue.Full: If ``timeout`` elapses first
        """
        self._queue.put(task, timeout=timeout)

    def dequeue(self, timeout: float | None = None) -> Task | None:
        """Take the oldest task, or None if ``timeout`` elapses first."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def task_done(self) -> None:
        self._queue.task_done()

    def join(self) -> None:
        """Block until every enqueued task has been marked done."""
        self._queue.join()

    def __len__(self) -> int:
        return self._queue.qsize()
