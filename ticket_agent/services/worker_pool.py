"""Fixed-size pool of worker threads consuming the work queue."""

import logging
import threading
from collections.abc import Callable

from ticket_agent.models.task import Task
from ticket_agent.services.saga import SagaResult
from ticket_agent.services.work_queue import WorkQueue

logger = logging.getLogger(__name__)

# How often idle workers wake up to check for shutdown
DEQUEUE_TIMEOUT = 0.5


class WorkerPool:
    """Runs ``concurrency`` workers, each processing one task at a time."""

    def __init__(
        self,
        work_queue: WorkQueue,
        process_task: Callable[[Task], SagaResult],
        concurrency: int = 5,
    ):
        if concurrency < 1:
            raise ValueError("Concurrency must be at least 1")
        self.work_queue = work_queue
        self.process_task = process_task
        self.concurrency = concurrency
        self._stop = threading.Event()
        self._threads: list[threading.Thread] = []

    @property
    def is_running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    def start(self) -> None:
        if self._threads:
            raise RuntimeError("Worker pool already started")

        self._stop.clear()
        for i in range(1, self.concurrency + 1):
            thread = threading.Thread(
                target=self._work, args=(i,), name=f"worker-{i}", daemon=True
            )
            thread.start()
            self._threads.append(thread)
            logger.info(f"[Main] Started worker {i}")

    def stop(self, timeout: float | None = None) -> None:
        """Ask workers to exit once their current task is finished."""
        self._stop.set()
        for thread in self._threads:
            thread.join(timeout)
        # Workers still busy past the timeout keep counting as running
        self._threads = [thread for thread in self._threads if thread.is_alive()]
        if self._threads:
            logger.warning(
                f"[Main] {len(self._threads)} worker(s) still finishing a task"
            )

    def _work(self, worker_id: int) -> None:
        while not self._stop.is_set():
            task = self.work_queue.dequeue(timeout=DEQUEUE_TIMEOUT)
            if task is None:
                continue

            logger.info(
                f"[Worker {worker_id}] Starting task {task.id} ({task.external_key})"
            )
            try:
                result = self.process_task(task)
            except Exception:
                logger.exception(f"[Worker {worker_id}] Task {task.id} crashed")
            else:
                if result.succeeded:
                    logger.info(f"[Worker {worker_id}] Task {task.id} completed")
                else:
                    logger.error(
                        f"[Worker {worker_id}] Task {task.id} failed at "
                        f"{result.failed_step}: {result.error}"
                    )
            finally:
                self.work_queue.task_done()
