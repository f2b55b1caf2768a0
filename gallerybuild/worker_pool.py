"""
WorkerPool - Bounded pool of threads pulling task indexes from a shared cursor.
"""

import logging
import threading
import time
from typing import Callable, List, Optional, TypeVar

T = TypeVar('T')

# task_function(task_index, worker_id) -> result
TaskFunction = Callable[[int, int], T]


class WorkerPool:
    """
    Runs a task function once for every index in [0, total_tasks).

    Each of `concurrency` workers repeatedly claims the next unclaimed index
    until none are left, so fast workers naturally pick up more tasks than
    workers stuck on large images. Results are stored by index.
    """

    def __init__(
        self,
        concurrency: int,
        total_tasks: int,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize worker pool.

        Args:
            concurrency: Number of concurrent workers
            total_tasks: Number of task indexes to run
            logger: Optional logger instance
        """
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.concurrency = concurrency
        self.total_tasks = total_tasks
        self.logger = logger or logging.getLogger(__name__)
        self._cursor = 0
        self._lock = threading.Lock()

    def _claim_next(self) -> Optional[int]:
        """Claim the next task index, or None when all are claimed."""
        with self._lock:
            if self._cursor >= self.total_tasks:
                return None
            index = self._cursor
            self._cursor += 1
            return index

    def execute(self, task_function: TaskFunction) -> List[Optional[T]]:
        """
        Run all tasks.

        A task that raises leaves None in its slot; the other tasks still run.

        Args:
            task_function: Called as task_function(task_index, worker_id)

        Returns:
            Results ordered by task index
        """
        results: List[Optional[T]] = [None] * self.total_tasks
        self._cursor = 0

        self.logger.info(
            f"Starting worker pool: {self.total_tasks} tasks, concurrency {self.concurrency}"
        )

        def worker(worker_id: int) -> None:
            worker_logger = self.logger.getChild(f'WORKER-{worker_id}')
            processed = 0

            while True:
                index = self._claim_next()
                if index is None:
                    break

                worker_logger.debug(f"Starting task {index + 1}/{self.total_tasks}")
                start_time = time.time()
                try:
                    results[index] = task_function(index, worker_id)
                except Exception:
                    worker_logger.exception(f"Task {index + 1}/{self.total_tasks} raised")
                processed += 1
                worker_logger.debug(
                    f"Finished task {index + 1}/{self.total_tasks} "
                    f"({(time.time() - start_time) * 1000:.0f}ms)"
                )

            worker_logger.debug(f"Worker {worker_id} done, processed {processed} tasks")

        if self.concurrency == 1:
            worker(1)
            return results

        threads = [
            threading.Thread(target=worker, args=(worker_id,), name=f'worker-{worker_id}', daemon=True)
            for worker_id in range(1, self.concurrency + 1)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        return results
