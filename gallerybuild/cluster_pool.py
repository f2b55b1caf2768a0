"""
ClusterPool - Runs tasks across a fixed group of worker processes.
"""

import logging
import math
import os
from concurrent.futures import ProcessPoolExecutor, as_completed
from typing import Dict, List, Optional, Tuple

from .worker_pool import TaskFunction, WorkerPool


def _init_worker_process(worker_env: Dict[str, str]) -> None:
    """Apply the run's environment inside a freshly started worker process."""
    os.environ.update(worker_env)


def _run_slice(
    task_function: TaskFunction,
    start: int,
    stop: int,
    worker_id: int,
    worker_concurrency: int
) -> Tuple[int, list]:
    """
    Run tasks [start, stop) inside a worker process.

    Returns:
        (start, results for the slice in index order)
    """
    logger = logging.getLogger(__name__).getChild(f'WORKER-{worker_id}')
    logger.info(f"Process {os.getpid()} handling tasks {start + 1}-{stop}")

    pool = WorkerPool(concurrency=worker_concurrency, total_tasks=stop - start, logger=logger)
    results = pool.execute(lambda index, _: task_function(start + index, worker_id))
    return start, results


class ClusterPool:
    """
    Multi-process execution strategy.

    The index range is split into contiguous slices, one per process. Each
    process runs its slice through its own WorkerPool and sends back the
    results, which are merged by index. Run flags reach the processes only
    through environment variables; the task function and its results must
    be picklable.
    """

    def __init__(
        self,
        concurrency: int,
        total_tasks: int,
        worker_concurrency: int = 5,
        worker_env: Optional[Dict[str, str]] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize cluster pool.

        Args:
            concurrency: Maximum number of worker processes
            total_tasks: Number of task indexes to run
            worker_concurrency: Concurrent tasks inside each process
            worker_env: Environment variables set in every worker process
            logger: Optional logger instance
        """
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        if worker_concurrency < 1:
            raise ValueError("worker_concurrency must be at least 1")
        self.concurrency = concurrency
        self.total_tasks = total_tasks
        self.worker_concurrency = worker_concurrency
        self.worker_env = dict(worker_env or {})
        self.logger = logger or logging.getLogger(__name__)

    @property
    def process_count(self) -> int:
        """Processes needed: enough to cover all tasks, capped by concurrency."""
        if self.total_tasks == 0:
            return 0
        required = math.ceil(self.total_tasks / self.worker_concurrency)
        return min(self.concurrency, required)

    def slices(self) -> List[Tuple[int, int]]:
        """Contiguous, disjoint [start, stop) ranges covering all tasks."""
        count = self.process_count
        if count == 0:
            return []
        base, extra = divmod(self.total_tasks, count)
        ranges = []
        start = 0
        for i in range(count):
            stop = start + base + (1 if i < extra else 0)
            ranges.append((start, stop))
            start = stop
        return ranges

    def execute(self, task_function: TaskFunction) -> list:
        """
        Run all tasks across worker processes.

        Args:
            task_function: Picklable callable, task_function(task_index, worker_id)

        Returns:
            Results ordered by task index

        Raises:
            Exception: If a worker process dies or a result cannot be transported
        """
        results: list = [None] * self.total_tasks
        ranges = self.slices()
        if not ranges:
            return results

        self.logger.info(
            f"Starting cluster pool: {self.total_tasks} tasks, {len(ranges)} processes, "
            f"{self.worker_concurrency} concurrent tasks per process"
        )

        with ProcessPoolExecutor(
            max_workers=len(ranges),
            initializer=_init_worker_process,
            initargs=(self.worker_env,),
        ) as executor:
            futures = {
                executor.submit(
                    _run_slice, task_function, start, stop, worker_id, self.worker_concurrency
                ): worker_id
                for worker_id, (start, stop) in enumerate(ranges, start=1)
            }
            for future in as_completed(futures):
                start, slice_results = future.result()
                results[start:start + len(slice_results)] = slice_results
                self.logger.info(
                    f"Process {futures[future]} finished {len(slice_results)} tasks"
                )

        return results
