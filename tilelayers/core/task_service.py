"""Bounded background task execution."""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

from tilelayers.core.config import MAX_PENDING_TASKS, MAX_TASK_WORKERS
from tilelayers.core.errors import CapacityExceeded

logger = logging.getLogger(__name__)


class TaskService:
    """Fixed-size worker pool that refuses work instead of queueing without bound.

    ``max_pending`` counts tasks that are queued or running. Submitting while
    that many tasks are outstanding raises CapacityExceeded immediately.
    """

    def __init__(
        self,
        max_workers: int = MAX_TASK_WORKERS,
        max_pending: int = MAX_PENDING_TASKS,
        thread_name_prefix: str = "LayerTask",
    ):
        """
        Initialize task service.

        Args:
            max_workers: Number of worker threads
            max_pending: Maximum number of outstanding tasks
            thread_name_prefix: Name prefix for worker threads
        """
        if max_pending < 1:
            raise ValueError(f"max_pending must be at least 1, got {max_pending}")

        self.max_pending = max_pending
        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=thread_name_prefix)
        self._slots = threading.BoundedSemaphore(max_pending)

    def submit(self, fn: Callable, *args, **kwargs) -> Future:
        """
        Schedule a task on the worker pool without blocking.

        Args:
            fn: Callable to run in a worker thread
            *args: Positional arguments for fn
            **kwargs: Keyword arguments for fn

        Returns:
            Future of the task

        Raises:
            CapacityExceeded: If the service is saturated or shut down
        """
        if not self._slots.acquire(blocking=False):
            raise CapacityExceeded(f"Task service is full ({self.max_pending} tasks outstanding)")

        try:
            future = self.executor.submit(fn, *args, **kwargs)
        except RuntimeError as e:
            self._slots.release()
            raise CapacityExceeded(f"Task service is not accepting tasks: {e}") from e

        future.add_done_callback(self._release_slot)
        return future

    def _release_slot(self, future: Future) -> None:
        self._slots.release()

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting tasks and optionally wait for running ones."""
        self.executor.shutdown(wait=wait)


_task_service: Optional[TaskService] = None
_task_service_lock = threading.Lock()


def get_task_service() -> TaskService:
    """Get the shared task service, creating it on first use."""
    global _task_service
    with _task_service_lock:
        if _task_service is None:
            _task_service = TaskService()
            logger.debug(f"Created shared task service ({MAX_TASK_WORKERS} workers)")
        return _task_service
