"""Fixed-capacity thread pool with fail-fast error aggregation."""

import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, List, Optional

from common.constants import DEFAULT_POOL_CAPACITY
from common.logging_config import get_logger
from engine.exceptions import InvalidInputError

logger = get_logger(__name__)


class BoundedTaskPool:
    """
    Runs at most `capacity` tasks concurrently.

    submit() blocks until a slot frees, so no more than `capacity` tasks are
    ever admitted at once; tasks holding chunk buffers stay bounded in memory.
    The first exception raised by a task flips should_stop() for every
    caller. Already admitted tasks are never cancelled.

    Usage:
        with BoundedTaskPool(8) as pool:
            for item in items:
                if pool.should_stop():
                    break
                pool.submit(work, item)
            error = pool.wait()
    """

    def __init__(self, capacity: int = DEFAULT_POOL_CAPACITY, name: str = "chunkvault"):
        if capacity < 1:
            raise InvalidInputError(f"Pool capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self._executor = ThreadPoolExecutor(max_workers=capacity, thread_name_prefix=name)
        self._slots = threading.BoundedSemaphore(capacity)
        self._stop = threading.Event()
        self._error_lock = threading.Lock()
        self._first_error: Optional[Exception] = None
        self._futures: List[Future] = []

    def submit(self, task: Callable, *args, **kwargs) -> None:
        """
        Queue task(*args, **kwargs), blocking while the pool is full.

        Callers check should_stop() before submitting; submit itself does not.
        """
        self._slots.acquire()
        try:
            future = self._executor.submit(self._run, task, args, kwargs)
        except Exception:
            self._slots.release()
            raise
        self._futures.append(future)

    def _run(self, task: Callable, args: tuple, kwargs: dict) -> None:
        try:
            task(*args, **kwargs)
        except Exception as e:
            with self._error_lock:
                if self._first_error is None:
                    self._first_error = e
            self._stop.set()
            logger.error(f"Task failed: {type(e).__name__}: {e}")
        finally:
            self._slots.release()

    def should_stop(self) -> bool:
        """True once any task has failed."""
        return self._stop.is_set()

    def wait(self) -> Optional[Exception]:
        """
        Block until every submitted task has finished.

        Returns:
            The first error recorded, by completion order, or None
        """
        wait(self._futures)
        self._futures.clear()
        return self._first_error

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)

    def __enter__(self) -> 'BoundedTaskPool':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()
