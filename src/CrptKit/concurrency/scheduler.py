"""Delayed task scheduler used for time-triggered permit release."""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


@dataclass(order=True)
class ScheduledTask:
    """Entry in the scheduler heap, ordered by deadline then submission order."""

    deadline: float
    sequence: int
    callback: Callable[[], None] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        """Mark the task so the worker skips it when its deadline arrives."""
        self.cancelled = True


class DelayedTaskScheduler:
    """Run callbacks on a dedicated worker thread once their delay expires.

    The scheduler owns its own condition variable, so callers scheduling work
    never contend with whatever lock the callbacks themselves take. Tasks are
    executed in deadline order; ties run in submission order.

    Attributes:
        _heap: Pending tasks keyed by monotonic deadline
        _condition: Guards the heap and wakes the worker on new deadlines
        _worker: Lazily started daemon thread executing due callbacks
    """

    def __init__(
        self,
        name: str = "crptkit-scheduler",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._name = name
        self._clock = clock
        self._heap: List[ScheduledTask] = []
        self._counter = itertools.count()
        self._condition = threading.Condition()
        self._worker: Optional[threading.Thread] = None
        self._shutdown = False

    @property
    def pending(self) -> int:
        """Number of tasks waiting for their deadline."""
        with self._condition:
            return sum(1 for task in self._heap if not task.cancelled)

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown

    def schedule(self, delay_seconds: float, callback: Callable[[], None]) -> ScheduledTask:
        """Queue ``callback`` to run ``delay_seconds`` from now.

        Args:
            delay_seconds: Non-negative delay before the callback runs.
            callback: Zero-argument callable executed on the worker thread.

        Returns:
            The queued :class:`ScheduledTask`, which may be cancelled.

        Raises:
            ValueError: If ``delay_seconds`` is negative.
            RuntimeError: If the scheduler has been shut down.
        """
        if delay_seconds < 0:
            raise ValueError(f"delay must be non-negative, got: {delay_seconds}")
        with self._condition:
            if self._shutdown:
                raise RuntimeError("scheduler has been shut down")
            task = ScheduledTask(
                deadline=self._clock() + delay_seconds,
                sequence=next(self._counter),
                callback=callback,
            )
            heapq.heappush(self._heap, task)
            self._ensure_worker()
            self._condition.notify()
        return task

    def shutdown(self, wait: bool = True, run_pending: bool = False) -> None:
        """Stop the worker thread.

        Args:
            wait: Join the worker before returning.
            run_pending: Execute still-queued callbacks immediately instead of
                discarding them.
        """
        with self._condition:
            if self._shutdown:
                return
            self._shutdown = True
            leftovers = [task for task in self._heap if not task.cancelled]
            self._heap.clear()
            self._condition.notify_all()
            worker = self._worker

        if run_pending:
            for task in sorted(leftovers):
                self._run(task)

        if wait and worker is not None and worker is not threading.current_thread():
            worker.join()
        logger.debug(
            "Delayed task scheduler stopped",
            extra={
                "extra_fields": {
                    "scheduler": self._name,
                    "discarded": 0 if run_pending else len(leftovers),
                }
            },
        )

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    def _ensure_worker(self) -> None:
        if self._worker is None or not self._worker.is_alive():
            self._worker = threading.Thread(target=self._loop, name=self._name, daemon=True)
            self._worker.start()

    def _loop(self) -> None:
        while True:
            with self._condition:
                while not self._shutdown:
                    if not self._heap:
                        self._condition.wait()
                        continue
                    remaining = self._heap[0].deadline - self._clock()
                    if remaining <= 0:
                        break
                    self._condition.wait(timeout=remaining)
                if self._shutdown:
                    return
                task = heapq.heappop(self._heap)
            if not task.cancelled:
                self._run(task)

    def _run(self, task: ScheduledTask) -> None:
        try:
            task.callback()
        except Exception:
            logger.exception(
                "Scheduled callback raised",
                extra={"extra_fields": {"scheduler": self._name, "sequence": task.sequence}},
            )


__all__ = ["DelayedTaskScheduler", "ScheduledTask"]
