"""
Dispatcher: runs N independent work items through a RateGate.

Each work item runs on a worker thread and goes through these steps:
acquire the gate, run its RequestTask, release the gate (on every exit path),
then record the outcome. `run_all()` blocks on a WaitGroup until every item
has reported in.

Example:
    >>> gate = RateGate.from_rate(max_concurrent=5, requests_per_second=20)
    >>> aggregator = ResultsAggregator()
    >>> dispatcher = Dispatcher(gate=gate, aggregator=aggregator)
    >>> dispatcher.run_all(100, lambda i: RequestTask(client, request, index=i))
    >>> len(aggregator)
    100
"""

import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor

from loadgate._listeners import DispatchListener, notify_listeners
from loadgate._models import RequestOutcome
from loadgate._rate_limit import RateGate
from loadgate._results import ResultsAggregator
from loadgate._task import RequestTask

logger = logging.getLogger(__name__)

TaskFactory = Callable[[int], RequestTask]


class WaitGroup:
    """
    Counter-based barrier: `wait()` blocks until every `add()` is matched by a `done()`.

    Example:
        >>> wg = WaitGroup()
        >>> wg.add(2)
        >>> # ... two workers each call wg.done()
        >>> wg.wait()
        True
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._pending = 0

    def add(self, delta: int = 1) -> None:
        with self._cond:
            if self._pending + delta < 0:
                raise ValueError("WaitGroup counter can not go negative.")
            self._pending += delta
            if self._pending == 0:
                self._cond.notify_all()

    def done(self) -> None:
        self.add(-1)

    @property
    def pending(self) -> int:
        with self._cond:
            return self._pending

    def wait(self, timeout: float | None = None) -> bool:
        """
        Block until the counter reaches zero.

        Returns:
            True if the counter reached zero, False if `timeout` expired first.
        """
        with self._cond:
            return self._cond.wait_for(lambda: self._pending == 0, timeout=timeout)


class Dispatcher:
    """
    Issues work items concurrently under a RateGate and waits for all of them.

    The worker pool defaults to `gate.max_concurrent` threads: every worker
    can hold a slot, and the gate alone decides when each item starts.
    Work items are independent: a failing item is recorded as a failed
    outcome and never prevents other items from running. There is no retry.

    Args:
        gate: RateGate shared by every work item of the batch.
        aggregator: Where outcomes are recorded.
        max_workers: Size of the worker thread-pool (default: gate.max_concurrent).
        listeners: Observers notified around each request.
    """

    def __init__(
        self,
        gate: RateGate,
        aggregator: ResultsAggregator,
        max_workers: int | None = None,
        listeners: list[DispatchListener] | None = None,
    ):
        if max_workers is None:
            max_workers = gate.max_concurrent if gate is not None else None

        assert gate is not None, "Dispatcher gate can not be None."
        assert aggregator is not None, "Dispatcher aggregator can not be None."
        assert max_workers, "Thread-pool max_workers can not be empty."
        assert max_workers > 0, "Thread-pool max_workers must be greater than 0."

        self.gate = gate
        self.aggregator = aggregator
        self.max_workers = max_workers
        self.listeners: list[DispatchListener] = listeners if listeners is not None else []

    def run_all(self, n: int, task_factory: TaskFactory) -> None:
        """
        Run `n` work items and block until every outcome has been recorded.

        Args:
            n: Number of work items (logical indices 0..n-1).
            task_factory: Builds the RequestTask for a given index.

        Raises:
            ValueError: If n is negative.
        """
        if n < 0:
            raise ValueError(f"Number of work items must be >= 0, got {n}.")
        if n == 0:
            logger.info(f"{'Batch':<14} | 🛜 Nothing to dispatch (n=0).")
            return

        logger.info(f"{'Batch':<14} | 🛜 Dispatching {n} requests.")
        logger.info(f"{'Batch':<14} |    ├ max_concurrent={self.gate.max_concurrent}")
        logger.info(f"{'Batch':<14} |    ├ min_interval={self.gate.min_interval * 1000:.2f} ms")
        logger.info(f"{'Batch':<14} |    └ max_workers={self.max_workers}")

        recorded_before = len(self.aggregator)
        wait_group = WaitGroup()
        wait_group.add(n)

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="loadgate") as executor:
            for index in range(n):
                executor.submit(self._run_item, index, task_factory, wait_group)
            wait_group.wait()

        recorded = len(self.aggregator) - recorded_before
        assert recorded == n, (
            f"🌀 Sanity check | Unexpected mismatch: outcomes(size={recorded}) is different from work items(size={n})."
        )
        logger.info(f"{'Batch':<14} | 🛜 Dispatch finished: {recorded} outcomes recorded.")

    def _run_item(self, index: int, task_factory: TaskFactory, wait_group: WaitGroup) -> None:
        try:
            with self.gate.hold():
                notify_listeners(self.listeners, "on_before_request", index=index)
                outcome = self._execute(index, task_factory)
            self.aggregator.record(outcome)
            notify_listeners(self.listeners, "on_after_request", index=index, outcome=outcome)
        finally:
            wait_group.done()

    @staticmethod
    def _execute(index: int, task_factory: TaskFactory) -> RequestOutcome:
        start = time.perf_counter()
        try:
            return task_factory(index).run()
        except Exception as e:
            logger.exception(f"{'request#' + str(index):<14} | ❌ Work item crashed: {e}")
            return RequestOutcome(
                status_code=None,
                duration_ms=(time.perf_counter() - start) * 1000,
                error_detail=str(e) or e.__class__.__name__,
                error_kind="internal",
                index=index,
            )
