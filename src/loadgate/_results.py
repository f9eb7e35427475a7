"""
Thread-safe collection of request outcomes and the summary computed from them.
"""

import math
import threading
import time
from collections import Counter
from collections.abc import Callable

from loadgate._models import RequestOutcome, Summary


class ResultsAggregator:
    """
    Append-only, thread-safe store of the outcomes of one batch.

    Outcomes are kept in completion order. `summarize()` must only be called
    once every expected outcome has been recorded; it is pure and can be
    called any number of times.

    Example:
        >>> aggregator = ResultsAggregator()
        >>> aggregator.mark_started()
        >>> aggregator.record(RequestOutcome(status_code=200, duration_ms=12.5))
        >>> aggregator.mark_finished()
        >>> aggregator.summarize().success_count
        1
    """

    def __init__(self, clock: Callable[[], float] = time.perf_counter):
        self._lock = threading.Lock()
        self._outcomes: list[RequestOutcome] = []
        self._clock = clock
        self._started_at: float | None = None
        self._finished_at: float | None = None

    def record(self, outcome: RequestOutcome) -> None:
        assert outcome is not None, "Outcome can not be None."
        with self._lock:
            self._outcomes.append(outcome)

    @property
    def outcomes(self) -> tuple[RequestOutcome, ...]:
        """Snapshot of the recorded outcomes, in completion order."""
        with self._lock:
            return tuple(self._outcomes)

    def __len__(self) -> int:
        with self._lock:
            return len(self._outcomes)

    def mark_started(self) -> None:
        self._started_at = self._clock()
        self._finished_at = None

    def mark_finished(self) -> None:
        assert self._started_at is not None, "mark_started() must be called before mark_finished()."
        self._finished_at = self._clock()

    @property
    def elapsed_seconds(self) -> float:
        """Wall-clock time between mark_started() and mark_finished(), or nan."""
        if self._started_at is None or self._finished_at is None:
            return math.nan
        return self._finished_at - self._started_at

    def summarize(self, elapsed_seconds: float | None = None) -> Summary:
        """
        Compute the batch statistics.

        Args:
            elapsed_seconds: Wall-clock duration of the batch. If None, uses the
                bounds recorded by mark_started()/mark_finished().

        Returns:
            Summary: Count fields are always defined. On an empty batch,
            average, percentiles and throughput are `nan`. Never raises.
        """
        outcomes = self.outcomes
        elapsed = self.elapsed_seconds if elapsed_seconds is None else elapsed_seconds

        total = len(outcomes)
        success_count = sum(1 for o in outcomes if o.is_success())
        failure_count = total - success_count

        if total == 0:
            return Summary(
                total=0,
                success_count=0,
                failure_count=0,
                average_duration_ms=math.nan,
                throughput_per_second=math.nan,
                elapsed_seconds=elapsed,
            )

        durations = sorted(o.duration_ms for o in outcomes)
        if success_count == 0:
            throughput = 0.0
        elif elapsed > 0:
            throughput = success_count / elapsed
        else:
            throughput = math.nan

        return Summary(
            total=total,
            success_count=success_count,
            failure_count=failure_count,
            average_duration_ms=math.fsum(durations) / total,
            throughput_per_second=throughput,
            elapsed_seconds=elapsed,
            min_duration_ms=durations[0],
            max_duration_ms=durations[-1],
            p50_duration_ms=_percentile(durations, 50),
            p95_duration_ms=_percentile(durations, 95),
            status_counts=dict(sorted(Counter(o.status_code for o in outcomes if o.is_success()).items())),
        )


def _percentile(sorted_values: list[float], pct: float) -> float:
    # nearest-rank
    rank = max(1, math.ceil(pct / 100 * len(sorted_values)))
    return sorted_values[rank - 1]
