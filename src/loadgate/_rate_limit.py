"""
Rate limiting primitive for the loadgate harness.

The RateGate combines two independent constraints:

- Concurrency: at most `max_concurrent` holders at any instant (counting semaphore).
- Spacing: at least `min_interval` seconds between two successive grants (throttle).

Grants are issued in FIFO order of arrival at the gate. Satisfying one
constraint never substitutes for the other: a free slot does not shorten
the spacing, and an elapsed interval does not create a slot.

Example:
    >>> from loadgate._rate_limit import RateGate
    >>> gate = RateGate.from_rate(max_concurrent=10, requests_per_second=2)
    >>> with gate.hold() as token:
    ...     do_work()
"""

import itertools
import logging
import threading
import time
from collections import deque
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from loadgate._config import ConfigurationError

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================


class GateConfigurationError(ConfigurationError):
    """Raised when a RateGate is built with invalid parameters."""


class GateTokenError(RuntimeError):
    """
    Raised when a token is released more than once or on the wrong gate.

    This is always a programming error in the caller; use `RateGate.hold()`
    to get exactly-once release on every exit path.
    """


# =============================================================================
# Token
# =============================================================================


@dataclass(eq=False)
class GateToken:
    """
    A held slot on a RateGate.

    Attributes:
        seq: Grant sequence number (0 for the first grant of the gate).
        granted_at: Monotonic timestamp (seconds) of the grant.
        released_at: Monotonic timestamp of the release, or None while held.
    """

    seq: int
    granted_at: float
    released_at: float | None = None
    _gate: "RateGate | None" = field(default=None, repr=False)

    @property
    def released(self) -> bool:
        return self.released_at is not None


# =============================================================================
# RateGate
# =============================================================================


class RateGate:
    """
    Thread-safe gate bounding concurrent holders and grant spacing.

    A caller blocks in `acquire()` until it is at the head of the wait queue,
    a slot is free, and `min_interval` has elapsed since the previous grant.
    The head waiter sleeps with a timed `Condition.wait()` for the remaining
    spacing; everyone else waits to be notified.

    Args:
        max_concurrent: Maximum number of outstanding tokens (> 0).
        min_interval: Minimum seconds between two successive grants (>= 0).

    Raises:
        GateConfigurationError: If any parameter is invalid.
    """

    def __init__(self, max_concurrent: int, min_interval: float = 0.0):
        if max_concurrent is None or isinstance(max_concurrent, bool) or not isinstance(max_concurrent, int):
            raise GateConfigurationError(f"max_concurrent must be an integer, got {max_concurrent!r}.")
        if max_concurrent <= 0:
            raise GateConfigurationError(f"max_concurrent must be greater than 0, got {max_concurrent}.")
        if min_interval is None or min_interval < 0:
            raise GateConfigurationError(f"min_interval must be >= 0, got {min_interval!r}.")

        self._max_concurrent = max_concurrent
        self._min_interval = float(min_interval)

        self._cond = threading.Condition(threading.Lock())
        self._holders = 0
        self._last_grant_at: float | None = None
        self._queue: deque[object] = deque()
        self._seq = itertools.count()

    @classmethod
    def from_rate(cls, max_concurrent: int, requests_per_second: float) -> "RateGate":
        """
        Build a gate from a request-initiation rate.

        Args:
            max_concurrent: Maximum number of outstanding tokens.
            requests_per_second: Maximum grants per second; spacing is its inverse.

        Raises:
            GateConfigurationError: If the rate is not positive.
        """
        if requests_per_second is None or requests_per_second <= 0:
            raise GateConfigurationError(
                f"requests_per_second must be greater than 0, got {requests_per_second!r}."
            )
        return cls(max_concurrent=max_concurrent, min_interval=1.0 / requests_per_second)

    # ======================
    # Introspection
    # ======================

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    @property
    def min_interval(self) -> float:
        return self._min_interval

    @property
    def holders(self) -> int:
        """Number of tokens currently outstanding."""
        with self._cond:
            return self._holders

    @property
    def waiting(self) -> int:
        """Number of callers blocked in acquire()."""
        with self._cond:
            return len(self._queue)

    @property
    def last_grant_at(self) -> float | None:
        with self._cond:
            return self._last_grant_at

    # ======================
    # Acquire / release
    # ======================

    def acquire(self) -> GateToken:
        """
        Block until both constraints allow a grant, then take a slot.

        Returns:
            The token representing the held slot. Release it exactly once.
        """
        ticket = object()
        with self._cond:
            self._queue.append(ticket)
            try:
                while True:
                    if self._queue[0] is ticket and self._holders < self._max_concurrent:
                        now = time.monotonic()
                        remaining = self._spacing_remaining(now)
                        if remaining <= 0:
                            break
                        self._cond.wait(timeout=remaining)
                    else:
                        self._cond.wait()
            except BaseException:
                # interrupted while queued: leave the queue and let the next waiter move up
                self._queue.remove(ticket)
                self._cond.notify_all()
                raise

            self._queue.popleft()
            self._holders += 1
            self._last_grant_at = now
            token = GateToken(seq=next(self._seq), granted_at=now, _gate=self)
            holders = self._holders
            # the new head may already have a free slot; it re-checks spacing itself
            self._cond.notify_all()

        logger.debug(f"Gate | granted token seq={token.seq} (holders={holders}/{self._max_concurrent})")
        return token

    def release(self, token: GateToken) -> None:
        """
        Give back a slot taken by `acquire()`.

        Raises:
            GateTokenError: If the token was already released or belongs to another gate.
        """
        with self._cond:
            if token._gate is not self:
                raise GateTokenError(f"Token seq={token.seq} was not granted by this gate.")
            if token.released:
                raise GateTokenError(f"Token seq={token.seq} was already released.")
            token.released_at = time.monotonic()
            self._holders -= 1
            assert self._holders >= 0, "🌀 Sanity check | RateGate holders count went negative."
            self._cond.notify_all()

    @contextmanager
    def hold(self) -> Iterator[GateToken]:
        """
        Scoped acquisition: the token is released on every exit path.

        Example:
            >>> with gate.hold():
            ...     client.post(url, data=payload)
        """
        token = self.acquire()
        try:
            yield token
        finally:
            self.release(token)

    def _spacing_remaining(self, now: float) -> float:
        if self._last_grant_at is None:
            return 0.0
        return self._last_grant_at + self._min_interval - now

    def __repr__(self) -> str:
        return (
            f"RateGate(max_concurrent={self._max_concurrent}, "
            f"min_interval={self._min_interval:.3f}s)"
        )
