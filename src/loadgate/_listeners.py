"""
Event listeners for observing a load test.

Available Listeners:
    - DispatchListener: Base class with no-op hooks.
    - LoggingListener: Logs each request outcome and the batch boundaries.

Example:
    >>> from loadgate import LoadTest, LoggingListener
    >>> load_test = LoadTest(config, listeners=[LoggingListener()])
"""

import logging
from typing import override

from loadgate._models import RequestOutcome, Summary

logger = logging.getLogger(__name__)


class DispatchListener:
    """
    Base class for observing the dispatch lifecycle.

    Listeners are read-only observers: they can log, notify or collect
    metrics, but must NOT modify outcomes. Hooks for individual requests are
    called from worker threads, so implementations must be thread-safe.

    All methods have default empty implementations, so subclasses only need to
    override the methods they care about.
    """

    def on_batch_start(self, total: int) -> None:
        """Called once, before the first work item is submitted."""
        pass

    def on_before_request(self, index: int) -> None:
        """Called on a worker thread right after the gate granted a slot."""
        pass

    def on_after_request(self, index: int, outcome: RequestOutcome) -> None:
        """Called on a worker thread after the outcome has been recorded."""
        pass

    def on_batch_end(self, summary: Summary) -> None:
        """Called once, after every outcome has been recorded and summarized."""
        pass


class LoggingListener(DispatchListener):
    """
    Logs every request outcome.

    Successful exchanges are logged at INFO (with a response body excerpt at
    DEBUG), failed ones at WARNING.

    Args:
        log_successes: If False, only failures are logged.
    """

    def __init__(self, log_successes: bool = True):
        self.log_successes = log_successes

    @override
    def on_after_request(self, index: int, outcome: RequestOutcome) -> None:
        tag = f"{'request#' + str(index):<14}"
        if outcome.is_success():
            if self.log_successes:
                logger.info(f"{tag} | ✅ Request succeeded: {outcome.status_code} ({outcome.duration_ms:.2f} ms)")
            if outcome.body_excerpt is not None:
                logger.debug(f"{tag} | └ Response body: {outcome.body_excerpt}")
        else:
            logger.warning(
                f"{tag} | ❌ Request failed ({outcome.error_kind}): {outcome.error_detail} "
                f"({outcome.duration_ms:.2f} ms)"
            )

    @override
    def on_batch_end(self, summary: Summary) -> None:
        if summary.failure_count:
            logger.warning(f"{'Batch':<14} | ⚠️ {summary.failure_count} of {summary.total} requests failed.")


def notify_listeners(listeners: list[DispatchListener], event: str, **kwargs: object) -> None:
    """
    Notify all listeners about an event.

    Exceptions raised by listeners are logged but do not interrupt the batch.

    Args:
        listeners: Listeners to notify, in order.
        event: The hook name (e.g., 'on_after_request').
        **kwargs: Keyword arguments passed to the hook.
    """
    index = kwargs.get("index")
    tag = f"request#{index}" if index is not None else "Batch"

    for listener in listeners:
        try:
            method = getattr(listener, event, None)
            if method and callable(method):
                method(**kwargs)
        except Exception as e:
            listener_name = listener.__class__.__name__
            logger.warning(
                f"{tag:<14} | Event listener `{listener_name}.{event}()` raised an exception: {e}"
            )
