"""
Load test orchestration: Config -> RateGate -> Dispatcher -> ResultsAggregator -> report.
"""

import logging
from collections.abc import Callable
from typing import Any

from loadgate._config import LoadGateConfig
from loadgate._dispatcher import Dispatcher
from loadgate._http import HttpClient
from loadgate._listeners import DispatchListener, notify_listeners
from loadgate._models import LoadRequest, Summary
from loadgate._rate_limit import RateGate
from loadgate._report import report_summary
from loadgate._results import ResultsAggregator
from loadgate._task import RequestTask

logger = logging.getLogger(__name__)


class LoadTest:
    """
    Runs one batch of identical requests against the configured target.

    Every call to `run()` builds a fresh RateGate and ResultsAggregator:
    nothing is shared across runs. The configuration is validated (and the
    JSON body parsed) on construction, so configuration errors surface before
    any request is sent.

    Example:
        >>> config = LoadGateConfig.from_env()
        >>> summary = LoadTest(config).run()
        >>> summary.success_count
        100

    Args:
        config: Load and target configuration.
        http_client: HTTP client for the calls. If None, uses a RequestsHttpClient
            with a connection pool sized to max_concurrent.
        listeners: Observers of the dispatch lifecycle.
            If None (default), registers a LoggingListener.
            If [] (empty list), disables per-request logging.
        output: Where the final report is written (default: print).
            Pass None to skip reporting.

    Raises:
        ConfigurationError: If the configuration is invalid.
    """

    def __init__(
        self,
        config: LoadGateConfig,
        http_client: HttpClient | None = None,
        listeners: list[DispatchListener] | None = None,
        output: Callable[[str], None] | None = print,
    ):
        assert config is not None, "LoadTest config can not be None."
        config.validate()

        self._owns_client = http_client is None
        if http_client is None:
            from loadgate._http import RequestsHttpClient
            http_client = RequestsHttpClient(pool_size=config.load.max_concurrent)

        if listeners is None:
            from loadgate._listeners import LoggingListener
            listeners = [LoggingListener()]

        self.config = config
        self.http_client: HttpClient = http_client
        self.listeners: list[DispatchListener] = listeners
        self.output = output
        self.request = self._build_request(config)

    @staticmethod
    def _build_request(config: LoadGateConfig) -> LoadRequest:
        target = config.target
        return LoadRequest(
            url=target.url,
            payload=target.parsed_body(),
            headers=target.client_headers(),
            timeout=target.request_timeout,
        )

    def run(self) -> Summary:
        """
        Execute the batch and return its Summary (blocking).

        Always returns a Summary once every request has resolved, even when
        all of them failed.
        """
        load = self.config.load
        gate = RateGate.from_rate(
            max_concurrent=load.max_concurrent,
            requests_per_second=load.requests_per_second,
        )
        aggregator = ResultsAggregator()
        dispatcher = Dispatcher(
            gate=gate,
            aggregator=aggregator,
            max_workers=load.max_workers,
            listeners=self.listeners,
        )

        logger.info(f"{'Batch':<14} | 🛜 Starting load test against {self.request.url}")
        notify_listeners(self.listeners, "on_batch_start", total=load.total_requests)

        aggregator.mark_started()
        dispatcher.run_all(load.total_requests, self._task_factory)
        aggregator.mark_finished()

        summary = aggregator.summarize()
        notify_listeners(self.listeners, "on_batch_end", summary=summary)
        logger.info(
            f"{'Batch':<14} | 🛜 Load test finished in {summary.elapsed_seconds:.2f}s "
            f"({summary.success_count}/{summary.total} succeeded)."
        )

        if self.output is not None:
            report_summary(summary, self.output)
        return summary

    def _task_factory(self, index: int) -> RequestTask:
        return RequestTask(client=self.http_client, request=self.request, index=index)

    def close(self) -> None:
        """Close the HTTP client if this LoadTest created it."""
        if self._owns_client:
            from loadgate._http import RequestsHttpClient
            assert isinstance(self.http_client, RequestsHttpClient)
            self.http_client.close()

    def __enter__(self) -> "LoadTest":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def run_load_test(
    config: LoadGateConfig | None = None,
    http_client: HttpClient | None = None,
    **overrides: Any,
) -> Summary:
    """
    Convenience wrapper: build the config (env vars + overrides) and run one batch.

    Overrides are given per section, e.g.
    `run_load_test(load={"total_requests": 10}, target={"url": "http://localhost:8080"})`.

    Raises:
        ConfigurationError: If the configuration is invalid.
    """
    if config is None:
        config = LoadGateConfig.from_env(**overrides)
    elif overrides:
        config = config.with_section_overrides(**overrides)
    with LoadTest(config, http_client=http_client) as load_test:
        return load_test.run()
