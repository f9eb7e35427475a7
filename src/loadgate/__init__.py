"""
loadgate: a rate-limited HTTP load-generation harness.

Issues a fixed number of identical POST requests against a target endpoint
while enforcing two independent limits (requests in flight, and request
starts per second), then summarizes the outcomes.

Quick Start:
    >>> from loadgate import LoadGateConfig, LoadTest
    >>> config = LoadGateConfig.from_env(
    ...     load={"total_requests": 100, "max_concurrent": 5, "requests_per_second": 10},
    ...     target={"url": "https://api.example.com/v1/echo", "json_body": '{"ping": 1}'},
    ... )
    >>> summary = LoadTest(config).run()
    >>> print(summary.throughput_per_second)

Command line:
    $ LOADGATE_API_URL=https://api.example.com/v1/echo LOADGATE_JSON_BODY='{}' \\
      python -m loadgate --total-requests 100 --concurrency 5 --rps 10

Main Classes:
    - LoadTest: Orchestrates one batch and reports its Summary.
    - RateGate: Concurrency ceiling + minimum spacing between grants (FIFO).
    - Dispatcher: Runs N work items through a RateGate and waits for all of them.
    - ResultsAggregator: Thread-safe outcome store; computes the Summary.
    - RequestTask: One timed HTTP call, classified into a RequestOutcome.

Configuration:
    - LoadGateConfig: Root configuration (load + target sections).
    - LoadConfig / TargetConfig: Configuration sections.
    - ConfigurationError: Base class of every startup error.
"""

from importlib.metadata import version as _get_version

__version__ = _get_version("loadgate")

from loadgate._config import (
    ConfigEntry,
    ConfigEnvVarError,
    ConfigurationError,
    ConfigValidationError,
    LoadConfig,
    LoadGateConfig,
    TargetConfig,
)
from loadgate._dispatcher import Dispatcher, WaitGroup
from loadgate._http import HttpClient, RequestsHttpClient
from loadgate._listeners import DispatchListener, LoggingListener
from loadgate._load_test import LoadTest, run_load_test
from loadgate._models import LoadRequest, RequestOutcome, Summary
from loadgate._rate_limit import (
    GateConfigurationError,
    GateToken,
    GateTokenError,
    RateGate,
)
from loadgate._report import format_summary, report_summary
from loadgate._results import ResultsAggregator
from loadgate._task import RequestTask

__all__ = [
    "__version__",
    # Configuration
    "LoadGateConfig",
    "LoadConfig",
    "TargetConfig",
    "ConfigEntry",
    "ConfigurationError",
    "ConfigEnvVarError",
    "ConfigValidationError",
    # HTTP Client
    "HttpClient",
    "RequestsHttpClient",
    # Rate limiting
    "RateGate",
    "GateToken",
    "GateConfigurationError",
    "GateTokenError",
    # Dispatch
    "Dispatcher",
    "WaitGroup",
    "RequestTask",
    "ResultsAggregator",
    "DispatchListener",
    "LoggingListener",
    # Models
    "LoadRequest",
    "RequestOutcome",
    "Summary",
    # Orchestration & reporting
    "LoadTest",
    "run_load_test",
    "format_summary",
    "report_summary",
]
