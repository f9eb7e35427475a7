"""
Data models for the loadgate harness.

This module contains the core data structures:
- LoadRequest: The request every work item sends (frozen/immutable)
- RequestOutcome: The terminal result of one work item (frozen/immutable)
- Summary: Statistics derived from a completed batch (frozen/immutable)
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from types import MappingProxyType
from typing import Any


@dataclass(frozen=True)
class LoadRequest:
    """
    The request issued by every work item of a batch.

    Attributes:
        url: Request destination.
        payload: JSON-serializable body, parsed once from configuration.
        headers: Headers passed through verbatim to the HTTP client.
        timeout: Per-request timeout in seconds.
    """
    url: str
    payload: Any = None
    headers: dict[str, str] = field(default_factory=dict)
    timeout: float = 30.0

    def __post_init__(self) -> None:
        assert self.url, "LoadRequest url can not be empty."
        assert self.timeout and self.timeout > 0, "LoadRequest timeout must be greater than 0."


@dataclass(frozen=True)
class RequestOutcome:
    """
    Terminal result of one work item.

    A `status_code` of None means the exchange could not be completed
    (network error, timeout, reset). Any HTTP status, 4xx and 5xx included,
    is a completed exchange.

    Attributes:
        status_code: HTTP status returned by the server, or None on failure.
        duration_ms: Wall-clock time spent in the HTTP call, in milliseconds.
        error_detail: Failure message, only set when status_code is None.
        error_kind: "timeout", "transport" or "internal", only set when status_code is None.
        index: Logical index of the work item within its batch.
        body_excerpt: Beginning of the response body of a completed exchange,
            only captured when DEBUG logging is enabled.
    """
    status_code: int | None
    duration_ms: float
    error_detail: str | None = None
    error_kind: str | None = None
    index: int = 0
    body_excerpt: str | None = None

    def __post_init__(self) -> None:
        assert self.duration_ms >= 0, "RequestOutcome duration_ms must be non-negative."

    def is_success(self) -> bool:
        return self.status_code is not None

    def is_failure(self) -> bool:
        return self.status_code is None


@dataclass(frozen=True)
class Summary:
    """
    Statistics computed once from a completed batch.

    Duration fields are in milliseconds and average over successes and
    failures alike. Throughput counts successful requests per second of
    wall-clock time. Fields that need a division are `nan` on an empty batch.

    Attributes:
        total: Number of recorded outcomes.
        success_count: Outcomes with a status code.
        failure_count: Outcomes without a status code.
        average_duration_ms: Mean duration over all outcomes.
        throughput_per_second: success_count / elapsed_seconds.
        elapsed_seconds: Wall-clock duration of the batch.
        min_duration_ms: Fastest outcome.
        max_duration_ms: Slowest outcome.
        p50_duration_ms: Median duration.
        p95_duration_ms: 95th percentile duration (nearest-rank).
        status_counts: Number of successful outcomes per HTTP status code (read-only).
    """
    total: int
    success_count: int
    failure_count: int
    average_duration_ms: float
    throughput_per_second: float
    elapsed_seconds: float = math.nan
    min_duration_ms: float = math.nan
    max_duration_ms: float = math.nan
    p50_duration_ms: float = math.nan
    p95_duration_ms: float = math.nan
    status_counts: Mapping[int, int] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "status_counts", MappingProxyType(dict(self.status_counts)))

    @property
    def throughput_per_minute(self) -> float:
        return self.throughput_per_second * 60

    def to_dict(self) -> dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["status_counts"] = dict(self.status_counts)
        return data
