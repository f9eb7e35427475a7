"""
Rendering of a batch Summary.

Throughput is always reported in requests per second.
"""

import math
from collections.abc import Callable

from loadgate._models import Summary


def _fmt(value: float, unit: str) -> str:
    return "n/a" if math.isnan(value) else f"{value:.2f} {unit}"


def format_summary(summary: Summary) -> list[str]:
    """
    Render a Summary as report lines.

    Example:
        >>> for line in format_summary(summary):
        ...     print(line)
        Total requests: 5
        Successful requests: 5
        Failed requests: 0
        Average request duration: 101.37 ms
        Throughput: 9.85 req/s (successful requests per second)
    """
    lines = [
        f"Total requests: {summary.total}",
        f"Successful requests: {summary.success_count}",
        f"Failed requests: {summary.failure_count}",
        f"Average request duration: {_fmt(summary.average_duration_ms, 'ms')}",
        f"Throughput: {_fmt(summary.throughput_per_second, 'req/s')} (successful requests per second)",
    ]
    if summary.total:
        lines.append(
            f"Durations: min={_fmt(summary.min_duration_ms, 'ms')}, "
            f"p50={_fmt(summary.p50_duration_ms, 'ms')}, "
            f"p95={_fmt(summary.p95_duration_ms, 'ms')}, "
            f"max={_fmt(summary.max_duration_ms, 'ms')}"
        )
    if summary.status_counts:
        counts = ", ".join(f"{code}={count}" for code, count in summary.status_counts.items())
        lines.append(f"Status codes: {counts}")
    lines.append(f"Elapsed: {_fmt(summary.elapsed_seconds, 's')}")
    return lines


def report_summary(summary: Summary, output: Callable[[str], None] = print) -> None:
    """
    Write the summary report line by line.

    Args:
        summary: The summary to report.
        output: Callable to output each line. Defaults to print.
                Can be used with logging: `report_summary(summary, logger.info)`
    """
    for line in format_summary(summary):
        output(line)
