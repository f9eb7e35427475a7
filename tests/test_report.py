"""Tests for summary reporting."""

import math

from loadgate import Summary, format_summary, report_summary


def make_summary(**overrides):
    values = dict(
        total=5,
        success_count=4,
        failure_count=1,
        average_duration_ms=101.374,
        throughput_per_second=9.851,
        elapsed_seconds=0.406,
        min_duration_ms=98.0,
        max_duration_ms=107.5,
        p50_duration_ms=100.2,
        p95_duration_ms=107.5,
        status_counts={200: 3, 500: 1},
    )
    values.update(overrides)
    return Summary(**values)


class TestFormatSummary:
    """Tests for format_summary()."""

    def test_headline_lines(self):
        lines = format_summary(make_summary())

        assert lines[:5] == [
            "Total requests: 5",
            "Successful requests: 4",
            "Failed requests: 1",
            "Average request duration: 101.37 ms",
            "Throughput: 9.85 req/s (successful requests per second)",
        ]

    def test_distribution_and_status_codes(self):
        lines = format_summary(make_summary())

        assert "Durations: min=98.00 ms, p50=100.20 ms, p95=107.50 ms, max=107.50 ms" in lines
        assert "Status codes: 200=3, 500=1" in lines
        assert lines[-1] == "Elapsed: 0.41 s"

    def test_empty_summary_renders_undefined_values(self):
        summary = Summary(
            total=0,
            success_count=0,
            failure_count=0,
            average_duration_ms=math.nan,
            throughput_per_second=math.nan,
            elapsed_seconds=0.0,
        )

        lines = format_summary(summary)

        assert "Average request duration: n/a" in lines
        assert "Throughput: n/a (successful requests per second)" in lines
        assert not any(line.startswith("Durations:") for line in lines)
        assert not any(line.startswith("Status codes:") for line in lines)


class TestReportSummary:
    """Tests for report_summary()."""

    def test_writes_every_line_through_output(self):
        lines: list[str] = []
        summary = make_summary()

        report_summary(summary, output=lines.append)

        assert lines == format_summary(summary)
