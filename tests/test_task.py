"""Tests for RequestTask outcome classification."""

import logging
from unittest.mock import MagicMock

import pytest
import requests

from loadgate import HttpClient, LoadRequest, RequestTask

# =============================================================================
# Test Fixtures
# =============================================================================


class MockHttpClient(HttpClient):
    """Mock HTTP client returning a fixed status code, or raising a fixed error."""

    def __init__(self, status_code: int = 200, error: Exception | None = None):
        self.post_calls: list[dict] = []
        self.error = error
        self.response = MagicMock(spec=requests.Response)
        self.response.status_code = status_code

    def post(self, url, data=None, headers=None, timeout=30):
        self.post_calls.append({"url": url, "data": data, "headers": headers, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


def fake_clock(*ticks):
    """Clock returning the given instants (seconds), in order."""
    values = iter(ticks)
    return lambda: next(values)


@pytest.fixture
def load_request():
    return LoadRequest(
        url="https://api.example.com/v1/echo",
        payload={"ping": 1},
        headers={"X-Client-Id": "id", "Content-Type": "application/json"},
        timeout=5.0,
    )


# =============================================================================
# Successful exchanges
# =============================================================================


class TestRequestTaskSuccess:
    """Any HTTP response is a successful outcome."""

    def test_passes_request_through_to_client(self, load_request):
        client = MockHttpClient()

        RequestTask(client, load_request).run()

        assert client.post_calls == [{
            "url": "https://api.example.com/v1/echo",
            "data": {"ping": 1},
            "headers": {"X-Client-Id": "id", "Content-Type": "application/json"},
            "timeout": 5.0,
        }]

    def test_success_outcome_has_status_and_duration(self, load_request):
        client = MockHttpClient(status_code=201)
        task = RequestTask(client, load_request, index=7, clock=fake_clock(10.0, 10.125))

        outcome = task.run()

        assert outcome.status_code == 201
        assert outcome.duration_ms == pytest.approx(125.0)
        assert outcome.index == 7
        assert outcome.is_success()
        assert outcome.error_detail is None
        assert outcome.error_kind is None

    @pytest.mark.parametrize("status_code", [400, 404, 429, 500, 503])
    def test_error_status_codes_are_not_failures(self, load_request, status_code):
        client = MockHttpClient(status_code=status_code)

        outcome = RequestTask(client, load_request).run()

        assert outcome.status_code == status_code
        assert outcome.is_success()
        assert not outcome.is_failure()

    def test_body_excerpt_is_captured_only_at_debug(self, load_request, caplog):
        client = MockHttpClient(status_code=200)
        client.response.text = "pong"

        with caplog.at_level(logging.INFO, logger="loadgate"):
            quiet = RequestTask(client, load_request).run()
        with caplog.at_level(logging.DEBUG, logger="loadgate"):
            verbose = RequestTask(client, load_request).run()

        assert quiet.body_excerpt is None
        assert verbose.body_excerpt == "pong"


# =============================================================================
# Transport failures
# =============================================================================


class TestRequestTaskFailure:
    """Only the inability to complete the exchange is a failure."""

    def test_connection_error_is_a_transport_failure(self, load_request):
        client = MockHttpClient(error=requests.ConnectionError("Connection refused"))
        task = RequestTask(client, load_request, index=3, clock=fake_clock(1.0, 1.5))

        outcome = task.run()

        assert outcome.status_code is None
        assert outcome.is_failure()
        assert outcome.duration_ms == pytest.approx(500.0)
        assert outcome.error_detail == "Connection refused"
        assert outcome.error_kind == "transport"
        assert outcome.index == 3

    def test_timeout_is_classified_as_timeout(self, load_request):
        client = MockHttpClient(error=requests.ReadTimeout("Read timed out"))

        outcome = RequestTask(client, load_request).run()

        assert outcome.status_code is None
        assert outcome.error_kind == "timeout"
        assert "Read timed out" in outcome.error_detail

    def test_http_error_with_response_includes_body_excerpt(self, load_request):
        response = MagicMock(spec=requests.Response)
        response.text = "upstream exploded"
        client = MockHttpClient(error=requests.HTTPError("502 Bad Gateway", response=response))

        outcome = RequestTask(client, load_request).run()

        assert outcome.status_code is None
        assert outcome.error_detail == "502 Bad Gateway | response body: upstream exploded"

    def test_unexpected_client_error_is_still_a_failed_outcome(self, load_request):
        client = MockHttpClient(error=ValueError(""))

        outcome = RequestTask(client, load_request).run()

        assert outcome.status_code is None
        assert outcome.error_detail == "ValueError"
        assert outcome.error_kind == "transport"

    def test_duration_is_never_negative(self, load_request):
        client = MockHttpClient(error=requests.ConnectionError("reset"))
        outcome = RequestTask(client, load_request, clock=fake_clock(5.0, 4.0)).run()

        assert outcome.duration_ms == 0.0


class TestRequestTaskInit:
    """Tests for RequestTask construction."""

    def test_init_fails_without_client(self, load_request):
        with pytest.raises(AssertionError, match="client can not be None"):
            RequestTask(None, load_request)

    def test_init_fails_without_request(self):
        with pytest.raises(AssertionError, match="request can not be None"):
            RequestTask(MockHttpClient(), None)
