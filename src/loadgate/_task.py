"""
The unit of work of a load test: one HTTP call, timed and classified.
"""

import logging
import time
from collections.abc import Callable

import requests

from loadgate._http import HttpClient
from loadgate._models import LoadRequest, RequestOutcome
from loadgate._utils import is_timeout_exception, response_excerpt

logger = logging.getLogger(__name__)


class RequestTask:
    """
    Performs one HTTP call and turns it into a RequestOutcome.

    Any HTTP response, whatever its status code, is a successful outcome.
    Only the inability to complete the exchange is a failure. The task never
    raises: errors are folded into the outcome, so a single failing request
    can not abort its batch.

    Args:
        client: HTTP client used for the call.
        request: The request to send.
        index: Logical index of this work item within the batch.
        clock: Monotonic clock in seconds (injectable for tests).
    """

    def __init__(
        self,
        client: HttpClient,
        request: LoadRequest,
        index: int = 0,
        clock: Callable[[], float] = time.perf_counter,
    ):
        assert client is not None, "RequestTask client can not be None."
        assert request is not None, "RequestTask request can not be None."

        self.client = client
        self.request = request
        self.index = index
        self._clock = clock

    def run(self) -> RequestOutcome:
        start = self._clock()
        try:
            response = self.client.post(
                self.request.url,
                data=self.request.payload,
                headers=self.request.headers,
                timeout=self.request.timeout,
            )
        except requests.RequestException as e:
            return self._failure(start, e, response_excerpt(e.response))
        except Exception as e:
            logger.debug(f"{self._tag} | unexpected client error", exc_info=True)
            return self._failure(start, e)

        return RequestOutcome(
            status_code=response.status_code,
            duration_ms=self._elapsed_ms(start),
            index=self.index,
            body_excerpt=response_excerpt(response) if logger.isEnabledFor(logging.DEBUG) else None,
        )

    def _failure(self, start: float, exc: Exception, body: str | None = None) -> RequestOutcome:
        detail = str(exc) or exc.__class__.__name__
        if body:
            detail = f"{detail} | response body: {body}"
        return RequestOutcome(
            status_code=None,
            duration_ms=self._elapsed_ms(start),
            error_detail=detail,
            error_kind="timeout" if is_timeout_exception(exc) else "transport",
            index=self.index,
        )

    def _elapsed_ms(self, start: float) -> float:
        return max(0.0, (self._clock() - start) * 1000)

    @property
    def _tag(self) -> str:
        return f"{'request#' + str(self.index):<14}"

    def __repr__(self) -> str:
        return f"RequestTask(index={self.index}, url={self.request.url!r})"
