"""
HTTP client abstraction for the loadgate harness.

Transport concerns (TLS, connection pooling, redirects) are delegated to
`requests`. The rest of the harness only depends on the `HttpClient`
interface, so tests can plug in fake clients.

Available implementations:
    - RequestsHttpClient: Sends JSON POST requests through a pooled requests.Session.

Example:
    >>> from loadgate._http import RequestsHttpClient
    >>> client = RequestsHttpClient(pool_size=10)
    >>> response = client.post("https://api.example.com/v1/resource", data={"key": "value"})
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, override

import requests
from requests.adapters import HTTPAdapter

logger = logging.getLogger(__name__)


# =============================================================================
# Abstract Base Class
# =============================================================================


class HttpClient(ABC):
    """
    Abstract base class for HTTP clients.

    Implementations must be safe to call from many threads at once.

    Example:
        >>> class MyHttpClient(HttpClient):
        ...     def post(self, url, data=None, headers=None, timeout=30):
        ...         return requests.post(url, json=data, headers=headers, timeout=timeout)
    """

    @abstractmethod
    def post(
        self,
        url: str,
        data: Any = None,
        headers: dict[str, str] | None = None,
        timeout: float = 30,
    ) -> requests.Response:
        """
        Execute a POST request with JSON body.

        Args:
            url: The full URL to request.
            data: JSON-serializable data to send in the request body.
            headers: Headers to include, passed through verbatim.
            timeout: Request timeout in seconds.

        Returns:
            The HTTP response, whatever its status code.

        Raises:
            requests.RequestException: If the exchange could not be completed.
        """
        pass


# =============================================================================
# requests-based Implementation
# =============================================================================


class RequestsHttpClient(HttpClient):
    """
    HTTP client backed by a shared `requests.Session`.

    The session's connection pool is sized to the expected number of
    concurrent requests so that pooled threads do not discard connections.
    Non-2xx responses are returned as-is; `raise_for_status()` is never called.

    Args:
        pool_size: Maximum number of pooled connections per host.
        session: Optional pre-built session (mostly for tests).
    """

    def __init__(self, pool_size: int = 10, session: requests.Session | None = None):
        assert pool_size is not None, "pool_size cannot be None."
        assert pool_size > 0, "pool_size must be greater than 0."

        self.pool_size = pool_size
        if session is None:
            session = requests.Session()
            adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size)
            session.mount("http://", adapter)
            session.mount("https://", adapter)
        self._session = session
        self._lock = threading.Lock()
        self._closed = False

    @override
    def post(
        self,
        url: str,
        data: Any = None,
        headers: dict[str, str] | None = None,
        timeout: float = 30,
    ) -> requests.Response:
        """
        Execute a POST request through the pooled session.

        Raises:
            AssertionError: If url is empty or timeout is invalid.
            requests.RequestException: If the HTTP request fails.
        """
        assert url, "URL cannot be empty."
        assert timeout is not None, "Timeout cannot be None."
        assert timeout > 0, "Timeout must be greater than 0."

        return self._session.post(
            url,
            json=data,
            headers=headers,
            timeout=timeout,
        )

    def close(self) -> None:
        """Close the underlying session. Safe to call more than once."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._session.close()
        logger.debug("HTTP session closed.")

    def __enter__(self) -> "RequestsHttpClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
