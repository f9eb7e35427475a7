"""
Utility functions for the loadgate harness.

These functions are not part of the public API and may change without notice.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import requests

logger = logging.getLogger(__name__)


def save_json_file(data: dict[str, Any], file_path: Path) -> None:
    """
    Save data as JSON to the specified file path.

    Non-serializable values are converted to strings using the default=str option.
    Parent directories are created when missing.

    Raises:
        RuntimeError: If the file cannot be written (wraps the original exception).

    Example:
        >>> save_json_file(summary.to_dict(), Path("output/summary.json"))
    """
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        with file_path.open(mode="w", encoding="utf-8") as file:
            json.dump(
                data, file,
                indent=4, ensure_ascii=False, default=str
            )
    except Exception as e:
        logger.error(
            f"❌ Error while writing JSON file to disk ({file_path.name}): {e}",
            exc_info=logger.isEnabledFor(logging.DEBUG)
        )
        raise RuntimeError(f"It's not possible to save JSON file in the disk ({file_path.name}): {e}") from e


def is_timeout_exception(exc: BaseException) -> bool:
    """
    Determine if an exception indicates a timeout condition.

    Supported timeout exceptions:
        - requests.Timeout: HTTP connect or read timeout
        - TimeoutError: Python built-in
    """
    return isinstance(exc, (requests.Timeout, TimeoutError))


def response_excerpt(response: requests.Response | None, limit: int = 200) -> str | None:
    """
    Return the beginning of a response body, for error messages.

    Returns None when there is no response or its body cannot be read.
    """
    if response is None:
        return None
    try:
        text = response.text
    except (ValueError, requests.RequestException):
        return None
    if not text:
        return None
    return text if len(text) <= limit else f"{text[:limit]}..."
