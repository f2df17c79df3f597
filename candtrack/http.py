"""Rate-limited HTTP client shared by all collectors.

Every collector owns one ``FetchClient`` configured with the provider's
polite inter-request delay and retry policy. Transient failures (HTTP 429,
5xx, connection errors and timeouts) are retried with backoff; once the
attempts are exhausted a ``FetchError`` is raised for the caller to handle.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

import requests
from bs4 import BeautifulSoup

from candtrack.errors import FetchError

logger = logging.getLogger(__name__)

HEADERS: dict[str, str] = {
    "User-Agent": "FederalCandidatesTracker/1.0 (civic-data research)",
    "Accept": "application/json, text/html;q=0.9",
}

DEFAULT_TIMEOUT_S: float = 30.0
MAX_ATTEMPTS: int = 3


# Network-level failures retried like a 5xx
_NETWORK_ERRORS = (
    requests.ConnectionError,
    requests.Timeout,
    requests.exceptions.ChunkedEncodingError,
)


def _is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try a request and how long to wait in between.

    Attributes:
        max_attempts: Total attempts, including the first one.
        backoff_s: Base backoff in seconds.
        exponential: Double the backoff each attempt instead of growing
            it linearly.
    """

    max_attempts: int = MAX_ATTEMPTS
    backoff_s: float = 2.0
    exponential: bool = False

    def backoff_for(self, attempt: int) -> float:
        """Return the wait after failed attempt number *attempt* (1-based)."""
        if self.exponential:
            return self.backoff_s * (2 ** (attempt - 1))
        return self.backoff_s * attempt


class FetchClient:
    """HTTP GET client enforcing a fixed delay between requests.

    Args:
        delay_s: Minimum seconds between consecutive requests.
        retry: Retry policy for transient failures.
        timeout_s: Per-request connect/read timeout.
        headers: Extra request headers.
        session: Optional ``requests.Session`` (injected in tests).
        sleep: Sleep function (injected in tests).
        clock: Monotonic clock (injected in tests).
    """

    def __init__(
        self,
        delay_s: float,
        retry: RetryPolicy | None = None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        headers: Mapping[str, str] | None = None,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.delay_s = delay_s
        self.retry = retry or RetryPolicy()
        self.timeout_s = timeout_s
        self._session = session or requests.Session()
        self._session.headers.update(HEADERS)
        if headers:
            self._session.headers.update(headers)
        self._sleep = sleep
        self._clock = clock
        self._last_request: float | None = None

    def pause(self) -> None:
        """Sleep for the configured inter-request delay."""
        if self.delay_s > 0:
            self._sleep(self.delay_s)

    def _throttle(self) -> None:
        if self._last_request is None or self.delay_s <= 0:
            return
        remaining = self.delay_s - (self._clock() - self._last_request)
        if remaining > 0:
            self._sleep(remaining)

    def fetch(
        self,
        url: str,
        params: Mapping[str, Any] | None = None,
    ) -> requests.Response:
        """GET *url*, retrying transient failures.

        Args:
            url: Fully-qualified URL.
            params: Optional query string parameters.

        Returns:
            The response. Non-retryable error statuses (e.g. 404) are
            returned as-is.

        Raises:
            FetchError: If every attempt hit a retryable status or a
                network failure.
        """
        max_attempts = self.retry.max_attempts
        for attempt in range(1, max_attempts + 1):
            self._throttle()
            try:
                resp = self._session.get(
                    url, params=params, timeout=self.timeout_s
                )
            except _NETWORK_ERRORS as exc:
                self._last_request = self._clock()
                if attempt >= max_attempts:
                    raise FetchError(
                        url,
                        f"Network error after {attempt} attempts: {exc}",
                        attempts=attempt,
                    ) from exc
                wait = self.retry.backoff_for(attempt)
                logger.warning(
                    "Network error, retrying in %.1fs (attempt %d/%d): %s",
                    wait,
                    attempt,
                    max_attempts,
                    exc,
                )
                self._sleep(wait)
                continue

            self._last_request = self._clock()
            if not _is_retryable_status(resp.status_code):
                return resp
            if attempt >= max_attempts:
                raise FetchError(
                    url,
                    f"HTTP {resp.status_code} after {attempt} attempts",
                    status_code=resp.status_code,
                    attempts=attempt,
                )
            wait = self.retry.backoff_for(attempt)
            logger.warning(
                "HTTP %d, retrying in %.1fs (attempt %d/%d)",
                resp.status_code,
                wait,
                attempt,
                max_attempts,
            )
            self._sleep(wait)

        raise FetchError(url, "No attempts made", attempts=0)

    def fetch_json(
        self,
        url: str,
        params: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """GET *url* and decode a JSON object body.

        Raises:
            FetchError: On exhausted retries, a non-OK status, or a body
                that is not a JSON object.
        """
        resp = self.fetch(url, params)
        if not resp.ok:
            raise FetchError(
                url,
                f"HTTP {resp.status_code} {resp.reason}",
                status_code=resp.status_code,
            )
        try:
            data = resp.json()
        except ValueError as exc:
            raise FetchError(url, "Response is not valid JSON") from exc
        if not isinstance(data, dict):
            raise FetchError(url, "Response JSON is not an object")
        return data

    def fetch_soup(self, url: str) -> BeautifulSoup | None:
        """GET *url* and parse the markup.

        Returns:
            Parsed document, or None when the page does not exist (404).

        Raises:
            FetchError: On exhausted retries or any other non-OK status.
        """
        resp = self.fetch(url)
        if resp.status_code == 404:
            return None
        if not resp.ok:
            raise FetchError(
                url,
                f"HTTP {resp.status_code} {resp.reason}",
                status_code=resp.status_code,
            )
        return BeautifulSoup(resp.text, "lxml")

    def close(self) -> None:
        """Close the underlying session."""
        self._session.close()
