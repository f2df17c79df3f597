"""Exception types raised across the candtrack pipeline."""

from __future__ import annotations


class CandtrackError(Exception):
    """Base class for candtrack errors."""


class ConfigError(CandtrackError):
    """A required setting (e.g. an API credential) is missing."""


class FetchError(CandtrackError):
    """An outbound request failed after exhausting its retries.

    Args:
        url: The requested URL.
        message: Human-readable description.
        status_code: Last HTTP status seen, None for network failures.
        attempts: Number of attempts made.
    """

    def __init__(
        self,
        url: str,
        message: str,
        status_code: int | None = None,
        attempts: int = 1,
    ) -> None:
        self.url = url
        self.status_code = status_code
        self.attempts = attempts
        super().__init__(f"{message} ({url})")


class MergeError(CandtrackError):
    """A candidate draft is structurally invalid and cannot be merged."""


class LedgerError(CandtrackError):
    """A collection run was driven through an illegal state transition."""
