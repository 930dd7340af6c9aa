"""Synchronization error taxonomy.

Callers branch on the exception type, never on message text:

- ``MissingContinuationToken``: no baseline to diff from, rebuild instead
- ``StaleTokenError``: provider rejected the sync token, rebuild instead
- ``TransientFetchError``: network failure or provider 5xx, surfaced as-is
"""

from __future__ import annotations


class SyncError(Exception):
    """Base exception for synchronization failures."""


class MissingContinuationToken(SyncError):
    """Raised when an incremental sync is attempted without a sync token."""

    def __init__(self, message: str = "no sync token stored"):
        super().__init__(message)


class FetchError(SyncError):
    """Raised when a provider call fails."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class StaleTokenError(FetchError):
    """Raised when the provider reports the sync token as gone or invalid."""


class TransientFetchError(FetchError):
    """Raised for any other provider failure (timeouts, 5xx, ...)."""
