"""
File: errors.py
Purpose: Exception types raised by the triage pipeline.
Dependencies: Standard library only.

Only two conditions exist.  ``ConfigurationError`` aborts a request and
must reach the caller.  ``BackendUnavailable`` never leaves the advisor:
it is converted into a zero-confidence suggestion.
"""

from __future__ import annotations


class TriageError(Exception):
    """Base class for all triage errors."""


class ConfigurationError(TriageError):
    """No text-generation backend has a credential configured."""


class BackendUnavailable(TriageError):
    """The selected backend failed or returned something unusable.

    Args:
        status: HTTP status code, or 0 when the failure did not come
            from an HTTP response (network error, bad JSON, ...).
        detail: Response body or error message.
    """

    def __init__(self, status: int = 0, detail: str = "") -> None:
        self.status = status
        self.detail = detail
        super().__init__(f"backend unavailable (status={status}): {detail[:200]}")
