"""Cycle-level errors raised by the Housing.com integration.

Per-record problems (missing fields, duplicates, insert failures) are never
raised past LeadUpserter; they become LeadOutcome entries instead.
"""

from __future__ import annotations


class HousingError(Exception):
    """Base class for Housing.com integration errors."""


class ConfigurationError(HousingError):
    """Raised when the client is built without a profile id or encryption key.

    Not retryable -- the deployment must supply the credentials.
    """


class UpstreamProtocolError(HousingError):
    """Raised when the upstream response body is not valid JSON.

    Attributes:
        snippet: First characters of the raw body, for diagnosis.
    """

    def __init__(self, message: str, snippet: str = "") -> None:
        self.snippet = snippet
        super().__init__(message)


class UpstreamRequestFailed(HousingError):
    """Raised on a non-2xx HTTP status, a non-200 envelope status, or a transport error.

    Attributes:
        status_code: HTTP status code, or None when no response was received.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)
