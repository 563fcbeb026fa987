"""
Error kinds raised while producing a location analysis.

Every kind is recovered in app.py and turned into an HTTP status plus a
localized fallback analysis, so each carries the status it maps to.
"""

from typing import Optional


class AnalysisError(Exception):
    """Base class; `message` is safe to show to the caller."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AnalysisError):
    """Missing or invalid request input (address, body)."""

    status_code = 400


class ConfigurationError(AnalysisError):
    """The model credential is not configured."""


class UpstreamError(AnalysisError):
    """The model API answered with a non-success status."""

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body

    @property
    def retryable(self) -> bool:
        return self.status is None or self.status == 429 or self.status >= 500


class TransportError(AnalysisError):
    """The model API could not be reached (network failure or timeout)."""


class MalformedResponseError(AnalysisError):
    """The model output was not a JSON object."""
