"""
Error taxonomy for the contact insights pipeline.
HTTP clients raise these; services decide which ones are fatal.
"""

from typing import Optional


class PipelineError(Exception):
    """Base class for every error raised by the pipeline."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(PipelineError):
    """Invalid credentials for an external system (401)."""


class AccessDeniedError(PipelineError):
    """Credentials are valid but lack the required scope (403)."""


class NotFoundError(PipelineError):
    """Segment, contact, deal or list does not exist (404)."""


class RateLimitOrTransientError(PipelineError):
    """429, 5xx, timeouts and connection resets. Safe to retry."""


class ValidationError(PipelineError):
    """Malformed payload, e.g. an unparseable generation backend response."""


class ConfigurationError(PipelineError):
    """An optional collaborator is not configured."""


class ApiError(PipelineError):
    """Any other non-2xx response."""


def error_for_status(status_code: int, message: str) -> PipelineError:
    """Map an HTTP status code to the matching pipeline error."""
    if status_code == 401:
        return AuthenticationError(message, status_code)
    if status_code == 403:
        return AccessDeniedError(message, status_code)
    if status_code == 404:
        return NotFoundError(message, status_code)
    if status_code == 429 or status_code >= 500:
        return RateLimitOrTransientError(message, status_code)
    return ApiError(message, status_code)
