"""
Shared utilities for the Contact Insights Pipeline.
Data models and the error taxonomy used by every stage.
"""

from .errors import (
    PipelineError,
    AuthenticationError,
    AccessDeniedError,
    NotFoundError,
    RateLimitOrTransientError,
    ValidationError,
    ConfigurationError,
)
from .models import Contact, Deal, Idea, Priority, Provenance, AnalysisResult

__all__ = [
    'PipelineError',
    'AuthenticationError',
    'AccessDeniedError',
    'NotFoundError',
    'RateLimitOrTransientError',
    'ValidationError',
    'ConfigurationError',
    'Contact',
    'Deal',
    'Idea',
    'Priority',
    'Provenance',
    'AnalysisResult',
]
