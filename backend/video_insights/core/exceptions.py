"""
Exception types raised by the insight pipeline and its adapters.
"""
from typing import Optional


class InsightError(Exception):
    """Base class for all pipeline errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidIdentifier(InsightError):
    """The submitted value is not a recognized video URL."""


class CaptionUnavailable(InsightError):
    """The caption track could not be retrieved (private, deleted, no captions, timeout)."""

    def __init__(self, message: str, reason: str = "unavailable"):
        super().__init__(message)
        self.reason = reason


class GenerationFailure(InsightError):
    """The generation service call failed (auth, quota, transport, timeout, bad response)."""

    def __init__(self, message: str, reason: str = "error"):
        super().__init__(message)
        self.reason = reason


class ValidationError(InsightError):
    """Generated text did not parse or did not match the expected schema."""

    MALFORMED_JSON = "malformed-json"
    SCHEMA_VIOLATION = "schema-violation"

    def __init__(self, reason: str, field: Optional[str] = None, detail: str = ""):
        message = reason if not field else f"{reason}: {field}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.reason = reason
        self.field = field


class DuplicateKey(InsightError):
    """A record with the same video key already exists."""


class PersistenceError(InsightError):
    """The document store failed to read or write a record."""


class ConfigurationError(InsightError):
    """Required configuration (e.g. credentials) is missing."""


class AnalysisFailed(InsightError):
    """Both the strict and fallback generation attempts failed validation."""


class PipelineBusy(InsightError):
    """Another request for the same video key held the lock for too long."""
