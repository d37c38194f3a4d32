"""
Exception hierarchy for the Portfolio Collapse Auditor.

This module defines the custom exceptions used by the auditor tools and
pipeline. The engine recovers from almost every input problem locally;
the only condition surfaced to callers is InsufficientDataError, which
the pipeline converts into a typed InsufficientData result.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ErrorSeverity(Enum):
    """Categorizes the severity of errors for handling decisions."""

    CRITICAL = "critical"
    """Analysis cannot continue; no meaningful report is possible"""

    WARNING = "warning"
    """Recovered locally; the input was adjusted before use"""

    INFO = "info"
    """Track but don't alarm; this is informational"""


@dataclass
class ProcessingError:
    """
    Structured record of a recovered problem in user-supplied holdings text.

    Collected by the parser so callers can see which tokens were dropped
    and which weights were clamped, without the analysis stopping.
    """

    token: str
    """The raw token that caused the issue"""

    error_type: str
    """Category of issue (e.g., "MALFORMED_WEIGHT", "NO_TICKER")"""

    message: str
    """Human-readable description"""

    severity: ErrorSeverity
    """How serious is this issue? CRITICAL/WARNING/INFO"""

    context: dict = field(default_factory=dict)
    """Additional context data (ticker, original weight, etc.)"""

    def to_dict(self) -> dict:
        """Convert to dictionary for logging/serialization."""
        return {
            "token": self.token,
            "error_type": self.error_type,
            "message": self.message,
            "severity": self.severity.value,
            "context": self.context,
        }


# ============================================================================
# BASE EXCEPTION CLASSES
# ============================================================================

class CollapseAuditorException(Exception):
    """
    Base exception for all auditor errors.

    Inheriting from this allows catching all framework errors:
        try:
            ...
        except CollapseAuditorException as e:
            ...
    """

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__


class DataProcessingError(CollapseAuditorException):
    """Base class for errors while turning raw text into holdings."""
    pass


class ValidationError(CollapseAuditorException):
    """Base class for data validation failures."""
    pass


class ConfigurationError(CollapseAuditorException):
    """Base class for configuration/setup issues."""
    pass


class PipelineError(CollapseAuditorException):
    """Base class for pipeline and output errors."""
    pass


# ============================================================================
# HOLDINGS PARSING EXCEPTIONS
# ============================================================================

class HoldingsParseError(DataProcessingError):
    """Base class for holdings-text parsing failures."""
    pass


class InsufficientDataError(HoldingsParseError):
    """
    Raised when neither the structured pass nor the fallback pass finds a
    single ticker-shaped token.

    Example:
        raise InsufficientDataError("No holdings found in 'my retirement money'")
    """

    def __init__(self, message: str, record: Optional[ProcessingError] = None):
        super().__init__(message)
        self.record = record or ProcessingError(
            token="",
            error_type="INSUFFICIENT_DATA",
            message=message,
            severity=ErrorSeverity.CRITICAL,
        )


# ============================================================================
# VALIDATION & CONFIGURATION EXCEPTIONS
# ============================================================================

class SchemaValidationError(ValidationError):
    """
    Raised when a stored analysis no longer matches the output schema.

    Wraps pydantic's ValidationError for consistency.
    """
    pass


class RegistryConfigError(ConfigurationError):
    """
    Raised when a CategoryRegistry is built with inconsistent tables.

    Example:
        raise RegistryConfigError("Unknown category tag 'bond-junk'")
    """
    pass


# ============================================================================
# OUTPUT EXCEPTIONS
# ============================================================================

class OutputWriteError(PipelineError):
    """
    Raised when a snapshot or Excel workbook cannot be written.

    Example:
        raise OutputWriteError("Cannot write audit_run-1.xlsx: Permission denied")
    """
    pass
