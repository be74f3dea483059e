"""Error taxonomy for the reliability engine.

Every error carries the offending field and value so the calling layer can
translate it into a user-facing message without re-deriving what went wrong.
"""

from typing import Any, Optional


class EngineError(Exception):
    """Base class for all engine errors."""

    error_type: str = "engine_error"

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        super().__init__(message)
        self.message = message
        self.field = field
        self.value = value

    def to_dict(self) -> dict:
        """Structured payload for the request layer."""
        details = {}
        if self.field is not None:
            details[self.field] = self.value
        return {
            "type": self.error_type,
            "message": self.message,
            "details": details,
        }


class ValidationError(EngineError):
    """Malformed or out-of-range scalar input."""

    error_type = "validation_error"


class DomainError(ValidationError):
    """Mathematically undefined operation (e.g. a zero Weibull scale)."""

    error_type = "domain_error"


class InsufficientDataError(EngineError):
    """Too few usable observations to fit a distribution."""

    error_type = "insufficient_data"


class InvariantViolation(EngineError):
    """A record-level invariant would be broken by the requested operation."""

    error_type = "invariant_violation"
