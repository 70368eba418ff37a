"""Exception hierarchy for the society engine."""

from typing import Any, Dict, List, Optional


class SocietyEngineError(Exception):
    """Base exception for all engine errors."""


class ValidationError(SocietyEngineError, ValueError):
    """Raised when input is malformed or out of range."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = list(errors) if errors else [message]


class InvalidScheduleInput(ValidationError):
    """Raised when a loan snapshot cannot produce a repayment schedule."""


class InvalidStatusTransition(ValidationError):
    """Raised when a loan or installment status change is not allowed."""


class NotFoundError(SocietyEngineError, LookupError):
    """Raised when a referenced entity does not exist."""


class InstallmentNotFound(NotFoundError):
    """Raised when an installment is absent or no longer payable."""


class LoanNotFound(NotFoundError):
    """Raised when a loan is not part of the supplied set."""


class ComputationError(SocietyEngineError):
    """
    Raised at the engine boundary when arithmetic fails unexpectedly,
    e.g. a snapshot carrying NaN or a value of the wrong type.
    """

    def __init__(self, operation: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(f"{operation}: {message}")
        self.operation = operation
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": "computation_error",
            "operation": self.operation,
            "message": self.message,
            "details": self.details,
        }
