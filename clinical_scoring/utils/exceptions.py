"""
Custom Exception Hierarchy

Every failure raised by the scoring engines is a ClinicalScoringError
carrying a machine-readable code and structured details. Errors are raised
before any persisted state is touched.
"""
from typing import Optional, Dict, Any


class ClinicalScoringError(Exception):
    """Base exception for all scoring engine errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a JSON-safe dictionary."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details
        }


class UnknownTestError(ClinicalScoringError):
    """A lab test code that is not in the reference table."""

    def __init__(
        self,
        test_code: str,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=f"Unknown lab test code: {test_code}",
            code="UNKNOWN_TEST",
            details={"test_code": test_code, **(details or {})}
        )
        self.test_code = test_code


class IncompatibleTestError(ClinicalScoringError):
    """Lab values of different tests were combined in one comparison."""

    def __init__(
        self,
        message: str,
        test_codes: Optional[list] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="INCOMPATIBLE_TESTS",
            details={"test_codes": sorted(set(test_codes or [])), **(details or {})}
        )
        self.test_codes = test_codes or []


class InsufficientDataError(ClinicalScoringError):
    """Not enough observations to compute a result."""

    def __init__(
        self,
        message: str,
        required: int = 1,
        received: int = 0,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="INSUFFICIENT_DATA",
            details={"required": required, "received": received, **(details or {})}
        )
        self.required = required
        self.received = received


class ValidationError(ClinicalScoringError):
    """An input record violates a domain constraint."""

    def __init__(
        self,
        message: str,
        field: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            details={"field": field, **(details or {})}
        )
        self.field = field


class StateStoreError(ClinicalScoringError):
    """Persisted learning state could not be read or written."""

    def __init__(
        self,
        message: str,
        key: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="STATE_STORE_ERROR",
            details={"key": key, **(details or {})}
        )
        self.key = key
