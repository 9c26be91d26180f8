"""
Utilities Package - Logging and Exception Handling
"""
from .logging import get_logger, setup_logging
from .exceptions import (
    ClinicalScoringError,
    UnknownTestError,
    IncompatibleTestError,
    InsufficientDataError,
    ValidationError,
    StateStoreError,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "ClinicalScoringError",
    "UnknownTestError",
    "IncompatibleTestError",
    "InsufficientDataError",
    "ValidationError",
    "StateStoreError",
]
