"""
Clinical Scoring Engine

Lab result interpretation, wound healing classification and hospital
readmission risk prediction for clinical decision support.
"""
from clinical_scoring import config
from clinical_scoring.utils import (
    setup_logging,
    ClinicalScoringError,
    UnknownTestError,
    IncompatibleTestError,
    InsufficientDataError,
    ValidationError,
    StateStoreError,
)

setup_logging(config.LOG_LEVEL, config.LOG_FILE or None)

from clinical_scoring.core.store import StateStore, InMemoryStateStore, JsonFileStateStore  # noqa: E402
from clinical_scoring.core.labs import LabResultInterpreter  # noqa: E402
from clinical_scoring.core.wounds import WoundHealingClassifier  # noqa: E402
from clinical_scoring.core.readmission import ReadmissionRiskPredictor  # noqa: E402

__version__ = "0.1.0"

__all__ = [
    "LabResultInterpreter",
    "WoundHealingClassifier",
    "ReadmissionRiskPredictor",
    "StateStore",
    "InMemoryStateStore",
    "JsonFileStateStore",
    "ClinicalScoringError",
    "UnknownTestError",
    "IncompatibleTestError",
    "InsufficientDataError",
    "ValidationError",
    "StateStoreError",
]
