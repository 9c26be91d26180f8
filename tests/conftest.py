"""
Pytest Configuration and Fixtures

Shared fixtures for the clinical scoring engine tests.
"""
import pytest
from datetime import datetime, timedelta
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from clinical_scoring.core.store import InMemoryStateStore
from clinical_scoring.core.labs import LabResultInterpreter, LabValue
from clinical_scoring.core.wounds import WoundHealingClassifier, WoundAssessment
from clinical_scoring.core.readmission import ReadmissionRiskPredictor, PatientProfile


@pytest.fixture
def store() -> InMemoryStateStore:
    """Fresh, empty learning-state store."""
    return InMemoryStateStore()


@pytest.fixture
def collected_at() -> datetime:
    """Fixed collection timestamp."""
    return datetime(2024, 3, 1, 8, 0, 0)


@pytest.fixture
def make_lab(collected_at):
    """Factory for lab values; ``hours`` offsets the collection time."""
    def _make(test_code: str, value: float, hours: float = 0, patient_id: str = "") -> LabValue:
        return LabValue(
            test_code=test_code,
            value=value,
            collected_at=collected_at + timedelta(hours=hours),
            patient_id=patient_id,
        )
    return _make


@pytest.fixture
def make_wound():
    """Factory for wound assessments with healthy defaults."""
    def _make(**overrides) -> WoundAssessment:
        fields = {
            "wound_id": "w-001",
            "length_cm": 2.0,
            "width_cm": 1.5,
            "depth_cm": 0.3,
            "tissue_type": "granulation",
            "exudate_amount": "light",
            "days_since_onset": 10,
        }
        fields.update(overrides)
        return WoundAssessment(**fields)
    return _make


@pytest.fixture
def make_patient():
    """Factory for discharge profiles; the default patient carries no risk factors."""
    def _make(**overrides) -> PatientProfile:
        fields = {
            "patient_id": "p-001",
            "age": 45,
            "sex": "male",
            "hemoglobin_at_discharge": 14.0,
            "sodium_at_discharge": 140.0,
            "admission_type": "elective",
            "procedure_type": "orthopedic",
            "length_of_stay_days": 2,
            "medication_count": 3,
        }
        fields.update(overrides)
        return PatientProfile(**fields)
    return _make


@pytest.fixture
def lab_interpreter(store) -> LabResultInterpreter:
    return LabResultInterpreter(store=store)


@pytest.fixture
def wound_classifier(store) -> WoundHealingClassifier:
    return WoundHealingClassifier(store=store)


@pytest.fixture
def predictor(store) -> ReadmissionRiskPredictor:
    return ReadmissionRiskPredictor(store=store)
