"""
Readmission Risk Predictor

Usage:
    from clinical_scoring.core.readmission import ReadmissionRiskPredictor

    predictor = ReadmissionRiskPredictor()
    prediction = predictor.predict(patient_profile)
    predictor.update_from_patient_outcome(patient_profile, was_readmitted=True)
"""
from .base import (
    AdmissionType,
    DischargeDisposition,
    IndexScore,
    LabeledProfile,
    LogisticResult,
    OutcomeRecord,
    PatientProfile,
    PerformanceMetrics,
    ProcedureType,
    ReadmissionPrediction,
    ReadmissionRisk,
    RiskFactor,
    Sex,
    TrainingResult,
)
from .indices import compute_hospital_score, compute_lace_index
from .model import FEATURE_NAMES, INITIAL_COEFFICIENTS, generate_synthetic_dataset
from .predictor import ReadmissionRiskPredictor

__all__ = [
    "ReadmissionRiskPredictor",
    "PatientProfile",
    "LabeledProfile",
    "IndexScore",
    "RiskFactor",
    "LogisticResult",
    "ReadmissionPrediction",
    "OutcomeRecord",
    "TrainingResult",
    "PerformanceMetrics",
    "ReadmissionRisk",
    "AdmissionType",
    "ProcedureType",
    "DischargeDisposition",
    "Sex",
    "FEATURE_NAMES",
    "INITIAL_COEFFICIENTS",
    "compute_hospital_score",
    "compute_lace_index",
    "generate_synthetic_dataset",
]
