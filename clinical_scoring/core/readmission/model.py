"""
Logistic Readmission Model

Feature extraction, the logistic forward pass, stochastic gradient steps and
the seeded synthetic cohort used for initial calibration.
"""
from typing import List, Optional, Tuple

import numpy as np

from clinical_scoring import config
from clinical_scoring.core.stats import sigmoid, strict_band_lookup
from clinical_scoring.utils import get_logger
from .base import (
    AdmissionType, DischargeDisposition, LabeledProfile, PatientProfile,
    ProcedureType, ReadmissionRisk, RiskFactor, Sex,
)

logger = get_logger(__name__)

R = ReadmissionRisk

FEATURE_NAMES: Tuple[str, ...] = (
    "intercept",
    "age",
    "female",
    "length_of_stay",
    "comorbidity_index",
    "emergency_admission",
    "prior_admissions",
    "ed_visits",
    "medication_count",
    "lives_alone",
    "no_followup",
    "bmi_deviation",
    "smoker",
    "diabetes",
    "heart_failure",
    "copd",
    "renal_disease",
    "oncology",
    "low_hemoglobin",
    "low_sodium",
    "no_caregiver",
)

# Starting coefficients, one per entry of FEATURE_NAMES
INITIAL_COEFFICIENTS: Tuple[float, ...] = (
    -2.5,    # intercept
    0.015,   # age, per 30 years above 50
    -0.05,   # female
    0.12,    # length of stay
    0.35,    # Charlson index
    0.55,    # emergency admission
    0.4,     # prior admissions
    0.3,     # ED visits
    0.08,    # medication count
    0.25,    # lives alone
    0.45,    # no follow-up scheduled
    0.05,    # BMI deviation from 25
    0.2,     # smoker
    0.3,     # diabetes
    0.65,    # heart failure
    0.35,    # COPD
    0.5,     # renal disease
    0.4,     # oncology
    0.25,    # hemoglobin < 12
    0.2,     # sodium < 135
    0.15,    # no caregiver
)

# ── Feature normalisation ───────────────────────────────────────────────
AGE_OFFSET = 50
AGE_SCALE = 30
LOS_CAP, LOS_SCALE = 30, 10
CCI_CAP, CCI_SCALE = 10, 5
UTILIZATION_CAP, UTILIZATION_SCALE = 5, 3
MEDICATION_CAP, MEDICATION_SCALE = 20, 10
BMI_REFERENCE, BMI_SCALE = 25, 15
LOW_HEMOGLOBIN = 12.0
LOW_SODIUM = 135.0

# ── Output ──────────────────────────────────────────────────────────────
MIN_FACTOR_CONTRIBUTION = 0.01
MAX_RISK_FACTORS = 5
LOGISTIC_BANDS = ((0.12, R.LOW), (0.25, R.MODERATE), (0.40, R.HIGH))
PROBABILITY_FLOOR = 1e-10


def extract_features(patient: PatientProfile) -> np.ndarray:
    """Normalised feature vector aligned with FEATURE_NAMES."""
    return np.array([
        1.0,
        max(0.0, patient.age - AGE_OFFSET) / AGE_SCALE,
        float(patient.sex == Sex.FEMALE),
        min(patient.length_of_stay_days, LOS_CAP) / LOS_SCALE,
        min(patient.charlson_comorbidity_index, CCI_CAP) / CCI_SCALE,
        float(patient.admission_type == AdmissionType.EMERGENCY),
        min(patient.previous_admissions_6_months, UTILIZATION_CAP) / UTILIZATION_SCALE,
        min(patient.emergency_visits_6_months, UTILIZATION_CAP) / UTILIZATION_SCALE,
        min(patient.medication_count, MEDICATION_CAP) / MEDICATION_SCALE,
        float(patient.lives_alone),
        float(not patient.has_follow_up_scheduled),
        abs(patient.bmi - BMI_REFERENCE) / BMI_SCALE,
        float(patient.is_smoker),
        float(patient.has_diabetes),
        float(patient.has_heart_failure),
        float(patient.has_copd),
        float(patient.has_renal_disease),
        float(patient.has_oncology_diagnosis),
        float(patient.hemoglobin_at_discharge < LOW_HEMOGLOBIN),
        float(patient.sodium_at_discharge < LOW_SODIUM),
        float(not patient.has_caregiver),
    ])


def predict_probability(features: np.ndarray, weights: np.ndarray) -> float:
    return float(sigmoid(float(np.dot(features, weights))))


def logistic_risk_level(probability: float) -> ReadmissionRisk:
    return strict_band_lookup(probability, LOGISTIC_BANDS, R.VERY_HIGH)


def top_risk_factors(features: np.ndarray, weights: np.ndarray) -> List[RiskFactor]:
    """Positive contributions ``weight * feature``, largest first (intercept excluded)."""
    contributions = features[1:] * weights[1:]
    factors = [
        RiskFactor(factor=FEATURE_NAMES[i + 1], contribution=float(c))
        for i, c in enumerate(contributions)
        if c > MIN_FACTOR_CONTRIBUTION
    ]
    factors.sort(key=lambda f: f.contribution, reverse=True)
    return factors[:MAX_RISK_FACTORS]


def sgd_step(weights: np.ndarray, features: np.ndarray, label: bool,
             learning_rate: float) -> Tuple[np.ndarray, float]:
    """One log-loss gradient step; returns (new_weights, prediction before the step)."""
    prediction = predict_probability(features, weights)
    error = float(label) - prediction
    return weights + learning_rate * error * features, prediction


def log_loss_term(prediction: float, label: bool) -> float:
    p = min(max(prediction, PROBABILITY_FLOOR), 1 - PROBABILITY_FLOOR)
    return -np.log(p) if label else -np.log(1 - p)


# ── Synthetic cohort ────────────────────────────────────────────────────

PROCEDURE_CHOICES = tuple(ProcedureType)
DISPOSITION_CHOICES = tuple(DischargeDisposition)
COMORBIDITY_OPTIONS = (
    "hypertension", "diabetes_type2", "coronary_artery_disease", "heart_failure",
    "atrial_fibrillation", "copd", "asthma", "chronic_kidney_disease",
    "liver_disease", "obesity", "depression", "anxiety", "osteoarthritis",
    "peripheral_vascular_disease", "stroke_history", "cancer_history",
)


def generate_synthetic_dataset(size: Optional[int] = None,
                               seed: Optional[int] = None) -> List[LabeledProfile]:
    """
    Build a reproducible discharge cohort.

    Ages are uniform in [30, 85]. Each label is drawn from the logistic model
    evaluated with INITIAL_COEFFICIENTS, so both classes appear and the
    labels carry learnable signal.
    """
    size = config.SYNTHETIC_SIZE if size is None else size
    seed = config.SYNTHETIC_SEED if seed is None else seed
    rng = np.random.default_rng(seed)
    initial = np.asarray(INITIAL_COEFFICIENTS)

    dataset = []
    for i in range(size):
        emergency = rng.random() > 0.65
        lives_alone = rng.random() > 0.7
        cci = int(rng.random() * 8)
        profile = PatientProfile(
            patient_id=f"synth-{i:04d}",
            age=float(rng.integers(30, 86)),
            sex=Sex.MALE if rng.random() > 0.48 else Sex.FEMALE,
            hemoglobin_at_discharge=9 + rng.random() * 7,
            sodium_at_discharge=128 + rng.random() * 16,
            has_oncology_diagnosis=bool(rng.random() > 0.92),
            procedure_type=PROCEDURE_CHOICES[rng.integers(len(PROCEDURE_CHOICES))],
            admission_type=(
                AdmissionType.EMERGENCY if emergency
                else AdmissionType.URGENT if rng.random() > 0.5
                else AdmissionType.ELECTIVE
            ),
            length_of_stay_days=1 + int(rng.random() * (14 if emergency else 7)),
            previous_admissions_6_months=int(rng.random() * rng.random() * 6),
            emergency_visits_6_months=int(rng.random() * rng.random() * 5),
            charlson_comorbidity_index=cci,
            comorbidities=[str(c) for c in rng.choice(COMORBIDITY_OPTIONS, size=cci, replace=False)],
            discharge_disposition=DISPOSITION_CHOICES[rng.integers(len(DISPOSITION_CHOICES))],
            lives_alone=lives_alone,
            has_caregiver=bool(not lives_alone or rng.random() > 0.6),
            medication_count=2 + int(rng.random() * 15),
            has_follow_up_scheduled=bool(rng.random() > 0.15),
            bmi=18 + rng.random() * 25,
            is_smoker=bool(rng.random() > 0.75),
            has_diabetes=bool(rng.random() > 0.75),
            has_heart_failure=bool(rng.random() > 0.88),
            has_copd=bool(rng.random() > 0.85),
            has_renal_disease=bool(rng.random() > 0.9),
        )
        probability = predict_probability(extract_features(profile), initial)
        dataset.append(LabeledProfile(
            **profile.model_dump(),
            was_readmitted=bool(rng.random() < probability),
        ))

    logger.debug(f"Generated {len(dataset)} synthetic profiles (seed={seed})")
    return dataset
