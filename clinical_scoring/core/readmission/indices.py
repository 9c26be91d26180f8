"""
Published Readmission Indices

HOSPITAL score: Donzé et al., JAMA Intern Med 2013;173(8):632-638.
LACE index: van Walraven et al., CMAJ 2010;182(6):551-557.
"""
from typing import Tuple
import math

from clinical_scoring.utils import ValidationError
from clinical_scoring.core.records import parse_record
from clinical_scoring.core.stats import band_lookup
from .base import AdmissionType, IndexScore, PatientProfile, ProcedureType, ReadmissionRisk

R = ReadmissionRisk


def validate_profile(patient) -> PatientProfile:
    """Parse a patient profile and reject impossible values."""
    patient = parse_record(PatientProfile, patient)
    checks = (
        ("age", 0 <= patient.age <= 120),
        ("hemoglobin_at_discharge", patient.hemoglobin_at_discharge > 0),
        ("sodium_at_discharge", patient.sodium_at_discharge > 0),
        ("length_of_stay_days", patient.length_of_stay_days >= 0),
        ("previous_admissions_6_months", patient.previous_admissions_6_months >= 0),
        ("emergency_visits_6_months", patient.emergency_visits_6_months >= 0),
        ("charlson_comorbidity_index", patient.charlson_comorbidity_index >= 0),
        ("medication_count", patient.medication_count >= 0),
        ("bmi", patient.bmi > 0),
    )
    for name, ok in checks:
        value = getattr(patient, name)
        if not ok or (isinstance(value, float) and not math.isfinite(value)):
            raise ValidationError(f"Invalid {name}: {value}", field=name)
    return patient


# ── HOSPITAL ────────────────────────────────────────────────────────────
HOSPITAL_LOW_HEMOGLOBIN = 12.0      # g/dL
HOSPITAL_LOW_SODIUM = 135.0         # mEq/L
HOSPITAL_LONG_STAY_DAYS = 5
HOSPITAL_MAX_SCORE = 9

# (upper bound inclusive, band)
HOSPITAL_BANDS = ((3, R.LOW), (4, R.MODERATE), (6, R.HIGH))
HOSPITAL_PROBABILITY = {R.LOW: 0.06, R.MODERATE: 0.12, R.HIGH: 0.24, R.VERY_HIGH: 0.41}


def compute_hospital_score(patient) -> IndexScore:
    patient = validate_profile(patient)
    components = {
        "hemoglobin": 1 if patient.hemoglobin_at_discharge < HOSPITAL_LOW_HEMOGLOBIN else 0,
        "oncology": 2 if patient.has_oncology_diagnosis else 0,
        "sodium": 1 if patient.sodium_at_discharge < HOSPITAL_LOW_SODIUM else 0,
        "procedure": 1 if patient.procedure_type == ProcedureType.CARDIAC else 0,
        "index_type": 1 if patient.admission_type != AdmissionType.ELECTIVE else 0,
        "admissions": 2 if patient.previous_admissions_6_months >= 1 else 0,
        "length_of_stay": 2 if patient.length_of_stay_days >= HOSPITAL_LONG_STAY_DAYS else 0,
    }
    # Component maxima sum to 10; the reported scale tops out at 9
    total = min(sum(components.values()), HOSPITAL_MAX_SCORE)
    risk = band_lookup(total, HOSPITAL_BANDS, R.VERY_HIGH)
    return IndexScore(
        name="HOSPITAL",
        total_score=total,
        max_score=HOSPITAL_MAX_SCORE,
        components=components,
        risk_level=risk,
        readmission_probability=HOSPITAL_PROBABILITY[risk],
    )


# ── LACE ────────────────────────────────────────────────────────────────
LACE_MAX_SCORE = 19
LACE_EMERGENCY_POINTS = 3

# Length of stay in days: (upper bound inclusive, points)
LACE_LOS_POINTS = ((0, 0), (1, 1), (2, 2), (4, 3), (6, 4), (13, 5))
LACE_LOS_MAX_POINTS = 7
# Charlson index: 0-3 scored as is, 4 or more scores 5
LACE_CCI_POINTS = ((0, 0), (1, 1), (2, 2), (3, 3))
LACE_CCI_MAX_POINTS = 5
LACE_ED_VISITS_CAP = 4

LACE_BANDS = ((4, R.LOW), (9, R.MODERATE), (14, R.HIGH))

# Score -> 30-day readmission probability, derivation cohort
LACE_PROBABILITY: Tuple[Tuple[int, float], ...] = (
    (2, 0.03), (4, 0.06), (6, 0.08), (9, 0.12), (11, 0.18), (14, 0.25),
)
LACE_PROBABILITY_MAX = 0.35


def lace_length_of_stay_points(days: float) -> int:
    if days < 1:
        return 0
    return band_lookup(math.floor(days), LACE_LOS_POINTS, LACE_LOS_MAX_POINTS)


def compute_lace_index(patient) -> IndexScore:
    patient = validate_profile(patient)
    components = {
        "length_of_stay": lace_length_of_stay_points(patient.length_of_stay_days),
        "acuity": LACE_EMERGENCY_POINTS if patient.admission_type == AdmissionType.EMERGENCY else 0,
        "comorbidity": band_lookup(patient.charlson_comorbidity_index, LACE_CCI_POINTS, LACE_CCI_MAX_POINTS),
        "emergency_visits": min(patient.emergency_visits_6_months, LACE_ED_VISITS_CAP),
    }
    total = sum(components.values())
    risk = band_lookup(total, LACE_BANDS, R.VERY_HIGH)
    return IndexScore(
        name="LACE",
        total_score=total,
        max_score=LACE_MAX_SCORE,
        components=components,
        risk_level=risk,
        readmission_probability=band_lookup(total, LACE_PROBABILITY, LACE_PROBABILITY_MAX),
    )
