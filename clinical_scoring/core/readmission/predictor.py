"""
Readmission Risk Predictor

Blends the HOSPITAL score, the LACE index and an online-updated logistic
model into one 30-day readmission estimate, and keeps an outcome log for
calibration metrics.
"""
from datetime import datetime, timezone
from typing import List, Optional
import math

import numpy as np
from sklearn.metrics import brier_score_loss, roc_auc_score

from clinical_scoring import config
from clinical_scoring.utils import get_logger, StateStoreError, ValidationError
from clinical_scoring.core.store import StateStore, default_store
from clinical_scoring.core.stats import clamp, fit_line, strict_band_lookup
from .base import (
    IndexScore,
    LabeledProfile,
    LogisticResult,
    OutcomeRecord,
    PatientProfile,
    PerformanceMetrics,
    ReadmissionPrediction,
    ReadmissionRisk,
    TrainingResult,
)
from .indices import compute_hospital_score, compute_lace_index, validate_profile
from .model import (
    FEATURE_NAMES,
    INITIAL_COEFFICIENTS,
    extract_features,
    generate_synthetic_dataset,
    log_loss_term,
    logistic_risk_level,
    predict_probability,
    sgd_step,
    top_risk_factors,
)

logger = get_logger(__name__)

R = ReadmissionRisk

# ── Ensemble ────────────────────────────────────────────────────────────
HOSPITAL_WEIGHT = 0.3
LACE_WEIGHT = 0.3
LOGISTIC_WEIGHT = 0.4
# Lower-inclusive: 0.10 is MODERATE, 0.20 HIGH, 0.35 VERY_HIGH
ENSEMBLE_BANDS = ((0.10, R.LOW), (0.20, R.MODERATE), (0.35, R.HIGH))

# ── Model confidence ────────────────────────────────────────────────────
BASE_CONFIDENCE = 0.6
CONFIDENCE_PER_1000_SAMPLES = 0.3
MAX_CONFIDENCE = 0.95

# Fewer outcomes than this make AUC and calibration unreliable
MIN_OUTCOMES_FOR_METRICS = 30

# ── Recommendation triggers ─────────────────────────────────────────────
POLYPHARMACY_THRESHOLD = 8
ANEMIA_THRESHOLD = 10.0         # g/dL
HYPONATREMIA_THRESHOLD = 130.0  # mEq/L
FREQUENT_UTILIZER_ADMISSIONS = 2


class ReadmissionRiskPredictor:
    """
    Ensemble 30-day readmission predictor.

    Model weights and the outcome log live in the injected StateStore, so a
    new predictor over the same store resumes where the last one stopped.
    The synthetic calibration cohort is regenerated deterministically from
    the configured seed.
    """

    WEIGHTS_KEY = "readmission.weights"
    OUTCOMES_KEY = "readmission.outcomes"

    compute_hospital_score = staticmethod(compute_hospital_score)
    compute_lace_index = staticmethod(compute_lace_index)

    def __init__(self, store: Optional[StateStore] = None,
                 learning_rate: float = config.LEARNING_RATE):
        if not learning_rate > 0:
            raise ValidationError(f"learning_rate must be positive, got {learning_rate}", field="learning_rate")
        self.store = store if store is not None else default_store()
        self.learning_rate = learning_rate
        self._synthetic: List[LabeledProfile] = generate_synthetic_dataset()
        self._weights()  # fail fast on a corrupt store
        logger.info(
            f"ReadmissionRiskPredictor initialized "
            f"({len(self._synthetic)} synthetic profiles, {len(self.get_outcome_log())} outcomes)"
        )

    # ── State ───────────────────────────────────────────────────────────

    def _weights(self) -> np.ndarray:
        stored = self.store.get(self.WEIGHTS_KEY)
        if stored is None:
            return np.asarray(INITIAL_COEFFICIENTS, dtype=float)
        if not isinstance(stored, list) or len(stored) != len(FEATURE_NAMES):
            raise StateStoreError(
                f"Stored weights must be a list of {len(FEATURE_NAMES)} numbers",
                key=self.WEIGHTS_KEY,
            )
        return np.asarray(stored, dtype=float)

    def _save_weights(self, weights: np.ndarray) -> None:
        self.store.put(self.WEIGHTS_KEY, [float(w) for w in weights])

    def _save_outcome(self, record: OutcomeRecord, weights: np.ndarray) -> None:
        """Append the outcome and store the new weights in one store mutation."""
        outcomes = self.store.get_list(self.OUTCOMES_KEY)
        outcomes.append(record.to_dict())
        self.store.apply(puts={
            self.WEIGHTS_KEY: [float(w) for w in weights],
            self.OUTCOMES_KEY: outcomes,
        })

    def get_model_weights(self) -> List[float]:
        return [float(w) for w in self._weights()]

    def get_outcome_log(self) -> List[OutcomeRecord]:
        return [OutcomeRecord.from_dict(d) for d in self.store.get(self.OUTCOMES_KEY, [])]

    def get_synthetic_dataset(self) -> List[LabeledProfile]:
        return list(self._synthetic)

    # ── Prediction ──────────────────────────────────────────────────────

    def _confidence(self) -> float:
        data_size = len(self.store.get(self.OUTCOMES_KEY, [])) + len(self._synthetic)
        return min(MAX_CONFIDENCE, BASE_CONFIDENCE + data_size / 1000 * CONFIDENCE_PER_1000_SAMPLES)

    def predict_with_logistic_regression(self, patient) -> LogisticResult:
        patient = validate_profile(patient)
        weights = self._weights()
        features = extract_features(patient)
        probability = predict_probability(features, weights)
        return LogisticResult(
            probability=probability,
            risk_level=logistic_risk_level(probability),
            top_risk_factors=top_risk_factors(features, weights),
            confidence=self._confidence(),
        )

    def predict(self, patient) -> ReadmissionPrediction:
        patient = validate_profile(patient)
        hospital = compute_hospital_score(patient)
        lace = compute_lace_index(patient)
        logistic = self.predict_with_logistic_regression(patient)

        ensemble = clamp(
            HOSPITAL_WEIGHT * hospital.readmission_probability
            + LACE_WEIGHT * lace.readmission_probability
            + LOGISTIC_WEIGHT * logistic.probability,
            0.0, 1.0,
        )
        risk = strict_band_lookup(ensemble, ENSEMBLE_BANDS, R.VERY_HIGH)
        logger.debug(
            f"Readmission risk {ensemble:.3f} ({risk.value})",
            extra={"context": {
                "patient": patient.patient_id or "<unnamed>",
                "hospital": hospital.total_score,
                "lace": lace.total_score,
                "logistic": round(logistic.probability, 3),
            }},
        )
        return ReadmissionPrediction(
            hospital_score=hospital,
            lace_index=lace,
            logistic_regression=logistic,
            ensemble_probability=ensemble,
            ensemble_risk_level=risk,
            recommendations=self._recommendations(patient, hospital, lace, logistic),
        )

    @staticmethod
    def _recommendations(patient: PatientProfile, hospital: IndexScore, lace: IndexScore,
                         logistic: LogisticResult) -> List[str]:
        recs = []
        if not patient.has_follow_up_scheduled:
            recs.append("Schedule follow-up appointment within 7 days of discharge")
        if patient.medication_count > POLYPHARMACY_THRESHOLD:
            recs.append("Conduct medication reconciliation to reduce polypharmacy risk")
        if patient.lives_alone and not patient.has_caregiver:
            recs.append("Arrange home health visit or caregiver support within 48 hours")
        if patient.hemoglobin_at_discharge < ANEMIA_THRESHOLD:
            recs.append("Address anemia before discharge; consider iron supplementation or transfusion")
        if patient.sodium_at_discharge < HYPONATREMIA_THRESHOLD:
            recs.append("Correct hyponatremia before discharge; monitor sodium levels")
        if patient.has_heart_failure:
            recs.append(
                "Ensure heart failure discharge bundle: weight monitoring, "
                "fluid restriction education, medication titration"
            )
        if patient.has_copd and patient.is_smoker:
            recs.append("Provide smoking cessation resources and COPD action plan")
        if any(f.factor == "emergency_admission" for f in logistic.top_risk_factors):
            recs.append("Consider transitional care program for patients admitted via emergency")
        if patient.previous_admissions_6_months >= FREQUENT_UTILIZER_ADMISSIONS:
            recs.append("Enroll in readmission reduction program; frequent utilizer care coordination")
        if not recs:
            recs.append("Standard post-discharge follow-up protocol")
        return list(dict.fromkeys(recs))

    # ── Learning ────────────────────────────────────────────────────────

    def train_on_synthetic_data(self, epochs: int = 5) -> TrainingResult:
        """
        Run ``epochs`` passes of per-sample SGD over the synthetic cohort.

        Loss (mean binary cross-entropy) and accuracy are measured during
        the final pass, before each sample's own update.
        """
        if isinstance(epochs, bool) or not isinstance(epochs, int) or epochs < 1:
            raise ValidationError(f"epochs must be a positive integer, got {epochs!r}", field="epochs")

        weights = self._weights()
        samples = [(extract_features(p), p.was_readmitted) for p in self._synthetic]
        loss = correct = 0.0
        for _ in range(epochs):
            loss = correct = 0.0
            for features, label in samples:
                weights, prediction = sgd_step(weights, features, label, self.learning_rate)
                loss += log_loss_term(prediction, label)
                correct += (prediction >= 0.5) == label

        self._save_weights(weights)
        result = TrainingResult(
            accuracy=correct / len(samples),
            final_loss=float(loss) / len(samples),
            epochs=epochs,
            samples=len(samples),
        )
        logger.info(
            f"Trained on {result.samples} synthetic profiles for {epochs} epochs: "
            f"loss={result.final_loss:.4f}, accuracy={result.accuracy:.3f}"
        )
        return result

    def update_from_patient_outcome(self, patient, was_readmitted: bool) -> OutcomeRecord:
        """Apply one SGD step for a confirmed outcome and log the pre-update prediction."""
        patient = validate_profile(patient)
        weights, prediction = sgd_step(self._weights(), extract_features(patient),
                                       bool(was_readmitted), self.learning_rate)
        record = OutcomeRecord(
            patient_id=patient.patient_id,
            predicted_probability=prediction,
            actual_readmitted=bool(was_readmitted),
            days_to_readmission=None,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
        self._save_outcome(record, weights)
        logger.info(f"Weights updated from outcome for patient {patient.patient_id or '<unnamed>'}")
        return record

    def record_outcome(self, patient_id: str, predicted_probability: float,
                       was_readmitted: bool,
                       days_to_readmission: Optional[int] = None) -> OutcomeRecord:
        """
        Log an outcome for a prediction made earlier.

        Without the patient's features only the intercept can be corrected;
        it moves by ``learning_rate * (outcome - predicted_probability)``.
        """
        try:
            predicted_probability = float(predicted_probability)
        except (TypeError, ValueError) as e:
            raise ValidationError(
                f"predicted_probability must be a number, got {predicted_probability!r}",
                field="predicted_probability",
            ) from e
        if not math.isfinite(predicted_probability) or not 0.0 <= predicted_probability <= 1.0:
            raise ValidationError(
                f"predicted_probability must be within [0, 1], got {predicted_probability}",
                field="predicted_probability",
            )
        if days_to_readmission is not None and days_to_readmission < 0:
            raise ValidationError(
                f"days_to_readmission must be non-negative, got {days_to_readmission}",
                field="days_to_readmission",
            )

        record = OutcomeRecord(
            patient_id=patient_id,
            predicted_probability=predicted_probability,
            actual_readmitted=bool(was_readmitted),
            days_to_readmission=days_to_readmission,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
        weights = self._weights()
        weights[0] += self.learning_rate * (float(record.actual_readmitted) - predicted_probability)
        self._save_outcome(record, weights)
        logger.info(f"Outcome recorded for patient {patient_id}: readmitted={record.actual_readmitted}")
        return record

    def get_performance_metrics(self) -> PerformanceMetrics:
        """Brier score, ROC AUC and calibration slope over the outcome log."""
        log = self.get_outcome_log()
        if not log:
            return PerformanceMetrics(total_predictions=0, brier_score=0.0, auc=0.5,
                                      calibration_slope=1.0, low_confidence=True)

        predicted = np.array([r.predicted_probability for r in log])
        actual = np.array([int(r.actual_readmitted) for r in log])

        brier = float(brier_score_loss(actual, predicted, pos_label=1))
        # AUC is undefined with a single class present
        auc = float(roc_auc_score(actual, predicted)) if len(set(actual)) == 2 else 0.5
        if len(np.unique(predicted)) >= 2:
            slope = fit_line(actual, predicted).slope
        else:
            slope = 1.0

        return PerformanceMetrics(
            total_predictions=len(log),
            brier_score=brier,
            auc=auc,
            calibration_slope=slope,
            low_confidence=len(log) < MIN_OUTCOMES_FOR_METRICS,
        )

    def reset_model(self) -> None:
        """Restore initial weights and clear the outcome log."""
        self.store.apply(clears=(self.WEIGHTS_KEY, self.OUTCOMES_KEY))
        logger.info("Readmission model reset to initial coefficients")
