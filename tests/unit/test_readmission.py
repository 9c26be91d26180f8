"""
Unit Tests for the Readmission Risk Predictor

Tests for the HOSPITAL score, LACE index, logistic model, ensemble
prediction, synthetic calibration and outcome-driven learning.
"""
import math

import pytest
import numpy as np

from clinical_scoring.core.readmission import (
    ReadmissionRiskPredictor,
    FEATURE_NAMES,
    INITIAL_COEFFICIENTS,
    ReadmissionRisk,
    compute_hospital_score,
    compute_lace_index,
    generate_synthetic_dataset,
)
from clinical_scoring.core.readmission.indices import lace_length_of_stay_points
from clinical_scoring.core.store import JsonFileStateStore
from clinical_scoring.utils import StateStoreError, ValidationError


def _random_profile(make_patient, rng):
    return make_patient(
        age=float(rng.uniform(18, 100)),
        sex=str(rng.choice(["male", "female"])),
        hemoglobin_at_discharge=float(rng.uniform(6, 18)),
        sodium_at_discharge=float(rng.uniform(120, 150)),
        has_oncology_diagnosis=bool(rng.random() > 0.5),
        procedure_type=str(rng.choice(["cardiac", "orthopedic", "abdominal", "other"])),
        admission_type=str(rng.choice(["elective", "urgent", "emergency"])),
        length_of_stay_days=float(rng.uniform(0, 60)),
        previous_admissions_6_months=int(rng.integers(0, 12)),
        emergency_visits_6_months=int(rng.integers(0, 12)),
        charlson_comorbidity_index=int(rng.integers(0, 15)),
        lives_alone=bool(rng.random() > 0.5),
        has_caregiver=bool(rng.random() > 0.5),
        medication_count=int(rng.integers(0, 30)),
        has_follow_up_scheduled=bool(rng.random() > 0.5),
        bmi=float(rng.uniform(14, 60)),
        is_smoker=bool(rng.random() > 0.5),
        has_diabetes=bool(rng.random() > 0.5),
        has_heart_failure=bool(rng.random() > 0.5),
        has_copd=bool(rng.random() > 0.5),
        has_renal_disease=bool(rng.random() > 0.5),
    )


@pytest.fixture
def high_risk_patient(make_patient):
    return make_patient(
        age=78,
        hemoglobin_at_discharge=9.0,
        sodium_at_discharge=128.0,
        has_oncology_diagnosis=True,
        procedure_type="cardiac",
        admission_type="emergency",
        length_of_stay_days=9,
        previous_admissions_6_months=3,
        emergency_visits_6_months=2,
        charlson_comorbidity_index=5,
        lives_alone=True,
        has_caregiver=False,
        medication_count=12,
        has_follow_up_scheduled=False,
        is_smoker=True,
        has_heart_failure=True,
        has_copd=True,
    )


class TestHospitalScore:
    """Tests for the HOSPITAL score."""

    def test_no_risk_factors(self, make_patient):
        result = compute_hospital_score(make_patient())
        assert result.total_score == 0
        assert result.max_score == 9
        assert result.risk_level == ReadmissionRisk.LOW
        assert result.readmission_probability == 0.06

    def test_components(self, make_patient):
        result = compute_hospital_score(make_patient(
            hemoglobin_at_discharge=11.9, sodium_at_discharge=134.9, has_oncology_diagnosis=True))
        assert result.components["hemoglobin"] == 1
        assert result.components["sodium"] == 1
        assert result.components["oncology"] == 2
        assert result.total_score == 4
        assert result.risk_level == ReadmissionRisk.MODERATE

    def test_thresholds_are_strict(self, make_patient):
        """Hemoglobin 12 and sodium 135 score nothing."""
        result = compute_hospital_score(make_patient(hemoglobin_at_discharge=12.0, sodium_at_discharge=135.0))
        assert result.total_score == 0

    def test_urgent_counts_as_non_elective(self, make_patient):
        assert compute_hospital_score(make_patient(admission_type="urgent")).components["index_type"] == 1

    @pytest.mark.parametrize("overrides,total,risk", [
        ({"previous_admissions_6_months": 1, "hemoglobin_at_discharge": 10}, 3, ReadmissionRisk.LOW),
        ({"has_oncology_diagnosis": True, "length_of_stay_days": 5}, 4, ReadmissionRisk.MODERATE),
        ({"has_oncology_diagnosis": True, "length_of_stay_days": 5, "procedure_type": "cardiac"},
         5, ReadmissionRisk.HIGH),
        ({"has_oncology_diagnosis": True, "length_of_stay_days": 5, "previous_admissions_6_months": 2},
         6, ReadmissionRisk.HIGH),
        ({"has_oncology_diagnosis": True, "length_of_stay_days": 5, "previous_admissions_6_months": 2,
          "admission_type": "emergency"}, 7, ReadmissionRisk.VERY_HIGH),
    ])
    def test_bands(self, make_patient, overrides, total, risk):
        result = compute_hospital_score(make_patient(**overrides))
        assert result.total_score == total
        assert result.risk_level == risk

    def test_capped_at_maximum(self, high_risk_patient):
        result = compute_hospital_score(high_risk_patient)
        assert sum(result.components.values()) == 10
        assert result.total_score == 9
        assert result.risk_level == ReadmissionRisk.VERY_HIGH
        assert result.readmission_probability == 0.41

    def test_probability_monotone(self, make_patient):
        probabilities = [
            compute_hospital_score(make_patient(**o)).readmission_probability
            for o in ({}, {"has_oncology_diagnosis": True, "length_of_stay_days": 5},
                      {"has_oncology_diagnosis": True, "length_of_stay_days": 6, "procedure_type": "cardiac"},
                      {"has_oncology_diagnosis": True, "length_of_stay_days": 6,
                       "previous_admissions_6_months": 1, "admission_type": "emergency"})
        ]
        assert probabilities == sorted(probabilities)
        assert len(set(probabilities)) == 4


class TestLaceIndex:
    """Tests for the LACE index."""

    @pytest.mark.parametrize("days,points", [
        (0, 0), (0.5, 0), (1, 1), (2, 2), (3, 3), (4, 3), (5, 4), (6, 4),
        (7, 5), (13, 5), (14, 7), (30, 7),
    ])
    def test_length_of_stay_points(self, days, points):
        assert lace_length_of_stay_points(days) == points

    @pytest.mark.parametrize("cci,points", [(0, 0), (1, 1), (3, 3), (4, 5), (9, 5)])
    def test_comorbidity_points(self, make_patient, cci, points):
        result = compute_lace_index(make_patient(charlson_comorbidity_index=cci))
        assert result.components["comorbidity"] == points

    def test_ed_visits_capped(self, make_patient):
        assert compute_lace_index(make_patient(emergency_visits_6_months=9)).components["emergency_visits"] == 4

    def test_low_risk(self, make_patient):
        result = compute_lace_index(make_patient())
        assert result.total_score == 2
        assert result.max_score == 19
        assert result.risk_level == ReadmissionRisk.LOW
        assert result.readmission_probability == 0.03

    def test_maximum(self, make_patient):
        result = compute_lace_index(make_patient(
            length_of_stay_days=20, admission_type="emergency",
            charlson_comorbidity_index=6, emergency_visits_6_months=5))
        assert result.total_score == 19
        assert result.risk_level == ReadmissionRisk.VERY_HIGH
        assert result.readmission_probability == 0.35

    @pytest.mark.parametrize("cci,ed,risk", [
        (2, 0, ReadmissionRisk.LOW),        # 4
        (3, 0, ReadmissionRisk.MODERATE),   # 5
        (5, 2, ReadmissionRisk.MODERATE),   # 9
        (5, 3, ReadmissionRisk.HIGH),       # 10
    ])
    def test_bands(self, make_patient, cci, ed, risk):
        result = compute_lace_index(make_patient(charlson_comorbidity_index=cci, emergency_visits_6_months=ed))
        assert result.risk_level == risk


class TestIndexValidation:
    """Tests for patient-profile validation."""

    @pytest.mark.parametrize("overrides", [
        {"age": -1}, {"age": 130}, {"hemoglobin_at_discharge": 0}, {"sodium_at_discharge": -5},
        {"length_of_stay_days": -1}, {"previous_admissions_6_months": -2}, {"bmi": 0},
        {"age": float("nan")},
    ])
    def test_rejects_impossible_values(self, make_patient, overrides):
        with pytest.raises(ValidationError):
            compute_hospital_score(make_patient(**overrides))

    def test_rejects_malformed_dict(self):
        with pytest.raises(ValidationError) as exc:
            compute_lace_index({"age": 50, "sex": "unknown", "hemoglobin_at_discharge": 13,
                                "sodium_at_discharge": 140})
        assert exc.value.details["field"] == "sex"

    def test_accepts_dict(self):
        result = compute_lace_index({"age": 50, "sex": "F", "hemoglobin_at_discharge": 13,
                                     "sodium_at_discharge": 140, "length_of_stay_days": 3})
        assert result.components["length_of_stay"] == 3

    @pytest.mark.parametrize("seed", range(5))
    def test_scores_within_bounds(self, make_patient, seed):
        rng = np.random.default_rng(seed)
        for _ in range(100):
            patient = _random_profile(make_patient, rng)
            for score in (compute_hospital_score(patient), compute_lace_index(patient)):
                assert 0 <= score.total_score <= score.max_score


class TestLogisticModel:
    """Tests for the logistic regression component."""

    def test_feature_alignment(self):
        assert len(FEATURE_NAMES) == len(INITIAL_COEFFICIENTS) == 21
        assert FEATURE_NAMES[0] == "intercept"

    def test_baseline_patient(self, predictor, make_patient):
        result = predictor.predict_with_logistic_regression(make_patient())
        expected = 1 / (1 + math.exp(-(-2.5 + 0.12 * 0.2 + 0.08 * 0.3)))
        assert result.probability == pytest.approx(expected)
        assert result.risk_level == ReadmissionRisk.LOW
        assert {f.factor for f in result.top_risk_factors} == {"length_of_stay", "medication_count"}

    def test_confidence(self, predictor, make_patient):
        result = predictor.predict_with_logistic_regression(make_patient())
        assert result.confidence == pytest.approx(0.6 + 220 / 1000 * 0.3)

    def test_top_factors_sorted(self, predictor, high_risk_patient):
        factors = predictor.predict_with_logistic_regression(high_risk_patient).top_risk_factors
        contributions = [f.contribution for f in factors]
        assert len(factors) == 5
        assert contributions == sorted(contributions, reverse=True)
        assert all(c > 0 for c in contributions)
        assert factors[0].factor == "heart_failure"

    def test_negative_contribution_excluded(self, predictor, make_patient):
        factors = predictor.predict_with_logistic_regression(make_patient(sex="female")).top_risk_factors
        assert "female" not in {f.factor for f in factors}

    def test_higher_risk_scores_higher(self, predictor, make_patient, high_risk_patient):
        low = predictor.predict_with_logistic_regression(make_patient()).probability
        high = predictor.predict_with_logistic_regression(high_risk_patient).probability
        assert high > low
        assert 0.0 <= low <= 1.0 and 0.0 <= high <= 1.0


class TestEnsemble:
    """Tests for the blended prediction."""

    def test_blend(self, predictor, make_patient):
        prediction = predictor.predict(make_patient())
        expected = (0.3 * prediction.hospital_score.readmission_probability
                    + 0.3 * prediction.lace_index.readmission_probability
                    + 0.4 * prediction.logistic_regression.probability)
        assert prediction.ensemble_probability == pytest.approx(expected)
        assert prediction.ensemble_risk_level == ReadmissionRisk.LOW

    def test_standard_recommendation(self, predictor, make_patient):
        assert predictor.predict(make_patient()).recommendations == ["Standard post-discharge follow-up protocol"]

    def test_triggered_recommendations(self, predictor, high_risk_patient):
        recs = predictor.predict(high_risk_patient).recommendations
        assert recs == [
            "Schedule follow-up appointment within 7 days of discharge",
            "Conduct medication reconciliation to reduce polypharmacy risk",
            "Arrange home health visit or caregiver support within 48 hours",
            "Address anemia before discharge; consider iron supplementation or transfusion",
            "Correct hyponatremia before discharge; monitor sodium levels",
            "Ensure heart failure discharge bundle: weight monitoring, fluid restriction education, "
            "medication titration",
            "Provide smoking cessation resources and COPD action plan",
            "Consider transitional care program for patients admitted via emergency",
            "Enroll in readmission reduction program; frequent utilizer care coordination",
        ]

    def test_high_risk_band(self, predictor, high_risk_patient):
        prediction = predictor.predict(high_risk_patient)
        assert prediction.ensemble_risk_level == ReadmissionRisk.VERY_HIGH

    @pytest.mark.parametrize("seed", range(5))
    def test_probability_bounds(self, predictor, make_patient, seed):
        rng = np.random.default_rng(seed)
        for _ in range(50):
            prediction = predictor.predict(_random_profile(make_patient, rng))
            assert 0.0 <= prediction.ensemble_probability <= 1.0
            assert len(prediction.recommendations) == len(set(prediction.recommendations))

    def test_to_dict(self, predictor, make_patient):
        data = predictor.predict(make_patient()).to_dict()
        assert data["hospital_score"]["name"] == "HOSPITAL"
        assert data["lace_index"]["name"] == "LACE"
        assert data["ensemble_risk_level"] == "low"


class TestSyntheticData:
    """Tests for the synthetic cohort and batch training."""

    def test_dataset_shape(self, predictor):
        dataset = predictor.get_synthetic_dataset()
        assert len(dataset) >= 200
        assert all(30 <= p.age <= 85 for p in dataset)
        readmitted = sum(p.was_readmitted for p in dataset)
        assert readmitted >= 10
        assert len(dataset) - readmitted >= 10

    def test_reproducible(self):
        first = generate_synthetic_dataset(seed=7)
        second = generate_synthetic_dataset(seed=7)
        other = generate_synthetic_dataset(seed=8)
        assert first == second
        assert first != other

    def test_dataset_copy(self, predictor):
        dataset = predictor.get_synthetic_dataset()
        dataset.clear()
        assert len(predictor.get_synthetic_dataset()) >= 200

    def test_training(self, predictor):
        before = predictor.get_model_weights()
        result = predictor.train_on_synthetic_data(epochs=3)
        assert result.epochs == 3
        assert result.samples == len(predictor.get_synthetic_dataset())
        assert math.isfinite(result.final_loss) and result.final_loss > 0
        assert result.accuracy > 0.5
        assert predictor.get_model_weights() != before

    @pytest.mark.parametrize("epochs", [0, -1, 2.5])
    def test_invalid_epochs(self, predictor, epochs):
        before = predictor.get_model_weights()
        with pytest.raises(ValidationError):
            predictor.train_on_synthetic_data(epochs=epochs)
        assert predictor.get_model_weights() == before


class TestOutcomeLearning:
    """Tests for outcome logging, online updates and metrics."""

    def test_update_changes_weights(self, predictor, make_patient):
        before = predictor.get_model_weights()
        record = predictor.update_from_patient_outcome(make_patient(), was_readmitted=True)
        after = predictor.get_model_weights()
        assert any(a != b for a, b in zip(before, after))
        assert after[0] > before[0]
        assert predictor.get_outcome_log() == [record]
        assert record.days_to_readmission is None

    def test_update_every_call(self, predictor, make_patient):
        for outcome in (True, False, True, False):
            before = predictor.get_model_weights()
            predictor.update_from_patient_outcome(make_patient(), was_readmitted=outcome)
            assert predictor.get_model_weights() != before

    def test_invalid_update_leaves_state(self, predictor, make_patient):
        before = predictor.get_model_weights()
        with pytest.raises(ValidationError):
            predictor.update_from_patient_outcome({"age": 40}, was_readmitted=True)
        assert predictor.get_model_weights() == before
        assert predictor.get_outcome_log() == []

    def test_record_outcome_moves_intercept(self, predictor):
        before = predictor.get_model_weights()
        record = predictor.record_outcome("p-1", 0.3, True, days_to_readmission=12)
        after = predictor.get_model_weights()
        assert after[0] == pytest.approx(before[0] + 0.01 * 0.7)
        assert after[1:] == before[1:]
        assert record.days_to_readmission == 12
        assert len(predictor.get_outcome_log()) == 1

    @pytest.mark.parametrize("probability", [-0.1, 1.5, float("nan"), "high"])
    def test_record_outcome_rejects_probability(self, predictor, probability):
        with pytest.raises(ValidationError):
            predictor.record_outcome("p-1", probability, True)
        assert predictor.get_outcome_log() == []

    def test_empty_metrics(self, predictor):
        metrics = predictor.get_performance_metrics()
        assert metrics.total_predictions == 0
        assert metrics.brier_score == 0.0
        assert metrics.auc == 0.5
        assert metrics.calibration_slope == 1.0

    def test_metrics(self, predictor):
        for probability, outcome in ((0.9, True), (0.8, True), (0.2, False), (0.1, False)):
            predictor.record_outcome("p", probability, outcome)
        metrics = predictor.get_performance_metrics()
        assert metrics.total_predictions == 4
        assert metrics.brier_score == pytest.approx(0.025)
        assert metrics.auc == pytest.approx(1.0)
        assert metrics.calibration_slope == pytest.approx(1.4)
        assert metrics.low_confidence

    def test_single_class_auc(self, predictor):
        predictor.record_outcome("p", 0.7, True)
        predictor.record_outcome("p", 0.4, True)
        assert predictor.get_performance_metrics().auc == 0.5

    def test_confident_metrics(self, predictor):
        rng = np.random.default_rng(3)
        for _ in range(40):
            probability = float(rng.random())
            predictor.record_outcome("p", probability, bool(rng.random() < probability))
        metrics = predictor.get_performance_metrics()
        assert not metrics.low_confidence
        assert 0.0 <= metrics.brier_score <= 1.0
        assert 0.0 <= metrics.auc <= 1.0

    def test_reset(self, predictor, make_patient):
        predictor.train_on_synthetic_data(epochs=1)
        predictor.update_from_patient_outcome(make_patient(), was_readmitted=False)
        predictor.reset_model()
        assert predictor.get_outcome_log() == []
        assert predictor.get_model_weights() == list(INITIAL_COEFFICIENTS)

    def test_failed_reset_keeps_weights_and_log_together(self, tmp_path, make_patient, monkeypatch):
        """A reset that cannot be written changes neither weights nor outcomes."""
        path = tmp_path / "state.json"
        store = JsonFileStateStore(path)
        predictor = ReadmissionRiskPredictor(store=store)
        predictor.update_from_patient_outcome(make_patient(), was_readmitted=True)
        weights = predictor.get_model_weights()

        def disk_full(data):
            raise StateStoreError("disk full")

        monkeypatch.setattr(store, "_flush", disk_full)
        with pytest.raises(StateStoreError):
            predictor.reset_model()
        assert predictor.get_model_weights() == weights
        assert len(predictor.get_outcome_log()) == 1

        reopened = ReadmissionRiskPredictor(store=JsonFileStateStore(path))
        assert reopened.get_model_weights() == weights
        assert len(reopened.get_outcome_log()) == 1

    def test_failed_outcome_write_keeps_state(self, tmp_path, make_patient, monkeypatch):
        store = JsonFileStateStore(tmp_path / "state.json")
        predictor = ReadmissionRiskPredictor(store=store)

        def disk_full(data):
            raise StateStoreError("disk full")

        monkeypatch.setattr(store, "_flush", disk_full)
        with pytest.raises(StateStoreError):
            predictor.update_from_patient_outcome(make_patient(), was_readmitted=True)
        with pytest.raises(StateStoreError):
            predictor.record_outcome("p-1", 0.4, True)
        assert predictor.get_outcome_log() == []
        assert predictor.get_model_weights() == list(INITIAL_COEFFICIENTS)

    def test_state_survives_new_instance(self, store, make_patient):
        first = ReadmissionRiskPredictor(store=store)
        first.update_from_patient_outcome(make_patient(), was_readmitted=True)
        second = ReadmissionRiskPredictor(store=store)
        assert second.get_model_weights() == first.get_model_weights()
        assert len(second.get_outcome_log()) == 1

    def test_corrupt_weights(self, store):
        store.put(ReadmissionRiskPredictor.WEIGHTS_KEY, [1.0, 2.0])
        with pytest.raises(StateStoreError):
            ReadmissionRiskPredictor(store=store)

    def test_invalid_learning_rate(self, store):
        with pytest.raises(ValidationError):
            ReadmissionRiskPredictor(store=store, learning_rate=0)
