"""
Unit Tests for the Wound Healing Classifier

Tests for Wagner grading, Braden and PUSH scoring, healing-phase rules,
composite assessment and the clinician-correction feedback loop.
"""
import itertools

import pytest
import numpy as np

from clinical_scoring.core.wounds import (
    WoundHealingClassifier,
    BradenRisk,
    BradenScaleInput,
    GangreneExtent,
    HealingPhase,
    HealingTrajectory,
    RiskLevel,
    TissueType,
    WagnerGrade,
    PHASE_RULES,
    classify_wagner,
    compute_braden_scale,
    compute_push_score,
)
from clinical_scoring.core.wounds.scales import BRADEN_BANDS, push_area_score
from clinical_scoring.utils import ValidationError


BRADEN_FIELDS = ("sensory_perception", "moisture", "activity", "mobility", "nutrition", "friction_shear")


def _braden(*scores) -> BradenScaleInput:
    return BradenScaleInput(**dict(zip(BRADEN_FIELDS, scores)))


class TestWagner:
    """Tests for the Wagner rule cascade."""

    def test_intact_skin(self, make_wound):
        result = classify_wagner(make_wound(depth_cm=0, length_cm=0, width_cm=0))
        assert result.grade == WagnerGrade.GRADE_0
        assert not result.requires_surgical_consult

    def test_superficial(self, make_wound):
        assert classify_wagner(make_wound()).grade == WagnerGrade.GRADE_1

    def test_tendon_exposure(self, make_wound):
        result = classify_wagner(make_wound(has_tendon_exposure=True))
        assert result.grade == WagnerGrade.GRADE_2
        assert result.requires_vascular_assessment

    def test_bone_exposure_outranks_tendon(self, make_wound):
        result = classify_wagner(make_wound(has_tendon_exposure=True, has_bone_exposure=True))
        assert result.grade == WagnerGrade.GRADE_3
        assert result.requires_surgical_consult

    def test_localized_gangrene(self, make_wound):
        result = classify_wagner(make_wound(has_gangrene=True, gangrene_extent="localized"))
        assert result.grade == WagnerGrade.GRADE_4
        assert result.requires_vascular_assessment

    def test_extensive_gangrene(self, make_wound):
        result = classify_wagner(make_wound(has_gangrene=True, gangrene_extent="extensive"))
        assert result.grade == WagnerGrade.GRADE_5

    def test_infection_requires_surgical_consult(self, make_wound):
        """Infection escalates the consult at any grade."""
        result = classify_wagner(make_wound(has_infection_signs=True))
        assert result.grade == WagnerGrade.GRADE_1
        assert result.requires_surgical_consult

    @pytest.mark.parametrize("seed", range(10))
    def test_random_wounds(self, make_wound, seed):
        """Grade always in 0..5; extensive gangrene always grade 5."""
        rng = np.random.default_rng(seed)
        for _ in range(50):
            extent = list(GangreneExtent)[rng.integers(len(GangreneExtent))]
            wound = make_wound(
                depth_cm=float(rng.uniform(0, 5)),
                has_bone_exposure=bool(rng.random() > 0.5),
                has_tendon_exposure=bool(rng.random() > 0.5),
                has_gangrene=bool(rng.random() > 0.7),
                has_infection_signs=bool(rng.random() > 0.5),
                gangrene_extent=extent,
            )
            grade = classify_wagner(wound).grade
            assert 0 <= int(grade) <= 5
            if extent == GangreneExtent.EXTENSIVE:
                assert grade == WagnerGrade.GRADE_5


class TestBraden:
    """Tests for the Braden Scale."""

    def test_all_minimum(self):
        result = compute_braden_scale(_braden(1, 1, 1, 1, 1, 1))
        assert result.total_score == 6
        assert result.risk_level == BradenRisk.VERY_HIGH
        assert result.max_score == 23

    def test_all_maximum(self):
        result = compute_braden_scale(_braden(4, 4, 4, 4, 4, 3))
        assert result.total_score == 23
        assert result.risk_level == BradenRisk.NONE

    @pytest.mark.parametrize("total,expected", [
        (9, BradenRisk.VERY_HIGH), (10, BradenRisk.HIGH), (12, BradenRisk.HIGH),
        (13, BradenRisk.MODERATE), (14, BradenRisk.MODERATE), (15, BradenRisk.MILD),
        (18, BradenRisk.MILD), (19, BradenRisk.NONE),
    ])
    def test_band_edges(self, total, expected):
        # Fill sub-scales greedily up to the requested total
        scores, remaining = [], total - 6
        for cap in (4, 4, 4, 4, 4, 3):
            extra = min(cap - 1, remaining)
            scores.append(1 + extra)
            remaining -= extra
        result = compute_braden_scale(_braden(*scores))
        assert result.total_score == total
        assert result.risk_level == expected

    def test_nutrition_recommendation(self):
        result = compute_braden_scale(_braden(4, 4, 4, 4, 2, 3))
        assert "Nutrition consult: high protein supplementation, vitamin C, zinc" in result.recommendations

    def test_out_of_range_subscale(self):
        with pytest.raises(ValidationError):
            compute_braden_scale(_braden(4, 4, 4, 4, 4, 4))
        with pytest.raises(ValidationError):
            compute_braden_scale(_braden(0, 4, 4, 4, 4, 3))

    def test_dict_input(self):
        result = compute_braden_scale(dict(zip(BRADEN_FIELDS, (2, 2, 2, 2, 2, 2))))
        assert result.total_score == 12

    def test_exhaustive_enumeration(self):
        """Every valid input: total in range, band matches, very-high gets the most advice."""
        most_by_band = {}
        fewest_very_high = None
        for scores in itertools.product(range(1, 5), range(1, 5), range(1, 5),
                                        range(1, 5), range(1, 5), range(1, 4)):
            result = compute_braden_scale(_braden(*scores))
            assert 6 <= result.total_score <= 23
            expected = next((band for upper, band in BRADEN_BANDS if result.total_score <= upper),
                            BradenRisk.NONE)
            assert result.risk_level == expected

            n = len(result.recommendations)
            if result.risk_level == BradenRisk.VERY_HIGH:
                fewest_very_high = n if fewest_very_high is None else min(fewest_very_high, n)
            else:
                most_by_band[result.risk_level] = max(most_by_band.get(result.risk_level, 0), n)

        assert fewest_very_high > max(most_by_band.values())


class TestPUSH:
    """Tests for the PUSH Tool."""

    def test_closed_zero_dimension(self, make_wound):
        result = compute_push_score(make_wound(length_cm=0, width_cm=0, depth_cm=0,
                                               tissue_type="closed", exudate_amount="none"))
        assert result.total_score == 0
        assert result.components["length_width"] == 0
        assert result.healing_trajectory == HealingTrajectory.HEALED

    def test_epithelial_zero_dimension(self, make_wound):
        result = compute_push_score(make_wound(length_cm=0, width_cm=0,
                                               tissue_type="epithelial", exudate_amount="none"))
        assert result.components["length_width"] == 0
        assert result.total_score == 1
        assert result.healing_trajectory == HealingTrajectory.HEALING_WELL

    @pytest.mark.parametrize("area,expected", [
        (0.0, 0), (0.2, 1), (0.3, 2), (0.69, 2), (0.7, 3), (1.0, 4), (2.5, 5),
        (3.0, 6), (4.0, 7), (8.0, 8), (12.0, 9), (23.9, 9), (24.0, 10), (100.0, 10),
    ])
    def test_area_tiers(self, area, expected):
        assert push_area_score(area) == expected

    def test_default_wound(self, make_wound):
        """3 cm², light exudate, granulation."""
        result = compute_push_score(make_wound())
        assert result.components == {"length_width": 6, "exudate_amount": 1, "tissue_type": 2}
        assert result.total_score == 9
        assert result.healing_trajectory == HealingTrajectory.STABLE

    def test_worst_case(self, make_wound):
        result = compute_push_score(make_wound(length_cm=10, width_cm=10, tissue_type="necrotic",
                                               exudate_amount="heavy"))
        assert result.total_score == 17
        assert result.healing_trajectory == HealingTrajectory.DETERIORATING

    def test_large_clean_wound_stalls(self, make_wound):
        result = compute_push_score(make_wound(length_cm=10, width_cm=10, tissue_type="granulation",
                                               exudate_amount="moderate"))
        assert result.total_score == 14
        assert result.healing_trajectory == HealingTrajectory.STALLED

    @pytest.mark.parametrize("seed", range(5))
    def test_random_bounds(self, make_wound, seed):
        rng = np.random.default_rng(seed)
        for _ in range(100):
            wound = make_wound(
                length_cm=float(rng.uniform(0, 20)),
                width_cm=float(rng.uniform(0, 20)),
                tissue_type=str(rng.choice([t.value for t in TissueType])),
                exudate_amount=str(rng.choice(["none", "light", "moderate", "heavy"])),
            )
            assert 0 <= compute_push_score(wound).total_score <= 17


class TestHealingPhase:
    """Tests for the healing-phase rule list."""

    def test_rule_list_ends_with_catch_all(self):
        assert PHASE_RULES[-1].rule_id == "default"
        assert len({r.rule_id for r in PHASE_RULES}) == len(PHASE_RULES)

    def test_infected_necrotic(self, wound_classifier, make_wound):
        result = wound_classifier.classify_healing_phase(
            make_wound(has_infection_signs=True, tissue_type="necrotic"))
        assert result.healing_phase == HealingPhase.DETERIORATING
        assert result.confidence > 0.8

    def test_fresh_surgical(self, wound_classifier, make_wound):
        result = wound_classifier.classify_healing_phase(
            make_wound(days_since_onset=1, is_post_surgical=True))
        assert result.healing_phase == HealingPhase.HEMOSTASIS

    def test_early_non_surgical(self, wound_classifier, make_wound):
        result = wound_classifier.classify_healing_phase(make_wound(days_since_onset=2))
        assert result.healing_phase == HealingPhase.INFLAMMATORY
        assert result.rule_id == "early"

    def test_maturation(self, wound_classifier, make_wound):
        result = wound_classifier.classify_healing_phase(
            make_wound(length_cm=0, width_cm=0, depth_cm=0, tissue_type="epithelial", days_since_onset=30))
        assert result.healing_phase == HealingPhase.MATURATION

    def test_proliferative(self, wound_classifier, make_wound):
        result = wound_classifier.classify_healing_phase(make_wound())
        assert result.healing_phase == HealingPhase.PROLIFERATIVE
        assert result.confidence == pytest.approx(0.85)

    def test_wet_granulation(self, wound_classifier, make_wound):
        result = wound_classifier.classify_healing_phase(make_wound(exudate_amount="heavy"))
        assert result.healing_phase == HealingPhase.INFLAMMATORY
        assert result.rule_id == "granulating-wet"

    def test_chronic(self, wound_classifier, make_wound):
        result = wound_classifier.classify_healing_phase(make_wound(tissue_type="slough", days_since_onset=45))
        assert result.healing_phase == HealingPhase.CHRONIC_NON_HEALING

    def test_default(self, wound_classifier, make_wound):
        result = wound_classifier.classify_healing_phase(make_wound(tissue_type="slough", days_since_onset=10))
        assert result.healing_phase == HealingPhase.INFLAMMATORY
        assert result.rule_id == "default"

    def test_feature_importance(self, wound_classifier, make_wound):
        """The first rule's features carry full weight."""
        result = wound_classifier.classify_healing_phase(make_wound())
        importance = {f["feature"]: f["importance"] for f in result.feature_importance}
        assert importance["has_infection_signs"] == 1.0
        assert importance["is_post_surgical"] == pytest.approx(0.25)


class TestAssessWound:
    """Tests for the composite wound assessment."""

    def test_without_braden(self, wound_classifier, make_wound):
        result = wound_classifier.assess_wound(make_wound())
        assert result.braden_scale is None
        assert result.overall_risk == RiskLevel.MODERATE
        assert result.to_dict()["braden_scale"] is None

    def test_with_braden(self, wound_classifier, make_wound):
        result = wound_classifier.assess_wound(make_wound(), braden=_braden(1, 1, 1, 1, 1, 1))
        assert result.braden_scale.risk_level == BradenRisk.VERY_HIGH
        assert result.overall_risk == RiskLevel.HIGH
        assert "Reposition every 1-2 hours" in result.recommendations

    def test_gangrene_is_critical(self, wound_classifier, make_wound):
        result = wound_classifier.assess_wound(make_wound(has_gangrene=True, gangrene_extent="extensive"))
        assert result.overall_risk == RiskLevel.CRITICAL
        assert "URGENT: Surgical consultation required" in result.recommendations

    def test_recommendations_unique(self, wound_classifier, make_wound):
        wound = make_wound(has_infection_signs=True, tissue_type="necrotic", exudate_amount="heavy",
                           periwound_condition="macerated", days_since_onset=60)
        result = wound_classifier.assess_wound(wound, braden=_braden(2, 1, 2, 2, 1, 1))
        assert len(result.recommendations) == len(set(result.recommendations))

    def test_negative_dimension(self, wound_classifier, make_wound):
        with pytest.raises(ValidationError) as exc:
            wound_classifier.assess_wound(make_wound(length_cm=-1))
        assert exc.value.details["field"] == "length_cm"

    def test_pain_out_of_range(self, wound_classifier, make_wound):
        with pytest.raises(ValidationError):
            wound_classifier.assess_wound(make_wound(pain_level=11))


class TestCorrections:
    """Tests for the clinician-correction feedback loop."""

    def test_confidence_decays(self, wound_classifier, make_wound):
        wound_classifier.record_correction("w-1", "PROLIFERATIVE", "INFLAMMATORY", "nurse-1")
        result = wound_classifier.classify_healing_phase(make_wound())
        assert result.corrections_against == 1
        assert result.confidence == pytest.approx(0.85 * 0.97)

    def test_confidence_monotone_and_bounded(self, wound_classifier, make_wound):
        previous = wound_classifier.classify_healing_phase(make_wound()).confidence
        for _ in range(120):
            wound_classifier.record_correction("w-1", HealingPhase.PROLIFERATIVE, HealingPhase.INFLAMMATORY)
            current = wound_classifier.classify_healing_phase(make_wound()).confidence
            assert current <= previous
            assert current >= 0.10
            previous = current
        assert previous == pytest.approx(0.10)

    def test_confirmations_do_not_decay(self, wound_classifier, make_wound):
        wound_classifier.record_correction("w-1", "PROLIFERATIVE", "PROLIFERATIVE")
        assert wound_classifier.classify_healing_phase(make_wound()).confidence == pytest.approx(0.85)

    def test_other_phase_unaffected(self, wound_classifier, make_wound):
        wound_classifier.record_correction("w-1", "DETERIORATING", "INFLAMMATORY")
        assert wound_classifier.classify_healing_phase(make_wound()).confidence == pytest.approx(0.85)

    def test_stats(self, wound_classifier):
        wound_classifier.record_correction("w-1", "PROLIFERATIVE", "INFLAMMATORY")
        wound_classifier.record_correction("w-2", "PROLIFERATIVE", "PROLIFERATIVE")
        stats = wound_classifier.get_correction_stats()
        assert stats.total_corrections == 2
        assert stats.accuracy_by_phase["PROLIFERATIVE"]["accuracy"] == pytest.approx(0.5)
        assert stats.confidence_multipliers["PROLIFERATIVE"] == pytest.approx(0.97)

    def test_lowercase_phase(self, wound_classifier):
        record = wound_classifier.record_correction("w-1", "proliferative", "maturation")
        assert record.corrected_phase == HealingPhase.MATURATION

    def test_invalid_phase_not_recorded(self, wound_classifier):
        with pytest.raises(ValidationError):
            wound_classifier.record_correction("w-1", "PROLIFERATIVE", "HEALED")
        with pytest.raises(ValidationError):
            wound_classifier.record_correction("", "PROLIFERATIVE", "INFLAMMATORY")
        assert wound_classifier.get_corrections() == []

    def test_corrections_persist(self, store, make_wound):
        WoundHealingClassifier(store=store).record_correction("w-1", "PROLIFERATIVE", "INFLAMMATORY")
        fresh = WoundHealingClassifier(store=store)
        assert len(fresh.get_corrections()) == 1
        assert fresh.classify_healing_phase(make_wound()).corrections_against == 1

    def test_reset(self, wound_classifier, make_wound):
        wound_classifier.record_correction("w-1", "PROLIFERATIVE", "INFLAMMATORY")
        wound_classifier.reset_learning()
        assert wound_classifier.get_corrections() == []
        assert wound_classifier.classify_healing_phase(make_wound()).confidence == pytest.approx(0.85)
