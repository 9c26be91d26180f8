"""
Wound Healing Classifier

Combines the Wagner, Braden and PUSH scales with rule-based healing-phase
classification, and lowers confidence in phases that clinicians keep
correcting.
"""
from datetime import datetime, timezone
from typing import Dict, List, Optional

from clinical_scoring.utils import get_logger, ValidationError
from clinical_scoring.core.store import StateStore, default_store
from .base import (
    BradenResult,
    BradenRisk,
    CorrectionRecord,
    CorrectionStats,
    ExudateAmount,
    HealingPhase,
    HealingPhaseResult,
    HealingTrajectory,
    PeriwoundCondition,
    PUSHResult,
    RiskLevel,
    TissueType,
    WagnerResult,
    WoundAssessment,
    WoundAssessmentResult,
)
from .phases import match_phase_rule
from .scales import classify_wagner, compute_braden_scale, compute_push_score, validate_wound

logger = get_logger(__name__)

# Confidence multiplier per correction recorded against a predicted phase
CORRECTION_DECAY = 0.97
MIN_CONFIDENCE = 0.10

_RISK_ORDER = [RiskLevel.LOW, RiskLevel.MILD, RiskLevel.MODERATE, RiskLevel.HIGH, RiskLevel.CRITICAL]

_WAGNER_RISK = {0: RiskLevel.LOW, 1: RiskLevel.MILD, 2: RiskLevel.MODERATE,
                3: RiskLevel.HIGH, 4: RiskLevel.CRITICAL, 5: RiskLevel.CRITICAL}
_BRADEN_RISK = {
    BradenRisk.VERY_HIGH: RiskLevel.HIGH,
    BradenRisk.HIGH: RiskLevel.MODERATE,
    BradenRisk.MODERATE: RiskLevel.MILD,
    BradenRisk.MILD: RiskLevel.LOW,
    BradenRisk.NONE: RiskLevel.LOW,
}
_PHASE_RISK = {
    HealingPhase.DETERIORATING: RiskLevel.HIGH,
    HealingPhase.CHRONIC_NON_HEALING: RiskLevel.MODERATE,
}


def _push_risk(push: PUSHResult) -> RiskLevel:
    if push.total_score >= 12:
        return RiskLevel.HIGH
    if push.total_score >= 8:
        return RiskLevel.MODERATE
    if push.total_score >= 4:
        return RiskLevel.MILD
    return RiskLevel.LOW


def _to_phase(value, field_name: str) -> HealingPhase:
    raw = getattr(value, "value", value)
    try:
        return HealingPhase(raw.upper() if isinstance(raw, str) else raw)
    except ValueError as e:
        raise ValidationError(f"Unknown healing phase '{value}'", field=field_name) from e


class WoundHealingClassifier:
    """Wound scoring engine with a persisted clinician-correction log."""

    STORE_KEY = "wounds.corrections"

    classify_wagner = staticmethod(classify_wagner)
    compute_braden_scale = staticmethod(compute_braden_scale)
    compute_push_score = staticmethod(compute_push_score)

    def __init__(self, store: Optional[StateStore] = None):
        self.store = store if store is not None else default_store()
        logger.info(f"WoundHealingClassifier initialized ({len(self.get_corrections())} corrections on record)")

    # ── Classification ──────────────────────────────────────────────────

    def _corrections_against(self) -> Dict[HealingPhase, int]:
        counts: Dict[HealingPhase, int] = {}
        for record in self.get_corrections():
            if record.predicted_phase != record.corrected_phase:
                counts[record.predicted_phase] = counts.get(record.predicted_phase, 0) + 1
        return counts

    @staticmethod
    def confidence_multiplier(n_corrections: int) -> float:
        return CORRECTION_DECAY ** n_corrections

    def classify_healing_phase(self, wound) -> HealingPhaseResult:
        wound = validate_wound(wound)
        rule, importance = match_phase_rule(wound)
        n_against = self._corrections_against().get(rule.phase, 0)
        confidence = max(MIN_CONFIDENCE, rule.base_confidence * self.confidence_multiplier(n_against))
        return HealingPhaseResult(
            healing_phase=rule.phase,
            confidence=confidence,
            base_confidence=rule.base_confidence,
            rule_id=rule.rule_id,
            explanation=rule.explanation,
            corrections_against=n_against,
            feature_importance=importance,
        )

    def assess_wound(self, wound, braden=None) -> WoundAssessmentResult:
        """Run every scale on one wound and roll the results up."""
        wound = validate_wound(wound)
        braden_result = compute_braden_scale(braden) if braden is not None else None
        wagner = classify_wagner(wound)
        push = compute_push_score(wound)
        phase = self.classify_healing_phase(wound)

        severities = [_WAGNER_RISK[int(wagner.grade)], _push_risk(push),
                      _PHASE_RISK.get(phase.healing_phase, RiskLevel.LOW)]
        if braden_result is not None:
            severities.append(_BRADEN_RISK[braden_result.risk_level])
        overall = max(severities, key=_RISK_ORDER.index)

        logger.debug(
            f"Wound risk {overall.value}",
            extra={"context": {
                "wound": wound.wound_id or "<unnamed>",
                "wagner": int(wagner.grade),
                "push": push.total_score,
                "phase": phase.healing_phase.value,
            }},
        )
        return WoundAssessmentResult(
            wagner_classification=wagner,
            push_score=push,
            healing_phase=phase,
            overall_risk=overall,
            braden_scale=braden_result,
            recommendations=self._recommendations(wound, wagner, braden_result, push, phase),
        )

    @staticmethod
    def _recommendations(wound: WoundAssessment, wagner: WagnerResult,
                         braden: Optional[BradenResult], push: PUSHResult,
                         phase: HealingPhaseResult) -> List[str]:
        recs = [wagner.management_recommendation]
        if wagner.requires_surgical_consult:
            recs.append("URGENT: Surgical consultation required")
        if wagner.requires_vascular_assessment:
            recs.append("Vascular assessment recommended (ABI or duplex ultrasound)")
        if wound.has_infection_signs:
            recs.append("Obtain wound culture. Initiate empiric antibiotic therapy. Monitor for systemic infection signs.")
        if wound.tissue_type in (TissueType.NECROTIC, TissueType.ESCHAR):
            recs.append("Debridement indicated (sharp, enzymatic, or autolytic based on clinical judgment)")
        if wound.exudate_amount == ExudateAmount.HEAVY:
            recs.append("Use absorptive dressing (alginate, hydrofiber). Protect periwound skin with barrier.")
        if push.healing_trajectory in (HealingTrajectory.STALLED, HealingTrajectory.DETERIORATING):
            recs.append("Consider advanced wound therapy: negative pressure, growth factors, or skin substitute")
        if phase.healing_phase == HealingPhase.CHRONIC_NON_HEALING:
            recs.append("Reassess wound etiology. Consider biopsy to rule out malignancy. Address underlying comorbidities.")
        if wound.periwound_condition == PeriwoundCondition.MACERATED:
            recs.append("Apply moisture barrier to periwound skin. Reduce dressing change frequency if appropriate.")
        if braden is not None:
            recs.extend(braden.recommendations)
        if len(recs) == 1:
            recs.append("Continue current wound care regimen. Monitor for signs of healing progression.")
        # Preserve first occurrence order
        return list(dict.fromkeys(recs))

    # ── Clinician corrections ───────────────────────────────────────────

    def record_correction(self, wound_id: str, predicted_phase, corrected_phase,
                          corrected_by: str = "") -> CorrectionRecord:
        if not wound_id:
            raise ValidationError("wound_id is required", field="wound_id")
        record = CorrectionRecord(
            wound_id=wound_id,
            predicted_phase=_to_phase(predicted_phase, "predicted_phase"),
            corrected_phase=_to_phase(corrected_phase, "corrected_phase"),
            corrected_by=corrected_by,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
        self.store.append(self.STORE_KEY, record.to_dict())
        logger.info(
            f"Correction recorded for wound {wound_id}: "
            f"{record.predicted_phase.value} -> {record.corrected_phase.value}"
        )
        return record

    def get_corrections(self) -> List[CorrectionRecord]:
        return [CorrectionRecord.from_dict(d) for d in self.store.get(self.STORE_KEY, [])]

    def get_correction_stats(self) -> CorrectionStats:
        """Per predicted phase: how often clinicians confirmed it."""
        tallies: Dict[str, Dict[str, float]] = {}
        for record in self.get_corrections():
            entry = tallies.setdefault(record.predicted_phase.value, {"correct": 0, "total": 0})
            entry["total"] += 1
            if record.predicted_phase == record.corrected_phase:
                entry["correct"] += 1
        for entry in tallies.values():
            entry["accuracy"] = entry["correct"] / entry["total"]

        against = self._corrections_against()
        return CorrectionStats(
            total_corrections=sum(int(e["total"]) for e in tallies.values()),
            accuracy_by_phase=tallies,
            confidence_multipliers={
                phase.value: max(MIN_CONFIDENCE, self.confidence_multiplier(n))
                for phase, n in against.items()
            },
        )

    def reset_learning(self) -> None:
        self.store.clear(self.STORE_KEY)
        logger.info("Wound correction log cleared")
