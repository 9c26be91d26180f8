"""
Wound Healing Classifier

Usage:
    from clinical_scoring.core.wounds import WoundHealingClassifier

    classifier = WoundHealingClassifier()
    result = classifier.assess_wound(wound, braden=braden_input)
"""
from .base import (
    BradenResult,
    BradenRisk,
    BradenScaleInput,
    CorrectionRecord,
    CorrectionStats,
    ExudateAmount,
    ExudateType,
    GangreneExtent,
    HealingPhase,
    HealingPhaseResult,
    HealingTrajectory,
    PeriwoundCondition,
    PUSHResult,
    RiskLevel,
    TissueType,
    WagnerGrade,
    WagnerResult,
    WoundAssessment,
    WoundAssessmentResult,
    WoundEdge,
)
from .scales import classify_wagner, compute_braden_scale, compute_push_score
from .phases import PHASE_RULES
from .classifier import WoundHealingClassifier

__all__ = [
    "WoundHealingClassifier",
    "WoundAssessment",
    "BradenScaleInput",
    "WagnerResult",
    "BradenResult",
    "PUSHResult",
    "HealingPhaseResult",
    "WoundAssessmentResult",
    "CorrectionRecord",
    "CorrectionStats",
    "TissueType",
    "ExudateType",
    "ExudateAmount",
    "WoundEdge",
    "PeriwoundCondition",
    "GangreneExtent",
    "HealingPhase",
    "HealingTrajectory",
    "WagnerGrade",
    "BradenRisk",
    "RiskLevel",
    "PHASE_RULES",
    "classify_wagner",
    "compute_braden_scale",
    "compute_push_score",
]
