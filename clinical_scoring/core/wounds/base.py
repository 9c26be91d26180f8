"""
Wound Assessment Data Structures
"""
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class TissueType(str, Enum):
    CLOSED = "closed"
    EPITHELIAL = "epithelial"
    GRANULATION = "granulation"
    SLOUGH = "slough"
    NECROTIC = "necrotic"
    ESCHAR = "eschar"
    MIXED = "mixed"


class ExudateType(str, Enum):
    NONE = "none"
    SEROUS = "serous"
    SEROSANGUINEOUS = "serosanguineous"
    SANGUINEOUS = "sanguineous"
    PURULENT = "purulent"


class ExudateAmount(str, Enum):
    NONE = "none"
    LIGHT = "light"
    MODERATE = "moderate"
    HEAVY = "heavy"


class WoundEdge(str, Enum):
    WELL_DEFINED = "well_defined"
    DIFFUSE = "diffuse"
    ROLLED = "rolled"
    UNDERMINED = "undermined"
    TUNNELING = "tunneling"


class PeriwoundCondition(str, Enum):
    HEALTHY = "healthy"
    ERYTHEMA = "erythema"
    MACERATED = "macerated"
    INDURATED = "indurated"
    EDEMATOUS = "edematous"
    CALLUSED = "callused"


class GangreneExtent(str, Enum):
    NONE = "none"
    LOCALIZED = "localized"
    EXTENSIVE = "extensive"


class HealingPhase(str, Enum):
    HEMOSTASIS = "HEMOSTASIS"
    INFLAMMATORY = "INFLAMMATORY"
    PROLIFERATIVE = "PROLIFERATIVE"
    MATURATION = "MATURATION"
    CHRONIC_NON_HEALING = "CHRONIC_NON_HEALING"
    DETERIORATING = "DETERIORATING"


class WagnerGrade(IntEnum):
    GRADE_0 = 0
    GRADE_1 = 1
    GRADE_2 = 2
    GRADE_3 = 3
    GRADE_4 = 4
    GRADE_5 = 5


class BradenRisk(str, Enum):
    VERY_HIGH = "very_high_risk"
    HIGH = "high_risk"
    MODERATE = "moderate_risk"
    MILD = "mild_risk"
    NONE = "no_risk"


class HealingTrajectory(str, Enum):
    HEALED = "healed"
    HEALING_WELL = "healing_well"
    IMPROVING = "improving"
    STABLE = "stable"
    STALLED = "stalled"
    DETERIORATING = "deteriorating"


class RiskLevel(str, Enum):
    LOW = "low"
    MILD = "mild"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"


# ── Inputs ──────────────────────────────────────────────────────────────

class WoundAssessment(BaseModel):
    """Bedside description of one wound at one point in time."""
    model_config = ConfigDict(frozen=True)

    wound_id: str = ""
    length_cm: float = 0.0
    width_cm: float = 0.0
    depth_cm: float = 0.0
    tissue_type: TissueType = TissueType.GRANULATION
    exudate_type: ExudateType = ExudateType.NONE
    exudate_amount: ExudateAmount = ExudateAmount.NONE
    wound_edge: WoundEdge = WoundEdge.WELL_DEFINED
    periwound_condition: PeriwoundCondition = PeriwoundCondition.HEALTHY
    has_odor: bool = False
    has_tunneling: bool = False
    tunneling_depth_cm: float = 0.0
    has_undermining: bool = False
    undermining_cm: float = 0.0
    pain_level: float = 0
    temperature_elevated: bool = False
    surrounding_erythema_cm: float = 0.0
    days_since_onset: float = 0
    is_post_surgical: bool = False
    has_infection_signs: bool = False
    has_bone_exposure: bool = False
    has_tendon_exposure: bool = False
    has_gangrene: bool = False
    gangrene_extent: GangreneExtent = GangreneExtent.NONE

    @property
    def area_cm2(self) -> float:
        return self.length_cm * self.width_cm


class BradenScaleInput(BaseModel):
    """Six Braden sub-scales; lower is worse."""
    model_config = ConfigDict(frozen=True)

    sensory_perception: int     # 1 completely limited .. 4 no impairment
    moisture: int               # 1 constantly moist .. 4 rarely moist
    activity: int               # 1 bedfast .. 4 walks frequently
    mobility: int               # 1 completely immobile .. 4 no limitation
    nutrition: int              # 1 very poor .. 4 excellent
    friction_shear: int         # 1 problem .. 3 no apparent problem


# ── Results ─────────────────────────────────────────────────────────────

@dataclass
class WagnerResult:
    grade: WagnerGrade
    description: str
    management_recommendation: str
    requires_surgical_consult: bool = False
    requires_vascular_assessment: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "grade": int(self.grade),
            "description": self.description,
            "management_recommendation": self.management_recommendation,
            "requires_surgical_consult": self.requires_surgical_consult,
            "requires_vascular_assessment": self.requires_vascular_assessment,
        }


@dataclass
class BradenResult:
    total_score: int
    risk_level: BradenRisk
    subscores: Dict[str, int]
    recommendations: List[str] = field(default_factory=list)
    max_score: int = 23

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_score": self.total_score,
            "max_score": self.max_score,
            "risk_level": self.risk_level.value,
            "subscores": dict(self.subscores),
            "recommendations": list(self.recommendations),
        }


@dataclass
class PUSHResult:
    total_score: int
    components: Dict[str, int]
    healing_trajectory: HealingTrajectory
    max_score: int = 17

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_score": self.total_score,
            "max_score": self.max_score,
            "components": dict(self.components),
            "healing_trajectory": self.healing_trajectory.value,
        }


@dataclass
class HealingPhaseResult:
    healing_phase: HealingPhase
    confidence: float
    base_confidence: float
    rule_id: str
    explanation: str
    corrections_against: int = 0
    feature_importance: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "healing_phase": self.healing_phase.value,
            "confidence": round(self.confidence, 3),
            "base_confidence": self.base_confidence,
            "rule_id": self.rule_id,
            "explanation": self.explanation,
            "corrections_against": self.corrections_against,
            "feature_importance": [dict(f) for f in self.feature_importance],
        }


@dataclass
class WoundAssessmentResult:
    wagner_classification: WagnerResult
    push_score: PUSHResult
    healing_phase: HealingPhaseResult
    overall_risk: RiskLevel
    braden_scale: Optional[BradenResult] = None
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "wagner_classification": self.wagner_classification.to_dict(),
            "braden_scale": self.braden_scale.to_dict() if self.braden_scale else None,
            "push_score": self.push_score.to_dict(),
            "healing_phase": self.healing_phase.to_dict(),
            "overall_risk": self.overall_risk.value,
            "recommendations": list(self.recommendations),
        }


@dataclass
class CorrectionRecord:
    """A clinician override of a predicted healing phase."""
    wound_id: str
    predicted_phase: HealingPhase
    corrected_phase: HealingPhase
    corrected_by: str
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "wound_id": self.wound_id,
            "predicted_phase": self.predicted_phase.value,
            "corrected_phase": self.corrected_phase.value,
            "corrected_by": self.corrected_by,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CorrectionRecord":
        return cls(
            wound_id=data["wound_id"],
            predicted_phase=HealingPhase(data["predicted_phase"]),
            corrected_phase=HealingPhase(data["corrected_phase"]),
            corrected_by=data.get("corrected_by", ""),
            timestamp=data.get("timestamp", ""),
        )


@dataclass
class CorrectionStats:
    total_corrections: int
    accuracy_by_phase: Dict[str, Dict[str, float]]
    confidence_multipliers: Dict[str, float]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_corrections": self.total_corrections,
            "accuracy_by_phase": {k: dict(v) for k, v in self.accuracy_by_phase.items()},
            "confidence_multipliers": {k: round(v, 4) for k, v in self.confidence_multipliers.items()},
        }
