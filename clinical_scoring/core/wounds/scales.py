"""
Published Wound Scales

- Wagner ulcer classification (Wagner, Foot & Ankle 1981)
- Braden Scale for pressure-injury risk (Bergstrom & Braden, Nurs Res 1987)
- PUSH Tool 3.0 (National Pressure Ulcer Advisory Panel, 1998)
"""
from dataclasses import dataclass
from typing import Callable, Tuple
import math

from clinical_scoring.utils import get_logger, ValidationError
from clinical_scoring.core.records import parse_record
from clinical_scoring.core.stats import strict_band_lookup
from .base import (
    BradenResult,
    BradenRisk,
    BradenScaleInput,
    ExudateAmount,
    GangreneExtent,
    HealingTrajectory,
    PUSHResult,
    TissueType,
    WagnerGrade,
    WagnerResult,
    WoundAssessment,
)

logger = get_logger(__name__)


def validate_wound(wound) -> WoundAssessment:
    """Parse a wound record and reject physically impossible values."""
    wound = parse_record(WoundAssessment, wound)
    for name in ("length_cm", "width_cm", "depth_cm", "tunneling_depth_cm",
                 "undermining_cm", "surrounding_erythema_cm", "days_since_onset"):
        value = getattr(wound, name)
        if not math.isfinite(value) or value < 0:
            raise ValidationError(f"{name} must be a non-negative number, got {value}", field=name)
    if not 0 <= wound.pain_level <= 10:
        raise ValidationError(f"pain_level must be 0-10, got {wound.pain_level}", field="pain_level")
    return wound


# ── Wagner ──────────────────────────────────────────────────────────────

WAGNER_DESCRIPTIONS = {
    WagnerGrade.GRADE_0: "No open lesion; may have deformity or cellulitis",
    WagnerGrade.GRADE_1: "Superficial ulcer (partial or full thickness)",
    WagnerGrade.GRADE_2: "Ulcer extension to ligament, tendon, joint capsule, or deep fascia; no abscess or osteomyelitis",
    WagnerGrade.GRADE_3: "Deep ulcer with abscess, osteomyelitis, or joint sepsis",
    WagnerGrade.GRADE_4: "Gangrene localized to forefoot or heel",
    WagnerGrade.GRADE_5: "Extensive gangrene involving whole foot",
}


@dataclass(frozen=True)
class WagnerRule:
    grade: WagnerGrade
    matches: Callable[[WoundAssessment], bool]
    management: str
    surgical: bool = False
    vascular: bool = False


# First match wins
WAGNER_RULES: Tuple[WagnerRule, ...] = (
    WagnerRule(
        WagnerGrade.GRADE_5,
        lambda w: w.gangrene_extent == GangreneExtent.EXTENSIVE,
        "Emergent surgical consultation. Major amputation likely required. Vascular surgery assessment critical.",
        surgical=True, vascular=True,
    ),
    WagnerRule(
        WagnerGrade.GRADE_4,
        lambda w: w.gangrene_extent == GangreneExtent.LOCALIZED or w.has_gangrene,
        "Urgent surgical referral. Partial amputation or revascularization may be needed. Aggressive infection control.",
        surgical=True, vascular=True,
    ),
    WagnerRule(
        WagnerGrade.GRADE_3,
        lambda w: w.has_bone_exposure,
        "Deep infection management required. IV antibiotics, surgical debridement. Rule out osteomyelitis (MRI/bone biopsy).",
        surgical=True, vascular=True,
    ),
    WagnerRule(
        WagnerGrade.GRADE_2,
        lambda w: w.has_tendon_exposure,
        "Wound care with debridement as needed. Offloading device. Monitor for deep infection. Consider advanced wound therapy.",
        vascular=True,
    ),
    WagnerRule(
        WagnerGrade.GRADE_1,
        lambda w: w.depth_cm > 0,
        "Local wound care. Offloading. Daily dressing changes. Monitor for progression. Optimize glucose control.",
    ),
    WagnerRule(
        WagnerGrade.GRADE_0,
        lambda w: True,
        "Preventive care. Proper footwear. Skin inspections. Moisturizer. Podiatric follow-up. Address deformities.",
    ),
)


def classify_wagner(wound) -> WagnerResult:
    """Wagner grade 0-5. Infection signs require a surgical consult at any grade."""
    wound = validate_wound(wound)
    rule = next(r for r in WAGNER_RULES if r.matches(wound))
    return WagnerResult(
        grade=rule.grade,
        description=WAGNER_DESCRIPTIONS[rule.grade],
        management_recommendation=rule.management,
        requires_surgical_consult=rule.surgical or wound.has_infection_signs,
        requires_vascular_assessment=rule.vascular,
    )


# ── Braden ──────────────────────────────────────────────────────────────

BRADEN_MAX = 23
BRADEN_SUBSCALE_MAX = {
    "sensory_perception": 4,
    "moisture": 4,
    "activity": 4,
    "mobility": 4,
    "nutrition": 4,
    "friction_shear": 3,
}

# (upper bound inclusive, risk band)
BRADEN_BANDS = (
    (9, BradenRisk.VERY_HIGH),
    (12, BradenRisk.HIGH),
    (14, BradenRisk.MODERATE),
    (18, BradenRisk.MILD),
)

BRADEN_BAND_RECOMMENDATIONS = {
    BradenRisk.VERY_HIGH: [
        "Implement maximum pressure redistribution protocol",
        "Reposition every 1-2 hours",
        "Use specialty pressure-redistribution mattress (low-air-loss or alternating pressure)",
        "Nutritional consultation for wound healing support",
        "Moisture management with barrier cream",
        "Refer to wound, ostomy and continence (WOC) nurse",
        "Daily full-body skin inspection with documentation",
    ],
    BradenRisk.HIGH: [
        "Use pressure-redistribution mattress",
        "Reposition every 2 hours",
        "Protect bony prominences with foam dressings",
        "Assess and optimize nutritional intake",
    ],
    BradenRisk.MODERATE: [
        "Reposition every 2-4 hours",
        "Use pressure-redistribution cushion for sitting",
        "Keep skin clean and dry",
        "Ensure adequate protein intake",
    ],
    BradenRisk.MILD: [
        "Standard pressure injury prevention protocol",
        "Reposition at least every 4 hours",
        "Maintain skin moisture balance",
    ],
    BradenRisk.NONE: [
        "Reassess Braden score on change in condition",
    ],
}

# (sub-scale, highest score that triggers, recommendation)
BRADEN_SUBSCALE_RECOMMENDATIONS = (
    ("sensory_perception", 2, "Sensory deficit: inspect skin over bony prominences every shift"),
    ("moisture", 2, "Apply moisture barrier cream. Consider incontinence management."),
    ("activity", 2, "Limited activity: progressive mobilisation plan with physical therapy"),
    ("mobility", 2, "Limited mobility: float heels and use 30-degree lateral tilt when repositioning"),
    ("nutrition", 2, "Nutrition consult: high protein supplementation, vitamin C, zinc"),
    ("friction_shear", 1, "Use lift sheets for repositioning. Apply heel protection."),
)


def compute_braden_scale(braden) -> BradenResult:
    """Braden total (6-23) with risk band and targeted prevention measures."""
    braden = parse_record(BradenScaleInput, braden)
    subscores = {}
    for name, upper in BRADEN_SUBSCALE_MAX.items():
        value = getattr(braden, name)
        if not 1 <= value <= upper:
            raise ValidationError(f"Braden {name} must be 1-{upper}, got {value}", field=name)
        subscores[name] = value

    total = sum(subscores.values())
    risk = BradenRisk.NONE
    for upper, band in BRADEN_BANDS:
        if total <= upper:
            risk = band
            break

    recommendations = list(BRADEN_BAND_RECOMMENDATIONS[risk])
    for name, trigger, text in BRADEN_SUBSCALE_RECOMMENDATIONS:
        if subscores[name] <= trigger:
            recommendations.append(text)

    return BradenResult(
        total_score=total,
        risk_level=risk,
        subscores=subscores,
        recommendations=recommendations,
        max_score=BRADEN_MAX,
    )


# ── PUSH ────────────────────────────────────────────────────────────────

PUSH_MAX = 17

# Length × width in cm², exclusive upper bounds -> sub-score
PUSH_AREA_TIERS = (
    (0.3, 1), (0.7, 2), (1.0, 3), (2.0, 4), (3.0, 5),
    (4.0, 6), (8.0, 7), (12.0, 8), (24.0, 9),
)
PUSH_AREA_MAX = 10

PUSH_EXUDATE_SCORES = {
    ExudateAmount.NONE: 0,
    ExudateAmount.LIGHT: 1,
    ExudateAmount.MODERATE: 2,
    ExudateAmount.HEAVY: 3,
}

PUSH_TISSUE_SCORES = {
    TissueType.CLOSED: 0,
    TissueType.EPITHELIAL: 1,
    TissueType.GRANULATION: 2,
    TissueType.SLOUGH: 3,
    TissueType.MIXED: 3,
    TissueType.NECROTIC: 4,
    TissueType.ESCHAR: 4,
}

_HEALTHY_BED = (TissueType.CLOSED, TissueType.EPITHELIAL, TissueType.GRANULATION)
_NON_VIABLE = (TissueType.NECROTIC, TissueType.ESCHAR)

HEALING_WELL_MAX = 5
DETERIORATING_MIN = 13
IMPROVING_MAX = 8
STABLE_MAX = 12


def push_area_score(area_cm2: float) -> int:
    if area_cm2 <= 0:
        return 0
    return strict_band_lookup(area_cm2, PUSH_AREA_TIERS, PUSH_AREA_MAX)


def healing_trajectory(total: int, tissue: TissueType) -> HealingTrajectory:
    if total == 0:
        return HealingTrajectory.HEALED
    if total <= HEALING_WELL_MAX and tissue in _HEALTHY_BED:
        return HealingTrajectory.HEALING_WELL
    if total >= DETERIORATING_MIN and tissue in _NON_VIABLE:
        return HealingTrajectory.DETERIORATING
    if total <= IMPROVING_MAX:
        return HealingTrajectory.IMPROVING
    if total <= STABLE_MAX:
        return HealingTrajectory.STABLE
    return HealingTrajectory.STALLED


def compute_push_score(wound) -> PUSHResult:
    """PUSH 3.0 total (0-17): area tier + exudate amount + tissue type."""
    wound = validate_wound(wound)
    components = {
        "length_width": push_area_score(wound.area_cm2),
        "exudate_amount": PUSH_EXUDATE_SCORES[wound.exudate_amount],
        "tissue_type": PUSH_TISSUE_SCORES[wound.tissue_type],
    }
    total = sum(components.values())
    return PUSHResult(
        total_score=total,
        components=components,
        healing_trajectory=healing_trajectory(total, wound.tissue_type),
        max_score=PUSH_MAX,
    )
