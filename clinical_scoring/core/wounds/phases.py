"""
Healing Phase Rules

An ordered list of (predicate, phase, base confidence) rules; the first
matching rule classifies the wound. Phase timing follows the classical
wound-healing cascade (hemostasis hours-days, inflammation to ~day 4-6,
proliferation to ~day 21, remodeling thereafter; Guo & DiPietro,
J Dent Res 2010).
"""
from dataclasses import dataclass
from typing import Callable, Dict, List, Tuple

from .base import ExudateAmount, HealingPhase, TissueType, WoundAssessment

# ── Thresholds ──────────────────────────────────────────────────────────
NEAR_CLOSED_AREA_CM2 = 0.01
MATURATION_MIN_DAYS = 21
EARLY_WOUND_MAX_DAYS = 3
CHRONIC_MIN_DAYS = 30

_NON_VIABLE = (TissueType.NECROTIC, TissueType.ESCHAR)
_RESURFACED = (TissueType.CLOSED, TissueType.EPITHELIAL)
_VIABLE = (TissueType.CLOSED, TissueType.EPITHELIAL, TissueType.GRANULATION)
_LOW_EXUDATE = (ExudateAmount.NONE, ExudateAmount.LIGHT)


@dataclass(frozen=True)
class PhaseRule:
    rule_id: str
    phase: HealingPhase
    base_confidence: float
    features: Tuple[str, ...]
    matches: Callable[[WoundAssessment], bool]
    explanation: str


PHASE_RULES: Tuple[PhaseRule, ...] = (
    PhaseRule(
        "infected-necrotic", HealingPhase.DETERIORATING, 0.90,
        ("has_infection_signs", "tissue_type"),
        lambda w: w.has_infection_signs and w.tissue_type in _NON_VIABLE,
        "Infection with necrotic tissue indicates a deteriorating wound requiring urgent intervention",
    ),
    PhaseRule(
        "near-closed", HealingPhase.MATURATION, 0.85,
        ("area", "tissue_type", "days_since_onset"),
        lambda w: (w.area_cm2 < NEAR_CLOSED_AREA_CM2 and w.tissue_type in _RESURFACED
                   and w.days_since_onset >= MATURATION_MIN_DAYS),
        "Wound area is minimal with resurfaced tissue, indicating maturation/remodeling",
    ),
    PhaseRule(
        "infected-viable", HealingPhase.INFLAMMATORY, 0.75,
        ("has_infection_signs",),
        lambda w: w.has_infection_signs,
        "Infection signs with viable tissue suggest a prolonged inflammatory phase",
    ),
    PhaseRule(
        "fresh-surgical", HealingPhase.HEMOSTASIS, 0.88,
        ("days_since_onset", "is_post_surgical"),
        lambda w: w.days_since_onset <= EARLY_WOUND_MAX_DAYS and w.is_post_surgical,
        "Recent post-surgical wound in hemostasis/early healing phase",
    ),
    PhaseRule(
        "early", HealingPhase.INFLAMMATORY, 0.80,
        ("days_since_onset",),
        lambda w: w.days_since_onset <= EARLY_WOUND_MAX_DAYS,
        "Recent wound in early inflammatory phase",
    ),
    PhaseRule(
        "granulating", HealingPhase.PROLIFERATIVE, 0.85,
        ("tissue_type", "exudate_amount"),
        lambda w: w.tissue_type in _VIABLE and w.exudate_amount in _LOW_EXUDATE,
        "Granulation tissue with minimal exudate indicates active proliferative healing",
    ),
    PhaseRule(
        "granulating-wet", HealingPhase.INFLAMMATORY, 0.70,
        ("tissue_type", "exudate_amount"),
        lambda w: w.tissue_type in _VIABLE,
        "Granulation tissue with moderate or heavy exudate suggests lingering inflammation",
    ),
    PhaseRule(
        "chronic", HealingPhase.CHRONIC_NON_HEALING, 0.82,
        ("days_since_onset", "tissue_type"),
        lambda w: w.days_since_onset > CHRONIC_MIN_DAYS,
        "Wound older than 30 days with non-viable tissue indicates a chronic non-healing state",
    ),
    PhaseRule(
        "default", HealingPhase.INFLAMMATORY, 0.65,
        (),
        lambda w: True,
        "Non-viable tissue present but wound age suggests a delayed inflammatory phase",
    ),
)


def match_phase_rule(wound: WoundAssessment) -> Tuple[PhaseRule, List[Dict[str, float]]]:
    """
    Return the first matching rule and the features inspected on the way.

    Earlier rules weigh more: a feature first inspected by the k-th rule
    gets importance 1/k.
    """
    importance: Dict[str, float] = {}
    for depth, rule in enumerate(PHASE_RULES, start=1):
        for feature in rule.features:
            importance.setdefault(feature, round(1.0 / depth, 3))
        if rule.matches(wound):
            ranked = [{"feature": f, "importance": v} for f, v in importance.items()]
            return rule, ranked
    raise AssertionError("phase rule list has no catch-all")
