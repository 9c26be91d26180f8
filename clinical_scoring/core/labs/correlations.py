"""
Cross-Analyte Clinical Correlation Rules

Each rule lists (test code, accepted flags) conditions; a rule fires only
when every condition is met by the supplied interpreted results.
"""
from dataclasses import dataclass
from typing import FrozenSet, List, Sequence, Tuple

from clinical_scoring.utils import get_logger
from .base import ClinicalCorrelation, FlagLevel, InterpretedResult, Urgency

logger = get_logger(__name__)

F = FlagLevel
_HIGH_ANY = frozenset({F.HIGH, F.CRITICAL_HIGH})
_LOW_ANY = frozenset({F.LOW, F.CRITICAL_LOW})


@dataclass(frozen=True)
class CorrelationRule:
    rule_id: str
    conditions: Tuple[Tuple[str, FrozenSet[FlagLevel]], ...]
    possible_conditions: Tuple[str, ...]
    suggested_tests: Tuple[str, ...]
    urgency: Urgency

    def matches(self, by_code) -> bool:
        return all(
            code in by_code and by_code[code].flag in flags
            for code, flags in self.conditions
        )


def _rule(rule_id, conditions, possible, tests, urgency) -> CorrelationRule:
    return CorrelationRule(
        rule_id=rule_id,
        conditions=tuple(
            (code, frozenset(flags) if isinstance(flags, (set, frozenset)) else frozenset({flags}))
            for code, flags in conditions
        ),
        possible_conditions=tuple(possible),
        suggested_tests=tuple(tests),
        urgency=urgency,
    )


CORRELATION_RULES: Tuple[CorrelationRule, ...] = (
    _rule("cc-01", [("WBC", _HIGH_ANY), ("NEUT", _HIGH_ANY)],
          ["Bacterial infection", "Acute inflammation", "Stress response"],
          ["Blood cultures", "Procalcitonin", "Urinalysis", "Chest X-ray"],
          Urgency.URGENT),
    _rule("cc-02", [("WBC", F.CRITICAL_LOW)],
          ["Neutropenic fever risk", "Bone marrow suppression", "Aplastic anemia"],
          ["Peripheral smear", "Reticulocyte count", "Blood cultures if febrile"],
          Urgency.STAT),
    _rule("cc-03", [("HGB", _LOW_ANY)],
          ["Acute blood loss", "Iron deficiency anemia", "Chronic disease anemia", "Hemolysis"],
          ["Reticulocyte count", "Iron studies", "Peripheral smear", "Type and screen"],
          Urgency.URGENT),
    _rule("cc-04", [("PLT", F.CRITICAL_LOW)],
          ["DIC", "ITP", "TTP/HUS", "Drug-induced thrombocytopenia", "Bone marrow failure"],
          ["Peripheral smear", "DIC panel (PT/PTT/fibrinogen/D-dimer)", "Haptoglobin", "LDH"],
          Urgency.STAT),
    _rule("cc-05", [("K", F.CRITICAL_HIGH)],
          ["Hyperkalemia - cardiac risk", "Renal failure", "Acidosis", "Hemolyzed specimen"],
          ["Repeat potassium (non-hemolyzed)", "ECG stat", "BMP", "ABG"],
          Urgency.STAT),
    _rule("cc-06", [("K", F.CRITICAL_LOW)],
          ["Hypokalemia - arrhythmia risk", "GI losses", "Renal losses", "Metabolic alkalosis"],
          ["Magnesium", "ECG", "Urine potassium"],
          Urgency.STAT),
    _rule("cc-07", [("TROP_I", _HIGH_ANY)],
          ["Acute MI (NSTEMI/STEMI)", "Myocarditis", "PE", "Type 2 MI (demand ischemia)"],
          ["Serial troponins Q6h", "ECG", "Echocardiogram", "Cardiology consult"],
          Urgency.STAT),
    _rule("cc-08", [("AST", _HIGH_ANY), ("ALT", _HIGH_ANY)],
          ["Hepatitis (viral, alcoholic, drug-induced)", "Hepatic ischemia", "Biliary obstruction"],
          ["Hepatitis panel", "RUQ ultrasound", "GGT", "Acetaminophen level"],
          Urgency.URGENT),
    _rule("cc-09", [("CR", _HIGH_ANY), ("BUN", _HIGH_ANY)],
          ["Acute kidney injury", "Chronic kidney disease", "Pre-renal azotemia", "Post-renal obstruction"],
          ["Urinalysis", "Renal ultrasound", "Urine sodium", "FENa calculation"],
          Urgency.URGENT),
    _rule("cc-10", [("NA", F.CRITICAL_LOW)],
          ["SIADH", "Hypothyroidism", "Adrenal insufficiency", "Cerebral salt wasting", "Heart failure"],
          ["Serum osmolality", "Urine osmolality", "Urine sodium", "TSH", "Cortisol"],
          Urgency.STAT),
    _rule("cc-11", [("LACT", _HIGH_ANY)],
          ["Sepsis/septic shock", "Tissue hypoperfusion", "Mesenteric ischemia", "Severe dehydration"],
          ["Blood cultures", "Lactate clearance Q2h", "ABG", "Procalcitonin"],
          Urgency.STAT),
    _rule("cc-12", [("INR", F.CRITICAL_HIGH)],
          ["Warfarin overdose", "Liver failure", "DIC", "Vitamin K deficiency"],
          ["Fibrinogen", "D-dimer", "LFTs", "Factor levels"],
          Urgency.STAT),
    _rule("cc-13", [("MCV", F.LOW), ("FERRITIN", F.LOW)],
          ["Iron deficiency anemia", "Occult GI blood loss"],
          ["Iron studies", "Stool occult blood", "Reticulocyte count"],
          Urgency.ROUTINE),
    _rule("cc-14", [("TSH", F.HIGH), ("FT4", F.LOW)],
          ["Primary hypothyroidism", "Hashimoto thyroiditis"],
          ["Anti-TPO antibodies", "Lipid panel"],
          Urgency.ROUTINE),
    _rule("cc-15", [("LIPASE", _HIGH_ANY), ("AMYLASE", _HIGH_ANY)],
          ["Acute pancreatitis", "Gallstone pancreatitis", "Hypertriglyceridemia-induced pancreatitis"],
          ["Triglycerides", "RUQ ultrasound", "CT abdomen if diagnosis uncertain"],
          Urgency.URGENT),
)

_URGENCY_ORDER = {Urgency.STAT: 0, Urgency.URGENT: 1, Urgency.ROUTINE: 2}


def find_clinical_correlations(results: Sequence[InterpretedResult]) -> List[ClinicalCorrelation]:
    """
    Match interpreted results against the correlation rule table.

    Returns correlations ordered stat, urgent, routine; rules of equal
    urgency keep table order.
    """
    by_code = {}
    for r in results:
        by_code[r.test_code] = r

    matched = []
    for rule in CORRELATION_RULES:
        if not rule.matches(by_code):
            continue
        findings = [
            f"{by_code[code].test_name}: {by_code[code].value} {by_code[code].unit} ({by_code[code].flag.value})"
            for code, _ in rule.conditions
        ]
        matched.append(ClinicalCorrelation(
            rule_id=rule.rule_id,
            findings=findings,
            possible_conditions=list(rule.possible_conditions),
            suggested_tests=list(rule.suggested_tests),
            urgency=rule.urgency,
        ))

    matched.sort(key=lambda c: _URGENCY_ORDER[c.urgency])
    logger.debug(f"Correlation rules matched: {[c.rule_id for c in matched]}")
    return matched
