"""
Lab Result Interpreter

Flags single lab values against demographic-adjusted reference ranges,
detects clinically significant deltas and trends, computes derived values
(anion gap, albumin-corrected calcium, CKD-EPI eGFR), interprets hepatic
and renal panels, and learns per-patient baselines.

The module-level functions are pure. LabResultInterpreter wraps them and
owns the per-patient baseline state kept in a StateStore.
"""
from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence, Tuple
import math

from clinical_scoring.utils import (
    get_logger,
    IncompatibleTestError,
    InsufficientDataError,
    UnknownTestError,
    ValidationError,
)
from clinical_scoring.core.records import parse_record
from clinical_scoring.core.stats import RunningStats, fit_line
from clinical_scoring.core.store import StateStore, default_store
from .base import (
    CalculatedValue,
    DeltaAlertType,
    DeltaResult,
    FlagLevel,
    HepaticPattern,
    InterpretedResult,
    LabValue,
    PanelInterpretation,
    PatientBaseline,
    PersonalizedRange,
    ReferenceRange,
    TrendDirection,
    TrendResult,
)
from .correlations import find_clinical_correlations
from .reference_ranges import (
    DEFAULT_DELTA_RULE,
    GERIATRIC_AGE,
    PEDIATRIC_AGE,
    get_reference_range,
    get_significance,
)

logger = get_logger(__name__)


# ── Thresholds ──────────────────────────────────────────────────────────
TREND_SLOPE_EPSILON = 0.01          # |slope| per sample below which a series is stable
TREND_MIN_R_SQUARED = 0.3           # weaker fits are reported as fluctuating

ANION_GAP_LOW = 8                   # mEq/L
ANION_GAP_HIGH = 12                 # mEq/L
CALCIUM_ALBUMIN_FACTOR = 0.8        # Payne 1973
NORMAL_ALBUMIN = 4.0                # g/dL

# CKD-EPI 2021 (Inker et al., NEJM 2021), race-free
EGFR_COEFFICIENT = 142
EGFR_FEMALE_KAPPA, EGFR_FEMALE_ALPHA = 0.7, -0.241
EGFR_MALE_KAPPA, EGFR_MALE_ALPHA = 0.9, -0.302
EGFR_EXPONENT_ABOVE_KAPPA = -1.200
EGFR_AGE_BASE = 0.9938
EGFR_FEMALE_FACTOR = 1.012

# KDIGO 2012 GFR categories (lower bound, stage text)
EGFR_STAGES: Tuple[Tuple[float, str], ...] = (
    (90, "Normal kidney function (G1)"),
    (60, "Mildly decreased (G2) - CKD Stage 2 if proteinuria present"),
    (45, "Mildly to moderately decreased (G3a) - CKD Stage 3a"),
    (30, "Moderately to severely decreased (G3b) - CKD Stage 3b"),
    (15, "Severely decreased (G4) - CKD Stage 4, prepare for renal replacement therapy"),
    (0, "Kidney failure (G5) - CKD Stage 5, dialysis may be indicated"),
)

# Hepatic injury R ratio (ALT/ULN ÷ ALP/ULN), Hy's law guidance
R_RATIO_HEPATOCELLULAR = 5.0
R_RATIO_CHOLESTATIC = 2.0
DE_RITIS_ALCOHOLIC = 1.5            # AST/ALT
ACUTE_TRANSAMINASE = 1000           # U/L

# BUN/creatinine ratio
BUN_CR_PRERENAL = 20
BUN_CR_LOW = 10

MIN_BASELINE_SAMPLES = 3
PERSONAL_BAND_SD = 2.0
BASELINE_FULL_CONFIDENCE_SAMPLES = 10

_MALE = {"M", "MALE"}
_FEMALE = {"F", "FEMALE"}


# ── Helpers ─────────────────────────────────────────────────────────────

def normalize_sex(sex: Optional[str]) -> Optional[str]:
    """Map 'M'/'male'/'F'/'female' (any case) to 'M' or 'F'."""
    if sex is None:
        return None
    key = str(sex).strip().upper()
    if key in _MALE:
        return "M"
    if key in _FEMALE:
        return "F"
    raise ValidationError(f"Unrecognised sex '{sex}' (expected M or F)", field="sex")


def _validate_age(age: Optional[float]) -> None:
    if age is not None and (not math.isfinite(age) or age < 0 or age > 130):
        raise ValidationError(f"Age {age} outside 0-130", field="age")


def _require_reference(test_code: str) -> ReferenceRange:
    ref = get_reference_range(test_code)
    if ref is None:
        raise UnknownTestError(test_code)
    return ref


def resolve_range(ref: ReferenceRange, age: Optional[float] = None,
                  sex: Optional[str] = None) -> Tuple[float, float]:
    """
    Pick the active normal range for a patient.

    Pediatric (age < 18) first, then the sex-specific range, then the
    geriatric range, falling back to the population range.
    """
    sex = normalize_sex(sex)
    if age is not None and ref.pediatric is not None and age < (ref.pediatric.age_max or PEDIATRIC_AGE):
        return ref.pediatric.normal_low, ref.pediatric.normal_high
    if sex == "M" and ref.male is not None:
        return ref.male.normal_low, ref.male.normal_high
    if sex == "F" and ref.female is not None:
        return ref.female.normal_low, ref.female.normal_high
    if age is not None and ref.geriatric is not None and age >= (ref.geriatric.age_min or GERIATRIC_AGE):
        return ref.geriatric.normal_low, ref.geriatric.normal_high
    return ref.normal_low, ref.normal_high


def flag_value(value: float, ref: ReferenceRange, age: Optional[float] = None,
               sex: Optional[str] = None) -> FlagLevel:
    """Flag a value; critical thresholds are checked before the normal range."""
    low, high = resolve_range(ref, age, sex)
    if ref.critical_low is not None and value < ref.critical_low:
        return FlagLevel.CRITICAL_LOW
    if ref.critical_high is not None and value > ref.critical_high:
        return FlagLevel.CRITICAL_HIGH
    if value < low:
        return FlagLevel.LOW
    if value > high:
        return FlagLevel.HIGH
    return FlagLevel.NORMAL


def _fmt(x: float) -> str:
    return f"{x:g}"


# ── Single results ──────────────────────────────────────────────────────

def interpret_result(lab, age: Optional[float] = None,
                     sex: Optional[str] = None) -> InterpretedResult:
    """
    Interpret one lab value.

    Raises:
        UnknownTestError: the test code is not in the reference table
        ValidationError: malformed record, non-finite value or bad demographics
    """
    lab = parse_record(LabValue, lab)
    if not math.isfinite(lab.value):
        raise ValidationError(f"Non-finite value for {lab.test_code}", field="value")
    _validate_age(age)
    ref = _require_reference(lab.test_code)

    flag = flag_value(lab.value, ref, age, sex)
    low, high = resolve_range(ref, age, sex)
    range_text = f"{_fmt(low)}-{_fmt(high)} {ref.unit}"

    if flag == FlagLevel.NORMAL:
        interpretation = "Within normal limits"
        significance = "No clinical action required"
    elif flag == FlagLevel.LOW:
        interpretation = f"Below normal range ({range_text})"
        significance = get_significance(ref.test_code, "low")
    elif flag == FlagLevel.HIGH:
        interpretation = f"Above normal range ({range_text})"
        significance = get_significance(ref.test_code, "high")
    elif flag == FlagLevel.CRITICAL_LOW:
        interpretation = f"CRITICAL LOW - below {_fmt(ref.critical_low)} {ref.unit}"
        significance = f"CRITICAL: {get_significance(ref.test_code, 'critical_low')}"
    else:
        interpretation = f"CRITICAL HIGH - above {_fmt(ref.critical_high)} {ref.unit}"
        significance = f"CRITICAL: {get_significance(ref.test_code, 'critical_high')}"

    if flag.is_critical:
        logger.info(f"Critical {ref.test_code} value {lab.value} ({flag.value})")

    return InterpretedResult(
        test_code=ref.test_code,
        test_name=ref.test_name,
        value=lab.value,
        unit=ref.unit,
        flag=flag,
        reference_range=range_text,
        interpretation=interpretation,
        clinical_significance=significance,
        is_critical=flag.is_critical,
        patient_id=lab.patient_id,
    )


def interpret_results(labs: Sequence, age: Optional[float] = None,
                      sex: Optional[str] = None) -> List[InterpretedResult]:
    """Interpret a batch of results, e.g. before panel or correlation analysis."""
    return [interpret_result(lab, age, sex) for lab in labs]


def delta_check(current, previous) -> DeltaResult:
    """
    Compare two results of the same test.

    A change at or above the test's delta limit inside its time window is
    RAPID when it happened within half the window, STEADY otherwise.
    """
    current = parse_record(LabValue, current)
    previous = parse_record(LabValue, previous)
    if current.test_code.upper() != previous.test_code.upper():
        raise IncompatibleTestError(
            f"Cannot delta-check {current.test_code} against {previous.test_code}",
            test_codes=[current.test_code, previous.test_code],
        )

    ref = get_reference_range(current.test_code)
    rule = ref.delta if ref is not None and ref.delta is not None else DEFAULT_DELTA_RULE

    elapsed = abs((current.collected_at - previous.collected_at).total_seconds()) / 3600.0
    if previous.value != 0:
        percent = (current.value - previous.value) / abs(previous.value) * 100
    else:
        percent = 100.0 if current.value > 0 else 0.0

    alert = DeltaAlertType.NONE
    message = "No significant change"
    if abs(percent) >= rule.percent_change and elapsed <= rule.window_hours:
        rapid = elapsed <= rule.window_hours / 2
        if percent > 0:
            if rapid:
                alert = DeltaAlertType.RAPID_INCREASE
                message = f"Rapid increase of {percent:.1f}% in {elapsed:.1f} hours"
            else:
                alert = DeltaAlertType.STEADY_INCREASE
                message = f"Significant increase of {percent:.1f}% over {elapsed:.1f} hours"
        else:
            if rapid:
                alert = DeltaAlertType.RAPID_DECREASE
                message = f"Rapid decrease of {abs(percent):.1f}% in {elapsed:.1f} hours"
            else:
                alert = DeltaAlertType.STEADY_DECREASE
                message = f"Significant decrease of {abs(percent):.1f}% over {elapsed:.1f} hours"
            if current.test_code.upper() == "HGB":
                message += " - possible acute bleeding, assess hemodynamic status"

    return DeltaResult(
        test_code=current.test_code.upper(),
        current_value=current.value,
        previous_value=previous.value,
        percent_change=round(percent, 1),
        time_elapsed_hours=round(elapsed, 1),
        alert_type=alert,
        message=message,
    )


def analyze_trend(values: Sequence) -> TrendResult:
    """
    Fit a least-squares line through a time-ordered series of one test.

    The x axis is the sample index, so the slope is change per sample and
    ``predicted_next`` extrapolates one sample ahead.
    """
    labs = [parse_record(LabValue, v) for v in values]
    if not labs:
        raise InsufficientDataError("Trend analysis needs at least one value", required=1, received=0)
    codes = {lab.test_code.upper() for lab in labs}
    if len(codes) > 1:
        raise IncompatibleTestError("Trend series mixes test codes", test_codes=list(codes))

    code = labs[0].test_code.upper()
    ref = get_reference_range(code)
    name = ref.test_name if ref is not None else code
    ys = [lab.value for lab in labs]

    if len(ys) < 2:
        return TrendResult(
            test_code=code,
            test_name=name,
            direction=TrendDirection.STABLE,
            slope=0.0,
            r_squared=0.0,
            predicted_next=ys[0],
            confidence=0.0,
            message="Insufficient data for trend analysis: insufficient data points (need at least 2 values)",
            values=ys,
        )

    fit = fit_line(ys)
    if abs(fit.slope) < TREND_SLOPE_EPSILON:
        direction = TrendDirection.STABLE
        message = f"{name}: Stable trend"
    elif fit.r_squared < TREND_MIN_R_SQUARED:
        direction = TrendDirection.FLUCTUATING
        message = f"{name}: Fluctuating - no clear trend"
    else:
        direction = TrendDirection.INCREASING if fit.slope > 0 else TrendDirection.DECREASING
        message = (
            f"{name}: {direction.value.lower()} trend "
            f"(slope: {fit.slope:.3f}/sample, R²={fit.r_squared:.2f})"
        )

    return TrendResult(
        test_code=code,
        test_name=name,
        direction=direction,
        slope=fit.slope,
        r_squared=fit.r_squared,
        predicted_next=fit.predict(len(ys)),
        confidence=fit.r_squared,
        message=message,
        values=ys,
    )


# ── Calculated values ───────────────────────────────────────────────────

def _require_positive(**kwargs) -> None:
    for name, value in kwargs.items():
        if value is None or not math.isfinite(value) or value <= 0:
            raise ValidationError(f"{name} must be a positive number, got {value}", field=name)


def calculate_anion_gap(sodium: float, chloride: float, bicarbonate: float) -> CalculatedValue:
    """Serum anion gap, Na - (Cl + HCO3)."""
    _require_positive(sodium=sodium, chloride=chloride, bicarbonate=bicarbonate)
    gap = round(sodium - (chloride + bicarbonate), 1)

    if gap > ANION_GAP_HIGH:
        flag = FlagLevel.HIGH
        interpretation = (
            "Elevated anion gap - consider MUDPILES: Methanol, Uremia, DKA, Propylene glycol, "
            "INH/Iron, Lactic acidosis, Ethylene glycol, Salicylates"
        )
    elif gap < ANION_GAP_LOW:
        flag = FlagLevel.LOW
        interpretation = "Low anion gap - consider hypoalbuminemia, multiple myeloma, or lab error"
    else:
        flag = FlagLevel.NORMAL
        interpretation = "Normal anion gap"

    return CalculatedValue(
        name="Anion Gap",
        value=gap,
        unit="mEq/L",
        formula="Na - (Cl + HCO3)",
        interpretation=interpretation,
        normal_range=f"{ANION_GAP_LOW}-{ANION_GAP_HIGH} mEq/L",
        flag=flag,
    )


def calculate_corrected_calcium(total_calcium: float, albumin: float) -> CalculatedValue:
    """Albumin-corrected calcium, flagged against the calcium reference range."""
    _require_positive(total_calcium=total_calcium, albumin=albumin)
    corrected = round(total_calcium + CALCIUM_ALBUMIN_FACTOR * (NORMAL_ALBUMIN - albumin), 1)
    ref = _require_reference("CA")
    flag = flag_value(corrected, ref)

    interpretation = {
        FlagLevel.NORMAL: "Corrected calcium within normal limits",
        FlagLevel.LOW: "Corrected hypocalcemia - consider hypoparathyroidism, vitamin D deficiency, renal failure",
        FlagLevel.HIGH: "Corrected hypercalcemia - consider hyperparathyroidism, malignancy, granulomatous disease",
        FlagLevel.CRITICAL_LOW: "Critically low corrected calcium - tetany and arrhythmia risk, IV calcium indicated",
        FlagLevel.CRITICAL_HIGH: "Critically high corrected calcium - IV fluids and cardiac monitoring",
    }[flag]

    return CalculatedValue(
        name="Corrected Calcium",
        value=corrected,
        unit=ref.unit,
        formula="Total Ca + 0.8 × (4.0 - Albumin)",
        interpretation=interpretation,
        normal_range=f"{_fmt(ref.normal_low)}-{_fmt(ref.normal_high)} {ref.unit}",
        flag=flag,
    )


def calculate_egfr(creatinine: float, age: float, sex: str) -> CalculatedValue:
    """Estimated GFR by the race-free CKD-EPI 2021 creatinine equation."""
    _require_positive(creatinine=creatinine, age=age)
    sex = normalize_sex(sex)
    if sex is None:
        raise ValidationError("eGFR requires sex", field="sex")

    if sex == "F":
        kappa, alpha, factor = EGFR_FEMALE_KAPPA, EGFR_FEMALE_ALPHA, EGFR_FEMALE_FACTOR
    else:
        kappa, alpha, factor = EGFR_MALE_KAPPA, EGFR_MALE_ALPHA, 1.0

    ratio = creatinine / kappa
    egfr = (
        EGFR_COEFFICIENT
        * min(ratio, 1.0) ** alpha
        * max(ratio, 1.0) ** EGFR_EXPONENT_ABOVE_KAPPA
        * EGFR_AGE_BASE ** age
        * factor
    )

    interpretation = EGFR_STAGES[-1][1]
    for lower, text in EGFR_STAGES:
        if egfr >= lower:
            interpretation = text
            break

    return CalculatedValue(
        name="eGFR (CKD-EPI 2021)",
        value=float(round(egfr)),
        unit="mL/min/1.73m²",
        formula="CKD-EPI 2021 (race-free)",
        interpretation=interpretation,
        normal_range="≥90 mL/min/1.73m²",
        flag=FlagLevel.NORMAL if egfr >= 60 else FlagLevel.LOW,
    )


# ── Panels ──────────────────────────────────────────────────────────────

def _abnormal(result: Optional[InterpretedResult]) -> bool:
    return result is not None and result.flag != FlagLevel.NORMAL


def _elevated(result: Optional[InterpretedResult]) -> bool:
    return result is not None and result.flag in (FlagLevel.HIGH, FlagLevel.CRITICAL_HIGH)


def _times_uln(result: InterpretedResult) -> float:
    ref = get_reference_range(result.test_code)
    return result.value / ref.normal_high if ref is not None and ref.normal_high else 0.0


def interpret_hepatic_panel(results: Sequence[InterpretedResult]) -> PanelInterpretation:
    """
    Classify liver injury as hepatocellular, cholestatic or mixed.

    Uses the R ratio (transaminase ×ULN ÷ ALP ×ULN): ≥5 hepatocellular,
    ≤2 cholestatic, in between mixed. ALT is preferred over AST.
    """
    by_code = {r.test_code: r for r in results}
    ast, alt, alp = by_code.get("AST"), by_code.get("ALT"), by_code.get("ALP")
    tbil, dbil, alb = by_code.get("TBIL"), by_code.get("DBIL"), by_code.get("ALB")

    transaminase_high = _elevated(ast) or _elevated(alt)
    alp_high = _elevated(alp)
    follow_up: List[str] = []
    correlations: List[str] = []

    if not transaminase_high and not alp_high:
        if _elevated(tbil):
            pattern = HepaticPattern.ISOLATED_HYPERBILIRUBINEMIA
            interpretation = "Isolated hyperbilirubinemia - consider Gilbert syndrome or hemolysis"
            follow_up.extend(["Fractionated bilirubin", "Haptoglobin", "LDH", "Reticulocyte count"])
        else:
            pattern = HepaticPattern.NORMAL
            interpretation = "Hepatic panel within normal limits"
    else:
        transaminase = alt if alt is not None else ast
        if alp is None or alp.value <= 0 or transaminase is None:
            pattern = HepaticPattern.HEPATOCELLULAR if transaminase_high else HepaticPattern.CHOLESTATIC
        else:
            r_ratio = _times_uln(transaminase) / _times_uln(alp)
            if r_ratio >= R_RATIO_HEPATOCELLULAR:
                pattern = HepaticPattern.HEPATOCELLULAR
            elif r_ratio <= R_RATIO_CHOLESTATIC:
                pattern = HepaticPattern.CHOLESTATIC
            else:
                pattern = HepaticPattern.MIXED
            logger.debug(f"Hepatic R ratio {r_ratio:.2f} -> {pattern.value}")

        if pattern == HepaticPattern.HEPATOCELLULAR:
            peak = max(r.value for r in (ast, alt) if r is not None)
            if peak > ACUTE_TRANSAMINASE:
                interpretation = (
                    "Acute hepatocellular injury pattern (transaminases >1000) - consider acute viral "
                    "hepatitis, ischemic hepatitis, or drug/toxin-induced injury"
                )
                follow_up.extend(["Hepatitis A IgM, Hepatitis B surface Ag, Hepatitis C Ab",
                                  "Acetaminophen level", "RUQ ultrasound with Doppler"])
            else:
                interpretation = (
                    "Mild-moderate hepatocellular injury - consider NAFLD, chronic hepatitis, "
                    "or medication effect"
                )
                follow_up.extend(["Hepatitis panel", "Iron studies", "Ceruloplasmin if young patient"])
        elif pattern == HepaticPattern.CHOLESTATIC:
            interpretation = (
                "Cholestatic pattern - consider biliary obstruction, primary biliary cholangitis, "
                "or drug-induced cholestasis"
            )
            follow_up.extend(["RUQ ultrasound", "MRCP if obstruction suspected", "AMA if PBC suspected"])
            if _abnormal(dbil):
                correlations.append("Elevated direct bilirubin supports biliary obstruction")
        else:
            interpretation = (
                "Mixed hepatocellular-cholestatic pattern - consider infiltrative disease, "
                "drug reaction, or evolving obstruction"
            )
            follow_up.extend(["Liver imaging", "Consider liver biopsy", "Review medications"])

        if ast is not None and alt is not None and alt.value > 0 and transaminase_high:
            if ast.value / alt.value >= DE_RITIS_ALCOHOLIC:
                correlations.append("AST > ALT ratio suggests alcoholic liver disease or cirrhosis")
            elif alt.value > ast.value:
                correlations.append("ALT > AST ratio typical of non-alcoholic causes")

    if alb is not None and alb.flag in (FlagLevel.LOW, FlagLevel.CRITICAL_LOW):
        correlations.append("Low albumin suggests chronic liver disease or malnutrition")

    return PanelInterpretation(
        panel_name="Hepatic Panel",
        pattern=pattern,
        interpretation=interpretation,
        results=[r for r in results if r.test_code in ("AST", "ALT", "ALP", "TBIL", "DBIL", "GGT", "ALB")],
        suggested_follow_up=follow_up,
        clinical_correlations=correlations,
    )


def interpret_renal_panel(results: Sequence[InterpretedResult], age: Optional[float] = None,
                          sex: Optional[str] = None) -> PanelInterpretation:
    """BUN/creatinine pattern, with eGFR staging when age and sex are known."""
    by_code = {r.test_code: r for r in results}
    bun, cr = by_code.get("BUN"), by_code.get("CR")
    follow_up: List[str] = []
    correlations: List[str] = []

    if not (_abnormal(bun) or _abnormal(cr)):
        pattern = "Normal"
        interpretation = "Renal panel within normal limits"
    elif bun is None or cr is None or cr.value <= 0:
        pattern = "Incomplete"
        interpretation = "Abnormal renal marker - BUN and creatinine both needed for pattern analysis"
        follow_up.append("Repeat BMP")
    else:
        ratio = bun.value / cr.value
        correlations.append(f"BUN/creatinine ratio {ratio:.1f}")
        if ratio > BUN_CR_PRERENAL:
            pattern = "Pre-renal"
            interpretation = (
                "BUN/creatinine ratio above 20 - consider volume depletion, heart failure, "
                "GI bleeding, or high protein catabolism"
            )
            follow_up.extend(["Assess volume status", "Urine sodium", "FENa calculation"])
        elif ratio >= BUN_CR_LOW:
            pattern = "Intrinsic renal"
            interpretation = "BUN/creatinine ratio 10-20 - consider intrinsic renal disease or post-renal obstruction"
            follow_up.extend(["Urinalysis with microscopy", "Renal ultrasound"])
        else:
            pattern = "Low ratio"
            interpretation = "BUN/creatinine ratio below 10 - consider liver disease, malnutrition, or rhabdomyolysis"
            follow_up.extend(["Hepatic panel", "Creatine kinase"])

    if cr is not None and age is not None and sex is not None:
        egfr = calculate_egfr(cr.value, age, sex)
        correlations.append(f"eGFR {egfr.value:g} {egfr.unit}: {egfr.interpretation}")

    return PanelInterpretation(
        panel_name="Renal Panel",
        pattern=pattern,
        interpretation=interpretation,
        results=[r for r in results if r.test_code in ("BUN", "CR", "NA", "K", "CL", "CO2")],
        suggested_follow_up=follow_up,
        clinical_correlations=correlations,
    )


# ── Stateful interpreter ────────────────────────────────────────────────

class LabResultInterpreter:
    """
    Lab interpretation with per-patient learned baselines.

    Baselines are Welford running statistics (count, mean, M2) stored per
    patient and test; raw values are never retained.
    """

    STORE_KEY = "labs.baselines"

    def __init__(self, store: Optional[StateStore] = None):
        self.store = store if store is not None else default_store()
        logger.info("LabResultInterpreter initialized")

    # Stateless operations are exposed on the engine for convenience
    interpret_result = staticmethod(interpret_result)
    interpret_results = staticmethod(interpret_results)
    delta_check = staticmethod(delta_check)
    analyze_trend = staticmethod(analyze_trend)
    calculate_anion_gap = staticmethod(calculate_anion_gap)
    calculate_corrected_calcium = staticmethod(calculate_corrected_calcium)
    calculate_egfr = staticmethod(calculate_egfr)
    interpret_hepatic_panel = staticmethod(interpret_hepatic_panel)
    interpret_renal_panel = staticmethod(interpret_renal_panel)
    find_clinical_correlations = staticmethod(find_clinical_correlations)

    def _load(self) -> Dict[str, Dict[str, Dict[str, float]]]:
        return self.store.get(self.STORE_KEY, {})

    def _stats(self, patient_id: str, test_code: str) -> Optional[RunningStats]:
        entry = self._load().get(patient_id, {}).get(test_code.upper())
        if entry is None:
            return None
        return RunningStats(count=int(entry["count"]), mean=entry["mean"], m2=entry["m2"])

    def update_patient_baseline(self, patient_id: str, lab) -> PatientBaseline:
        """Fold one observed value into the patient's running baseline."""
        lab = parse_record(LabValue, lab)
        if not patient_id:
            raise ValidationError("patient_id is required", field="patient_id")
        if not math.isfinite(lab.value):
            raise ValidationError(f"Non-finite value for {lab.test_code}", field="value")
        code = lab.test_code.upper()

        baselines = self._load()
        current = baselines.get(patient_id, {}).get(code)
        running = RunningStats() if current is None else RunningStats(
            count=int(current["count"]), mean=current["mean"], m2=current["m2"]
        )
        running = running.update(lab.value)
        baselines.setdefault(patient_id, {})[code] = {
            "count": running.count, "mean": running.mean, "m2": running.m2,
        }
        self.store.put(self.STORE_KEY, baselines)

        logger.debug(f"Baseline {patient_id}/{code}: n={running.count} mean={running.mean:.3f}")
        return PatientBaseline(
            patient_id=patient_id,
            test_code=code,
            sample_count=running.count,
            running_mean=running.mean,
            running_variance=running.variance,
        )

    def get_patient_baseline(self, patient_id: str, test_code: str) -> Optional[PatientBaseline]:
        running = self._stats(patient_id, test_code)
        if running is None:
            return None
        return PatientBaseline(
            patient_id=patient_id,
            test_code=test_code.upper(),
            sample_count=running.count,
            running_mean=running.mean,
            running_variance=running.variance,
        )

    def get_personalized_range(self, patient_id: str, test_code: str, age: Optional[float] = None,
                               sex: Optional[str] = None) -> Optional[PersonalizedRange]:
        """
        Mean ± 2 SD of the patient's own values, or None below 3 samples.

        The population range is resolved for ``age`` and ``sex`` the same
        way ``interpret_result`` resolves it.
        """
        _validate_age(age)
        running = self._stats(patient_id, test_code)
        if running is None or running.count < MIN_BASELINE_SAMPLES:
            return None
        ref = get_reference_range(test_code)
        population_low, population_high = resolve_range(ref, age, sex) if ref is not None else (None, None)
        spread = PERSONAL_BAND_SD * running.std
        return PersonalizedRange(
            test_code=test_code.upper(),
            low=running.mean - spread,
            high=running.mean + spread,
            baseline_value=running.mean,
            confidence=min(running.count / BASELINE_FULL_CONFIDENCE_SAMPLES, 1.0),
            data_points=running.count,
            population_low=population_low,
            population_high=population_high,
        )

    def interpret_with_personalized_range(self, lab, age: Optional[float] = None,
                                          sex: Optional[str] = None) -> InterpretedResult:
        """Population interpretation plus a flag when the value leaves the patient's own band."""
        lab = parse_record(LabValue, lab)
        standard = interpret_result(lab, age, sex)
        personal = self.get_personalized_range(lab.patient_id, lab.test_code, age, sex)
        if personal is None or personal.contains(lab.value):
            return standard

        band = f"{personal.low:.2f}-{personal.high:.2f}"
        if standard.flag == FlagLevel.NORMAL:
            insight = (
                f"Value is within normal range but outside patient's personalized baseline "
                f"({band}). Patient's baseline: {personal.baseline_value:.2f}"
            )
        else:
            insight = (
                f"Value is outside both the population range and the patient's personalized "
                f"baseline ({band})"
            )
        return replace(standard, outside_personal_baseline=True, personalized_insight=insight)

    def reset_learning_data(self) -> None:
        self.store.clear(self.STORE_KEY)
        logger.info("Lab baseline learning data cleared")
