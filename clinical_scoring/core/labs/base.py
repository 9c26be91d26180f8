"""
Lab Interpretation Data Structures

Input records, reference-range table entries and the result records
produced by the lab result interpreter.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class LabCategory(str, Enum):
    CBC = "cbc"
    BMP = "bmp"
    CMP = "cmp"
    LFT = "lft"
    COAGULATION = "coagulation"
    CARDIAC = "cardiac"
    INFLAMMATORY = "inflammatory"
    THYROID = "thyroid"
    LIPID = "lipid"
    IRON = "iron"
    RENAL = "renal"
    OTHER = "other"


class FlagLevel(str, Enum):
    NORMAL = "NORMAL"
    LOW = "LOW"
    HIGH = "HIGH"
    CRITICAL_LOW = "CRITICAL_LOW"
    CRITICAL_HIGH = "CRITICAL_HIGH"

    @property
    def is_critical(self) -> bool:
        return self in (FlagLevel.CRITICAL_LOW, FlagLevel.CRITICAL_HIGH)


class DeltaAlertType(str, Enum):
    RAPID_INCREASE = "RAPID_INCREASE"
    RAPID_DECREASE = "RAPID_DECREASE"
    STEADY_INCREASE = "STEADY_INCREASE"
    STEADY_DECREASE = "STEADY_DECREASE"
    NONE = "NONE"


class TrendDirection(str, Enum):
    INCREASING = "INCREASING"
    DECREASING = "DECREASING"
    STABLE = "STABLE"
    FLUCTUATING = "FLUCTUATING"


class Urgency(str, Enum):
    ROUTINE = "routine"
    URGENT = "urgent"
    STAT = "stat"


class HepaticPattern(str, Enum):
    NORMAL = "Normal"
    HEPATOCELLULAR = "Hepatocellular"
    CHOLESTATIC = "Cholestatic"
    MIXED = "Mixed"
    ISOLATED_HYPERBILIRUBINEMIA = "Isolated hyperbilirubinemia"


class LabValue(BaseModel):
    """A single measured analyte."""
    model_config = ConfigDict(frozen=True)

    test_code: str = Field(..., min_length=1)
    value: float
    unit: str = ""
    collected_at: datetime
    patient_id: str = ""


# ── Reference table entries ─────────────────────────────────────────────

@dataclass(frozen=True)
class RangeAdjustment:
    """Replacement normal range for a demographic group."""
    normal_low: float
    normal_high: float
    age_min: Optional[float] = None     # geriatric threshold
    age_max: Optional[float] = None     # pediatric threshold

    def __post_init__(self):
        if self.normal_low > self.normal_high:
            raise ValueError(f"normal_low {self.normal_low} > normal_high {self.normal_high}")


@dataclass(frozen=True)
class DeltaRule:
    """Percent change that must be flagged when it happens within the window."""
    percent_change: float
    window_hours: float


@dataclass(frozen=True)
class ReferenceRange:
    """One analyte's population reference range with critical thresholds."""
    test_code: str
    test_name: str
    category: LabCategory
    unit: str
    normal_low: float
    normal_high: float
    critical_low: Optional[float] = None
    critical_high: Optional[float] = None
    male: Optional[RangeAdjustment] = None
    female: Optional[RangeAdjustment] = None
    geriatric: Optional[RangeAdjustment] = None
    pediatric: Optional[RangeAdjustment] = None
    delta: Optional[DeltaRule] = None

    def __post_init__(self):
        if self.normal_low > self.normal_high:
            raise ValueError(f"{self.test_code}: normal_low > normal_high")
        if self.critical_low is not None and self.critical_low > self.normal_low:
            raise ValueError(f"{self.test_code}: critical_low above normal_low")
        if self.critical_high is not None and self.critical_high < self.normal_high:
            raise ValueError(f"{self.test_code}: critical_high below normal_high")


# ── Results ─────────────────────────────────────────────────────────────

@dataclass
class InterpretedResult:
    """A lab value flagged against its demographic-adjusted reference range."""
    test_code: str
    test_name: str
    value: float
    unit: str
    flag: FlagLevel
    reference_range: str
    interpretation: str
    clinical_significance: str
    is_critical: bool
    patient_id: str = ""
    # Set only by personalised interpretation
    outside_personal_baseline: bool = False
    personalized_insight: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "test_code": self.test_code,
            "test_name": self.test_name,
            "value": self.value,
            "unit": self.unit,
            "flag": self.flag.value,
            "reference_range": self.reference_range,
            "interpretation": self.interpretation,
            "clinical_significance": self.clinical_significance,
            "is_critical": self.is_critical,
        }
        if self.personalized_insight is not None:
            data["outside_personal_baseline"] = self.outside_personal_baseline
            data["personalized_insight"] = self.personalized_insight
        return data


@dataclass
class DeltaResult:
    test_code: str
    current_value: float
    previous_value: float
    percent_change: float
    time_elapsed_hours: float
    alert_type: DeltaAlertType
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "test_code": self.test_code,
            "current_value": self.current_value,
            "previous_value": self.previous_value,
            "percent_change": round(self.percent_change, 1),
            "time_elapsed_hours": round(self.time_elapsed_hours, 1),
            "alert_type": self.alert_type.value,
            "message": self.message,
        }


@dataclass
class TrendResult:
    test_code: str
    test_name: str
    direction: TrendDirection
    slope: float
    r_squared: float
    predicted_next: float
    confidence: float
    message: str
    values: List[float] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "test_code": self.test_code,
            "test_name": self.test_name,
            "direction": self.direction.value,
            "slope": round(self.slope, 3),
            "r_squared": round(self.r_squared, 3),
            "predicted_next": round(self.predicted_next, 2),
            "confidence": round(self.confidence, 2),
            "message": self.message,
            "values": list(self.values),
        }


@dataclass
class CalculatedValue:
    """Derived quantity such as the anion gap or eGFR."""
    name: str
    value: float
    unit: str
    formula: str
    interpretation: str
    normal_range: str
    flag: FlagLevel = FlagLevel.NORMAL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "value": self.value,
            "unit": self.unit,
            "formula": self.formula,
            "interpretation": self.interpretation,
            "normal_range": self.normal_range,
            "flag": self.flag.value,
        }


@dataclass
class PanelInterpretation:
    panel_name: str
    pattern: str
    interpretation: str
    results: List[InterpretedResult] = field(default_factory=list)
    suggested_follow_up: List[str] = field(default_factory=list)
    clinical_correlations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "panel_name": self.panel_name,
            "pattern": str(getattr(self.pattern, "value", self.pattern)),
            "interpretation": self.interpretation,
            "results": [r.to_dict() for r in self.results],
            "suggested_follow_up": list(self.suggested_follow_up),
            "clinical_correlations": list(self.clinical_correlations),
        }


@dataclass
class ClinicalCorrelation:
    rule_id: str
    findings: List[str]
    possible_conditions: List[str]
    suggested_tests: List[str]
    urgency: Urgency

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "findings": list(self.findings),
            "possible_conditions": list(self.possible_conditions),
            "suggested_tests": list(self.suggested_tests),
            "urgency": self.urgency.value,
        }


@dataclass
class PatientBaseline:
    """Running statistics of one patient's values for one test."""
    patient_id: str
    test_code: str
    sample_count: int
    running_mean: float
    running_variance: float

    @property
    def std_dev(self) -> float:
        return max(self.running_variance, 0.0) ** 0.5

    def to_dict(self) -> Dict[str, Any]:
        return {
            "patient_id": self.patient_id,
            "test_code": self.test_code,
            "sample_count": self.sample_count,
            "running_mean": round(self.running_mean, 4),
            "running_variance": round(self.running_variance, 6),
        }


@dataclass
class PersonalizedRange:
    """Patient band (mean ± 2 SD) next to the population range for the same test."""
    test_code: str
    low: float
    high: float
    baseline_value: float
    confidence: float
    data_points: int
    # None when the test has no reference entry
    population_low: Optional[float] = None
    population_high: Optional[float] = None

    def contains(self, value: float) -> bool:
        return self.low <= value <= self.high

    def to_dict(self) -> Dict[str, Any]:
        return {
            "test_code": self.test_code,
            "personalized_range": {"low": round(self.low, 2), "high": round(self.high, 2)},
            "population_range": (
                {"low": self.population_low, "high": self.population_high}
                if self.population_low is not None else None
            ),
            "baseline_value": round(self.baseline_value, 2),
            "confidence": round(self.confidence, 2),
            "data_points": self.data_points,
        }
