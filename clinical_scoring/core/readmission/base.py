"""
Readmission Prediction Data Structures
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ReadmissionRisk(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    VERY_HIGH = "very_high"


class AdmissionType(str, Enum):
    ELECTIVE = "elective"
    URGENT = "urgent"
    EMERGENCY = "emergency"


class ProcedureType(str, Enum):
    CARDIAC = "cardiac"
    ORTHOPEDIC = "orthopedic"
    ABDOMINAL = "abdominal"
    VASCULAR = "vascular"
    THORACIC = "thoracic"
    NEUROLOGICAL = "neurological"
    UROLOGICAL = "urological"
    GYNECOLOGICAL = "gynecological"
    OTHER = "other"


class Sex(str, Enum):
    MALE = "male"
    FEMALE = "female"


class DischargeDisposition(str, Enum):
    HOME = "home"
    HOME_HEALTH = "home_health"
    SNF = "snf"
    REHAB = "rehab"
    OTHER = "other"


class PatientProfile(BaseModel):
    """Discharge-time snapshot of a patient."""
    model_config = ConfigDict(frozen=True)

    patient_id: str = ""
    age: float
    sex: Sex
    hemoglobin_at_discharge: float                  # g/dL
    sodium_at_discharge: float                      # mEq/L
    has_oncology_diagnosis: bool = False
    procedure_type: ProcedureType = ProcedureType.OTHER
    admission_type: AdmissionType = AdmissionType.ELECTIVE
    length_of_stay_days: float = 0
    previous_admissions_6_months: int = 0
    emergency_visits_6_months: int = 0
    charlson_comorbidity_index: int = 0
    comorbidities: List[str] = Field(default_factory=list)
    discharge_disposition: DischargeDisposition = DischargeDisposition.HOME
    lives_alone: bool = False
    has_caregiver: bool = True
    medication_count: int = 0
    has_follow_up_scheduled: bool = True
    bmi: float = 25.0
    is_smoker: bool = False
    has_diabetes: bool = False
    has_heart_failure: bool = False
    has_copd: bool = False
    has_renal_disease: bool = False

    @field_validator("sex", mode="before")
    @classmethod
    def _normalize_sex(cls, value):
        if isinstance(value, str):
            return {"m": "male", "f": "female"}.get(value.strip().lower(), value.strip().lower())
        return value


class LabeledProfile(PatientProfile):
    """Synthetic training profile with its observed outcome."""
    was_readmitted: bool


# ── Results ─────────────────────────────────────────────────────────────

@dataclass
class IndexScore:
    """A published point-score index (HOSPITAL or LACE)."""
    name: str
    total_score: int
    max_score: int
    components: Dict[str, int]
    risk_level: ReadmissionRisk
    readmission_probability: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "total_score": self.total_score,
            "max_score": self.max_score,
            "components": dict(self.components),
            "risk_level": self.risk_level.value,
            "readmission_probability": self.readmission_probability,
        }


@dataclass
class RiskFactor:
    factor: str
    contribution: float

    def to_dict(self) -> Dict[str, Any]:
        return {"factor": self.factor, "contribution": round(self.contribution, 4)}


@dataclass
class LogisticResult:
    probability: float
    risk_level: ReadmissionRisk
    top_risk_factors: List[RiskFactor] = field(default_factory=list)
    confidence: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "probability": round(self.probability, 4),
            "risk_level": self.risk_level.value,
            "top_risk_factors": [f.to_dict() for f in self.top_risk_factors],
            "confidence": round(self.confidence, 3),
        }


@dataclass
class ReadmissionPrediction:
    hospital_score: IndexScore
    lace_index: IndexScore
    logistic_regression: LogisticResult
    ensemble_probability: float
    ensemble_risk_level: ReadmissionRisk
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hospital_score": self.hospital_score.to_dict(),
            "lace_index": self.lace_index.to_dict(),
            "logistic_regression": self.logistic_regression.to_dict(),
            "ensemble_probability": round(self.ensemble_probability, 4),
            "ensemble_risk_level": self.ensemble_risk_level.value,
            "recommendations": list(self.recommendations),
        }


@dataclass
class OutcomeRecord:
    patient_id: str
    predicted_probability: float
    actual_readmitted: bool
    days_to_readmission: Optional[int]
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "patient_id": self.patient_id,
            "predicted_probability": self.predicted_probability,
            "actual_readmitted": self.actual_readmitted,
            "days_to_readmission": self.days_to_readmission,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OutcomeRecord":
        return cls(
            patient_id=data["patient_id"],
            predicted_probability=float(data["predicted_probability"]),
            actual_readmitted=bool(data["actual_readmitted"]),
            days_to_readmission=data.get("days_to_readmission"),
            timestamp=data.get("timestamp", ""),
        )


@dataclass
class TrainingResult:
    accuracy: float
    final_loss: float
    epochs: int
    samples: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accuracy": round(self.accuracy, 4),
            "final_loss": round(self.final_loss, 4),
            "epochs": self.epochs,
            "samples": self.samples,
        }


@dataclass
class PerformanceMetrics:
    total_predictions: int
    brier_score: float
    auc: float
    calibration_slope: float
    low_confidence: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_predictions": self.total_predictions,
            "brier_score": round(self.brier_score, 4),
            "auc": round(self.auc, 4),
            "calibration_slope": round(self.calibration_slope, 4),
            "low_confidence": self.low_confidence,
        }
