"""
Lab Result Interpreter

Reference-range flagging, delta and trend detection, derived values, panel
patterns and per-patient learned baselines.

Usage:
    from clinical_scoring.core.labs import LabResultInterpreter, LabValue

    interpreter = LabResultInterpreter()
    result = interpreter.interpret_result(lab, age=70, sex="F")
"""
from .base import (
    CalculatedValue,
    ClinicalCorrelation,
    DeltaAlertType,
    DeltaResult,
    FlagLevel,
    HepaticPattern,
    InterpretedResult,
    LabCategory,
    LabValue,
    PanelInterpretation,
    PatientBaseline,
    PersonalizedRange,
    ReferenceRange,
    TrendDirection,
    TrendResult,
    Urgency,
)
from .reference_ranges import REFERENCE_RANGES, REFERENCE_TABLE, get_reference_range
from .correlations import CORRELATION_RULES, find_clinical_correlations
from .interpreter import (
    LabResultInterpreter,
    analyze_trend,
    calculate_anion_gap,
    calculate_corrected_calcium,
    calculate_egfr,
    delta_check,
    flag_value,
    interpret_hepatic_panel,
    interpret_renal_panel,
    interpret_result,
    interpret_results,
    resolve_range,
)

__all__ = [
    "LabResultInterpreter",
    "LabValue",
    "InterpretedResult",
    "DeltaResult",
    "TrendResult",
    "CalculatedValue",
    "PanelInterpretation",
    "ClinicalCorrelation",
    "PatientBaseline",
    "PersonalizedRange",
    "ReferenceRange",
    "LabCategory",
    "FlagLevel",
    "DeltaAlertType",
    "TrendDirection",
    "HepaticPattern",
    "Urgency",
    "REFERENCE_RANGES",
    "REFERENCE_TABLE",
    "CORRELATION_RULES",
    "get_reference_range",
    "interpret_result",
    "interpret_results",
    "flag_value",
    "resolve_range",
    "delta_check",
    "analyze_trend",
    "calculate_anion_gap",
    "calculate_corrected_calcium",
    "calculate_egfr",
    "interpret_hepatic_panel",
    "interpret_renal_panel",
    "find_clinical_correlations",
]
