"""
Laboratory Reference Ranges

Adult reference intervals and critical (panic) values for 65 common
analytes, with sex, geriatric and pediatric adjustments where the interval
differs materially.

Sources:
- Tietz Clinical Guide to Laboratory Tests, 4th ed.
- CLSI EP28-A3c (reference interval definition)
- Critical values: CAP Q-Probes survey of laboratory critical limits
- Delta-check limits: Ladenson, Am J Clin Pathol 1975 and local practice
"""
from typing import Dict, Optional, Tuple

from .base import DeltaRule, LabCategory, RangeAdjustment, ReferenceRange

C = LabCategory
Adj = RangeAdjustment

# Geriatric adjustments apply from this age unless the entry says otherwise
GERIATRIC_AGE = 65
PEDIATRIC_AGE = 18


REFERENCE_RANGES: Tuple[ReferenceRange, ...] = (
    # ── Complete blood count ────────────────────────────────────────────
    ReferenceRange("WBC", "White Blood Cell Count", C.CBC, "K/uL", 4.5, 11.0, 2.0, 30.0,
                   delta=DeltaRule(50, 24)),
    ReferenceRange("RBC", "Red Blood Cell Count", C.CBC, "M/uL", 4.0, 5.5,
                   male=Adj(4.5, 5.9), female=Adj(4.0, 5.2)),
    ReferenceRange("HGB", "Hemoglobin", C.CBC, "g/dL", 12.0, 17.0, 7.0, 20.0,
                   male=Adj(13.5, 17.5), female=Adj(12.0, 16.0),
                   pediatric=Adj(11.0, 16.0, age_max=PEDIATRIC_AGE),
                   delta=DeltaRule(20, 24)),
    ReferenceRange("HCT", "Hematocrit", C.CBC, "%", 36, 50, 20, 60,
                   male=Adj(40, 54), female=Adj(36, 48)),
    ReferenceRange("PLT", "Platelet Count", C.CBC, "K/uL", 150, 400, 50, 1000,
                   delta=DeltaRule(50, 24)),
    ReferenceRange("MCV", "Mean Corpuscular Volume", C.CBC, "fL", 80, 100),
    ReferenceRange("MCH", "Mean Corpuscular Hemoglobin", C.CBC, "pg", 27, 33),
    ReferenceRange("MCHC", "Mean Corpuscular Hemoglobin Concentration", C.CBC, "g/dL", 32, 36),
    ReferenceRange("RDW", "Red Cell Distribution Width", C.CBC, "%", 11.5, 14.5),
    ReferenceRange("NEUT", "Neutrophils (Absolute)", C.CBC, "K/uL", 1.8, 7.7, 0.5, 20.0),
    ReferenceRange("LYMPH", "Lymphocytes (Absolute)", C.CBC, "K/uL", 1.0, 4.8),
    ReferenceRange("MONO", "Monocytes (Absolute)", C.CBC, "K/uL", 0.2, 0.8),
    ReferenceRange("EOS", "Eosinophils (Absolute)", C.CBC, "K/uL", 0, 0.5),
    ReferenceRange("BASO", "Basophils (Absolute)", C.CBC, "K/uL", 0, 0.2),

    # ── Basic metabolic panel ───────────────────────────────────────────
    ReferenceRange("NA", "Sodium", C.BMP, "mEq/L", 136, 145, 120, 160,
                   delta=DeltaRule(5, 24)),
    ReferenceRange("K", "Potassium", C.BMP, "mEq/L", 3.5, 5.0, 2.5, 6.5,
                   delta=DeltaRule(15, 8)),
    ReferenceRange("CL", "Chloride", C.BMP, "mEq/L", 98, 106, 80, 120),
    ReferenceRange("CO2", "Bicarbonate (CO2)", C.BMP, "mEq/L", 22, 29, 10, 40),
    ReferenceRange("BUN", "Blood Urea Nitrogen", C.BMP, "mg/dL", 7, 20, None, 100,
                   geriatric=Adj(8, 23, age_min=GERIATRIC_AGE)),
    ReferenceRange("CR", "Creatinine", C.BMP, "mg/dL", 0.7, 1.3, None, 10.0,
                   male=Adj(0.7, 1.3), female=Adj(0.6, 1.1),
                   delta=DeltaRule(50, 48)),
    ReferenceRange("GLU", "Glucose", C.BMP, "mg/dL", 70, 100, 40, 500,
                   delta=DeltaRule(30, 4)),
    ReferenceRange("CA", "Calcium", C.BMP, "mg/dL", 8.5, 10.5, 6.0, 13.0),

    # ── Comprehensive metabolic panel additions ─────────────────────────
    ReferenceRange("TP", "Total Protein", C.CMP, "g/dL", 6.0, 8.3),
    ReferenceRange("ALB", "Albumin", C.CMP, "g/dL", 3.5, 5.5, 1.5),

    # ── Liver function ──────────────────────────────────────────────────
    ReferenceRange("AST", "Aspartate Aminotransferase", C.LFT, "U/L", 10, 40, None, 1000),
    ReferenceRange("ALT", "Alanine Aminotransferase", C.LFT, "U/L", 7, 56, None, 1000),
    ReferenceRange("ALP", "Alkaline Phosphatase", C.LFT, "U/L", 44, 147),
    ReferenceRange("TBIL", "Total Bilirubin", C.LFT, "mg/dL", 0.1, 1.2, None, 15),
    ReferenceRange("DBIL", "Direct Bilirubin", C.LFT, "mg/dL", 0, 0.3),
    ReferenceRange("GGT", "Gamma-Glutamyl Transferase", C.LFT, "U/L", 0, 65),

    # ── Coagulation ─────────────────────────────────────────────────────
    ReferenceRange("PT", "Prothrombin Time", C.COAGULATION, "sec", 11.0, 13.5, None, 30.0),
    ReferenceRange("INR", "International Normalized Ratio", C.COAGULATION, "ratio", 0.8, 1.1, None, 5.0),
    ReferenceRange("PTT", "Partial Thromboplastin Time", C.COAGULATION, "sec", 25, 35, None, 100),
    ReferenceRange("FIBRIN", "Fibrinogen", C.COAGULATION, "mg/dL", 200, 400, 100),
    ReferenceRange("DDIMER", "D-Dimer", C.COAGULATION, "ng/mL", 0, 500),

    # ── Cardiac markers ─────────────────────────────────────────────────
    ReferenceRange("TROP_I", "Troponin I", C.CARDIAC, "ng/mL", 0, 0.04, None, 0.5),
    ReferenceRange("TROP_T", "Troponin T (hs)", C.CARDIAC, "ng/L", 0, 14, None, 52,
                   male=Adj(0, 22), female=Adj(0, 14)),
    ReferenceRange("BNP", "B-type Natriuretic Peptide", C.CARDIAC, "pg/mL", 0, 100,
                   geriatric=Adj(0, 300, age_min=75)),
    ReferenceRange("NTPROBNP", "NT-proBNP", C.CARDIAC, "pg/mL", 0, 125,
                   geriatric=Adj(0, 450, age_min=75)),
    ReferenceRange("CK", "Creatine Kinase", C.CARDIAC, "U/L", 30, 200,
                   male=Adj(39, 308), female=Adj(26, 192)),
    ReferenceRange("CKMB", "CK-MB", C.CARDIAC, "ng/mL", 0, 5.0, None, 25),

    # ── Inflammatory markers ────────────────────────────────────────────
    ReferenceRange("CRP", "C-Reactive Protein", C.INFLAMMATORY, "mg/L", 0, 10),
    ReferenceRange("HSCRP", "High-Sensitivity CRP", C.INFLAMMATORY, "mg/L", 0, 3.0),
    ReferenceRange("ESR", "Erythrocyte Sedimentation Rate", C.INFLAMMATORY, "mm/hr", 0, 20,
                   male=Adj(0, 15), female=Adj(0, 20)),
    ReferenceRange("PCT", "Procalcitonin", C.INFLAMMATORY, "ng/mL", 0, 0.05, None, 2.0),
    ReferenceRange("FERRITIN", "Ferritin", C.INFLAMMATORY, "ng/mL", 12, 300,
                   male=Adj(12, 300), female=Adj(12, 150)),
    ReferenceRange("LDH", "Lactate Dehydrogenase", C.INFLAMMATORY, "U/L", 140, 280),

    # ── Thyroid ─────────────────────────────────────────────────────────
    ReferenceRange("TSH", "Thyroid Stimulating Hormone", C.THYROID, "mIU/L", 0.27, 4.2, 0.01, 50),
    ReferenceRange("FT4", "Free T4 (Thyroxine)", C.THYROID, "ng/dL", 0.93, 1.7, None, 5.0),
    ReferenceRange("FT3", "Free T3 (Triiodothyronine)", C.THYROID, "pg/mL", 2.0, 4.4),

    # ── Lipids ──────────────────────────────────────────────────────────
    ReferenceRange("CHOL", "Total Cholesterol", C.LIPID, "mg/dL", 0, 200),
    ReferenceRange("LDL", "LDL Cholesterol", C.LIPID, "mg/dL", 0, 100),
    ReferenceRange("HDL", "HDL Cholesterol", C.LIPID, "mg/dL", 40, 200),
    ReferenceRange("TRIG", "Triglycerides", C.LIPID, "mg/dL", 0, 150, None, 500),

    # ── Iron studies ────────────────────────────────────────────────────
    ReferenceRange("FE", "Serum Iron", C.IRON, "mcg/dL", 60, 170,
                   male=Adj(65, 175), female=Adj(50, 170)),
    ReferenceRange("TIBC", "Total Iron Binding Capacity", C.IRON, "mcg/dL", 250, 400),
    ReferenceRange("TSAT", "Transferrin Saturation", C.IRON, "%", 20, 50),

    # ── Renal and miscellaneous ─────────────────────────────────────────
    ReferenceRange("MG", "Magnesium", C.RENAL, "mg/dL", 1.7, 2.2, 1.0, 4.0),
    ReferenceRange("PHOS", "Phosphorus", C.RENAL, "mg/dL", 2.5, 4.5, 1.0, 8.0),
    ReferenceRange("URIC", "Uric Acid", C.RENAL, "mg/dL", 3.0, 7.0,
                   male=Adj(3.4, 7.0), female=Adj(2.4, 6.0)),
    ReferenceRange("LACT", "Lactate", C.OTHER, "mmol/L", 0.5, 2.0, None, 4.0),
    ReferenceRange("NH3", "Ammonia", C.OTHER, "umol/L", 15, 45, None, 100),
    ReferenceRange("HBA1C", "Hemoglobin A1c", C.OTHER, "%", 4.0, 5.6),
    ReferenceRange("LIPASE", "Lipase", C.OTHER, "U/L", 0, 160, None, 600),
    ReferenceRange("AMYLASE", "Amylase", C.OTHER, "U/L", 28, 100, None, 500),
)

REFERENCE_TABLE: Dict[str, ReferenceRange] = {r.test_code: r for r in REFERENCE_RANGES}

# Generic delta-check limit for analytes without their own rule
DEFAULT_DELTA_RULE = DeltaRule(percent_change=15, window_hours=24)


# ── Clinical significance of abnormal flags ─────────────────────────────
# Keyed by test code, then by flag direction (low/high/critical_low/critical_high)

SIGNIFICANCE: Dict[str, Dict[str, str]] = {
    "WBC": {
        "low": "Leukopenia - increased infection risk, consider infectious, drug-induced, or bone marrow cause",
        "high": "Leukocytosis - consider infection, inflammation, stress, or malignancy",
        "critical_low": "Severe leukopenia - neutropenic precautions, high infection risk",
        "critical_high": "Markedly elevated - consider leukemoid reaction, sepsis, or leukemia",
    },
    "HGB": {
        "low": "Anemia - assess for bleeding, iron deficiency, or chronic disease",
        "high": "Polycythemia - consider dehydration or primary polycythemia",
        "critical_low": "Severe anemia - transfusion may be indicated, assess hemodynamic status",
        "critical_high": "Polycythemia - increased thrombosis risk",
    },
    "K": {
        "low": "Hypokalemia - risk of arrhythmia, muscle weakness",
        "high": "Hyperkalemia - risk of cardiac arrhythmia, verify with repeat draw",
        "critical_low": "Severe hypokalemia - cardiac monitoring, aggressive replacement needed",
        "critical_high": "Severe hyperkalemia - immediate ECG, cardiac monitoring, emergent treatment",
    },
    "NA": {
        "low": "Hyponatremia - assess volume status, medications, and free water intake",
        "high": "Hypernatremia - assess hydration status and free water deficit",
        "critical_low": "Severe hyponatremia - seizure risk, careful correction needed",
        "critical_high": "Severe hypernatremia - careful correction to prevent cerebral edema",
    },
    "GLU": {
        "low": "Hypoglycemia - symptoms include diaphoresis, confusion, tremor",
        "high": "Hyperglycemia - assess diabetes management, stress response",
        "critical_low": "Severe hypoglycemia - IV dextrose indicated, altered mental status risk",
        "critical_high": "Severe hyperglycemia - assess for DKA/HHS, insulin therapy",
    },
    "CR": {
        "high": "Elevated creatinine - assess for AKI vs CKD, review nephrotoxins",
        "critical_high": "Severely elevated creatinine - possible need for dialysis",
    },
    "TROP_I": {
        "high": "Elevated troponin - myocardial injury, correlate with symptoms and ECG",
        "critical_high": "Markedly elevated troponin - acute MI highly likely, activate ACS protocol",
    },
    "PLT": {
        "low": "Thrombocytopenia - bleeding risk, assess for DIC, ITP, drug effect",
        "high": "Thrombocytosis - reactive vs primary, assess for iron deficiency",
        "critical_low": "Severe thrombocytopenia - high bleeding risk, consider platelet transfusion",
        "critical_high": "Marked thrombocytosis - thrombosis risk, hematology consult",
    },
    "CA": {
        "low": "Hypocalcemia - check albumin-corrected value, magnesium and PTH",
        "high": "Hypercalcemia - consider hyperparathyroidism or malignancy",
        "critical_low": "Severe hypocalcemia - tetany and arrhythmia risk, IV calcium indicated",
        "critical_high": "Severe hypercalcemia - IV fluids, cardiac monitoring",
    },
    "MG": {
        "low": "Hypomagnesemia - replete before correcting potassium",
        "critical_low": "Severe hypomagnesemia - torsades risk, IV magnesium indicated",
        "critical_high": "Severe hypermagnesemia - loss of reflexes, respiratory depression risk",
    },
    "INR": {
        "high": "Prolonged INR - review anticoagulation and hepatic synthetic function",
        "critical_high": "Markedly prolonged INR - bleeding risk, hold anticoagulant, consider vitamin K",
    },
    "LACT": {
        "high": "Hyperlactatemia - assess perfusion, screen for sepsis",
        "critical_high": "Severe hyperlactatemia - sepsis/shock protocol, repeat lactate in 2 hours",
    },
}


def get_reference_range(test_code: str) -> Optional[ReferenceRange]:
    return REFERENCE_TABLE.get(test_code.upper())


def get_significance(test_code: str, direction: str) -> str:
    return SIGNIFICANCE.get(test_code, {}).get(
        direction, f"Abnormal {test_code} - clinical correlation required"
    )
