"""
Clinical calculators.

Pure scoring helpers: CKD staging, Cockcroft-Gault creatinine clearance, BMI,
corrected QT and the CHA2DS2-VASc stroke-risk score used by the atrial
fibrillation rule.
"""
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from cdss.exceptions import InvalidClinicalInputError
from cdss.schemas import ClinicalSnapshot


@dataclass
class CKDStage:
    """KDIGO CKD stage for an eGFR value."""
    egfr: float
    stage: str  # 1, 2, 3a, 3b, 4, 5
    description: str
    recommendations: List[str]

    @property
    def kdigo_classification(self) -> str:
        return f"CKD G{self.stage}"


@dataclass
class CreatinineClearance:
    """Cockcroft-Gault estimate."""
    value: float  # mL/min
    category: str
    formula: str = "Cockcroft-Gault"


@dataclass
class BMIResult:
    value: float
    category: str
    recommendations: List[str]
    ideal_weight_range: Dict[str, int] = field(default_factory=dict)


@dataclass
class QTcResult:
    qtc: int  # ms
    formula: str
    interpretation: str
    risk_level: str  # low, borderline, moderate, high
    recommendations: List[str]


# (lower eGFR bound, stage, description, recommendations), checked top-down
CKD_STAGES = [
    (90, "1", "Normal or increased GFR", [
        "Treat the underlying cause if present",
        "Reduce cardiovascular risk factors",
        "Annual follow-up",
    ]),
    (60, "2", "Mildly decreased GFR", [
        "Estimate progression",
        "Control blood pressure (target <130/80)",
        "Avoid nephrotoxic agents",
        "Annual follow-up",
    ]),
    (45, "3a", "Mildly to moderately decreased GFR", [
        "Refer to nephrology if proteinuria",
        "Adjust medications to GFR",
        "Monitor anemia and mineral bone disorder",
        "Follow-up every 6 months",
    ]),
    (30, "3b", "Moderately to severely decreased GFR", [
        "Nephrology follow-up recommended",
        "Treat anemia and calcium-phosphate disorders",
        "Hepatitis B vaccination",
        "Follow-up every 3-6 months",
    ]),
    (15, "4", "Severely decreased GFR", [
        "Nephrology follow-up required",
        "Prepare for renal replacement therapy",
        "Patient education (HD, PD, transplant)",
        "Create vascular access if HD planned",
        "Follow-up every 1-3 months",
    ]),
    (0, "5", "Kidney failure", [
        "Initiate renal replacement therapy",
        "Transplant evaluation",
        "Manage uremic symptoms",
        "Monthly follow-up",
    ]),
]


def _require_range(name: str, value: Optional[float], low: float, high: float) -> float:
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidClinicalInputError(f"{name} must be a number")
    if math.isnan(value) or value < low or value > high:
        raise InvalidClinicalInputError(f"{name} {value} outside {low}-{high}")
    return float(value)


def ckd_stage(egfr: float) -> CKDStage:
    """
    Classify CKD stage from eGFR.

    Args:
        egfr: eGFR in mL/min/1.73m²

    Returns:
        CKDStage with KDIGO stage and follow-up recommendations
    """
    egfr = _require_range("eGFR", egfr, 0, 200)
    # last band starts at 0, so next() always finds one
    lower, stage, description, recommendations = next(
        band for band in CKD_STAGES if egfr >= band[0]
    )
    return CKDStage(egfr=egfr, stage=stage, description=description,
                    recommendations=list(recommendations))


def creatinine_clearance(age: float, weight_kg: float, sex: str, creatinine: float) -> CreatinineClearance:
    """
    Cockcroft-Gault creatinine clearance, used for drug dosing.

    Args:
        age: years (18-120)
        weight_kg: body weight (30-300)
        sex: "male" or "female"
        creatinine: serum creatinine mg/dL (0.1-20)
    """
    age = _require_range("age", age, 18, 120)
    weight_kg = _require_range("weight", weight_kg, 30, 300)
    creatinine = _require_range("creatinine", creatinine, 0.1, 20)
    sex_norm = sex.strip().lower() if isinstance(sex, str) else ""
    if sex_norm not in ("male", "female"):
        raise InvalidClinicalInputError(f"sex must be 'male' or 'female', got {sex!r}")

    crcl = ((140 - age) * weight_kg) / (72 * creatinine)
    if sex_norm == "female":
        crcl *= 0.85

    if crcl >= 90:
        category = "Normal"
    elif crcl >= 60:
        category = "Mild decrease"
    elif crcl >= 30:
        category = "Moderate decrease"
    elif crcl >= 15:
        category = "Severe decrease"
    else:
        category = "Kidney failure"

    return CreatinineClearance(value=round(crcl, 1), category=category)


def bmi(weight_kg: float, height_cm: float) -> BMIResult:
    """Body mass index with WHO category."""
    weight_kg = _require_range("weight", weight_kg, 20, 500)
    height_cm = _require_range("height", height_cm, 100, 250)

    height_m = height_cm / 100
    value = weight_kg / (height_m * height_m)

    if value < 18.5:
        category = "Underweight"
        recommendations = ["Nutritional assessment", "Look for an underlying cause"]
    elif value < 25:
        category = "Normal weight"
        recommendations = ["Maintain regular physical activity", "Balanced diet"]
    elif value < 30:
        category = "Overweight"
        recommendations = ["Lifestyle and dietary advice", "Increase physical activity",
                           "Screen for metabolic complications"]
    elif value < 35:
        category = "Obesity class I"
        recommendations = ["Nutritional management", "Physical activity program",
                           "Screen for diabetes, hypertension, dyslipidemia"]
    elif value < 40:
        category = "Obesity class II"
        recommendations = ["Multidisciplinary management", "Consider pharmacotherapy",
                           "Assess comorbidities"]
    else:
        category = "Obesity class III"
        recommendations = ["Evaluate for bariatric surgery", "Specialist management",
                           "Close follow-up"]

    return BMIResult(
        value=round(value, 1),
        category=category,
        recommendations=recommendations,
        ideal_weight_range={
            "min": round(18.5 * height_m * height_m),
            "max": round(24.9 * height_m * height_m),
        },
    )


def corrected_qt(qt_ms: float, heart_rate: float, formula: str = "bazett") -> QTcResult:
    """
    Heart-rate corrected QT interval.

    Args:
        qt_ms: measured QT in ms (200-800)
        heart_rate: bpm (30-200)
        formula: bazett, fridericia or framingham
    """
    qt_ms = _require_range("QT", qt_ms, 200, 800)
    heart_rate = _require_range("heart rate", heart_rate, 30, 200)
    rr = 60000 / heart_rate  # ms

    if formula == "fridericia":
        qtc = qt_ms / math.pow(rr / 1000, 1 / 3)
    elif formula == "framingham":
        qtc = qt_ms + 0.154 * (1000 - rr)
    elif formula == "bazett":
        qtc = qt_ms / math.sqrt(rr / 1000)
    else:
        raise InvalidClinicalInputError(f"Unknown QTc formula '{formula}'")

    if qtc < 440:
        interpretation, risk_level = "Normal QTc", "low"
    elif qtc < 460:
        interpretation, risk_level = "Borderline QTc", "borderline"
    elif qtc < 500:
        interpretation, risk_level = "Prolonged QTc", "moderate"
    else:
        interpretation, risk_level = "Severely prolonged QTc - torsades de pointes risk", "high"

    recommendations = []
    if qtc >= 500:
        recommendations = [
            "Review QT-prolonging medications",
            "Correct hypokalemia / hypomagnesemia",
            "ECG monitoring",
            "Consider admission if symptomatic",
        ]

    return QTcResult(
        qtc=round(qtc),
        formula=formula,
        interpretation=interpretation,
        risk_level=risk_level,
        recommendations=recommendations,
    )


def cha2ds2_vasc(snapshot: ClinicalSnapshot) -> int:
    """
    CHA2DS2-VASc stroke risk score.

    Missing items score zero; never raises on a sparse snapshot.
    """
    score = 0
    cardiology = snapshot.cardiology
    vitals = snapshot.vitals
    age = snapshot.demographics.age

    if cardiology is not None and cardiology.has_chf:
        score += 1
    if (vitals is not None and vitals.systolic_bp is not None and vitals.systolic_bp >= 140) \
            or snapshot.has_condition("hypertension"):
        score += 1
    if age is not None:
        if age >= 75:
            score += 2
        elif age >= 65:
            score += 1
    if snapshot.has_condition("diabetes"):
        score += 1
    if snapshot.has_condition("stroke", "tia"):
        score += 2
    if cardiology is not None and cardiology.has_cad:
        score += 1
    if (snapshot.demographics.sex or "").lower() == "female":
        score += 1
    return score
