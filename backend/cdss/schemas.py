"""
Pydantic schemas for the clinical decision support engine.

Snapshots and results are created per call; knowledge-base records are frozen
so the shared tables cannot be mutated by a caller.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from cdss.constants import (
    AlertCategory,
    AlertSeverity,
    AllergySeverity,
    GuidelineSource,
    InteractionSeverity,
    RenalCategory,
)


# ==================== Clinical snapshot ====================

class Demographics(BaseModel):
    """Patient demographics."""
    age: Optional[int] = Field(None, ge=0, le=150)
    sex: Optional[str] = Field(None, description="male or female")
    weight_kg: Optional[float] = Field(None, gt=0)
    height_cm: Optional[float] = Field(None, gt=0)


class Vitals(BaseModel):
    """Vital signs."""
    systolic_bp: Optional[float] = Field(None, description="Systolic BP mmHg")
    diastolic_bp: Optional[float] = Field(None, description="Diastolic BP mmHg")
    heart_rate: Optional[float] = Field(None, description="Heart rate bpm")
    temperature: Optional[float] = Field(None, description="Temperature °C")
    oxygen_saturation: Optional[float] = Field(None, description="SpO2 %")


class Labs(BaseModel):
    """Lab values, all optional."""
    creatinine: Optional[float] = Field(None, description="Creatinine mg/dL")
    egfr: Optional[float] = Field(None, description="eGFR mL/min/1.73m²")
    potassium: Optional[float] = Field(None, description="Potassium mEq/L")
    hemoglobin: Optional[float] = Field(None, description="Hemoglobin g/dL")
    hba1c: Optional[float] = Field(None, description="HbA1c percentage")
    cholesterol_total: Optional[float] = Field(None, description="Total cholesterol mg/dL")
    ldl: Optional[float] = Field(None, description="LDL mg/dL")
    hdl: Optional[float] = Field(None, description="HDL mg/dL")
    triglycerides: Optional[float] = Field(None, description="Triglycerides mg/dL")
    calcium: Optional[float] = Field(None, description="Calcium mg/dL")
    phosphorus: Optional[float] = Field(None, description="Phosphorus mg/dL")
    pth: Optional[float] = Field(None, description="PTH pg/mL")
    albumin: Optional[float] = Field(None, description="Albumin g/dL")
    inr: Optional[float] = None
    bnp: Optional[float] = Field(None, description="BNP pg/mL")
    troponin: Optional[float] = Field(None, description="Troponin ng/mL")


class MedicationEntry(BaseModel):
    """A medication the patient is taking."""
    name: str = Field(..., min_length=1)
    dose: Optional[str] = None
    frequency: Optional[str] = None
    atc_code: Optional[str] = None


class DialysisProfile(BaseModel):
    """Dialysis sub-profile."""
    is_on_dialysis: bool = False
    ktv: Optional[float] = Field(None, ge=0)
    access_type: Optional[str] = None
    last_session_date: Optional[datetime] = None


class CardiologyProfile(BaseModel):
    """Cardiology sub-profile."""
    lvef: Optional[float] = Field(None, ge=0, le=100, description="LVEF %")
    has_af: bool = False
    has_chf: bool = False
    has_cad: bool = False
    has_pacemaker: bool = False
    has_stent: bool = False


class IntraocularPressure(BaseModel):
    """IOP per eye in mmHg."""
    left: Optional[float] = None
    right: Optional[float] = None


class OphthalmologyProfile(BaseModel):
    """Ophthalmology sub-profile."""
    iop: Optional[IntraocularPressure] = None
    has_dme: bool = False
    has_amd: bool = False
    has_glaucoma: bool = False


class ClinicalSnapshot(BaseModel):
    """
    Point-in-time clinical picture of one patient.

    Every section is optional; rules treat a missing section or field as
    "does not apply".
    """
    patient_id: str = Field(..., min_length=1)
    demographics: Demographics = Field(default_factory=Demographics)
    vitals: Optional[Vitals] = None
    labs: Optional[Labs] = None
    conditions: List[str] = Field(default_factory=list)
    medications: List[MedicationEntry] = Field(default_factory=list)
    allergies: List[str] = Field(default_factory=list)
    dialysis: Optional[DialysisProfile] = None
    cardiology: Optional[CardiologyProfile] = None
    ophthalmology: Optional[OphthalmologyProfile] = None

    def has_condition(self, *names: str) -> bool:
        """True when any condition tag equals one of the names (case-insensitive)."""
        wanted = {n.lower() for n in names}
        return any(c.strip().lower() in wanted for c in self.conditions if isinstance(c, str))


# ==================== Alerts ====================

class AlertDraft(BaseModel):
    """Alert content produced by a rule before identity is attached."""
    category: AlertCategory
    severity: AlertSeverity
    title: str
    message: str
    guideline_source: Optional[GuidelineSource] = None
    guideline_reference: Optional[str] = None
    recommendations: List[str] = Field(default_factory=list)
    data: Optional[Dict[str, Any]] = None


class Alert(AlertDraft):
    """A clinician-facing alert produced by one rule for one patient."""
    id: str
    patient_id: str
    rule_id: str
    created_at: datetime

    # Lifecycle fields, owned by the alert-management collaborator
    expires_at: Optional[datetime] = None
    acknowledged_at: Optional[datetime] = None
    acknowledged_by: Optional[str] = None
    resolved_at: Optional[datetime] = None


class EvaluationSummary(BaseModel):
    """Alert counts; critical includes contraindicated."""
    critical: int = 0
    warning: int = 0
    info: int = 0


class EvaluationResult(BaseModel):
    """Outcome of evaluating one snapshot against the rule registry."""
    patient_id: str
    evaluated_at: datetime
    rules_evaluated: int
    alerts_generated: List[Alert]
    summary: EvaluationSummary
    failed_rules: List[str] = Field(
        default_factory=list,
        description="Ids of rules that raised during this evaluation"
    )


class ActiveRulesCount(BaseModel):
    """Active rule counts, total and per module."""
    total: int
    by_module: Dict[str, int]


# ==================== Interaction knowledge base ====================

class InteractionRecord(BaseModel):
    """Drug-drug interaction."""
    model_config = ConfigDict(frozen=True)

    drug_a: str
    drug_b: str
    severity: InteractionSeverity
    mechanism: str
    effect: str
    management: str
    references: Tuple[str, ...] = ()


class DrugDiseaseRecord(BaseModel):
    """Drug-disease interaction."""
    model_config = ConfigDict(frozen=True)

    drug: str
    condition: str
    severity: InteractionSeverity
    mechanism: str
    effect: str
    management: str


class AllergyCrossReactivityRecord(BaseModel):
    """Drug / allergen cross-reactivity."""
    model_config = ConfigDict(frozen=True)

    drug: str
    allergen: str
    cross_reactivity: bool
    severity: AllergySeverity
    recommendation: str


class RenalDoseAdjustmentRecord(BaseModel):
    """Dose guidance by eGFR band."""
    model_config = ConfigDict(frozen=True)

    drug: str
    normal_dose: str
    egfr_30_59: str
    egfr_15_29: str
    egfr_below_15: str
    dialysis: str
    notes: str

    def dose_for(self, category: RenalCategory) -> str:
        """Dose string for a renal category."""
        return {
            RenalCategory.NORMAL: self.normal_dose,
            RenalCategory.EGFR_30_59: self.egfr_30_59,
            RenalCategory.EGFR_15_29: self.egfr_15_29,
            RenalCategory.EGFR_BELOW_15: self.egfr_below_15,
            RenalCategory.DIALYSIS: self.dialysis,
        }[category]


class RenalDoseGuidance(BaseModel):
    """Renal dose record resolved for one patient's renal function."""
    adjustment: RenalDoseAdjustmentRecord
    applicable_dose: str
    renal_category: RenalCategory
    patient_egfr: Optional[float] = None
    is_on_dialysis: bool = False


class InteractionSummary(BaseModel):
    """Findings counted per canonical severity bucket."""
    contraindicated: int = 0
    major: int = 0
    moderate: int = 0
    minor: int = 0


class InteractionCheckResult(BaseModel):
    """Results of checking a medication list."""
    drug_drug_interactions: List[InteractionRecord] = Field(default_factory=list)
    drug_disease_interactions: List[DrugDiseaseRecord] = Field(default_factory=list)
    allergy_alerts: List[AllergyCrossReactivityRecord] = Field(default_factory=list)
    renal_adjustments: List[RenalDoseAdjustmentRecord] = Field(default_factory=list)
    summary: InteractionSummary = Field(default_factory=InteractionSummary)
