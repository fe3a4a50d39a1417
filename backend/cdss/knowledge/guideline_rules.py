"""
Clinical Guideline Rules.

Curated guideline rules evaluated by the CDSS engine, grouped by module:
- Dialysis (KDIGO): Kt/V, phosphorus, PTH, anemia, potassium
- Cardiology (ESC): LVEF, AF anticoagulation, blood pressure, troponin, LDL
- Ophthalmology (AAO): intraocular pressure, DME, wet AMD
- General safety: severe renal impairment, HbA1c

Every condition returns False when a value it needs is missing. A rule
never fires on an absent field.
"""
from collections import Counter
from dataclasses import dataclass, replace
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union
import logging

from cdss.calculators import cha2ds2_vasc
from cdss.config import Settings, get_settings
from cdss.constants import AlertCategory, AlertSeverity, GuidelineSource, Module, Thresholds
from cdss.exceptions import DuplicateRuleError, UnknownModuleError
from cdss.schemas import ActiveRulesCount, AlertDraft, ClinicalSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rule:
    """A guideline rule: a predicate over a snapshot plus an alert generator."""
    id: str
    name: str
    description: str
    category: AlertCategory
    module: Module
    guideline_source: GuidelineSource
    priority: int  # reserved, not used for ordering
    condition: Callable[[ClinicalSnapshot], bool]
    generate_alert: Callable[[ClinicalSnapshot], AlertDraft]
    is_active: bool = True


# ==================== Snapshot accessors ====================

def _lab(snapshot: ClinicalSnapshot, name: str) -> Optional[float]:
    if snapshot.labs is None:
        return None
    return getattr(snapshot.labs, name)


def _on_dialysis(snapshot: ClinicalSnapshot) -> bool:
    return snapshot.dialysis is not None and snapshot.dialysis.is_on_dialysis


def _ktv(snapshot: ClinicalSnapshot) -> Optional[float]:
    return snapshot.dialysis.ktv if snapshot.dialysis is not None else None


def _lvef(snapshot: ClinicalSnapshot) -> Optional[float]:
    return snapshot.cardiology.lvef if snapshot.cardiology is not None else None


def _blood_pressure(snapshot: ClinicalSnapshot) -> Tuple[Optional[float], Optional[float]]:
    if snapshot.vitals is None:
        return None, None
    return snapshot.vitals.systolic_bp, snapshot.vitals.diastolic_bp


def _iop_values(snapshot: ClinicalSnapshot) -> List[float]:
    ophthalmology = snapshot.ophthalmology
    if ophthalmology is None or ophthalmology.iop is None:
        return []
    return [v for v in (ophthalmology.iop.left, ophthalmology.iop.right) if v is not None]


def _fmt(value: Optional[float]) -> str:
    return "n/a" if value is None else f"{value:g}"


# ==================== Dialysis (KDIGO) ====================

def _ktv_condition(snapshot: ClinicalSnapshot) -> bool:
    ktv = _ktv(snapshot)
    return _on_dialysis(snapshot) and ktv is not None and ktv < Thresholds.KTV_TARGET


def _ktv_alert(snapshot: ClinicalSnapshot) -> AlertDraft:
    ktv = _ktv(snapshot)
    return AlertDraft(
        category=AlertCategory.GUIDELINE,
        severity=AlertSeverity.CRITICAL if ktv < Thresholds.KTV_CRITICAL else AlertSeverity.WARNING,
        title="Inadequate dialysis - Kt/V below target",
        message=f"Current Kt/V ({ktv:.2f}) is below the KDIGO target of {Thresholds.KTV_TARGET}",
        guideline_source=GuidelineSource.KDIGO,
        guideline_reference="KDIGO 2015 Hemodialysis Guidelines",
        recommendations=[
            "Increase dialysis session duration",
            "Increase blood flow rate if tolerated",
            "Check vascular access for recirculation",
            "Consider a larger surface area dialyzer",
            "Reassess the patient's dry weight",
        ],
        data={"ktv": ktv, "target": Thresholds.KTV_TARGET},
    )


def _phosphorus_condition(snapshot: ClinicalSnapshot) -> bool:
    phosphorus = _lab(snapshot, "phosphorus")
    return _on_dialysis(snapshot) and phosphorus is not None and phosphorus > Thresholds.PHOSPHORUS_HIGH


def _phosphorus_alert(snapshot: ClinicalSnapshot) -> AlertDraft:
    phosphorus = _lab(snapshot, "phosphorus")
    critical = phosphorus > Thresholds.PHOSPHORUS_CRITICAL
    return AlertDraft(
        category=AlertCategory.LAB,
        severity=AlertSeverity.CRITICAL if critical else AlertSeverity.WARNING,
        title="Hyperphosphatemia",
        message=f"Elevated phosphorus ({_fmt(phosphorus)} mg/dL) - target 3.5-5.5 mg/dL",
        guideline_source=GuidelineSource.KDIGO,
        guideline_reference="KDIGO CKD-MBD 2017",
        recommendations=[
            "Reinforce dietary phosphorus restriction",
            "Optimize phosphate binders",
            "Check treatment adherence",
            "Consider longer or more frequent dialysis",
        ],
        data={"phosphorus": phosphorus},
    )


def _pth_condition(snapshot: ClinicalSnapshot) -> bool:
    pth = _lab(snapshot, "pth")
    return _on_dialysis(snapshot) and pth is not None and pth > Thresholds.PTH_HIGH


def _pth_alert(snapshot: ClinicalSnapshot) -> AlertDraft:
    pth = _lab(snapshot, "pth")
    return AlertDraft(
        category=AlertCategory.LAB,
        severity=AlertSeverity.CRITICAL if pth > Thresholds.PTH_CRITICAL else AlertSeverity.WARNING,
        title="Secondary hyperparathyroidism",
        message=f"Elevated PTH ({_fmt(pth)} pg/mL) - target 2-9x upper normal (130-600 pg/mL)",
        guideline_source=GuidelineSource.KDIGO,
        guideline_reference="KDIGO CKD-MBD 2017",
        recommendations=[
            "Optimize calcium and phosphorus levels",
            "Start or adjust a calcimimetic (cinacalcet)",
            "Consider active vitamin D if calcium allows",
            "Refer for parathyroidectomy if PTH is refractory (>1000 pg/mL)",
        ],
        data={"pth": pth},
    )


def _anemia_condition(snapshot: ClinicalSnapshot) -> bool:
    hemoglobin = _lab(snapshot, "hemoglobin")
    return hemoglobin is not None and hemoglobin < Thresholds.HEMOGLOBIN_LOW


def _anemia_alert(snapshot: ClinicalSnapshot) -> AlertDraft:
    hemoglobin = _lab(snapshot, "hemoglobin")
    critical = hemoglobin < Thresholds.HEMOGLOBIN_CRITICAL
    return AlertDraft(
        category=AlertCategory.LAB,
        severity=AlertSeverity.CRITICAL if critical else AlertSeverity.WARNING,
        title="Anemia",
        message=f"Low hemoglobin ({_fmt(hemoglobin)} g/dL) - target 10-11.5 g/dL",
        guideline_source=GuidelineSource.KDIGO,
        guideline_reference="KDIGO Anemia Guidelines 2012",
        recommendations=[
            "Check iron stores (ferritin, TSAT)",
            "Give IV iron if deficient",
            "Adjust erythropoiesis-stimulating agents",
            "Look for causes of ESA resistance",
            "Rule out occult bleeding",
        ],
        data={"hemoglobin": hemoglobin},
    )


def _potassium_condition(snapshot: ClinicalSnapshot) -> bool:
    potassium = _lab(snapshot, "potassium")
    return potassium is not None and potassium > Thresholds.POTASSIUM_HIGH


def _potassium_alert(snapshot: ClinicalSnapshot) -> AlertDraft:
    potassium = _lab(snapshot, "potassium")
    critical = potassium > Thresholds.POTASSIUM_CRITICAL
    return AlertDraft(
        category=AlertCategory.LAB,
        severity=AlertSeverity.CRITICAL if critical else AlertSeverity.WARNING,
        title="Hyperkalemia",
        message=f"Elevated potassium ({_fmt(potassium)} mEq/L) - risk of cardiac arrhythmia",
        guideline_source=GuidelineSource.KDIGO,
        guideline_reference="KDIGO AKI Guidelines",
        recommendations=[
            "URGENT: immediate ECG, consider emergency dialysis" if critical
            else "Follow-up ECG recommended",
            "Dietary potassium restriction",
            "Review potassium-raising drugs (ACE inhibitors, ARBs, spironolactone)",
            "Potassium binders (sodium polystyrene sulfonate, patiromer)",
            "Consider more frequent dialysis",
        ],
        data={"potassium": potassium},
    )


# ==================== Cardiology (ESC) ====================

def _lvef_condition(snapshot: ClinicalSnapshot) -> bool:
    lvef = _lvef(snapshot)
    return lvef is not None and lvef < Thresholds.LVEF_REDUCED


def _lvef_alert(snapshot: ClinicalSnapshot) -> AlertDraft:
    lvef = _lvef(snapshot)
    return AlertDraft(
        category=AlertCategory.GUIDELINE,
        severity=AlertSeverity.CRITICAL if lvef < Thresholds.LVEF_CRITICAL else AlertSeverity.WARNING,
        title="Heart failure with reduced ejection fraction (HFrEF)",
        message=f"LVEF {_fmt(lvef)}% - HFrEF classification (<40%)",
        guideline_source=GuidelineSource.ESC,
        guideline_reference="ESC Heart Failure Guidelines 2021",
        recommendations=[
            "Start quadruple therapy unless contraindicated:",
            "  - ACE inhibitor / ARB / ARNI",
            "  - Beta-blocker",
            "  - Mineralocorticoid receptor antagonist",
            "  - SGLT2 inhibitor",
            "Assess CRT/ICD indication if LVEF <= 35%",
            "Optimize diuretic therapy",
            "Sodium restriction and daily weights",
        ],
        data={"lvef": lvef},
    )


def _af_anticoagulation_condition(snapshot: ClinicalSnapshot) -> bool:
    if snapshot.cardiology is None or not snapshot.cardiology.has_af:
        return False
    score = cha2ds2_vasc(snapshot)
    is_male = (snapshot.demographics.sex or "").lower() == "male"
    return score >= 2 or (score >= 1 and is_male)


def _af_anticoagulation_alert(snapshot: ClinicalSnapshot) -> AlertDraft:
    score = cha2ds2_vasc(snapshot)
    return AlertDraft(
        category=AlertCategory.GUIDELINE,
        severity=AlertSeverity.WARNING,
        title="Anticoagulation recommended - atrial fibrillation",
        message=f"Atrial fibrillation with CHA2DS2-VASc score {score} indicating anticoagulation",
        guideline_source=GuidelineSource.ESC,
        guideline_reference="ESC AF Guidelines 2020",
        recommendations=[
            "Start oral anticoagulation (DOAC preferred over VKA)",
            "Calculate HAS-BLED score to assess bleeding risk",
            "Recommended DOACs: apixaban, rivaroxaban, dabigatran, edoxaban",
            "Rate or rhythm control according to symptoms",
            "Educate the patient on stroke warning signs",
        ],
        data={"cha2ds2_vasc": score},
    )


def _blood_pressure_condition(snapshot: ClinicalSnapshot) -> bool:
    systolic, diastolic = _blood_pressure(snapshot)
    if systolic is None:
        return False
    return systolic >= Thresholds.SYSTOLIC_HIGH or (
        diastolic is not None and diastolic >= Thresholds.DIASTOLIC_HIGH
    )


def _blood_pressure_alert(snapshot: ClinicalSnapshot) -> AlertDraft:
    systolic, diastolic = _blood_pressure(snapshot)
    critical = systolic >= Thresholds.SYSTOLIC_CRITICAL
    return AlertDraft(
        category=AlertCategory.VITALS,
        severity=AlertSeverity.CRITICAL if critical else AlertSeverity.WARNING,
        title="Uncontrolled hypertension",
        message=f"BP {_fmt(systolic)}/{_fmt(diastolic)} mmHg - target <140/90 mmHg",
        guideline_source=GuidelineSource.ESC,
        guideline_reference="ESC Hypertension Guidelines 2018",
        recommendations=[
            "URGENT: assess for hypertensive emergency" if critical
            else "Optimize antihypertensive therapy",
            "Dual therapy first line (ACE inhibitor/ARB + CCB or diuretic)",
            "Check medication adherence",
            "Lifestyle measures (salt, weight, exercise)",
            "Confirm with ambulatory or home BP monitoring",
        ],
        data={"systolic_bp": systolic, "diastolic_bp": diastolic},
    )


def _troponin_condition(snapshot: ClinicalSnapshot) -> bool:
    troponin = _lab(snapshot, "troponin")
    return troponin is not None and troponin > Thresholds.TROPONIN_HIGH


def _troponin_alert(snapshot: ClinicalSnapshot) -> AlertDraft:
    troponin = _lab(snapshot, "troponin")
    return AlertDraft(
        category=AlertCategory.LAB,
        severity=AlertSeverity.CRITICAL,
        title="Elevated troponin - suspected ACS",
        message=(
            f"Troponin {_fmt(troponin)} ng/mL (threshold {Thresholds.TROPONIN_HIGH} ng/mL) "
            "- evaluate for acute coronary syndrome"
        ),
        guideline_source=GuidelineSource.ESC,
        guideline_reference="ESC NSTE-ACS Guidelines 2020",
        recommendations=[
            "URGENT: immediate 12-lead ECG",
            "Assess chest pain and risk factors",
            "Calculate GRACE/TIMI score",
            "Consider coronary angiography according to risk",
            "Dual antiplatelet therapy if ACS confirmed",
            "Coronary care unit admission if high risk",
        ],
        data={"troponin": troponin},
    )


def _ldl_target(snapshot: ClinicalSnapshot) -> float:
    very_high_risk = (
        (snapshot.cardiology is not None and snapshot.cardiology.has_cad)
        or snapshot.has_condition("stroke", "diabetes")
    )
    return Thresholds.LDL_TARGET_VERY_HIGH_RISK if very_high_risk else Thresholds.LDL_TARGET


def _ldl_condition(snapshot: ClinicalSnapshot) -> bool:
    ldl = _lab(snapshot, "ldl")
    return ldl is not None and ldl > _ldl_target(snapshot)


def _ldl_alert(snapshot: ClinicalSnapshot) -> AlertDraft:
    ldl = _lab(snapshot, "ldl")
    target = _ldl_target(snapshot)
    return AlertDraft(
        category=AlertCategory.LAB,
        severity=AlertSeverity.WARNING,
        title="LDL cholesterol above target",
        message=f"LDL {_fmt(ldl)} mg/dL - target <{target} mg/dL for this risk level",
        guideline_source=GuidelineSource.ESC,
        guideline_reference="ESC Dyslipidemia Guidelines 2019",
        recommendations=[
            "Intensify to high-intensity statin (atorvastatin 40-80mg, rosuvastatin 20-40mg)",
            "If target not reached: add ezetimibe",
            "If still not reached: consider a PCSK9 inhibitor",
            "Lifestyle measures",
            "Recheck LDL in 4-6 weeks",
        ],
        data={"ldl": ldl, "target": target},
    )


# ==================== Ophthalmology (AAO) ====================

def _iop_condition(snapshot: ClinicalSnapshot) -> bool:
    return any(v > Thresholds.IOP_HIGH for v in _iop_values(snapshot))


def _iop_alert(snapshot: ClinicalSnapshot) -> AlertDraft:
    iop = snapshot.ophthalmology.iop
    critical = any(v > Thresholds.IOP_CRITICAL for v in _iop_values(snapshot))
    return AlertDraft(
        category=AlertCategory.VITALS,
        severity=AlertSeverity.CRITICAL if critical else AlertSeverity.WARNING,
        title="Elevated intraocular pressure",
        message=f"IOP: right {_fmt(iop.right)} mmHg, left {_fmt(iop.left)} mmHg - normal 10-21 mmHg",
        guideline_source=GuidelineSource.AAO,
        guideline_reference="AAO Glaucoma PPP 2020",
        recommendations=[
            "Corneal pachymetry to correct IOP",
            "Optic nerve examination (cup/disc ratio)",
            "Baseline visual field",
            "RNFL OCT if glaucoma suspected",
            "Consider IOP-lowering therapy if risk factors present",
        ],
        data={"iop_left": iop.left, "iop_right": iop.right},
    )


def _dme_condition(snapshot: ClinicalSnapshot) -> bool:
    return snapshot.ophthalmology is not None and snapshot.ophthalmology.has_dme


def _dme_alert(snapshot: ClinicalSnapshot) -> AlertDraft:
    return AlertDraft(
        category=AlertCategory.GUIDELINE,
        severity=AlertSeverity.WARNING,
        title="Diabetic macular edema",
        message="DME detected - anti-VEGF therapy recommended",
        guideline_source=GuidelineSource.AAO,
        guideline_reference="AAO Diabetic Retinopathy PPP 2019",
        recommendations=[
            "Start anti-VEGF injections (aflibercept, ranibizumab, bevacizumab)",
            "Monthly OCT to follow macular thickness",
            "Optimize glycemic control (HbA1c <7%)",
            "Control blood pressure and lipids",
            "Consider focal laser if DME persists",
            "Coordinate with the diabetologist",
        ],
    )


def _amd_condition(snapshot: ClinicalSnapshot) -> bool:
    return snapshot.ophthalmology is not None and snapshot.ophthalmology.has_amd


def _amd_alert(snapshot: ClinicalSnapshot) -> AlertDraft:
    return AlertDraft(
        category=AlertCategory.GUIDELINE,
        severity=AlertSeverity.CRITICAL,
        title="Wet age-related macular degeneration",
        message="Neovascular AMD - urgent anti-VEGF therapy",
        guideline_source=GuidelineSource.AAO,
        guideline_reference="AAO AMD PPP 2019",
        recommendations=[
            "URGENT: start anti-VEGF within 2 weeks",
            "Loading phase: 3 monthly injections",
            "Then treat-and-extend or PRN",
            "Follow-up OCT and angiography",
            "Smoking cessation",
            "AREDS2 supplementation for the fellow eye",
        ],
    )


# ==================== General safety ====================

def _severe_renal_condition(snapshot: ClinicalSnapshot) -> bool:
    egfr = _lab(snapshot, "egfr")
    return egfr is not None and egfr < Thresholds.EGFR_SEVERE and not _on_dialysis(snapshot)


def _severe_renal_alert(snapshot: ClinicalSnapshot) -> AlertDraft:
    egfr = _lab(snapshot, "egfr")
    failure = egfr < Thresholds.EGFR_FAILURE
    return AlertDraft(
        category=AlertCategory.LAB,
        severity=AlertSeverity.CRITICAL if failure else AlertSeverity.WARNING,
        title="Severe renal impairment",
        message=f"eGFR {_fmt(egfr)} mL/min/1.73m² - CKD stage {'5' if failure else '4'}",
        guideline_source=GuidelineSource.KDIGO,
        guideline_reference="KDIGO CKD Guidelines 2012",
        recommendations=[
            "Urgent nephrology referral - prepare renal replacement therapy" if failure
            else "Close nephrology follow-up",
            "Adjust drug doses to GFR",
            "Avoid nephrotoxic agents (NSAIDs, contrast media)",
            "Vaccinate (hepatitis B, influenza, pneumococcus)",
            "Educate the patient on renal replacement options",
        ],
        data={"egfr": egfr},
    )


def _hba1c_condition(snapshot: ClinicalSnapshot) -> bool:
    hba1c = _lab(snapshot, "hba1c")
    return hba1c is not None and hba1c > Thresholds.HBA1C_HIGH


def _hba1c_alert(snapshot: ClinicalSnapshot) -> AlertDraft:
    hba1c = _lab(snapshot, "hba1c")
    return AlertDraft(
        category=AlertCategory.LAB,
        severity=AlertSeverity.CRITICAL if hba1c > Thresholds.HBA1C_CRITICAL else AlertSeverity.WARNING,
        title="Poor glycemic control",
        message=f"HbA1c {_fmt(hba1c)}% - target generally <7%",
        guideline_source=GuidelineSource.AHA,
        guideline_reference="ADA Standards of Care 2024",
        recommendations=[
            "Optimize glucose-lowering therapy",
            "Prefer SGLT2 inhibitor or GLP-1 RA if cardiovascular or renal disease",
            "Reinforce patient education",
            "Screen for complications (retinopathy, nephropathy, neuropathy)",
            "Individualize the target to the patient profile",
        ],
        data={"hba1c": hba1c},
    )


GUIDELINE_RULES: Tuple[Rule, ...] = (
    # Dialysis
    Rule(
        id="kdigo-ktv-001",
        name="Inadequate Dialysis Kt/V",
        description="Kt/V below target per KDIGO guidelines",
        category=AlertCategory.GUIDELINE,
        module=Module.DIALYSE,
        guideline_source=GuidelineSource.KDIGO,
        priority=1,
        condition=_ktv_condition,
        generate_alert=_ktv_alert,
    ),
    Rule(
        id="kdigo-phosphorus-001",
        name="Hyperphosphatemia",
        description="Elevated phosphorus per KDIGO guidelines",
        category=AlertCategory.LAB,
        module=Module.DIALYSE,
        guideline_source=GuidelineSource.KDIGO,
        priority=2,
        condition=_phosphorus_condition,
        generate_alert=_phosphorus_alert,
    ),
    Rule(
        id="kdigo-pth-001",
        name="Secondary Hyperparathyroidism",
        description="Elevated PTH in dialysis patient",
        category=AlertCategory.LAB,
        module=Module.DIALYSE,
        guideline_source=GuidelineSource.KDIGO,
        priority=2,
        condition=_pth_condition,
        generate_alert=_pth_alert,
    ),
    Rule(
        id="kdigo-anemia-001",
        name="Anemia in CKD/Dialysis",
        description="Hemoglobin below target",
        category=AlertCategory.LAB,
        module=Module.DIALYSE,
        guideline_source=GuidelineSource.KDIGO,
        priority=2,
        condition=_anemia_condition,
        generate_alert=_anemia_alert,
    ),
    Rule(
        id="kdigo-potassium-001",
        name="Hyperkalemia",
        description="Elevated potassium - life threatening",
        category=AlertCategory.LAB,
        module=Module.DIALYSE,
        guideline_source=GuidelineSource.KDIGO,
        priority=1,
        condition=_potassium_condition,
        generate_alert=_potassium_alert,
    ),
    # Cardiology
    Rule(
        id="esc-hf-lvef-001",
        name="Reduced LVEF Heart Failure",
        description="LVEF < 40% per ESC guidelines",
        category=AlertCategory.GUIDELINE,
        module=Module.CARDIOLOGY,
        guideline_source=GuidelineSource.ESC,
        priority=1,
        condition=_lvef_condition,
        generate_alert=_lvef_alert,
    ),
    Rule(
        id="esc-af-chadsvasc-001",
        name="AF Anticoagulation Required",
        description="CHA2DS2-VASc indicates anticoagulation",
        category=AlertCategory.GUIDELINE,
        module=Module.CARDIOLOGY,
        guideline_source=GuidelineSource.ESC,
        priority=1,
        condition=_af_anticoagulation_condition,
        generate_alert=_af_anticoagulation_alert,
    ),
    Rule(
        id="esc-bp-001",
        name="Uncontrolled Hypertension",
        description="Blood pressure above target",
        category=AlertCategory.VITALS,
        module=Module.CARDIOLOGY,
        guideline_source=GuidelineSource.ESC,
        priority=2,
        condition=_blood_pressure_condition,
        generate_alert=_blood_pressure_alert,
    ),
    Rule(
        id="esc-acs-troponin-001",
        name="Elevated Troponin - ACS",
        description="Elevated cardiac markers suggesting ACS",
        category=AlertCategory.LAB,
        module=Module.CARDIOLOGY,
        guideline_source=GuidelineSource.ESC,
        priority=1,
        condition=_troponin_condition,
        generate_alert=_troponin_alert,
    ),
    Rule(
        id="esc-lipids-001",
        name="LDL Above Target",
        description="LDL cholesterol above cardiovascular risk target",
        category=AlertCategory.LAB,
        module=Module.CARDIOLOGY,
        guideline_source=GuidelineSource.ESC,
        priority=2,
        condition=_ldl_condition,
        generate_alert=_ldl_alert,
    ),
    # Ophthalmology
    Rule(
        id="aao-iop-001",
        name="Elevated IOP - Glaucoma Risk",
        description="Intraocular pressure above normal",
        category=AlertCategory.VITALS,
        module=Module.OPHTHALMOLOGY,
        guideline_source=GuidelineSource.AAO,
        priority=2,
        condition=_iop_condition,
        generate_alert=_iop_alert,
    ),
    Rule(
        id="aao-dme-001",
        name="Diabetic Macular Edema",
        description="DME requiring treatment",
        category=AlertCategory.GUIDELINE,
        module=Module.OPHTHALMOLOGY,
        guideline_source=GuidelineSource.AAO,
        priority=1,
        condition=_dme_condition,
        generate_alert=_dme_alert,
    ),
    Rule(
        id="aao-amd-001",
        name="Wet AMD Detected",
        description="Neovascular AMD requiring urgent treatment",
        category=AlertCategory.GUIDELINE,
        module=Module.OPHTHALMOLOGY,
        guideline_source=GuidelineSource.AAO,
        priority=1,
        condition=_amd_condition,
        generate_alert=_amd_alert,
    ),
    # General
    Rule(
        id="safety-egfr-001",
        name="Severe Renal Impairment",
        description="eGFR indicating severe CKD",
        category=AlertCategory.LAB,
        module=Module.GENERAL,
        guideline_source=GuidelineSource.KDIGO,
        priority=1,
        condition=_severe_renal_condition,
        generate_alert=_severe_renal_alert,
    ),
    Rule(
        id="safety-glucose-001",
        name="Hyperglycemia",
        description="Elevated HbA1c",
        category=AlertCategory.LAB,
        module=Module.GENERAL,
        guideline_source=GuidelineSource.AHA,
        priority=2,
        condition=_hba1c_condition,
        generate_alert=_hba1c_alert,
    ),
)


def resolve_module(module_filter: Union[Module, str]) -> Module:
    """Coerce a module filter to a Module, raising UnknownModuleError if it names none."""
    try:
        return Module(module_filter)
    except ValueError:
        raise UnknownModuleError(module_filter) from None


class RuleRegistry:
    """
    Immutable, ordered collection of guideline rules.

    Registry order is evaluation order. Changing the rule set means building
    a new registry (see `without`) and swapping the reference.
    """

    def __init__(self, rules: Iterable[Rule]):
        self._rules: Tuple[Rule, ...] = tuple(rules)
        counts = Counter(rule.id for rule in self._rules)
        duplicates = [rule_id for rule_id, n in counts.items() if n > 1]
        if duplicates:
            raise DuplicateRuleError(duplicates)
        self._by_id = {rule.id: rule for rule in self._rules}

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self):
        return iter(self._rules)

    def get_rules(self, module_filter: Optional[Union[Module, str]] = None) -> List[Rule]:
        """
        Rules scoped to a module.

        Args:
            module_filter: module to select; general rules are always included.
                None returns every rule.
        """
        if module_filter is None:
            return list(self._rules)
        module = resolve_module(module_filter)
        return [r for r in self._rules if r.module == module or r.module == Module.GENERAL]

    def get_active_rules_count(self) -> ActiveRulesCount:
        """Count active rules in total and per module."""
        active = [r for r in self._rules if r.is_active]
        by_module: Dict[str, int] = {}
        for rule in active:
            by_module[rule.module.value] = by_module.get(rule.module.value, 0) + 1
        return ActiveRulesCount(total=len(active), by_module=by_module)

    def get_rule(self, rule_id: str) -> Optional[Rule]:
        return self._by_id.get(rule_id)

    def without(self, rule_ids: Iterable[str]) -> "RuleRegistry":
        """New registry with the named rules deactivated. Unknown ids are logged and ignored."""
        disabled = set(rule_ids)
        unknown = disabled - self._by_id.keys()
        if unknown:
            logger.warning(f"Ignoring unknown rule ids: {', '.join(sorted(unknown))}")
        return RuleRegistry(
            replace(rule, is_active=False) if rule.id in disabled else rule
            for rule in self._rules
        )


def build_default_registry(settings: Optional[Settings] = None) -> RuleRegistry:
    """Registry of the bundled guideline rules, minus any disabled in settings."""
    settings = settings or get_settings()
    registry = RuleRegistry(GUIDELINE_RULES)
    disabled = settings.disabled_rule_ids
    if disabled:
        logger.info(f"Disabling rules from settings: {', '.join(disabled)}")
        registry = registry.without(disabled)
    return registry
