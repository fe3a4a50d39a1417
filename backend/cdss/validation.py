"""
Validation harness for the guideline rules and interaction tables.

Contains curated clinical cases with the expected outcome and a runner that
can be used in nightly regression or unit tests.

    python -m cdss.validation
"""
from typing import Any, Dict, List, Optional
import logging

from cdss.config import get_settings
from cdss.constants import severity_rank, to_bucket
from cdss.schemas import ClinicalSnapshot
from cdss.services.evaluation_service import create_evaluation_service
from cdss.services.interaction_service import create_interaction_service


class EvaluationCase:
    """A snapshot and the most severe alert it should produce (None for no alert)."""

    def __init__(
        self,
        name: str,
        snapshot: Dict[str, Any],
        expected_severity: Optional[str],
        expected_rule: Optional[str] = None
    ):
        self.name = name
        self.snapshot = snapshot
        self.expected_severity = expected_severity
        self.expected_rule = expected_rule


class InteractionCase:
    """A medication check and the most severe summary bucket it should hit."""

    def __init__(
        self,
        name: str,
        medications: List[str],
        expected_bucket: Optional[str],
        conditions: Optional[List[str]] = None,
        allergies: Optional[List[str]] = None,
    ):
        self.name = name
        self.medications = medications
        self.conditions = conditions or []
        self.allergies = allergies or []
        self.expected_bucket = expected_bucket


EVALUATION_CASES: List[EvaluationCase] = [
    EvaluationCase(
        name="Dialysis Kt/V 0.9 critical",
        snapshot={"patient_id": "v-ktv", "dialysis": {"is_on_dialysis": True, "ktv": 0.9}},
        expected_severity="critical",
        expected_rule="kdigo-ktv-001",
    ),
    EvaluationCase(
        name="Potassium 6.8 critical",
        snapshot={"patient_id": "v-k", "labs": {"potassium": 6.8}},
        expected_severity="critical",
        expected_rule="kdigo-potassium-001",
    ),
    EvaluationCase(
        name="Elevated troponin critical",
        snapshot={"patient_id": "v-trop", "labs": {"troponin": 0.1}},
        expected_severity="critical",
        expected_rule="esc-acs-troponin-001",
    ),
    EvaluationCase(
        name="LDL 60 in diabetic above very-high-risk target",
        snapshot={"patient_id": "v-ldl-dm", "conditions": ["diabetes"], "labs": {"ldl": 60}},
        expected_severity="warning",
        expected_rule="esc-lipids-001",
    ),
    EvaluationCase(
        name="LDL 60 without risk factors at target",
        snapshot={"patient_id": "v-ldl", "labs": {"ldl": 60}},
        expected_severity=None,
    ),
    EvaluationCase(
        name="AF female aged 70 needs anticoagulation",
        snapshot={
            "patient_id": "v-af-f",
            "demographics": {"age": 70, "sex": "female"},
            "cardiology": {"has_af": True},
        },
        expected_severity="warning",
        expected_rule="esc-af-chadsvasc-001",
    ),
    EvaluationCase(
        name="AF male aged 50 without risk factors",
        snapshot={
            "patient_id": "v-af-m",
            "demographics": {"age": 50, "sex": "male"},
            "cardiology": {"has_af": True},
        },
        expected_severity=None,
    ),
    EvaluationCase(
        name="Severe eGFR already on dialysis",
        snapshot={"patient_id": "v-egfr-hd", "labs": {"egfr": 10}, "dialysis": {"is_on_dialysis": True}},
        expected_severity=None,
    ),
    EvaluationCase(
        name="IOP 32 critical",
        snapshot={"patient_id": "v-iop", "ophthalmology": {"iop": {"right": 32}}},
        expected_severity="critical",
        expected_rule="aao-iop-001",
    ),
    EvaluationCase(
        name="Empty snapshot",
        snapshot={"patient_id": "v-empty"},
        expected_severity=None,
    ),
]

INTERACTION_CASES: List[InteractionCase] = [
    InteractionCase(
        name="Amoxicillin with penicillin allergy",
        medications=["amoxicillin"],
        allergies=["penicillin"],
        expected_bucket="contraindicated",
    ),
    InteractionCase(
        name="Metformin in ESRD",
        medications=["metformin"],
        conditions=["esrd"],
        expected_bucket="contraindicated",
    ),
    InteractionCase(
        name="Amiodarone with sotalol",
        medications=["amiodarone", "sotalol"],
        expected_bucket="contraindicated",
    ),
    InteractionCase(
        name="Lisinopril with spironolactone",
        medications=["lisinopril", "spironolactone"],
        expected_bucket="major",
    ),
    InteractionCase(
        name="Ibuprofen with aspirin allergy",
        medications=["ibuprofen"],
        allergies=["aspirin"],
        expected_bucket="major",
    ),
    InteractionCase(
        name="Warfarin with amoxicillin",
        medications=["warfarin", "amoxicillin"],
        expected_bucket="moderate",
    ),
    InteractionCase(
        name="Paracetamol alone",
        medications=["paracetamol"],
        expected_bucket=None,
    ),
]


def run_validation() -> List[Dict[str, Any]]:
    """Run validation cases and return results."""
    evaluation = create_evaluation_service()
    interactions = create_interaction_service()
    results = []

    for case in EVALUATION_CASES:
        outcome = evaluation.evaluate(ClinicalSnapshot(**case.snapshot))
        top = outcome.alerts_generated[0] if outcome.alerts_generated else None
        got = top.severity.value if top else None
        passed = got == case.expected_severity
        if passed and case.expected_rule:
            passed = top.rule_id == case.expected_rule
        results.append({
            "case": case.name,
            "kind": "evaluation",
            "expected": case.expected_severity,
            "got": got,
            "rule": top.rule_id if top else None,
            "pass": passed,
        })

    for case in INTERACTION_CASES:
        outcome = interactions.check_interactions(case.medications, case.conditions, case.allergies)
        findings = [
            *outcome.drug_drug_interactions,
            *outcome.drug_disease_interactions,
            *outcome.allergy_alerts,
        ]
        got = None
        if findings:
            worst = min(findings, key=lambda r: severity_rank(r.severity))
            got = to_bucket(worst.severity).value
        results.append({
            "case": case.name,
            "kind": "interaction",
            "expected": case.expected_bucket,
            "got": got,
            "rule": None,
            "pass": got == case.expected_bucket,
        })

    return results


if __name__ == "__main__":
    logging.basicConfig(level=get_settings().LOG_LEVEL)
    for r in run_validation():
        status = "PASS" if r["pass"] else "FAIL"
        print(f"[{status}] {r['case']} -> expected {r['expected']} got {r['got']}")
