"""
Clinical Decision Support Engine

Evaluates guideline rules and medication safety over a patient snapshot:
- Guideline alerts for dialysis, cardiology, ophthalmology and general care
- Drug-drug, drug-disease and allergy cross-reactivity checks
- Renal dose guidance by eGFR band
- Clinical calculators (CKD stage, creatinine clearance, BMI, QTc, CHA2DS2-VASc)
"""

from cdss.schemas import ClinicalSnapshot, EvaluationResult, InteractionCheckResult
from cdss.services import (
    CDSSEvaluationService,
    InteractionService,
    create_evaluation_service,
    create_interaction_service,
)

__version__ = "1.0.0"

__all__ = [
    "ClinicalSnapshot",
    "EvaluationResult",
    "InteractionCheckResult",
    "CDSSEvaluationService",
    "InteractionService",
    "create_evaluation_service",
    "create_interaction_service",
]
