"""Services module for the clinical decision support engine."""

from cdss.services.evaluation_service import (
    CDSSEvaluationService,
    create_evaluation_service,
)
from cdss.services.interaction_service import (
    InteractionService,
    create_interaction_service,
)

__all__ = [
    "CDSSEvaluationService",
    "create_evaluation_service",
    "InteractionService",
    "create_interaction_service",
]
