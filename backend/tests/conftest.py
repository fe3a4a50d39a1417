"""Shared fixtures for engine tests."""
from datetime import datetime, timezone

import pytest

from cdss.config import Settings
from cdss.knowledge.guideline_rules import GUIDELINE_RULES, RuleRegistry
from cdss.schemas import ClinicalSnapshot
from cdss.services.evaluation_service import CDSSEvaluationService
from cdss.services.interaction_service import InteractionService

FIXED_INSTANT = datetime(2024, 3, 1, 8, 30, tzinfo=timezone.utc)


@pytest.fixture
def settings():
    # Ignore any .env in the working directory
    return Settings(_env_file=None)


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_INSTANT


@pytest.fixture
def registry():
    return RuleRegistry(GUIDELINE_RULES)


@pytest.fixture
def evaluation_service(registry, fixed_clock, settings):
    return CDSSEvaluationService(registry, clock=fixed_clock, settings=settings)


@pytest.fixture
def interaction_service():
    return InteractionService()


@pytest.fixture
def dialysis_snapshot():
    return ClinicalSnapshot(
        patient_id="p-hd-1",
        demographics={"age": 64, "sex": "male"},
        dialysis={"is_on_dialysis": True, "ktv": 0.9},
    )
