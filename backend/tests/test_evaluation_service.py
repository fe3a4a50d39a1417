"""
Tests for the CDSS evaluation service.
"""
import logging

import pytest

from cdss.config import Settings
from cdss.constants import (
    AlertCategory,
    AlertSeverity,
    GuidelineSource,
    Module,
    severity_rank,
)
from cdss.exceptions import UnknownModuleError
from cdss.knowledge.guideline_rules import GUIDELINE_RULES, Rule, RuleRegistry
from cdss.schemas import AlertDraft, ClinicalSnapshot
from cdss.services.evaluation_service import CDSSEvaluationService, create_evaluation_service

from conftest import FIXED_INSTANT

FIXED_MS = int(FIXED_INSTANT.timestamp() * 1000)


def make_rule(rule_id, severity=AlertSeverity.WARNING, condition=None, generate_alert=None,
              module=Module.GENERAL, is_active=True):
    def _alert(snapshot):
        return AlertDraft(
            category=AlertCategory.REMINDER,
            severity=severity,
            title=f"Test alert {rule_id}",
            message="test",
        )

    return Rule(
        id=rule_id,
        name=rule_id,
        description="test rule",
        category=AlertCategory.REMINDER,
        module=module,
        guideline_source=GuidelineSource.INTERNAL,
        priority=1,
        condition=condition or (lambda snapshot: True),
        generate_alert=generate_alert or _alert,
        is_active=is_active,
    )


def _explode(snapshot):
    raise RuntimeError("boom")


@pytest.fixture
def multi_alert_snapshot():
    return ClinicalSnapshot(
        patient_id="p-multi",
        conditions=["diabetes"],
        vitals={"systolic_bp": 150, "diastolic_bp": 95},
        labs={"ldl": 90, "troponin": 0.2, "potassium": 5.8, "hba1c": 11},
        cardiology={"lvef": 35},
    )


class TestEvaluate:
    """Tests for CDSSEvaluationService.evaluate."""

    def test_low_ktv_raises_critical_alert(self, evaluation_service, dialysis_snapshot):
        result = evaluation_service.evaluate(dialysis_snapshot)

        assert len(result.alerts_generated) == 1
        alert = result.alerts_generated[0]
        assert alert.severity == AlertSeverity.CRITICAL
        assert "Kt/V" in alert.title
        assert alert.rule_id == "kdigo-ktv-001"
        assert alert.id == f"kdigo-ktv-001-{FIXED_MS}"
        assert alert.patient_id == "p-hd-1"
        assert alert.created_at == FIXED_INSTANT
        assert alert.guideline_source == GuidelineSource.KDIGO
        assert result.summary.critical == 1

    def test_ktv_between_targets_is_warning(self, evaluation_service):
        snapshot = ClinicalSnapshot(patient_id="p-hd-2", dialysis={"is_on_dialysis": True, "ktv": 1.1})
        result = evaluation_service.evaluate(snapshot)
        assert [a.severity for a in result.alerts_generated] == [AlertSeverity.WARNING]

    def test_empty_snapshot(self, evaluation_service):
        result = evaluation_service.evaluate(ClinicalSnapshot(patient_id="p-empty"))

        assert result.alerts_generated == []
        assert result.rules_evaluated == len(GUIDELINE_RULES)
        assert result.failed_rules == []
        assert result.summary.critical == result.summary.warning == result.summary.info == 0
        assert result.evaluated_at == FIXED_INSTANT

    def test_alerts_sorted_by_severity(self, evaluation_service, multi_alert_snapshot):
        result = evaluation_service.evaluate(multi_alert_snapshot)
        ranks = [severity_rank(a.severity) for a in result.alerts_generated]

        assert ranks == sorted(ranks)
        # equal severities keep registry order
        assert [a.rule_id for a in result.alerts_generated] == [
            "esc-acs-troponin-001",
            "safety-glucose-001",
            "kdigo-potassium-001",
            "esc-hf-lvef-001",
            "esc-bp-001",
            "esc-lipids-001",
        ]
        assert result.summary.critical == 2
        assert result.summary.warning == 4

    def test_contraindicated_sorts_before_critical(self, fixed_clock, settings):
        registry = RuleRegistry([
            make_rule("info-001", AlertSeverity.INFO),
            make_rule("critical-001", AlertSeverity.CRITICAL),
            make_rule("contra-001", AlertSeverity.CONTRAINDICATED),
        ])
        service = CDSSEvaluationService(registry, clock=fixed_clock, settings=settings)
        result = service.evaluate(ClinicalSnapshot(patient_id="p-1"))

        assert [a.rule_id for a in result.alerts_generated] == ["contra-001", "critical-001", "info-001"]
        assert result.summary.critical == 2
        assert result.summary.info == 1

    def test_repeated_calls_identical(self, evaluation_service, multi_alert_snapshot):
        first = evaluation_service.evaluate(multi_alert_snapshot)
        second = evaluation_service.evaluate(multi_alert_snapshot)
        assert first.model_dump() == second.model_dump()

    def test_inactive_rules_are_skipped(self, fixed_clock, settings):
        registry = RuleRegistry([make_rule("on-001"), make_rule("off-001", is_active=False)])
        service = CDSSEvaluationService(registry, clock=fixed_clock, settings=settings)
        result = service.evaluate(ClinicalSnapshot(patient_id="p-1"))

        assert result.rules_evaluated == 1
        assert [a.rule_id for a in result.alerts_generated] == ["on-001"]


class TestRuleFailureIsolation:
    """A failing rule must not suppress or reorder other alerts."""

    @pytest.mark.parametrize("broken", [
        make_rule("boom-001", condition=_explode),
        make_rule("boom-001", generate_alert=_explode),
    ], ids=["condition", "generate_alert"])
    def test_throwing_rule_is_isolated(self, broken, fixed_clock, settings, multi_alert_snapshot, caplog):
        baseline = CDSSEvaluationService(
            RuleRegistry(GUIDELINE_RULES), clock=fixed_clock, settings=settings
        ).evaluate(multi_alert_snapshot)
        service = CDSSEvaluationService(
            RuleRegistry([broken, *GUIDELINE_RULES]), clock=fixed_clock, settings=settings
        )

        with caplog.at_level(logging.ERROR, logger="cdss.services.evaluation_service"):
            result = service.evaluate(multi_alert_snapshot)

        assert result.alerts_generated == baseline.alerts_generated
        assert result.failed_rules == ["boom-001"]
        assert result.rules_evaluated == len(GUIDELINE_RULES) + 1
        assert any("boom-001" in r.getMessage() for r in caplog.records)

    def test_invalid_draft_counts_as_failure(self, fixed_clock, settings):
        bad = make_rule("bad-001", generate_alert=lambda s: {"title": "missing fields"})
        service = CDSSEvaluationService(
            RuleRegistry([bad, make_rule("ok-001")]), clock=fixed_clock, settings=settings
        )
        result = service.evaluate(ClinicalSnapshot(patient_id="p-1"))

        assert result.failed_rules == ["bad-001"]
        assert [a.rule_id for a in result.alerts_generated] == ["ok-001"]


class TestModuleFilter:
    """Tests for module scoping."""

    @pytest.fixture
    def mixed_snapshot(self):
        return ClinicalSnapshot(
            patient_id="p-mixed",
            labs={"egfr": 20},
            ophthalmology={"iop": {"left": 25, "right": 18}},
            cardiology={"lvef": 35},
        )

    @pytest.mark.parametrize("module", ["cardiology", Module.CARDIOLOGY])
    def test_filter_keeps_module_and_general(self, evaluation_service, mixed_snapshot, module):
        result = evaluation_service.evaluate(mixed_snapshot, module_filter=module)

        assert {a.rule_id for a in result.alerts_generated} == {"esc-hf-lvef-001", "safety-egfr-001"}
        assert result.rules_evaluated == 7

    def test_evaluate_by_module(self, evaluation_service, mixed_snapshot):
        result = evaluation_service.evaluate_by_module(mixed_snapshot, "ophthalmology")
        assert {a.rule_id for a in result.alerts_generated} == {"aao-iop-001", "safety-egfr-001"}

    def test_unknown_module_raises_before_rules_run(self, fixed_clock, settings):
        calls = []
        rule = make_rule("spy-001", condition=lambda s: calls.append(s) or False)
        service = CDSSEvaluationService(RuleRegistry([rule]), clock=fixed_clock, settings=settings)

        with pytest.raises(UnknownModuleError) as exc_info:
            service.evaluate(ClinicalSnapshot(patient_id="p-1"), module_filter="dermatology")
        assert exc_info.value.error_code == "UNKNOWN_MODULE"
        assert calls == []

    def test_default_module_from_settings(self, registry, fixed_clock, mixed_snapshot):
        settings = Settings(_env_file=None, DEFAULT_MODULE="dialyse")
        service = CDSSEvaluationService(registry, clock=fixed_clock, settings=settings)
        result = service.evaluate(mixed_snapshot)

        assert {a.rule_id for a in result.alerts_generated} == {"safety-egfr-001"}


class TestRegistryManagement:
    """Tests for registry swap and the factory."""

    def test_swap_registry(self, evaluation_service, dialysis_snapshot):
        evaluation_service.swap_registry(evaluation_service.registry.without(["kdigo-ktv-001"]))
        result = evaluation_service.evaluate(dialysis_snapshot)

        assert result.alerts_generated == []
        assert evaluation_service.get_active_rules_count().total == len(GUIDELINE_RULES) - 1

    def test_factory_builds_default_registry(self, dialysis_snapshot):
        service = create_evaluation_service(Settings(_env_file=None))
        result = service.evaluate(dialysis_snapshot)

        assert result.alerts_generated[0].rule_id == "kdigo-ktv-001"
        assert len(service.get_rules("dialyse")) == 7
