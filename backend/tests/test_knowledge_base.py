"""
Tests for the guideline rule registry and the interaction tables.
"""
from dataclasses import FrozenInstanceError, replace

import pytest
from pydantic import ValidationError

from cdss.config import Settings
from cdss.constants import Module, RenalCategory
from cdss.exceptions import DuplicateRuleError, UnknownModuleError
from cdss.knowledge.guideline_rules import GUIDELINE_RULES, RuleRegistry, build_default_registry
from cdss.knowledge.interaction_tables import (
    DRUG_DRUG_INTERACTIONS,
    RENAL_DOSE_ADJUSTMENTS,
    InteractionKnowledgeBase,
)
from cdss.schemas import ClinicalSnapshot


class TestRuleRegistry:
    """Tests for RuleRegistry."""

    def test_rule_ids_are_unique(self):
        ids = [r.id for r in GUIDELINE_RULES]
        assert len(ids) == len(set(ids)) == 15

    def test_duplicate_ids_rejected(self):
        with pytest.raises(DuplicateRuleError) as exc_info:
            RuleRegistry([GUIDELINE_RULES[0], GUIDELINE_RULES[0]])
        assert exc_info.value.rule_ids == ["kdigo-ktv-001"]

    def test_module_filter_includes_general(self, registry):
        rules = registry.get_rules("cardiology")
        modules = {r.module for r in rules}
        assert modules == {Module.CARDIOLOGY, Module.GENERAL}
        assert len(rules) == 7

    def test_no_filter_returns_all(self, registry):
        assert len(registry.get_rules()) == len(GUIDELINE_RULES)

    def test_unknown_module(self, registry):
        with pytest.raises(UnknownModuleError):
            registry.get_rules("dermatology")

    def test_active_rules_count(self, registry):
        counts = registry.get_active_rules_count()
        assert counts.total == 15
        assert counts.by_module == {
            "dialyse": 5,
            "cardiology": 5,
            "ophthalmology": 3,
            "general": 2,
        }

    def test_without_deactivates_copy(self, registry):
        reduced = registry.without(["esc-bp-001"])
        assert reduced.get_rule("esc-bp-001").is_active is False
        assert registry.get_rule("esc-bp-001").is_active is True
        assert reduced.get_active_rules_count().total == 14

    def test_get_rule_unknown(self, registry):
        assert registry.get_rule("nope-001") is None

    def test_default_registry_applies_disabled_rules(self):
        settings = Settings(_env_file=None, DISABLED_RULES="esc-bp-001, aao-dme-001")
        registry = build_default_registry(settings)
        counts = registry.get_active_rules_count()
        assert counts.total == 13
        assert counts.by_module["cardiology"] == 4
        assert counts.by_module["ophthalmology"] == 2

    def test_rule_is_frozen(self):
        rule = GUIDELINE_RULES[0]
        with pytest.raises(FrozenInstanceError):
            rule.is_active = False
        assert replace(rule, is_active=False).is_active is False


class TestRuleConditionsOnSparseData:
    """Every rule must decline, not fail, when its inputs are missing."""

    @pytest.mark.parametrize("rule", GUIDELINE_RULES, ids=lambda r: r.id)
    def test_empty_snapshot_never_matches(self, rule):
        assert rule.condition(ClinicalSnapshot(patient_id="p-empty")) is False

    @pytest.mark.parametrize("rule", GUIDELINE_RULES, ids=lambda r: r.id)
    def test_empty_sections_never_match(self, rule):
        snapshot = ClinicalSnapshot(
            patient_id="p-sections",
            vitals={},
            labs={},
            dialysis={},
            cardiology={},
            ophthalmology={"iop": {}},
        )
        assert not rule.condition(snapshot)

    def test_blood_pressure_needs_systolic(self, registry):
        rule = registry.get_rule("esc-bp-001")
        snapshot = ClinicalSnapshot(patient_id="p-bp", vitals={"diastolic_bp": 100})
        assert not rule.condition(snapshot)

    def test_dialysis_rules_need_dialysis(self, registry):
        rule = registry.get_rule("kdigo-phosphorus-001")
        snapshot = ClinicalSnapshot(patient_id="p-phos", labs={"phosphorus": 8.0})
        assert not rule.condition(snapshot)


class TestInteractionTables:
    """Tests for the static interaction tables."""

    def test_records_are_frozen(self):
        record = DRUG_DRUG_INTERACTIONS[0]
        with pytest.raises(ValidationError):
            record.severity = "minor"

    def test_knowledge_base_is_frozen(self):
        kb = InteractionKnowledgeBase()
        with pytest.raises(FrozenInstanceError):
            kb.drug_drug = ()

    def test_renal_dose_for_each_category(self):
        metformin = next(r for r in RENAL_DOSE_ADJUSTMENTS if r.drug == "metformin")
        assert metformin.dose_for(RenalCategory.NORMAL) == "500-2000 mg/day"
        assert metformin.dose_for(RenalCategory.EGFR_30_59) == "500-1000 mg/day max"
        assert metformin.dose_for(RenalCategory.EGFR_15_29) == "Contraindicated"
        assert metformin.dose_for(RenalCategory.DIALYSIS) == "Contraindicated"

    def test_drug_classes_not_shared_between_instances(self):
        first = InteractionKnowledgeBase()
        second = InteractionKnowledgeBase()
        assert first.drug_classes == second.drug_classes
        assert first.drug_classes is not second.drug_classes
