"""
Tests for the drug interaction service.
"""
from collections import Counter
from itertools import permutations

import pytest

from cdss.constants import AllergySeverity, InteractionSeverity, RenalCategory, severity_rank
from cdss.knowledge.interaction_tables import InteractionKnowledgeBase
from cdss.schemas import InteractionRecord, MedicationEntry
from cdss.services.interaction_service import (
    InteractionService,
    create_interaction_service,
    renal_category,
)


class TestCheckInteractions:
    """Tests for InteractionService.check_interactions."""

    def test_empty_input(self, interaction_service):
        result = interaction_service.check_interactions([], [], [])

        assert result.drug_drug_interactions == []
        assert result.drug_disease_interactions == []
        assert result.allergy_alerts == []
        assert result.renal_adjustments == []
        assert result.summary.model_dump() == {"contraindicated": 0, "major": 0, "moderate": 0, "minor": 0}

    def test_amoxicillin_with_penicillin_allergy(self, interaction_service):
        result = interaction_service.check_interactions(["amoxicillin"], [], ["penicillin"])

        assert len(result.allergy_alerts) == 1
        assert result.allergy_alerts[0].severity == AllergySeverity.LIFE_THREATENING
        assert result.summary.contraindicated >= 1

    @pytest.mark.parametrize("condition", ["ckd_stage_4_5", "esrd", "ESRD "])
    def test_metformin_in_severe_ckd(self, interaction_service, condition):
        result = interaction_service.check_interactions(["metformin"], [condition], [])

        assert any(
            r.drug == "metformin" and r.severity == InteractionSeverity.CONTRAINDICATED
            for r in result.drug_disease_interactions
        )
        assert result.summary.contraindicated >= 1

    def test_renal_guidance_not_counted(self, interaction_service):
        result = interaction_service.check_interactions(["metformin"], [], [], egfr=20)

        assert [r.drug for r in result.renal_adjustments] == ["metformin"]
        assert result.summary.model_dump() == {"contraindicated": 0, "major": 0, "moderate": 0, "minor": 0}

    def test_renal_needs_egfr_or_dialysis(self, interaction_service):
        assert interaction_service.check_interactions(["metformin"], [], []).renal_adjustments == []
        on_dialysis = interaction_service.check_interactions(["metformin"], [], [], is_on_dialysis=True)
        assert len(on_dialysis.renal_adjustments) == 1

    def test_drug_class_in_disease_table(self, interaction_service):
        result = interaction_service.check_interactions(["Ibuprofen 400mg"], ["chronic_kidney_disease"], [])
        assert [(r.drug, r.condition) for r in result.drug_disease_interactions] == [("nsaids", "ckd")]
        assert result.summary.major == 1

    def test_drug_drug_sorted_contraindicated_first(self, interaction_service):
        result = interaction_service.check_interactions(
            ["simvastatin", "diltiazem", "amiodarone", "sotalol"], [], []
        )
        severities = [r.severity for r in result.drug_drug_interactions]

        assert severities[0] == InteractionSeverity.CONTRAINDICATED
        assert [severity_rank(s) for s in severities] == sorted(severity_rank(s) for s in severities)
        assert result.summary.contraindicated == 1
        assert result.summary.major == 1
        assert result.summary.moderate == 1

    def test_drug_drug_invariant_under_permutation(self, interaction_service):
        meds = ["warfarin", "aspirin", "amoxicillin", "fluconazole"]
        expected = Counter(interaction_service.check_interactions(meds, [], []).drug_drug_interactions)

        for order in permutations(meds):
            found = interaction_service.check_interactions(list(order), [], []).drug_drug_interactions
            assert Counter(found) == expected

    def test_matches_either_direction(self, interaction_service):
        forward = interaction_service.check_interactions(["lisinopril", "spironolactone"], [], [])
        backward = interaction_service.check_interactions(["spironolactone", "lisinopril"], [], [])
        assert forward.drug_drug_interactions == backward.drug_drug_interactions
        assert len(forward.drug_drug_interactions) == 1

    def test_blank_and_non_string_entries_dropped(self, interaction_service):
        result = interaction_service.check_interactions(["", "  ", None, "amoxicillin"], [""], ["penicillin", 7])
        assert len(result.allergy_alerts) == 1
        assert result.drug_disease_interactions == []

    def test_accepts_medication_entries(self, interaction_service):
        meds = [MedicationEntry(name="Warfarin", dose="5 mg"), MedicationEntry(name="aspirin")]
        result = interaction_service.check_interactions(meds, [], [])
        assert result.summary.major == 1

    def test_allergy_severity_buckets(self, interaction_service):
        result = interaction_service.check_interactions(["furosemide", "celecoxib"], [], ["sulfa", "aspirin"])

        assert [r.severity for r in result.allergy_alerts] == [AllergySeverity.MODERATE, AllergySeverity.MILD]
        assert result.summary.moderate == 1
        assert result.summary.minor == 1


class TestDoseAdjustment:
    """Tests for renal dose guidance."""

    @pytest.mark.parametrize("egfr,dialysis,category,dose", [
        (None, False, RenalCategory.NORMAL, "500-2000 mg/day"),
        (75, False, RenalCategory.NORMAL, "500-2000 mg/day"),
        (45, False, RenalCategory.EGFR_30_59, "500-1000 mg/day max"),
        (20, False, RenalCategory.EGFR_15_29, "Contraindicated"),
        (10, False, RenalCategory.EGFR_BELOW_15, "Contraindicated"),
        (75, True, RenalCategory.DIALYSIS, "Contraindicated"),
    ])
    def test_metformin_bands(self, interaction_service, egfr, dialysis, category, dose):
        guidance = interaction_service.get_dose_adjustment("metformin", egfr=egfr, is_on_dialysis=dialysis)

        assert guidance.renal_category == category
        assert guidance.applicable_dose == dose
        assert guidance.adjustment.drug == "metformin"
        assert guidance.patient_egfr == egfr

    def test_band_edges(self):
        assert renal_category(15) == RenalCategory.EGFR_15_29
        assert renal_category(30) == RenalCategory.EGFR_30_59
        assert renal_category(60) == RenalCategory.NORMAL
        assert renal_category(14.9) == RenalCategory.EGFR_BELOW_15

    def test_unknown_drug(self, interaction_service):
        assert interaction_service.get_dose_adjustment("paracetamol", egfr=20) is None

    def test_blank_drug(self, interaction_service):
        assert interaction_service.get_dose_adjustment("  ", egfr=20) is None


class TestKnowledgeBaseInjection:
    """Tests for injected and swapped knowledge bases."""

    def test_custom_knowledge_base(self):
        record = InteractionRecord(
            drug_a="drug-x", drug_b="drug-y", severity=InteractionSeverity.MINOR,
            mechanism="test", effect="test", management="test",
        )
        service = InteractionService(InteractionKnowledgeBase(drug_drug=(record,)))
        result = service.check_interactions(["drug-y", "drug-x"], [], [])

        assert result.drug_drug_interactions == [record]
        assert result.summary.minor == 1

    def test_swap_knowledge_base(self, interaction_service):
        interaction_service.swap_knowledge_base(InteractionKnowledgeBase(drug_drug=(), version="empty"))
        result = interaction_service.check_interactions(["warfarin", "aspirin"], [], [])

        assert result.drug_drug_interactions == []
        assert interaction_service.knowledge_base.version == "empty"

    def test_drug_classes(self):
        classes = create_interaction_service().get_drug_classes()
        assert "metformin" in classes["Glucose-lowering agents"]
        classes["NSAIDs"].append("aspirin")
        assert "aspirin" not in create_interaction_service().get_drug_classes()["NSAIDs"]
