"""
Drug Interaction Service.

Checks a medication list against the interaction knowledge base:
drug-drug pairs, drug-disease conflicts, allergy cross-reactivity and
renal dose guidance.
"""
from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence, TypeVar, Union
import logging

from cdss.constants import RenalCategory, SeverityBucket, severity_rank, to_bucket
from cdss.knowledge.interaction_tables import InteractionKnowledgeBase, get_default_knowledge_base
from cdss.schemas import (
    AllergyCrossReactivityRecord,
    DrugDiseaseRecord,
    InteractionCheckResult,
    InteractionRecord,
    InteractionSummary,
    MedicationEntry,
    RenalDoseAdjustmentRecord,
    RenalDoseGuidance,
)
from cdss.terminology import TerminologyIndex, get_terminology_index

logger = logging.getLogger(__name__)

SeverityRecord = TypeVar("SeverityRecord", InteractionRecord, DrugDiseaseRecord, AllergyCrossReactivityRecord)


def _normalize_inputs(items: Optional[Iterable[object]]) -> List[str]:
    """Trim and lowercase tokens, dropping blanks and non-strings."""
    normalized = []
    for item in items or ():
        if isinstance(item, MedicationEntry):
            item = item.name
        if not isinstance(item, str):
            continue
        token = item.strip().lower()
        if token:
            normalized.append(token)
    return normalized


def _by_severity(records: List[SeverityRecord]) -> List[SeverityRecord]:
    # sorted() is stable, so table order breaks ties
    return sorted(records, key=lambda r: severity_rank(r.severity))


class InteractionService:
    """Service for checking drug interactions against the knowledge base."""

    def __init__(
        self,
        knowledge_base: Optional[InteractionKnowledgeBase] = None,
        terminology: Optional[TerminologyIndex] = None
    ):
        self._knowledge_base = knowledge_base or get_default_knowledge_base()
        self.terminology = terminology or get_terminology_index()

    @property
    def knowledge_base(self) -> InteractionKnowledgeBase:
        return self._knowledge_base

    def swap_knowledge_base(self, knowledge_base: InteractionKnowledgeBase) -> None:
        """Replace the knowledge base. Checks already running keep the old one."""
        logger.info(f"Swapping interaction knowledge base {self._knowledge_base.version} -> {knowledge_base.version}")
        self._knowledge_base = knowledge_base

    # ==================== Interaction checking ====================

    def check_interactions(
        self,
        medications: Sequence[Union[str, MedicationEntry]],
        conditions: Sequence[str],
        allergies: Sequence[str],
        egfr: Optional[float] = None,
        is_on_dialysis: bool = False
    ) -> InteractionCheckResult:
        """
        Check all interactions for a medication list.

        Args:
            medications: Drug names (or medication entries)
            conditions: Condition tags
            allergies: Recorded allergies
            egfr: eGFR in mL/min/1.73m², enables renal guidance
            is_on_dialysis: Enables renal guidance

        Returns:
            InteractionCheckResult; the summary excludes renal guidance
        """
        kb = self._knowledge_base
        meds = _normalize_inputs(medications)
        conds = _normalize_inputs(conditions)
        allergy_tags = _normalize_inputs(allergies)

        drug_drug = _by_severity(self._find_drug_drug(kb, meds))
        drug_disease = _by_severity(self._find_drug_disease(kb, meds, conds))
        allergy_alerts = _by_severity(self._find_allergy(kb, meds, allergy_tags))
        renal = self._find_renal(kb, meds, egfr, is_on_dialysis)

        counts = Counter(
            to_bucket(r.severity) for r in (*drug_drug, *drug_disease, *allergy_alerts)
        )
        summary = InteractionSummary(
            contraindicated=counts[SeverityBucket.CONTRAINDICATED],
            major=counts[SeverityBucket.MAJOR],
            moderate=counts[SeverityBucket.MODERATE],
            minor=counts[SeverityBucket.MINOR],
        )

        logger.debug(
            f"Checked {len(meds)} medications: {len(drug_drug)} drug-drug, "
            f"{len(drug_disease)} drug-disease, {len(allergy_alerts)} allergy, {len(renal)} renal"
        )
        return InteractionCheckResult(
            drug_drug_interactions=drug_drug,
            drug_disease_interactions=drug_disease,
            allergy_alerts=allergy_alerts,
            renal_adjustments=renal,
            summary=summary,
        )

    def _find_drug_drug(self, kb: InteractionKnowledgeBase, meds: List[str]) -> List[InteractionRecord]:
        matches_drug = self.terminology.matches_drug
        found = []
        for i in range(len(meds)):
            for j in range(i + 1, len(meds)):
                first, second = meds[i], meds[j]
                for record in kb.drug_drug:
                    forward = matches_drug(first, record.drug_a) and matches_drug(second, record.drug_b)
                    backward = matches_drug(first, record.drug_b) and matches_drug(second, record.drug_a)
                    if forward or backward:
                        found.append(record)
        return found

    def _find_drug_disease(
        self,
        kb: InteractionKnowledgeBase,
        meds: List[str],
        conditions: List[str]
    ) -> List[DrugDiseaseRecord]:
        found = []
        for med in meds:
            for condition in conditions:
                for record in kb.drug_disease:
                    if (self.terminology.matches_drug(med, record.drug)
                            and self.terminology.matches_condition(condition, record.condition)):
                        found.append(record)
        return found

    def _find_allergy(
        self,
        kb: InteractionKnowledgeBase,
        meds: List[str],
        allergies: List[str]
    ) -> List[AllergyCrossReactivityRecord]:
        found = []
        for med in meds:
            for allergy in allergies:
                for record in kb.allergy:
                    if (self.terminology.matches_drug(med, record.drug)
                            and self.terminology.matches_allergen(allergy, record.allergen)):
                        found.append(record)
        return found

    def _find_renal(
        self,
        kb: InteractionKnowledgeBase,
        meds: List[str],
        egfr: Optional[float],
        is_on_dialysis: bool
    ) -> List[RenalDoseAdjustmentRecord]:
        if egfr is None and not is_on_dialysis:
            return []
        return [
            record
            for med in meds
            for record in kb.renal
            if self.terminology.matches_drug(med, record.drug)
        ]

    # ==================== Renal dosing ====================

    def get_dose_adjustment(
        self,
        drug: str,
        egfr: Optional[float] = None,
        is_on_dialysis: bool = False
    ) -> Optional[RenalDoseGuidance]:
        """
        Renal dose guidance for one drug.

        Dialysis takes precedence over eGFR; with neither, the normal dose
        applies.

        Returns:
            RenalDoseGuidance or None if the drug has no renal entry
        """
        for record in self._knowledge_base.renal:
            if self.terminology.matches_drug(drug, record.drug):
                category = renal_category(egfr, is_on_dialysis)
                return RenalDoseGuidance(
                    adjustment=record,
                    applicable_dose=record.dose_for(category),
                    renal_category=category,
                    patient_egfr=egfr,
                    is_on_dialysis=is_on_dialysis,
                )
        return None

    def get_drug_classes(self) -> Dict[str, List[str]]:
        """Drug-class reference table for display."""
        return {name: list(drugs) for name, drugs in self._knowledge_base.drug_classes.items()}


def renal_category(egfr: Optional[float], is_on_dialysis: bool = False) -> RenalCategory:
    """eGFR band used to pick a renal dose."""
    if is_on_dialysis:
        return RenalCategory.DIALYSIS
    if egfr is None:
        return RenalCategory.NORMAL
    if egfr < 15:
        return RenalCategory.EGFR_BELOW_15
    if egfr < 30:
        return RenalCategory.EGFR_15_29
    if egfr < 60:
        return RenalCategory.EGFR_30_59
    return RenalCategory.NORMAL


def create_interaction_service(
    knowledge_base: Optional[InteractionKnowledgeBase] = None
) -> InteractionService:
    """Factory function to create interaction service."""
    return InteractionService(knowledge_base)
