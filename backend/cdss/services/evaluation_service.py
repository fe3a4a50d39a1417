"""
CDSS Evaluation Service.

Runs the guideline rule registry over a clinical snapshot and returns
severity-ordered alerts. A rule that raises is logged and skipped; it never
suppresses the alerts of other rules.
"""
from datetime import datetime, timezone
from typing import Callable, List, Optional, Union
import logging

from cdss.config import Settings, get_settings
from cdss.constants import AlertSeverity, Module, severity_rank
from cdss.exceptions import RuleEvaluationError
from cdss.knowledge.guideline_rules import Rule, RuleRegistry, build_default_registry
from cdss.schemas import (
    ActiveRulesCount,
    Alert,
    AlertDraft,
    ClinicalSnapshot,
    EvaluationResult,
    EvaluationSummary,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CDSSEvaluationService:
    """Service evaluating guideline rules against a patient snapshot."""

    def __init__(
        self,
        registry: RuleRegistry,
        clock: Optional[Clock] = None,
        settings: Optional[Settings] = None
    ):
        self._registry = registry
        self._clock = clock or _utc_now
        self.settings = settings or get_settings()

    @property
    def registry(self) -> RuleRegistry:
        return self._registry

    def swap_registry(self, registry: RuleRegistry) -> None:
        """
        Replace the rule registry.

        Evaluations already running keep the registry they started with.
        """
        logger.info(f"Swapping rule registry ({len(self._registry)} -> {len(registry)} rules)")
        self._registry = registry

    # ==================== Evaluation ====================

    def evaluate(
        self,
        snapshot: ClinicalSnapshot,
        module_filter: Optional[Union[Module, str]] = None
    ) -> EvaluationResult:
        """
        Evaluate active rules for a patient.

        Args:
            snapshot: Patient clinical snapshot
            module_filter: Restrict to one module (general rules always run).
                Defaults to the DEFAULT_MODULE setting, or all modules.

        Returns:
            EvaluationResult with alerts sorted most severe first

        Raises:
            UnknownModuleError: if module_filter names no known module
        """
        registry = self._registry
        if module_filter is None:
            module_filter = self.settings.DEFAULT_MODULE

        rules = [r for r in registry.get_rules(module_filter) if r.is_active]
        evaluated_at = self._clock()
        stamp = int(evaluated_at.timestamp() * 1000)

        alerts: List[Alert] = []
        failed_rules: List[str] = []

        for rule in rules:
            alert = self._evaluate_rule(rule, snapshot, evaluated_at, stamp, failed_rules)
            if alert is not None:
                alerts.append(alert)

        # Stable: equal severities keep registry order
        alerts.sort(key=lambda a: severity_rank(a.severity))

        result = EvaluationResult(
            patient_id=snapshot.patient_id,
            evaluated_at=evaluated_at,
            rules_evaluated=len(rules),
            alerts_generated=alerts,
            summary=self._summarize(alerts),
            failed_rules=failed_rules,
        )
        logger.debug(
            f"Evaluated {len(rules)} rules for patient {snapshot.patient_id}: "
            f"{len(alerts)} alerts, {len(failed_rules)} failed"
        )
        return result

    def evaluate_by_module(
        self,
        snapshot: ClinicalSnapshot,
        module: Union[Module, str]
    ) -> EvaluationResult:
        """Evaluate only the rules of one module plus the general rules."""
        return self.evaluate(snapshot, module_filter=module)

    def _evaluate_rule(
        self,
        rule: Rule,
        snapshot: ClinicalSnapshot,
        evaluated_at: datetime,
        stamp: int,
        failed_rules: List[str]
    ) -> Optional[Alert]:
        stage = "condition"
        try:
            if not rule.condition(snapshot):
                return None
            stage = "generate_alert"
            draft = AlertDraft.model_validate(rule.generate_alert(snapshot))
            return Alert(
                id=f"{rule.id}-{stamp}",
                patient_id=snapshot.patient_id,
                rule_id=rule.id,
                created_at=evaluated_at,
                **draft.model_dump(),
            )
        except Exception as e:
            error = RuleEvaluationError(rule.id, stage, e)
            logger.exception(error.detail)
            failed_rules.append(rule.id)
            return None

    @staticmethod
    def _summarize(alerts: List[Alert]) -> EvaluationSummary:
        return EvaluationSummary(
            critical=sum(
                1 for a in alerts
                if a.severity in (AlertSeverity.CRITICAL, AlertSeverity.CONTRAINDICATED)
            ),
            warning=sum(1 for a in alerts if a.severity == AlertSeverity.WARNING),
            info=sum(1 for a in alerts if a.severity == AlertSeverity.INFO),
        )

    # ==================== Registry queries ====================

    def get_rules(self, module_filter: Optional[Union[Module, str]] = None) -> List[Rule]:
        """Rules for a module (plus general), or every rule."""
        return self._registry.get_rules(module_filter)

    def get_active_rules_count(self) -> ActiveRulesCount:
        return self._registry.get_active_rules_count()


def create_evaluation_service(settings: Optional[Settings] = None) -> CDSSEvaluationService:
    """Factory function to create the evaluation service from bundled rules."""
    settings = settings or get_settings()
    return CDSSEvaluationService(build_default_registry(settings), settings=settings)
