"""
Clinical knowledge bases.

Static, read-only tables shared by every evaluation:
- guideline rule registry consumed by the CDSS evaluation engine
- drug-drug, drug-disease, allergy and renal-dose tables consumed by the
  interaction checker
"""

from cdss.knowledge.guideline_rules import (
    GUIDELINE_RULES,
    Rule,
    RuleRegistry,
    build_default_registry,
    resolve_module,
)
from cdss.knowledge.interaction_tables import (
    InteractionKnowledgeBase,
    get_default_knowledge_base,
)

__all__ = [
    "GUIDELINE_RULES",
    "Rule",
    "RuleRegistry",
    "build_default_registry",
    "resolve_module",
    "InteractionKnowledgeBase",
    "get_default_knowledge_base",
]
