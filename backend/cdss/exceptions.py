"""
Custom exception classes for the engine.
"""
from typing import Iterable, Optional

from cdss.constants import ErrorCodes


class CDSSError(Exception):
    """Base exception for clinical decision support errors."""

    def __init__(
        self,
        detail: str = "An error occurred",
        error_code: Optional[str] = None
    ):
        super().__init__(detail)
        self.detail = detail
        self.error_code = error_code


class UnknownModuleError(CDSSError):
    """Raised when a module filter names no known module."""

    def __init__(self, module: object):
        super().__init__(
            detail=f"Unknown module '{module}'",
            error_code=ErrorCodes.UNKNOWN_MODULE
        )
        self.module = module


class DuplicateRuleError(CDSSError):
    """Raised when a rule registry is built with repeated rule ids."""

    def __init__(self, rule_ids: Iterable[str]):
        ids = sorted(set(rule_ids))
        super().__init__(
            detail=f"Duplicate rule ids: {', '.join(ids)}",
            error_code=ErrorCodes.DUPLICATE_RULE
        )
        self.rule_ids = ids


class RuleEvaluationError(CDSSError):
    """Wraps an exception raised inside a rule condition or generator."""

    def __init__(self, rule_id: str, stage: str, cause: BaseException):
        super().__init__(
            detail=f"Rule '{rule_id}' failed during {stage}: {cause!r}",
            error_code=ErrorCodes.RULE_EVALUATION_ERROR
        )
        self.rule_id = rule_id
        self.stage = stage
        self.cause = cause


class InvalidClinicalInputError(CDSSError, ValueError):
    """Raised when a calculator receives a non-physiological value."""

    def __init__(self, detail: str):
        super().__init__(
            detail=detail,
            error_code=ErrorCodes.INVALID_CLINICAL_INPUT
        )
