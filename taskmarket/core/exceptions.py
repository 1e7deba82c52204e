"""Custom exceptions."""
from typing import Optional

from taskmarket.localization.helpers import get_translation


class EngineError(Exception):
    """Base class for workflow engine errors."""

    code = "engine_error"
    default_key = "errors.engine_error"

    def __init__(self, detail: Optional[str] = None, locale: Optional[str] = None):
        if detail is None:
            detail = get_translation(self.default_key, locale)
        self.detail = detail
        super().__init__(detail)


class NotFoundError(EngineError):
    """Task, sprint, campaign, application or message not found."""

    code = "not_found"
    default_key = "errors.resource_not_found"


class ValidationError(EngineError):
    """Input failed validation (missing title, bad URL, bad tiers)."""

    code = "validation_error"
    default_key = "errors.validation_error"


class LimitExceededError(EngineError):
    """Student is at assignment capacity."""

    code = "limit_exceeded"
    default_key = "errors.limit_exceeded"


class InvariantViolationError(EngineError):
    """Operation would break a workflow invariant."""

    code = "invariant_violation"
    default_key = "errors.invariant_violation"
