"""Validation helpers for checkout precondition checks.

Each helper raises ValidationError carrying the violated rule, so callers
can block a transition and show the specific message.
"""

from collections.abc import Sequence
from typing import Any, Optional

from .errors import ValidationError, ValidationReason


def require_not_empty(items: Sequence[Any], reason: ValidationReason, error_msg: str) -> None:
    """Require that a sequence has at least one element."""
    if not items:
        raise ValidationError(reason, error_msg)


def require_present(value: Optional[Any], reason: ValidationReason, error_msg: str) -> None:
    """Require that a value is set (not None and not blank)."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(reason, error_msg)


def require_positive(value: int, reason: ValidationReason, error_msg: str) -> None:
    """Require that a value is greater than zero."""
    if value <= 0:
        raise ValidationError(reason, error_msg)


def require_at_most(value: int, limit: int, reason: ValidationReason, error_msg: str) -> None:
    """Require that a value does not exceed the limit."""
    if value > limit:
        raise ValidationError(reason, error_msg)


def require_at_least(value: int, floor: int, reason: ValidationReason, error_msg: str) -> None:
    """Require that a value reaches the floor."""
    if value < floor:
        raise ValidationError(reason, error_msg)
