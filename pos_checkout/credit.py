"""Credit-sale admissibility rules.

Pure functions: no I/O and no logging, so they can be checked against
synthetic customers and totals.
"""

from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from typing import Optional

from .models import Customer


class CreditRefusal(StrEnum):
    NO_CUSTOMER = "no_customer"
    MISSING_DUE_DATE = "missing_due_date"
    LIMIT_EXCEEDED = "limit_exceeded"


@dataclass(frozen=True)
class CreditDecision:
    ok: bool
    reason: Optional[CreditRefusal] = None


APPROVED = CreditDecision(ok=True)


def available_credit(customer: Customer) -> int:
    """Credit the customer can still draw, never negative."""
    return max(0, customer.credit_limit - customer.current_credit)


def can_extend_credit(
    customer: Optional[Customer],
    sale_total: int,
    due_date: Optional[date],
) -> CreditDecision:
    """Decide whether a credit sale of ``sale_total`` is admissible.

    Checks run in order: customer attached, due date set, then
    ``current_credit + sale_total <= credit_limit`` (equality is allowed).
    """
    if customer is None:
        return CreditDecision(ok=False, reason=CreditRefusal.NO_CUSTOMER)
    if due_date is None:
        return CreditDecision(ok=False, reason=CreditRefusal.MISSING_DUE_DATE)
    if customer.current_credit + sale_total > customer.credit_limit:
        return CreditDecision(ok=False, reason=CreditRefusal.LIMIT_EXCEEDED)
    return APPROVED
