"""Checkout states as one tagged variant.

Each state is its own frozen type, so combinations such as "completed while
submitting" cannot be represented. ``CheckoutPhase`` names the tag.
"""

from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from typing import Optional, Union

from .models import CartLine, Customer, PaymentMethod, Sale
from .totals import SaleDraft


class CheckoutPhase(StrEnum):
    CART = "cart"
    CHECKOUT = "checkout"
    CONFIRM_PENDING = "confirm_pending"
    SUBMITTING = "submitting"
    COMPLETED = "completed"


@dataclass(frozen=True)
class CartEditing:
    phase = CheckoutPhase.CART


@dataclass(frozen=True)
class CheckoutEditing:
    phase = CheckoutPhase.CHECKOUT


@dataclass(frozen=True)
class ConfirmPending:
    """Confirmation shown with the totals the user is agreeing to.

    A failed submission lands back here with ``last_error`` set, so the
    same draft can be retried or cancelled.
    """

    draft: SaleDraft
    last_error: Optional[Exception] = None
    phase = CheckoutPhase.CONFIRM_PENDING


@dataclass(frozen=True)
class Submitting:
    draft: SaleDraft
    token: str
    phase = CheckoutPhase.SUBMITTING


@dataclass(frozen=True)
class SoldSnapshot:
    """What was sold, frozen at submission time for receipt rendering."""

    lines: tuple[CartLine, ...]
    draft: SaleDraft
    payment_method: PaymentMethod
    customer: Optional[Customer] = None
    walk_in_name: Optional[str] = None
    credit_due_date: Optional[date] = None
    amount_received: Optional[int] = None


@dataclass(frozen=True)
class Completed:
    sale: Sale
    sold: SoldSnapshot
    phase = CheckoutPhase.COMPLETED


CheckoutState = Union[CartEditing, CheckoutEditing, ConfirmPending, Submitting, Completed]
