"""Sale totals derived from cart lines."""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from .models import CartLine


@dataclass(frozen=True)
class SaleDraft:
    """Derived view of a cart: never stored, always recomputed from lines."""

    lines: tuple[CartLine, ...]
    subtotal: int
    tax: int
    total: int

    @property
    def item_count(self) -> int:
        return sum(line.requested_quantity for line in self.lines)


def compute_tax(subtotal: int, tax_rate: Decimal) -> int:
    """Tax in minor units, rounded half up."""
    return int((Decimal(subtotal) * tax_rate).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def build_draft(lines: Iterable[CartLine], tax_rate: Decimal = Decimal(0)) -> SaleDraft:
    lines = tuple(lines)
    subtotal = sum(line.line_total for line in lines)
    tax = compute_tax(subtotal, tax_rate)
    return SaleDraft(lines=lines, subtotal=subtotal, tax=tax, total=subtotal + tax)


def change_due(total: int, amount_received: Optional[int]) -> int:
    """Change to hand back for a cash sale, never negative."""
    if amount_received is None:
        return 0
    return max(0, amount_received - total)
