"""Receipt composition for full-page and thermal-strip printers.

The composer computes totals once and hands the same values to whichever
layout is selected. Layouts only decide density and borders.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, timezone, tzinfo
from decimal import Decimal
from enum import StrEnum
from typing import Optional, Union

from .models import CartLine, Customer, PaymentMethod, Sale
from .totals import SaleDraft, build_draft, change_due

DATE_FORMAT = "%d-%m-%Y"
DEFAULT_CURRENCY = "TSH"
WALK_IN_LABEL = "Cash"


class ReceiptLayout(StrEnum):
    FULL_PAGE = "full-page"
    THERMAL_STRIP = "thermal-strip"


@dataclass(frozen=True)
class BusinessInfo:
    """Letterhead printed at the top of every receipt."""

    name: str = "Pastry Pros"
    address: str = ""
    phone: str = ""
    email: str = ""


@dataclass(frozen=True)
class PaymentInfo:
    method: PaymentMethod
    due_date: Optional[date] = None
    amount_received: Optional[int] = None


@dataclass(frozen=True)
class ReceiptLine:
    name: str
    quantity: int
    line_total: int


@dataclass(frozen=True)
class ReceiptDocument:
    layout: ReceiptLayout
    business: BusinessInfo
    receipt_number: str
    customer_label: str
    issued_on: date
    lines: tuple[ReceiptLine, ...]
    subtotal: int
    tax: int
    total: int
    payment: PaymentInfo
    issued_by: str = ""
    currency: str = DEFAULT_CURRENCY

    @property
    def change(self) -> int:
        return change_due(self.total, self.payment.amount_received)

    def money(self, amount: int) -> str:
        return format_money(amount, self.currency)

    def render(self) -> list[str]:
        """Plain-text lines for the external renderer."""
        return LAYOUTS[self.layout].render(self)


def format_money(amount: int, currency: str = DEFAULT_CURRENCY) -> str:
    """Format minor units without decimals: ``TSH 1,500``."""
    sign = "-" if amount < 0 else ""
    return f"{sign}{currency} {abs(amount):,}"


def _spread(left: str, right: str, width: int) -> str:
    gap = max(1, width - len(left) - len(right))
    return f"{left}{' ' * gap}{right}"


class _Layout(ABC):
    width = 40

    def header(self, doc: ReceiptDocument) -> list[str]:
        out = [doc.business.name.center(self.width).rstrip()]
        if doc.business.address:
            out.append(doc.business.address.center(self.width).rstrip())
        if doc.business.phone:
            out.append(f"Tel: {doc.business.phone}".center(self.width).rstrip())
        if doc.business.email:
            out.append(doc.business.email.center(self.width).rstrip())
        return out

    def details(self, doc: ReceiptDocument) -> list[str]:
        return [
            f"Receipt #: {doc.receipt_number}",
            f"Customer: {doc.customer_label}",
            f"Date: {doc.issued_on.strftime(DATE_FORMAT)}",
        ]

    @abstractmethod
    def items(self, doc: ReceiptDocument) -> list[str]:
        """Item table rows."""

    def totals(self, doc: ReceiptDocument) -> list[str]:
        return [
            _spread("Subtotal:", doc.money(doc.subtotal), self.width),
            _spread("VAT:", doc.money(doc.tax), self.width),
            _spread("Total:", doc.money(doc.total), self.width),
        ]

    def payment(self, doc: ReceiptDocument) -> list[str]:
        method = "Credit" if doc.payment.method == PaymentMethod.CREDIT else "Cash"
        out = [f"Payment: {method}"]
        if doc.payment.method == PaymentMethod.CREDIT and doc.payment.due_date:
            out.append(f"Due: {doc.payment.due_date.strftime(DATE_FORMAT)}")
        if doc.payment.method == PaymentMethod.CASH and doc.payment.amount_received is not None:
            out.append(_spread("Received:", doc.money(doc.payment.amount_received), self.width))
            out.append(_spread("Change:", doc.money(doc.change), self.width))
        return out

    def footer(self, doc: ReceiptDocument) -> list[str]:
        out = [
            "Thank you for shopping with us!".center(self.width).rstrip(),
            "Enjoy!".center(self.width).rstrip(),
        ]
        if doc.issued_by:
            out.append(f"Issued By: {doc.issued_by}".center(self.width).rstrip())
        return out

    def render(self, doc: ReceiptDocument) -> list[str]:
        rule = "-" * self.width
        return [
            *self.header(doc),
            rule,
            *self.details(doc),
            rule,
            *self.items(doc),
            rule,
            *self.totals(doc),
            rule,
            *self.payment(doc),
            rule,
            *self.footer(doc),
        ]


class FullPageLayout(_Layout):
    """A5/A4 paper: bordered item table, wide columns."""

    width = 64
    item_width = 32
    qty_width = 5
    amount_width = 17

    def _border(self) -> str:
        return "+" + "+".join(
            "-" * (w + 2) for w in (self.item_width, self.qty_width, self.amount_width)
        ) + "+"

    def _row(self, item: str, qty: str, amount: str) -> str:
        return (
            f"| {item[:self.item_width]:<{self.item_width}} "
            f"| {qty:^{self.qty_width}} "
            f"| {amount:>{self.amount_width}} |"
        )

    def items(self, doc: ReceiptDocument) -> list[str]:
        out = [self._border(), self._row("Item", "Qty", "Amount"), self._border()]
        for line in doc.lines:
            out.append(self._row(line.name, str(line.quantity), doc.money(line.line_total)))
        out.append(self._border())
        return out


class ThermalStripLayout(_Layout):
    """58mm thermal roll: 32 columns, no borders."""

    width = 32
    item_width = 16
    qty_width = 5

    def items(self, doc: ReceiptDocument) -> list[str]:
        amount_width = self.width - self.item_width - self.qty_width
        out = [f"{'Item':<{self.item_width}}{'Qty':^{self.qty_width}}{'Amount':>{amount_width}}"]
        out.append("-" * self.width)
        for line in doc.lines:
            name = line.name[: self.item_width - 1]
            out.append(
                f"{name:<{self.item_width}}"
                f"{line.quantity:^{self.qty_width}}"
                f"{doc.money(line.line_total):>{amount_width}}"
            )
        return out


LAYOUTS: dict[ReceiptLayout, _Layout] = {
    ReceiptLayout.FULL_PAGE: FullPageLayout(),
    ReceiptLayout.THERMAL_STRIP: ThermalStripLayout(),
}


class ReceiptComposer:
    def __init__(
        self,
        business: BusinessInfo,
        tax_rate: Decimal = Decimal(0),
        currency: str = DEFAULT_CURRENCY,
        default_layout: ReceiptLayout = ReceiptLayout.FULL_PAGE,
        tz: tzinfo = timezone.utc,
    ):
        self.business = business
        self.tax_rate = tax_rate
        self.currency = currency
        self.default_layout = default_layout
        self.tz = tz

    def compose(
        self,
        sale: Sale,
        cart_snapshot: Sequence[CartLine],
        customer: Union[Customer, str, None],
        payment: PaymentInfo,
        layout: Optional[ReceiptLayout] = None,
        *,
        issued_by: str = "",
        draft: Optional[SaleDraft] = None,
    ) -> ReceiptDocument:
        """Build a receipt for a completed sale.

        ``draft`` should be the totals shown at confirmation; when omitted
        they are derived from ``cart_snapshot`` with the configured tax rate.
        """
        if draft is None:
            draft = build_draft(cart_snapshot, self.tax_rate)

        if isinstance(customer, Customer):
            label = customer.name
        elif customer:
            label = customer
        else:
            label = WALK_IN_LABEL

        return ReceiptDocument(
            layout=ReceiptLayout(layout or self.default_layout),
            business=self.business,
            receipt_number=sale.id,
            customer_label=label,
            issued_on=sale.created_at.astimezone(self.tz).date(),
            lines=tuple(
                ReceiptLine(name=line.name, quantity=line.requested_quantity, line_total=line.line_total)
                for line in draft.lines
            ),
            subtotal=draft.subtotal,
            tax=draft.tax,
            total=draft.total,
            payment=payment,
            issued_by=issued_by,
            currency=self.currency,
        )
