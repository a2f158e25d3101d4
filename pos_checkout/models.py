"""Value types for the checkout workflow.

Money amounts are integers in the currency's minor unit. Payloads from the
remote services arrive as protobuf Struct values, where every number is a
double, so the ``from_wire`` constructors normalise ids and amounts.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import StrEnum
from typing import Any, Optional

from google.protobuf.timestamp_pb2 import Timestamp


class PaymentMethod(StrEnum):
    """Payment methods a sale can be recorded with."""

    CASH = "cash"
    CREDIT = "credit"


def wire_id(value: Any) -> str:
    """Normalise a remote identifier to an opaque string."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def wire_amount(value: Any) -> int:
    """Normalise a remote money or quantity value to an int."""
    if value is None:
        return 0
    return int(round(float(value)))


def parse_date(value: Optional[str]) -> Optional[date]:
    """Parse ``YYYY-MM-DD`` or the date part of an RFC3339 string."""
    if not value:
        return None
    return date.fromisoformat(value[:10])


def parse_timestamp(value: Optional[str]) -> datetime:
    """Parse an RFC3339 timestamp, defaulting to now when absent."""
    ts = Timestamp()
    if value:
        ts.FromJsonString(value)
    else:
        ts.GetCurrentTime()
    return ts.ToDatetime(tzinfo=timezone.utc)


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    unit_price: int
    available_quantity: int

    @classmethod
    def from_wire(cls, data: dict) -> "Product":
        return cls(
            id=wire_id(data["id"]),
            name=data.get("name", ""),
            unit_price=wire_amount(data.get("unitPrice", data.get("price"))),
            available_quantity=max(0, wire_amount(data.get("availableQuantity", data.get("quantity")))),
        )


@dataclass(frozen=True)
class Customer:
    id: str
    name: str
    credit_limit: int = 0
    current_credit: int = 0
    email: str = ""
    phone: str = ""

    @classmethod
    def from_wire(cls, data: dict) -> "Customer":
        return cls(
            id=wire_id(data["id"]),
            name=data.get("name", ""),
            credit_limit=wire_amount(data.get("creditLimit")),
            current_credit=wire_amount(data.get("currentCredit")),
            email=data.get("email") or "",
            phone=data.get("phone") or "",
        )


@dataclass(frozen=True)
class CartLine:
    product_id: str
    name: str
    unit_price: int
    requested_quantity: int

    @property
    def line_total(self) -> int:
        return self.unit_price * self.requested_quantity


@dataclass(frozen=True)
class CheckoutSelection:
    """What the cashier picked on the checkout screen."""

    payment_method: Optional[PaymentMethod] = None
    customer_id: Optional[str] = None
    walk_in_name: Optional[str] = None
    credit_due_date: Optional[date] = None
    amount_received: Optional[int] = None

    @property
    def is_credit(self) -> bool:
        return self.payment_method == PaymentMethod.CREDIT


# Selections reset to these after a completed sale: cash, no customer.
DEFAULT_SELECTION = CheckoutSelection(payment_method=PaymentMethod.CASH)


@dataclass(frozen=True)
class SaleItem:
    product_id: str
    quantity: int
    unit_price: int
    name: str = ""

    @classmethod
    def from_wire(cls, data: dict) -> "SaleItem":
        return cls(
            product_id=wire_id(data["productId"]),
            quantity=wire_amount(data.get("quantity")),
            unit_price=wire_amount(data.get("unitPrice", data.get("price"))),
            name=data.get("name") or "",
        )


@dataclass(frozen=True)
class Sale:
    id: str
    total: int
    is_credit: bool
    status: str
    created_at: datetime
    items: tuple[SaleItem, ...] = field(default_factory=tuple)
    customer_id: Optional[str] = None
    credit_due_date: Optional[date] = None
    notes: Optional[str] = None

    @classmethod
    def from_wire(cls, data: dict) -> "Sale":
        customer_id = data.get("customerId")
        return cls(
            id=wire_id(data["id"]),
            total=wire_amount(data.get("total")),
            is_credit=bool(data.get("isCredit", False)),
            status=data.get("status") or "completed",
            created_at=parse_timestamp(data.get("createdAt")),
            items=tuple(SaleItem.from_wire(i) for i in data.get("items") or []),
            customer_id=wire_id(customer_id) if customer_id is not None else None,
            credit_due_date=parse_date(data.get("creditDueDate")),
            notes=data.get("notes"),
        )
