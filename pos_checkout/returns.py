"""Sale returns, recorded as sales adjustments against a committed sale.

A return names the quantity of each sold product coming back and a reason.
The server records it as a pending adjustment for approval.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Protocol

import structlog

from .errors import CheckoutError, ValidationError, ValidationReason, errmsg, submission_error
from .gateway import MALFORMED_RECORD_ERRORS, malformed_response, notify_listeners
from .models import Sale, parse_timestamp, wire_amount, wire_id
from .validation import require_at_least, require_at_most, require_not_empty, require_present

RETURN_NOTE = "Return of {quantity} units"

logger = structlog.get_logger()


class AdjustmentStatus(StrEnum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    DECLINED = "DECLINED"


class AdjustmentApi(Protocol):
    async def create_adjustment(self, payload: dict) -> dict: ...


@dataclass(frozen=True)
class ReturnLine:
    product_id: str
    quantity: int
    unit_price: int
    notes: str = ""

    @property
    def line_total(self) -> int:
        return self.quantity * self.unit_price

    @classmethod
    def from_wire(cls, data: dict) -> "ReturnLine":
        product = data.get("product") or {}
        return cls(
            product_id=wire_id(data["productId"]),
            quantity=wire_amount(data.get("quantity")),
            unit_price=wire_amount(data.get("price", product.get("price"))),
            notes=data.get("notes") or "",
        )


@dataclass(frozen=True)
class SalesAdjustment:
    id: str
    sale_id: str
    reason: str
    status: AdjustmentStatus
    created_at: datetime
    items: tuple[ReturnLine, ...] = field(default_factory=tuple)

    @property
    def total(self) -> int:
        """Value of the returned goods at the prices they were sold for."""
        return sum(line.line_total for line in self.items)

    @classmethod
    def from_wire(cls, data: dict, sale_id: str) -> "SalesAdjustment":
        return cls(
            id=wire_id(data["id"]),
            sale_id=wire_id(data.get("saleId", sale_id)),
            reason=data.get("reason") or "",
            status=AdjustmentStatus((data.get("status") or AdjustmentStatus.PENDING).upper()),
            created_at=parse_timestamp(data.get("createdAt")),
            items=tuple(ReturnLine.from_wire(i) for i in data.get("items") or []),
        )


def sold_quantities(sale: Sale) -> dict[str, int]:
    """Quantity sold per product id."""
    sold: dict[str, int] = {}
    for item in sale.items:
        sold[item.product_id] = sold.get(item.product_id, 0) + item.quantity
    return sold


def build_return(sale: Sale, quantities: Mapping[str, int], reason: str) -> dict:
    """Validate a return against the sale and build its adjustment payload.

    Checks run in order: each quantity within ``0..sold``, at least one
    product coming back, a reason given.
    """
    sold = sold_quantities(sale)
    prices = {}
    for item in sale.items:
        prices.setdefault(item.product_id, item.unit_price)

    for product_id, quantity in quantities.items():
        if product_id not in sold:
            raise ValidationError(ValidationReason.RETURN_ITEM_NOT_IN_SALE, errmsg.RETURN_ITEM_NOT_IN_SALE)
        require_at_least(quantity, 0, ValidationReason.RETURN_QUANTITY_NEGATIVE, errmsg.RETURN_QUANTITY_NEGATIVE)
        require_at_most(quantity, sold[product_id], ValidationReason.RETURN_EXCEEDS_SOLD, errmsg.RETURN_EXCEEDS_SOLD)

    returned = [(product_id, quantity) for product_id, quantity in quantities.items() if quantity > 0]
    require_not_empty(returned, ValidationReason.RETURN_NOTHING_SELECTED, errmsg.RETURN_NOTHING_SELECTED)
    require_present(reason, ValidationReason.RETURN_REASON_REQUIRED, errmsg.RETURN_REASON_REQUIRED)

    return {
        "saleId": sale.id,
        "reason": reason.strip(),
        "items": [
            {
                "productId": product_id,
                "quantity": quantity,
                "price": prices[product_id],
                "notes": RETURN_NOTE.format(quantity=quantity),
            }
            for product_id, quantity in returned
        ],
    }


class ReturnRecorder:
    """Record returns against committed sales. Sale ids are treated as opaque."""

    def __init__(self, api: AdjustmentApi, log=None):
        self._api = api
        self._listeners: list[Callable[[SalesAdjustment], None]] = []
        self.log = log or logger.bind(component="returns")

    def add_listener(self, listener: Callable[[SalesAdjustment], None]) -> None:
        self._listeners.append(listener)

    async def record(self, sale: Sale, quantities: Mapping[str, int], reason: str) -> SalesAdjustment:
        payload = build_return(sale, quantities, reason)
        log = self.log.bind(sale_id=sale.id)

        try:
            record = await self._api.create_adjustment(payload)
            adjustment = SalesAdjustment.from_wire(record, sale.id)
        except (CheckoutError, OSError) as e:
            error = submission_error(e)
            log.warning("return_failed", kind=str(error.kind), error=str(e))
            raise error from e
        except MALFORMED_RECORD_ERRORS as e:
            log.error("malformed_return_response", error=repr(e))
            raise malformed_response(e) from e

        log.info("return_recorded", adjustment_id=adjustment.id, lines=len(adjustment.items))
        notify_listeners(self._listeners, adjustment, log, "return_listener_failed")
        return adjustment
