"""Payments recorded against a sale's outstanding balance."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

import structlog

from .errors import CheckoutError, ValidationReason, errmsg, submission_error
from .gateway import MALFORMED_RECORD_ERRORS, malformed_response, notify_listeners
from .models import parse_timestamp, wire_amount, wire_id
from .validation import require_at_most, require_positive

logger = structlog.get_logger()


class PaymentApi(Protocol):
    async def create_payment(self, sale_id: str, amount: int) -> dict: ...


@dataclass(frozen=True)
class Payment:
    id: str
    sale_id: str
    amount: int
    payment_date: datetime

    @classmethod
    def from_wire(cls, data: dict, sale_id: str) -> "Payment":
        return cls(
            id=wire_id(data["id"]),
            sale_id=wire_id(data.get("saleId", sale_id)),
            amount=wire_amount(data.get("amount")),
            payment_date=parse_timestamp(data.get("paymentDate")),
        )


class PaymentRecorder:
    """Record partial or full payments. Sale ids are treated as opaque."""

    def __init__(self, api: PaymentApi, log=None):
        self._api = api
        self._listeners: list[Callable[[Payment], None]] = []
        self.log = log or logger.bind(component="payments")

    def add_listener(self, listener: Callable[[Payment], None]) -> None:
        self._listeners.append(listener)

    async def record(self, sale_id: str, amount: int, outstanding_balance: int) -> Payment:
        require_positive(amount, ValidationReason.PAYMENT_NOT_POSITIVE, errmsg.PAYMENT_NOT_POSITIVE)
        require_at_most(
            amount,
            outstanding_balance,
            ValidationReason.PAYMENT_EXCEEDS_BALANCE,
            errmsg.PAYMENT_EXCEEDS_BALANCE,
        )

        try:
            record = await self._api.create_payment(sale_id, amount)
            payment = Payment.from_wire(record, sale_id)
        except (CheckoutError, OSError) as e:
            error = submission_error(e)
            self.log.warning("payment_failed", sale_id=sale_id, kind=str(error.kind), error=str(e))
            raise error from e
        except MALFORMED_RECORD_ERRORS as e:
            self.log.error("malformed_payment_response", sale_id=sale_id, error=repr(e))
            raise malformed_response(e) from e

        self.log.info("payment_recorded", sale_id=sale_id, amount=amount)
        notify_listeners(self._listeners, payment, self.log.bind(sale_id=sale_id), "payment_listener_failed")
        return payment
