"""Sale submission to the persistence API.

At most one submission per cart session is outstanding at a time. Once a
sale is committed, registered listeners are told about it so cached sale
lists can refresh without a manual reload.
"""

from collections.abc import Callable, Iterable
from typing import Any, Optional, Protocol

import structlog

from .errors import (
    CheckoutError,
    SubmissionError,
    SubmissionErrorKind,
    SubmissionInFlightError,
    errmsg,
    submission_error,
)
from .models import CheckoutSelection, PaymentMethod, Sale
from .totals import SaleDraft

SaleListener = Callable[[Sale], None]

WALK_IN_NOTE = "Walk-in: {name}"

# Raised by the from_wire constructors on records missing fields or carrying bad values.
MALFORMED_RECORD_ERRORS = (KeyError, TypeError, ValueError)

logger = structlog.get_logger()


class SaleApi(Protocol):
    async def create_sale(self, payload: dict) -> dict: ...


def notify_listeners(listeners: Iterable[Callable[[Any], None]], value: Any, log, event: str) -> None:
    """Call each listener with ``value``. A failing listener is logged and skipped."""
    for listener in list(listeners):
        try:
            listener(value)
        except Exception as e:
            log.error(event, error=str(e))


def malformed_response(error: Exception) -> SubmissionError:
    return SubmissionError(SubmissionErrorKind.SERVER, errmsg.SUBMISSION_SERVER, error)


def build_payload(draft: SaleDraft, selection: CheckoutSelection) -> dict:
    """Persistence payload for a confirmed sale."""
    is_credit = selection.is_credit
    notes = None
    if selection.customer_id is None and selection.walk_in_name:
        notes = WALK_IN_NOTE.format(name=selection.walk_in_name.strip())

    amount_received = None
    if selection.payment_method == PaymentMethod.CASH and selection.amount_received is not None:
        amount_received = selection.amount_received

    return {
        "items": [
            {
                "productId": line.product_id,
                "quantity": line.requested_quantity,
                "unitPrice": line.unit_price,
            }
            for line in draft.lines
        ],
        "total": draft.total,
        "paymentMethod": str(selection.payment_method or PaymentMethod.CASH),
        "isCredit": is_credit,
        "creditDueDate": selection.credit_due_date.isoformat() if is_credit and selection.credit_due_date else None,
        "customerId": selection.customer_id,
        "notes": notes,
        "amountReceived": amount_received,
    }


class SaleSubmissionGateway:
    def __init__(self, api: SaleApi, log=None):
        self._api = api
        self._in_flight: set[str] = set()
        self._listeners: list[SaleListener] = []
        self.log = log or logger.bind(component="sale_gateway")

    def add_listener(self, listener: SaleListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: SaleListener) -> None:
        self._listeners.remove(listener)

    def is_pending(self, session_id: str) -> bool:
        return session_id in self._in_flight

    async def submit(self, draft: SaleDraft, selection: CheckoutSelection, session_id: str) -> Sale:
        """Create the sale remotely. Raises SubmissionError on any remote failure."""
        if session_id in self._in_flight:
            self.log.warning("submission_rejected_in_flight", session_id=session_id)
            raise SubmissionInFlightError(session_id)

        payload = build_payload(draft, selection)
        self._in_flight.add(session_id)
        log = self.log.bind(session_id=session_id)
        log.info("submitting_sale", total=draft.total, is_credit=payload["isCredit"], lines=len(draft.lines))
        try:
            record = await self._api.create_sale(payload)
            sale = Sale.from_wire(record)
        except (CheckoutError, OSError) as e:
            error = submission_error(e)
            log.warning("submission_failed", kind=str(error.kind), error=str(e))
            raise error from e
        except MALFORMED_RECORD_ERRORS as e:
            log.error("malformed_sale_response", error=repr(e))
            raise malformed_response(e) from e
        finally:
            self._in_flight.discard(session_id)

        log.info("sale_created", sale_id=sale.id)
        notify_listeners(self._listeners, sale, log.bind(sale_id=sale.id), "sale_listener_failed")
        return sale


class SaleListCache:
    """Cached view of recent sales, refreshed from post-commit notifications.

    A committed sale is shown immediately at the top of the list and the
    cache is marked stale so the next read refetches.
    """

    def __init__(self, sales: Optional[list[Sale]] = None):
        self._sales = list(sales or [])
        self.stale = False

    @property
    def sales(self) -> list[Sale]:
        return list(self._sales)

    def on_sale_committed(self, sale: Sale) -> None:
        self._sales = [sale] + [s for s in self._sales if s.id != sale.id]
        self.stale = True

    def on_adjustment_recorded(self, adjustment) -> None:
        # The sale's returned quantities changed server-side.
        self.stale = True

    def replace(self, sales: list[Sale]) -> None:
        self._sales = list(sales)
        self.stale = False
