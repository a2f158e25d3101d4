"""Checkout state machine.

Cart -> Checkout -> ConfirmPending -> Submitting -> Completed

A failed submission falls back to ConfirmPending with the error attached.

Only sale submission and customer creation suspend. Each submission is
tagged with a token and each cart session with an id; a result that comes
back after the flow was reset no longer matches and is discarded.
"""

from collections.abc import Iterable
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Optional, Union
from uuid import uuid4

import structlog

from .cart import CartStore
from .credit import CreditRefusal, available_credit, can_extend_credit
from .customers import CustomerDirectory, NewCustomerForm
from .errors import (
    CustomerCreationError,
    InvalidTransitionError,
    SubmissionError,
    SubmissionInFlightError,
    ValidationError,
    ValidationReason,
    errmsg,
)
from .gateway import SaleSubmissionGateway
from .models import CartLine, CheckoutSelection, Customer, DEFAULT_SELECTION, PaymentMethod, Product, Sale
from .receipt import PaymentInfo, ReceiptComposer, ReceiptDocument, ReceiptLayout, format_money
from .state import (
    CartEditing,
    CheckoutEditing,
    CheckoutPhase,
    CheckoutState,
    Completed,
    ConfirmPending,
    SoldSnapshot,
    Submitting,
)
from .totals import SaleDraft, change_due
from .validation import require_at_least, require_not_empty, require_present

logger = structlog.get_logger()

_EDITING = (CheckoutPhase.CART, CheckoutPhase.CHECKOUT)
_CONFIRMING = (CheckoutPhase.CONFIRM_PENDING,)

_CREDIT_REASONS = {
    CreditRefusal.NO_CUSTOMER: (ValidationReason.NO_CUSTOMER, errmsg.CREDIT_NO_CUSTOMER),
    CreditRefusal.MISSING_DUE_DATE: (ValidationReason.MISSING_DUE_DATE, errmsg.CREDIT_MISSING_DUE_DATE),
    CreditRefusal.LIMIT_EXCEEDED: (ValidationReason.LIMIT_EXCEEDED, errmsg.CREDIT_LIMIT_EXCEEDED),
}


class CheckoutOrchestrator:
    """Coordinates one checkout session from cart to receipt."""

    def __init__(
        self,
        cart: CartStore,
        gateway: SaleSubmissionGateway,
        composer: ReceiptComposer,
        customers: Iterable[Customer] = (),
        directory: Optional[CustomerDirectory] = None,
        tax_rate: Decimal = Decimal(0),
        staff_name: str = "",
        log=None,
    ):
        self.cart = cart
        self._gateway = gateway
        self._composer = composer
        self._directory = directory
        self._customers = {c.id: c for c in customers}
        self.tax_rate = tax_rate
        self.staff_name = staff_name
        self.log = log or logger.bind(component="checkout")

        self._state: CheckoutState = CartEditing()
        self._selection = CheckoutSelection()
        self._session_id = uuid4().hex
        self._customer_pending = False

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def state(self) -> CheckoutState:
        return self._state

    @property
    def phase(self) -> CheckoutPhase:
        return self._state.phase

    @property
    def selection(self) -> CheckoutSelection:
        return self._selection

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def customers(self) -> list[Customer]:
        return list(self._customers.values())

    @property
    def customer_pending(self) -> bool:
        return self._customer_pending

    def selected_customer(self) -> Optional[Customer]:
        if self._selection.customer_id is None:
            return None
        return self._customers.get(self._selection.customer_id)

    def draft(self) -> SaleDraft:
        """Totals for the cart as it stands. Confirmation states return the confirmed draft."""
        if isinstance(self._state, (ConfirmPending, Submitting)):
            return self._state.draft
        return self.cart.draft(self.tax_rate)

    def change_due(self) -> int:
        return change_due(self.draft().total, self._selection.amount_received)

    @property
    def last_sold(self) -> Optional[SoldSnapshot]:
        if isinstance(self._state, Completed):
            return self._state.sold
        return None

    # ------------------------------------------------------------------
    # Cart editing
    # ------------------------------------------------------------------

    def add_item(self, product: Product) -> CartLine:
        self._require("add items", *_EDITING)
        return self.cart.add_item(product)

    def update_quantity(self, product_id: str, new_quantity: int) -> Optional[CartLine]:
        self._require("change quantities", *_EDITING)
        return self.cart.update_quantity(product_id, new_quantity)

    def remove_item(self, product_id: str) -> None:
        self._require("remove items", *_EDITING)
        self.cart.remove_item(product_id)

    def proceed_to_checkout(self) -> None:
        self._require("proceed to checkout", CheckoutPhase.CART)
        require_not_empty(self.cart.lines, ValidationReason.CART_EMPTY, errmsg.CART_EMPTY)
        self._transition(CheckoutEditing())

    def back_to_cart(self) -> None:
        self._require("go back to the cart", CheckoutPhase.CHECKOUT)
        self._transition(CartEditing())

    # ------------------------------------------------------------------
    # Selections
    # ------------------------------------------------------------------

    def select_payment_method(self, method: Union[PaymentMethod, str, None]) -> None:
        self._require("change the payment method", *_EDITING)
        self._selection = replace(
            self._selection,
            payment_method=PaymentMethod(method) if method is not None else None,
        )

    def select_customer(self, customer_id: Optional[str]) -> None:
        self._require("change the customer", *_EDITING)
        if customer_id is not None and customer_id not in self._customers:
            raise ValidationError(ValidationReason.UNKNOWN_CUSTOMER, errmsg.CREDIT_UNKNOWN_CUSTOMER)
        self._selection = replace(self._selection, customer_id=customer_id)

    def set_walk_in_name(self, name: Optional[str]) -> None:
        self._require("change the customer name", *_EDITING)
        self._selection = replace(self._selection, walk_in_name=(name or "").strip() or None)

    def set_credit_due_date(self, due_date: Optional[date]) -> None:
        self._require("change the due date", *_EDITING)
        self._selection = replace(self._selection, credit_due_date=due_date)

    def set_amount_received(self, amount: Optional[int]) -> None:
        self._require("change the amount received", *_EDITING)
        self._selection = replace(self._selection, amount_received=amount)

    # ------------------------------------------------------------------
    # Customer sub-flow
    # ------------------------------------------------------------------

    async def refresh_customers(self) -> list[Customer]:
        if self._directory is None:
            return self.customers
        self._customers = {c.id: c for c in await self._directory.list()}
        return self.customers

    async def create_customer(self, form: NewCustomerForm) -> Customer:
        """Create a customer and make it the active selection.

        Cart and payment method are untouched; failures leave the whole
        checkout as it was.
        """
        self._require("add a customer", *_EDITING)
        if self._directory is None:
            raise CustomerCreationError(errmsg.CUSTOMER_CREATION_FAILED.format(details="no customer directory"))
        if self._customer_pending:
            raise CustomerCreationError(errmsg.CUSTOMER_CREATION_FAILED.format(details="already in progress"))
        try:
            form.validate()
        except ValidationError as e:
            raise CustomerCreationError(e.message, e) from e

        session_id = self._session_id
        self._customer_pending = True
        try:
            customer = await self._directory.create(form)
        finally:
            if session_id == self._session_id:
                self._customer_pending = False

        self._customers[customer.id] = customer
        if session_id != self._session_id:
            self.log.info("stale_customer_selection_discarded", customer_id=customer.id)
            return customer

        self._selection = replace(self._selection, customer_id=customer.id, walk_in_name=None)
        self.log.info("customer_selected", customer_id=customer.id)
        return customer

    # ------------------------------------------------------------------
    # Confirmation and submission
    # ------------------------------------------------------------------

    def request_confirmation(self) -> ConfirmPending:
        """Run the checkout gate and show the confirmation."""
        self._require("confirm the sale", CheckoutPhase.CHECKOUT)
        if self._customer_pending:
            raise InvalidTransitionError("confirm the sale", "a customer is being created")

        draft = self.cart.draft(self.tax_rate)
        try:
            self._check_gate(draft)
        except ValidationError as e:
            self.log.info("checkout_blocked", reason=str(e.reason))
            raise

        pending = ConfirmPending(draft=draft)
        self._transition(pending)
        return pending

    def cancel_confirmation(self) -> None:
        self._require("cancel the confirmation", *_CONFIRMING)
        self._transition(CheckoutEditing())

    async def confirm(self) -> Optional[Sale]:
        """Submit the confirmed sale.

        Returns the created Sale, or None when the flow was reset while the
        request was in flight and the late result was discarded.
        """
        if isinstance(self._state, Submitting):
            raise SubmissionInFlightError(self._session_id)
        self._require("submit the sale", *_CONFIRMING)

        previous = self._state
        draft = previous.draft
        selection = self._selection
        customer = self.selected_customer()
        token = uuid4().hex
        self._transition(Submitting(draft=draft, token=token))

        try:
            sale = await self._gateway.submit(draft, selection, self._session_id)
        except SubmissionInFlightError:
            if self._is_current(token):
                self._state = previous
            raise
        except SubmissionError as e:
            if not self._is_current(token):
                self.log.info("stale_submission_discarded", token=token, outcome="failure")
                return None
            self._transition(ConfirmPending(draft=draft, last_error=e))
            raise
        except BaseException as e:
            # Cancellation or an unclassified failure must not leave the flow in Submitting.
            if self._is_current(token):
                self.log.error("submission_aborted", token=token, error=repr(e))
                self._transition(ConfirmPending(draft=draft, last_error=e))
            raise

        if not self._is_current(token):
            self.log.info("stale_submission_discarded", token=token, outcome="success", sale_id=sale.id)
            return None

        sold = SoldSnapshot(
            lines=draft.lines,
            draft=draft,
            payment_method=selection.payment_method or PaymentMethod.CASH,
            customer=customer,
            walk_in_name=selection.walk_in_name if customer is None else None,
            credit_due_date=selection.credit_due_date if selection.is_credit else None,
            amount_received=selection.amount_received,
        )
        self.cart.clear()
        self._selection = DEFAULT_SELECTION
        self._transition(Completed(sale=sale, sold=sold))
        return sale

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    def compose_receipt(self, layout: Optional[ReceiptLayout] = None) -> ReceiptDocument:
        self._require("print a receipt", CheckoutPhase.COMPLETED)
        sale, sold = self._state.sale, self._state.sold
        return self._composer.compose(
            sale,
            sold.lines,
            sold.customer or sold.walk_in_name,
            PaymentInfo(
                method=sold.payment_method,
                due_date=sold.credit_due_date,
                amount_received=sold.amount_received,
            ),
            layout,
            issued_by=self.staff_name,
            draft=sold.draft,
        )

    def new_sale(self) -> None:
        self._require("start a new sale", CheckoutPhase.COMPLETED)
        self._reset()

    close = new_sale

    def reset(self) -> None:
        """Abandon the current sale from any state."""
        self.log.info("checkout_reset", phase=str(self.phase))
        self._reset()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_gate(self, draft: SaleDraft) -> None:
        require_not_empty(draft.lines, ValidationReason.CART_EMPTY, errmsg.CART_EMPTY)
        require_present(
            self._selection.payment_method,
            ValidationReason.PAYMENT_METHOD_REQUIRED,
            errmsg.PAYMENT_METHOD_REQUIRED,
        )

        if self._selection.is_credit:
            customer = None
            if self._selection.customer_id is not None:
                customer = self._customers.get(self._selection.customer_id)
                if customer is None:
                    raise ValidationError(ValidationReason.UNKNOWN_CUSTOMER, errmsg.CREDIT_UNKNOWN_CUSTOMER)
            decision = can_extend_credit(customer, draft.total, self._selection.credit_due_date)
            if not decision.ok:
                reason, message = _CREDIT_REASONS[decision.reason]
                if decision.reason is CreditRefusal.LIMIT_EXCEEDED:
                    message = message.format(
                        name=customer.name,
                        available=format_money(available_credit(customer), self._composer.currency),
                        total=format_money(draft.total, self._composer.currency),
                    )
                raise ValidationError(reason, message)
        elif self._selection.amount_received is not None:
            require_at_least(
                self._selection.amount_received,
                draft.total,
                ValidationReason.CASH_INSUFFICIENT,
                errmsg.CASH_INSUFFICIENT,
            )

    def _require(self, action: str, *phases: CheckoutPhase) -> None:
        if self._state.phase not in phases:
            raise InvalidTransitionError(action, str(self._state.phase))

    def _transition(self, state: CheckoutState) -> None:
        self.log.debug("checkout_transition", source=str(self._state.phase), target=str(state.phase))
        self._state = state

    def _is_current(self, token: str) -> bool:
        return isinstance(self._state, Submitting) and self._state.token == token

    def _reset(self) -> None:
        self.cart.clear()
        self._selection = CheckoutSelection()
        self._session_id = uuid4().hex
        self._customer_pending = False
        self._transition(CartEditing())
