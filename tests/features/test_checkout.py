"""Step definitions for checkout scenarios."""

import asyncio
from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest
from pytest_bdd import given, parsers, scenarios, then, when

from pos_checkout.cart import CartStore
from pos_checkout.catalog import StockCatalog
from pos_checkout.errors import SubmissionError, TransportError, ValidationError
from pos_checkout.gateway import SaleSubmissionGateway
from pos_checkout.models import Customer, PaymentMethod, Product
from pos_checkout.orchestrator import CheckoutOrchestrator
from pos_checkout.receipt import BusinessInfo, ReceiptComposer

scenarios("checkout.feature")


@pytest.fixture
def context(sale_record):
    """Shared scenario state."""
    api = MagicMock()
    api.create_sale = AsyncMock(return_value=sale_record("101", 2000))
    return {
        "products": [],
        "customers": [],
        "warnings": [],
        "api": api,
        "orchestrator": None,
        "error": None,
    }


def _checkout(context) -> CheckoutOrchestrator:
    if context["orchestrator"] is None:
        cart = CartStore(StockCatalog(context["products"]), on_warning=context["warnings"].append)
        context["orchestrator"] = CheckoutOrchestrator(
            cart=cart,
            gateway=SaleSubmissionGateway(context["api"]),
            composer=ReceiptComposer(BusinessInfo()),
            customers=context["customers"],
        )
    return context["orchestrator"]


# ==========================================================================
# Given Steps
# ==========================================================================


@given(parsers.parse('a catalog with "{name}" priced {price:d} with {stock:d} in stock'))
def given_catalog(context, name, price, stock):
    context["products"].append(Product(id=name, name=name, unit_price=price, available_quantity=stock))


@given(parsers.parse('a customer "{name}" with a credit limit of {limit:d} and {owed:d} owed'))
def given_customer(context, name, limit, owed):
    context["customers"].append(Customer(id=name, name=name, credit_limit=limit, current_credit=owed))


@given("the sale service is unreachable once")
def given_unreachable_once(context):
    api = context["api"]
    api.create_sale.side_effect = [TransportError(OSError("connection refused")), api.create_sale.return_value]


# ==========================================================================
# When Steps
# ==========================================================================


@when(parsers.parse('the cashier adds "{name}" {times:d} times'))
def when_add(context, name, times):
    checkout = _checkout(context)
    for _ in range(times):
        checkout.add_item(checkout.cart.catalog[name])


@when(parsers.parse('the cashier sets "{name}" to {quantity:d}'))
def when_set_quantity(context, name, quantity):
    _checkout(context).update_quantity(name, quantity)


@when(parsers.parse('the cashier checks out on credit for "{name}" due "{due}"'))
def when_checkout_credit(context, name, due):
    checkout = _checkout(context)
    checkout.proceed_to_checkout()
    checkout.select_payment_method(PaymentMethod.CREDIT)
    checkout.select_customer(name)
    checkout.set_credit_due_date(date.fromisoformat(due))


@when("the cashier checks out with cash")
def when_checkout_cash(context):
    checkout = _checkout(context)
    checkout.proceed_to_checkout()
    checkout.select_payment_method(PaymentMethod.CASH)


@when(parsers.parse("the cashier enters {amount:d} received"))
def when_amount_received(context, amount):
    _checkout(context).set_amount_received(amount)


@when("the cashier requests confirmation")
def when_request_confirmation(context):
    try:
        context["pending"] = _checkout(context).request_confirmation()
    except ValidationError as e:
        context["error"] = e


@when("the cashier confirms the sale")
def when_confirm(context):
    try:
        context["sale"] = asyncio.run(_checkout(context).confirm())
        context["error"] = None
    except SubmissionError as e:
        context["error"] = e


# ==========================================================================
# Then Steps
# ==========================================================================


@then(parsers.parse("the cart has {count:d} line"))
def then_line_count(context, count):
    assert len(_checkout(context).cart.lines) == count


@then("the cart is empty")
def then_cart_empty(context):
    assert _checkout(context).cart.is_empty()


@then(parsers.parse('"{name}" has quantity {quantity:d}'))
def then_quantity(context, name, quantity):
    assert _checkout(context).cart.line(name).requested_quantity == quantity


@then(parsers.parse("the subtotal is {amount:d}"))
def then_subtotal(context, amount):
    assert _checkout(context).draft().subtotal == amount


@then(parsers.parse("{count:d} stock warning was raised"))
def then_warnings(context, count):
    assert len(context["warnings"]) == count


@then(parsers.parse("the confirmation shows a total of {amount:d}"))
def then_confirmation_total(context, amount):
    assert context["error"] is None
    assert context["pending"].draft.total == amount


@then(parsers.parse('checkout is blocked with "{reason}"'))
def then_blocked(context, reason):
    assert isinstance(context["error"], ValidationError)
    assert context["error"].reason == reason


@then(parsers.parse('the checkout is in the "{phase}" phase'))
def then_phase(context, phase):
    assert _checkout(context).phase == phase


@then(parsers.parse('the submission failed as "{kind}"'))
def then_submission_kind(context, kind):
    assert isinstance(context["error"], SubmissionError)
    assert context["error"].kind == kind


@then("the confirmation shows the last error")
def then_last_error(context):
    assert _checkout(context).state.last_error is context["error"]


@then(parsers.parse('the receipt shows a total of "{text}"'))
def then_receipt_total(context, text):
    doc = _checkout(context).compose_receipt()
    assert doc.money(doc.total) == text


@then(parsers.parse('the receipt shows change of "{text}"'))
def then_receipt_change(context, text):
    doc = _checkout(context).compose_receipt()
    assert doc.money(doc.change) == text
