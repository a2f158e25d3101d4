"""Shared fixtures for checkout tests."""

import asyncio
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from pos_checkout.cart import CartStore
from pos_checkout.catalog import StockCatalog
from pos_checkout.gateway import SaleSubmissionGateway
from pos_checkout.models import Customer, Product
from pos_checkout.orchestrator import CheckoutOrchestrator
from pos_checkout.receipt import BusinessInfo, ReceiptComposer


CROISSANT = Product(id="A", name="Croissant", unit_price=1000, available_quantity=5)
BAGUETTE = Product(id="B", name="Baguette", unit_price=500, available_quantity=2)
ECLAIR = Product(id="C", name="Eclair", unit_price=1500, available_quantity=0)

AMINA = Customer(id="7", name="Amina", credit_limit=10000, current_credit=8000)
BARAKA = Customer(id="8", name="Baraka", credit_limit=0, current_credit=0)

DUE_DATE = date(2026, 11, 30)


def sale_record(sale_id="101", total=1000, is_credit=False, **extra) -> dict:
    """Sale as the persistence API returns it (Struct numbers are doubles)."""
    record = {
        "id": float(sale_id) if sale_id.isdigit() else sale_id,
        "total": float(total),
        "isCredit": is_credit,
        "status": "completed",
        "createdAt": "2026-10-19T09:30:00Z",
    }
    record.update(extra)
    return record


class HeldSaleApi:
    """Sale API whose create_sale blocks until released.

    Lets a test observe the orchestrator while a submission is in flight.
    """

    def __init__(self, record=None, error=None):
        self.record = record or sale_record()
        self.error = error
        self.calls = []
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def create_sale(self, payload: dict) -> dict:
        self.calls.append(payload)
        self.started.set()
        await self.release.wait()
        if self.error is not None:
            raise self.error
        return self.record


@pytest.fixture
def products():
    return [CROISSANT, BAGUETTE, ECLAIR]


@pytest.fixture
def catalog(products):
    return StockCatalog(products)


@pytest.fixture
def customers():
    return [AMINA, BARAKA]


@pytest.fixture
def warnings():
    """Collected StockConflictWarnings from a cart."""
    return []


@pytest.fixture
def cart(catalog, warnings):
    return CartStore(catalog, on_warning=warnings.append)


@pytest.fixture
def sale_api():
    api = MagicMock()
    api.create_sale = AsyncMock(return_value=sale_record())
    return api


@pytest.fixture
def composer():
    return ReceiptComposer(BusinessInfo(name="Pastry Pros", phone="0755 000 111"))


@pytest.fixture
def directory(customers):
    directory = MagicMock()
    directory.list = AsyncMock(return_value=list(customers))
    directory.create = AsyncMock()
    return directory


@pytest.fixture
def make_orchestrator(cart, composer, customers, directory):
    """Build an orchestrator around the given sale API."""

    def _make(api, tax_rate=Decimal(0), staff_name="Neema"):
        gateway = SaleSubmissionGateway(api)
        return CheckoutOrchestrator(
            cart=cart,
            gateway=gateway,
            composer=composer,
            customers=customers,
            directory=directory,
            tax_rate=tax_rate,
            staff_name=staff_name,
        )

    return _make


@pytest.fixture
def orchestrator(make_orchestrator, sale_api):
    return make_orchestrator(sale_api)


@pytest.fixture(name="sale_record")
def sale_record_factory():
    return sale_record


@pytest.fixture(name="held_sale_api")
def held_sale_api_factory():
    return HeldSaleApi


@pytest.fixture
def due_date():
    return DUE_DATE
