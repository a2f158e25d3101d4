"""Wire a checkout session to the remote services from Settings."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional

import structlog

from .cart import CartStore
from .catalog import StockCatalog
from .client import CustomerDirectoryClient, ProductFeedClient, SaleApiClient, _create_channel
from .config import Settings
from .customers import CustomerDirectory
from .errors import StockConflictWarning
from .gateway import SaleListCache, SaleSubmissionGateway
from .orchestrator import CheckoutOrchestrator
from .payments import PaymentRecorder
from .receipt import ReceiptComposer
from .returns import ReturnRecorder

logger = structlog.get_logger()


@dataclass
class CheckoutSession:
    orchestrator: CheckoutOrchestrator
    payments: PaymentRecorder
    returns: ReturnRecorder
    sales: SaleListCache
    products: ProductFeedClient

    async def refresh_stock(self) -> StockCatalog:
        catalog = StockCatalog.from_wire(await self.products.list_products())
        self.orchestrator.cart.use_catalog(catalog)
        return catalog

    async def close(self) -> None:
        await self.products.close()


async def open_session(
    settings: Settings,
    staff_name: str = "",
    on_warning: Optional[Callable[[StockConflictWarning], None]] = None,
) -> CheckoutSession:
    """Connect to the services at ``settings.api_endpoint`` and load stock and customers."""
    channel = _create_channel(settings.api_endpoint)
    timeout = settings.submit_timeout
    products = ProductFeedClient(channel, timeout)
    sale_api = SaleApiClient(channel, timeout)
    directory = CustomerDirectory(CustomerDirectoryClient(channel, timeout))

    catalog = StockCatalog.from_wire(await products.list_products())
    customers = await directory.list()

    gateway = SaleSubmissionGateway(sale_api)
    sales = SaleListCache()
    gateway.add_listener(sales.on_sale_committed)
    returns = ReturnRecorder(sale_api)
    returns.add_listener(sales.on_adjustment_recorded)

    orchestrator = CheckoutOrchestrator(
        cart=CartStore(catalog, on_warning=on_warning),
        gateway=gateway,
        composer=ReceiptComposer(
            settings.business,
            tax_rate=settings.tax_rate,
            currency=settings.currency,
            default_layout=settings.receipt_layout,
            tz=settings.tz,
        ),
        customers=customers,
        directory=directory,
        tax_rate=settings.tax_rate,
        staff_name=staff_name,
    )
    logger.info(
        "checkout_session_opened",
        endpoint=settings.api_endpoint,
        products=len(catalog),
        customers=len(customers),
    )
    return CheckoutSession(
        orchestrator=orchestrator,
        payments=PaymentRecorder(sale_api),
        returns=returns,
        sales=sales,
        products=products,
    )
