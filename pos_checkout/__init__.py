"""Point-of-sale checkout workflow: cart, credit rules, submission and receipts."""

from .catalog import StockCatalog
from .cart import CartStore
from .client import (
    CustomerDirectoryClient,
    ProductFeedClient,
    SaleApiClient,
    ServiceClient,
)
from .config import Settings, configure_logging
from .credit import CreditDecision, CreditRefusal, available_credit, can_extend_credit
from .customers import CustomerDirectory, NewCustomerForm
from .errors import (
    CheckoutError,
    CustomerCreationError,
    GRPCError,
    InvalidTransitionError,
    StockConflictWarning,
    SubmissionError,
    SubmissionErrorKind,
    SubmissionInFlightError,
    TransportError,
    ValidationError,
    ValidationReason,
    classify,
    errmsg,
)
from .gateway import SaleListCache, SaleSubmissionGateway, build_payload
from .models import (
    CartLine,
    CheckoutSelection,
    Customer,
    PaymentMethod,
    Product,
    Sale,
    SaleItem,
)
from .orchestrator import CheckoutOrchestrator
from .payments import Payment, PaymentRecorder
from .receipt import (
    BusinessInfo,
    PaymentInfo,
    ReceiptComposer,
    ReceiptDocument,
    ReceiptLayout,
    format_money,
)
from .returns import AdjustmentStatus, ReturnLine, ReturnRecorder, SalesAdjustment
from .session import CheckoutSession, open_session
from .state import CheckoutPhase, CheckoutState, SoldSnapshot
from .totals import SaleDraft, build_draft, change_due

__all__ = [
    # Catalog and cart
    "StockCatalog",
    "CartStore",
    # Clients
    "ServiceClient",
    "ProductFeedClient",
    "CustomerDirectoryClient",
    "SaleApiClient",
    # Config
    "Settings",
    "configure_logging",
    # Credit
    "CreditDecision",
    "CreditRefusal",
    "available_credit",
    "can_extend_credit",
    # Customers
    "CustomerDirectory",
    "NewCustomerForm",
    # Errors
    "CheckoutError",
    "CustomerCreationError",
    "GRPCError",
    "InvalidTransitionError",
    "StockConflictWarning",
    "SubmissionError",
    "SubmissionErrorKind",
    "SubmissionInFlightError",
    "TransportError",
    "ValidationError",
    "ValidationReason",
    "classify",
    "errmsg",
    # Submission
    "SaleSubmissionGateway",
    "SaleListCache",
    "build_payload",
    # Models
    "CartLine",
    "CheckoutSelection",
    "Customer",
    "PaymentMethod",
    "Product",
    "Sale",
    "SaleItem",
    # Orchestration
    "CheckoutOrchestrator",
    "CheckoutPhase",
    "CheckoutState",
    "SoldSnapshot",
    # Payments
    "Payment",
    "PaymentRecorder",
    # Returns
    "AdjustmentStatus",
    "ReturnLine",
    "ReturnRecorder",
    "SalesAdjustment",
    # Receipts
    "BusinessInfo",
    "PaymentInfo",
    "ReceiptComposer",
    "ReceiptDocument",
    "ReceiptLayout",
    "format_money",
    # Session
    "CheckoutSession",
    "open_session",
    # Totals
    "SaleDraft",
    "build_draft",
    "change_due",
]
