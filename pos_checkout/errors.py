"""Error types and user-facing messages for the checkout workflow."""

from enum import StrEnum
from typing import Optional

import grpc


class errmsg:
    """User-facing message constants, one per violated rule."""

    CART_EMPTY = "Cart is empty. Add at least one product before checking out."
    OUT_OF_STOCK = "This product is out of stock."
    ITEM_NOT_IN_CART = "Item not in cart"
    QUANTITY_CLAMPED = "Only {available} of {name} in stock. Quantity set to {available}."
    PAYMENT_METHOD_REQUIRED = "Choose a payment method (cash or credit)."
    CREDIT_NO_CUSTOMER = "Credit sales must be linked to a valid customer."
    CREDIT_UNKNOWN_CUSTOMER = "The selected customer does not exist."
    CREDIT_MISSING_DUE_DATE = "Set a due date for this credit sale."
    CREDIT_LIMIT_EXCEEDED = (
        "Credit limit exceeded: {name} has {available} of credit available, "
        "this sale needs {total}."
    )
    CASH_INSUFFICIENT = "Amount received does not cover the total."
    CUSTOMER_NAME_REQUIRED = "Customer name is required."
    CUSTOMER_EMAIL_INVALID = "Customer email is not a valid address."
    PAYMENT_NOT_POSITIVE = "Payment amount must be greater than 0"
    PAYMENT_EXCEEDS_BALANCE = "Payment amount cannot exceed outstanding balance"
    RETURN_NOTHING_SELECTED = "Please select at least one item to return"
    RETURN_REASON_REQUIRED = "Please select a reason for the return"
    RETURN_EXCEEDS_SOLD = "Return quantity cannot exceed the quantity sold"
    RETURN_QUANTITY_NEGATIVE = "Return quantity cannot be negative"
    RETURN_ITEM_NOT_IN_SALE = "Item not in sale"
    SUBMISSION_IN_FLIGHT = "This sale is already being processed."
    SUBMISSION_NETWORK = "Could not reach the server. Check the connection and retry."
    SUBMISSION_SERVER = "The server failed to record the sale. Please retry."
    SUBMISSION_REJECTED = "The server rejected the sale: {details}"
    SUBMISSION_STOCK_CONFLICT = (
        "Stock changed while the sale was processed. Review the cart and retry."
    )
    CUSTOMER_CREATION_FAILED = "Could not create customer: {details}"
    INVALID_TRANSITION = "Cannot {action} while {state}."


class ValidationReason(StrEnum):
    """Why a local check blocked a transition."""

    CART_EMPTY = "cart_empty"
    OUT_OF_STOCK = "out_of_stock"
    ITEM_NOT_IN_CART = "item_not_in_cart"
    PAYMENT_METHOD_REQUIRED = "payment_method_required"
    NO_CUSTOMER = "no_customer"
    UNKNOWN_CUSTOMER = "unknown_customer"
    MISSING_DUE_DATE = "missing_due_date"
    LIMIT_EXCEEDED = "limit_exceeded"
    CASH_INSUFFICIENT = "cash_insufficient"
    CUSTOMER_NAME_REQUIRED = "customer_name_required"
    CUSTOMER_EMAIL_INVALID = "customer_email_invalid"
    PAYMENT_NOT_POSITIVE = "payment_not_positive"
    PAYMENT_EXCEEDS_BALANCE = "payment_exceeds_balance"
    RETURN_NOTHING_SELECTED = "return_nothing_selected"
    RETURN_REASON_REQUIRED = "return_reason_required"
    RETURN_EXCEEDS_SOLD = "return_exceeds_sold"
    RETURN_QUANTITY_NEGATIVE = "return_quantity_negative"
    RETURN_ITEM_NOT_IN_SALE = "return_item_not_in_sale"


class SubmissionErrorKind(StrEnum):
    """Classification of a failed remote call, used for message selection."""

    VALIDATION = "validation"
    NETWORK = "network"
    SERVER = "server"
    STOCK_CONFLICT = "stock_conflict"


class CheckoutError(Exception):
    """Base class for checkout errors."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message}: {self.cause}"
        return self.message


class ValidationError(CheckoutError):
    """A local business rule blocked the operation. Never sent to the network."""

    def __init__(self, reason: ValidationReason, message: str):
        super().__init__(message)
        self.reason = reason


class InvalidTransitionError(CheckoutError):
    """Operation is not allowed in the current checkout state."""

    def __init__(self, action: str, state: str):
        super().__init__(errmsg.INVALID_TRANSITION.format(action=action, state=state))
        self.action = action
        self.state = state


class SubmissionInFlightError(CheckoutError):
    """A submission for this cart session is already outstanding."""

    def __init__(self, session_id: str):
        super().__init__(errmsg.SUBMISSION_IN_FLIGHT)
        self.session_id = session_id


class SubmissionError(CheckoutError):
    """Sale creation failed remotely. Cart and selections are kept for retry."""

    def __init__(self, kind: SubmissionErrorKind, message: str, cause: Optional[Exception] = None):
        super().__init__(message, cause)
        self.kind = kind

    @property
    def retryable(self) -> bool:
        """Return True if retrying without changing input may succeed."""
        return self.kind in (SubmissionErrorKind.NETWORK, SubmissionErrorKind.SERVER)


class CustomerCreationError(CheckoutError):
    """The nested new-customer flow failed. Parent checkout state is untouched."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message, cause)


class StockConflictWarning(UserWarning):
    """A requested quantity was clamped to the available stock."""

    def __init__(self, product_id: str, requested: int, available: int, message: str):
        super().__init__(message)
        self.product_id = product_id
        self.requested = requested
        self.available = available
        self.message = message


class TransportError(CheckoutError):
    """Transport-level error outside gRPC status handling."""

    def __init__(self, cause: Exception):
        super().__init__("transport error", cause)


class GRPCError(CheckoutError):
    """gRPC error from a remote service."""

    def __init__(self, cause: grpc.RpcError):
        super().__init__("grpc error", cause)
        self._rpc_error = cause

    @property
    def code(self) -> grpc.StatusCode:
        """Return the gRPC status code."""
        return self._rpc_error.code()

    @property
    def details(self) -> str:
        """Return the error details."""
        return self._rpc_error.details() or ""


_VALIDATION_CODES = frozenset({
    grpc.StatusCode.INVALID_ARGUMENT,
    grpc.StatusCode.FAILED_PRECONDITION,
})
_STOCK_CONFLICT_CODES = frozenset({
    grpc.StatusCode.ABORTED,
    grpc.StatusCode.RESOURCE_EXHAUSTED,
})
_NETWORK_CODES = frozenset({
    grpc.StatusCode.UNAVAILABLE,
    grpc.StatusCode.DEADLINE_EXCEEDED,
    grpc.StatusCode.CANCELLED,
})


def classify(error: Exception) -> SubmissionErrorKind:
    """Map a transport failure onto a submission error kind."""
    if isinstance(error, GRPCError):
        code = error.code
        if code in _VALIDATION_CODES:
            return SubmissionErrorKind.VALIDATION
        if code in _STOCK_CONFLICT_CODES:
            return SubmissionErrorKind.STOCK_CONFLICT
        if code in _NETWORK_CODES:
            return SubmissionErrorKind.NETWORK
        return SubmissionErrorKind.SERVER
    if isinstance(error, (TransportError, OSError, TimeoutError)):
        return SubmissionErrorKind.NETWORK
    return SubmissionErrorKind.SERVER


def submission_error(error: Exception) -> SubmissionError:
    """Wrap a transport failure in a classified SubmissionError."""
    kind = classify(error)
    if kind is SubmissionErrorKind.VALIDATION:
        details = error.details if isinstance(error, GRPCError) else str(error)
        message = errmsg.SUBMISSION_REJECTED.format(details=details)
    elif kind is SubmissionErrorKind.STOCK_CONFLICT:
        message = errmsg.SUBMISSION_STOCK_CONFLICT
    elif kind is SubmissionErrorKind.NETWORK:
        message = errmsg.SUBMISSION_NETWORK
    else:
        message = errmsg.SUBMISSION_SERVER
    return SubmissionError(kind, message, error)
