"""Customer directory access and the quick-add customer form."""

import re
from dataclasses import dataclass

import structlog

from .client import CustomerDirectoryClient
from .errors import CheckoutError, CustomerCreationError, ValidationError, ValidationReason, errmsg
from .models import Customer
from .validation import require_present

_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

logger = structlog.get_logger()


@dataclass(frozen=True)
class NewCustomerForm:
    name: str
    email: str = ""
    phone: str = ""
    credit_limit: int = 0

    def validate(self) -> None:
        require_present(self.name, ValidationReason.CUSTOMER_NAME_REQUIRED, errmsg.CUSTOMER_NAME_REQUIRED)
        if self.email.strip() and not _EMAIL.match(self.email.strip()):
            raise ValidationError(ValidationReason.CUSTOMER_EMAIL_INVALID, errmsg.CUSTOMER_EMAIL_INVALID)

    def to_wire(self) -> dict:
        payload = {
            "name": self.name.strip(),
            "isCredit": self.credit_limit > 0,
            "creditLimit": self.credit_limit,
            "currentCredit": 0,
            "status": "active",
        }
        if self.email.strip():
            payload["email"] = self.email.strip()
        if self.phone.strip():
            payload["phone"] = self.phone.strip()
        return payload


class CustomerDirectory:
    """Customer list/create backed by the remote directory service."""

    def __init__(self, client: CustomerDirectoryClient, log=None):
        self._client = client
        self.log = log or logger.bind(component="customer_directory")

    async def list(self) -> list[Customer]:
        records = await self._client.list_customers()
        return [Customer.from_wire(r) for r in records]

    async def create(self, form: NewCustomerForm) -> Customer:
        try:
            record = await self._client.create_customer(form.to_wire())
        except CheckoutError as e:
            self.log.warning("customer_creation_failed", name=form.name, error=str(e))
            details = getattr(e, "details", "") or e.message
            raise CustomerCreationError(errmsg.CUSTOMER_CREATION_FAILED.format(details=details), e) from e
        customer = Customer.from_wire(record)
        self.log.info("customer_created", customer_id=customer.id)
        return customer
