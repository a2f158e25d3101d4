"""Runtime configuration and logging setup.

Environment variables:
    POS_API_ENDPOINT: gRPC endpoint for the remote services (default: localhost:50051)
    POS_SUBMIT_TIMEOUT: per-call deadline in seconds (default: 15)
    POS_TAX_RATE: decimal tax rate, e.g. "0.18" (default: 0)
    POS_RECEIPT_LAYOUT: "full-page" or "thermal-strip" (default: full-page)
    POS_CURRENCY: currency label printed on receipts (default: TSH)
    POS_TIMEZONE: IANA zone used for receipt dates, e.g. "Africa/Dar_es_Salaam" (default: UTC)
    POS_BUSINESS_NAME / POS_BUSINESS_ADDRESS / POS_BUSINESS_PHONE / POS_BUSINESS_EMAIL:
        receipt letterhead
"""

import os
from dataclasses import dataclass, field
from datetime import timezone, tzinfo
from decimal import Decimal, InvalidOperation
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog

from .client import DEFAULT_ENDPOINT
from .receipt import DEFAULT_CURRENCY, BusinessInfo, ReceiptLayout


def configure_logging() -> None:
    """Configure structlog with JSON rendering and ISO timestamps."""
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(0),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
    )


@dataclass(frozen=True)
class Settings:
    api_endpoint: str = DEFAULT_ENDPOINT
    submit_timeout: float = 15.0
    tax_rate: Decimal = Decimal(0)
    receipt_layout: ReceiptLayout = ReceiptLayout.FULL_PAGE
    currency: str = DEFAULT_CURRENCY
    tz: tzinfo = timezone.utc
    business: BusinessInfo = field(default_factory=BusinessInfo)

    @classmethod
    def from_env(cls) -> "Settings":
        raw_rate = os.environ.get("POS_TAX_RATE", "0")
        try:
            tax_rate = Decimal(raw_rate)
        except InvalidOperation as e:
            raise ValueError(f"POS_TAX_RATE is not a decimal: {raw_rate!r}") from e
        if tax_rate < 0:
            raise ValueError(f"POS_TAX_RATE must not be negative: {raw_rate!r}")

        tz: tzinfo = timezone.utc
        raw_tz = os.environ.get("POS_TIMEZONE")
        if raw_tz:
            try:
                tz = ZoneInfo(raw_tz)
            except (ZoneInfoNotFoundError, ValueError) as e:
                raise ValueError(f"POS_TIMEZONE is not a known zone: {raw_tz!r}") from e

        return cls(
            api_endpoint=os.environ.get("POS_API_ENDPOINT", DEFAULT_ENDPOINT),
            submit_timeout=float(os.environ.get("POS_SUBMIT_TIMEOUT", "15")),
            tax_rate=tax_rate,
            receipt_layout=ReceiptLayout(os.environ.get("POS_RECEIPT_LAYOUT", ReceiptLayout.FULL_PAGE)),
            currency=os.environ.get("POS_CURRENCY", DEFAULT_CURRENCY),
            tz=tz,
            business=BusinessInfo(
                name=os.environ.get("POS_BUSINESS_NAME", BusinessInfo.name),
                address=os.environ.get("POS_BUSINESS_ADDRESS", ""),
                phone=os.environ.get("POS_BUSINESS_PHONE", ""),
                email=os.environ.get("POS_BUSINESS_EMAIL", ""),
            ),
        )
