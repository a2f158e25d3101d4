"""In-progress cart with the stock-clamp invariant."""

from collections.abc import Callable
from decimal import Decimal
from typing import Optional

import structlog

from .catalog import StockCatalog
from .errors import StockConflictWarning, ValidationError, ValidationReason, errmsg
from .models import CartLine, Product
from .totals import SaleDraft, build_draft

WarningSink = Callable[[StockConflictWarning], None]

logger = structlog.get_logger()


class CartStore:
    """Ordered cart lines, at most one per product.

    Quantities are clamped to the catalog's available stock. A clamp raises
    one StockConflictWarning per out-of-range streak: the warning re-arms
    only after the product's quantity is set in range again.
    """

    def __init__(
        self,
        catalog: StockCatalog,
        on_warning: Optional[WarningSink] = None,
        log=None,
    ):
        self._catalog = catalog
        self._lines: dict[str, CartLine] = {}
        self._clamped: set[str] = set()
        # Products lines were added from; stock fallback for ids the catalog lacks.
        self._sources: dict[str, Product] = {}
        self._on_warning = on_warning
        self.log = log or logger.bind(component="cart")

    @property
    def catalog(self) -> StockCatalog:
        return self._catalog

    def use_catalog(self, catalog: StockCatalog) -> None:
        """Swap in a fresh stock snapshot. Existing lines are re-clamped on next change."""
        self._catalog = catalog

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines.values())

    def line(self, product_id: str) -> Optional[CartLine]:
        return self._lines.get(product_id)

    def is_empty(self) -> bool:
        return not self._lines

    @property
    def item_count(self) -> int:
        return sum(line.requested_quantity for line in self._lines.values())

    def snapshot(self) -> tuple[CartLine, ...]:
        return tuple(self._lines.values())

    def draft(self, tax_rate: Decimal = Decimal(0)) -> SaleDraft:
        return build_draft(self._lines.values(), tax_rate)

    def add_item(self, product: Product) -> CartLine:
        available = self._available(product.id, product)
        if available <= 0:
            self.log.warning("add_rejected_out_of_stock", product_id=product.id)
            raise ValidationError(ValidationReason.OUT_OF_STOCK, errmsg.OUT_OF_STOCK)

        existing = self._lines.get(product.id)
        if existing is None:
            line = CartLine(
                product_id=product.id,
                name=product.name,
                unit_price=product.unit_price,
                requested_quantity=1,
            )
            self._lines[product.id] = line
            self._sources[product.id] = product
            self.log.info("adding_item", product_id=product.id, quantity=1)
            return line

        return self._set_quantity(existing, existing.requested_quantity + 1, available)

    def update_quantity(self, product_id: str, new_quantity: int) -> Optional[CartLine]:
        """Set a line's quantity. Returns the line, or None if it was removed."""
        existing = self._lines.get(product_id)
        if new_quantity <= 0:
            if existing is not None:
                self.remove_item(product_id)
            return None
        if existing is None:
            raise ValidationError(ValidationReason.ITEM_NOT_IN_CART, errmsg.ITEM_NOT_IN_CART)

        line = self._set_quantity(existing, new_quantity, self._available(product_id))
        return line if product_id in self._lines else None

    def remove_item(self, product_id: str) -> None:
        if self._lines.pop(product_id, None) is not None:
            self.log.info("removing_item", product_id=product_id)
        self._clamped.discard(product_id)
        self._sources.pop(product_id, None)

    def clear(self) -> None:
        self._lines.clear()
        self._clamped.clear()
        self._sources.clear()
        self.log.info("clearing_cart")

    def _available(self, product_id: str, fallback: Optional[Product] = None) -> int:
        product = self._catalog.find(product_id) or fallback or self._sources.get(product_id)
        return product.available_quantity if product else 0

    def _set_quantity(self, line: CartLine, requested: int, available: int) -> CartLine:
        quantity = requested
        if requested > available:
            quantity = available
            self._warn_clamped(line, requested, available)
        else:
            self._clamped.discard(line.product_id)

        if quantity <= 0:
            self.remove_item(line.product_id)
            return line

        updated = CartLine(
            product_id=line.product_id,
            name=line.name,
            unit_price=line.unit_price,
            requested_quantity=quantity,
        )
        self._lines[line.product_id] = updated
        self.log.info("updating_quantity", product_id=line.product_id, new_quantity=quantity)
        return updated

    def _warn_clamped(self, line: CartLine, requested: int, available: int) -> None:
        if line.product_id in self._clamped:
            return
        self._clamped.add(line.product_id)
        warning = StockConflictWarning(
            product_id=line.product_id,
            requested=requested,
            available=available,
            message=errmsg.QUANTITY_CLAMPED.format(available=available, name=line.name),
        )
        self.log.warning(
            "quantity_clamped",
            product_id=line.product_id,
            requested=requested,
            available=available,
        )
        if self._on_warning is not None:
            self._on_warning(warning)
