"""Read-only stock snapshot supplied by the product service."""

from collections.abc import Iterable, Iterator, Mapping
from typing import Optional

from .models import Product


class StockCatalog(Mapping[str, Product]):
    """Immutable product id -> Product snapshot.

    The checkout reads stock from here and never writes it back. A fresh
    feed replaces the snapshot wholesale via ``refreshed``.
    """

    def __init__(self, products: Iterable[Product] = ()):
        self._products = {p.id: p for p in products}

    @classmethod
    def from_wire(cls, records: Iterable[dict]) -> "StockCatalog":
        return cls(Product.from_wire(r) for r in records)

    def __getitem__(self, product_id: str) -> Product:
        return self._products[product_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._products)

    def __len__(self) -> int:
        return len(self._products)

    def available(self, product_id: str) -> int:
        """Return available stock for a product, 0 if unknown."""
        product = self._products.get(product_id)
        return product.available_quantity if product else 0

    def find(self, product_id: str) -> Optional[Product]:
        return self._products.get(product_id)

    def search(self, term: str) -> list[Product]:
        """Case-insensitive name search, in feed order."""
        needle = term.strip().lower()
        return [p for p in self._products.values() if needle in p.name.lower()]

    def refreshed(self, products: Iterable[Product]) -> "StockCatalog":
        return StockCatalog(products)
