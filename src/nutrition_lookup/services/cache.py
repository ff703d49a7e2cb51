"""Product cache contract and in-memory implementation."""

from dataclasses import dataclass, field, replace
from typing import Protocol

from nutrition_lookup.domain.products import ProductData


class ProductCache(Protocol):
    """Durable store of previously resolved products keyed by barcode."""

    def find_by_barcode(self, barcode: str) -> ProductData | None:
        """Return the cached product for a barcode, if present."""

    def upsert(self, barcode: str, product: ProductData) -> None:
        """Create the record for a barcode or update all of its fields."""


@dataclass
class InMemoryProductCache(ProductCache):
    """In-memory product cache for local runs and tests."""

    _entries: dict[str, ProductData] = field(default_factory=dict)

    def find_by_barcode(self, barcode: str) -> ProductData | None:
        """Return a cached product by barcode."""
        return self._entries.get(barcode)

    def upsert(self, barcode: str, product: ProductData) -> None:
        """Store the product under the barcode, replacing any previous record."""
        if product.barcode != barcode:
            product = replace(product, barcode=barcode)
        self._entries[barcode] = product

    def __len__(self) -> int:
        return len(self._entries)
