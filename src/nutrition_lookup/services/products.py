"""Product resolution across the cache and external nutrition providers."""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Protocol
from uuid import uuid4

from nutrition_lookup.domain.errors import (
    INVALID_QUERY,
    APIError,
    ProductLookupError,
    invalid_barcode,
)
from nutrition_lookup.domain.products import (
    NUTRIENT_FIELDS,
    NutritionalInfo,
    ProductData,
    ProductSource,
    ServingInfo,
)
from nutrition_lookup.services.barcodes import is_valid_barcode
from nutrition_lookup.services.cache import ProductCache
from nutrition_lookup.services.grading import calculate_nutri_grade
from nutrition_lookup.services.nutrients import (
    clamp_non_negative,
    missing_critical_fields,
)

_logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2


class ProductProvider(Protocol):
    """An external nutrition database consulted during resolution."""

    name: str

    @property
    def supports_barcode_lookup(self) -> bool:
        """Whether barcode lookup is available for the configured access tier."""

    async def lookup_by_barcode(self, barcode: str) -> ProductData | None:
        """Return the product for a pre-validated barcode, or None if unknown."""

    async def search_by_name(self, query: str, limit: int) -> list[ProductData]:
        """Return up to ``limit`` products matching a free-text query."""


class WriteBackMode(StrEnum):
    """How resolved products are persisted to the cache."""

    AWAIT = "await"
    BACKGROUND = "background"


def finalize_product(product: ProductData, barcode: str | None = None) -> ProductData:
    """Grade a provider record and flag missing critical nutrients.

    A record is only kept as verified when every critical field is present.
    """
    missing = missing_critical_fields(product)
    return replace(
        product,
        barcode=barcode or product.barcode,
        nutri_grade=calculate_nutri_grade(product),
        missing_critical=missing,
        verified=product.verified and not missing,
    )


@dataclass
class ProductService:
    """Resolve products by barcode or name with cache write-back."""

    cache: ProductCache
    barcode_providers: list[ProductProvider]
    search_providers: list[ProductProvider]
    write_back_mode: WriteBackMode = WriteBackMode.AWAIT
    max_search_providers: int = 2
    _pending: set[asyncio.Task[None]] = field(default_factory=set, repr=False)

    async def resolve_by_barcode(self, barcode: str) -> ProductData | None:
        """Resolve a barcode through the cache, then providers in priority order.

        Returns None when no source knows the barcode. If the last provider
        attempted raised, that error propagates instead so callers can tell
        "not found" apart from "could not search right now".
        """
        if not barcode or not is_valid_barcode(barcode):
            _logger.warning("Invalid barcode format: %s", barcode)
            raise invalid_barcode(barcode)

        cached = self._read_cache(barcode)
        if cached is not None:
            _logger.info("Barcode %s found in cache", barcode)
            return cached
        _logger.info("Barcode %s not in cache", barcode)

        last_error: ProductLookupError | None = None
        for provider in self.barcode_providers:
            if not provider.supports_barcode_lookup:
                _logger.debug(
                    "Skipping %s: barcode lookup unavailable", provider.name
                )
                continue
            try:
                found = await provider.lookup_by_barcode(barcode)
            except ProductLookupError as exc:
                _logger.warning(
                    "Barcode lookup via %s failed for %s: %r",
                    provider.name,
                    barcode,
                    exc,
                )
                last_error = exc
                continue
            last_error = None
            if found is None:
                _logger.info("Barcode %s not found in %s", barcode, provider.name)
                continue
            _logger.info("Barcode %s found in %s", barcode, provider.name)
            product = finalize_product(found, barcode=barcode)
            await self._write_back(barcode, product)
            return product

        if last_error is not None:
            raise last_error
        _logger.info("Barcode %s not found in any source", barcode)
        return None

    async def resolve_by_name(self, query: str, limit: int = 20) -> list[ProductData]:
        """Search providers in priority order, concatenating up to ``limit`` results."""
        cleaned = (query or "").strip()
        if len(cleaned) < MIN_QUERY_LENGTH:
            raise APIError(
                f"Search query must be at least {MIN_QUERY_LENGTH} characters",
                status=400,
                code=INVALID_QUERY,
            )
        if limit < 1:
            raise APIError(
                "Search limit must be positive", status=400, code=INVALID_QUERY
            )

        results: list[ProductData] = []
        last_error: ProductLookupError | None = None
        for provider in self.search_providers[: self.max_search_providers]:
            remaining = limit - len(results)
            if remaining <= 0:
                break
            try:
                found = await provider.search_by_name(cleaned, remaining)
            except ProductLookupError as exc:
                _logger.warning(
                    "Search via %s failed for %r: %r", provider.name, cleaned, exc
                )
                last_error = exc
                continue
            last_error = None
            _logger.info(
                "Search via %s for %r: %s results", provider.name, cleaned, len(found)
            )
            results.extend(finalize_product(product) for product in found[:remaining])

        if not results and last_error is not None:
            raise last_error
        return results

    async def submit_manual_product(
        self,
        *,
        barcode: str,
        name: str,
        serving: ServingInfo,
        nutrition: NutritionalInfo,
        brand: str | None = None,
        ingredients_text: str | None = None,
        image_url: str | None = None,
    ) -> ProductData:
        """Store a user-submitted product as unverified data for the barcode."""
        if not is_valid_barcode(barcode):
            raise invalid_barcode(barcode)
        product = finalize_product(
            ProductData(
                id=f"manual-{uuid4()}",
                barcode=barcode,
                name=name.strip(),
                brand=brand,
                serving=serving,
                source=ProductSource.MANUAL,
                image_url=image_url,
                ingredients_text=ingredients_text,
                **{
                    field_name: clamp_non_negative(getattr(nutrition, field_name))
                    for field_name in NUTRIENT_FIELDS
                },
            )
        )
        self.cache.upsert(barcode, product)
        _logger.info("Stored manual product for barcode %s", barcode)
        return product

    async def drain(self) -> None:
        """Wait for background write-backs still in flight."""
        if self._pending:
            await asyncio.gather(*self._pending)

    def _read_cache(self, barcode: str) -> ProductData | None:
        try:
            return self.cache.find_by_barcode(barcode)
        except Exception:
            _logger.exception("Cache read failed for barcode %s", barcode)
            return None

    async def _write_back(self, barcode: str, product: ProductData) -> None:
        if self.write_back_mode is WriteBackMode.BACKGROUND:
            task = asyncio.create_task(self._persist(barcode, product))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            return
        await self._persist(barcode, product)

    async def _persist(self, barcode: str, product: ProductData) -> None:
        """Upsert a resolved product; failures are logged, never raised."""
        try:
            self.cache.upsert(barcode, product)
        except Exception:
            _logger.exception("Cache write-back failed for barcode %s", barcode)
