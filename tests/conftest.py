"""Shared test fixtures."""

from dataclasses import dataclass, field

import pytest

from nutrition_lookup.config import Settings
from nutrition_lookup.containers import AppContainer
from nutrition_lookup.domain.products import ProductData, ProductSource, ServingInfo
from nutrition_lookup.services.cache import InMemoryProductCache, ProductCache
from nutrition_lookup.services.products import ProductProvider, ProductService


def make_product(**overrides: object) -> ProductData:
    """Build a complete provider record with sensible defaults."""
    values: dict[str, object] = {
        "id": "off-3017620422003",
        "barcode": "3017620422003",
        "name": "Nutella",
        "brand": "Ferrero",
        "serving": ServingInfo(size=15.0, unit="g"),
        "source": ProductSource.OPENFOODFACTS,
        "calories": 539.0,
        "protein": 6.3,
        "carbohydrates": 57.5,
        "fat": 30.9,
        "sugars": 56.3,
        "saturated_fat": 10.6,
        "sodium": 107.0,
    }
    values.update(overrides)
    return ProductData(**values)  # type: ignore[arg-type]


@dataclass
class FakeProvider(ProductProvider):
    """Provider that serves canned records and records every call."""

    name: str = "fake"
    products: dict[str, ProductData] = field(default_factory=dict)
    search_results: list[ProductData] = field(default_factory=list)
    error: Exception | None = None
    barcode_enabled: bool = True
    barcode_calls: list[str] = field(default_factory=list)
    search_calls: list[tuple[str, int]] = field(default_factory=list)

    @property
    def supports_barcode_lookup(self) -> bool:
        return self.barcode_enabled

    async def lookup_by_barcode(self, barcode: str) -> ProductData | None:
        self.barcode_calls.append(barcode)
        if self.error is not None:
            raise self.error
        return self.products.get(barcode)

    async def search_by_name(self, query: str, limit: int) -> list[ProductData]:
        self.search_calls.append((query, limit))
        if self.error is not None:
            raise self.error
        return self.search_results[:limit]


@dataclass
class RecordingCache(InMemoryProductCache):
    """In-memory cache that counts upserts."""

    upserts: list[str] = field(default_factory=list)

    def upsert(self, barcode: str, product: ProductData) -> None:
        self.upserts.append(barcode)
        super().upsert(barcode, product)


@dataclass
class FailingCache(ProductCache):
    """Cache whose reads and writes always fail."""

    fail_reads: bool = True
    fail_writes: bool = True
    write_attempts: int = 0

    def find_by_barcode(self, barcode: str) -> ProductData | None:
        if self.fail_reads:
            raise RuntimeError("cache unavailable")
        return None

    def upsert(self, barcode: str, product: ProductData) -> None:
        self.write_attempts += 1
        if self.fail_writes:
            raise RuntimeError("cache unavailable")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="test.service.key",
        fatsecret_client_id="client-id",
        fatsecret_client_secret="client-secret",
        fdc_api_key="fdc-key",
    )


@pytest.fixture
def cache() -> RecordingCache:
    return RecordingCache()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider(name="openfoodfacts")


@pytest.fixture
def container(
    settings: Settings, cache: RecordingCache, provider: FakeProvider
) -> AppContainer:
    product_service = ProductService(
        cache=cache,
        barcode_providers=[provider],
        search_providers=[provider],
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        product_service=product_service,
        fatsecret_client=None,
        close_resources=close_resources,
    )
