"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from nutrition_lookup.adapters.fatsecret_client import HttpxFatSecretClient
from nutrition_lookup.adapters.fdc_client import HttpxFdcClient
from nutrition_lookup.adapters.openfoodfacts_client import HttpxOpenFoodFactsClient
from nutrition_lookup.adapters.supabase_product_repository import (
    SupabaseProductRepository,
)
from nutrition_lookup.config import Settings
from nutrition_lookup.services.products import ProductProvider, ProductService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    product_service: ProductService
    fatsecret_client: HttpxFatSecretClient | None
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container.

    Barcode priority: FatSecret, Open Food Facts, FoodData Central.
    Name search priority: FatSecret, FoodData Central, Open Food Facts.
    """
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    repository = SupabaseProductRepository(
        supabase_client, table=resolved_settings.product_table
    )

    fatsecret_client: HttpxFatSecretClient | None = None
    if resolved_settings.fatsecret_enabled:
        fatsecret_client = HttpxFatSecretClient.create(
            client_id=resolved_settings.fatsecret_client_id or "",
            client_secret=resolved_settings.fatsecret_client_secret or "",
            premier_access=resolved_settings.fatsecret_premier_access,
            token_url=resolved_settings.fatsecret_token_url,
            api_url=resolved_settings.fatsecret_api_url,
            timeout_seconds=resolved_settings.fatsecret_timeout_seconds,
        )
    openfoodfacts_client = HttpxOpenFoodFactsClient.create(
        base_url=resolved_settings.openfoodfacts_base_url,
        user_agent=resolved_settings.openfoodfacts_user_agent,
        timeout_seconds=resolved_settings.openfoodfacts_timeout_seconds,
    )
    fdc_client: HttpxFdcClient | None = None
    if resolved_settings.fdc_enabled:
        fdc_client = HttpxFdcClient.create(
            api_key=resolved_settings.fdc_api_key or "",
            base_url=resolved_settings.fdc_base_url,
            timeout_seconds=resolved_settings.fdc_timeout_seconds,
        )

    barcode_providers: list[ProductProvider] = []
    search_providers: list[ProductProvider] = []
    if fatsecret_client is not None:
        barcode_providers.append(fatsecret_client)
        search_providers.append(fatsecret_client)
    barcode_providers.append(openfoodfacts_client)
    if fdc_client is not None:
        barcode_providers.append(fdc_client)
        search_providers.append(fdc_client)
    search_providers.append(openfoodfacts_client)

    product_service = ProductService(
        cache=repository,
        barcode_providers=barcode_providers,
        search_providers=search_providers,
        write_back_mode=resolved_settings.write_back_mode,
        max_search_providers=resolved_settings.max_search_providers,
    )

    async def close_resources() -> None:
        await product_service.drain()
        if fatsecret_client is not None:
            await fatsecret_client.close()
        await openfoodfacts_client.close()
        if fdc_client is not None:
            await fdc_client.close()

    return AppContainer(
        settings=resolved_settings,
        product_service=product_service,
        fatsecret_client=fatsecret_client,
        close_resources=close_resources,
    )
