"""Tests for container wiring."""

import asyncio

from nutrition_lookup.containers import build_container


def test_build_container_orders_providers(settings) -> None:
    container = build_container(settings)
    service = container.product_service

    assert [provider.name for provider in service.barcode_providers] == [
        "fatsecret",
        "openfoodfacts",
        "fdc",
    ]
    assert [provider.name for provider in service.search_providers] == [
        "fatsecret",
        "fdc",
        "openfoodfacts",
    ]
    assert container.fatsecret_client is not None
    asyncio.run(container.close_resources())


def test_build_container_skips_unconfigured_providers(settings) -> None:
    settings = settings.model_copy(
        update={"fatsecret_client_id": None, "fdc_api_key": None}
    )
    container = build_container(settings)

    assert container.fatsecret_client is None
    assert [
        provider.name for provider in container.product_service.barcode_providers
    ] == ["openfoodfacts"]
    asyncio.run(container.close_resources())
