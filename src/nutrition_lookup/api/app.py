"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import UTC, datetime

from fastapi import FastAPI, Query, Request, Response, status
from fastapi.responses import JSONResponse

from nutrition_lookup.api.models import ManualProductRequest
from nutrition_lookup.app_logging import configure_logging
from nutrition_lookup.containers import AppContainer
from nutrition_lookup.domain.errors import (
    PRODUCT_NOT_FOUND,
    APIError,
    NetworkError,
)
from nutrition_lookup.domain.products import ProductData
from nutrition_lookup.services.nutrients import scale_to_serving

PRODUCT_CACHE_CONTROL = "public, max-age=3600"


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
        status_code = exc.status or status.HTTP_500_INTERNAL_SERVER_ERROR
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error("%s %s failed: %r", request.method, request.url.path, exc)
        headers: dict[str, str] = {}
        if exc.retry_after is not None:
            headers["Retry-After"] = str(int(exc.retry_after))
        return _error_response(exc.message, exc.code, status_code, headers=headers)

    @app.exception_handler(NetworkError)
    async def network_error_handler(
        request: Request, exc: NetworkError
    ) -> JSONResponse:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return _error_response(
            exc.message,
            "SERVICE_UNAVAILABLE",
            status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/products/{barcode}", response_model=None)
    async def product_by_barcode(
        barcode: str,
        request: Request,
        response: Response,
        per_serving: bool = Query(default=False),
    ) -> dict[str, object] | JSONResponse:
        """Resolve a product by barcode, optionally with per-serving values."""
        state_container: AppContainer = request.app.state.container
        product = await state_container.product_service.resolve_by_barcode(barcode)
        if product is None:
            return _error_response(
                f"No product found for barcode {barcode}",
                PRODUCT_NOT_FOUND,
                status.HTTP_404_NOT_FOUND,
            )
        response.headers["Cache-Control"] = PRODUCT_CACHE_CONTROL
        data = _serialize_product(product)
        if per_serving:
            data["per_serving"] = asdict(
                scale_to_serving(product.nutrition(), product.serving.size)
            )
        return {
            "data": data,
            "message": f"Product found ({product.source})",
            "timestamp": _timestamp(),
        }

    @app.get("/products")
    async def search_products(
        request: Request,
        q: str = Query(default=""),
        limit: int = Query(default=20),
    ) -> dict[str, object]:
        """Search products by name across providers."""
        state_container: AppContainer = request.app.state.container
        products = await state_container.product_service.resolve_by_name(q, limit)
        return {
            "data": [_serialize_product(product) for product in products],
            "timestamp": _timestamp(),
        }

    @app.post("/products/manual", status_code=status.HTTP_201_CREATED)
    async def submit_manual_product(
        payload: ManualProductRequest, request: Request
    ) -> dict[str, object]:
        """Store a user-submitted product for a barcode."""
        state_container: AppContainer = request.app.state.container
        product = await state_container.product_service.submit_manual_product(
            barcode=payload.barcode,
            name=payload.name,
            brand=payload.brand,
            serving=payload.serving(),
            nutrition=payload.nutrition(),
            ingredients_text=payload.ingredients_text,
            image_url=payload.image_url,
        )
        return {
            "data": _serialize_product(product),
            "message": "Product saved",
            "timestamp": _timestamp(),
        }

    @app.get("/providers/status")
    async def providers_status(request: Request) -> dict[str, object]:
        """Report enabled providers and FatSecret authentication state."""
        state_container: AppContainer = request.app.state.container
        service = state_container.product_service
        fatsecret: dict[str, object] | None = None
        if state_container.fatsecret_client is not None:
            fatsecret_status = state_container.fatsecret_client.status()
            fatsecret = {
                "has_token": fatsecret_status.has_token,
                "expires_at": (
                    fatsecret_status.expires_at.isoformat()
                    if fatsecret_status.expires_at
                    else None
                ),
                "barcode_enabled": fatsecret_status.barcode_enabled,
            }
        return {
            "barcode_providers": [
                provider.name
                for provider in service.barcode_providers
                if provider.supports_barcode_lookup
            ],
            "search_providers": [
                provider.name
                for provider in service.search_providers[
                    : service.max_search_providers
                ]
            ],
            "fatsecret": fatsecret,
        }

    return app


def _serialize_product(product: ProductData) -> dict[str, object]:
    data = asdict(product)
    data["source"] = str(product.source)
    data["serving"] = {"size": product.serving.size, "unit": product.serving.unit}
    for key, value in data.items():
        if isinstance(value, tuple):
            data[key] = list(value)
    return data


def _error_response(
    message: str,
    code: str | None,
    status_code: int,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": message,
            "code": code,
            "status": status_code,
            "timestamp": _timestamp(),
        },
        headers=headers or None,
    )


def _timestamp() -> str:
    return datetime.now(tz=UTC).isoformat()
