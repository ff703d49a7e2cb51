"""USDA FoodData Central API client."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import ClassVar

import httpx

from nutrition_lookup.adapters.http_errors import (
    error_for_response,
    network_error,
    parse_json,
)
from nutrition_lookup.domain.products import ProductData, ProductSource, ServingInfo
from nutrition_lookup.services.barcodes import is_valid_barcode, normalize_barcode
from nutrition_lookup.services.nutrients import (
    KJ_TO_KCAL,
    clamp_non_negative,
    to_float,
)
from nutrition_lookup.services.rate_limit import RateLimiter, RateLimitRule

BASE_URL = "https://api.nal.usda.gov/fdc/v1"

DEFAULT_RATE_LIMITS = {
    "request": RateLimitRule(max_requests=1000, window_seconds=3600),
}

_ENERGY_KCAL_IDS = (1008, 2047, 2048)
_ENERGY_KJ_ID = 1062

_NUTRIENT_IDS = {
    "protein": 1003,
    "fat": 1004,
    "carbohydrates": 1005,
    "fiber": 1079,
    "sugars": 2000,
    "sodium": 1093,
    "saturated_fat": 1258,
    "cholesterol": 1253,
    "trans_fat": 1257,
    "monounsaturated_fat": 1292,
    "polyunsaturated_fat": 1293,
    "calcium": 1087,
    "iron": 1089,
    "potassium": 1092,
    "magnesium": 1090,
    "zinc": 1095,
    "vitamin_c": 1162,
    "alcohol": 1018,
    "starch": 1009,
}

_logger = logging.getLogger(__name__)


@dataclass
class HttpxFdcClient:
    """HTTPX-backed FDC client."""

    name: ClassVar[str] = "fdc"

    api_key: str
    base_url: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 15.0
    rate_limiter: RateLimiter = field(
        default_factory=lambda: RateLimiter(dict(DEFAULT_RATE_LIMITS))
    )

    @classmethod
    def create(
        cls, api_key: str, base_url: str = BASE_URL, timeout_seconds: float = 15.0
    ) -> "HttpxFdcClient":
        """Create an FDC client with a managed httpx session."""
        return cls(
            api_key=api_key,
            base_url=base_url,
            http_client=httpx.AsyncClient(),
            timeout_seconds=timeout_seconds,
        )

    @property
    def supports_barcode_lookup(self) -> bool:
        """Branded foods carry a GTIN/UPC, so barcodes can be matched."""
        return True

    async def search_foods(
        self,
        query: str,
        page_size: int = 10,
        data_types: list[str] | None = None,
    ) -> dict[str, object]:
        """Search foods by query and return raw API data."""
        body: dict[str, object] = {"query": query, "pageSize": page_size}
        if data_types:
            body["dataType"] = data_types
        return await self._request(
            "POST", f"{self.base_url}/foods/search", json=body
        )

    async def lookup_by_barcode(self, barcode: str) -> ProductData | None:
        """Match a barcode against branded foods' GTIN/UPC codes."""
        payload = await self.search_foods(barcode, page_size=5, data_types=["Branded"])
        target = normalize_barcode(barcode)
        for food in _foods(payload):
            gtin = str(food.get("gtinUpc") or "")
            if gtin and normalize_barcode(gtin) == target:
                return map_fdc_food(food, barcode=barcode)
        _logger.info("FDC has no branded food for barcode %s", barcode)
        return None

    async def search_by_name(self, query: str, limit: int = 20) -> list[ProductData]:
        """Search foods by name."""
        payload = await self.search_foods(query, page_size=limit)
        products = [map_fdc_food(food) for food in _foods(payload) if food.get("fdcId")]
        return products[:limit]

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _request(
        self, method: str, url: str, json: dict[str, object] | None = None
    ) -> dict[str, object]:
        self.rate_limiter.check("request")
        try:
            response = await self.http_client.request(
                method,
                url,
                params={"api_key": self.api_key},
                json=json,
                timeout=self.timeout_seconds,
            )
        except httpx.HTTPError as exc:
            raise network_error("FoodData Central", exc) from exc
        if not response.is_success:
            raise error_for_response("FoodData Central", response)
        return parse_json("FoodData Central", response)


def map_fdc_food(
    food: Mapping[str, object], barcode: str | None = None
) -> ProductData:
    """Map an FDC food (search hit or details) by nutrient id."""
    amounts = _nutrient_amounts(food.get("foodNutrients"))
    calories = next(
        (amounts[item] for item in _ENERGY_KCAL_IDS if item in amounts), None
    )
    if calories is None and _ENERGY_KJ_ID in amounts:
        calories = amounts[_ENERGY_KJ_ID] * KJ_TO_KCAL
    nutrients = {
        name: clamp_non_negative(amounts.get(nutrient_id))
        for name, nutrient_id in _NUTRIENT_IDS.items()
    }
    gtin = str(food.get("gtinUpc") or "")
    serving_size = to_float(food.get("servingSize"))
    return ProductData(
        id=f"fdc-{food.get('fdcId')}",
        barcode=barcode or (gtin if is_valid_barcode(gtin) else None),
        name=str(food.get("description") or "Unknown product").strip(),
        brand=_brand(food),
        serving=ServingInfo(
            size=serving_size or 100.0,
            unit=str(food.get("servingSizeUnit") or "g") if serving_size else "g",
        ),
        source=ProductSource.FDC,
        verified=True,
        calories=clamp_non_negative(
            float(round(calories)) if calories is not None else None
        ),
        **nutrients,
    )


def _nutrient_amounts(food_nutrients: object) -> dict[int, float]:
    """Collect nutrient amounts keyed by nutrient id from either FDC shape."""
    amounts: dict[int, float] = {}
    if not isinstance(food_nutrients, list):
        return amounts
    for nutrient in food_nutrients:
        if not isinstance(nutrient, dict):
            continue
        nutrient_info = nutrient.get("nutrient") or {}
        nutrient_id = nutrient_info.get("id") or nutrient.get("nutrientId")
        amount = to_float(nutrient.get("amount", nutrient.get("value")))
        if isinstance(nutrient_id, int) and amount is not None:
            amounts.setdefault(nutrient_id, amount)
    return amounts


def _foods(payload: Mapping[str, object]) -> list[dict[str, object]]:
    foods = payload.get("foods")
    if not isinstance(foods, list):
        return []
    return [food for food in foods if isinstance(food, dict)]


def _brand(food: Mapping[str, object]) -> str | None:
    for key in ("brandName", "brandOwner"):
        value = food.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None
