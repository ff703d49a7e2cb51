"""Open Food Facts API client."""

import logging
import re
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
    clamp_non_negative,
    extract_calories,
    extract_nutrient,
    to_float,
)
from nutrition_lookup.services.rate_limit import RateLimiter, RateLimitRule

BASE_URL = "https://world.openfoodfacts.org"
USER_AGENT = "NutritionLookup/0.1 (https://github.com/nutrition-lookup)"

DEFAULT_RATE_LIMITS = {
    "barcode": RateLimitRule(max_requests=100),
    "search": RateLimitRule(max_requests=10),
}

# NutritionalInfo field -> (nutriments key, reported in grams but stored as mg)
_NUTRIMENT_KEYS: dict[str, tuple[str, bool]] = {
    "protein": ("proteins", False),
    "carbohydrates": ("carbohydrates", False),
    "fat": ("fat", False),
    "fiber": ("fiber", False),
    "sodium": ("sodium", True),
    "sugars": ("sugars", False),
    "saturated_fat": ("saturated_fat", False),
    "cholesterol": ("cholesterol", True),
    "trans_fat": ("trans_fat", False),
    "monounsaturated_fat": ("monounsaturated_fat", False),
    "polyunsaturated_fat": ("polyunsaturated_fat", False),
    "salt": ("salt", False),
    "potassium": ("potassium", True),
    "calcium": ("calcium", True),
    "iron": ("iron", True),
    "vitamin_a": ("vitamin_a", True),
    "vitamin_c": ("vitamin_c", True),
    "vitamin_d": ("vitamin_d", True),
    "vitamin_b6": ("vitamin_b6", True),
    "vitamin_b12": ("vitamin_b12", True),
    "vitamin_e": ("vitamin_e", True),
    "magnesium": ("magnesium", True),
    "zinc": ("zinc", True),
    "sucrose": ("sucrose", False),
    "fructose": ("fructose", False),
    "lactose": ("lactose", False),
    "starch": ("starch", False),
    "alcohol": ("alcohol", False),
}

_SERVING_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*([a-zA-Z]+)")
_QUANTITY_PATTERN = re.compile(r"(\d+(?:[.,]\d+)?)\s*(kg|g|ml|l)\b", re.IGNORECASE)

_logger = logging.getLogger(__name__)


@dataclass
class HttpxOpenFoodFactsClient:
    """HTTPX-backed Open Food Facts client (no authentication)."""

    name: ClassVar[str] = "openfoodfacts"

    http_client: httpx.AsyncClient
    base_url: str = BASE_URL
    user_agent: str = USER_AGENT
    timeout_seconds: float = 15.0
    rate_limiter: RateLimiter = field(
        default_factory=lambda: RateLimiter(dict(DEFAULT_RATE_LIMITS))
    )

    @classmethod
    def create(
        cls,
        base_url: str = BASE_URL,
        user_agent: str = USER_AGENT,
        timeout_seconds: float = 15.0,
    ) -> "HttpxOpenFoodFactsClient":
        """Create an Open Food Facts client with a managed httpx session."""
        return cls(
            http_client=httpx.AsyncClient(),
            base_url=base_url,
            user_agent=user_agent,
            timeout_seconds=timeout_seconds,
        )

    @property
    def supports_barcode_lookup(self) -> bool:
        """Barcode lookup is always available."""
        return True

    async def lookup_by_barcode(self, barcode: str) -> ProductData | None:
        """Fetch a product document by barcode."""
        self.rate_limiter.check("barcode")
        normalized = normalize_barcode(barcode)
        url = f"{self.base_url}/api/v0/product/{normalized}.json"
        response = await self._get(url)
        if response.status_code == 404:
            return None
        if not response.is_success:
            raise error_for_response("Open Food Facts", response)
        data = parse_json("Open Food Facts", response)
        product = data.get("product")
        if data.get("status") != 1 or not isinstance(product, dict):
            _logger.info(
                "Open Food Facts has no product for %s (normalized %s)",
                barcode,
                normalized,
            )
            return None
        return map_openfoodfacts_product(product, barcode=barcode)

    async def search_by_name(self, query: str, limit: int = 20) -> list[ProductData]:
        """Full-text product search."""
        self.rate_limiter.check("search")
        response = await self._get(
            f"{self.base_url}/cgi/search.pl",
            params={
                "search_terms": query,
                "search_simple": "1",
                "action": "process",
                "json": "1",
                "page_size": str(limit),
            },
        )
        if not response.is_success:
            raise error_for_response("Open Food Facts", response)
        data = parse_json("Open Food Facts", response)
        products = data.get("products")
        if not isinstance(products, list):
            return []
        results: list[ProductData] = []
        for item in products:
            if not isinstance(item, dict) or not item.get("product_name"):
                continue
            code = str(item.get("code") or "")
            results.append(
                map_openfoodfacts_product(
                    item, barcode=code if is_valid_barcode(code) else None
                )
            )
        return results[:limit]

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _get(
        self, url: str, params: dict[str, str] | None = None
    ) -> httpx.Response:
        try:
            return await self.http_client.get(
                url,
                params=params,
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout_seconds,
            )
        except httpx.HTTPError as exc:
            raise network_error("Open Food Facts", exc) from exc


def map_openfoodfacts_product(
    product: Mapping[str, object], barcode: str | None = None
) -> ProductData:
    """Map an Open Food Facts product document onto a per-100 g record."""
    raw = product.get("nutriments")
    nutriments: Mapping[str, object] = raw if isinstance(raw, dict) else {}
    nutrients: dict[str, float | None] = {
        "calories": clamp_non_negative(extract_calories(nutriments))
    }
    for target, (key, to_milligrams) in _NUTRIMENT_KEYS.items():
        value = extract_nutrient(nutriments, key)
        if value is not None and to_milligrams:
            value = round(value * 1000, 3)
        nutrients[target] = clamp_non_negative(value)

    code = barcode or str(product.get("code") or "")
    return ProductData(
        id=f"off-{code}",
        barcode=code or None,
        name=_text(product.get("product_name")) or "Unknown product",
        brand=_text(product.get("brands")),
        serving=parse_serving(product.get("serving_size")),
        source=ProductSource.OPENFOODFACTS,
        reported_grade=_reported_grade(product.get("nutrition_grades_tags")),
        image_url=_text(product.get("image_url")),
        verified=False,
        ecoscore=to_float(product.get("ecoscore_score")),
        ecoscore_grade=_text(product.get("ecoscore_grade")),
        nova_group=_nova_group(product.get("nova_group")),
        ingredients_text=_text(product.get("ingredients_text")),
        traces_tags=_tags(product.get("traces_tags")),
        packaging_tags=_tags(product.get("packaging_tags")),
        origins_tags=_tags(product.get("origins_tags")),
        net_weight=parse_net_weight(product.get("quantity"), product.get("net_weight")),
        **nutrients,
    )


def parse_serving(raw: object) -> ServingInfo:
    """Parse a label serving such as ``"30 g"``; defaults to 100 g."""
    if isinstance(raw, str):
        match = _SERVING_PATTERN.search(raw)
        if match:
            return ServingInfo(size=float(match.group(1)), unit=match.group(2))
    return ServingInfo(size=100.0, unit="g")


def parse_net_weight(quantity: object, net_weight: object = None) -> float | None:
    """Parse ``"500g"``, ``"1kg"`` or ``"0.5 L"`` into grams or millilitres."""
    if isinstance(quantity, str):
        match = _QUANTITY_PATTERN.search(quantity)
        if match:
            value = float(match.group(1).replace(",", "."))
            if match.group(2).lower() in {"kg", "l"}:
                value *= 1000
            return value
        return None
    if isinstance(net_weight, int | float) and not isinstance(net_weight, bool):
        return float(net_weight)
    return None


def _reported_grade(tags: object) -> str | None:
    if not isinstance(tags, list) or not tags or not isinstance(tags[0], str):
        return None
    grade = tags[0].strip().upper()
    return grade if len(grade) == 1 else None


def _nova_group(value: object) -> int | None:
    number = to_float(value)
    return int(number) if number is not None else None


def _tags(value: object) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(item for item in value if isinstance(item, str))


def _text(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    return value.strip() or None
