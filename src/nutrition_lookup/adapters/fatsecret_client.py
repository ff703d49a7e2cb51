"""FatSecret Platform API client (OAuth2 client credentials)."""

import asyncio
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import ClassVar

import httpx

from nutrition_lookup.adapters.http_errors import (
    error_for_response,
    network_error,
    parse_json,
)
from nutrition_lookup.domain.errors import (
    ACCESS_DENIED,
    AUTH_FAILED,
    CONFIGURATION_ERROR,
    FEATURE_NOT_AVAILABLE,
    INVALID_RESPONSE,
    UPSTREAM_ERROR,
    UPSTREAM_RATE_LIMITED,
    APIError,
    NetworkError,
)
from nutrition_lookup.domain.products import ProductData, ProductSource, ServingInfo
from nutrition_lookup.services.barcodes import normalize_barcode
from nutrition_lookup.services.nutrients import clamp_non_negative, to_float
from nutrition_lookup.services.rate_limit import RateLimiter, RateLimitRule

TOKEN_URL = "https://oauth.fatsecret.com/connect/token"
API_URL = "https://platform.fatsecret.com/rest/server.api"

DEFAULT_RATE_LIMITS = {
    "token": RateLimitRule(max_requests=10),
    "barcode": RateLimitRule(max_requests=50),
    "search": RateLimitRule(max_requests=100),
}

MAX_SEARCH_RESULTS = 50

# Error codes FatSecret reports inside a 200 response body.
_AUTH_ERROR_CODES = {5, 9, 13}
_RATE_LIMIT_ERROR_CODES = {12}
_ACCESS_ERROR_CODES = {14, 21}
_REQUEST_ERROR_CODES = {10, 101, 106, 107, 108}
_UNAVAILABLE_ERROR_CODES = {11}
_NO_MATCH_ERROR_CODES = {211}

OUNCE_IN_GRAMS = 28.3495

# FatSecret serving fields, mapped onto NutritionalInfo names.
_SERVING_FIELDS = {
    "calories": "calories",
    "protein": "protein",
    "carbohydrate": "carbohydrates",
    "fat": "fat",
    "fiber": "fiber",
    "sodium": "sodium",
    "sugar": "sugars",
    "saturated_fat": "saturated_fat",
    "cholesterol": "cholesterol",
    "trans_fat": "trans_fat",
    "monounsaturated_fat": "monounsaturated_fat",
    "polyunsaturated_fat": "polyunsaturated_fat",
    "potassium": "potassium",
    "calcium": "calcium",
    "iron": "iron",
    "vitamin_c": "vitamin_c",
}

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True)
class AccessToken:
    """Cached bearer token."""

    access_token: str
    expires_at: datetime


@dataclass(frozen=True)
class FatSecretStatus:
    """Snapshot of the client's authentication state."""

    has_token: bool
    expires_at: datetime | None
    barcode_enabled: bool


@dataclass
class HttpxFatSecretClient:
    """HTTPX-backed FatSecret client.

    The token cache and the rate-limit counters are instance state, so one
    client is shared per process. Concurrent refreshes may both request a
    token; the last one to finish wins, which is harmless.
    """

    name: ClassVar[str] = "fatsecret"

    client_id: str
    client_secret: str
    http_client: httpx.AsyncClient
    premier_access: bool = False
    token_url: str = TOKEN_URL
    api_url: str = API_URL
    timeout_seconds: float = 10.0
    token_attempts: int = 3
    retry_base_delay_seconds: float = 1.0
    token_expiry_buffer_seconds: int = 60
    rate_limiter: RateLimiter = field(
        default_factory=lambda: RateLimiter(dict(DEFAULT_RATE_LIMITS))
    )
    clock: Callable[[], datetime] = _utcnow
    _token: AccessToken | None = field(default=None, init=False, repr=False)

    @classmethod
    def create(
        cls,
        client_id: str,
        client_secret: str,
        *,
        premier_access: bool = False,
        token_url: str = TOKEN_URL,
        api_url: str = API_URL,
        timeout_seconds: float = 10.0,
    ) -> "HttpxFatSecretClient":
        """Create a FatSecret client with a managed httpx session."""
        return cls(
            client_id=client_id,
            client_secret=client_secret,
            http_client=httpx.AsyncClient(),
            premier_access=premier_access,
            token_url=token_url,
            api_url=api_url,
            timeout_seconds=timeout_seconds,
        )

    @property
    def supports_barcode_lookup(self) -> bool:
        """Barcode lookup requires the Premier tier."""
        return self.premier_access

    def status(self) -> FatSecretStatus:
        """Report whether a token is cached and barcode lookup is enabled."""
        return FatSecretStatus(
            has_token=self._token is not None,
            expires_at=self._token.expires_at if self._token else None,
            barcode_enabled=self.premier_access,
        )

    def invalidate_token(self) -> None:
        """Drop the cached token so the next call re-authenticates."""
        self._token = None
        _logger.info("FatSecret token cache cleared")

    async def get_token(self) -> str:
        """Return a valid bearer token, requesting a new one when expired."""
        if not self.client_id or not self.client_secret:
            raise APIError(
                "FatSecret client credentials are not configured",
                status=500,
                code=CONFIGURATION_ERROR,
            )
        token = self._token
        if token is not None and token.expires_at > self.clock():
            return token.access_token

        self.rate_limiter.check("token")
        attempt = 0
        while True:
            attempt += 1
            try:
                token = await self._request_token()
            except (APIError, NetworkError) as exc:
                if isinstance(exc, APIError) and exc.code == AUTH_FAILED:
                    raise
                _logger.warning(
                    "FatSecret token request failed (attempt %s/%s): %r",
                    attempt,
                    self.token_attempts,
                    exc,
                )
                if attempt >= self.token_attempts:
                    raise
                await asyncio.sleep(self.retry_base_delay_seconds * 2**attempt)
                continue
            self._token = token
            return token.access_token

    async def lookup_by_barcode(self, barcode: str) -> ProductData | None:
        """Find the food id for a barcode and fetch its details."""
        if not self.premier_access:
            raise APIError(
                "Barcode lookup requires FatSecret Premier access",
                status=503,
                code=FEATURE_NOT_AVAILABLE,
            )
        self.rate_limiter.check("barcode")
        gtin = normalize_barcode(barcode)
        data = await self._call(
            {"method": "food.find_id_for_barcode", "barcode": gtin}
        )
        if self._is_no_match(data):
            return None
        food_id = _extract_food_id(data)
        if food_id is None:
            _logger.info("No FatSecret food for barcode %s", barcode)
            return None
        _logger.info("FatSecret food %s matches barcode %s", food_id, barcode)
        return await self.get_food(food_id, barcode=barcode)

    async def get_food(
        self, food_id: str, barcode: str | None = None
    ) -> ProductData | None:
        """Fetch full food details by FatSecret food id."""
        data = await self._call({"method": "food.get.v4", "food_id": food_id})
        if self._is_no_match(data):
            return None
        food = data.get("food")
        if not isinstance(food, dict) or not food.get("food_name"):
            _logger.info("Invalid FatSecret food details for id %s", food_id)
            return None
        return map_fatsecret_food(food, barcode=barcode)

    async def search_by_name(self, query: str, limit: int = 20) -> list[ProductData]:
        """Search foods by free text."""
        self.rate_limiter.check("search")
        data = await self._call(
            {
                "method": "foods.search",
                "search_expression": query,
                "max_results": str(min(limit, MAX_SEARCH_RESULTS)),
            }
        )
        if "foods" not in data and "error" not in data:
            raise APIError(
                "Invalid response format from FatSecret search",
                status=502,
                code=INVALID_RESPONSE,
            )
        if self._is_no_match(data):
            return []
        foods = data.get("foods")
        raw_items = foods.get("food") if isinstance(foods, dict) else None
        if not raw_items:
            return []
        if isinstance(raw_items, dict):
            raw_items = [raw_items]
        products: list[ProductData] = []
        for item in raw_items:
            if not isinstance(item, dict) or not item.get("food_id"):
                _logger.warning("Skipping invalid FatSecret food item: %s", item)
                continue
            if not str(item.get("food_name") or "").strip():
                _logger.warning("Skipping invalid FatSecret food item: %s", item)
                continue
            products.append(map_fatsecret_search_item(item))
        return products[:limit]

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _request_token(self) -> AccessToken:
        scope = "basic barcode" if self.premier_access else "basic"
        try:
            response = await self.http_client.post(
                self.token_url,
                data={"grant_type": "client_credentials", "scope": scope},
                auth=(self.client_id, self.client_secret),
                timeout=self.timeout_seconds,
            )
        except httpx.HTTPError as exc:
            raise network_error("FatSecret", exc) from exc
        if response.status_code in {401, 403}:
            raise APIError(
                "FatSecret authentication failed. Check the client id and secret.",
                status=response.status_code,
                code=AUTH_FAILED,
            )
        if not response.is_success:
            raise error_for_response("FatSecret", response)
        data = parse_json("FatSecret", response)
        access_token = data.get("access_token")
        expires_in = data.get("expires_in")
        if (
            not isinstance(access_token, str)
            or not isinstance(data.get("token_type"), str)
            or not isinstance(expires_in, int | float)
            or isinstance(expires_in, bool)
        ):
            raise APIError(
                "Invalid token response format from FatSecret",
                status=502,
                code=INVALID_RESPONSE,
            )
        _logger.info(
            "FatSecret token issued: type=%s expires_in=%s scope=%s",
            data.get("token_type"),
            expires_in,
            data.get("scope"),
        )
        lifetime = max(float(expires_in) - self.token_expiry_buffer_seconds, 0.0)
        return AccessToken(
            access_token=access_token,
            expires_at=self.clock() + timedelta(seconds=lifetime),
        )

    async def _call(self, params: dict[str, str]) -> dict[str, object]:
        token = await self.get_token()
        try:
            response = await self.http_client.post(
                self.api_url,
                data={**params, "format": "json"},
                headers={"Authorization": f"Bearer {token}"},
                timeout=self.timeout_seconds,
            )
        except httpx.HTTPError as exc:
            raise network_error("FatSecret", exc) from exc
        if response.status_code == 401:
            self.invalidate_token()
            raise APIError(
                "FatSecret authentication failed",
                status=401,
                code=AUTH_FAILED,
            )
        if response.status_code == 403:
            raise APIError(
                "FatSecret access denied. Check the Premier access tier.",
                status=403,
                code=ACCESS_DENIED,
            )
        if not response.is_success:
            raise error_for_response("FatSecret", response)
        return parse_json("FatSecret", response)

    def _is_no_match(self, data: Mapping[str, object]) -> bool:
        """Return True for a "no match" error body; raise for every other error."""
        error = data.get("error")
        if not isinstance(error, dict):
            return False
        code = _error_code(error)
        message = str(error.get("message", ""))
        if code in _AUTH_ERROR_CODES:
            self.invalidate_token()
            raise APIError(
                f"FatSecret authentication failed: {message}",
                status=401,
                code=AUTH_FAILED,
            )
        if code in _RATE_LIMIT_ERROR_CODES:
            raise APIError(
                f"FatSecret rate limit reached: {message}",
                status=429,
                code=UPSTREAM_RATE_LIMITED,
            )
        if code in _ACCESS_ERROR_CODES:
            raise APIError(
                f"FatSecret access denied: {message}",
                status=403,
                code=ACCESS_DENIED,
            )
        if code in _NO_MATCH_ERROR_CODES:
            _logger.info("FatSecret error %s: %s", code, message)
            return True
        if code in _REQUEST_ERROR_CODES:
            status = 400
        elif code in _UNAVAILABLE_ERROR_CODES:
            status = 503
        else:
            status = 502
        raise APIError(
            f"FatSecret error {code}: {message}",
            status=status,
            code=UPSTREAM_ERROR,
        )


def map_fatsecret_food(
    food: Mapping[str, object], barcode: str | None = None
) -> ProductData:
    """Map a ``food.get.v4`` payload onto a per-100 g product record.

    A 100 g (or 100 ml) serving is used when listed; otherwise the first
    serving is rescaled by its metric amount. Ounces are converted to grams;
    values for any other unit are kept as listed.
    """
    block = food.get("servings")
    servings = _as_list(block.get("serving") if isinstance(block, dict) else None)
    label_serving = servings[0] if servings else {}
    basis = next((item for item in servings if _is_100_metric(item)), None)
    factor = 1.0
    if basis is None:
        basis = label_serving
        factor = _per_100_factor(label_serving)

    nutrients = {
        target: _scaled(basis.get(source), factor)
        for source, target in _SERVING_FIELDS.items()
    }
    food_id = str(food.get("food_id", ""))
    return ProductData(
        id=f"fatsecret-{food_id}",
        barcode=barcode,
        name=str(food.get("food_name") or "Unknown product").strip(),
        brand=_clean_text(food.get("brand_name")),
        serving=ServingInfo(
            size=to_float(label_serving.get("metric_serving_amount")) or 100.0,
            unit=str(label_serving.get("metric_serving_unit") or "g"),
        ),
        source=ProductSource.FATSECRET,
        image_url=_image_url(food),
        verified=True,
        **nutrients,
    )


def map_fatsecret_search_item(item: Mapping[str, object]) -> ProductData:
    """Map a ``foods.search`` item using its direct nutrient fields."""
    nutrients = {
        target: clamp_non_negative(to_float(item.get(source)))
        for source, target in _SERVING_FIELDS.items()
    }
    return ProductData(
        id=f"fatsecret-{item.get('food_id')}",
        name=str(item.get("food_name")).strip(),
        brand=_clean_text(item.get("brand_name")),
        serving=ServingInfo(
            size=to_float(item.get("serving_size")) or 100.0,
            unit=str(item.get("serving_unit") or "g"),
        ),
        source=ProductSource.FATSECRET,
        image_url=_clean_text(item.get("food_image")),
        verified=True,
        **nutrients,
    )


def _extract_food_id(data: Mapping[str, object]) -> str | None:
    """Accept both ``{"barcode": {"food_id"}}`` and ``{"food_id": {"value"}}``."""
    legacy = data.get("barcode")
    if isinstance(legacy, dict) and legacy.get("food_id"):
        food_id = str(legacy["food_id"])
    else:
        wrapper = data.get("food_id")
        value = wrapper.get("value") if isinstance(wrapper, dict) else wrapper
        if value is None:
            return None
        food_id = str(value)
    if food_id in {"", "0"}:
        return None
    return food_id


def _error_code(error: Mapping[str, object]) -> int | None:
    try:
        return int(error.get("code"))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


def _is_100_metric(serving: Mapping[str, object]) -> bool:
    amount = to_float(serving.get("metric_serving_amount"))
    unit = str(serving.get("metric_serving_unit") or "").lower()
    return amount == 100 and unit in {"g", "ml"}


def _per_100_factor(serving: Mapping[str, object]) -> float:
    amount = to_float(serving.get("metric_serving_amount"))
    unit = str(serving.get("metric_serving_unit") or "").lower()
    if not amount:
        return 1.0
    if unit in {"g", "ml"}:
        return 100 / amount
    if unit == "oz":
        return 100 / (amount * OUNCE_IN_GRAMS)
    _logger.info("FatSecret serving unit %r cannot be normalized", unit)
    return 1.0


def _scaled(value: object, factor: float) -> float | None:
    number = to_float(value)
    if number is None:
        return None
    return clamp_non_negative(round(number * factor, 3))


def _image_url(food: Mapping[str, object]) -> str | None:
    images = food.get("food_images")
    if not isinstance(images, dict):
        return None
    entries = _as_list(images.get("food_image"))
    for entry in entries:
        url = entry.get("image_url")
        if isinstance(url, str) and url:
            return url
    return None


def _as_list(value: object) -> list[dict[str, object]]:
    if isinstance(value, dict):
        return [value]
    if isinstance(value, list):
        return [item for item in value if isinstance(item, dict)]
    return []


def _clean_text(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    return value.strip() or None
