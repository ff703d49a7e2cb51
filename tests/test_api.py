"""Tests for the HTTP API."""

from fastapi.testclient import TestClient

from nutrition_lookup.api.app import create_app
from nutrition_lookup.domain.errors import (
    LOCAL_RATE_LIMITED,
    APIError,
    NetworkError,
)
from tests.conftest import FakeProvider, RecordingCache, make_product

BARCODE = "3017620422003"


def test_health(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_product_by_barcode(container, provider: FakeProvider) -> None:
    provider.products[BARCODE] = make_product()
    client = TestClient(create_app(container))

    response = client.get(f"/products/{BARCODE}")

    assert response.status_code == 200
    assert response.headers["Cache-Control"] == "public, max-age=3600"
    body = response.json()
    assert body["data"]["barcode"] == BARCODE
    assert body["data"]["nutri_grade"] == "C"
    assert body["data"]["source"] == "openfoodfacts"
    assert body["data"]["serving"] == {"size": 15.0, "unit": "g"}
    assert "timestamp" in body


def test_product_by_barcode_per_serving(container, provider: FakeProvider) -> None:
    provider.products[BARCODE] = make_product()
    client = TestClient(create_app(container))

    response = client.get(f"/products/{BARCODE}", params={"per_serving": "true"})

    per_serving = response.json()["data"]["per_serving"]
    assert per_serving["calories"] == 81.0
    assert per_serving["fat"] == 4.6
    assert per_serving["fiber"] is None


def test_product_not_found(container) -> None:
    client = TestClient(create_app(container))

    response = client.get(f"/products/{BARCODE}")

    assert response.status_code == 404
    assert response.json()["code"] == "PRODUCT_NOT_FOUND"


def test_invalid_barcode_is_bad_request(container, provider: FakeProvider) -> None:
    client = TestClient(create_app(container))

    response = client.get("/products/abc")

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_BARCODE"
    assert provider.barcode_calls == []


def test_rate_limit_error_sets_retry_after(
    container, provider: FakeProvider
) -> None:
    provider.error = APIError(
        "Rate limit exceeded", status=429, code=LOCAL_RATE_LIMITED, retry_after=42
    )
    client = TestClient(create_app(container))

    response = client.get(f"/products/{BARCODE}")

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "42"
    assert response.json()["code"] == LOCAL_RATE_LIMITED


def test_network_error_is_service_unavailable(
    container, provider: FakeProvider
) -> None:
    provider.error = NetworkError("Open Food Facts request timed out")
    client = TestClient(create_app(container))

    response = client.get(f"/products/{BARCODE}")

    assert response.status_code == 503
    assert response.json()["code"] == "SERVICE_UNAVAILABLE"


def test_search_products(container, provider: FakeProvider) -> None:
    provider.search_results = [make_product(), make_product(id="off-2")]
    client = TestClient(create_app(container))

    response = client.get("/products", params={"q": "nutella", "limit": 1})

    assert response.status_code == 200
    assert [item["id"] for item in response.json()["data"]] == [
        "off-3017620422003"
    ]
    assert provider.search_calls == [("nutella", 1)]


def test_search_requires_query(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/products", params={"q": "a"})

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_QUERY"


def test_submit_manual_product(container, cache: RecordingCache) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/products/manual",
        json={
            "barcode": BARCODE,
            "name": "Homemade spread",
            "serving_size": 20,
            "calories": 500,
            "protein": 5,
            "carbohydrates": 50,
            "fat": 30,
            "sugars": 45,
        },
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["source"] == "manual"
    assert data["verified"] is False
    assert data["serving"] == {"size": 20.0, "unit": "g"}
    assert cache.upserts == [BARCODE]


def test_submit_manual_product_accepts_micronutrients(
    container, cache: RecordingCache
) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/products/manual",
        json={
            "barcode": BARCODE,
            "name": "Fortified cereal",
            "vitamin_c": 12.5,
            "magnesium": 80,
            "monounsaturated_fat": 1.2,
            "starch": 40,
        },
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["vitamin_c"] == 12.5
    assert data["magnesium"] == 80.0
    assert data["monounsaturated_fat"] == 1.2
    assert data["starch"] == 40.0
    stored = cache.find_by_barcode(BARCODE)
    assert stored is not None
    assert stored.vitamin_c == 12.5


def test_submit_manual_product_validates_payload(container) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/products/manual",
        json={"barcode": BARCODE, "name": "Spread", "calories": -5},
    )

    assert response.status_code == 422


def test_providers_status(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/providers/status")

    assert response.status_code == 200
    assert response.json() == {
        "barcode_providers": ["openfoodfacts"],
        "search_providers": ["openfoodfacts"],
        "fatsecret": None,
    }
