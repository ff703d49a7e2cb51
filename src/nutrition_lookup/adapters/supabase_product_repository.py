"""Supabase implementation of the product cache."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from nutrition_lookup.domain.products import (
    NUTRI_GRADES,
    NUTRIENT_FIELDS,
    ProductData,
    ProductSource,
    ServingInfo,
)
from nutrition_lookup.services.cache import ProductCache

_TAG_COLUMNS = ("traces_tags", "packaging_tags", "origins_tags", "missing_critical")


@dataclass
class SupabaseProductRepository(ProductCache):
    """Supabase-backed product cache, unique on barcode."""

    client: Client
    table: str = "food_products"

    def find_by_barcode(self, barcode: str) -> ProductData | None:
        """Return the cached product for a barcode, if present."""
        response = (
            self.client.table(self.table)
            .select("*")
            .eq("barcode", barcode)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_product(response.data[0])

    def upsert(self, barcode: str, product: ProductData) -> None:
        """Insert the product or update every column of the existing row."""
        self.client.table(self.table).upsert(
            _to_row(barcode, product), on_conflict="barcode"
        ).execute()


def _to_row(barcode: str, product: ProductData) -> dict[str, object]:
    """Serialize a product into a table row."""
    row: dict[str, object] = {
        "id": product.id,
        "barcode": barcode,
        "name": product.name,
        "brand": product.brand,
        "serving_size": product.serving.size,
        "serving_unit": product.serving.unit,
        "source": str(product.source),
        "nutri_grade": product.nutri_grade,
        "reported_grade": product.reported_grade,
        "image_url": product.image_url,
        "verified": product.verified,
        "ecoscore": product.ecoscore,
        "ecoscore_grade": product.ecoscore_grade,
        "nova_group": product.nova_group,
        "ingredients_text": product.ingredients_text,
        "net_weight": product.net_weight,
        "updated_at": datetime.now(tz=UTC).isoformat(),
    }
    for name in NUTRIENT_FIELDS:
        row[name] = getattr(product, name)
    for name in _TAG_COLUMNS:
        row[name] = list(getattr(product, name))
    return row


def _parse_product(row: dict[str, object]) -> ProductData:
    """Parse a table row into a product record."""
    grade = row.get("nutri_grade")
    nova_group = row.get("nova_group")
    return ProductData(
        id=str(row["id"]),
        barcode=row.get("barcode"),
        name=str(row.get("name", "")),
        brand=row.get("brand"),
        serving=ServingInfo(
            size=float(row.get("serving_size") or 100.0),
            unit=str(row.get("serving_unit") or "g"),
        ),
        source=_parse_source(row.get("source")),
        nutri_grade=grade if grade in NUTRI_GRADES else None,
        reported_grade=row.get("reported_grade"),
        image_url=row.get("image_url"),
        verified=bool(row.get("verified", False)),
        ecoscore=_optional_float(row.get("ecoscore")),
        ecoscore_grade=row.get("ecoscore_grade"),
        nova_group=int(nova_group) if nova_group is not None else None,
        ingredients_text=row.get("ingredients_text"),
        net_weight=_optional_float(row.get("net_weight")),
        **{name: _optional_float(row.get(name)) for name in NUTRIENT_FIELDS},
        **{name: tuple(row.get(name) or ()) for name in _TAG_COLUMNS},
    )


def _parse_source(value: object) -> ProductSource:
    try:
        return ProductSource(str(value))
    except ValueError:
        return ProductSource.MANUAL


def _optional_float(value: object) -> float | None:
    if value is None:
        return None
    return float(value)
