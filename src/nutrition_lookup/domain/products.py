"""Product and nutrition domain models.

Macronutrients are grams, energy is kilocalories, and sodium, cholesterol,
minerals and vitamins are milligrams, all per 100 g or 100 ml unless a
record was explicitly scaled to a serving.
"""

from dataclasses import dataclass, fields
from enum import StrEnum
from typing import Literal

NutriGrade = Literal["A", "B", "C", "D"]

NUTRI_GRADES: tuple[NutriGrade, ...] = ("A", "B", "C", "D")

CRITICAL_FIELDS = ("calories", "protein", "carbohydrates", "fat")


class ProductSource(StrEnum):
    """Where a product record originated."""

    FATSECRET = "fatsecret"
    OPENFOODFACTS = "openfoodfacts"
    FDC = "fdc"
    MANUAL = "manual"


@dataclass(frozen=True, kw_only=True)
class NutritionalInfo:
    """Optional nutrient bundle; ``None`` means the provider did not report it."""

    calories: float | None = None
    protein: float | None = None
    carbohydrates: float | None = None
    fat: float | None = None
    fiber: float | None = None
    sodium: float | None = None
    sugars: float | None = None
    saturated_fat: float | None = None
    cholesterol: float | None = None
    trans_fat: float | None = None
    monounsaturated_fat: float | None = None
    polyunsaturated_fat: float | None = None
    salt: float | None = None
    potassium: float | None = None
    calcium: float | None = None
    iron: float | None = None
    vitamin_a: float | None = None
    vitamin_c: float | None = None
    vitamin_d: float | None = None
    vitamin_b6: float | None = None
    vitamin_b12: float | None = None
    vitamin_e: float | None = None
    magnesium: float | None = None
    zinc: float | None = None
    sucrose: float | None = None
    fructose: float | None = None
    lactose: float | None = None
    starch: float | None = None
    alcohol: float | None = None


NUTRIENT_FIELDS: tuple[str, ...] = tuple(item.name for item in fields(NutritionalInfo))


@dataclass(frozen=True)
class ServingInfo:
    """Label-declared serving size."""

    size: float
    unit: str


@dataclass(frozen=True, kw_only=True)
class ProductData(NutritionalInfo):
    """Canonical resolved product record."""

    id: str
    name: str
    serving: ServingInfo
    source: ProductSource
    barcode: str | None = None
    brand: str | None = None
    nutri_grade: NutriGrade | None = None
    reported_grade: str | None = None
    image_url: str | None = None
    verified: bool = False
    missing_critical: tuple[str, ...] = ()
    ecoscore: float | None = None
    ecoscore_grade: str | None = None
    nova_group: int | None = None
    ingredients_text: str | None = None
    traces_tags: tuple[str, ...] = ()
    packaging_tags: tuple[str, ...] = ()
    origins_tags: tuple[str, ...] = ()
    net_weight: float | None = None

    def nutrition(self) -> NutritionalInfo:
        """Return only the nutrient bundle of this product."""
        return NutritionalInfo(
            **{name: getattr(self, name) for name in NUTRIENT_FIELDS}
        )
