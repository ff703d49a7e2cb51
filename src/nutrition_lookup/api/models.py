"""Pydantic models for API request payloads."""

from pydantic import BaseModel, Field

from nutrition_lookup.domain.products import (
    NUTRIENT_FIELDS,
    NutritionalInfo,
    ServingInfo,
)


class ManualProductRequest(BaseModel):
    """User-submitted product for a barcode no provider knows."""

    barcode: str
    name: str = Field(min_length=1)
    brand: str | None = None
    serving_size: float = Field(default=100.0, gt=0)
    serving_unit: str = "g"
    ingredients_text: str | None = None
    image_url: str | None = None

    calories: float | None = Field(default=None, ge=0)
    protein: float | None = Field(default=None, ge=0)
    carbohydrates: float | None = Field(default=None, ge=0)
    fat: float | None = Field(default=None, ge=0)
    fiber: float | None = Field(default=None, ge=0)
    sodium: float | None = Field(default=None, ge=0)
    sugars: float | None = Field(default=None, ge=0)
    saturated_fat: float | None = Field(default=None, ge=0)
    cholesterol: float | None = Field(default=None, ge=0)
    trans_fat: float | None = Field(default=None, ge=0)
    monounsaturated_fat: float | None = Field(default=None, ge=0)
    polyunsaturated_fat: float | None = Field(default=None, ge=0)
    salt: float | None = Field(default=None, ge=0)
    potassium: float | None = Field(default=None, ge=0)
    calcium: float | None = Field(default=None, ge=0)
    iron: float | None = Field(default=None, ge=0)
    vitamin_a: float | None = Field(default=None, ge=0)
    vitamin_c: float | None = Field(default=None, ge=0)
    vitamin_d: float | None = Field(default=None, ge=0)
    vitamin_b6: float | None = Field(default=None, ge=0)
    vitamin_b12: float | None = Field(default=None, ge=0)
    vitamin_e: float | None = Field(default=None, ge=0)
    magnesium: float | None = Field(default=None, ge=0)
    zinc: float | None = Field(default=None, ge=0)
    sucrose: float | None = Field(default=None, ge=0)
    fructose: float | None = Field(default=None, ge=0)
    lactose: float | None = Field(default=None, ge=0)
    starch: float | None = Field(default=None, ge=0)
    alcohol: float | None = Field(default=None, ge=0)

    def serving(self) -> ServingInfo:
        return ServingInfo(size=self.serving_size, unit=self.serving_unit)

    def nutrition(self) -> NutritionalInfo:
        """Collect the submitted per-100 g values."""
        values = self.model_dump()
        return NutritionalInfo(
            **{name: values[name] for name in NUTRIENT_FIELDS}
        )
