"""Normalization of heterogeneous provider nutrient payloads."""

import math
from collections.abc import Mapping
from dataclasses import fields, replace

from nutrition_lookup.domain.products import (
    CRITICAL_FIELDS,
    NutritionalInfo,
)

KJ_TO_KCAL = 0.23900573614


def key_variants(key: str) -> tuple[str, ...]:
    """Return the key as given, with dashes, and with underscores."""
    variants: list[str] = []
    for candidate in (key, key.replace("_", "-"), key.replace("-", "_")):
        if candidate not in variants:
            variants.append(candidate)
    return tuple(variants)


def to_float(value: object) -> float | None:
    """Parse a raw payload value into a float, or None if it is not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def extract_nutrient(nutriments: Mapping[str, object], key: str) -> float | None:
    """Return the per-100 g value for ``key``, trying every key spelling."""
    for suffix in ("", "_100g"):
        for variant in key_variants(key):
            name = f"{variant}{suffix}"
            if name in nutriments:
                value = to_float(nutriments[name])
                if value is not None:
                    return value
    return None


def extract_nutrient_per_serving(
    nutriments: Mapping[str, object], key: str
) -> float | None:
    """Return the per-serving value for ``key``, falling back to per-100 g."""
    for variant in key_variants(key):
        name = f"{variant}_serving"
        if name in nutriments:
            value = to_float(nutriments[name])
            if value is not None:
                return value
    return extract_nutrient(nutriments, key)


def extract_calories(
    nutriments: Mapping[str, object], *, per_serving: bool = False
) -> float | None:
    """Return kilocalories, converting from kilojoules only when kcal is absent."""
    extract = extract_nutrient_per_serving if per_serving else extract_nutrient
    kcal = extract(nutriments, "energy_kcal")
    if kcal is None:
        kilojoules = extract(nutriments, "energy")
        if kilojoules is None:
            return None
        kcal = kilojoules * KJ_TO_KCAL
    return float(round(kcal))


def clamp_non_negative(value: float | None) -> float | None:
    """Clamp negative nutrient values to zero; absent values stay absent."""
    if value is None:
        return None
    return max(0.0, value)


def missing_critical_fields(nutrition: NutritionalInfo) -> tuple[str, ...]:
    """Return the critical nutrient names that are absent."""
    return tuple(name for name in CRITICAL_FIELDS if getattr(nutrition, name) is None)


def scale_to_serving(
    nutrition: NutritionalInfo, serving_size: float
) -> NutritionalInfo:
    """Scale per-100 g values to a serving size.

    Calories are rounded to whole numbers, every other nutrient to one decimal.
    """
    factor = serving_size / 100
    scaled: dict[str, float] = {}
    for item in fields(NutritionalInfo):
        value = getattr(nutrition, item.name)
        if value is None:
            continue
        if item.name == "calories":
            scaled[item.name] = float(round(value * factor))
        else:
            scaled[item.name] = round(value * factor * 10) / 10
    return replace(nutrition, **scaled)
