"""Tests for nutrient payload normalization."""

from nutrition_lookup.domain.products import NutritionalInfo
from nutrition_lookup.services.nutrients import (
    clamp_non_negative,
    extract_calories,
    extract_nutrient,
    extract_nutrient_per_serving,
    missing_critical_fields,
    scale_to_serving,
    to_float,
)


def test_zero_is_kept_and_missing_is_none() -> None:
    nutriments = {"fat": 0, "proteins": "0"}

    assert extract_nutrient(nutriments, "fat") == 0.0
    assert extract_nutrient(nutriments, "proteins") == 0.0
    assert extract_nutrient(nutriments, "fiber") is None


def test_extract_nutrient_tries_key_spellings_then_per_100g() -> None:
    assert extract_nutrient({"saturated-fat": 10.6}, "saturated_fat") == 10.6
    assert extract_nutrient({"saturated-fat_100g": 2.5}, "saturated_fat") == 2.5
    both = {"saturated_fat": 1.0, "saturated-fat_100g": 2.0}
    assert extract_nutrient(both, "saturated_fat") == 1.0


def test_extract_nutrient_skips_unparsable_values() -> None:
    assert extract_nutrient({"sugars": "n/a", "sugars_100g": "4.5"}, "sugars") == 4.5


def test_to_float_rejects_booleans_and_nan() -> None:
    assert to_float(True) is None
    assert to_float(float("nan")) is None
    assert to_float(" 12.5 ") == 12.5
    assert to_float([1]) is None


def test_per_serving_prefers_serving_keys() -> None:
    nutriments = {"sugars_serving": 8.4, "sugars_100g": 56.3, "fat_100g": 30.9}

    assert extract_nutrient_per_serving(nutriments, "sugars") == 8.4
    assert extract_nutrient_per_serving(nutriments, "fat") == 30.9


def test_calories_prefer_kcal_over_energy() -> None:
    nutriments = {"energy-kcal_100g": 539, "energy_100g": 2252}

    assert extract_calories(nutriments) == 539.0


def test_calories_fall_back_to_kilojoules() -> None:
    assert extract_calories({"energy_100g": 2252}) == 538.0
    assert extract_calories({"energy": "418.4"}) == 100.0


def test_calories_missing_energy_is_none() -> None:
    assert extract_calories({"fat": 1.0}) is None


def test_calories_per_serving() -> None:
    nutriments = {"energy-kcal_serving": 80.6, "energy-kcal_100g": 539}

    assert extract_calories(nutriments, per_serving=True) == 81.0


def test_clamp_non_negative() -> None:
    assert clamp_non_negative(None) is None
    assert clamp_non_negative(-2.0) == 0.0
    assert clamp_non_negative(3.5) == 3.5


def test_missing_critical_fields_in_order() -> None:
    nutrition = NutritionalInfo(protein=1.0, sugars=2.0)

    assert missing_critical_fields(nutrition) == ("calories", "carbohydrates", "fat")
    assert missing_critical_fields(
        NutritionalInfo(calories=0.0, protein=0.0, carbohydrates=0.0, fat=0.0)
    ) == ()


def test_scale_to_serving_rounds_and_keeps_absent_values() -> None:
    nutrition = NutritionalInfo(calories=539.0, protein=6.0, fat=30.9)

    scaled = scale_to_serving(nutrition, 15)

    assert scaled.calories == 81.0
    assert scaled.protein == 0.9
    assert scaled.fat == 4.6
    assert scaled.sugars is None
