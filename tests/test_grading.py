"""Tests for nutri-grade scoring."""

import pytest

from nutrition_lookup.domain.products import NutritionalInfo
from nutrition_lookup.services.grading import calculate_nutri_grade


def test_empty_nutrition_grades_a() -> None:
    assert calculate_nutri_grade(NutritionalInfo()) == "A"


def test_values_on_thresholds_score_lower_band() -> None:
    nutrition = NutritionalInfo(sugars=5.0, saturated_fat=1.5, sodium=120.0)
    assert calculate_nutri_grade(nutrition) == "A"


def test_values_just_above_thresholds_score_higher_band() -> None:
    nutrition = NutritionalInfo(sugars=5.1, saturated_fat=1.6, sodium=121.0)
    assert calculate_nutri_grade(nutrition) == "B"


def test_grade_bands() -> None:
    assert calculate_nutri_grade(NutritionalInfo(sugars=8.0)) == "A"
    assert calculate_nutri_grade(NutritionalInfo(sugars=20.0)) == "B"
    assert (
        calculate_nutri_grade(NutritionalInfo(sugars=20.0, saturated_fat=4.0)) == "C"
    )
    assert (
        calculate_nutri_grade(
            NutritionalInfo(sugars=20.0, saturated_fat=7.0, sodium=200.0)
        )
        == "D"
    )


def test_high_sugar_and_fat_without_sodium_grades_c() -> None:
    nutrition = NutritionalInfo(sugars=56.3, saturated_fat=10.6, sodium=107.0)
    assert calculate_nutri_grade(nutrition) == "C"


def test_grading_is_deterministic() -> None:
    nutrition = NutritionalInfo(sugars=12.0, saturated_fat=2.0, sodium=300.0)
    grades = {calculate_nutri_grade(nutrition) for _ in range(5)}
    assert grades == {"C"}


@pytest.mark.parametrize(
    ("nutrition", "expected"),
    [
        (NutritionalInfo(sugars=5.01), "A"),
        (NutritionalInfo(sugars=10.01), "B"),
        (NutritionalInfo(sugars=15.01, saturated_fat=6.01, sodium=360.01), "D"),
        (NutritionalInfo(sugars=10.01, saturated_fat=3.01, sodium=240.01), "C"),
    ],
)
def test_grade_boundaries(nutrition: NutritionalInfo, expected: str) -> None:
    assert calculate_nutri_grade(nutrition) == expected


def test_grade_ignores_nutrients_outside_the_rubric() -> None:
    base = NutritionalInfo(sugars=12.0, saturated_fat=2.0, sodium=300.0)
    enriched = NutritionalInfo(
        sugars=12.0,
        saturated_fat=2.0,
        sodium=300.0,
        calories=900.0,
        protein=40.0,
        fat=80.0,
        fiber=15.0,
    )

    assert calculate_nutri_grade(base) == calculate_nutri_grade(enriched)
