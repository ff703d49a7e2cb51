"""Nutri-grade scoring from sugar, saturated fat and sodium."""

from nutrition_lookup.domain.products import NutriGrade, NutritionalInfo

_SUGAR_THRESHOLDS = (5.0, 10.0, 15.0)
_SATURATED_FAT_THRESHOLDS = (1.5, 3.0, 6.0)
_SODIUM_THRESHOLDS_MG = (120.0, 240.0, 360.0)


def calculate_nutri_grade(nutrition: NutritionalInfo) -> NutriGrade:
    """Grade a nutrient bundle A-D; absent inputs count as zero."""
    total = (
        _sub_score(nutrition.sugars, _SUGAR_THRESHOLDS)
        + _sub_score(nutrition.saturated_fat, _SATURATED_FAT_THRESHOLDS)
        + _sub_score(nutrition.sodium, _SODIUM_THRESHOLDS_MG)
    )
    if total <= 1:
        return "A"
    if total <= 3:
        return "B"
    if total <= 6:
        return "C"
    return "D"


def _sub_score(value: float | None, thresholds: tuple[float, float, float]) -> int:
    """Return 0-3 points depending on how many thresholds the value exceeds."""
    amount = value or 0.0
    for points, limit in enumerate(thresholds):
        if amount <= limit:
            return points
    return len(thresholds)
