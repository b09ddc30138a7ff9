"""Dining context vocabularies."""

from enum import StrEnum


class Season(StrEnum):
    """Seasons accepted by the recommendation endpoint."""

    SPRING = "spring"
    SUMMER = "summer"
    AUTUMN = "autumn"
    WINTER = "winter"


class MealTime(StrEnum):
    """Meal periods accepted by the recommendation endpoint."""

    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    AFTERNOON_TEA = "afternoon-tea"
    DINNER = "dinner"
    LATE_NIGHT_SNACK = "late-night-snack"
