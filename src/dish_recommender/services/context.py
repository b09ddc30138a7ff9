"""Infer season and meal period from the wall clock."""

from collections.abc import Callable
from datetime import datetime
from zoneinfo import ZoneInfo

from dish_recommender.domain.context import MealTime, Season

_SEASON_BY_MONTH = {
    3: Season.SPRING,
    4: Season.SPRING,
    5: Season.SPRING,
    6: Season.SUMMER,
    7: Season.SUMMER,
    8: Season.SUMMER,
    9: Season.AUTUMN,
    10: Season.AUTUMN,
    11: Season.AUTUMN,
}

# (start hour inclusive, end hour exclusive, meal)
_MEAL_WINDOWS = (
    (6, 10, MealTime.BREAKFAST),
    (10, 14, MealTime.LUNCH),
    (14, 17, MealTime.AFTERNOON_TEA),
    (17, 21, MealTime.DINNER),
)


def infer_season(month: int) -> Season:
    """Map a 1-based calendar month to a season."""
    return _SEASON_BY_MONTH.get(month, Season.WINTER)


def infer_meal_time(hour: int) -> MealTime:
    """Map a 24h clock hour to a meal period."""
    for start, end, meal in _MEAL_WINDOWS:
        if start <= hour < end:
            return meal
    return MealTime.LATE_NIGHT_SNACK


def resolve_dining_context(
    season: str | None, meal_time: str | None, now: datetime
) -> tuple[str, str]:
    """Fill in whichever of season and meal time the caller left out."""
    resolved_season = season or infer_season(now.month).value
    resolved_meal_time = meal_time or infer_meal_time(now.hour).value
    return resolved_season, resolved_meal_time


def restaurant_clock(timezone: str | None) -> Callable[[], datetime]:
    """Return a clock in the restaurant's timezone, or local time when unset."""
    if not timezone:
        return datetime.now
    zone = ZoneInfo(timezone)
    return lambda: datetime.now(tz=zone)
