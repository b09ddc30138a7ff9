"""Domain models for persisted restaurant data."""

from dataclasses import dataclass
from datetime import datetime

from dish_recommender.domain.recommendations import RecommendationOutcome
from dish_recommender.domain.vision import VisionOutcome


@dataclass(frozen=True)
class TableRecord:
    """Represents a dining table."""

    id: int
    table_number: str
    table_name: str | None
    seat_count: int
    table_type: str
    status: str
    location: str | None


@dataclass(frozen=True)
class DishRecord:
    """Represents a menu dish."""

    id: int
    dish_code: str
    dish_name: str
    price: float
    description: str | None
    taste_tags: str | None
    image_url: str | None
    is_signature: bool
    rating: float
    sales_count: int


@dataclass(frozen=True)
class SessionRecord:
    """Represents one persisted recommendation session."""

    session_id: str
    table_id: int
    user_id: str | None
    image_payload: str
    vision: VisionOutcome
    recommendation: RecommendationOutcome
    season: str
    meal_time: str
    people_count: int
    processing_time_ms: int
    created_at: datetime
    updated_at: datetime
    feedback_score: int | None = None
    feedback_comment: str | None = None
