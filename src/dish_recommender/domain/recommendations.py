"""Models for dish recommendation results."""

from pydantic import BaseModel, ConfigDict, Field


class DishSuggestion(BaseModel):
    """Single dish proposed by the text model."""

    model_config = ConfigDict(frozen=True)

    dish_name: str = ""
    reason: str = ""
    taste_level: str = ""
    nutrition_note: str = ""


class RecommendationOutcome(BaseModel):
    """Result of one recommendation call, in the model's ranking order."""

    model_config = ConfigDict(frozen=True)

    suggestions: list[DishSuggestion] = Field(default_factory=list)
    succeeded: bool = False
    partial: bool = False
    error_detail: str | None = None
