"""Request bodies accepted by the HTTP API."""

from pydantic import BaseModel

DEFAULT_CONFIDENCE = 0.8


class RecommendationBody(BaseModel):
    """Body of ``POST /recommendation``.

    Required fields default to empty so the pipeline can report them as a
    validation failure with the standard envelope.
    """

    image_base64: str = ""
    table_number: str = ""
    user_id: str | None = None
    season: str | None = None
    meal_time: str | None = None


class FeedbackBody(BaseModel):
    """Body of ``POST /recommendation/feedback``."""

    session_id: str
    score: int
    comment: str | None = None
