"""Models for customer vision analysis results."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class AgeBracket(StrEnum):
    """Age brackets the vision model is asked to choose from."""

    CHILD = "child"
    YOUNG_ADULT = "young-adult"
    MIDDLE_AGED = "middle-aged"
    SENIOR = "senior"


class Gender(StrEnum):
    """Genders the vision model is asked to choose from."""

    MAN = "man"
    WOMAN = "woman"


class BodyType(StrEnum):
    """Body types the vision model is asked to choose from."""

    THIN = "thin"
    AVERAGE = "average"
    HEAVY = "heavy"


class CustomerProfile(BaseModel):
    """One inferred patron.

    Values are kept as the model answered them; a field the answer did not
    carry as a string is left empty.
    """

    model_config = ConfigDict(frozen=True)

    age_bracket: str = ""
    gender: str = ""
    body_type: str = ""


class VisionOutcome(BaseModel):
    """Result of analysing one image.

    ``succeeded`` reports whether the answer decoded at all; ``partial`` is set
    when it decoded but some fields were missing or of the wrong type.
    """

    model_config = ConfigDict(frozen=True)

    people_count: int = Field(default=0, ge=0)
    profiles: list[CustomerProfile] = Field(default_factory=list)
    succeeded: bool = False
    partial: bool = False
    error_detail: str | None = None
