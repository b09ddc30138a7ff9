"""Recommendation stage: turn a customer profile into dish suggestions."""

import logging
from dataclasses import dataclass

from dish_recommender.config import ModelConfig
from dish_recommender.domain.recommendations import (
    DishSuggestion,
    RecommendationOutcome,
)
from dish_recommender.domain.vision import VisionOutcome
from dish_recommender.errors import CallFailure, DecodeFailure
from dish_recommender.services.llm import ChatClient, is_missing_answer, load_answer

logger = logging.getLogger(__name__)

_SUGGESTION_FIELDS = ("dish_name", "reason", "taste_level", "nutrition_note")

_ANSWER_EXAMPLE = (
    '[{"dish_name":"Sweet and Sour Pork","reason":"Children enjoy sweet flavours",'
    '"taste_level":"mildly sweet","nutrition_note":"Rich in protein"}]'
)


@dataclass
class RecommendationService:
    """Service that prompts the text model and decodes dish suggestions."""

    client: ChatClient
    config: ModelConfig

    async def recommend(
        self, vision: VisionOutcome, season: str, meal_time: str
    ) -> RecommendationOutcome:
        """Suggest dishes for the analysed customers."""
        if not vision.succeeded:
            return RecommendationOutcome(
                succeeded=False,
                error_detail="customer profile analysis failed; cannot recommend",
            )
        if len(vision.profiles) > 1:
            logger.info(
                "Recommending for the first of %d detected customers",
                len(vision.profiles),
            )

        prompt = build_recommendation_prompt(vision, season, meal_time)
        try:
            answer = await self.client.complete(
                model=self.config.text_model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=self.config.max_tokens,
                temperature=self.config.text_temperature,
                timeout=self.config.timeout_seconds,
            )
            if is_missing_answer(answer):
                raise CallFailure("model returned no answer")
        except CallFailure as exc:
            logger.warning("Recommendation model call failed: %s", exc)
            return RecommendationOutcome(
                succeeded=False,
                error_detail=f"recommendation model call failed: {exc}",
            )

        try:
            return decode_recommendation_answer(answer)
        except DecodeFailure as exc:
            logger.warning("Recommendation answer could not be decoded: %s", exc)
            return RecommendationOutcome(
                succeeded=False,
                error_detail=f"recommendation answer decode failed: {exc}",
            )


def build_recommendation_prompt(
    vision: VisionOutcome, season: str, meal_time: str
) -> str:
    """Describe the primary customer and dining context to the text model."""
    lines = [
        "You are a professional restaurant nutritionist and food adviser.",
        "Customer information:",
    ]
    # Only the first detected customer is described.
    if vision.profiles:
        primary = vision.profiles[0]
        lines.append(f"- Age: {primary.age_bracket}")
        lines.append(f"- Body type: {primary.body_type}")
        lines.append(f"- Gender: {primary.gender}")
    lines.extend(
        [
            f"- Party size: {vision.people_count}",
            f"- Season: {season}",
            f"- Meal time: {meal_time}",
            "",
            "Based on the information above:",
            "1. Recommend the 3 most suitable signature dishes and explain each choice",
            "2. Suggest a suitable taste profile (spiciness, saltiness, sweetness)",
            "3. Give nutrition pairing advice",
            "",
            "Answer strictly with a JSON array in exactly this shape:",
            _ANSWER_EXAMPLE,
        ]
    )
    return "\n".join(lines)


def decode_recommendation_answer(answer: str) -> RecommendationOutcome:
    """Decode the dish array, defaulting fields that are absent or mistyped."""
    payload = load_answer(answer)
    if not isinstance(payload, list):
        raise DecodeFailure("expected a JSON array")

    partial = False
    suggestions: list[DishSuggestion] = []
    for raw in payload:
        if not isinstance(raw, dict):
            partial = True
            continue
        values = {
            name: raw[name]
            for name in _SUGGESTION_FIELDS
            if isinstance(raw.get(name), str)
        }
        partial = partial or len(values) < len(_SUGGESTION_FIELDS)
        suggestions.append(DishSuggestion(**values))

    return RecommendationOutcome(
        suggestions=suggestions, succeeded=True, partial=partial
    )
