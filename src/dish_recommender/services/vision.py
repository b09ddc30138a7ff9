"""Vision stage: turn a photo of patrons into customer profiles."""

import base64
import binascii
import logging
from dataclasses import dataclass

from dish_recommender.config import ModelConfig
from dish_recommender.domain.vision import (
    AgeBracket,
    BodyType,
    CustomerProfile,
    Gender,
    VisionOutcome,
)
from dish_recommender.errors import CallFailure, DecodeFailure
from dish_recommender.services.llm import ChatClient, is_missing_answer, load_answer

logger = logging.getLogger(__name__)

_PROFILE_FIELDS = ("age_bracket", "gender", "body_type")

VISION_PROMPT = (
    "Count the people in the image and describe each of them. "
    "Answer strictly with a JSON object in exactly this shape:\n"
    '{"people_count":"1","customers":[{"age_bracket":"young-adult",'
    '"gender":"man","body_type":"average"}]}\n\n'
    "For every person in the image:\n"
    "1. include them in people_count\n"
    f"2. gender: one of {', '.join(Gender)}\n"
    f"3. age_bracket: one of {', '.join(AgeBracket)}\n"
    f"4. body_type: one of {', '.join(BodyType)}\n\n"
    "Return only the JSON object."
)


@dataclass
class VisionService:
    """Service that prompts the vision model and decodes its answer."""

    client: ChatClient
    config: ModelConfig

    async def analyze(self, image_payload: str) -> VisionOutcome:
        """Analyse a base64 image payload; never raises for call or decode faults."""
        messages: list[dict[str, object]] = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": VISION_PROMPT},
                    {
                        "type": "image_url",
                        "image_url": {"url": to_data_url(image_payload)},
                    },
                ],
            }
        ]
        try:
            answer = await self.client.complete(
                model=self.config.vision_model,
                messages=messages,
                max_tokens=self.config.max_tokens,
                temperature=self.config.vision_temperature,
                timeout=self.config.timeout_seconds,
            )
            if is_missing_answer(answer):
                raise CallFailure("model returned no answer")
        except CallFailure as exc:
            logger.warning("Vision model call failed: %s", exc)
            return VisionOutcome(
                succeeded=False, error_detail=f"vision model call failed: {exc}"
            )

        try:
            return decode_vision_answer(answer)
        except DecodeFailure as exc:
            logger.warning("Vision answer could not be decoded: %s", exc)
            return VisionOutcome(
                succeeded=False, error_detail=f"vision answer decode failed: {exc}"
            )


def decode_vision_answer(answer: str) -> VisionOutcome:
    """Decode the vision answer, defaulting fields that are absent or mistyped."""
    payload = load_answer(answer)
    if not isinstance(payload, dict):
        raise DecodeFailure("expected a JSON object")

    partial = False
    people_count = 0
    raw_count = payload.get("people_count")
    if isinstance(raw_count, str):
        people_count = _parse_headcount(raw_count)
    else:
        partial = True

    profiles: list[CustomerProfile] = []
    raw_profiles = payload.get("customers")
    if isinstance(raw_profiles, list):
        for raw_profile in raw_profiles:
            profile, complete = _decode_profile(raw_profile)
            profiles.append(profile)
            partial = partial or not complete
    else:
        partial = True

    return VisionOutcome(
        people_count=people_count,
        profiles=profiles,
        succeeded=True,
        partial=partial,
    )


def _parse_headcount(raw: str) -> int:
    """Parse the headcount string; a malformed count fails the whole answer."""
    try:
        count = int(raw.strip())
    except ValueError as exc:
        raise DecodeFailure(f"people_count {raw!r} is not an integer") from exc
    if count < 0:
        raise DecodeFailure(f"people_count {raw!r} is negative")
    return count


def _decode_profile(raw: object) -> tuple[CustomerProfile, bool]:
    values: dict[str, str] = {}
    if isinstance(raw, dict):
        for name in _PROFILE_FIELDS:
            value = raw.get(name)
            if isinstance(value, str):
                values[name] = value
    return CustomerProfile(**values), len(values) == len(_PROFILE_FIELDS)


def to_data_url(image_payload: str) -> str:
    """Wrap a base64 payload in a data URL, sniffing the image type."""
    payload = image_payload.strip()
    if payload.startswith("data:"):
        return payload
    return f"data:{_detect_mime_type(payload)};base64,{payload}"


def _detect_mime_type(payload: str) -> str:
    """Infer a basic image MIME type from the decoded file signature."""
    try:
        head = base64.b64decode(payload[:16])
    except (binascii.Error, ValueError):
        return "image/jpeg"
    if head.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if head.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if head[:4] == b"RIFF" and head[8:12] == b"WEBP":
        return "image/webp"
    if head.startswith((b"GIF87a", b"GIF89a")):
        return "image/gif"
    return "image/jpeg"
