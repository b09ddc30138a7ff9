"""Tests for the vision stage."""

import asyncio
import json

import pytest

from dish_recommender.config import ModelConfig
from dish_recommender.errors import CallFailure
from dish_recommender.services.llm import NO_RESPONSE_SENTINEL
from dish_recommender.services.vision import (
    VISION_PROMPT,
    VisionService,
    decode_vision_answer,
    to_data_url,
)
from tests.conftest import SAMPLE_IMAGE, VISION_MODEL, FakeChatClient


def test_vision_service_returns_profiles_in_answer_order(
    chat_client: FakeChatClient, model_config: ModelConfig
) -> None:
    service = VisionService(client=chat_client, config=model_config)

    outcome = asyncio.run(service.analyze(SAMPLE_IMAGE))

    assert outcome.succeeded
    assert not outcome.partial
    assert outcome.people_count == 2
    assert [profile.age_bracket for profile in outcome.profiles] == [
        "child",
        "middle-aged",
    ]
    assert outcome.profiles[0].gender == "woman"


def test_vision_service_sends_prompt_and_image_in_one_call(
    chat_client: FakeChatClient, model_config: ModelConfig
) -> None:
    service = VisionService(client=chat_client, config=model_config)

    asyncio.run(service.analyze(SAMPLE_IMAGE))

    calls = chat_client.calls_for(VISION_MODEL)
    assert len(calls) == 1
    call = calls[0]
    assert call["temperature"] == model_config.vision_temperature
    assert call["timeout"] == model_config.timeout_seconds
    content = call["messages"][0]["content"]  # type: ignore[index]
    assert content[0] == {"type": "text", "text": VISION_PROMPT}
    assert content[1]["image_url"]["url"] == f"data:image/png;base64,{SAMPLE_IMAGE}"


def test_vision_prompt_lists_vocabularies_and_example() -> None:
    assert '"people_count":"1"' in VISION_PROMPT
    assert "young-adult" in VISION_PROMPT
    assert "man, woman" in VISION_PROMPT
    assert "thin, average, heavy" in VISION_PROMPT


def test_empty_answer_is_a_call_failure(model_config: ModelConfig) -> None:
    client = FakeChatClient(answers={VISION_MODEL: ""})
    service = VisionService(client=client, config=model_config)

    outcome = asyncio.run(service.analyze(SAMPLE_IMAGE))

    assert not outcome.succeeded
    assert outcome.error_detail is not None
    assert "call failed" in outcome.error_detail


def test_sentinel_answer_is_a_call_failure(model_config: ModelConfig) -> None:
    client = FakeChatClient(answers={VISION_MODEL: NO_RESPONSE_SENTINEL})
    service = VisionService(client=client, config=model_config)

    outcome = asyncio.run(service.analyze(SAMPLE_IMAGE))

    assert not outcome.succeeded
    assert "call failed" in (outcome.error_detail or "")


def test_transport_error_is_a_call_failure(model_config: ModelConfig) -> None:
    client = FakeChatClient(failures={VISION_MODEL: CallFailure("timed out")})
    service = VisionService(client=client, config=model_config)

    outcome = asyncio.run(service.analyze(SAMPLE_IMAGE))

    assert not outcome.succeeded
    assert "timed out" in (outcome.error_detail or "")
    assert outcome.people_count == 0


def test_non_json_answer_is_a_decode_failure(model_config: ModelConfig) -> None:
    client = FakeChatClient(answers={VISION_MODEL: "There are two people."})
    service = VisionService(client=client, config=model_config)

    outcome = asyncio.run(service.analyze(SAMPLE_IMAGE))

    assert not outcome.succeeded
    assert "decode failed" in (outcome.error_detail or "")


def test_fenced_answer_is_unwrapped() -> None:
    answer = '```json\n{"people_count":"1","customers":[]}\n```'

    outcome = decode_vision_answer(answer)

    assert outcome.succeeded
    assert outcome.people_count == 1


def test_malformed_headcount_fails_the_answer(model_config: ModelConfig) -> None:
    answer = json.dumps({"people_count": "two", "customers": []})
    client = FakeChatClient(answers={VISION_MODEL: answer})
    service = VisionService(client=client, config=model_config)

    outcome = asyncio.run(service.analyze(SAMPLE_IMAGE))

    assert not outcome.succeeded
    assert "people_count" in (outcome.error_detail or "")


def test_missing_profile_fields_default_without_failing() -> None:
    answer = json.dumps(
        {
            "people_count": "2",
            "customers": [{"gender": "man", "age_bracket": 42}, "not-an-object"],
        }
    )

    outcome = decode_vision_answer(answer)

    assert outcome.succeeded
    assert outcome.partial
    assert len(outcome.profiles) == 2
    assert outcome.profiles[0].gender == "man"
    assert outcome.profiles[0].age_bracket == ""
    assert outcome.profiles[1].body_type == ""


def test_missing_headcount_defaults_to_zero() -> None:
    outcome = decode_vision_answer('{"customers": []}')

    assert outcome.succeeded
    assert outcome.partial
    assert outcome.people_count == 0


@pytest.mark.parametrize("raw_count", [3, 2.0, True, None, ["2"]])
def test_non_string_headcount_is_skipped(raw_count: object) -> None:
    answer = json.dumps({"people_count": raw_count, "customers": []})

    outcome = decode_vision_answer(answer)

    assert outcome.succeeded
    assert outcome.partial
    assert outcome.people_count == 0


def test_to_data_url_sniffs_jpeg() -> None:
    url = to_data_url("/9j/4AAQSkZJRgABAQ")

    assert url.startswith("data:image/jpeg;base64,")


def test_to_data_url_passes_through_data_urls() -> None:
    url = "data:image/webp;base64,UklGRg=="

    assert to_data_url(url) == url


def test_to_data_url_defaults_to_jpeg() -> None:
    assert to_data_url("bm90LWFuLWltYWdl").startswith("data:image/jpeg;base64,")


def test_to_data_url_sniffs_png() -> None:
    assert to_data_url(SAMPLE_IMAGE).startswith("data:image/png;base64,")
