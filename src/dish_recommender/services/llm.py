"""Shared plumbing for calls to the chat-completion model provider."""

import json
from typing import Protocol

from dish_recommender.errors import DecodeFailure

NO_RESPONSE_SENTINEL = "No response from AI"

_FENCE = "```"


class ChatClient(Protocol):
    """Interface for a single chat-completion call."""

    async def complete(  # noqa: PLR0913
        self,
        *,
        model: str,
        messages: list[dict[str, object]],
        max_tokens: int,
        temperature: float,
        timeout: float,
    ) -> str:
        """Return the text of the first completion, or the no-response sentinel.

        Transport errors and timeouts are raised as ``CallFailure``.
        """


def is_missing_answer(answer: str | None) -> bool:
    """Return true when the model produced nothing usable."""
    if answer is None:
        return True
    stripped = answer.strip()
    return not stripped or stripped == NO_RESPONSE_SENTINEL


def load_answer(answer: str) -> object:
    """Decode a JSON answer, unwrapping a Markdown code fence if present."""
    text = _unwrap_fence(answer.strip())
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise DecodeFailure(f"answer is not valid JSON ({exc.msg})") from exc


def _unwrap_fence(text: str) -> str:
    if not text.startswith(_FENCE):
        return text
    body = text[len(_FENCE) :]
    newline = body.find("\n")
    if newline != -1 and not body[:newline].strip().startswith(("{", "[")):
        body = body[newline + 1 :]
    end = body.rfind(_FENCE)
    if end != -1:
        body = body[:end]
    return body.strip()
