"""OpenAI-compatible chat completions client for the model provider."""

from dataclasses import dataclass

import httpx
from openai import APIError, AsyncOpenAI

from dish_recommender.errors import CallFailure
from dish_recommender.services.llm import NO_RESPONSE_SENTINEL, ChatClient


@dataclass
class OpenAIChatClient(ChatClient):
    """Chat client backed by an OpenAI-compatible endpoint."""

    client: AsyncOpenAI

    @classmethod
    def create(
        cls, api_key: str, base_url: str, timeout_seconds: float
    ) -> "OpenAIChatClient":
        """Create a client that makes exactly one attempt per call."""
        return cls(
            client=AsyncOpenAI(
                api_key=api_key,
                base_url=base_url,
                timeout=timeout_seconds,
                max_retries=0,
                http_client=httpx.AsyncClient(timeout=timeout_seconds),
            )
        )

    async def complete(  # noqa: PLR0913
        self,
        *,
        model: str,
        messages: list[dict[str, object]],
        max_tokens: int,
        temperature: float,
        timeout: float,
    ) -> str:
        """Call chat completions and return the first choice's text."""
        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=messages,  # type: ignore[arg-type]
                max_tokens=max_tokens,
                temperature=temperature,
                timeout=timeout,
            )
        except APIError as exc:
            raise CallFailure(f"{type(exc).__name__}: {exc}") from exc
        if not response.choices:
            return NO_RESPONSE_SENTINEL
        content = response.choices[0].message.content
        return content or NO_RESPONSE_SENTINEL

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.close()
