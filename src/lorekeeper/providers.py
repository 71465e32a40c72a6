"""Text generation backend abstraction for Lorekeeper."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


class ProviderError(RuntimeError):
    """Raised when a backend returns an unusable response envelope."""


@dataclass
class GenerationRequest:
    """A single chat-style generation request."""

    messages: list[dict[str, str]]
    model: str
    temperature: float = 0.7
    max_output_tokens: int | None = None


@dataclass
class GenerationResponse:
    """Text returned by a backend."""

    content: str
    model: str | None = None


class TextGenerationProvider(Protocol):
    """Protocol for text generation backends."""

    async def generate_text(self, request: GenerationRequest) -> GenerationResponse:
        """Run one unary generation call."""
        ...


class OpenAIProvider:
    """OpenAI-compatible chat completions backend.

    Works against any endpoint speaking the chat completions API (OpenAI,
    OpenRouter, local gateways) by pointing ``base_url`` at it. Timeouts and
    retries are owned here, not by the retrieval engine.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = 60.0,
        max_retries: int = 2,
        client=None,
    ):
        if client is None:
            from openai import AsyncOpenAI

            client = AsyncOpenAI(
                api_key=api_key,
                base_url=base_url,
                timeout=timeout,
                max_retries=max_retries,
            )
        self.client = client

    async def generate_text(self, request: GenerationRequest) -> GenerationResponse:
        """Send the request as a chat completion."""
        kwargs = {
            "model": request.model,
            "messages": request.messages,
            "temperature": request.temperature,
        }
        if request.max_output_tokens is not None:
            kwargs["max_tokens"] = request.max_output_tokens

        response = await self.client.chat.completions.create(**kwargs)

        if not response.choices:
            raise ProviderError("Completion returned no choices")
        message = response.choices[0].message
        if message is None:
            raise ProviderError("Completion choice has no message")

        return GenerationResponse(
            content=message.content or "",
            model=getattr(response, "model", None),
        )


class StaticProvider:
    """Deterministic, network-free backend.

    Returns the same canned text for every request, or raises the configured
    exception. Every request is recorded. Intended for tests and offline runs.
    """

    def __init__(self, response: str | BaseException = "[]"):
        self.response = response
        self.requests: list[GenerationRequest] = []

    async def generate_text(self, request: GenerationRequest) -> GenerationResponse:
        self.requests.append(request)
        if isinstance(self.response, BaseException):
            raise self.response
        return GenerationResponse(content=self.response, model=request.model)

    @property
    def call_count(self) -> int:
        return len(self.requests)
