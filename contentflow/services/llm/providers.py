"""Provider clients normalized to one completion contract.

Each vendor SDK has its own request shape. The classes here accept the
same chat message list and return the same Completion so the orchestrator
never branches on vendor specifics.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from contentflow.services.llm.models import Provider, TokenUsage

if TYPE_CHECKING:
    import anthropic
    import openai
    from google import genai

    from contentflow.core.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Completion:
    """Text returned by a provider plus its token usage."""

    content: str
    usage: TokenUsage


class ProviderClient(Protocol):
    """Protocol that every provider adapter implements."""

    async def complete(
        self,
        model: str,
        messages: list[dict[str, str]],
        temperature: float,
        max_tokens: int,
    ) -> Completion:
        """Run one chat completion.

        Args:
            model: Vendor model name.
            messages: Chat messages with "role" (system/user) and "content".
            temperature: Sampling temperature.
            max_tokens: Upper bound on generated tokens.

        Returns:
            Completion with the generated text and token usage.
        """
        ...


def _split_system(messages: list[dict[str, str]]) -> tuple[str, list[dict[str, str]]]:
    """Separate system messages from the conversation turns."""
    system_parts = [m["content"] for m in messages if m["role"] == "system"]
    turns = [m for m in messages if m["role"] != "system"]
    return "\n\n".join(system_parts), turns


class OpenAIProvider:
    """Chat completions through the OpenAI async client."""

    def __init__(self, client: openai.AsyncOpenAI) -> None:
        self._client = client

    async def complete(
        self,
        model: str,
        messages: list[dict[str, str]],
        temperature: float,
        max_tokens: int,
    ) -> Completion:
        response = await self._client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        usage = response.usage
        return Completion(
            content=response.choices[0].message.content or "",
            usage=TokenUsage(
                prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
                completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
            ),
        )


class AnthropicProvider:
    """Messages API through the Anthropic async client."""

    def __init__(self, client: anthropic.AsyncAnthropic) -> None:
        self._client = client

    async def complete(
        self,
        model: str,
        messages: list[dict[str, str]],
        temperature: float,
        max_tokens: int,
    ) -> Completion:
        system, turns = _split_system(messages)
        kwargs = {}
        if system:
            kwargs["system"] = system

        response = await self._client.messages.create(
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=turns,
            **kwargs,
        )
        text = "".join(
            block.text for block in response.content if block.type == "text"
        )
        usage = response.usage
        return Completion(
            content=text,
            usage=TokenUsage(
                prompt_tokens=getattr(usage, "input_tokens", 0) or 0,
                completion_tokens=getattr(usage, "output_tokens", 0) or 0,
            ),
        )


class GeminiProvider:
    """Gemini generate_content through the google-genai client.

    The sync client call runs in a worker thread so the event loop stays free.
    """

    def __init__(self, client: genai.Client) -> None:
        self._client = client

    async def complete(
        self,
        model: str,
        messages: list[dict[str, str]],
        temperature: float,
        max_tokens: int,
    ) -> Completion:
        from google.genai import types

        system, turns = _split_system(messages)
        config = types.GenerateContentConfig(
            system_instruction=system or None,
            temperature=temperature,
            max_output_tokens=max_tokens,
        )
        response = await asyncio.to_thread(
            self._client.models.generate_content,
            model=model,
            contents="\n\n".join(m["content"] for m in turns),
            config=config,
        )
        metadata = response.usage_metadata
        return Completion(
            content=response.text or "",
            usage=TokenUsage(
                prompt_tokens=getattr(metadata, "prompt_token_count", 0) or 0,
                completion_tokens=getattr(metadata, "candidates_token_count", 0) or 0,
            ),
        )


def build_providers(settings: Settings) -> dict[Provider, ProviderClient]:
    """Construct a client for every provider that has an API key configured.

    Providers without a key are left out; the orchestrator treats a call to
    them as a failed attempt.
    """
    providers: dict[Provider, ProviderClient] = {}

    if settings.openai_api_key:
        import openai

        providers[Provider.OPENAI] = OpenAIProvider(
            openai.AsyncOpenAI(api_key=settings.openai_api_key)
        )

    if settings.anthropic_api_key:
        import anthropic

        providers[Provider.ANTHROPIC] = AnthropicProvider(
            anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)
        )

    if settings.gemini_api_key:
        from google import genai

        providers[Provider.GEMINI] = GeminiProvider(
            genai.Client(api_key=settings.gemini_api_key)
        )

    if not providers:
        logger.warning("No generation provider API keys configured")
    else:
        logger.info(
            "Generation providers configured: %s",
            ", ".join(p.value for p in providers),
        )
    return providers
