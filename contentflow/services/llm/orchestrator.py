"""Generation orchestration across models with fallback and backoff.

Flow for one call:
1. Pick a model (explicit, or from the task requirements decision table)
2. Try it, then each fallback model in order
3. Back off exponentially between failed attempts, up to a retry ceiling
4. Parse the winning response into the four platform fields, substituting
   fixed fallback content when the response is not the expected JSON
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from contentflow.exceptions import GenerationError
from contentflow.services.extractor import ExtractedContent
from contentflow.services.llm.models import (
    BALANCED_MODEL,
    MODEL_CAPABILITIES,
    REASONING_MODEL,
    Provider,
    TaskRequirements,
    TokenUsage,
    UnsupportedModelError,
    calculate_cost,
    resolve_provider,
    select_model,
)
from contentflow.services.llm.providers import ProviderClient
from contentflow.services.prompts import PLATFORM_KEYS, PromptPair

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_MODELS: tuple[str, ...] = (BALANCED_MODEL, REASONING_MODEL)

# Served for every platform when the model output cannot be parsed
FALLBACK_CONTENT: dict[str, str] = {
    "twitter": "Content processing completed. Please check the original source for details.",
    "linkedin": "Exciting insights from recent content. Check out the full article for more details.",
    "newsletter": "• Key insight 1\n• Key insight 2\n• Key insight 3",
    "video": "Hook: Did you know... [30-second script based on content]",
}

HEALTH_CHECK_PROMPT = "Test connection. Respond with 'OK'."

_CODE_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*(.*?)\s*```$", re.DOTALL)


class ProviderNotConfiguredError(RuntimeError):
    """Raised when a candidate model's provider has no client."""

    def __init__(self, provider: Provider) -> None:
        self.provider = provider
        super().__init__(f"Provider '{provider.value}' is not configured")


@dataclass(frozen=True)
class GenerationOptions:
    """Per-call knobs. Unset values fall back to the orchestrator defaults."""

    model: str | None = None
    task: str = "repurpose content"
    requirements: TaskRequirements = field(default_factory=TaskRequirements)
    temperature: float = 0.7
    max_tokens: int = 2000
    fallback_models: Sequence[str] | None = None
    retry_attempts: int | None = None


@dataclass(frozen=True)
class ModelCandidate:
    """A model to attempt, tagged with the provider that serves it.

    ``provider`` is None when the name matches no known prefix.
    """

    model: str
    provider: Provider | None

    @classmethod
    def for_model(cls, model: str) -> ModelCandidate:
        try:
            return cls(model=model, provider=resolve_provider(model))
        except UnsupportedModelError:
            return cls(model=model, provider=None)


@dataclass(frozen=True)
class AttemptRecord:
    """One failed model attempt."""

    model: str
    error: str


@dataclass(frozen=True)
class GenerationResult:
    """Raw text from the model that succeeded."""

    content: str
    model: str
    usage: TokenUsage
    cost: float
    attempts: list[AttemptRecord] = field(default_factory=list)


@dataclass(frozen=True)
class PackageMetadata:
    """Where a generated package came from."""

    original_title: str
    original_url: str
    word_count: int
    generated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "originalTitle": self.original_title,
            "originalUrl": self.original_url,
            "wordCount": self.word_count,
            "generatedAt": self.generated_at.isoformat(),
        }


@dataclass(frozen=True)
class GeneratedPackage:
    """Platform-specific versions of one page.

    ``degraded`` is True when the fields hold FALLBACK_CONTENT because the
    model response could not be parsed.
    """

    twitter: str
    linkedin: str
    newsletter: str
    video: str
    metadata: PackageMetadata
    degraded: bool = False
    model: str | None = None
    usage: TokenUsage | None = None
    cost: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the stored JSON shape."""
        usage = self.usage or TokenUsage()
        return {
            "twitter": self.twitter,
            "linkedin": self.linkedin,
            "newsletter": self.newsletter,
            "video": self.video,
            "metadata": self.metadata.to_dict(),
            "generation": {
                "model": self.model,
                "degraded": self.degraded,
                "promptTokens": usage.prompt_tokens,
                "completionTokens": usage.completion_tokens,
                "cost": self.cost,
            },
        }


def parse_platform_content(raw: str | None) -> tuple[dict[str, str], bool]:
    """Parse a model response into the four platform fields.

    Accepts a bare JSON object or one wrapped in a markdown code fence. A
    list of strings for a field is joined with blank lines.

    Returns:
        (fields, degraded). On any parse or shape problem the fields are
        FALLBACK_CONTENT and degraded is True. Never raises.
    """
    text = (raw or "").strip()
    match = _CODE_FENCE_RE.match(text)
    if match:
        text = match.group(1)

    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        logger.warning("Model response is not valid JSON, using fallback content")
        return dict(FALLBACK_CONTENT), True

    if not isinstance(data, dict):
        logger.warning("Model response is not a JSON object, using fallback content")
        return dict(FALLBACK_CONTENT), True

    fields: dict[str, str] = {}
    for key in PLATFORM_KEYS:
        value = data.get(key)
        if isinstance(value, list) and value and all(isinstance(v, str) for v in value):
            value = "\n\n".join(value)
        if not isinstance(value, str) or not value.strip():
            logger.warning(
                "Model response field '%s' missing or not text, using fallback content",
                key,
            )
            return dict(FALLBACK_CONTENT), True
        fields[key] = value

    return fields, False


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GenerationOrchestrator:
    """Run generation calls against an ordered list of candidate models.

    Provider clients are injected so tests can substitute fakes.

    Usage:
        orchestrator = GenerationOrchestrator(build_providers(settings))
        package = await orchestrator.generate(prompts, extracted)
    """

    def __init__(
        self,
        providers: Mapping[Provider, ProviderClient],
        fallback_models: Sequence[str] = DEFAULT_FALLBACK_MODELS,
        retry_attempts: int = 3,
        backoff_base_seconds: float = 1.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.providers = dict(providers)
        self.fallback_models = tuple(fallback_models)
        self.retry_attempts = retry_attempts
        self.backoff_base_seconds = backoff_base_seconds
        self._sleep = sleep
        self._clock = clock

    def _candidates(self, options: GenerationOptions) -> list[ModelCandidate]:
        """Return [selected model, *fallback models] in attempt order.

        Each model is resolved to its provider here, once per call.
        """
        selected = options.model or select_model(options.task, options.requirements)
        fallbacks = (
            self.fallback_models
            if options.fallback_models is None
            else tuple(options.fallback_models)
        )
        return [ModelCandidate.for_model(m) for m in (selected, *fallbacks)]

    async def _dispatch(
        self,
        candidate: ModelCandidate,
        messages: list[dict[str, str]],
        options: GenerationOptions,
    ) -> GenerationResult:
        model = candidate.model
        if candidate.provider is None:
            raise UnsupportedModelError(model)
        provider = candidate.provider
        client = self.providers.get(provider)
        if client is None:
            raise ProviderNotConfiguredError(provider)

        completion = await client.complete(
            model=model,
            messages=messages,
            temperature=options.temperature,
            max_tokens=options.max_tokens,
        )
        return GenerationResult(
            content=completion.content,
            model=model,
            usage=completion.usage,
            cost=calculate_cost(model, completion.usage),
        )

    async def generate_completion(
        self,
        messages: list[dict[str, str]],
        options: GenerationOptions | None = None,
    ) -> GenerationResult:
        """Get a completion from the first candidate model that succeeds.

        Args:
            messages: Chat messages for the call.
            options: Model choice and sampling settings.

        Returns:
            GenerationResult naming the model that actually answered.

        Raises:
            GenerationError: When the candidates or the retry ceiling are
                exhausted without a success.
        """
        options = options or GenerationOptions()
        ceiling = (
            options.retry_attempts
            if options.retry_attempts is not None
            else self.retry_attempts
        )
        candidates = self._candidates(options)

        attempts: list[AttemptRecord] = []
        last_error: str | None = None

        for index, candidate in enumerate(candidates):
            model = candidate.model
            try:
                result = await self._dispatch(candidate, messages, options)
            except Exception as e:
                last_error = str(e)
                attempts.append(AttemptRecord(model=model, error=last_error))
                logger.warning(
                    "Model %s failed (attempt %d): %s", model, len(attempts), e
                )
                if len(attempts) >= ceiling or index == len(candidates) - 1:
                    break
                delay = (2 ** len(attempts)) * self.backoff_base_seconds
                logger.info("Backing off %.1fs before trying next model", delay)
                await self._sleep(delay)
                continue

            logger.info(
                "Generation succeeded with %s (%d prompt / %d completion tokens, $%.6f)",
                model,
                result.usage.prompt_tokens,
                result.usage.completion_tokens,
                result.cost,
            )
            return GenerationResult(
                content=result.content,
                model=result.model,
                usage=result.usage,
                cost=result.cost,
                attempts=attempts,
            )

        raise GenerationError(attempts=attempts, last_error=last_error)

    async def generate(
        self,
        prompts: PromptPair,
        extracted: ExtractedContent,
        options: GenerationOptions | None = None,
    ) -> GeneratedPackage:
        """Generate the multi-platform package for an extracted page.

        A malformed model response yields a degraded package instead of an
        error.

        Raises:
            GenerationError: If no candidate model produced a response.
        """
        result = await self.generate_completion(prompts.as_messages(), options)
        fields, degraded = parse_platform_content(result.content)

        return GeneratedPackage(
            twitter=fields["twitter"],
            linkedin=fields["linkedin"],
            newsletter=fields["newsletter"],
            video=fields["video"],
            metadata=PackageMetadata(
                original_title=extracted.title,
                original_url=extracted.url,
                word_count=extracted.word_count,
                generated_at=self._clock(),
            ),
            degraded=degraded,
            model=result.model,
            usage=result.usage,
            cost=result.cost,
        )

    async def check_health(self, models: Sequence[str] | None = None) -> dict[str, Any]:
        """Send a tiny prompt to each model, one attempt each, no fallback.

        Returns:
            Dict with a timestamp, per-model status/latency/reliability and an
            overall status of "healthy" or "degraded".
        """
        health: dict[str, Any] = {
            "timestamp": self._clock().isoformat(),
            "models": {},
            "overall_status": "healthy",
        }
        messages = [{"role": "user", "content": HEALTH_CHECK_PROMPT}]

        for model in models or list(MODEL_CAPABILITIES):
            capability = MODEL_CAPABILITIES.get(model)
            reliability = capability.reliability if capability else None
            start = time.monotonic()
            try:
                await self.generate_completion(
                    messages,
                    GenerationOptions(
                        model=model,
                        max_tokens=10,
                        fallback_models=(),
                        retry_attempts=1,
                    ),
                )
            except GenerationError as e:
                health["models"][model] = {
                    "status": "unhealthy",
                    "error": e.last_error,
                    "reliability": reliability,
                }
                health["overall_status"] = "degraded"
                continue

            latency_ms = (time.monotonic() - start) * 1000
            health["models"][model] = {
                "status": "healthy",
                "latency_ms": round(latency_ms, 1),
                "reliability": reliability,
            }

        return health
