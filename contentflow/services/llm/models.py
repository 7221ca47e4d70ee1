"""Model catalogue, provider resolution and model selection."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class Provider(str, enum.Enum):
    """Vendor family that serves a model, keyed by model-name prefix."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"


_PREFIXES: tuple[tuple[str, Provider], ...] = (
    ("gpt-", Provider.OPENAI),
    ("claude-", Provider.ANTHROPIC),
    ("gemini-", Provider.GEMINI),
)


class UnsupportedModelError(ValueError):
    """Raised when a model name matches no known provider prefix."""

    def __init__(self, model: str) -> None:
        self.model = model
        super().__init__(f"No provider recognised for model '{model}'")


def resolve_provider(model: str) -> Provider:
    """Return the provider for a model name by prefix.

    Raises:
        UnsupportedModelError: If no prefix matches.
    """
    for prefix, provider in _PREFIXES:
        if model.startswith(prefix):
            return provider
    raise UnsupportedModelError(model)


@dataclass(frozen=True)
class ModelCapability:
    """Static facts about a model used for selection and billing."""

    strengths: tuple[str, ...]
    cost_per_token: float  # USD per input token; output is billed at 2x
    max_tokens: int  # Context window
    reliability: float


PREMIUM_MODEL = "claude-3-opus-20240229"
FAST_MODEL = "claude-3-5-haiku-20241022"
REASONING_MODEL = "gpt-4o"
MULTIMODAL_MODEL = "gemini-1.5-pro"
BALANCED_MODEL = "claude-3-5-sonnet-20241022"

MODEL_CAPABILITIES: dict[str, ModelCapability] = {
    REASONING_MODEL: ModelCapability(
        strengths=("reasoning", "code", "analysis"),
        cost_per_token=0.00003,
        max_tokens=128_000,
        reliability=0.95,
    ),
    PREMIUM_MODEL: ModelCapability(
        strengths=("writing", "creativity", "safety"),
        cost_per_token=0.000015,
        max_tokens=200_000,
        reliability=0.97,
    ),
    BALANCED_MODEL: ModelCapability(
        strengths=("balanced", "speed", "efficiency"),
        cost_per_token=0.000003,
        max_tokens=200_000,
        reliability=0.94,
    ),
    FAST_MODEL: ModelCapability(
        strengths=("speed", "efficiency"),
        cost_per_token=0.0000008,
        max_tokens=200_000,
        reliability=0.93,
    ),
    MULTIMODAL_MODEL: ModelCapability(
        strengths=("multimodal", "reasoning", "scale"),
        cost_per_token=0.0000005,
        max_tokens=1_000_000,
        reliability=0.92,
    ),
}


@dataclass(frozen=True)
class TokenUsage:
    """Token counts reported by a provider for one call."""

    prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


@dataclass(frozen=True)
class TaskRequirements:
    """Hints that steer model selection when no model is named."""

    priority: str = "quality"  # quality, speed, cost
    content_type: str = "text"  # text, code, multimodal
    complexity: str = "medium"  # low, medium, high
    budget: str = "unlimited"  # limited, unlimited


def select_model(task: str, requirements: TaskRequirements | None = None) -> str:
    """Pick a model from the fixed decision table. The first matching rule wins.

    Args:
        task: Free-text description of the task.
        requirements: Selection hints; defaults apply when omitted.

    Returns:
        Model name.
    """
    req = requirements or TaskRequirements()

    if req.priority == "quality" and req.complexity == "high":
        return PREMIUM_MODEL

    if req.priority == "speed" and req.budget == "limited":
        return FAST_MODEL

    if req.content_type == "code" or "analysis" in task:
        return REASONING_MODEL

    if req.content_type == "multimodal":
        return MULTIMODAL_MODEL

    return BALANCED_MODEL


def calculate_cost(model: str, usage: TokenUsage | None) -> float:
    """Approximate the cost of a call in USD.

    Output tokens are weighted at twice the input rate. Unknown models and
    missing usage cost nothing.
    """
    capability = MODEL_CAPABILITIES.get(model)
    if capability is None or usage is None:
        return 0.0

    input_cost = usage.prompt_tokens * capability.cost_per_token
    output_cost = usage.completion_tokens * capability.cost_per_token * 2
    return input_cost + output_cost
