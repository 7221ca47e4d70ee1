"""Generation orchestration across LLM providers.

Models are grouped by vendor prefix (gpt-, claude-, gemini-). The
GenerationOrchestrator tries a selected model, then fallbacks, with
exponential backoff between failed attempts.

Usage:
    from contentflow.services.llm import GenerationOrchestrator, build_providers

    orchestrator = GenerationOrchestrator(build_providers(settings))
    package = await orchestrator.generate(prompts, extracted)
"""

from contentflow.services.llm.models import (
    MODEL_CAPABILITIES,
    ModelCapability,
    Provider,
    TaskRequirements,
    TokenUsage,
    UnsupportedModelError,
    calculate_cost,
    resolve_provider,
    select_model,
)
from contentflow.services.llm.orchestrator import (
    FALLBACK_CONTENT,
    AttemptRecord,
    GeneratedPackage,
    GenerationOptions,
    GenerationOrchestrator,
    GenerationResult,
    PackageMetadata,
    parse_platform_content,
)
from contentflow.services.llm.providers import (
    AnthropicProvider,
    Completion,
    GeminiProvider,
    OpenAIProvider,
    ProviderClient,
    build_providers,
)

__all__ = [
    # Models
    "MODEL_CAPABILITIES",
    "ModelCapability",
    "Provider",
    "TaskRequirements",
    "TokenUsage",
    "UnsupportedModelError",
    "calculate_cost",
    "resolve_provider",
    "select_model",
    # Providers
    "AnthropicProvider",
    "Completion",
    "GeminiProvider",
    "OpenAIProvider",
    "ProviderClient",
    "build_providers",
    # Orchestration
    "FALLBACK_CONTENT",
    "AttemptRecord",
    "GeneratedPackage",
    "GenerationOptions",
    "GenerationOrchestrator",
    "GenerationResult",
    "PackageMetadata",
    "parse_platform_content",
]
