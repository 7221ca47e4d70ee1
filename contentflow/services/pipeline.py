"""Pipeline coordinator: URL in, stored content package out.

Steps, strictly in order:
1. Validate the URL
2. Check the user's monthly quota
3. Fetch -> extract -> build prompts -> generate
4. Persist one ContentSubmission (status=completed)

Any failure before step 4 returns without writing anything. A failure in
step 4 is reported as a PersistenceError carrying the generated package.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import AnyUrl, TypeAdapter, ValidationError

from contentflow.exceptions import (
    ContentFlowError,
    FetchError,
    GenerationError,
    PersistenceError,
    QuotaExceededError,
    StoreError,
    UrlValidationError,
)
from contentflow.models.content_submission import (
    MAX_URL_LENGTH,
    ContentSubmission,
    SubmissionStatus,
)
from contentflow.services.extractor import ContentExtractor, ExtractedContent
from contentflow.services.fetcher import PageFetcher
from contentflow.services.llm.orchestrator import (
    GeneratedPackage,
    GenerationOptions,
    GenerationOrchestrator,
)
from contentflow.services.prompts import build_prompts
from contentflow.services.submission_store import SubmissionStore
from contentflow.services.usage_guard import UsageGuard

logger = logging.getLogger(__name__)

_URL_ADAPTER = TypeAdapter(AnyUrl)


def validate_url(url: Any) -> str:
    """Check that ``url`` is an absolute http(s) string that fits the URL column.

    Returns:
        The stripped URL.

    Raises:
        UrlValidationError: "URL is required", "Invalid URL format" or
            "Invalid URL protocol".
    """
    if url is None or (isinstance(url, str) and not url.strip()):
        raise UrlValidationError("URL is required")
    if not isinstance(url, str):
        raise UrlValidationError("Invalid URL format")

    candidate = url.strip()
    if len(candidate) > MAX_URL_LENGTH:
        raise UrlValidationError("Invalid URL format")
    try:
        parsed = _URL_ADAPTER.validate_python(candidate)
    except ValidationError as e:
        raise UrlValidationError("Invalid URL format") from e

    if parsed.scheme not in ("http", "https"):
        raise UrlValidationError("Invalid URL protocol")
    return candidate


@dataclass(frozen=True)
class OriginalContent:
    """Echo of the source page facts returned with a package."""

    title: str
    url: str
    word_count: int

    @classmethod
    def from_extracted(cls, extracted: ExtractedContent) -> OriginalContent:
        return cls(
            title=extracted.title,
            url=extracted.url,
            word_count=extracted.word_count,
        )

    def to_dict(self) -> dict[str, Any]:
        return {"title": self.title, "url": self.url, "wordCount": self.word_count}


@dataclass(frozen=True)
class PipelineResult:
    """Outcome of one pipeline run."""

    success: bool
    package: GeneratedPackage | None = None
    original_content: OriginalContent | None = None
    submission_id: str | None = None
    error: ContentFlowError | None = None

    @property
    def degraded(self) -> bool:
        """True for a successful run whose package holds fallback content."""
        return self.package is not None and self.package.degraded

    @property
    def error_message(self) -> str | None:
        return str(self.error) if self.error is not None else None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the exposed success or failure shape."""
        if self.success and self.package is not None:
            return {
                "success": True,
                "id": self.submission_id,
                "twitter": self.package.twitter,
                "linkedin": self.package.linkedin,
                "newsletter": self.package.newsletter,
                "video": self.package.video,
                "metadata": self.package.metadata.to_dict(),
                "originalContent": (
                    self.original_content.to_dict() if self.original_content else None
                ),
                "degraded": self.package.degraded,
            }

        body: dict[str, Any] = {
            "success": False,
            "error": self.error_message,
            "code": self.error.code if self.error is not None else None,
        }
        if isinstance(self.error, QuotaExceededError):
            body["limit"] = self.error.limit
            body["used"] = self.error.used
        if isinstance(self.error, PersistenceError) and self.error.package is not None:
            body["generatedContent"] = self.error.package.to_dict()
        return body


class ContentPipeline:
    """Run one URL through quota, fetch, extraction, generation and storage.

    Usage:
        pipeline = ContentPipeline(fetcher, extractor, orchestrator, guard, store)
        result = await pipeline.process("https://example.com/post", "user-123")
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        extractor: ContentExtractor,
        orchestrator: GenerationOrchestrator,
        usage_guard: UsageGuard,
        store: SubmissionStore,
        generation_options: GenerationOptions | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.extractor = extractor
        self.orchestrator = orchestrator
        self.usage_guard = usage_guard
        self.store = store
        self.generation_options = generation_options
        self._clock = clock

    async def process(
        self, url: Any, user_id: str, plan: str | None = None
    ) -> PipelineResult:
        """Process a URL for a user.

        Never raises for pipeline failures; the typed error is returned on
        the result instead.
        """
        try:
            return await self._run(url, user_id, plan)
        except ContentFlowError as e:
            logger.warning(
                "Content processing failed for user %s (%s): %s",
                user_id,
                e.code,
                e,
            )
            return PipelineResult(success=False, error=e)

    async def _run(self, url: Any, user_id: str, plan: str | None) -> PipelineResult:
        valid_url = validate_url(url)

        now = self._clock() if self._clock else None
        await asyncio.to_thread(self.usage_guard.check_quota, user_id, now, plan)

        logger.info("Processing content for user %s: %s", user_id, valid_url)
        extracted = await self._extract(valid_url)
        prompts = build_prompts(extracted)

        try:
            package = await self.orchestrator.generate(
                prompts, extracted, self.generation_options
            )
        except GenerationError as e:
            raise GenerationError(
                attempts=e.attempts,
                last_error=e.last_error,
                message=f"Failed to generate repurposed content: {e}",
            ) from e

        if package.degraded:
            logger.warning("Returning degraded package for %s", valid_url)

        submission = ContentSubmission(
            user_id=user_id,
            original_url=valid_url,
            original_title=extracted.title,
            word_count=extracted.word_count,
            generated_content=package.to_dict(),
            status=SubmissionStatus.COMPLETED.value,
        )
        try:
            saved = await asyncio.to_thread(self.store.insert, submission)
        except StoreError as e:
            raise PersistenceError(package, e) from e

        logger.info(
            "Stored submission %s for user %s (%d words, model=%s)",
            saved.id,
            user_id,
            extracted.word_count,
            package.model,
        )
        return PipelineResult(
            success=True,
            package=package,
            original_content=OriginalContent.from_extracted(extracted),
            submission_id=saved.id,
        )

    async def _extract(self, url: str) -> ExtractedContent:
        """Fetch and extract, reporting every failure as a FetchError."""
        try:
            html = await self.fetcher.fetch(url)
            return self.extractor.extract(html, url)
        except FetchError as e:
            raise FetchError(
                f"Failed to extract content from URL: {e}", url, e.cause
            ) from e
        except Exception as e:
            logger.exception("Unexpected extraction failure for %s", url)
            raise FetchError(
                f"Failed to extract content from URL: {e}", url, e
            ) from e
