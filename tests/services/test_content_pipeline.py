"""Tests for the ContentPipeline coordinator."""

from __future__ import annotations

from datetime import timezone
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from conftest import ARTICLE_BODY, ARTICLE_URL, PACKAGE_JSON, fixed_clock
from contentflow.exceptions import (
    FetchError,
    GenerationError,
    PersistenceError,
    QuotaExceededError,
    StoreError,
    UrlValidationError,
    UsageCheckError,
)
from contentflow.models.content_submission import (
    MAX_TITLE_LENGTH,
    MAX_URL_LENGTH,
    ContentSubmission,
    SubmissionStatus,
)
from contentflow.services.extractor import ContentExtractor
from contentflow.services.llm.orchestrator import FALLBACK_CONTENT
from contentflow.services.pipeline import ContentPipeline, validate_url
from contentflow.services.usage_guard import PlanLimits, UsageGuard


def _pipeline(fetcher, orchestrator, store, limit: int = 50) -> ContentPipeline:
    guard = UsageGuard(store, PlanLimits(default=limit), timezone.utc)
    return ContentPipeline(
        fetcher, ContentExtractor(), orchestrator, guard, store, clock=fixed_clock
    )


def _fill_quota(store, user_id: str, count: int) -> None:
    for i in range(count):
        store.insert(
            ContentSubmission(
                user_id=user_id,
                original_url=f"https://example.com/{i}",
                original_title="Earlier",
                word_count=10,
                status=SubmissionStatus.COMPLETED.value,
                created_at=fixed_clock(),
            )
        )


class TestValidateUrl:
    @pytest.mark.parametrize(
        ("url", "message"),
        [
            (None, "URL is required"),
            ("", "URL is required"),
            ("   ", "URL is required"),
            ("not a url", "Invalid URL format"),
            ("ftp://example.com/file", "Invalid URL protocol"),
            (123, "Invalid URL format"),
            (["https://example.com"], "Invalid URL format"),
            ("https://example.com/" + "a" * 2100, "Invalid URL format"),
        ],
    )
    def test_rejects(self, url, message) -> None:
        with pytest.raises(UrlValidationError, match=message):
            validate_url(url)

    def test_accepts_and_strips(self) -> None:
        assert validate_url("  https://example.com/post  ") == "https://example.com/post"

    def test_accepts_url_at_column_width(self) -> None:
        url = "https://example.com/" + "a" * (MAX_URL_LENGTH - len("https://example.com/"))

        assert validate_url(url) == url


class TestPipelineSuccess:
    @pytest.mark.asyncio
    async def test_end_to_end(self, fetcher, orchestrator, store, fake_provider, package_response) -> None:
        fake_provider.responses = [package_response()]

        result = await _pipeline(fetcher, orchestrator, store).process(ARTICLE_URL, "user-1")

        assert result.success is True
        assert result.degraded is False
        assert result.package.twitter == PACKAGE_JSON["twitter"]
        assert result.original_content.title == "Async Python in Practice"
        assert result.original_content.url == ARTICLE_URL
        # h1 plus the article paragraph
        assert result.original_content.word_count == len(
            f"Async Python in Practice {ARTICLE_BODY}".split()
        )
        assert result.original_content.word_count == 444

        saved = store.get_for_user("user-1", result.submission_id)
        assert saved.status == SubmissionStatus.COMPLETED.value
        assert saved.original_url == ARTICLE_URL
        assert saved.word_count == result.original_content.word_count
        assert saved.generated_content == result.package.to_dict()

    @pytest.mark.asyncio
    async def test_prompt_contains_extracted_text(self, fetcher, orchestrator, store, fake_provider, package_response) -> None:
        fake_provider.responses = [package_response()]

        await _pipeline(fetcher, orchestrator, store).process(ARTICLE_URL, "user-1")

        user_prompt = fake_provider.calls[0]["messages"][1]["content"]
        assert "Title: Async Python in Practice" in user_prompt
        assert "Paragraph 0 explains" in user_prompt
        assert "trackVisit" not in user_prompt
        assert "Home | Blog" not in user_prompt

    @pytest.mark.asyncio
    async def test_degraded_package_is_still_stored(self, fetcher, orchestrator, store, fake_provider) -> None:
        fake_provider.responses = ["I could not follow the JSON instructions."]

        result = await _pipeline(fetcher, orchestrator, store).process(ARTICLE_URL, "user-1")

        assert result.success is True
        assert result.degraded is True
        assert result.package.linkedin == FALLBACK_CONTENT["linkedin"]
        assert store.count_by_user("user-1") == 1

    @pytest.mark.asyncio
    async def test_to_dict_success_shape(self, fetcher, orchestrator, store, fake_provider, package_response) -> None:
        fake_provider.responses = [package_response()]

        result = await _pipeline(fetcher, orchestrator, store).process(ARTICLE_URL, "user-1")
        body = result.to_dict()

        assert body["success"] is True
        assert body["id"] == result.submission_id
        assert set(PACKAGE_JSON) <= set(body)
        assert body["metadata"]["originalUrl"] == ARTICLE_URL
        assert body["originalContent"]["title"] == "Async Python in Practice"
        assert body["degraded"] is False

    @pytest.mark.asyncio
    async def test_last_quota_slot_allowed(self, fetcher, orchestrator, store, fake_provider, package_response) -> None:
        _fill_quota(store, "user-1", 49)
        fake_provider.responses = [package_response()]

        result = await _pipeline(fetcher, orchestrator, store).process(ARTICLE_URL, "user-1")

        assert result.success is True
        assert store.count_by_user("user-1") == 50

    @pytest.mark.asyncio
    async def test_long_title_stored_within_column(
        self, fetcher, page_routes, orchestrator, store, fake_provider, package_response
    ) -> None:
        html = f"<html><head><title>{'T' * 2000}</title></head><body><article>{ARTICLE_BODY}</article></body></html>"
        page_routes[ARTICLE_URL] = httpx.Response(200, text=html)
        fake_provider.responses = [package_response()]

        result = await _pipeline(fetcher, orchestrator, store).process(ARTICLE_URL, "user-1")

        assert result.success is True
        saved = store.get_for_user("user-1", result.submission_id)
        assert saved.original_title == "T" * MAX_TITLE_LENGTH


class TestPipelineFailures:
    @pytest.mark.asyncio
    async def test_invalid_url_touches_nothing(self, orchestrator, store, fake_provider) -> None:
        fetcher = MagicMock()
        fetcher.fetch = AsyncMock()

        result = await _pipeline(fetcher, orchestrator, store).process("notaurl", "user-1")

        assert result.success is False
        assert isinstance(result.error, UrlValidationError)
        assert result.to_dict() == {
            "success": False,
            "error": "Invalid URL format",
            "code": "INVALID_URL",
        }
        fetcher.fetch.assert_not_awaited()
        assert fake_provider.calls == []

    @pytest.mark.asyncio
    async def test_quota_exceeded_before_fetch(self, orchestrator, store, fake_provider) -> None:
        _fill_quota(store, "user-1", 50)
        fetcher = MagicMock()
        fetcher.fetch = AsyncMock()

        result = await _pipeline(fetcher, orchestrator, store).process(ARTICLE_URL, "user-1")

        assert isinstance(result.error, QuotaExceededError)
        body = result.to_dict()
        assert body["code"] == "QUOTA_EXCEEDED"
        assert body["limit"] == 50
        assert body["used"] == 50
        fetcher.fetch.assert_not_awaited()
        assert store.count_by_user("user-1") == 50

    @pytest.mark.asyncio
    async def test_usage_check_failure(self, fetcher, orchestrator) -> None:
        failing = MagicMock()
        failing.count_by_user_since.side_effect = StoreError("db down")

        result = await _pipeline(fetcher, orchestrator, failing).process(ARTICLE_URL, "user-1")

        assert isinstance(result.error, UsageCheckError)
        assert result.error_message == "Failed to check usage limits"
        failing.insert.assert_not_called()

    @pytest.mark.asyncio
    async def test_fetch_failure_stores_nothing(self, fetcher, orchestrator, store, fake_provider) -> None:
        result = await _pipeline(fetcher, orchestrator, store).process(
            "https://blog.example.com/missing", "user-1"
        )

        assert isinstance(result.error, FetchError)
        assert result.error_message == (
            "Failed to extract content from URL: HTTP error 404: Not Found"
        )
        assert fake_provider.calls == []
        assert store.count_by_user("user-1") == 0

    @pytest.mark.asyncio
    async def test_unexpected_extraction_error_reported_as_fetch_error(
        self, fetcher, orchestrator, store
    ) -> None:
        pipeline = _pipeline(fetcher, orchestrator, store)
        pipeline.extractor = MagicMock()
        pipeline.extractor.extract.side_effect = ValueError("parser exploded")

        result = await pipeline.process(ARTICLE_URL, "user-1")

        assert isinstance(result.error, FetchError)
        assert "parser exploded" in result.error_message

    @pytest.mark.asyncio
    async def test_generation_failure_stores_nothing(
        self, fetcher, orchestrator, store, fake_provider, sleep_recorder
    ) -> None:
        fake_provider.responses = [RuntimeError("overloaded")] * 3

        result = await _pipeline(fetcher, orchestrator, store).process(ARTICLE_URL, "user-1")

        assert isinstance(result.error, GenerationError)
        assert result.error_message.startswith(
            "Failed to generate repurposed content: All AI models failed after 3 attempts"
        )
        assert result.to_dict()["code"] == "GENERATION_FAILED"
        assert sleep_recorder.delays == [2.0, 4.0]
        assert store.count_by_user("user-1") == 0

    @pytest.mark.asyncio
    async def test_persistence_failure_returns_package(
        self, fetcher, orchestrator, fake_provider, package_response
    ) -> None:
        fake_provider.responses = [package_response()]
        failing = MagicMock()
        failing.count_by_user_since.return_value = 0
        failing.insert.side_effect = StoreError("write failed")

        result = await _pipeline(fetcher, orchestrator, failing).process(ARTICLE_URL, "user-1")

        assert isinstance(result.error, PersistenceError)
        body = result.to_dict()
        assert body["error"] == "Failed to save processed content"
        assert body["code"] == "SAVE_FAILED"
        assert body["generatedContent"]["twitter"] == PACKAGE_JSON["twitter"]
