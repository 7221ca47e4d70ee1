"""Custom exceptions for the contentflow service.

Every failure the content pipeline can report maps to one class here. The
route layer turns each class into an HTTP status and an error code.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from contentflow.services.llm.orchestrator import AttemptRecord


class ContentFlowError(Exception):
    """Base exception for content pipeline errors."""

    code = "CONTENTFLOW_ERROR"


class UrlValidationError(ContentFlowError):
    """Raised when the submitted URL is missing or malformed.

    Error Code: INVALID_URL
    """

    code = "INVALID_URL"


class QuotaExceededError(ContentFlowError):
    """Raised when the user has used up the monthly quota.

    Error Code: QUOTA_EXCEEDED
    """

    code = "QUOTA_EXCEEDED"

    def __init__(self, limit: int, used: int) -> None:
        self.limit = limit
        self.used = used
        super().__init__("Monthly usage limit exceeded")


class UsageCheckError(ContentFlowError):
    """Raised when the submission count for the quota check cannot be read.

    Error Code: USAGE_CHECK_FAILED
    """

    code = "USAGE_CHECK_FAILED"

    def __init__(self, cause: Exception | None = None) -> None:
        self.cause = cause
        super().__init__("Failed to check usage limits")


class FetchError(ContentFlowError):
    """Raised when the target page cannot be fetched or read.

    Error Code: FETCH_FAILED
    """

    code = "FETCH_FAILED"

    def __init__(self, message: str, url: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.cause = cause


class GenerationError(ContentFlowError):
    """Raised when every candidate model failed.

    Error Code: GENERATION_FAILED
    """

    code = "GENERATION_FAILED"

    def __init__(
        self,
        attempts: list[AttemptRecord] | None = None,
        last_error: str | None = None,
        message: str | None = None,
    ) -> None:
        self.attempts = list(attempts or [])
        self.last_error = last_error
        if message is None:
            message = (
                f"All AI models failed after {len(self.attempts)} attempts. "
                f"Last error: {last_error}"
            )
        super().__init__(message)


class StoreError(ContentFlowError):
    """Raised by the submission store when a read or write fails."""

    code = "STORE_ERROR"


class PersistenceError(ContentFlowError):
    """Raised when a generated package could not be saved.

    Carries the package so the caller can retry the save without paying
    for another generation.

    Error Code: SAVE_FAILED
    """

    code = "SAVE_FAILED"

    def __init__(self, package: Any, cause: Exception | None = None) -> None:
        self.package = package
        self.cause = cause
        super().__init__("Failed to save processed content")
