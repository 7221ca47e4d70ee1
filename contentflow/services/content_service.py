"""Read-side operations over a user's content submissions."""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import HTTPException

from contentflow.exceptions import StoreError, UsageCheckError
from contentflow.models.content_submission import ContentSubmission
from contentflow.schemas.content import (
    HistoryResponse,
    MonthlyUsage,
    Pagination,
    SubmissionDetail,
    SubmissionDetailResponse,
    SubmissionSummary,
    TotalUsage,
    UsagePeriod,
    UsageStats,
    UsageStatsResponse,
)
from contentflow.services.submission_store import SubmissionStore
from contentflow.services.usage_guard import UsageGuard

logger = logging.getLogger(__name__)


def _store_failure(message: str, exc: Exception) -> HTTPException:
    logger.error("%s: %s", message, exc)
    return HTTPException(
        status_code=500,
        detail={"success": False, "error": message, "code": "STORE_ERROR"},
    )


def _build_detail(item: ContentSubmission) -> SubmissionDetail:
    """Convert ORM ContentSubmission into SubmissionDetail."""
    return SubmissionDetail(
        id=item.id,
        original_url=item.original_url,
        original_title=item.original_title,
        word_count=item.word_count,
        generated_content=item.generated_content,
        status=item.status,
        created_at=item.created_at,
    )


def list_history(
    store: SubmissionStore, user_id: str, limit: int = 20, offset: int = 0
) -> HistoryResponse:
    """List a user's submissions newest first with pagination."""
    try:
        items = store.list_for_user(user_id, limit=limit, offset=offset)
        total = store.count_by_user(user_id)
    except StoreError as e:
        raise _store_failure("Failed to fetch content history", e) from e

    return HistoryResponse(
        data=[SubmissionSummary.model_validate(item) for item in items],
        pagination=Pagination(limit=limit, offset=offset, total=total),
    )


def get_submission(
    store: SubmissionStore, user_id: str, submission_id: str
) -> SubmissionDetailResponse:
    """Get one of the caller's submissions or raise 404."""
    try:
        item = store.get_for_user(user_id, submission_id)
    except StoreError as e:
        raise _store_failure("Failed to fetch content", e) from e

    if item is None:
        raise HTTPException(
            status_code=404,
            detail={
                "success": False,
                "error": "Content not found",
                "code": "CONTENT_NOT_FOUND",
            },
        )
    return SubmissionDetailResponse(data=_build_detail(item))


def usage_stats(
    guard: UsageGuard,
    store: SubmissionStore,
    user_id: str,
    plan: str | None = None,
    now: datetime | None = None,
) -> UsageStatsResponse:
    """Summarize the user's monthly and lifetime usage."""
    try:
        window = guard.usage_window(user_id, now=now, plan=plan)
        total = store.count_by_user(user_id)
    except (UsageCheckError, StoreError) as e:
        raise _store_failure("Failed to fetch usage statistics", e) from e

    return UsageStatsResponse(
        data=UsageStats(
            monthly=MonthlyUsage(
                used=window.count,
                limit=window.limit,
                remaining=window.remaining,
                percentage=window.percentage,
            ),
            total=TotalUsage(processed=total),
            period=UsagePeriod(start=window.month_start, end=window.month_end),
        )
    )
