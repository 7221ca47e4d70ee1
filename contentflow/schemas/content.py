"""Pydantic v2 schemas for content processing endpoints.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that serializes with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProcessContentRequest(BaseModel):
    """Body for POST /api/v1/content/process."""

    # Checked by validate_url so bad values get the INVALID_URL error body
    url: Any = Field(None, description="Page to repurpose")


class PackageMetadataSchema(CamelModel):
    original_title: str
    original_url: str
    word_count: int
    generated_at: datetime


class OriginalContentSchema(CamelModel):
    title: str
    url: str
    word_count: int


class ProcessContentResponse(CamelModel):
    """Successful pipeline run."""

    success: bool = True
    id: str
    twitter: str
    linkedin: str
    newsletter: str
    video: str
    metadata: PackageMetadataSchema
    original_content: OriginalContentSchema
    degraded: bool = False


class ErrorBody(CamelModel):
    """Failed request. ``limit``/``used`` are set for quota failures."""

    success: bool = False
    error: str
    code: str | None = None
    limit: int | None = None
    used: int | None = None
    generated_content: dict[str, Any] | None = None


class SubmissionSummary(CamelModel):
    """One row of a user's history."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    id: str
    original_url: str
    original_title: str
    word_count: int
    status: str
    created_at: datetime


class Pagination(CamelModel):
    limit: int
    offset: int
    total: int


class HistoryResponse(CamelModel):
    success: bool = True
    data: list[SubmissionSummary]
    pagination: Pagination


class SubmissionDetail(CamelModel):
    id: str
    original_url: str
    original_title: str
    word_count: int
    generated_content: dict[str, Any] | None = None
    status: str
    created_at: datetime


class SubmissionDetailResponse(CamelModel):
    success: bool = True
    data: SubmissionDetail


class MonthlyUsage(CamelModel):
    used: int
    limit: int
    remaining: int
    percentage: int


class TotalUsage(CamelModel):
    processed: int


class UsagePeriod(CamelModel):
    start: datetime
    end: datetime


class UsageStats(CamelModel):
    monthly: MonthlyUsage
    total: TotalUsage
    period: UsagePeriod


class UsageStatsResponse(CamelModel):
    success: bool = True
    data: UsageStats
