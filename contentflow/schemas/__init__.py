"""Pydantic schemas package."""

from contentflow.schemas.common import HealthResponse, ModelHealthResponse  # noqa: F401
from contentflow.schemas.content import (  # noqa: F401
    ErrorBody,
    HistoryResponse,
    ProcessContentRequest,
    ProcessContentResponse,
    SubmissionDetailResponse,
    UsageStatsResponse,
)
