"""Content repurposing REST endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from contentflow.core.config import settings
from contentflow.db.session import get_db
from contentflow.exceptions import (
    ContentFlowError,
    FetchError,
    GenerationError,
    PersistenceError,
    QuotaExceededError,
    UrlValidationError,
    UsageCheckError,
)
from contentflow.schemas.content import (
    ErrorBody,
    HistoryResponse,
    ProcessContentRequest,
    ProcessContentResponse,
    SubmissionDetailResponse,
    UsageStatsResponse,
)
from contentflow.services import content_service
from contentflow.services.extractor import ContentExtractor
from contentflow.services.fetcher import PageFetcher
from contentflow.services.llm.orchestrator import GenerationOptions, GenerationOrchestrator
from contentflow.services.pipeline import ContentPipeline
from contentflow.services.submission_store import SqlSubmissionStore, SubmissionStore
from contentflow.services.usage_guard import PlanLimits, UsageGuard, load_timezone

router = APIRouter(prefix="/api/v1/content", tags=["content"])

_ERROR_STATUS: dict[type[ContentFlowError], int] = {
    UrlValidationError: 400,
    QuotaExceededError: 429,
    UsageCheckError: 500,
    FetchError: 400,
    GenerationError: 502,
    PersistenceError: 500,
}


def error_status(error: ContentFlowError | None) -> int:
    """Map a pipeline error to its HTTP status code."""
    for error_type, status_code in _ERROR_STATUS.items():
        if isinstance(error, error_type):
            return status_code
    return 500


# ------------------------------------------------------------------
# Dependencies
# ------------------------------------------------------------------


def get_user_id(request: Request) -> str:
    user_id = getattr(request.state, "user_id", None)
    if not user_id:
        raise HTTPException(
            status_code=401,
            detail={
                "success": False,
                "error": "Authentication required",
                "code": "MISSING_USER_ID",
            },
        )
    return user_id


def get_user_plan(request: Request) -> str | None:
    return getattr(request.state, "user_plan", None)


def get_store(db: Session = Depends(get_db)) -> SubmissionStore:
    return SqlSubmissionStore(db)


def get_usage_guard(store: SubmissionStore = Depends(get_store)) -> UsageGuard:
    limits = PlanLimits(
        default=settings.monthly_limit_default,
        per_plan=settings.get_plan_limits(),
    )
    return UsageGuard(store, limits, load_timezone(settings.quota_timezone))


def get_fetcher(request: Request) -> PageFetcher:
    return request.app.state.fetcher


def get_extractor(request: Request) -> ContentExtractor:
    return request.app.state.extractor


def get_orchestrator(request: Request) -> GenerationOrchestrator:
    return request.app.state.orchestrator


def get_pipeline(
    fetcher: PageFetcher = Depends(get_fetcher),
    extractor: ContentExtractor = Depends(get_extractor),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    guard: UsageGuard = Depends(get_usage_guard),
    store: SubmissionStore = Depends(get_store),
) -> ContentPipeline:
    options = GenerationOptions(
        model=settings.generation_model,
        temperature=settings.generation_temperature,
        max_tokens=settings.generation_max_tokens,
    )
    return ContentPipeline(
        fetcher,
        extractor,
        orchestrator,
        guard,
        store,
        generation_options=options,
    )


# ------------------------------------------------------------------
# Routes
# ------------------------------------------------------------------


@router.post(
    "/process",
    response_model=ProcessContentResponse,
    responses={code: {"model": ErrorBody} for code in (400, 429, 500, 502)},
)
async def process_content(
    body: ProcessContentRequest,
    user_id: str = Depends(get_user_id),
    plan: str | None = Depends(get_user_plan),
    pipeline: ContentPipeline = Depends(get_pipeline),
):
    """Fetch a page, repurpose it for four platforms and store the result.

    Failures are returned as ``{"success": false, "error", "code", ...}``
    with a status code matching the failed stage.
    """
    result = await pipeline.process(body.url, user_id, plan)
    if not result.success:
        return JSONResponse(status_code=error_status(result.error), content=result.to_dict())
    return result.to_dict()


@router.get("/history", response_model=HistoryResponse)
def get_history(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user_id: str = Depends(get_user_id),
    store: SubmissionStore = Depends(get_store),
) -> HistoryResponse:
    """List the caller's submissions, newest first."""
    return content_service.list_history(store, user_id, limit=limit, offset=offset)


@router.get("/usage/stats", response_model=UsageStatsResponse)
def get_usage_stats(
    user_id: str = Depends(get_user_id),
    plan: str | None = Depends(get_user_plan),
    guard: UsageGuard = Depends(get_usage_guard),
    store: SubmissionStore = Depends(get_store),
) -> UsageStatsResponse:
    """Monthly and lifetime usage for the caller."""
    return content_service.usage_stats(guard, store, user_id, plan=plan)


@router.get("/{submission_id}", response_model=SubmissionDetailResponse)
def get_submission(
    submission_id: str,
    user_id: str = Depends(get_user_id),
    store: SubmissionStore = Depends(get_store),
) -> SubmissionDetailResponse:
    """Get one of the caller's submissions."""
    return content_service.get_submission(store, user_id, submission_id)
