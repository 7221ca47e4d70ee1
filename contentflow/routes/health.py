import subprocess

from fastapi import APIRouter, Depends

from contentflow.routes.content import get_orchestrator, get_user_id
from contentflow.schemas.common import HealthResponse, ModelHealthResponse
from contentflow.services.llm.orchestrator import GenerationOrchestrator

router = APIRouter()

SERVICE_NAME = "contentflow-service"
SERVICE_VERSION = "0.1.0"


def get_git_sha() -> str:
    """Get git SHA, fallback to 'unknown' if not in git repo."""
    try:
        return (
            subprocess.check_output(["git", "rev-parse", "HEAD"]).decode().strip()[:7]
        )
    except (subprocess.CalledProcessError, FileNotFoundError):
        return "unknown"


@router.get("/health", response_model=HealthResponse)
async def health_check():
    return {
        "status": "ok",
        "name": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "git_sha": get_git_sha(),
    }


@router.get("/api/v1/models/health", response_model=ModelHealthResponse, tags=["health"])
async def models_health(
    user_id: str = Depends(get_user_id),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    """Send a one-attempt completion to every known model."""
    return await orchestrator.check_health()
