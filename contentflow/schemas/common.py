from typing import Any

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    name: str
    version: str
    git_sha: str


class ModelHealthResponse(BaseModel):
    timestamp: str
    models: dict[str, dict[str, Any]]
    overall_status: str
