"""Response models for the health endpoints."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Liveness answer: the process is up."""

    status: Literal["ok"] = "ok"
    version: str


class ReadinessChecks(BaseModel):
    """Per-dependency results; "ok" or "error: <reason>"."""

    http_client: str
    result_store: str
    state_store: str

    @property
    def all_ok(self) -> bool:
        return all(value == "ok" for value in self.model_dump().values())


class ReadinessResponse(BaseModel):
    """Readiness answer with dependency checks and source configuration."""

    status: Literal["healthy", "unhealthy"]
    version: str
    timestamp: datetime
    checks: ReadinessChecks
    sources: dict[str, bool] = Field(..., description="Whether each source has its credentials configured")
    uptime_seconds: int | None = None
    request_count: int = 0
