"""Request and response models for the promptground HTTP API."""

from typing import List, Optional

from ..models import OptimizationConfig, OptimizationRun
from ..models.base import CamelModel


class OptimizeRequest(OptimizationConfig):
    """Body of ``POST /api/optimize``: an optimization config plus an optional run to resume."""

    resume_run_id: Optional[str] = None

    def to_config(self) -> OptimizationConfig:
        return OptimizationConfig.model_validate(self.model_dump(exclude={"resume_run_id"}))


class RunsResponse(CamelModel):
    runs: List[OptimizationRun]


class RunSavedResponse(CamelModel):
    success: bool = True
    run: OptimizationRun


class SuccessResponse(CamelModel):
    success: bool = True


class HealthResponse(CamelModel):
    status: str = "ok"
    version: str
