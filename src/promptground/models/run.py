"""Persisted optimization run records."""

from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import Field

from .base import CamelModel
from .config import RunConfig
from .metrics import MetricScores

RunStatus = Literal["running", "completed", "error"]


def utc_timestamp() -> str:
    """ISO-8601 timestamp in UTC."""
    return datetime.now(timezone.utc).isoformat()


class RunPrompt(CamelModel):
    """One attempted prompt within a run (iteration 0 is the seed)."""

    iteration: int = Field(ge=0)
    prompt: str
    accepted: bool
    score: float
    metrics: MetricScores = Field(default_factory=dict)
    candidate_id: Optional[str] = None
    parent_id: Optional[str] = None


class OptimizationRun(CamelModel):
    """Persisted record of one optimization session."""

    id: str
    timestamp: str = Field(default_factory=utc_timestamp)
    config: RunConfig
    prompts: List[RunPrompt] = Field(default_factory=list)
    final_prompt: str = ""
    best_score: float = 0.0
    samples_used: List[str] = Field(default_factory=list)
    collection_size: int = 0
    status: RunStatus = "running"
    error: Optional[str] = None

    @property
    def last_iteration(self) -> int:
        """Highest recorded iteration, or -1 when nothing was recorded."""
        return max((entry.iteration for entry in self.prompts), default=-1)

    @property
    def accepted_prompts(self) -> List[RunPrompt]:
        return [entry for entry in self.prompts if entry.accepted]


class RunsFile(CamelModel):
    """On-disk layout of the run log."""

    runs: List[OptimizationRun] = Field(default_factory=list)
