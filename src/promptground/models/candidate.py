"""Prompt candidate model for reflective optimization."""

from typing import List, Optional

from pydantic import ConfigDict, Field

from .base import CamelModel
from .metrics import MetricScores

SEED_CANDIDATE_ID = "seed"


def candidate_id_for(iteration: int) -> str:
    """Candidate id for a rewrite accepted at `iteration`."""
    return SEED_CANDIDATE_ID if iteration == 0 else f"candidate-{iteration}"


class PromptCandidate(CamelModel):
    """Prompt candidate in the Pareto collection."""

    model_config = ConfigDict(frozen=True)

    id: str
    prompt: str = Field(description="Full system prompt text")
    metrics: MetricScores = Field(default_factory=dict)
    overall_score: float = Field(ge=0.0, le=1.0, description="Judge-reported aggregate")
    best_for_examples: List[int] = Field(default_factory=list)
    parent_id: Optional[str] = None
    iteration: int = Field(default=0, ge=0)

    def __str__(self) -> str:
        return f"Candidate({self.id}, score={self.overall_score:.2f})"
