"""Progress events streamed while an optimization runs."""

from typing import List, Literal, Optional

from .base import CamelModel
from .candidate import PromptCandidate
from .metrics import MetricScores

EventType = Literal[
    "start",
    "sample_output",
    "evaluation_output",
    "iteration",
    "complete",
    "error",
]


class ProgressEvent(CamelModel):
    """Single progress event; serialized as one JSON object."""

    type: EventType
    iteration: int = 0
    accepted: bool = False
    collection_size: int = 0
    best_score: float = 0.0
    run_id: Optional[str] = None
    candidate_prompt: Optional[str] = None
    batch_score: Optional[float] = None
    metrics: Optional[MetricScores] = None
    final_prompt: Optional[str] = None
    collection: Optional[List[PromptCandidate]] = None
    message: Optional[str] = None
    error: Optional[str] = None
    sample_id: Optional[str] = None
    content: Optional[str] = None

    def to_json(self) -> str:
        """Serialize with camelCase keys, omitting unset optional fields."""
        return self.model_dump_json(by_alias=True, exclude_none=True)
