"""Reflection logging utilities."""

import json
from pathlib import Path
from typing import List, Optional

from ...models import BatchEvaluation, PromptCandidate

REFLECTION_LOG_FILENAME = "reflection_log.jsonl"
REFLECTION_LOG_MAX_ITEMS = 5
REFLECTION_LOG_MAX_TEXT_LENGTH = 500


class ReflectionLogger:
    """Write one JSONL record per rollout with the feedback behind each rewrite."""

    def __init__(self, runs_dir: Path):
        """Initialize reflection logger."""
        self.runs_dir = runs_dir
        self.run_id: Optional[str] = None

    def set_run_id(self, run_id: str) -> None:
        """Set current run id."""
        self.run_id = run_id

    @property
    def log_path(self) -> Path:
        return self.runs_dir / (self.run_id or "run") / REFLECTION_LOG_FILENAME

    def append(
        self,
        iteration: int,
        parent: PromptCandidate,
        improved_prompt: str,
        batch_eval: BatchEvaluation,
        improved_eval: BatchEvaluation,
        accepted: bool,
        sample_ids: List[str],
    ) -> None:
        """Append reflection log entry."""
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "run_id": self.run_id,
            "iteration": iteration,
            "parent_id": parent.id,
            "accepted": accepted,
            "batch_score": batch_eval.overall_score,
            "improved_score": improved_eval.overall_score,
            "batch_metrics": batch_eval.metrics,
            "improved_metrics": improved_eval.metrics,
            "sample_ids": sample_ids,
            "improved_prompt": improved_prompt,
            "top_suggestions": self._truncate(batch_eval.suggestions),
            "top_feedbacks": self._truncate(batch_eval.feedbacks),
        }
        with open(self.log_path, "a", encoding="utf-8") as log_file:
            log_file.write(json.dumps(payload, ensure_ascii=False) + "\n")

    def _truncate(self, texts: List[str]) -> List[str]:
        return [text[:REFLECTION_LOG_MAX_TEXT_LENGTH] for text in texts[:REFLECTION_LOG_MAX_ITEMS]]
