"""Data models for promptground optimization."""

from .candidate import SEED_CANDIDATE_ID, PromptCandidate, candidate_id_for
from .config import (
    PROFILE_PRESETS,
    SUPPORTED_PROFILES,
    OptimizationConfig,
    RunConfig,
)
from .events import EventType, ProgressEvent
from .messages import (
    ContentPart,
    Feedback,
    Message,
    Sample,
    TextPart,
    ToolCallPart,
    ToolResultPart,
    Trajectory,
)
from .metrics import (
    AVAILABLE_METRICS,
    METRIC_DESCRIPTIONS,
    METRIC_LABELS,
    BatchEvaluation,
    JudgeResult,
    MetricScores,
    dominates,
)
from .rubric import DimensionRubric, JudgeRubric
from .run import OptimizationRun, RunPrompt, RunsFile, RunStatus

__all__ = [
    "AVAILABLE_METRICS",
    "METRIC_DESCRIPTIONS",
    "METRIC_LABELS",
    "PROFILE_PRESETS",
    "SEED_CANDIDATE_ID",
    "SUPPORTED_PROFILES",
    "BatchEvaluation",
    "ContentPart",
    "DimensionRubric",
    "EventType",
    "Feedback",
    "JudgeResult",
    "JudgeRubric",
    "Message",
    "MetricScores",
    "OptimizationConfig",
    "OptimizationRun",
    "ProgressEvent",
    "PromptCandidate",
    "RunConfig",
    "RunPrompt",
    "RunStatus",
    "RunsFile",
    "Sample",
    "TextPart",
    "ToolCallPart",
    "ToolResultPart",
    "Trajectory",
    "candidate_id_for",
    "dominates",
]
