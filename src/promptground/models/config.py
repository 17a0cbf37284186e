"""Optimization configuration models."""

from typing import Any, Dict, List, Optional, Set

from pydantic import Field, field_validator

from .base import CamelModel
from .metrics import AVAILABLE_METRICS

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_BATCH_SIZE = 3
DEFAULT_NUM_ROLLOUTS = 10
DEFAULT_GENERATION_TIMEOUT = 60.0
DEFAULT_JUDGE_TIMEOUT = 60.0
DEFAULT_REFLECTION_TIMEOUT = 90.0
MAX_BATCH_SIZE = 50
MAX_NUM_ROLLOUTS = 200

DEFAULT_REFLECTION_TEMPLATE = """You are an expert prompt engineer. Improve the following prompt based on evaluation feedback.

CURRENT PROMPT:
\"\"\"
{current_prompt}
\"\"\"

EVALUATION FEEDBACKS FROM BATCH:
{feedbacks}

SUGGESTED IMPROVEMENTS FROM BATCH:
{suggestions}

Analyze all the feedback and suggestions above. Then write an IMPROVED version of the prompt that:
1. Addresses the most critical issues identified across all samples
2. Incorporates the suggested improvements where they make sense
3. Maintains clarity and specificity
4. Keeps what's working well

Return ONLY the improved prompt text, nothing else."""


SUPPORTED_PROFILES: Set[str] = {"fast", "balanced", "quality", "advanced"}

PROFILE_PRESETS: Dict[str, Dict[str, Any]] = {
    "fast": {
        "batch_size": 2,
        "num_rollouts": 5,
        "generation_timeout": 45.0,
        "judge_timeout": 45.0,
    },
    "balanced": {
        "batch_size": 3,
        "num_rollouts": 10,
    },
    "quality": {
        "batch_size": 6,
        "num_rollouts": 20,
        "generation_timeout": 120.0,
        "judge_timeout": 120.0,
        "reflection_timeout": 180.0,
    },
    "advanced": {},
}


class RunConfig(CamelModel):
    """Run parameters recorded on every persisted run."""

    optimization_model: str = DEFAULT_MODEL
    reflection_model: str = DEFAULT_MODEL
    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, ge=1, le=MAX_BATCH_SIZE)
    num_rollouts: int = Field(default=DEFAULT_NUM_ROLLOUTS, ge=0, le=MAX_NUM_ROLLOUTS)
    selected_metrics: List[str] = Field(default_factory=lambda: list(AVAILABLE_METRICS))
    use_structured_output: bool = False
    sample_group_id: Optional[str] = None

    @field_validator("selected_metrics")
    @classmethod
    def _require_metrics(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("At least one metric must be selected")
        return list(dict.fromkeys(value))


class OptimizationConfig(RunConfig):
    """GEPA optimization request: run parameters plus execution limits."""

    generation_timeout: float = Field(default=DEFAULT_GENERATION_TIMEOUT, gt=0.0)
    judge_timeout: float = Field(default=DEFAULT_JUDGE_TIMEOUT, gt=0.0)
    reflection_timeout: float = Field(default=DEFAULT_REFLECTION_TIMEOUT, gt=0.0)
    reflection_template: str = DEFAULT_REFLECTION_TEMPLATE
    seed: Optional[int] = None

    def to_run_config(self) -> RunConfig:
        """Extract the fields persisted with the run."""
        return RunConfig.model_validate(
            self.model_dump(include=set(RunConfig.model_fields))
        )

    @classmethod
    def from_run_config(cls, run_config: RunConfig, **overrides: Any) -> "OptimizationConfig":
        """Rebuild a request from a persisted run, keeping execution limits from overrides."""
        data = run_config.model_dump()
        data.update(overrides)
        return cls(**data)

    @classmethod
    def from_profile(cls, profile: str, **overrides: Any) -> "OptimizationConfig":
        """Create config from a named profile with optional overrides."""
        if profile not in SUPPORTED_PROFILES:
            raise ValueError(
                f"Unknown profile '{profile}'. "
                f"Supported: {', '.join(sorted(SUPPORTED_PROFILES))}"
            )
        defaults = dict(PROFILE_PRESETS.get(profile, {}))
        defaults.update(overrides)
        return cls(**defaults)
