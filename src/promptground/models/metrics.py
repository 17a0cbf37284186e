"""Quality metrics for multi-objective prompt optimization."""

from typing import Dict, List, Sequence

from pydantic import BaseModel, Field

MetricScores = Dict[str, float]

AVAILABLE_METRICS: List[str] = [
    "tone",
    "accuracy",
    "efficiency",
    "tool_accuracy",
    "guardrails",
]

METRIC_LABELS: Dict[str, str] = {
    "tone": "Tone",
    "accuracy": "Accuracy",
    "efficiency": "Efficiency",
    "tool_accuracy": "Tool Accuracy",
    "guardrails": "Guardrails",
}

METRIC_DESCRIPTIONS: Dict[str, str] = {
    "tone": (
        "Evaluates whether the agent's communication style matches user expectations. "
        "Considers formality, friendliness, and consistency with the desired persona."
    ),
    "accuracy": (
        "Measures if the information provided is factually correct, relevant, and "
        "properly addresses the user's query."
    ),
    "efficiency": (
        "Tracks the number of assistant turns and tool calls. Penalizes unnecessary "
        "steps, redundant tool calls, or longer paths to the solution."
    ),
    "tool_accuracy": (
        "Assesses whether the agent selected and used the right tools at the right "
        "time. Checks for missing, incorrect, or improperly used tool calls."
    ),
    "guardrails": (
        "Ensures the response adheres to safety guidelines, ethical constraints, and "
        "content policies."
    ),
}


def dominates(a: MetricScores, b: MetricScores, metric_names: Sequence[str]) -> bool:
    """Check if scores `a` Pareto-dominate scores `b` on the given metrics.

    Missing metrics count as 0. Equal scores on every metric do not dominate.
    """
    strictly_better = False
    for name in metric_names:
        a_value = a.get(name, 0.0)
        b_value = b.get(name, 0.0)
        if a_value < b_value:
            return False
        if a_value > b_value:
            strictly_better = True
    return strictly_better


class JudgeResult(BaseModel):
    """Judge verdict for one generated trajectory."""

    metrics: MetricScores = Field(default_factory=dict)
    overall_score: float = Field(ge=0.0, le=1.0)
    detailed_feedback: str = ""
    suggested_improvements: str = ""


class BatchEvaluation(BaseModel):
    """Aggregated judge verdicts for a batch of samples."""

    metrics: MetricScores = Field(default_factory=dict)
    overall_score: float = 0.0
    suggestions: List[str] = Field(default_factory=list)
    feedbacks: List[str] = Field(default_factory=list)

    def __str__(self) -> str:
        parts = ", ".join(f"{name}={value:.2f}" for name, value in self.metrics.items())
        return f"Score={self.overall_score:.2f}" + (f" ({parts})" if parts else "")
