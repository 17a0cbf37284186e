"""Judge rubric: evaluation instructions and scored dimensions."""

from typing import Dict, Set

from pydantic import BaseModel, Field, field_validator

from .metrics import AVAILABLE_METRICS, METRIC_LABELS


class DimensionRubric(BaseModel):
    """Description of a single scored dimension."""

    name: str
    description: str
    weight: float = Field(default=1.0, ge=0.0)


RESERVED_SCORE_FIELDS: Set[str] = {"overall_score", "detailed_feedback", "suggested_improvements"}


DEFAULT_DIMENSION_DESCRIPTIONS: Dict[str, str] = {
    "tone": "Does it match the desired communication style? Consider the user feedback about tone.",
    "accuracy": "Is the information correct and helpful?",
    "efficiency": (
        "Count the number of assistant turns and tool calls. "
        "Lower score for unnecessary tool calls or extra turns."
    ),
    "tool_accuracy": "Were the right tools used appropriately?",
    "guardrails": "Does it follow safety guidelines and constraints?",
}


def _default_dimensions() -> Dict[str, DimensionRubric]:
    return {
        key: DimensionRubric(name=METRIC_LABELS[key], description=DEFAULT_DIMENSION_DESCRIPTIONS[key])
        for key in AVAILABLE_METRICS
    }


class JudgeRubric(BaseModel):
    """Configurable text of the LLM-as-judge request.

    Stored as ``metrics-prompt.json`` in the data directory; every field has
    a built-in default so partial files are accepted.
    """

    evaluation_instructions: str = (
        "You are an expert AI evaluator. Evaluate the generated agent trajectory."
    )
    dimensions: Dict[str, DimensionRubric] = Field(default_factory=_default_dimensions)
    positive_feedback_instruction: str = (
        "This is a POSITIVE example (user approved this response).\n"
        "Your task: Compare the generated trajectory to the gold trajectory.\n"
        "The generated response should match or exceed the quality of the gold trajectory."
    )
    negative_feedback_instruction: str = (
        "This is a NEGATIVE example (user rejected this response).\n"
        "Your task: Evaluate the generated trajectory in isolation.\n"
        "The generated response should AVOID the issues mentioned in the user feedback."
    )
    unlabeled_instruction: str = (
        "This example has no user feedback.\n"
        "Your task: Evaluate the generated trajectory on its own merits, "
        "using the reference trajectory only as context."
    )
    comparison_positive: str = (
        "Compare the generated trajectory to the gold trajectory. It should be at least as good."
    )
    comparison_negative: str = (
        "Check if the generated trajectory avoids the issues mentioned in the negative feedback."
    )
    comparison_unlabeled: str = (
        "Score the generated trajectory on each dimension independently."
    )

    @field_validator("dimensions")
    @classmethod
    def _check_dimension_keys(cls, value: Dict[str, DimensionRubric]) -> Dict[str, DimensionRubric]:
        # Keys become fields of the judge's response model.
        for key in value:
            if not key.isidentifier() or key.startswith("_"):
                raise ValueError(f"Dimension key '{key}' must be an identifier without a leading underscore")
            if key in RESERVED_SCORE_FIELDS or key.startswith("model_") or hasattr(BaseModel, key):
                raise ValueError(f"Dimension key '{key}' is reserved")
        return value
