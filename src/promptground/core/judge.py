"""LLM-as-judge scoring of generated trajectories."""

import asyncio
import json
from typing import Any, Dict, List, Optional, Sequence, Type

from loguru import logger
from pydantic import BaseModel, Field, create_model

from ..clients import BaseLLMClient
from ..models import JudgeResult, JudgeRubric, Sample, Trajectory
from ..models.config import DEFAULT_JUDGE_TIMEOUT

NEUTRAL_SCORE = 0.5
NO_FEEDBACK_COMMENT = "No feedback provided"
FALLBACK_SUGGESTIONS = "Unable to generate suggestions due to evaluation error."


def build_score_model(rubric: JudgeRubric) -> Type[BaseModel]:
    """Build the structured-output model: one bounded score per rubric dimension."""
    fields: Dict[str, Any] = {
        key: (
            float,
            Field(ge=0.0, le=1.0, description=f"{dim.name} (0-1): {dim.description}"),
        )
        for key, dim in rubric.dimensions.items()
    }
    fields["overall_score"] = (
        float,
        Field(ge=0.0, le=1.0, description="Weighted overall score combining all dimensions"),
    )
    fields["detailed_feedback"] = (
        str,
        Field(description="Detailed analysis explaining the scores and what went well or poorly"),
    )
    fields["suggested_improvements"] = (
        str,
        Field(description=(
            "Specific, actionable suggestions for improving the prompt "
            "to address the issues found"
        )),
    )
    return create_model("ReflectionScore", **fields)


class TrajectoryJudge:
    """Scores a generated trajectory against a labeled reference sample."""

    def __init__(
        self,
        llm_client: BaseLLMClient,
        rubric: Optional[JudgeRubric] = None,
        timeout: float = DEFAULT_JUDGE_TIMEOUT,
    ):
        """Initialize judge with completion client and rubric."""
        self.llm = llm_client
        self.rubric = rubric or JudgeRubric()
        self.timeout = timeout
        self.score_model = build_score_model(self.rubric)

    async def judge(
        self,
        sample: Sample,
        generated: Trajectory,
        model: str,
        selected_metrics: Sequence[str],
    ) -> JudgeResult:
        """Score one trajectory; failures return neutral scores."""
        prompt = self.build_prompt(sample, generated, selected_metrics)
        try:
            payload = await asyncio.wait_for(
                self.llm.generate_object(
                    prompt=prompt,
                    schema=self.score_model.model_json_schema(),
                    model=model,
                ),
                timeout=self.timeout,
            )
            score = self.score_model.model_validate(payload)
        except Exception as e:
            logger.error(f"Error evaluating sample {sample.id}: {e!r}")
            return self.neutral_result(str(e) or type(e).__name__)

        return JudgeResult(
            metrics={key: getattr(score, key) for key in self.rubric.dimensions},
            overall_score=score.overall_score,
            detailed_feedback=score.detailed_feedback,
            suggested_improvements=score.suggested_improvements,
        )

    def neutral_result(self, reason: str) -> JudgeResult:
        """Fallback verdict carrying no signal."""
        return JudgeResult(
            metrics={key: NEUTRAL_SCORE for key in self.rubric.dimensions},
            overall_score=NEUTRAL_SCORE,
            detailed_feedback=f"Evaluation failed: {reason}",
            suggested_improvements=FALLBACK_SUGGESTIONS,
        )

    def build_prompt(
        self,
        sample: Sample,
        generated: Trajectory,
        selected_metrics: Sequence[str],
    ) -> str:
        """Render the judgment request."""
        rubric = self.rubric
        if sample.feedback is None:
            context = rubric.unlabeled_instruction
            comparison = rubric.comparison_unlabeled
            feedback_type = "NONE (unlabeled)"
        elif sample.is_positive:
            context = rubric.positive_feedback_instruction
            comparison = rubric.comparison_positive
            feedback_type = "POSITIVE (approved)"
        else:
            context = rubric.negative_feedback_instruction
            comparison = rubric.comparison_negative
            feedback_type = "NEGATIVE (rejected)"

        comment = (sample.feedback.comment if sample.feedback else None) or NO_FEEDBACK_COMMENT
        dimension_lines = "\n".join(
            f"{index}. **{dim.name}**: {dim.description}"
            for index, dim in enumerate(rubric.dimensions.values(), 1)
        )
        metric_lines = "\n".join(f"- {name}" for name in selected_metrics)

        return f"""{rubric.evaluation_instructions}

CONTEXT:
{context}

USER FEEDBACK: "{comment}"
Feedback Type: {feedback_type}

SAMPLE TRAJECTORY (Reference):
{_dump_messages(sample)}

GENERATED TRAJECTORY (To Evaluate):
{_dump_messages(generated)}

EVALUATION DIMENSIONS:
{metric_lines}

Evaluate the generated trajectory across ALL {len(rubric.dimensions)} dimensions:
{dimension_lines}

{comparison}

Provide scores (0-1), detailed feedback, and specific improvement suggestions for the prompt."""


def _dump_messages(trajectory: Trajectory) -> str:
    messages: List[Dict[str, Any]] = [message.to_json_dict() for message in trajectory.messages]
    return json.dumps(messages, indent=2, ensure_ascii=False, default=str)
