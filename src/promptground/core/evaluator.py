"""Prompt evaluation on a batch of samples."""

import time
from typing import Any, Dict, List, Optional, Sequence

from loguru import logger

from ..models import BatchEvaluation, JudgeResult, MetricScores, ProgressEvent, Sample
from .events import EventSink, NullSink
from .generator import TrajectoryGenerator
from .judge import TrajectoryJudge


class BatchEvaluator:
    """Evaluates a prompt on a batch: generate, judge, aggregate."""

    def __init__(
        self,
        generator: TrajectoryGenerator,
        judge: TrajectoryJudge,
        sink: Optional[EventSink] = None,
    ):
        """Initialize evaluator with generator, judge and event sink."""
        self.generator = generator
        self.judge = judge
        self.sink = sink or NullSink()

    async def evaluate_batch(
        self,
        samples: Sequence[Sample],
        prompt: str,
        generation_model: str,
        judge_model: str,
        selected_metrics: Sequence[str],
        structured_output: bool = False,
        schema: Optional[Dict[str, Any]] = None,
        iteration: Optional[int] = None,
    ) -> BatchEvaluation:
        """Evaluate prompt on samples one after another.

        Samples run strictly in order so that streamed sample and evaluation
        events stay attached to the right iteration.
        """
        if not samples:
            logger.warning("Empty batch - returning zero scores")
            return BatchEvaluation()

        logger.info(f"Evaluating prompt on {len(samples)} samples...")
        start_time = time.time()

        results: List[JudgeResult] = []
        for sample in samples:
            results.append(
                await self._evaluate_single(
                    sample=sample,
                    prompt=prompt,
                    generation_model=generation_model,
                    judge_model=judge_model,
                    selected_metrics=selected_metrics,
                    structured_output=structured_output,
                    schema=schema,
                    iteration=iteration,
                )
            )

        evaluation = BatchEvaluation(
            metrics=aggregate_metrics(results, selected_metrics),
            overall_score=sum(r.overall_score for r in results) / len(results),
            suggestions=[r.suggested_improvements for r in results],
            feedbacks=[r.detailed_feedback for r in results],
        )

        elapsed = time.time() - start_time
        logger.info(f"Evaluation complete in {elapsed:.1f}s: {evaluation}")
        return evaluation

    async def _evaluate_single(
        self,
        sample: Sample,
        prompt: str,
        generation_model: str,
        judge_model: str,
        selected_metrics: Sequence[str],
        structured_output: bool,
        schema: Optional[Dict[str, Any]],
        iteration: Optional[int],
    ) -> JudgeResult:
        """Generate a trajectory for one sample and judge it."""
        logger.debug(f"Evaluating sample {sample.id}...")
        generated = await self.generator.generate(
            sample=sample,
            system_prompt=prompt,
            model=generation_model,
            structured_output=structured_output,
            schema=schema,
            iteration=iteration,
        )
        result = await self.judge.judge(sample, generated, judge_model, selected_metrics)

        if iteration is not None:
            await self.sink.emit(ProgressEvent(
                type="evaluation_output",
                iteration=iteration,
                sample_id=sample.id,
                content=(
                    f"Sample {sample.id}: Score {result.overall_score:.2f}\n"
                    f"{result.detailed_feedback}"
                ),
            ))
        logger.debug(f"Sample {sample.id} - Overall: {result.overall_score:.2f}")
        return result


def aggregate_metrics(results: Sequence[JudgeResult], selected_metrics: Sequence[str]) -> MetricScores:
    """Mean of each selected metric over the results that reported it."""
    aggregated: MetricScores = {}
    for name in selected_metrics:
        values = [r.metrics[name] for r in results if r.metrics.get(name) is not None]
        if values:
            aggregated[name] = sum(values) / len(values)
    return aggregated
