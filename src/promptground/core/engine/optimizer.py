"""GEPA Optimizer - reflective prompt optimization over a Pareto collection."""

import asyncio
import random
import uuid
from datetime import datetime
from typing import (
    Any,
    AsyncIterator,
    Callable,
    Dict,
    List,
    Optional,
    Sequence,
    Tuple,
)

from loguru import logger

from ...clients import BaseLLMClient
from ...config import UserConfigLoader
from ...models import (
    SEED_CANDIDATE_ID,
    BatchEvaluation,
    OptimizationConfig,
    OptimizationRun,
    ProgressEvent,
    PromptCandidate,
    RunConfig,
    RunPrompt,
    Sample,
    candidate_id_for,
)
from ..evaluator import BatchEvaluator
from ..events import EventSink, NullSink, QueueSink
from ..generator import TrajectoryGenerator
from ..io.reflection_logger import ReflectionLogger
from ..judge import TrajectoryJudge
from ..pareto import ParetoSelector
from ..reflector import PromptReflector
from ..state.data_store import DataStore
from ..state.run_store import RunStore

NO_SAMPLES_MESSAGE = "No samples found. Please add samples with feedback first."
PROMPT_PREVIEW_LENGTH = 100
SAMPLE_ID_PREVIEW_LENGTH = 8


class OptimizationPreconditionError(ValueError):
    """Optimization cannot start; retrying will not help."""


def sample_batch(samples: Sequence[Sample], batch_size: int, rng: random.Random) -> List[Sample]:
    """Draw a batch uniformly at random with replacement.

    A pool smaller than the batch, or plain chance, puts the same sample in a
    batch more than once; batch members are not independent draws of
    distinct samples.
    """
    return [rng.choice(samples) for _ in range(batch_size)]


class GEPAOptimizer:
    """Reflective optimizer: evaluate, reflect, re-evaluate, keep the Pareto collection."""

    def __init__(
        self,
        llm_client: BaseLLMClient,
        data_store: DataStore,
        run_store: RunStore,
        user_config: Optional[UserConfigLoader] = None,
        sink: Optional[EventSink] = None,
        meta_llm_client: Optional[BaseLLMClient] = None,
        rng: Optional[random.Random] = None,
        reflection_logger: Optional[ReflectionLogger] = None,
    ):
        """Initialize optimizer with completion clients, stores and an event sink.

        ``meta_llm_client`` serves the judge and the reflector; it defaults to
        ``llm_client``.
        """
        self.llm = llm_client
        self.meta_llm = meta_llm_client or llm_client
        self.data_store = data_store
        self.run_store = run_store
        self.user_config = user_config
        self.sink = sink or NullSink()
        self.rng = rng
        self.reflection_logger = reflection_logger or ReflectionLogger(run_store.data_dir / "runs")

        self.run: Optional[OptimizationRun] = None
        self.collection: List[PromptCandidate] = []
        self.best_score = 0.0
        self.samples_used: List[str] = []

    async def optimize(
        self,
        config: OptimizationConfig,
        resume_run_id: Optional[str] = None,
    ) -> Optional[OptimizationRun]:
        """Run the optimization loop; failures end in an ``error`` event, never an exception."""
        try:
            return await self._optimize(config, resume_run_id)
        except Exception as e:
            message = str(e) or type(e).__name__
            if isinstance(e, OptimizationPreconditionError):
                logger.error(f"Cannot optimize: {message}")
            else:
                logger.exception(f"Fatal optimization error: {message}")
            self._mark_error(message)
            await self.sink.emit(ProgressEvent(
                type="error",
                run_id=self.run.id if self.run else None,
                error=message,
            ))
            return self.run

    def abort(self, message: str) -> None:
        """Mark the in-flight run as failed after its caller stopped consuming it."""
        logger.warning(f"Optimization aborted: {message}")
        self._mark_error(message)

    async def _optimize(
        self,
        config: OptimizationConfig,
        resume_run_id: Optional[str],
    ) -> OptimizationRun:
        resumed: Optional[OptimizationRun] = None
        if resume_run_id:
            resumed = self.run_store.get(resume_run_id)
            if resumed is None:
                raise OptimizationPreconditionError(f"Run {resume_run_id} not found")
            # Persisted run settings win; the rollout target and execution limits
            # come from the new request.
            config = OptimizationConfig.from_run_config(
                resumed.config,
                num_rollouts=config.num_rollouts,
                **config.model_dump(exclude=set(RunConfig.model_fields)),
            )

        samples = self.data_store.load_samples(config.sample_group_id)
        logger.info(
            f"Loaded {len(samples)} samples from group {config.sample_group_id or 'default'}"
        )
        if not samples:
            raise OptimizationPreconditionError(NO_SAMPLES_MESSAGE)

        schema = self.data_store.load_schema() if config.use_structured_output else None
        if config.use_structured_output and schema is None:
            logger.warning("Structured output requested but no schema found; using free-form generation")

        rng = self.rng or random.Random(config.seed)
        selector = ParetoSelector(config.selected_metrics)
        evaluator = self._build_evaluator(config)
        reflector = PromptReflector(
            llm_client=self.meta_llm,
            template=config.reflection_template,
            timeout=config.reflection_timeout,
        )

        if resumed is not None and resumed.prompts:
            start_iteration = self._restore(resumed, config, selector)
            await self._emit_start(
                f"Resuming GEPA optimization at iteration {start_iteration} "
                f"of {config.num_rollouts} (Run ID: {self.run.id})",
                iteration=start_iteration - 1,
            )
        else:
            seed_prompt = resumed.final_prompt if resumed else self.data_store.load_prompt()
            self._create_run(config, seed_prompt, existing=resumed)
            await self._emit_start(
                f"Starting GEPA optimization with {len(samples)} samples, "
                f"{config.num_rollouts} iterations (Run ID: {self.run.id})"
            )
            await self._seed(config, samples, seed_prompt, schema, evaluator, rng)
            start_iteration = 1

        self.reflection_logger.set_run_id(self.run.id)

        for iteration in range(start_iteration, config.num_rollouts + 1):
            await self._run_iteration(
                iteration=iteration,
                config=config,
                samples=samples,
                schema=schema,
                evaluator=evaluator,
                reflector=reflector,
                selector=selector,
                rng=rng,
            )

        return await self._complete(config, selector)

    def _build_evaluator(self, config: OptimizationConfig) -> BatchEvaluator:
        generator = TrajectoryGenerator(
            llm_client=self.llm,
            user_config=self.user_config,
            sink=self.sink,
            timeout=config.generation_timeout,
        )
        judge = TrajectoryJudge(
            llm_client=self.meta_llm,
            rubric=self.data_store.load_rubric(),
            timeout=config.judge_timeout,
        )
        return BatchEvaluator(generator=generator, judge=judge, sink=self.sink)

    def _create_run(
        self,
        config: OptimizationConfig,
        seed_prompt: str,
        existing: Optional[OptimizationRun] = None,
    ) -> None:
        """Create and persist the run record so observers see it immediately."""
        self.run = OptimizationRun(
            id=existing.id if existing else self._new_run_id(),
            config=config.to_run_config(),
            final_prompt=seed_prompt,
            collection_size=1,
            status="running",
        )
        self.run_store.save(self.run)
        logger.info(f"Run {self.run.id} saved to {self.run_store.path}")

    def _restore(
        self,
        run: OptimizationRun,
        config: OptimizationConfig,
        selector: ParetoSelector,
    ) -> int:
        """Rebuild in-memory state from a persisted run; returns the next iteration."""
        collection = selector.get_pareto_frontier([
            PromptCandidate(
                id=entry.candidate_id or candidate_id_for(entry.iteration),
                prompt=entry.prompt,
                metrics=entry.metrics,
                overall_score=entry.score,
                parent_id=entry.parent_id,
                iteration=entry.iteration,
            )
            for entry in run.accepted_prompts
        ])

        self.run = run
        self.run.config = config.to_run_config()
        self.collection = collection
        self.best_score = run.best_score
        self.samples_used = list(run.samples_used)
        self.run.status = "running"
        self.run.error = None
        self.run_store.save(self.run)

        next_iteration = run.last_iteration + 1
        logger.info(
            f"Resuming GEPA optimization: {run.id} at iteration {next_iteration} "
            f"(collection={len(collection)}, best={self.best_score:.2f})"
        )
        return next_iteration

    async def _emit_start(self, message: str, iteration: int = 0) -> None:
        await self.sink.emit(ProgressEvent(
            type="start",
            iteration=iteration,
            run_id=self.run.id,
            message=message,
            collection_size=max(len(self.collection), 1),
            best_score=self.best_score,
        ))

    async def _seed(
        self,
        config: OptimizationConfig,
        samples: Sequence[Sample],
        seed_prompt: str,
        schema: Optional[Dict[str, Any]],
        evaluator: BatchEvaluator,
        rng: random.Random,
    ) -> None:
        """Evaluate the seed prompt and initialize the collection with it."""
        logger.info("Evaluating seed prompt...")
        batch = self._draw_batch(samples, config.batch_size, rng)
        initial_eval = await self._evaluate(evaluator, config, batch, seed_prompt, schema, iteration=0)

        seed = PromptCandidate(
            id=SEED_CANDIDATE_ID,
            prompt=seed_prompt,
            metrics=initial_eval.metrics,
            overall_score=initial_eval.overall_score,
            iteration=0,
        )
        self.collection = [seed]
        self.best_score = initial_eval.overall_score
        self.run.prompts.append(RunPrompt(
            iteration=0,
            prompt=seed_prompt,
            accepted=True,
            score=initial_eval.overall_score,
            metrics=initial_eval.metrics,
            candidate_id=seed.id,
        ))
        self._persist(self.collection[0])
        logger.info(f"Seed prompt score: {self.best_score:.2f}")

    async def _run_iteration(
        self,
        iteration: int,
        config: OptimizationConfig,
        samples: Sequence[Sample],
        schema: Optional[Dict[str, Any]],
        evaluator: BatchEvaluator,
        reflector: PromptReflector,
        selector: ParetoSelector,
        rng: random.Random,
    ) -> None:
        """Execute a single rollout: select, evaluate, reflect, re-evaluate, accept or reject."""
        self._log_iteration_header(iteration, config.num_rollouts)

        selected = selector.select(self.collection)
        logger.info(f"Selected candidate: {selected.id} (score: {selected.overall_score:.2f})")

        batch = self._draw_batch(samples, config.batch_size, rng)
        logger.info(
            f"Sampled batch of {len(batch)} "
            f"(IDs: {', '.join(s.id[:SAMPLE_ID_PREVIEW_LENGTH] for s in batch)})"
        )

        batch_eval = await self._evaluate(evaluator, config, batch, selected.prompt, schema, iteration)
        logger.info(f"Current prompt batch score: {batch_eval.overall_score:.2f}")

        improved_prompt = await reflector.improve(
            selected.prompt,
            batch_eval.suggestions,
            batch_eval.feedbacks,
            config.reflection_model,
        )

        # Both prompts are scored on the same batch.
        improved_eval = await self._evaluate(evaluator, config, batch, improved_prompt, schema, iteration)
        logger.info(f"Improved prompt batch score: {improved_eval.overall_score:.2f}")

        accepted, candidate = self._decide(
            iteration, selected, improved_prompt, batch_eval, improved_eval, selector
        )
        self.run.prompts.append(RunPrompt(
            iteration=iteration,
            prompt=improved_prompt,
            accepted=accepted,
            score=improved_eval.overall_score,
            metrics=improved_eval.metrics,
            candidate_id=candidate.id if candidate else None,
            parent_id=selected.id,
        ))
        self._persist(selector.select(self.collection))
        self.reflection_logger.append(
            iteration=iteration,
            parent=selected,
            improved_prompt=improved_prompt,
            batch_eval=batch_eval,
            improved_eval=improved_eval,
            accepted=accepted,
            sample_ids=[s.id for s in batch],
        )

        if accepted:
            await self.sink.emit(ProgressEvent(
                type="iteration",
                run_id=self.run.id,
                iteration=iteration,
                candidate_prompt=improved_prompt,
                batch_score=improved_eval.overall_score,
                accepted=True,
                collection_size=len(self.collection),
                best_score=self.best_score,
                metrics=improved_eval.metrics,
                message=(
                    f"Iteration {iteration}: Improved! Score "
                    f"{batch_eval.overall_score:.2f} → {improved_eval.overall_score:.2f}"
                ),
            ))
        else:
            await self.sink.emit(ProgressEvent(
                type="iteration",
                run_id=self.run.id,
                iteration=iteration,
                batch_score=batch_eval.overall_score,
                accepted=False,
                collection_size=len(self.collection),
                best_score=self.best_score,
                metrics=batch_eval.metrics,
                message=f"Iteration {iteration}: No improvement",
            ))

    def _decide(
        self,
        iteration: int,
        selected: PromptCandidate,
        improved_prompt: str,
        batch_eval: BatchEvaluation,
        improved_eval: BatchEvaluation,
        selector: ParetoSelector,
    ) -> Tuple[bool, Optional[PromptCandidate]]:
        """Accept only a strict improvement on the batch score; fold accepted rewrites into the collection."""
        if improved_eval.overall_score <= batch_eval.overall_score:
            logger.info(
                f"Rejected (no improvement: {batch_eval.overall_score:.2f} "
                f"vs {improved_eval.overall_score:.2f})"
            )
            return False, None

        candidate = PromptCandidate(
            id=candidate_id_for(iteration),
            prompt=improved_prompt,
            metrics=improved_eval.metrics,
            overall_score=improved_eval.overall_score,
            parent_id=selected.id,
            iteration=iteration,
        )
        self.collection = selector.update_frontier(self.collection, candidate)
        if improved_eval.overall_score > self.best_score:
            self.best_score = improved_eval.overall_score
        logger.success(
            f"Accepted! Collection size: {len(self.collection)}, "
            f"Best score: {self.best_score:.2f}"
        )
        return True, candidate

    async def _complete(self, config: OptimizationConfig, selector: ParetoSelector) -> OptimizationRun:
        best = selector.select(self.collection)
        self.run.status = "completed"
        self._persist(best)

        logger.success("Optimization complete")
        logger.info(f"Best score: {self.best_score:.2f}")
        logger.info(f"Collection size: {len(self.collection)}")
        logger.info(f"Best prompt: {best.prompt[:PROMPT_PREVIEW_LENGTH]!r}...")

        await self.sink.emit(ProgressEvent(
            type="complete",
            run_id=self.run.id,
            iteration=config.num_rollouts,
            final_prompt=best.prompt,
            best_score=self.best_score,
            collection_size=len(self.collection),
            collection=list(self.collection),
            accepted=True,
            message=f"Optimization complete! Final score: {self.best_score:.2f} (Run ID: {self.run.id})",
        ))
        return self.run

    async def _evaluate(
        self,
        evaluator: BatchEvaluator,
        config: OptimizationConfig,
        batch: Sequence[Sample],
        prompt: str,
        schema: Optional[Dict[str, Any]],
        iteration: int,
    ) -> BatchEvaluation:
        return await evaluator.evaluate_batch(
            samples=batch,
            prompt=prompt,
            generation_model=config.optimization_model,
            judge_model=config.reflection_model,
            selected_metrics=config.selected_metrics,
            structured_output=config.use_structured_output,
            schema=schema,
            iteration=iteration,
        )

    def _draw_batch(self, samples: Sequence[Sample], batch_size: int, rng: random.Random) -> List[Sample]:
        batch = sample_batch(samples, batch_size, rng)
        for sample in batch:
            if sample.id not in self.samples_used:
                self.samples_used.append(sample.id)
        return batch

    def _persist(self, best: PromptCandidate) -> None:
        """Write the full run state back to the run store."""
        self.run.best_score = self.best_score
        self.run.samples_used = list(self.samples_used)
        self.run.collection_size = len(self.collection)
        self.run.final_prompt = best.prompt
        self.run_store.save(self.run)

    def _mark_error(self, message: str) -> None:
        if self.run is None:
            return
        try:
            self.run_store.mark_error(self.run.id, message)
            self.run.status = "error"
            self.run.error = message
        except Exception as e:
            logger.warning(f"Could not mark run {self.run.id} as failed: {e}")

    def _log_iteration_header(self, iteration: int, total: int) -> None:
        logger.info(f"\n{'='*60}")
        logger.info(f"Iteration {iteration}/{total}")
        logger.info(f"{'='*60}")

    @staticmethod
    def _new_run_id() -> str:
        return f"run_{datetime.now().strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:6]}"


async def stream_optimization(
    build_optimizer: Callable[[EventSink], GEPAOptimizer],
    config: OptimizationConfig,
    resume_run_id: Optional[str] = None,
) -> AsyncIterator[ProgressEvent]:
    """Run an optimization in the background and yield its events in order.

    Closing the iterator early cancels the optimization and marks its run
    as failed.
    """
    sink = QueueSink()
    optimizer = build_optimizer(sink)
    task = asyncio.create_task(optimizer.optimize(config, resume_run_id=resume_run_id))
    task.add_done_callback(lambda _: sink.close())
    try:
        async for event in sink:
            yield event
    finally:
        if not task.done():
            task.cancel()
            optimizer.abort("Optimization stream closed before completion")
