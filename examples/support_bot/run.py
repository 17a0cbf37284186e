"""Minimal promptground example: optimize a support-bot prompt from rated conversations."""

import asyncio
from pathlib import Path

from promptground import (
    DataStore,
    GEPAOptimizer,
    LLMClient,
    OptimizationConfig,
    RunStore,
    Settings,
)
from promptground.core.events import CallbackSink

DATA_DIR = Path(__file__).parent / "data"

settings = Settings(model="gpt-4o-mini")

config = OptimizationConfig.from_profile(
    "fast",
    selected_metrics=["tone", "accuracy", "guardrails"],
    seed=7,
)

optimizer = GEPAOptimizer(
    llm_client=LLMClient(settings),
    data_store=DataStore(DATA_DIR),
    run_store=RunStore(DATA_DIR),
    sink=CallbackSink(lambda event: print(event.message) if event.message else None),
)

run = asyncio.run(optimizer.optimize(config))

if run is not None and run.status == "completed":
    print(f"\nBest score:       {run.best_score:.2f}")
    print(f"Collection size:  {run.collection_size}")
    print(f"\nOptimized prompt:\n{run.final_prompt}")
