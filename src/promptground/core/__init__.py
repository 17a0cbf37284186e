"""Core GEPA optimization engine."""

from .engine.optimizer import (
    GEPAOptimizer,
    OptimizationPreconditionError,
    stream_optimization,
)
from .evaluator import BatchEvaluator
from .events import CallbackSink, EventSink, FanoutSink, ListSink, NullSink, QueueSink
from .generator import TrajectoryGenerator
from .judge import TrajectoryJudge
from .pareto import ParetoSelector
from .reflector import PromptReflector

__all__ = [
    "GEPAOptimizer",
    "OptimizationPreconditionError",
    "stream_optimization",
    "BatchEvaluator",
    "TrajectoryGenerator",
    "TrajectoryJudge",
    "PromptReflector",
    "ParetoSelector",
    "EventSink",
    "NullSink",
    "ListSink",
    "CallbackSink",
    "FanoutSink",
    "QueueSink",
]
