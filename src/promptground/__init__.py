"""promptground - reflective Pareto prompt optimization from rated conversations."""

__version__ = "0.1.0"

from .clients import BaseLLMClient, LLMClient
from .config import Settings, UserConfigLoader, get_settings
from .core import (
    GEPAOptimizer,
    OptimizationPreconditionError,
    ParetoSelector,
    stream_optimization,
)
from .core.state.data_store import DataStore
from .core.state.run_store import RunStore
from .models import (
    OptimizationConfig,
    OptimizationRun,
    ProgressEvent,
    PromptCandidate,
    Sample,
    Trajectory,
)

__all__ = [
    "GEPAOptimizer",
    "OptimizationPreconditionError",
    "ParetoSelector",
    "stream_optimization",
    "BaseLLMClient",
    "LLMClient",
    "Settings",
    "UserConfigLoader",
    "get_settings",
    "DataStore",
    "RunStore",
    "OptimizationConfig",
    "OptimizationRun",
    "ProgressEvent",
    "PromptCandidate",
    "Sample",
    "Trajectory",
]
