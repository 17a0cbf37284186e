"""External API clients."""

from .base import (
    BaseLLMClient,
    GenerationStep,
    TextGeneration,
    ToolCallRecord,
    ToolResultRecord,
)
from .llm_client import LLMClient
from .tools import Tool

__all__ = [
    "BaseLLMClient",
    "GenerationStep",
    "LLMClient",
    "TextGeneration",
    "Tool",
    "ToolCallRecord",
    "ToolResultRecord",
]
