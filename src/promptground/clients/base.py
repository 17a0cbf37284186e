"""Base completion client interface for promptground."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from .tools import Tool


class ToolCallRecord(BaseModel):
    """Tool call issued by the model during a generation step."""

    tool_call_id: str
    tool_name: str
    args: Any = None


class ToolResultRecord(BaseModel):
    """Outcome of executing one tool call."""

    tool_call_id: str
    tool_name: str
    result: Any = None
    is_error: bool = False


class GenerationStep(BaseModel):
    """One model round: optional text plus the tool calls it issued and their results."""

    text: str = ""
    tool_calls: List[ToolCallRecord] = Field(default_factory=list)
    tool_results: List[ToolResultRecord] = Field(default_factory=list)


class TextGeneration(BaseModel):
    """Result of a text generation, possibly spanning several tool-calling steps."""

    text: str = ""
    steps: List[GenerationStep] = Field(default_factory=list)


class BaseLLMClient(ABC):
    """Abstract completion capability used by the generator, judge and reflector."""

    @abstractmethod
    async def generate_text(
        self,
        prompt: str,
        model: Optional[str] = None,
        system: Optional[str] = None,
        tools: Optional[Sequence[Tool]] = None,
        temperature: Optional[float] = None,
    ) -> TextGeneration:
        """Generate free-form text, executing tool calls when tools are given."""
        pass

    @abstractmethod
    async def generate_object(
        self,
        prompt: str,
        schema: Dict[str, Any],
        model: Optional[str] = None,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> Dict[str, Any]:
        """Generate a JSON object constrained by a JSON schema."""
        pass
