"""Callable tools exposed to the generation model."""

import asyncio
import inspect
import json
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

if TYPE_CHECKING:
    from ..config import ToolSpec


class Tool:
    """Named function with a JSON-schema parameter description."""

    def __init__(
        self,
        name: str,
        fn: Callable[..., Any],
        description: str = "",
        parameters: Optional[Dict[str, Any]] = None,
    ):
        """Initialize tool from a sync or async callable."""
        self.name = name
        self.fn = fn
        self.description = description
        self.parameters = parameters or {"type": "object", "properties": {}}

    @classmethod
    def from_spec(cls, spec: "ToolSpec") -> "Tool":
        """Build a tool from a user config entry, importing its handler."""
        return cls(
            name=spec.name,
            fn=spec.resolve_handler(),
            description=spec.description,
            parameters=spec.parameters,
        )

    def to_openai(self) -> Dict[str, Any]:
        """Function-tool definition for the chat completions API."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }

    async def acall(self, **kwargs: Any) -> Any:
        """Invoke the tool, running sync handlers in a worker thread."""
        if inspect.iscoroutinefunction(self.fn):
            return await self.fn(**kwargs)
        return await asyncio.to_thread(self.fn, **kwargs)

    @staticmethod
    def serialize_result(result: Any) -> str:
        """Render a tool result as message content."""
        if isinstance(result, str):
            return result
        try:
            return json.dumps(result, ensure_ascii=False, default=str)
        except (TypeError, ValueError):
            return str(result)

    def __repr__(self) -> str:
        return f"Tool({self.name!r})"
