"""Conversation models for samples and generated trajectories."""

from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import Field

from .base import CamelModel

Role = Literal["user", "assistant", "tool", "system"]
Rating = Literal["positive", "negative"]


class TextPart(CamelModel):
    """Plain text content."""

    type: Literal["text"] = "text"
    text: str = ""


class ToolCallPart(CamelModel):
    """Tool invocation issued by the assistant."""

    type: Literal["tool-call"] = "tool-call"
    tool_call_id: str
    tool_name: str
    args: Any = None


class ToolResultPart(CamelModel):
    """Result returned to the assistant for a tool invocation."""

    type: Literal["tool-result"] = "tool-result"
    tool_call_id: str
    tool_name: str
    result: Any = None
    is_error: bool = False


ContentPart = Annotated[
    Union[TextPart, ToolCallPart, ToolResultPart],
    Field(discriminator="type"),
]


class Message(CamelModel):
    """Single role-tagged message."""

    role: Role
    content: Union[str, List[ContentPart]]

    def text(self) -> str:
        """Return plain text of the message, ignoring tool parts."""
        if isinstance(self.content, str):
            return self.content
        return "".join(part.text for part in self.content if isinstance(part, TextPart))


class Feedback(CamelModel):
    """User rating attached to a stored sample."""

    rating: Rating
    comment: Optional[str] = None


class Trajectory(CamelModel):
    """Ordered conversation produced by one execution of a prompt."""

    id: str
    timestamp: Optional[str] = None
    messages: List[Message] = Field(default_factory=list)
    feedback: Optional[Feedback] = None

    def first_user_input(self) -> str:
        """Text of the first user message, or an empty string."""
        for message in self.messages:
            if message.role == "user":
                return message.text()
        return ""

    @property
    def is_positive(self) -> bool:
        return self.feedback is not None and self.feedback.rating == "positive"


# A sample is a stored, labeled trajectory.
Sample = Trajectory
