"""Trajectory generation for samples under a candidate prompt."""

import asyncio
import json
from typing import Any, Dict, List, Optional

from loguru import logger

from ..clients import BaseLLMClient, TextGeneration
from ..config import UserConfig, UserConfigLoader
from ..models import (
    Message,
    ProgressEvent,
    Sample,
    ToolCallPart,
    ToolResultPart,
    Trajectory,
)
from ..models.config import DEFAULT_GENERATION_TIMEOUT
from ..models.run import utc_timestamp
from .events import EventSink, NullSink

GENERATION_ERROR_TEXT = "[Error generating response]"


class TrajectoryGenerator:
    """Replays a sample's user input against a system prompt."""

    def __init__(
        self,
        llm_client: BaseLLMClient,
        user_config: Optional[UserConfigLoader] = None,
        sink: Optional[EventSink] = None,
        timeout: float = DEFAULT_GENERATION_TIMEOUT,
    ):
        """Initialize generator with completion client, tool config and event sink."""
        self.llm = llm_client
        self.user_config = user_config or UserConfigLoader.from_config(UserConfig())
        self.sink = sink or NullSink()
        self.timeout = timeout

    async def generate(
        self,
        sample: Sample,
        system_prompt: str,
        model: str,
        structured_output: bool = False,
        schema: Optional[Dict[str, Any]] = None,
        iteration: Optional[int] = None,
    ) -> Trajectory:
        """Generate a trajectory; capability failures yield an error trajectory."""
        user_input = sample.first_user_input()
        user_message = Message(role="user", content=user_input)

        try:
            if structured_output and schema:
                await self._progress(
                    sample, iteration, f"Generating structured output for sample {sample.id}..."
                )
                messages = await self._generate_structured(user_input, system_prompt, model, schema)
                content = messages[-1].text()
            else:
                await self._progress(sample, iteration, f"Generating response for sample {sample.id}...")
                generation = await asyncio.wait_for(
                    self.llm.generate_text(
                        prompt=user_input,
                        model=model,
                        system=system_prompt,
                        tools=self.user_config.tools(),
                    ),
                    timeout=self.timeout,
                )
                messages = self._messages_from_steps(generation)
                content = generation.text
            await self._progress(sample, iteration, content)
        except Exception as e:
            logger.error(f"Error generating trajectory for sample {sample.id}: {e!r}")
            messages = [Message(role="assistant", content=GENERATION_ERROR_TEXT)]

        return Trajectory(
            id=f"predicted-{sample.id}",
            timestamp=utc_timestamp(),
            messages=[user_message] + messages,
        )

    async def _generate_structured(
        self,
        user_input: str,
        system_prompt: str,
        model: str,
        schema: Dict[str, Any],
    ) -> List[Message]:
        result = await asyncio.wait_for(
            self.llm.generate_object(
                prompt=user_input,
                schema=schema,
                model=model,
                system=system_prompt,
            ),
            timeout=self.timeout,
        )
        output = json.dumps(result, indent=2, ensure_ascii=False)
        return [Message(role="assistant", content=output)]

    def _messages_from_steps(self, generation: TextGeneration) -> List[Message]:
        """Flatten generation steps into assistant/tool messages."""
        messages: List[Message] = []
        for step in generation.steps:
            if step.tool_calls:
                messages.append(Message(
                    role="assistant",
                    content=[
                        ToolCallPart(
                            tool_call_id=call.tool_call_id,
                            tool_name=call.tool_name,
                            args=call.args,
                        )
                        for call in step.tool_calls
                    ],
                ))
                for outcome in step.tool_results:
                    messages.append(Message(
                        role="tool",
                        content=[
                            ToolResultPart(
                                tool_call_id=outcome.tool_call_id,
                                tool_name=outcome.tool_name,
                                result=outcome.result,
                                is_error=outcome.is_error,
                            )
                        ],
                    ))
            if step.text:
                messages.append(Message(role="assistant", content=step.text))

        if not any(message.role == "assistant" for message in messages):
            messages.append(Message(role="assistant", content=generation.text))
        return messages

    async def _progress(self, sample: Sample, iteration: Optional[int], content: str) -> None:
        if iteration is None:
            return
        await self.sink.emit(ProgressEvent(
            type="sample_output",
            iteration=iteration,
            sample_id=sample.id,
            content=content,
        ))
