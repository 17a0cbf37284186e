"""OpenAI-compatible completion client with retry logic and tool execution."""

import asyncio
import json
import re
import time
from typing import Any, Dict, List, Optional, Sequence

from loguru import logger
from openai import AsyncOpenAI, RateLimitError

from ..config import Settings
from .base import (
    BaseLLMClient,
    GenerationStep,
    TextGeneration,
    ToolCallRecord,
    ToolResultRecord,
)
from .tools import Tool

MAX_RETRIES = 5
INITIAL_RETRY_DELAY = 1.0
BACKOFF_MULTIPLIER = 2.0
MAX_TOOL_STEPS = 5
DEFAULT_SCHEMA_NAME = "response"


class LLMClient(BaseLLMClient):
    """OpenAI API client with automatic retry and exponential backoff."""

    def __init__(self, settings: Settings, max_tool_steps: int = MAX_TOOL_STEPS):
        """Initialize client with OpenAI credentials."""
        self.settings = settings
        client_kwargs: Dict[str, Any] = {"api_key": settings.api_key or "local"}
        if settings.base_url:
            client_kwargs["base_url"] = settings.base_url
        self.async_client = AsyncOpenAI(**client_kwargs)
        self.model = settings.model
        self.temperature = settings.temperature
        self.max_tool_steps = max_tool_steps

    async def generate_text(
        self,
        prompt: str,
        model: Optional[str] = None,
        system: Optional[str] = None,
        tools: Optional[Sequence[Tool]] = None,
        temperature: Optional[float] = None,
    ) -> TextGeneration:
        """Generate text, running the tool-calling loop until the model stops calling tools."""
        messages = self._build_messages(prompt, system)
        tool_index = {tool.name: tool for tool in tools or []}
        steps: List[GenerationStep] = []

        for _ in range(self.max_tool_steps):
            kwargs = self._request_kwargs(messages, model, temperature)
            if tool_index:
                kwargs["tools"] = [tool.to_openai() for tool in tool_index.values()]

            response = await self._create(kwargs)
            message = response.choices[0].message
            step = GenerationStep(text=message.content or "")
            steps.append(step)

            calls = message.tool_calls or []
            if not calls:
                break

            messages.append({
                "role": "assistant",
                "content": message.content,
                "tool_calls": [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {
                            "name": call.function.name,
                            "arguments": call.function.arguments,
                        },
                    }
                    for call in calls
                ],
            })
            for call in calls:
                args = self._parse_arguments(call.function.arguments)
                step.tool_calls.append(
                    ToolCallRecord(tool_call_id=call.id, tool_name=call.function.name, args=args)
                )
                outcome = await self._execute_tool(tool_index, call.id, call.function.name, args)
                step.tool_results.append(outcome)
                messages.append({
                    "role": "tool",
                    "tool_call_id": call.id,
                    "content": Tool.serialize_result(outcome.result),
                })
        else:
            logger.warning(f"Tool loop stopped after {self.max_tool_steps} steps")

        text = steps[-1].text if steps else ""
        return TextGeneration(text=text, steps=steps)

    async def generate_object(
        self,
        prompt: str,
        schema: Dict[str, Any],
        model: Optional[str] = None,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> Dict[str, Any]:
        """Generate a JSON object using the json_schema response format."""
        kwargs = self._request_kwargs(self._build_messages(prompt, system), model, temperature)
        kwargs["response_format"] = {
            "type": "json_schema",
            "json_schema": {
                "name": self._schema_name(schema),
                "schema": schema,
                "strict": False,
            },
        }
        response = await self._create(kwargs)
        content = response.choices[0].message.content or ""
        return self.validate_json_response(content)

    def validate_json_response(self, response: str) -> Dict[str, Any]:
        """Parse and validate JSON object response from LLM."""
        try:
            data = json.loads(response)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON response: {response[:200]}")
            raise ValueError(f"LLM returned invalid JSON: {e}")
        if not isinstance(data, dict):
            raise ValueError(f"LLM returned {type(data).__name__}, expected a JSON object")
        return data

    async def _create(self, kwargs: Dict[str, Any]) -> Any:
        """Send a chat completion request, retrying on rate limits."""
        retry_delay = INITIAL_RETRY_DELAY

        for attempt in range(MAX_RETRIES):
            try:
                start_time = time.time()
                response = await self.async_client.chat.completions.create(**kwargs)
                latency = (time.time() - start_time) * 1000
                tokens_used = response.usage.total_tokens if response.usage else 0
                logger.debug(
                    f"LLM response from {kwargs['model']}: "
                    f"{tokens_used} tokens, {latency:.0f}ms"
                )
                return response

            except RateLimitError:
                if attempt < MAX_RETRIES - 1:
                    logger.warning(
                        f"Rate limit hit, retrying in {retry_delay}s... "
                        f"(attempt {attempt + 1}/{MAX_RETRIES})"
                    )
                    await asyncio.sleep(retry_delay)
                    retry_delay *= BACKOFF_MULTIPLIER
                else:
                    logger.error(f"Rate limit exceeded after {MAX_RETRIES} attempts")
                    raise

            except Exception as e:
                logger.error(f"LLM request failed: {e}")
                raise

        raise RuntimeError("Unexpected end of retry loop")

    async def _execute_tool(
        self,
        tool_index: Dict[str, Tool],
        call_id: str,
        name: str,
        args: Any,
    ) -> ToolResultRecord:
        """Run a tool call; failures become error results instead of exceptions."""
        tool = tool_index.get(name)
        if tool is None:
            return ToolResultRecord(
                tool_call_id=call_id, tool_name=name,
                result=f"Tool {name} not found", is_error=True
            )
        try:
            kwargs = args if isinstance(args, dict) else {}
            result = await tool.acall(**kwargs)
            return ToolResultRecord(tool_call_id=call_id, tool_name=name, result=result)
        except Exception as e:
            logger.warning(f"Tool {name} failed: {e}")
            return ToolResultRecord(
                tool_call_id=call_id, tool_name=name, result=f"Error: {e}", is_error=True
            )

    def _request_kwargs(
        self,
        messages: List[Dict[str, Any]],
        model: Optional[str],
        temperature: Optional[float],
    ) -> Dict[str, Any]:
        return {
            "model": model or self.model,
            "messages": messages,
            "temperature": temperature if temperature is not None else self.temperature,
        }

    @staticmethod
    def _build_messages(prompt: str, system: Optional[str]) -> List[Dict[str, Any]]:
        messages: List[Dict[str, Any]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return messages

    @staticmethod
    def _parse_arguments(raw: Optional[str]) -> Any:
        if not raw:
            return {}
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return raw

    @staticmethod
    def _schema_name(schema: Dict[str, Any]) -> str:
        title = str(schema.get("title") or DEFAULT_SCHEMA_NAME)
        return re.sub(r"[^a-zA-Z0-9_-]", "_", title)[:64]
