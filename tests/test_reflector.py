"""Tests for prompt reflection."""

import asyncio

import pytest
from conftest import FakeLLMClient

from promptground.core.reflector import FEEDBACK_SEPARATOR, PromptReflector


class TestPromptReflector:
    """Tests for PromptReflector."""

    @pytest.mark.asyncio
    async def test_returns_rewritten_prompt(self) -> None:
        llm = FakeLLMClient(rewrite="  Better prompt.  \n")
        reflector = PromptReflector(llm)

        improved = await reflector.improve("Old prompt.", ["s1", "s2"], ["f1", "f2"], "reflect-model")

        assert improved == "Better prompt."
        request = llm.reflection_calls[0]
        assert "Old prompt." in request
        assert f"s1{FEEDBACK_SEPARATOR}s2" in request
        assert f"f1{FEEDBACK_SEPARATOR}f2" in request

    @pytest.mark.asyncio
    async def test_failure_returns_current_prompt(self) -> None:
        reflector = PromptReflector(FakeLLMClient(fail=True))
        assert await reflector.improve("Old prompt.", [], [], "m") == "Old prompt."

    @pytest.mark.asyncio
    async def test_empty_answer_returns_current_prompt(self) -> None:
        reflector = PromptReflector(FakeLLMClient(rewrite="   "))
        assert await reflector.improve("Old prompt.", ["s"], ["f"], "m") == "Old prompt."

    @pytest.mark.asyncio
    async def test_timeout_returns_current_prompt(self) -> None:
        class SlowClient(FakeLLMClient):
            async def generate_text(self, *args, **kwargs):
                await asyncio.sleep(1)
                return await super().generate_text(*args, **kwargs)

        reflector = PromptReflector(SlowClient(rewrite="new"), timeout=0.01)
        assert await reflector.improve("Old prompt.", [], [], "m") == "Old prompt."

    def test_custom_template(self) -> None:
        reflector = PromptReflector(
            FakeLLMClient(),
            template="P={current_prompt}|S={suggestions}|F={feedbacks}",
        )
        assert reflector.build_prompt("x", ["a"], ["b", "c"]) == f"P=x|S=a|F=b{FEEDBACK_SEPARATOR}c"
