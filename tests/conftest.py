"""Pytest fixtures for promptground tests."""

import asyncio
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import pytest

from promptground.clients import BaseLLMClient, GenerationStep, TextGeneration, Tool
from promptground.core.state.data_store import DataStore
from promptground.core.state.run_store import RunStore
from promptground.models import AVAILABLE_METRICS, Feedback, Message, Sample

Reply = Union[str, TextGeneration, Callable[[str], Union[str, TextGeneration]]]


def judge_payload(score: float, feedback: str = "Looks fine", suggestion: str = "Be more specific") -> Dict[str, Any]:
    """Structured judge answer with every default metric set to ``score``."""
    payload: Dict[str, Any] = {name: score for name in AVAILABLE_METRICS}
    payload.update(
        overall_score=score,
        detailed_feedback=feedback,
        suggested_improvements=suggestion,
    )
    return payload


class FakeLLMClient(BaseLLMClient):
    """Scripted completion client.

    Calls with a system prompt are generations, ``generate_text`` calls
    without one are reflections, and ``generate_object`` calls without one
    are judgments.
    """

    def __init__(
        self,
        reply: Reply = "Generated reply",
        rewrite: Optional[Union[str, Callable[[str], str]]] = None,
        score: Union[float, Callable[[str], float]] = 0.7,
        structured: Optional[Dict[str, Any]] = None,
        fail: bool = False,
    ):
        self.reply = reply
        self.rewrite = rewrite
        self.score = score
        self.structured = structured or {"answer": "structured reply"}
        self.fail = fail
        self.generation_calls: List[Dict[str, Any]] = []
        self.reflection_calls: List[str] = []
        self.judge_calls: List[str] = []

    async def generate_text(
        self,
        prompt: str,
        model: Optional[str] = None,
        system: Optional[str] = None,
        tools: Optional[Sequence[Tool]] = None,
        temperature: Optional[float] = None,
    ) -> TextGeneration:
        await asyncio.sleep(0)
        if self.fail:
            raise RuntimeError("completion service unavailable")

        if system is None:
            self.reflection_calls.append(prompt)
            text = self.rewrite(prompt) if callable(self.rewrite) else (self.rewrite or "")
            return TextGeneration(text=text, steps=[GenerationStep(text=text)])

        self.generation_calls.append(
            {"prompt": prompt, "system": system, "model": model, "tools": list(tools or [])}
        )
        reply = self.reply(system) if callable(self.reply) else self.reply
        if isinstance(reply, TextGeneration):
            return reply
        return TextGeneration(text=reply, steps=[GenerationStep(text=reply)])

    async def generate_object(
        self,
        prompt: str,
        schema: Dict[str, Any],
        model: Optional[str] = None,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> Dict[str, Any]:
        await asyncio.sleep(0)
        if self.fail:
            raise RuntimeError("completion service unavailable")

        if system is not None:
            self.generation_calls.append(
                {"prompt": prompt, "system": system, "model": model, "schema": schema}
            )
            return dict(self.structured)

        self.judge_calls.append(prompt)
        score = self.score(prompt) if callable(self.score) else self.score
        return judge_payload(score)


def make_sample(
    sample_id: str,
    user: str = "How do I reset my password?",
    assistant: str = "Click 'Forgot password' on the login page.",
    rating: Optional[str] = "positive",
    comment: Optional[str] = "Clear and short.",
) -> Sample:
    return Sample(
        id=sample_id,
        messages=[
            Message(role="user", content=user),
            Message(role="assistant", content=assistant),
        ],
        feedback=Feedback(rating=rating, comment=comment) if rating else None,
    )


@pytest.fixture
def fake_llm() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Data directory holding a seed prompt and one positive sample."""
    path = tmp_path / "data"
    store = DataStore(path)
    store.save_prompt("You are a support assistant.")
    store.save_samples([make_sample("s1")])
    return path


@pytest.fixture
def data_store(data_dir: Path) -> DataStore:
    return DataStore(data_dir)


@pytest.fixture
def run_store(data_dir: Path) -> RunStore:
    return RunStore(data_dir)
