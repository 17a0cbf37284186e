"""Prompt mutation via LLM reflection on judge feedback."""

import asyncio
from typing import Optional, Sequence

from loguru import logger

from ..clients import BaseLLMClient
from ..models.config import DEFAULT_REFLECTION_TEMPLATE, DEFAULT_REFLECTION_TIMEOUT

FEEDBACK_SEPARATOR = "\n\n---\n\n"
PREVIEW_LENGTH = 100


class PromptReflector:
    """Rewrites a prompt to address consolidated judge feedback."""

    def __init__(
        self,
        llm_client: BaseLLMClient,
        template: str = DEFAULT_REFLECTION_TEMPLATE,
        timeout: float = DEFAULT_REFLECTION_TIMEOUT,
        temperature: Optional[float] = None,
    ):
        """Initialize reflector with completion client and reflection template."""
        self.llm = llm_client
        self.template = template
        self.timeout = timeout
        self.temperature = temperature

    def build_prompt(
        self,
        current_prompt: str,
        suggestions: Sequence[str],
        feedbacks: Sequence[str],
    ) -> str:
        """Render the reflection request."""
        return self.template.format(
            current_prompt=current_prompt,
            suggestions=FEEDBACK_SEPARATOR.join(suggestions),
            feedbacks=FEEDBACK_SEPARATOR.join(feedbacks),
        )

    async def improve(
        self,
        current_prompt: str,
        suggestions: Sequence[str],
        feedbacks: Sequence[str],
        model: str,
    ) -> str:
        """Return the rewritten prompt, or the current prompt if reflection fails."""
        logger.info(f"Synthesizing {len(suggestions)} suggestions...")
        try:
            result = await asyncio.wait_for(
                self.llm.generate_text(
                    prompt=self.build_prompt(current_prompt, suggestions, feedbacks),
                    model=model,
                    temperature=self.temperature,
                ),
                timeout=self.timeout,
            )
        except Exception as e:
            logger.error(f"Error improving prompt: {e!r}")
            return current_prompt

        improved = result.text.strip()
        if not improved:
            logger.warning("Reflection returned an empty prompt, keeping current prompt")
            return current_prompt

        logger.debug(f"Improved prompt: {improved[:PREVIEW_LENGTH]!r}...")
        return improved
