"""Model calls used by a generation run, wrapped in retry and fallback"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from design_chat.core.config import settings
from design_chat.core.llm_client import OpenAIClient, openai_client
from design_chat.core.prompts import HTML_GENERATION_SYSTEM_PROMPT, SPECIFICATION_SYSTEM_PROMPT
from design_chat.core.retry import with_fallback, with_retry

logger = logging.getLogger(__name__)


class GenerationService:
    """
    Vision analysis, specification and HTML generation.

    Every call is retried on retryable errors; HTML generation falls back to
    a second model when the primary one is exhausted.
    """

    def __init__(
        self,
        client: Optional[OpenAIClient] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    ):
        self.client = client or openai_client
        self._sleep = sleep

    async def analyze_image(self, image_base64: str, prompt: str) -> str:
        model = settings.analysis_model
        return await with_retry(
            lambda: self.client.analyze_image(image_base64, prompt, model),
            sleep=self._sleep,
            label=f"image analysis ({model})"
        )

    async def generate_specification(self, prompt: str, image_base64: Optional[str] = None) -> str:
        model = settings.specification_model
        return await with_retry(
            lambda: self.client.generate_text(
                prompt,
                model,
                system_prompt=SPECIFICATION_SYSTEM_PROMPT,
                image_base64=image_base64
            ),
            sleep=self._sleep,
            label=f"specification ({model})"
        )

    async def _generate_html_with(self, prompt: str, model: str) -> str:
        return await with_retry(
            lambda: self.client.generate_text(prompt, model, system_prompt=HTML_GENERATION_SYSTEM_PROMPT),
            sleep=self._sleep,
            label=f"HTML generation ({model})"
        )

    async def generate_html(self, prompt: str) -> str:
        primary_model = settings.html_primary_model
        fallback_model = settings.html_fallback_model
        return await with_fallback(
            lambda: self._generate_html_with(prompt, primary_model),
            lambda: self._generate_html_with(prompt, fallback_model),
            label=f"HTML generation ({primary_model} -> {fallback_model})"
        )
