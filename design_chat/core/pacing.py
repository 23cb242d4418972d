"""Pacing between consecutive calls to the same model family"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from design_chat.core.config import settings

logger = logging.getLogger(__name__)

# Model families used by a generation run
ANALYSIS_MODEL = "analysis"
DESIGN_MODEL = "design"


class ModelCallPacer:
    """
    Tracks the family of the previous call in one generation run.

    wait_before(family) sleeps the configured delay only when the previous
    call went to the same family; switching families is immediate.
    """

    def __init__(self, delay_seconds: Optional[float] = None, sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep):
        self.delay_seconds = settings.model_call_delay_seconds if delay_seconds is None else delay_seconds
        self._sleep = sleep
        self.previous_model: Optional[str] = None

    def needs_delay(self, model: str) -> bool:
        return self.previous_model is not None and self.previous_model == model and self.delay_seconds > 0

    async def wait_before(self, model: str) -> None:
        if self.needs_delay(model):
            logger.debug(f"[PACING] Waiting {self.delay_seconds}s before next {model} call")
            await self._sleep(self.delay_seconds)

    def record(self, model: str) -> None:
        self.previous_model = model
