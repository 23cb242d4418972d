"""OpenAI SDK wrapper"""

import logging
from typing import Any, Dict, List, Optional

from openai import (
    AsyncOpenAI,
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AuthenticationError,
    RateLimitError,
)

from design_chat.core.config import settings
from design_chat.models.errors import ErrorCode, ProviderError

logger = logging.getLogger(__name__)


def classify_openai_error(error: Exception) -> ProviderError:
    """
    Map an OpenAI SDK exception onto ProviderError.

    Rate limits, timeouts, connection failures and 5xx responses are
    retryable; authentication and other 4xx errors are not.
    """
    if isinstance(error, ProviderError):
        return error
    if isinstance(error, RateLimitError):
        return ProviderError(
            f"Rate limit exceeded: {error}",
            code=ErrorCode.PROVIDER_RATE_LIMIT,
            retryable=True,
            status_code=429
        )
    if isinstance(error, (APITimeoutError, APIConnectionError)):
        return ProviderError(f"Connection to model provider failed: {error}", code=ErrorCode.PROVIDER_UNAVAILABLE, retryable=True)
    if isinstance(error, AuthenticationError):
        return ProviderError(
            "Authentication with the model provider failed. Check OPENAI_API_KEY.",
            code=ErrorCode.CONFIGURATION_ERROR,
            retryable=False,
            status_code=401
        )
    if isinstance(error, APIStatusError):
        status = error.status_code
        overloaded = status >= 500 or status == 429
        return ProviderError(
            f"Model provider returned {status}: {error}",
            code=ErrorCode.PROVIDER_UNAVAILABLE if overloaded else ErrorCode.PROVIDER_ERROR,
            retryable=overloaded,
            status_code=status
        )
    return ProviderError(f"Model provider call failed: {error}", code=ErrorCode.PROVIDER_ERROR, retryable=False)


class OpenAIClient:
    """
    Wrapper for the async OpenAI client.

    Every model call in a generation run goes through here so that errors
    reach the retry layer already classified.
    """

    def __init__(self, api_key: Optional[str] = None, client: Optional[AsyncOpenAI] = None):
        api_key = settings.openai_api_key if api_key is None else api_key
        if client is not None:
            self.client = client
        elif api_key:
            self.client = AsyncOpenAI(api_key=api_key, timeout=settings.openai_timeout_seconds)
        else:
            logger.warning("OPENAI_API_KEY not set in .env file")
            self.client = None

    def _build_messages(
        self,
        prompt: str,
        system_prompt: Optional[str],
        image_base64: Optional[str]
    ) -> List[Dict[str, Any]]:
        messages: List[Dict[str, Any]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})

        if image_base64:
            messages.append({
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {"type": "image_url", "image_url": {"url": f"data:image/png;base64,{image_base64}"}},
                ]
            })
        else:
            messages.append({"role": "user", "content": prompt})
        return messages

    async def generate_text(
        self,
        prompt: str,
        model: str,
        system_prompt: Optional[str] = None,
        image_base64: Optional[str] = None,
        temperature: float = 0.7
    ) -> str:
        """
        Run one chat completion and return its text.

        Raises:
            ProviderError: classified failure, including a missing API key
                and an empty completion (both non-retryable)
        """
        if self.client is None:
            raise ProviderError(
                "OpenAI API key not configured. Please set OPENAI_API_KEY in .env file.",
                code=ErrorCode.CONFIGURATION_ERROR,
                retryable=False
            )

        messages = self._build_messages(prompt, system_prompt, image_base64)
        logger.info(f"[OpenAI] Calling {model} | image={'yes' if image_base64 else 'no'}")

        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=temperature
            )
        except Exception as e:
            error = classify_openai_error(e)
            logger.warning(f"[OpenAI] {model} call failed ({error.code.value}, retryable={error.retryable})")
            raise error from e

        if not response.choices or not response.choices[0].message.content:
            raise ProviderError(f"Empty response from {model}", code=ErrorCode.INVALID_RESPONSE, retryable=False)

        text = response.choices[0].message.content
        usage = getattr(response, "usage", None)
        tokens = usage.total_tokens if usage is not None else "?"
        logger.info(f"[OpenAI] Response received ({tokens} tokens, {len(text)} chars)")
        return text

    async def analyze_image(self, image_base64: str, prompt: str, model: str) -> str:
        """Vision call: prompt plus a base64 PNG"""
        return await self.generate_text(prompt, model, image_base64=image_base64)


# Global client instance
openai_client = OpenAIClient()
