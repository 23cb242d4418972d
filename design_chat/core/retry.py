"""Retry and fallback wrappers for provider calls"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx

from design_chat.core.config import settings
from design_chat.models.errors import ApplicationError, ErrorCode, ProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def classify_error(error: Exception) -> ProviderError:
    """Turn any exception into a ProviderError with a retryable flag"""
    if isinstance(error, ProviderError):
        return error
    if isinstance(error, ApplicationError):
        return ProviderError(error.message, code=error.code, retryable=error.retryable)
    if isinstance(error, (asyncio.TimeoutError, httpx.TimeoutException, httpx.TransportError)):
        return ProviderError(
            f"Request failed: {error}",
            code=ErrorCode.PROVIDER_UNAVAILABLE,
            retryable=True
        )
    return ProviderError(str(error) or type(error).__name__, code=ErrorCode.PROVIDER_ERROR, retryable=False)


def _reraise(error: ProviderError, original: Exception):
    if error is original:
        raise error
    raise error from original


async def with_retry(
    call: Callable[[], Awaitable[T]],
    max_attempts: Optional[int] = None,
    base_delay: Optional[float] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    label: str = "provider call"
) -> T:
    """
    Run call, retrying retryable failures with exponential backoff.

    Waits base_delay, 2*base_delay, ... between attempts. Non-retryable
    errors and the last failed attempt propagate as ProviderError.
    """
    max_attempts = max_attempts or settings.retry_max_attempts
    base_delay = settings.retry_base_delay_seconds if base_delay is None else base_delay

    for attempt in range(1, max_attempts + 1):
        try:
            return await call()
        except Exception as e:
            error = classify_error(e)

            if not error.retryable:
                logger.warning(f"[RETRY] {label} failed with non-retryable error: {error.message}")
                _reraise(error, e)

            if attempt == max_attempts:
                logger.error(f"[RETRY] {label} failed after {attempt} attempts: {error.message}")
                _reraise(error, e)

            delay = base_delay * (2 ** (attempt - 1))
            logger.info(
                f"[RETRY] {label} attempt {attempt}/{max_attempts} failed ({error.code.value}), "
                f"retrying in {delay:.1f}s"
            )
            await sleep(delay)

    raise ProviderError(f"{label} was never attempted", retryable=False)


async def with_fallback(
    primary: Callable[[], Awaitable[T]],
    fallback: Callable[[], Awaitable[T]],
    label: str = "provider call"
) -> T:
    """
    Run primary; only if it fails, run fallback.

    When both fail the fallback's error propagates and the primary's is logged.
    """
    try:
        return await primary()
    except Exception as primary_error:
        logger.warning(f"[FALLBACK] {label} primary failed, switching to fallback: {primary_error}")

    try:
        return await fallback()
    except Exception as fallback_error:
        error = classify_error(fallback_error)
        logger.error(f"[FALLBACK] {label} fallback failed as well: {error.message}")
        _reraise(error, fallback_error)
