"""
Tests for retry, fallback, pacing and provider error classification

These tests verify that:
1. Retryable failures are retried with exponential backoff
2. Non-retryable failures propagate after a single attempt
3. The fallback model only runs once the primary is exhausted
4. Consecutive calls to the same model family are paced
"""
import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock, call

import httpx
from openai import APIStatusError, APITimeoutError, AuthenticationError, RateLimitError

from design_chat.core.config import settings
from design_chat.core.generation_service import GenerationService
from design_chat.core.llm_client import OpenAIClient, classify_openai_error
from design_chat.core.pacing import ANALYSIS_MODEL, DESIGN_MODEL, ModelCallPacer
from design_chat.core.retry import classify_error, with_fallback, with_retry
from design_chat.models.errors import ErrorCode, ProviderError

OPENAI_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _status_error(cls, status):
    return cls(f"status {status}", response=httpx.Response(status, request=OPENAI_REQUEST), body=None)


def _retryable(message="overloaded"):
    return ProviderError(message, code=ErrorCode.PROVIDER_UNAVAILABLE, retryable=True)


class TestWithRetry:
    """Backoff and give-up behavior"""

    @pytest.mark.asyncio
    async def test_succeeds_after_retryable_failures(self):
        fn = AsyncMock(side_effect=[_retryable(), _retryable(), "ok"])
        sleep = AsyncMock()

        result = await with_retry(fn, max_attempts=3, base_delay=1.0, sleep=sleep)

        assert result == "ok"
        assert fn.await_count == 3
        assert sleep.await_args_list == [call(1.0), call(2.0)]

    @pytest.mark.asyncio
    async def test_non_retryable_fails_immediately(self):
        fn = AsyncMock(side_effect=ProviderError("bad request", retryable=False))
        sleep = AsyncMock()

        with pytest.raises(ProviderError) as exc_info:
            await with_retry(fn, max_attempts=3, base_delay=1.0, sleep=sleep)

        assert exc_info.value.message == "bad request"
        assert fn.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        fn = AsyncMock(side_effect=[_retryable("1"), _retryable("2"), _retryable("3")])
        sleep = AsyncMock()

        with pytest.raises(ProviderError) as exc_info:
            await with_retry(fn, max_attempts=3, base_delay=0.5, sleep=sleep)

        assert exc_info.value.message == "3"
        assert sleep.await_args_list == [call(0.5), call(1.0)]

    @pytest.mark.asyncio
    async def test_transport_errors_are_retried(self):
        fn = AsyncMock(side_effect=[httpx.ConnectTimeout("timed out"), "ok"])
        sleep = AsyncMock()

        assert await with_retry(fn, max_attempts=2, base_delay=1.0, sleep=sleep) == "ok"
        sleep.assert_awaited_once_with(1.0)


class TestClassification:
    def test_generic_errors_are_not_retryable(self):
        error = classify_error(ValueError("boom"))
        assert error.code == ErrorCode.PROVIDER_ERROR
        assert not error.retryable

    def test_timeouts_are_retryable(self):
        error = classify_error(httpx.ReadTimeout("slow"))
        assert error.code == ErrorCode.PROVIDER_UNAVAILABLE
        assert error.retryable

    def test_openai_rate_limit(self):
        error = classify_openai_error(_status_error(RateLimitError, 429))
        assert error.code == ErrorCode.PROVIDER_RATE_LIMIT
        assert error.retryable
        assert error.status_code == 429

    def test_openai_server_error_is_retryable(self):
        error = classify_openai_error(_status_error(APIStatusError, 503))
        assert error.code == ErrorCode.PROVIDER_UNAVAILABLE
        assert error.retryable

    def test_openai_client_error_is_not_retryable(self):
        error = classify_openai_error(_status_error(APIStatusError, 400))
        assert error.code == ErrorCode.PROVIDER_ERROR
        assert not error.retryable

    def test_openai_auth_error(self):
        error = classify_openai_error(_status_error(AuthenticationError, 401))
        assert error.code == ErrorCode.CONFIGURATION_ERROR
        assert not error.retryable

    def test_openai_timeout(self):
        error = classify_openai_error(APITimeoutError(request=OPENAI_REQUEST))
        assert error.retryable


class TestWithFallback:
    @pytest.mark.asyncio
    async def test_primary_success_skips_fallback(self):
        primary = AsyncMock(return_value="primary")
        fallback = AsyncMock(return_value="fallback")

        assert await with_fallback(primary, fallback) == "primary"
        fallback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fallback_after_primary_failure(self):
        primary = AsyncMock(side_effect=_retryable())
        fallback = AsyncMock(return_value="fallback")

        assert await with_fallback(primary, fallback) == "fallback"
        primary.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_both_failing_raises_fallback_error(self):
        primary = AsyncMock(side_effect=_retryable("primary down"))
        fallback = AsyncMock(side_effect=_retryable("fallback down"))

        with pytest.raises(ProviderError) as exc_info:
            await with_fallback(primary, fallback)
        assert exc_info.value.message == "fallback down"


class TestGenerationService:
    """Retry and fallback wired around the model client"""

    @pytest.mark.asyncio
    async def test_html_falls_back_after_primary_retries(self):
        client = Mock()

        async def generate_text(prompt, model, system_prompt=None, image_base64=None):
            if model == settings.html_primary_model:
                raise _retryable()
            return "<html></html>"

        client.generate_text = AsyncMock(side_effect=generate_text)
        sleep = AsyncMock()
        service = GenerationService(client=client, sleep=sleep)

        result = await service.generate_html("build it")

        assert result == "<html></html>"
        models = [c.args[1] for c in client.generate_text.await_args_list]
        assert models.count(settings.html_primary_model) == settings.retry_max_attempts
        assert models[-1] == settings.html_fallback_model
        assert sleep.await_count == settings.retry_max_attempts - 1

    @pytest.mark.asyncio
    async def test_specification_passes_image(self):
        client = Mock()
        client.generate_text = AsyncMock(return_value="{}")
        service = GenerationService(client=client, sleep=AsyncMock())

        await service.generate_specification("spec prompt", image_base64="abc")

        kwargs = client.generate_text.await_args.kwargs
        assert kwargs["image_base64"] == "abc"
        assert client.generate_text.await_args.args[1] == settings.specification_model


class TestOpenAIClient:
    @staticmethod
    def _completion(content):
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
            usage=SimpleNamespace(total_tokens=42)
        )

    @pytest.mark.asyncio
    async def test_returns_completion_text(self):
        sdk = Mock()
        sdk.chat.completions.create = AsyncMock(return_value=self._completion("hello"))
        client = OpenAIClient(client=sdk)

        assert await client.generate_text("hi", "gpt-4o", system_prompt="be brief") == "hello"
        messages = sdk.chat.completions.create.await_args.kwargs["messages"]
        assert messages[0] == {"role": "system", "content": "be brief"}

    @pytest.mark.asyncio
    async def test_image_is_sent_as_data_url(self):
        sdk = Mock()
        sdk.chat.completions.create = AsyncMock(return_value=self._completion("looks good"))
        client = OpenAIClient(client=sdk)

        await client.analyze_image("aGVsbG8=", "audit this", "gpt-4o")

        content = sdk.chat.completions.create.await_args.kwargs["messages"][-1]["content"]
        assert content[0] == {"type": "text", "text": "audit this"}
        assert content[1]["image_url"]["url"] == "data:image/png;base64,aGVsbG8="

    @pytest.mark.asyncio
    async def test_empty_completion_is_invalid_response(self):
        sdk = Mock()
        sdk.chat.completions.create = AsyncMock(return_value=self._completion(""))
        client = OpenAIClient(client=sdk)

        with pytest.raises(ProviderError) as exc_info:
            await client.generate_text("hi", "gpt-4o")
        assert exc_info.value.code == ErrorCode.INVALID_RESPONSE

    @pytest.mark.asyncio
    async def test_sdk_errors_are_classified(self):
        sdk = Mock()
        sdk.chat.completions.create = AsyncMock(side_effect=_status_error(RateLimitError, 429))
        client = OpenAIClient(client=sdk)

        with pytest.raises(ProviderError) as exc_info:
            await client.generate_text("hi", "gpt-4o")
        assert exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_missing_key_is_configuration_error(self):
        client = OpenAIClient(api_key="")

        with pytest.raises(ProviderError) as exc_info:
            await client.generate_text("hi", "gpt-4o")
        assert exc_info.value.code == ErrorCode.CONFIGURATION_ERROR
        assert not exc_info.value.retryable


class TestModelCallPacer:
    """Delay only between consecutive calls to the same model family"""

    @pytest.mark.asyncio
    async def test_first_call_is_immediate(self):
        sleep = AsyncMock()
        pacer = ModelCallPacer(delay_seconds=5.0, sleep=sleep)

        await pacer.wait_before(DESIGN_MODEL)
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_same_family_waits(self):
        sleep = AsyncMock()
        pacer = ModelCallPacer(delay_seconds=5.0, sleep=sleep)
        pacer.record(DESIGN_MODEL)

        await pacer.wait_before(DESIGN_MODEL)
        sleep.assert_awaited_once_with(5.0)

    @pytest.mark.asyncio
    async def test_switching_family_is_immediate(self):
        sleep = AsyncMock()
        pacer = ModelCallPacer(delay_seconds=5.0, sleep=sleep)
        pacer.record(ANALYSIS_MODEL)

        await pacer.wait_before(DESIGN_MODEL)
        sleep.assert_not_awaited()
        assert not pacer.needs_delay(DESIGN_MODEL)
