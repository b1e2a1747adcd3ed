"""Tests for the model-call wrapper: retries, error classification, costs and request building."""

import asyncio

import anthropic
import httpx
import pytest

from core.abort import AbortController
from core.exceptions import AbortError
from core.llm.convert import format_system_prompt_with_context, messages_to_params
from core.llm.client import ModelClient
from core.llm.costs import calculate_cost
from core.llm.errors import (
    ABORTED_ERROR_MESSAGE,
    CREDIT_BALANCE_TOO_LOW_ERROR_MESSAGE,
    INVALID_API_KEY_ERROR_MESSAGE,
    PROMPT_TOO_LONG_ERROR_MESSAGE,
    get_assistant_message_from_error,
)
from core.llm.provider import AnthropicProvider
from core.llm.retry import get_max_retries, get_retry_delay, should_retry, with_retry
from core.messages import create_assistant_message, create_user_message
from core.models import TextBlock, ThinkingBlock, Usage

from helpers import RecordingTool, connection_error, make_response, no_sleep, status_error


def text_of(message) -> str:
    return "".join(block.text for block in message.message.content if isinstance(block, TextBlock))


class TestShouldRetry:
    """Tests for retry classification."""

    @pytest.mark.parametrize("status", [408, 409, 429, 500, 502, 529])
    def test_retryable_statuses(self, status, mock_env_vars):
        """Timeouts, conflicts, rate limits and server errors retry."""
        assert should_retry(status_error(status))

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 413])
    def test_terminal_statuses(self, status, mock_env_vars):
        """Other client errors do not retry."""
        assert not should_retry(status_error(status))

    def test_connection_error(self, mock_env_vars):
        """Connection failures retry."""
        assert should_retry(connection_error())

    def test_header_overrides_status(self, mock_env_vars):
        """x-should-retry wins over the status code."""
        assert not should_retry(status_error(500, headers={"x-should-retry": "false"}))
        assert should_retry(status_error(400, headers={"x-should-retry": "true"}))

    def test_overloaded_only_in_swe_bench(self, mock_env_vars):
        """Overload errors retry only in benchmark mode."""
        error = status_error(529, body={"type": "error", "error": {"type": "overloaded_error"}})
        assert not should_retry(error)
        mock_env_vars.setenv("SWE_BENCH", "1")
        assert should_retry(error)

    def test_max_retries_by_mode(self, mock_env_vars):
        """Benchmark mode raises the retry ceiling."""
        assert get_max_retries() == 10
        mock_env_vars.setenv("SWE_BENCH", "true")
        assert get_max_retries() == 100


class TestRetryDelay:
    """Tests for backoff delays."""

    def test_exponential_and_capped(self):
        """Delays double from 500ms and never exceed 32s."""
        delays = [get_retry_delay(attempt) for attempt in range(1, 10)]
        assert delays[:4] == [500, 1000, 2000, 4000]
        assert delays == sorted(delays)
        assert max(delays) == 32000

    def test_retry_after(self):
        """A retry-after header in seconds is honored."""
        assert get_retry_delay(1, "7") == 7000

    def test_fractional_retry_after_floored(self):
        """Fractional seconds are truncated to whole seconds."""
        assert get_retry_delay(1, "1.5") == 1000
        assert get_retry_delay(3, "2.9") == 2000

    def test_invalid_retry_after_ignored(self):
        """A non-integer retry-after falls back to backoff."""
        assert get_retry_delay(2, "soon") == 1000


class TestWithRetry:
    """Tests for the retry loop."""

    async def test_retries_then_succeeds(self, mock_env_vars):
        """Server errors are retried until success, sleeping between attempts."""
        outcomes = [status_error(500), status_error(503), "ok"]
        sleeps = []
        attempts = []

        async def operation(attempt):
            attempts.append(attempt)
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        async def sleep(seconds):
            sleeps.append(seconds)

        assert await with_retry(operation, sleep=sleep) == "ok"
        assert attempts == [1, 2, 3]
        assert sleeps == [0.5, 1.0]

    async def test_retry_after_used(self, mock_env_vars):
        """The retry-after header sets the sleep."""
        outcomes = [status_error(429, headers={"retry-after": "3"}), "ok"]
        sleeps = []

        async def operation(attempt):
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        async def sleep(seconds):
            sleeps.append(seconds)

        await with_retry(operation, sleep=sleep)
        assert sleeps == [3.0]

    async def test_terminal_error_raised(self, mock_env_vars):
        """Non-retryable errors propagate immediately."""
        attempts = []

        async def operation(attempt):
            attempts.append(attempt)
            raise status_error(400, "bad")

        with pytest.raises(anthropic.APIStatusError):
            await with_retry(operation, sleep=lambda s: asyncio.sleep(0))
        assert attempts == [1]

    async def test_gives_up_after_max_retries(self, mock_env_vars):
        """The last error is raised once retries are exhausted."""
        attempts = []

        async def operation(attempt):
            attempts.append(attempt)
            raise status_error(500)

        async def sleep(seconds):
            return None

        with pytest.raises(anthropic.InternalServerError):
            await with_retry(operation, max_retries=2, sleep=sleep)
        assert attempts == [1, 2, 3]

    async def test_abort_cancels_backoff(self, mock_env_vars):
        """Aborting during a backoff sleep raises AbortError."""
        controller = AbortController()

        async def operation(attempt):
            raise status_error(500)

        async def sleep(seconds):
            controller.abort()
            await asyncio.sleep(10)

        with pytest.raises(AbortError):
            await asyncio.wait_for(with_retry(operation, signal=controller.signal, sleep=sleep), 2)


class TestErrorClassification:
    """Tests for converting failures into assistant messages."""

    def test_prompt_too_long(self):
        """Oversized prompts get a short explanation."""
        message = get_assistant_message_from_error(status_error(400, "prompt is too long: 210000 tokens"))
        assert message.is_api_error_message
        assert text_of(message) == PROMPT_TOO_LONG_ERROR_MESSAGE

    def test_credit_balance(self):
        """Billing failures are recognized."""
        message = get_assistant_message_from_error(status_error(400, "Your credit balance is too low to access the API"))
        assert text_of(message) == CREDIT_BALANCE_TOO_LOW_ERROR_MESSAGE

    def test_invalid_api_key(self):
        """Authentication failures point at login."""
        assert text_of(get_assistant_message_from_error(status_error(401, "unauthorized"))) == INVALID_API_KEY_ERROR_MESSAGE
        assert text_of(get_assistant_message_from_error(status_error(400, "invalid x-api-key"))) == INVALID_API_KEY_ERROR_MESSAGE

    def test_aborted(self):
        """Cancellation is reported as an aborted request."""
        assert text_of(get_assistant_message_from_error(AbortError())) == ABORTED_ERROR_MESSAGE

    def test_generic(self):
        """Anything else is prefixed with API Error."""
        assert text_of(get_assistant_message_from_error(RuntimeError("socket closed"))) == "API Error: socket closed"


class TestCosts:
    """Tests for per-call pricing."""

    def test_large_tier(self):
        """Large tier prices all four token kinds."""
        usage = Usage(
            input_tokens=1_000_000,
            output_tokens=1_000_000,
            cache_read_input_tokens=1_000_000,
            cache_creation_input_tokens=1_000_000,
        )
        assert calculate_cost(usage, "large") == pytest.approx(3 + 15 + 0.3 + 3.75)

    def test_small_tier(self):
        """Small tier is cheaper."""
        usage = Usage(input_tokens=1_000_000, output_tokens=1_000_000)
        assert calculate_cost(usage, "small") == pytest.approx(0.8 + 4)


class TestConvert:
    """Tests for request parameter building."""

    def test_context_tags(self):
        """Context entries become tags; empty context adds nothing."""
        assert format_system_prompt_with_context(["base"], {}) == ["base"]
        sections = format_system_prompt_with_context(["base"], {"readme": "hello"})
        assert sections[0] == "base"
        assert sections[-1] == '<context name="readme">hello</context>'

    def test_cache_breakpoints_on_last_two(self):
        """Only the last two messages carry cache_control."""
        messages = [create_user_message("a"), create_assistant_message("b"), create_user_message("c")]
        params = messages_to_params(messages, enable_caching=True)
        assert params[0]["content"] == "a"
        assert params[1]["content"][-1]["cache_control"] == {"type": "ephemeral"}
        assert params[2]["content"][-1]["cache_control"] == {"type": "ephemeral"}

    def test_no_cache_on_thinking(self):
        """A trailing thinking block never gets a breakpoint."""
        message = create_assistant_message("x")
        api_message = message.message.model_copy(
            update={"content": [ThinkingBlock(thinking="hmm", signature="s")]}
        )
        message = message.model_copy(update={"message": api_message})
        params = messages_to_params([message], enable_caching=True)
        assert "cache_control" not in params[0]["content"][-1]

    def test_caching_disabled(self):
        """Without caching no breakpoints are added."""
        params = messages_to_params([create_user_message("a")], enable_caching=False)
        assert params == [{"role": "user", "content": "a"}]


class TestModelClient:
    """Tests for the ModelClient wrapper."""

    async def test_query_builds_request(self, make_client):
        """Tools, identity, temperature and model are sent."""
        client = make_client(make_response("hi"))
        await client.query([create_user_message("hello")], ["sys"], tools=[RecordingTool()])
        params = client.provider.calls[0]
        assert params["model"] == client.config.large_model
        assert params["temperature"] == 1
        assert params["system"][0]["text"].startswith("You are Kestrel")
        assert params["tools"][0]["name"] == "Echo"
        assert "properties" in params["tools"][0]["input_schema"]
        assert "thinking" not in params

    async def test_thinking_budget(self, make_client):
        """A positive thinking budget enables extended thinking."""
        client = make_client(make_response("hi"))
        await client.query([create_user_message("hello")], [], max_thinking_tokens=4000)
        assert client.provider.calls[0]["thinking"] == {"type": "enabled", "budget_tokens": 4000}

    async def test_disable_prompt_caching(self, make_client, mock_env_vars):
        """DISABLE_PROMPT_CACHING removes every breakpoint."""
        mock_env_vars.setenv("DISABLE_PROMPT_CACHING", "1")
        client = make_client(make_response("hi"))
        await client.query([create_user_message("hello")], ["sys"])
        params = client.provider.calls[0]
        assert all("cache_control" not in block for block in params["system"])
        assert params["messages"][0]["content"] == "hello"

    async def test_cache_breakpoints_within_limit(self, make_client):
        """A system prompt with several context keys still sends at most four breakpoints."""
        client = make_client(make_response("hi"))
        system_prompt = format_system_prompt_with_context(
            ["base", "<env>"],
            {"directoryStructure": "- /work/", "gitStatus": "clean", "readme": "hello"},
        )
        messages = [create_user_message("a"), create_assistant_message("b"), create_user_message("c")]
        await client.query(messages, system_prompt)

        params = client.provider.calls[0]
        blocks = params["system"] + [
            block
            for message in params["messages"]
            if isinstance(message["content"], list)
            for block in message["content"]
        ]
        assert sum("cache_control" in block for block in blocks) <= 4
        assert len(params["system"]) == 2
        assert params["system"][0]["text"].startswith("You are Kestrel")
        assert params["system"][1]["text"].startswith("base\n<env>\n")
        assert '<context name="readme">hello</context>' in params["system"][1]["text"]

    async def test_retry_then_success_tracks_cost(self, make_client, cost_tracker):
        """Retries are transparent and the final call is charged."""
        client = make_client(status_error(500), connection_error(), make_response("hi"))
        message = await client.query([create_user_message("hello")], [])
        assert text_of(message) == "hi"
        assert len(client.provider.calls) == 3
        assert cost_tracker.total_cost == pytest.approx(message.cost_usd)

    async def test_empty_response_placeholder(self, make_client):
        """Blank responses become the no-content placeholder."""
        client = make_client(make_response("   "))
        message = await client.query([create_user_message("hello")], [])
        assert text_of(message) == "(no content)"

    async def test_never_raises(self, make_client):
        """Unexpected provider failures become API error messages."""
        client = make_client(ValueError("unexpected"))
        message = await client.query([create_user_message("hello")], [])
        assert message.is_api_error_message
        assert text_of(message) == "API Error: unexpected"

    async def test_verify_api_key(self, make_client):
        """Authentication failure means an invalid key."""
        assert await make_client(make_response("ok")).verify_api_key()
        assert not await make_client(status_error(401, "invalid")).verify_api_key()


def api_message(text: str) -> dict:
    return {
        "id": "msg_1",
        "type": "message",
        "role": "assistant",
        "model": "claude-test",
        "content": [{"type": "text", "text": text}],
        "stop_reason": "end_turn",
        "stop_sequence": None,
        "usage": {"input_tokens": 3, "output_tokens": 2},
    }


class TestAnthropicProvider:
    """Tests for the SDK-backed provider over a mock HTTP transport."""

    def provider(self, *responses: httpx.Response, requests: list | None = None) -> AnthropicProvider:
        queue = list(responses)

        def handler(request: httpx.Request) -> httpx.Response:
            if requests is not None:
                requests.append(request)
            return queue.pop(0)

        return AnthropicProvider(api_key="test-key", transport=httpx.MockTransport(handler))

    async def test_create_message(self):
        requests = []
        provider = self.provider(httpx.Response(200, json=api_message("hi")), requests=requests)
        response = await provider.create_message(
            {"model": "claude-test", "max_tokens": 10, "messages": [{"role": "user", "content": "hello"}]}
        )
        await provider.close()
        assert response.content == [TextBlock(text="hi")]
        assert response.usage.input_tokens == 3
        assert requests[0].headers["x-api-key"] == "test-key"
        assert requests[0].url.path == "/v1/messages"

    async def test_errors_not_retried_by_sdk(self):
        """The SDK's own retries are off; failures surface immediately."""
        requests = []
        provider = self.provider(
            httpx.Response(429, json={"type": "error", "error": {"type": "rate_limit_error", "message": "slow down"}}),
            requests=requests,
        )
        with pytest.raises(anthropic.RateLimitError):
            await provider.create_message(
                {"model": "claude-test", "max_tokens": 10, "messages": [{"role": "user", "content": "hello"}]}
            )
        await provider.close()
        assert len(requests) == 1

    async def test_client_retries_through_provider(self, cost_tracker, mock_env_vars):
        requests = []
        provider = self.provider(
            httpx.Response(500, json={"type": "error", "error": {"type": "api_error", "message": "oops"}}),
            httpx.Response(200, json=api_message("recovered")),
            requests=requests,
        )
        client = ModelClient(provider, cost_tracker, sleep=no_sleep)
        message = await client.query([create_user_message("hello")], [])
        await provider.close()
        assert text_of(message) == "recovered"
        assert len(requests) == 2
