"""Tests for the Anthropic client wrapper."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock, patch

import anthropic
import httpx
import pytest
from anthropic.types import TextBlock as AnthropicTextBlock
from anthropic.types import ThinkingBlock as AnthropicThinkingBlock
from anthropic.types import ToolUseBlock as AnthropicToolUseBlock

from gourmand.clients.anthropic import AnthropicClient, AnthropicConfig, AnthropicRateLimiter
from gourmand.exceptions import ModelServiceError, ProtocolViolationError
from gourmand.models.llm import LLMMessage, OtherBlock, StopReason, TextBlock, ToolUseBlock

MESSAGES_URL = "https://api.anthropic.com/v1/messages"


def api_response(*content, stop_reason: str | None = "end_turn", role: str = "assistant"):
    return SimpleNamespace(
        role=role,
        content=list(content),
        stop_reason=stop_reason,
        usage=SimpleNamespace(input_tokens=12, output_tokens=7),
        model="claude-test",
    )


def status_error(status_code: int, headers: dict[str, str] | None = None) -> anthropic.APIStatusError:
    request = httpx.Request("POST", MESSAGES_URL)
    response = httpx.Response(status_code, headers=headers or {}, request=request)
    return anthropic.APIStatusError(f"status {status_code}", response=response, body=None)


@pytest.fixture
def anthropic_client():
    """Create AnthropicClient with a mocked SDK client."""
    config = AnthropicConfig(model="claude-test", max_retries=3, retry_delay=0)
    with (
        patch.dict("os.environ", {"ANTHROPIC_API_KEY": "test-key"}),
        patch("gourmand.clients.anthropic.tiktoken.encoding_for_model", side_effect=KeyError("offline")),
    ):
        client = AnthropicClient(config=config)
    client.client = Mock()
    return client


@pytest.fixture
def hello():
    return [LLMMessage(role="user", content=[TextBlock(text="hello")])]


class TestAnthropicClientSetup:
    """Tests for client construction."""

    def test_missing_api_key_raises(self):
        """Test that the API key is required."""
        with patch.dict("os.environ", {}, clear=True):
            with pytest.raises(ValueError, match="ANTHROPIC_API_KEY"):
                AnthropicClient()

    def test_tokenizer_failure_falls_back_to_estimate(self, anthropic_client, hello):
        """Test the character based estimate when no tokenizer is available."""
        assert anthropic_client.tokenizer is None
        assert anthropic_client._estimate_tokens(hello, "a" * 395) == 100


class TestCreateMessage:
    """Tests for sending a conversation."""

    @pytest.mark.asyncio
    async def test_converts_reply_blocks(self, anthropic_client, hello):
        """Test that text, tool use and other blocks are converted."""
        anthropic_client.client.messages.create.return_value = api_response(
            AnthropicTextBlock(type="text", text="Saving it now."),
            AnthropicToolUseBlock(type="tool_use", id="toolu_01", name="transmit_recipe", input={"file_stem": "x"}),
            AnthropicThinkingBlock(type="thinking", thinking="hmm", signature="sig"),
            stop_reason="tool_use",
        )

        response = await anthropic_client.create_message(hello, "You recommend recipes.")

        assert response.stop_reason is StopReason.TOOL_USE
        assert response.usage.total_tokens == 19
        text, tool_use, other = response.message.content
        assert text == TextBlock(text="Saving it now.")
        assert tool_use == ToolUseBlock(id="toolu_01", name="transmit_recipe", input={"file_stem": "x"})
        assert isinstance(other, OtherBlock)
        assert other.kind == "thinking"
        assert other.model_dump() == {"type": "thinking", "thinking": "hmm", "signature": "sig"}

    @pytest.mark.asyncio
    async def test_request_parameters(self, anthropic_client, hello):
        """Test the request sent to the SDK."""
        anthropic_client.client.messages.create.return_value = api_response(AnthropicTextBlock(type="text", text="Hi"))
        tools = [{"name": "transmit_recipe", "description": "d", "input_schema": {"type": "object"}}]

        await anthropic_client.create_message(hello, "System", tools=tools, model="claude-other")

        params = anthropic_client.client.messages.create.call_args.kwargs
        assert params["model"] == "claude-other"
        assert params["system"] == [{"type": "text", "text": "System"}]
        assert params["messages"] == [{"role": "user", "content": [{"type": "text", "text": "hello"}]}]
        assert params["tools"] == tools

    @pytest.mark.asyncio
    async def test_tools_omitted_when_empty(self, anthropic_client, hello):
        """Test that no tools key is sent without tools."""
        anthropic_client.client.messages.create.return_value = api_response(AnthropicTextBlock(type="text", text="Hi"))

        await anthropic_client.create_message(hello, "System", tools=[])

        assert "tools" not in anthropic_client.client.messages.create.call_args.kwargs

    @pytest.mark.asyncio
    async def test_unknown_stop_reason(self, anthropic_client, hello):
        """Test that unrecognized stop reasons map to unknown."""
        anthropic_client.client.messages.create.return_value = api_response(
            AnthropicTextBlock(type="text", text="Hi"), stop_reason="something_new"
        )

        response = await anthropic_client.create_message(hello, "System")

        assert response.stop_reason is StopReason.UNKNOWN

    @pytest.mark.asyncio
    async def test_non_assistant_reply_is_protocol_violation(self, anthropic_client, hello):
        """Test that a reply without an assistant message is rejected."""
        anthropic_client.client.messages.create.return_value = api_response(role="user")

        with pytest.raises(ProtocolViolationError):
            await anthropic_client.create_message(hello, "System")


class TestRetries:
    """Tests for bounded retries."""

    @pytest.mark.asyncio
    async def test_rate_limit_is_retried(self, anthropic_client, hello):
        """Test that a 429 is retried after the advertised delay."""
        anthropic_client.client.messages.create.side_effect = [
            status_error(429, {"retry-after": "0"}),
            api_response(AnthropicTextBlock(type="text", text="Hi")),
        ]

        response = await anthropic_client.create_message(hello, "System")

        assert response.message.text() == "Hi"
        assert anthropic_client.client.messages.create.call_count == 2

    @pytest.mark.asyncio
    async def test_server_errors_exhaust_retries(self, anthropic_client, hello):
        """Test that persistent 5xx errors become a ModelServiceError."""
        anthropic_client.client.messages.create.side_effect = status_error(500)

        with pytest.raises(ModelServiceError, match="status 500"):
            await anthropic_client.create_message(hello, "System")

        assert anthropic_client.client.messages.create.call_count == 3

    @pytest.mark.asyncio
    async def test_client_errors_are_not_retried(self, anthropic_client, hello):
        """Test that a 400 fails immediately."""
        anthropic_client.client.messages.create.side_effect = status_error(400)

        with pytest.raises(ModelServiceError, match="status 400"):
            await anthropic_client.create_message(hello, "System")

        assert anthropic_client.client.messages.create.call_count == 1

    @pytest.mark.asyncio
    async def test_connection_errors_are_retried(self, anthropic_client, hello):
        """Test that connection failures are retried, then reported."""
        connection_error = anthropic.APIConnectionError(request=httpx.Request("POST", MESSAGES_URL))
        anthropic_client.client.messages.create.side_effect = connection_error

        with pytest.raises(ModelServiceError, match="Unable to reach Anthropic"):
            await anthropic_client.create_message(hello, "System")

        assert anthropic_client.client.messages.create.call_count == 3


class TestListModels:
    """Tests for listing models."""

    def test_list_models(self, anthropic_client):
        """Test that model ids are returned in order."""
        anthropic_client.client.models.list.return_value = [
            SimpleNamespace(id="claude-sonnet-4-5"),
            SimpleNamespace(id="claude-haiku-4-5"),
        ]

        assert anthropic_client.list_models() == ["claude-sonnet-4-5", "claude-haiku-4-5"]

    def test_list_models_failure(self, anthropic_client):
        """Test that listing failures are typed errors."""
        anthropic_client.client.models.list.side_effect = status_error(401)

        with pytest.raises(ModelServiceError, match="Unable to list models"):
            anthropic_client.list_models()


class TestAnthropicRateLimiter:
    """Tests for the client-side rate limiter."""

    @pytest.fixture
    def rate_limiter(self):
        return AnthropicRateLimiter(requests_per_minute=50, tokens_per_minute=1000)

    def token_window(self, rate_limiter):
        return rate_limiter.limiter.get_window_stats(rate_limiter.token_limit, "anthropic_tokens")

    @pytest.mark.asyncio
    async def test_within_budget_does_not_wait(self, rate_limiter):
        """Test that a request under both limits is recorded without waiting."""
        with patch("gourmand.clients.anthropic.asyncio.sleep", new=AsyncMock()) as sleep:
            await rate_limiter.check_rate_limit(300)

        sleep.assert_not_awaited()
        assert self.token_window(rate_limiter).remaining == 700

    @pytest.mark.asyncio
    async def test_oversized_history_is_capped_at_budget(self, rate_limiter):
        """Test that an estimate above the per-minute budget still goes through."""
        with patch("gourmand.clients.anthropic.asyncio.sleep", new=AsyncMock()) as sleep:
            await rate_limiter.check_rate_limit(45_000)

        sleep.assert_not_awaited()
        assert self.token_window(rate_limiter).remaining == 0

    @pytest.mark.asyncio
    async def test_waits_then_records_request(self, rate_limiter):
        """Test that a throttled request waits for the window and is then counted."""
        await rate_limiter.check_rate_limit(800)

        def drain_window(delay):
            assert 0 <= delay <= 60
            rate_limiter.storage.reset()

        with patch("gourmand.clients.anthropic.asyncio.sleep", new=AsyncMock(side_effect=drain_window)) as sleep:
            await rate_limiter.check_rate_limit(600)

        sleep.assert_awaited_once()
        assert self.token_window(rate_limiter).remaining == 400
