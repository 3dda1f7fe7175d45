"""Anthropic API client with rate limiting and error handling."""

import asyncio
import os
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import tiktoken
from anthropic import Anthropic, APIConnectionError, APIError, APIStatusError
from anthropic.types import ContentBlock as AnthropicContentBlock
from anthropic.types import Message
from limits import RateLimitItem, parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter

from gourmand.exceptions import ModelServiceError, ProtocolViolationError
from gourmand.models.llm import (
    ContentBlock,
    LLMMessage,
    LLMResponse,
    LLMToolDefinition,
    LLMUsage,
    OtherBlock,
    StopReason,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)
from gourmand.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_MODEL = "claude-sonnet-4-5"


@dataclass
class AnthropicConfig:
    """Configuration for Anthropic API client."""

    model: str = DEFAULT_MODEL
    max_tokens: int = 4096
    temperature: float = 0.7
    max_retries: int = 3
    retry_delay: float = 1.0
    max_retry_after: float = 120.0

    requests_per_minute: int = 50
    tokens_per_minute: int = 40_000


class AnthropicRateLimiter:
    """Client-side moving window limiter for requests and estimated tokens."""

    def __init__(self, requests_per_minute: int = 50, tokens_per_minute: int = 40_000):
        """Initialize rate limiter.

        Args:
            requests_per_minute: Maximum requests per minute
            tokens_per_minute: Maximum tokens per minute
        """
        self.storage = MemoryStorage()
        self.limiter = MovingWindowRateLimiter(self.storage)

        self.request_limit = parse(f"{requests_per_minute}/minute")
        self.token_limit = parse(f"{tokens_per_minute}/minute")

    async def check_rate_limit(self, estimated_tokens: int, identifier: str = "anthropic") -> None:
        """Wait until the request fits within the configured limits, then record it.

        The token cost is capped at the per-minute budget so a history larger than the
        budget still goes through once the window has drained.
        """
        logger.debug(f"Checking rate limit for {estimated_tokens} tokens, identifier: {identifier}")

        await self._acquire(self.request_limit, identifier, 1, "Request")

        token_cost = min(estimated_tokens, self.token_limit.amount)
        await self._acquire(self.token_limit, f"{identifier}_tokens", token_cost, "Token")

    async def _acquire(self, limit: RateLimitItem, identifier: str, cost: int, label: str) -> None:
        while not self.limiter.hit(limit, identifier, cost=cost):
            window_stats = self.limiter.get_window_stats(limit, identifier)
            wait_time = max(0.0, window_stats.reset_time - time.time())
            logger.warning(f"{label} rate limit exceeded, waiting {wait_time:.2f}s")
            await asyncio.sleep(wait_time)


class AnthropicClient:
    """Low-level Anthropic API client with rate limiting and error handling."""

    tokenizer: tiktoken.Encoding | None = None
    api_key: str
    client: Anthropic
    config: AnthropicConfig
    rate_limiter: AnthropicRateLimiter

    def __init__(self, api_key: str | None = None, config: AnthropicConfig | None = None):
        """Initialize Anthropic client.

        Args:
            api_key: Anthropic API key (defaults to ANTHROPIC_API_KEY env var)
            config: Client configuration
        """
        anthropic_api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not anthropic_api_key:
            raise ValueError("ANTHROPIC_API_KEY environment variable is required")

        self.api_key = anthropic_api_key
        self.config = config or AnthropicConfig()

        # Retries are handled by _request_with_retries
        self.client = Anthropic(api_key=self.api_key, max_retries=0)
        self.rate_limiter = AnthropicRateLimiter(self.config.requests_per_minute, self.config.tokens_per_minute)

        try:
            # Close approximation for Claude
            self.tokenizer = tiktoken.encoding_for_model("gpt-4")
        except Exception:
            self.tokenizer = None

    async def create_message(
        self,
        messages: list[LLMMessage],
        system_prompt: str,
        tools: list[LLMToolDefinition] | list[dict[str, Any]] | None = None,
        **kwargs,
    ) -> LLMResponse:
        """Send the conversation to Claude and return the assistant reply.

        Args:
            messages: Full conversation history
            system_prompt: System prompt for Claude
            tools: Tool definitions offered to Claude
            **kwargs: Overrides for model, max_tokens and temperature

        Returns:
            Provider-agnostic response holding the assistant message

        Raises:
            ModelServiceError: The request failed after all retries
            ProtocolViolationError: The response carried no assistant message
        """
        estimated_tokens = self._estimate_tokens(messages, system_prompt)
        logger.debug(f"Estimated tokens: {estimated_tokens}")
        await self.rate_limiter.check_rate_limit(estimated_tokens)

        message_dicts = [msg.model_dump() for msg in messages]
        tool_dicts = [tool.model_dump() if isinstance(tool, LLMToolDefinition) else tool for tool in tools or []]

        request_params: dict[str, Any] = {
            "model": kwargs.get("model", self.config.model),
            "max_tokens": kwargs.get("max_tokens", self.config.max_tokens),
            "temperature": kwargs.get("temperature", self.config.temperature),
            "system": [{"type": "text", "text": system_prompt}],
            "messages": message_dicts,
        }
        if tool_dicts:
            request_params["tools"] = tool_dicts

        logger.debug(f"Making Anthropic API call with model {request_params['model']}, {len(message_dicts)} messages")
        logger.debug(f"Request messages: {message_dicts}")
        response: Message = await self._request_with_retries(lambda: self.client.messages.create(**request_params))

        if response is None or getattr(response, "role", None) != "assistant" or response.content is None:
            raise ProtocolViolationError(f"Model service returned no assistant message: {response!r}")

        logger.debug(
            f"Response received - Stop reason: {response.stop_reason}, Content blocks: {len(response.content)}"
        )

        usage = LLMUsage()
        if response.usage:
            usage = LLMUsage(input_tokens=response.usage.input_tokens, output_tokens=response.usage.output_tokens)

        return LLMResponse(
            message=LLMMessage(role="assistant", content=self._convert_content_blocks(response.content)),
            stop_reason=StopReason(response.stop_reason or StopReason.UNKNOWN),
            usage=usage,
            model=response.model,
        )

    def list_models(self) -> list[str]:
        """Return the ids of the models available to this API key."""
        try:
            return [model.id for model in self.client.models.list()]
        except APIError as e:
            raise ModelServiceError(f"Unable to list models: {e}") from e

    async def _request_with_retries(self, call: Callable[[], T]) -> T:
        """Execute Anthropic API request with retry logic."""
        for attempt in range(self.config.max_retries):
            last_attempt = attempt == self.config.max_retries - 1
            try:
                return call()

            except APIStatusError as e:
                if e.status_code == 429 and not last_attempt:
                    retry_after = self.config.retry_delay * (2**attempt)
                    if e.response is not None:
                        try:
                            retry_after = float(e.response.headers.get("retry-after", retry_after))
                        except ValueError:
                            pass

                    if retry_after < self.config.max_retry_after:
                        logger.warning(f"Rate limited by Anthropic, retrying in {retry_after:.1f}s")
                        await asyncio.sleep(retry_after)
                        continue

                elif e.status_code >= 500 and not last_attempt:
                    # Server error, retry with exponential backoff
                    delay = self.config.retry_delay * (2**attempt)
                    logger.warning(f"Anthropic server error {e.status_code}, retrying in {delay:.1f}s")
                    await asyncio.sleep(delay)
                    continue

                raise ModelServiceError(f"Anthropic request failed with status {e.status_code}: {e.message}") from e

            except APIConnectionError as e:
                if not last_attempt:
                    delay = self.config.retry_delay * (2**attempt)
                    logger.warning(f"Connection to Anthropic failed, retrying in {delay:.1f}s")
                    await asyncio.sleep(delay)
                    continue
                raise ModelServiceError(f"Unable to reach Anthropic: {e}") from e

            except APIError as e:
                raise ModelServiceError(f"Anthropic request failed: {e}") from e

        raise ModelServiceError(f"Failed to complete request after {self.config.max_retries} attempts")

    def _convert_content_blocks(self, anthropic_content: list[AnthropicContentBlock]) -> list[ContentBlock]:
        """Convert Anthropic content blocks to our ContentBlock types."""
        converted_blocks: list[ContentBlock] = []
        for block in anthropic_content:
            if hasattr(block, "model_dump"):
                block_dict = block.model_dump(exclude_none=True)
            else:
                block_dict = dict(block)

            block_type = block_dict.get("type", "unknown")
            if block_type == "text":
                converted_blocks.append(TextBlock.model_validate(block_dict))
            elif block_type == "tool_use":
                converted_blocks.append(ToolUseBlock.model_validate(block_dict))
            else:
                logger.debug(f"Keeping unhandled content block type: {block_type}")
                converted_blocks.append(OtherBlock(kind=block_type, payload=block_dict))

        return converted_blocks

    def _estimate_tokens(self, messages: list[LLMMessage], system_prompt: str) -> int:
        """Estimate token count for rate limiting.

        Args:
            messages: Conversation messages
            system_prompt: System prompt

        Returns:
            Estimated token count
        """
        text_content = system_prompt
        for message in messages:
            for block in message.content:
                if isinstance(block, TextBlock):
                    text_content += block.text
                elif isinstance(block, ToolResultBlock):
                    text_content += block.content
                elif isinstance(block, ToolUseBlock):
                    text_content += str(block.input)

        try:
            return len(self.tokenizer.encode(text_content)) if self.tokenizer else len(text_content) // 4
        except Exception:
            # Fallback: roughly 4 characters per token
            return len(text_content) // 4
