"""Anthropic API client with streaming, rate limiting and error handling."""

import asyncio
import json
import os
import time
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any, Literal

import tiktoken
from anthropic import APIConnectionError, APIStatusError, AsyncAnthropic
from anthropic.types import ContentBlock as AnthropicContentBlock
from anthropic.types import Message
from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter
from pydantic import BaseModel

from assistant.exceptions import ModelUnavailableError
from assistant.models.llm import ContentBlock, TextBlock, TextDelta, ToolResultBlock, ToolUseBlock
from assistant.utils.logging import get_logger

logger = get_logger(__name__)


class CacheControl(BaseModel):
    """Cache control configuration for prompt caching."""

    type: Literal["ephemeral"] = "ephemeral"
    ttl: Literal["5m", "1h"] = "5m"


class AnthropicMessage(BaseModel):
    """Message format for Anthropic API."""

    role: Literal["user", "assistant"]
    content: str | list[ContentBlock]

    def has_tool_results(self) -> bool:
        return isinstance(self.content, list) and any(isinstance(b, ToolResultBlock) for b in self.content)


class AnthropicTool(BaseModel):
    """Tool definition for Anthropic API."""

    name: str
    description: str
    input_schema: dict[str, Any]
    cache_control: CacheControl | None = None


@dataclass
class TokenUsage:
    """Token usage information from Anthropic API."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    cache_creation_input_tokens: int = 0
    cache_read_input_tokens: int = 0


@dataclass
class AnthropicResponse:
    """Structured response from Anthropic API."""

    content: list[ContentBlock]
    stop_reason: str | None
    usage: TokenUsage
    model: str


@dataclass
class AnthropicConfig:
    """Configuration for Anthropic API client."""

    model: str = os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-20250514")
    max_tokens: int = 2048
    temperature: float = 0.3
    max_retries: int = 3
    retry_delay: float = 1.0
    max_retry_after: float = 120.0

    # Token limits for validation and truncation
    max_message_tokens: int = 2000  # Maximum tokens per individual message
    max_conversation_tokens: int = 200000
    token_headroom: int = 2000  # Reserve tokens for response


class AnthropicRateLimiter:
    """Moving-window rate limiter for requests and tokens."""

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
        """Wait until the request fits within the request and token windows."""
        logger.debug(f"Checking rate limit for {estimated_tokens} tokens, identifier: {identifier}")

        if not self.limiter.hit(self.request_limit, identifier):
            await self._wait_for_window(self.request_limit, identifier, "Request")

        token_identifier = f"{identifier}_tokens"
        if not self.limiter.hit(self.token_limit, token_identifier, cost=estimated_tokens):
            await self._wait_for_window(self.token_limit, token_identifier, "Token")

    async def _wait_for_window(self, limit: Any, identifier: str, label: str) -> None:
        window_stats = self.limiter.get_window_stats(limit, identifier)
        if window_stats:
            # reset_time is epoch seconds
            wait_time = max(0.0, window_stats.reset_time - time.time())
            if wait_time > 0:
                logger.warning(f"{label} rate limit exceeded, waiting {wait_time:.2f}s")
                await asyncio.sleep(wait_time)


class AnthropicClient:
    """Low-level Anthropic API client with rate limiting and error handling."""

    tokenizer: tiktoken.Encoding | None = None
    api_key: str
    client: AsyncAnthropic
    config: AnthropicConfig
    rate_limiter: AnthropicRateLimiter = AnthropicRateLimiter()

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

        # Retries are handled here so streamed text is never replayed
        self.client = AsyncAnthropic(api_key=self.api_key, max_retries=0)
        self.config = config or AnthropicConfig()

        try:
            # Close approximation for Claude
            self.tokenizer = tiktoken.encoding_for_model("gpt-4")
        except Exception:
            self.tokenizer = None

    async def stream_message(
        self,
        messages: list[AnthropicMessage],
        system_prompt: str,
        tools: list[AnthropicTool] | None = None,
        **kwargs,
    ) -> AsyncIterator[TextDelta | AnthropicResponse]:
        """Stream a message from Claude.

        Yields a TextDelta for each text chunk as it arrives, then exactly one
        AnthropicResponse with the complete content blocks.

        Args:
            messages: Conversation history
            system_prompt: System prompt for Claude
            tools: Available tools for Claude
            **kwargs: Additional parameters for Claude API

        Raises:
            ModelUnavailableError: If the model could not produce a turn
        """
        truncated_messages = self.truncate_conversation(messages, system_prompt, tools)

        estimated_tokens = self._estimate_tokens(truncated_messages, system_prompt)
        logger.debug(f"Estimated tokens: {estimated_tokens}")
        await self.rate_limiter.check_rate_limit(estimated_tokens)

        request_params: dict[str, Any] = {
            "model": kwargs.get("model", self.config.model),
            "max_tokens": kwargs.get("max_tokens", self.config.max_tokens),
            "temperature": kwargs.get("temperature", self.config.temperature),
            "system": system_prompt,
            "messages": [msg.model_dump() for msg in truncated_messages],
        }
        if tools:
            request_params["tools"] = [tool.model_dump(exclude_none=True) for tool in tools]

        logger.debug(
            f"Streaming message with {len(truncated_messages)} messages, {len(tools) if tools else 0} tools, "
            f"model: {request_params['model']}"
        )

        for attempt in range(self.config.max_retries):
            emitted_text = False
            try:
                async with self.client.messages.stream(**request_params) as stream:
                    async for text in stream.text_stream:
                        emitted_text = True
                        yield TextDelta(text=text)
                    response: Message = await stream.get_final_message()

                yield self._convert_response(response)
                return

            except (APIStatusError, APIConnectionError) as e:
                if emitted_text:
                    raise ModelUnavailableError("Model stream interrupted") from e

                delay = self._retry_delay(e, attempt)
                if delay is None:
                    raise ModelUnavailableError(f"Model request failed: {type(e).__name__}") from e

                logger.warning(f"Anthropic request failed ({type(e).__name__}), retrying in {delay:.1f}s")
                await asyncio.sleep(delay)

        raise ModelUnavailableError(f"Failed to complete request after {self.config.max_retries} attempts")

    def _retry_delay(self, error: APIStatusError | APIConnectionError, attempt: int) -> float | None:
        """Seconds to wait before retrying, or None if the error is final."""
        if attempt >= self.config.max_retries - 1:
            return None

        if isinstance(error, APIConnectionError):
            return self.config.retry_delay * (2**attempt)

        if error.status_code == 429:
            retry_after = 60.0
            if error.response is not None:
                try:
                    retry_after = float(error.response.headers.get("retry-after", 60))
                except ValueError:
                    retry_after = 60.0
            return retry_after if retry_after < self.config.max_retry_after else None

        if error.status_code >= 500:
            return self.config.retry_delay * (2**attempt)

        return None

    def _convert_response(self, response: Message) -> AnthropicResponse:
        usage = TokenUsage()
        if response.usage:
            usage = TokenUsage(
                input_tokens=response.usage.input_tokens,
                output_tokens=response.usage.output_tokens,
                total_tokens=response.usage.input_tokens + response.usage.output_tokens,
                cache_creation_input_tokens=response.usage.cache_creation_input_tokens or 0,
                cache_read_input_tokens=response.usage.cache_read_input_tokens or 0,
            )

        logger.debug(
            f"Response received - Stop reason: {response.stop_reason}, Content blocks: {len(response.content)}"
        )

        return AnthropicResponse(
            content=self._convert_content_blocks(response.content),
            stop_reason=response.stop_reason,
            usage=usage,
            model=response.model,
        )

    def _convert_content_blocks(self, anthropic_content: list[AnthropicContentBlock]) -> list[ContentBlock]:
        """Convert Anthropic content blocks to our ContentBlock types."""
        converted_blocks: list[ContentBlock] = []
        for block in anthropic_content:
            block_dict = block.model_dump()
            block_type = block_dict.get("type")

            if block_type == "text":
                converted_blocks.append(TextBlock.model_validate(block_dict))
            elif block_type == "tool_use":
                converted_blocks.append(ToolUseBlock.model_validate(block_dict))
            else:
                logger.warning(f"Unknown content block type: {block_type}")

        return converted_blocks

    def _message_text(self, message: AnthropicMessage) -> str:
        if isinstance(message.content, str):
            return message.content

        parts: list[str] = []
        for block in message.content:
            if isinstance(block, TextBlock):
                parts.append(block.text)
            elif isinstance(block, ToolResultBlock):
                parts.append(block.content)
            elif isinstance(block, ToolUseBlock):
                parts.append(block.name + json.dumps(block.input))
        return "".join(parts)

    def _estimate_tokens(self, messages: list[AnthropicMessage], system_prompt: str) -> int:
        """Estimate token count for rate limiting."""
        text_content = system_prompt + "".join(self._message_text(m) for m in messages)
        return self.estimate_message_tokens(text_content)

    def estimate_message_tokens(self, message: str) -> int:
        """Estimate token count for a single message.

        Args:
            message: Message content

        Returns:
            Estimated token count
        """
        try:
            return len(self.tokenizer.encode(message)) if self.tokenizer else len(message) // 4
        except Exception:
            # Fallback: roughly 4 characters per token
            return len(message) // 4

    def validate_message_tokens(self, message: str) -> None:
        """Validate that a message doesn't exceed token limits.

        Raises:
            ValueError: If message exceeds token limit
        """
        token_count = self.estimate_message_tokens(message)
        if token_count > self.config.max_message_tokens:
            logger.info(f"Message of {token_count} tokens exceeds the {self.config.max_message_tokens} token limit")
            raise ValueError(
                f"Your message is too long. Please keep messages under {self.config.max_message_tokens} tokens."
            )

    def truncate_conversation(
        self, messages: list[AnthropicMessage], system_prompt: str, tools: list[AnthropicTool] | None = None
    ) -> list[AnthropicMessage]:
        """Truncate conversation from the beginning to fit within token limits.

        The kept window always starts with a plain user message so a tool_result
        never appears without the tool_use that produced it.

        Args:
            messages: Conversation messages
            system_prompt: System prompt
            tools: Available tools

        Returns:
            Truncated message list that fits within limits

        Raises:
            ModelUnavailableError: If not even the latest exchange fits
        """
        if not messages:
            return messages

        available_tokens = self.config.max_conversation_tokens - self.config.token_headroom
        available_tokens -= self.estimate_message_tokens(system_prompt)

        if tools:
            tool_content = "".join(tool.name + tool.description + str(tool.input_schema) for tool in tools)
            available_tokens -= self.estimate_message_tokens(tool_content)

        truncated_messages: list[AnthropicMessage] = []
        current_tokens = 0

        for message in reversed(messages):
            message_tokens = self.estimate_message_tokens(self._message_text(message))
            if current_tokens + message_tokens > available_tokens:
                break
            truncated_messages.insert(0, message)
            current_tokens += message_tokens

        while truncated_messages and (
            truncated_messages[0].role != "user" or truncated_messages[0].has_tool_results()
        ):
            truncated_messages.pop(0)

        if not truncated_messages:
            raise ModelUnavailableError(
                f"Latest exchange does not fit within the {available_tokens} token context window"
            )

        if len(truncated_messages) < len(messages):
            logger.warning(
                f"Truncated conversation from {len(messages)} to {len(truncated_messages)} messages "
                f"to fit within {available_tokens} token limit"
            )

        return truncated_messages


_anthropic_client: AnthropicClient | None = None


def get_anthropic_client() -> AnthropicClient:
    """Get or create Anthropic client instance."""
    global _anthropic_client
    if _anthropic_client is None:
        _anthropic_client = AnthropicClient()
    return _anthropic_client
