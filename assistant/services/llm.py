"""LLM service: provider-agnostic streaming model turns."""

from collections.abc import AsyncIterator

from assistant.clients.anthropic import (
    AnthropicClient,
    AnthropicMessage,
    AnthropicResponse,
    AnthropicTool,
    CacheControl,
    get_anthropic_client,
)
from assistant.models.llm import LLMMessage, LLMResponse, LLMToolDefinition, LLMUsage, ModelStreamItem, TextDelta
from assistant.utils.logging import get_logger

logger = get_logger(__name__)


class LLMService:
    """High-level LLM service used by the conversation orchestrator."""

    def __init__(self, client: AnthropicClient | None = None):
        """Initialize LLM service.

        Args:
            client: Anthropic client (defaults to global instance)
        """
        self.client = client or get_anthropic_client()

    def validate_message(self, content: str) -> None:
        """Check a user message against the per-message token limit.

        Raises:
            ValueError: If the message is too long
        """
        self.client.validate_message_tokens(content)

    def _convert_anthropic_response(self, anthropic_response: AnthropicResponse) -> LLMResponse:
        """Convert Anthropic response to provider-agnostic LLM response."""
        usage = LLMUsage(
            input_tokens=anthropic_response.usage.input_tokens,
            output_tokens=anthropic_response.usage.output_tokens,
            total_tokens=anthropic_response.usage.total_tokens,
            cache_creation_input_tokens=anthropic_response.usage.cache_creation_input_tokens,
            cache_read_input_tokens=anthropic_response.usage.cache_read_input_tokens,
        )

        return LLMResponse(
            content=anthropic_response.content,
            stop_reason=anthropic_response.stop_reason,
            usage=usage,
            model=anthropic_response.model,
            provider="anthropic",
        )

    def _convert_tools(self, tools: list[LLMToolDefinition]) -> list[AnthropicTool]:
        anthropic_tools = []
        for i, tool in enumerate(tools):
            # Cache control on the last tool caches all tool definitions
            cache_control = CacheControl(type="ephemeral", ttl="5m") if i == len(tools) - 1 else None
            anthropic_tools.append(
                AnthropicTool(
                    name=tool.name,
                    description=tool.description,
                    input_schema=tool.input_schema,
                    cache_control=cache_control,
                )
            )
        return anthropic_tools

    async def stream_message(
        self,
        messages: list[LLMMessage],
        system_prompt: str,
        tools: list[LLMToolDefinition],
        **kwargs,
    ) -> AsyncIterator[ModelStreamItem]:
        """Stream one model turn.

        Args:
            messages: Conversation so far
            system_prompt: System prompt
            tools: Tool descriptions the model may call
            **kwargs: Additional parameters for the provider API

        Yields:
            TextDelta items as text arrives, then one LLMResponse
        """
        anthropic_messages = [AnthropicMessage(role=msg.role, content=msg.content) for msg in messages]
        anthropic_tools = self._convert_tools(tools)

        logger.debug(f"Calling LLM with {len(anthropic_messages)} messages and {len(anthropic_tools)} tools")
        async for item in self.client.stream_message(
            messages=anthropic_messages,
            system_prompt=system_prompt,
            tools=anthropic_tools,
            **kwargs,
        ):
            if isinstance(item, TextDelta):
                yield item
            else:
                response = self._convert_anthropic_response(item)
                if response.usage:
                    logger.debug(
                        f"LLM response - Stop reason: {response.stop_reason}, "
                        f"tokens: {response.usage.total_tokens}, cache hit: {response.usage.cache_hit_rate:.0f}%"
                    )
                yield response


_llm_service: LLMService | None = None


def get_llm_service() -> LLMService:
    """Get or create LLM service instance."""
    global _llm_service
    if _llm_service is None:
        _llm_service = LLMService()
    return _llm_service
