"""Conversation orchestrator: the bounded model/tool loop behind a chat turn."""

import asyncio
import os
from collections.abc import AsyncIterator
from contextlib import aclosing
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol
from zoneinfo import ZoneInfo

from assistant.exceptions import ModelUnavailableError
from assistant.models.chat import (
    ConversationState,
    Message,
    OrchestratorState,
    ToolInvocation,
    ToolInvocationRequest,
    ToolResult,
    cuid,
    system_instructions,
    to_llm_messages,
)
from assistant.models.events import (
    ErrorEvent,
    FinishEvent,
    FinishReason,
    StepFinishEvent,
    StreamEvent,
    TextDeltaEvent,
    ToolCallEvent,
    ToolResultEvent,
)
from assistant.models.llm import LLMMessage, LLMResponse, LLMToolDefinition, ModelStreamItem, TextDelta
from assistant.services.executor import ToolExecutor
from assistant.tools.base import ToolContext
from assistant.tools.registry import ToolsRegistry
from assistant.utils.logging import bind_run_id, get_logger

logger = get_logger(__name__)

GENERIC_ERROR_MESSAGE = "An error occurred, please try again."

# Strong references to tool calls still running after their run was closed
_background_calls: set[asyncio.Task] = set()

SYSTEM_PROMPT = """You are a highly capable personal assistant that helps the user manage their daily life and work.

Your capabilities include:
1. Email: reading and summarizing recent emails, drafting and sending emails
2. Calendar: listing events, checking availability and scheduling meetings with a Google Meet link
3. Tasks: creating task lists and tasks, listing tasks and marking them complete
4. Documents: creating, updating, listing and reading Google Docs
5. Contacts: searching, creating and updating contacts
6. Places and the web: finding places nearby, looking up the user's location and searching the web

When interacting:
- Be concise and professional
- Always send a short message along with a tool call explaining what you are doing
- Confirm important actions (sending email, scheduling, updating documents) before executing them
- To analyse a document, first fetch it with getDocContent, then summarize the key points in a clear structure
- Use several steps when a request needs them, and ask for clarification when needed
- If a tool returns an error, explain it briefly and suggest what the user can do

Current date and time: {now} ({timezone})."""


@dataclass
class OrchestratorConfig:
    """Configuration for the conversation loop."""

    max_steps: int = field(default_factory=lambda: int(os.getenv("ASSISTANT_MAX_STEPS", "5")))
    tool_timeout_seconds: float = field(default_factory=lambda: float(os.getenv("ASSISTANT_TOOL_TIMEOUT", "8.0")))
    timezone: str = field(default_factory=lambda: os.getenv("ASSISTANT_TIMEZONE", "Asia/Tokyo"))


def _discard_background_call(task: asyncio.Task) -> None:
    _background_calls.discard(task)
    if not task.cancelled() and task.exception() is not None:
        logger.error("Background tool call failed", exc_info=task.exception())


class LanguageModel(Protocol):
    """Anything that can stream a model turn (LLMService or a test stub)."""

    def stream_message(
        self, messages: list[LLMMessage], system_prompt: str, tools: list[LLMToolDefinition]
    ) -> AsyncIterator[ModelStreamItem]: ...

    def validate_message(self, content: str) -> None: ...


class CancellationToken:
    """Cooperative cancellation flag shared by the stream adapter and the orchestrator."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def get_system_prompt(timezone: str, now: datetime | None = None) -> str:
    now = now or datetime.now(ZoneInfo(timezone))
    return SYSTEM_PROMPT.format(now=now.strftime("%A, %B %d, %Y %I:%M %p"), timezone=timezone)


class ConversationOrchestrator:
    """Drives one chat turn through as many model/tool rounds as the step budget allows."""

    def __init__(
        self,
        model: LanguageModel,
        registry: ToolsRegistry,
        executor: ToolExecutor | None = None,
        config: OrchestratorConfig | None = None,
    ):
        """Initialize orchestrator.

        Args:
            model: Streaming language model
            registry: Tools offered to the model
            executor: Tool executor (defaults to one over `registry`)
            config: Loop configuration
        """
        self.model = model
        self.registry = registry
        self.config = config or OrchestratorConfig()
        self.executor = executor or ToolExecutor(registry, timeout=self.config.tool_timeout_seconds)

    def validate_message(self, content: str) -> None:
        """Reject a user message the model would not accept.

        Raises:
            ValueError: If the message exceeds the per-message token limit
        """
        self.model.validate_message(content)

    def new_conversation(self, messages: list[Message] | None = None) -> ConversationState:
        return ConversationState(messages=list(messages or []), max_steps=self.config.max_steps)

    async def run(
        self,
        conversation: ConversationState,
        new_message: Message,
        context: ToolContext,
        cancellation: CancellationToken | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Process a user message, yielding stream events as they happen.

        Args:
            conversation: History to extend; only appended to
            new_message: The user's message
            context: Credentials and timezone for tool calls
            cancellation: Checked between phases; results of in-flight tools are discarded

        Yields:
            Stream events, ending with exactly one FinishEvent
        """
        cancellation = cancellation or CancellationToken()
        bind_run_id(cuid())
        conversation.append(new_message)
        start_steps = conversation.steps

        system_prompt = get_system_prompt(context.timezone)
        extra_instructions = system_instructions(conversation.messages)
        if extra_instructions:
            system_prompt = f"{system_prompt}\n\n{extra_instructions}"
        tools = self.registry.describe_all()

        while True:
            if cancellation.cancelled:
                yield self._abort(conversation, "cancelled", start_steps)
                return

            conversation.status = OrchestratorState.MODEL_THINKING
            round_number = conversation.steps - start_steps + 1
            logger.info(
                f"Model round {round_number}/{conversation.max_steps} with {len(conversation.messages)} messages"
            )

            response: LLMResponse | None = None
            text_parts: list[str] = []
            try:
                async for item in self.model.stream_message(
                    to_llm_messages(conversation.messages), system_prompt, tools
                ):
                    if isinstance(item, TextDelta):
                        text_parts.append(item.text)
                        yield TextDeltaEvent(text_delta=item.text)
                    else:
                        response = item
                if response is None:
                    raise ModelUnavailableError("Model stream ended without a final response")
            except Exception:
                logger.error("Model call failed, aborting conversation run", exc_info=True)
                yield ErrorEvent(message=GENERIC_ERROR_MESSAGE)
                yield self._abort(conversation, "error", start_steps)
                return

            text = response.text or "".join(text_parts)
            requests = [
                ToolInvocationRequest(id=block.id, name=block.name, arguments=block.input)
                for block in response.tool_uses
            ]

            if not requests:
                message = Message(role="assistant", content=text)
                conversation.append(message)
                steps = conversation.increment_step() - start_steps
                conversation.status = OrchestratorState.FINISHED
                yield StepFinishEvent(step=steps, message_id=message.id)
                yield FinishEvent(finish_reason="stop", steps=steps)
                return

            conversation.status = OrchestratorState.TOOL_DISPATCH
            logger.info(f"Dispatching {len(requests)} tool calls: {', '.join(r.name for r in requests)}")
            for request in requests:
                yield ToolCallEvent.from_request(request)

            results: dict[str, ToolResult] = {}
            async with aclosing(self._dispatch(requests, context)) as completed:
                async for result in completed:
                    results[result.tool_call_id] = result
                    yield ToolResultEvent.from_result(result)

            if cancellation.cancelled:
                logger.info(f"Run cancelled, discarding {len(results)} tool results")
                yield self._abort(conversation, "cancelled", start_steps)
                return

            # History keeps request order regardless of completion order
            invocations = [ToolInvocation.from_request(r).resolve(results[r.id]) for r in requests]
            message = Message(role="assistant", content=text, tool_invocations=invocations)
            conversation.append(message)
            steps = conversation.increment_step() - start_steps
            yield StepFinishEvent(step=steps, message_id=message.id)

            if steps >= conversation.max_steps:
                logger.warning(f"Step budget of {conversation.max_steps} exhausted")
                conversation.status = OrchestratorState.FINISHED
                yield FinishEvent(finish_reason="max-steps", steps=steps)
                return

    async def _dispatch(
        self, requests: list[ToolInvocationRequest], context: ToolContext
    ) -> AsyncIterator[ToolResult]:
        """Run all requests concurrently, yielding results in completion order.

        Closing the iterator early leaves unfinished calls running to completion;
        their results are dropped.
        """
        tasks = [asyncio.create_task(self.executor.execute(request, context)) for request in requests]
        try:
            for next_done in asyncio.as_completed(tasks):
                yield await next_done
        finally:
            for task in tasks:
                if not task.done():
                    _background_calls.add(task)
                    task.add_done_callback(_discard_background_call)
                    logger.info(f"Tool call left to finish in the background ({len(_background_calls)} pending)")

    def _abort(self, conversation: ConversationState, reason: FinishReason, start_steps: int) -> FinishEvent:
        conversation.status = OrchestratorState.ABORTED
        return FinishEvent(finish_reason=reason, steps=conversation.steps - start_steps)
