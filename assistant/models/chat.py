"""Conversation data models shared by the orchestrator, the API and the client."""

import json
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Literal

from cuid2 import cuid_wrapper
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from assistant.models.llm import ContentBlock, LLMMessage, TextBlock, ToolResultBlock, ToolUseBlock

cuid = cuid_wrapper()


class WireModel(BaseModel):
    """Base for models crossing the HTTP boundary (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ToolErrorKind(StrEnum):
    """Recoverable tool failure kinds fed back to the model as data."""

    UNKNOWN_TOOL = "UnknownTool"
    INVALID_ARGUMENTS = "InvalidArguments"
    EXTERNAL_FAILURE = "ExternalFailure"


class ToolError(WireModel):
    """Error detail of a failed tool invocation."""

    kind: ToolErrorKind
    message: str


class ToolInvocationRequest(WireModel):
    """A tool call requested by the model; arguments are untrusted until validated."""

    id: str
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class ToolResult(WireModel):
    """Terminal outcome of executing one ToolInvocationRequest."""

    tool_call_id: str
    tool_name: str
    state: Literal["result", "error"]
    result: Any = None
    error: ToolError | None = None

    @classmethod
    def success(cls, request: ToolInvocationRequest, payload: Any) -> "ToolResult":
        return cls(tool_call_id=request.id, tool_name=request.name, state="result", result=payload)

    @classmethod
    def failure(cls, request: ToolInvocationRequest, kind: ToolErrorKind, message: str) -> "ToolResult":
        return cls(
            tool_call_id=request.id,
            tool_name=request.name,
            state="error",
            error=ToolError(kind=kind, message=message),
        )

    @property
    def is_error(self) -> bool:
        return self.state == "error"


class ToolInvocation(WireModel):
    """Tool invocation attached to an assistant message, tagged by state."""

    tool_call_id: str
    tool_name: str
    args: dict[str, Any] = Field(default_factory=dict)
    state: Literal["pending", "result", "error"] = "pending"
    result: Any = None
    error: ToolError | None = None

    @classmethod
    def from_request(cls, request: ToolInvocationRequest) -> "ToolInvocation":
        return cls(tool_call_id=request.id, tool_name=request.name, args=request.arguments)

    def resolve(self, result: ToolResult) -> "ToolInvocation":
        """Return a copy of this invocation carrying its terminal result."""
        if result.tool_call_id != self.tool_call_id:
            raise ValueError(f"Result {result.tool_call_id} does not belong to invocation {self.tool_call_id}")
        return self.model_copy(update={"state": result.state, "result": result.result, "error": result.error})

    def to_result_block(self) -> ToolResultBlock:
        """Render the terminal result as the model sees it."""
        if self.state == "error" and self.error is not None:
            content = json.dumps({"error": {"kind": self.error.kind.value, "message": self.error.message}})
            return ToolResultBlock(tool_use_id=self.tool_call_id, content=content, is_error=True)
        return ToolResultBlock(tool_use_id=self.tool_call_id, content=json.dumps(self.result, default=str))


class Message(WireModel):
    """One turn in a conversation. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=cuid)
    role: Literal["user", "assistant", "system"]
    content: str = ""
    tool_invocations: list[ToolInvocation] = Field(default_factory=list)


class OrchestratorState(StrEnum):
    """States of the conversation orchestrator."""

    AWAITING_USER_INPUT = "awaiting_user_input"
    MODEL_THINKING = "model_thinking"
    TOOL_DISPATCH = "tool_dispatch"
    FINISHED = "finished"
    ABORTED = "aborted"


@dataclass
class ConversationState:
    """Accumulating history of one chat session."""

    messages: list[Message] = field(default_factory=list)
    max_steps: int = 5
    steps: int = 0
    status: OrchestratorState = OrchestratorState.AWAITING_USER_INPUT

    @property
    def finished(self) -> bool:
        return self.status in (OrchestratorState.FINISHED, OrchestratorState.ABORTED)

    def append(self, message: Message) -> None:
        self.messages.append(message)

    def increment_step(self) -> int:
        self.steps += 1
        return self.steps

    def clear(self) -> None:
        """Forget the session, as when the user clears the chat."""
        self.messages = []
        self.steps = 0
        self.status = OrchestratorState.AWAITING_USER_INPUT


def system_instructions(messages: Sequence[Message]) -> str:
    """Collect caller-supplied system messages; they extend the system prompt."""
    return "\n\n".join(m.content for m in messages if m.role == "system" and m.content)


def to_llm_messages(messages: Sequence[Message]) -> list[LLMMessage]:
    """Convert chat history to provider-agnostic LLM messages.

    Each assistant message with resolved tool invocations becomes an assistant
    turn (text + tool_use blocks) followed by a user turn holding the
    tool_result blocks in the same order. Pending invocations are dropped since
    they never produced a result. Consecutive turns of the same role are merged.
    """
    llm_messages: list[LLMMessage] = []

    for message in messages:
        if message.role == "system":
            continue

        if message.role == "user":
            if message.content:
                _append_blocks(llm_messages, "user", [TextBlock(text=message.content)])
            continue

        resolved = [inv for inv in message.tool_invocations if inv.state != "pending"]
        blocks: list[ContentBlock] = []
        if message.content:
            blocks.append(TextBlock(text=message.content))
        blocks.extend(ToolUseBlock(id=inv.tool_call_id, name=inv.tool_name, input=inv.args) for inv in resolved)

        if blocks:
            _append_blocks(llm_messages, "assistant", blocks)
        if resolved:
            _append_blocks(llm_messages, "user", [inv.to_result_block() for inv in resolved])

    return llm_messages


def _append_blocks(messages: list[LLMMessage], role: Literal["user", "assistant"], blocks: list[ContentBlock]) -> None:
    if messages and messages[-1].role == role:
        previous = messages[-1].content
        previous_blocks = [TextBlock(text=previous)] if isinstance(previous, str) else list(previous)
        messages[-1] = LLMMessage(role=role, content=[*previous_blocks, *blocks])
    else:
        messages.append(LLMMessage(role=role, content=blocks))
