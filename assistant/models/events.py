"""Events emitted by the orchestrator and written to the response stream."""

from typing import Annotated, Any, Literal

from pydantic import Field, TypeAdapter

from assistant.models.chat import ToolError, ToolInvocationRequest, ToolResult, WireModel

FinishReason = Literal["stop", "max-steps", "error", "cancelled"]


class TextDeltaEvent(WireModel):
    type: Literal["text-delta"] = "text-delta"
    text_delta: str


class ToolCallEvent(WireModel):
    """A tool invocation has been requested by the model and dispatched."""

    type: Literal["tool-call"] = "tool-call"
    tool_call_id: str
    tool_name: str
    args: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_request(cls, request: ToolInvocationRequest) -> "ToolCallEvent":
        return cls(tool_call_id=request.id, tool_name=request.name, args=request.arguments)


class ToolResultEvent(WireModel):
    """A tool invocation reached its terminal state."""

    type: Literal["tool-result"] = "tool-result"
    tool_call_id: str
    tool_name: str
    state: Literal["result", "error"]
    result: Any = None
    error: ToolError | None = None

    @classmethod
    def from_result(cls, result: ToolResult) -> "ToolResultEvent":
        return cls(
            tool_call_id=result.tool_call_id,
            tool_name=result.tool_name,
            state=result.state,
            result=result.result,
            error=result.error,
        )


class StepFinishEvent(WireModel):
    type: Literal["step-finish"] = "step-finish"
    step: int
    message_id: str


class ErrorEvent(WireModel):
    type: Literal["error"] = "error"
    message: str


class FinishEvent(WireModel):
    type: Literal["finish"] = "finish"
    finish_reason: FinishReason
    steps: int = 0


StreamEvent = Annotated[
    TextDeltaEvent | ToolCallEvent | ToolResultEvent | StepFinishEvent | ErrorEvent | FinishEvent,
    Field(discriminator="type"),
]

stream_event_adapter: TypeAdapter[StreamEvent] = TypeAdapter(StreamEvent)


def parse_event(data: str | bytes) -> StreamEvent:
    """Parse one JSON-encoded event (camelCase or snake_case keys)."""
    return stream_event_adapter.validate_json(data)
