"""Client-side folding of the SSE event stream back into chat messages."""

from collections.abc import Iterable, Iterator

from assistant.models.chat import Message, ToolInvocation, ToolResult
from assistant.models.events import (
    ErrorEvent,
    FinishEvent,
    StepFinishEvent,
    StreamEvent,
    TextDeltaEvent,
    ToolCallEvent,
    ToolResultEvent,
    parse_event,
)


def parse_sse_lines(lines: Iterable[str]) -> Iterator[StreamEvent]:
    """Parse decoded SSE lines into events. Only `data:` lines carry the payload."""
    data: list[str] = []
    for line in lines:
        if line.startswith("data:"):
            data.append(line[len("data:") :].strip())
        elif not line.strip() and data:
            yield parse_event("\n".join(data))
            data = []
    if data:
        yield parse_event("\n".join(data))


class TranscriptBuilder:
    """Accumulates one chat turn's events.

    Rounds are committed as assistant messages on step-finish, mirroring what
    the server appended to its history, so the client can resend them verbatim.
    """

    def __init__(self) -> None:
        self.messages: list[Message] = []
        self.text = ""
        self.invocations: dict[str, ToolInvocation] = {}
        self.errors: list[str] = []
        self.finish: FinishEvent | None = None

    def feed(self, event: StreamEvent) -> None:
        if isinstance(event, TextDeltaEvent):
            self.text += event.text_delta
        elif isinstance(event, ToolCallEvent):
            self.invocations[event.tool_call_id] = ToolInvocation(
                tool_call_id=event.tool_call_id, tool_name=event.tool_name, args=event.args
            )
        elif isinstance(event, ToolResultEvent):
            pending = self.invocations.get(event.tool_call_id)
            if pending is not None:
                result = ToolResult(
                    tool_call_id=event.tool_call_id,
                    tool_name=event.tool_name,
                    state=event.state,
                    result=event.result,
                    error=event.error,
                )
                self.invocations[event.tool_call_id] = pending.resolve(result)
        elif isinstance(event, StepFinishEvent):
            self.messages.append(
                Message(
                    id=event.message_id,
                    role="assistant",
                    content=self.text,
                    tool_invocations=list(self.invocations.values()),
                )
            )
            self.text = ""
            self.invocations = {}
        elif isinstance(event, ErrorEvent):
            self.errors.append(event.message)
        elif isinstance(event, FinishEvent):
            self.finish = event

    @property
    def current(self) -> list[ToolInvocation]:
        """Invocations of the round in progress, in call order."""
        return list(self.invocations.values())
