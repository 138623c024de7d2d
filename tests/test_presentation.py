"""Tests for client-side transcript assembly and tool renderers."""

from rich.panel import Panel
from rich.pretty import Pretty
from rich.table import Table
from rich.text import Text

from assistant.models.chat import ToolError, ToolErrorKind, ToolInvocation
from assistant.models.events import FinishEvent, StepFinishEvent, TextDeltaEvent, ToolCallEvent, ToolResultEvent
from assistant.presentation import RENDERERS, TranscriptBuilder, parse_sse_lines, render_invocation
from assistant.services.stream import encode_event


def sse_lines(*events) -> list[str]:
    return "".join(encode_event(event) for event in events).split("\n")


class TestParseSSE:
    """Tests for reading SSE lines back into events."""

    def test_round_trip_through_frames(self):
        """Test that encoded frames parse back into the same events."""
        events = [
            TextDeltaEvent(text_delta="Hi"),
            ToolCallEvent(tool_call_id="c1", tool_name="listTasks"),
            FinishEvent(finish_reason="stop", steps=1),
        ]

        assert list(parse_sse_lines(sse_lines(*events))) == events

    def test_ignores_comments_and_event_lines(self):
        """Test that keep-alive comments and event names are skipped."""
        lines = [": keep-alive", "", "event: text-delta", 'data: {"type": "text-delta", "textDelta": "x"}', ""]

        [event] = list(parse_sse_lines(lines))

        assert event == TextDeltaEvent(text_delta="x")

    def test_trailing_frame_without_blank_line(self):
        """Test that a final frame is parsed even without a terminating blank line."""
        lines = ['data: {"type": "finish", "finishReason": "error"}']

        [event] = list(parse_sse_lines(lines))

        assert event.finish_reason == "error"


class TestTranscriptBuilder:
    """Tests for folding events into messages."""

    def test_rounds_committed_on_step_finish(self):
        """Test that each step becomes one assistant message with its invocations."""
        transcript = TranscriptBuilder()
        for event in [
            TextDeltaEvent(text_delta="Let me "),
            TextDeltaEvent(text_delta="check."),
            ToolCallEvent(tool_call_id="c1", tool_name="listTasks"),
            ToolResultEvent(tool_call_id="c1", tool_name="listTasks", state="result", result=[]),
            StepFinishEvent(step=1, message_id="m1"),
            TextDeltaEvent(text_delta="Nothing to do."),
            StepFinishEvent(step=2, message_id="m2"),
            FinishEvent(finish_reason="stop", steps=2),
        ]:
            transcript.feed(event)

        first, second = transcript.messages
        assert (first.id, first.content) == ("m1", "Let me check.")
        assert first.tool_invocations[0].state == "result"
        assert (second.id, second.content, second.tool_invocations) == ("m2", "Nothing to do.", [])
        assert transcript.finish.finish_reason == "stop"

    def test_pending_until_result(self):
        """Test that an invocation stays pending until its result arrives."""
        transcript = TranscriptBuilder()
        transcript.feed(ToolCallEvent(tool_call_id="c1", tool_name="searchWeb", args={"query": "tea"}))

        assert [i.state for i in transcript.current] == ["pending"]

        transcript.feed(
            ToolResultEvent(
                tool_call_id="c1",
                tool_name="searchWeb",
                state="error",
                error=ToolError(kind=ToolErrorKind.EXTERNAL_FAILURE, message="quota"),
            )
        )

        assert transcript.current[0].error.message == "quota"

    def test_uncommitted_round_is_not_a_message(self):
        """Test that a cancelled round leaves no message behind."""
        transcript = TranscriptBuilder()
        transcript.feed(ToolCallEvent(tool_call_id="c1", tool_name="listTasks"))
        transcript.feed(FinishEvent(finish_reason="cancelled"))

        assert transcript.messages == []
        assert transcript.finish.finish_reason == "cancelled"


class TestRenderers:
    """Tests for picking a view per tool."""

    def test_pending_view(self):
        """Test the in-progress view."""
        rendered = render_invocation(ToolInvocation(tool_call_id="c1", tool_name="listEvents"))
        assert isinstance(rendered, Text)
        assert "listEvents" in rendered.plain

    def test_error_view(self):
        """Test that errors show their kind and message."""
        invocation = ToolInvocation(
            tool_call_id="c1",
            tool_name="sendEmail",
            state="error",
            error=ToolError(kind=ToolErrorKind.INVALID_ARGUMENTS, message="to: Invalid email address"),
        )

        rendered = render_invocation(invocation)

        assert isinstance(rendered, Panel)
        assert "InvalidArguments: to: Invalid email address" in rendered.renderable.plain

    def test_availability_table(self):
        """Test that availability renders as a table with one row per day."""
        invocation = ToolInvocation(
            tool_call_id="c1",
            tool_name="getAvailability",
            state="result",
            result={"Monday, October 19, 2026": ["11:00 AM", "11:30 AM"]},
        )

        rendered = render_invocation(invocation)

        assert isinstance(rendered, Table)
        assert rendered.row_count == 1

    def test_empty_availability(self):
        """Test the empty availability message."""
        invocation = ToolInvocation(tool_call_id="c1", tool_name="getAvailability", state="result", result={})
        assert isinstance(render_invocation(invocation), Text)

    def test_unknown_tool_uses_default(self):
        """Test that tools without a dedicated renderer use the generic view."""
        invocation = ToolInvocation(tool_call_id="c1", tool_name="createContact", state="result", result={"id": 1})
        assert "createContact" not in RENDERERS
        assert isinstance(render_invocation(invocation), Pretty)

    def test_unexpected_shape_falls_back(self):
        """Test that a payload of the wrong shape does not break rendering."""
        invocation = ToolInvocation(tool_call_id="c1", tool_name="searchPlaces", state="result", result=["odd"])
        assert isinstance(render_invocation(invocation), Pretty)
