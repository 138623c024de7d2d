"""Response stream adapter: orchestrator events to Server-Sent Events."""

from collections.abc import AsyncIterator, Awaitable, Callable

from assistant.models.events import StreamEvent, ToolCallEvent, ToolResultEvent
from assistant.services.orchestrator import CancellationToken
from assistant.utils.logging import get_logger

logger = get_logger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def encode_event(event: StreamEvent) -> str:
    """Serialize one event as an SSE frame."""
    return f"event: {event.type}\ndata: {event.model_dump_json(by_alias=True)}\n\n"


async def stream_events(
    events: AsyncIterator[StreamEvent],
    cancellation: CancellationToken,
    is_disconnected: Callable[[], Awaitable[bool]] | None = None,
) -> AsyncIterator[str]:
    """Write orchestrator events as SSE frames in arrival order.

    A tool-result is never written before the tool-call of the same id; early
    results are held back and flushed right after their tool-call. When the
    client goes away the cancellation token is set and the event source closed.

    Args:
        events: Orchestrator event stream
        cancellation: Token shared with the orchestrator run
        is_disconnected: Returns True once the client has disconnected
    """
    started: set[str] = set()
    held: dict[str, ToolResultEvent] = {}

    try:
        async for event in events:
            if is_disconnected is not None and await is_disconnected():
                logger.info("Client disconnected, cancelling conversation run")
                cancellation.cancel()
                break

            if isinstance(event, ToolResultEvent) and event.tool_call_id not in started:
                held[event.tool_call_id] = event
                continue

            yield encode_event(event)

            if isinstance(event, ToolCallEvent):
                started.add(event.tool_call_id)
                early = held.pop(event.tool_call_id, None)
                if early is not None:
                    yield encode_event(early)
    finally:
        aclose = getattr(events, "aclose", None)
        if aclose is not None:
            await aclose()

    if held:
        logger.warning(f"Dropped {len(held)} tool results without a matching tool call")
