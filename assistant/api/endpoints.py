"""API endpoints for the personal assistant service."""

from datetime import UTC, datetime

from fastapi import APIRouter, Cookie, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, StreamingResponse

from assistant import __version__
from assistant.clients.google import REFRESH_TOKEN_COOKIE, GoogleContext, context_from_refresh_token
from assistant.models.chat import ToolErrorKind, ToolInvocationRequest, cuid
from assistant.models.conversation import ChatRequest, HealthResponse, TaskUpdateRequest
from assistant.services.executor import ToolExecutor
from assistant.services.llm import get_llm_service
from assistant.services.orchestrator import CancellationToken, ConversationOrchestrator, OrchestratorConfig
from assistant.services.stream import SSE_HEADERS, stream_events
from assistant.tools.base import ToolContext
from assistant.tools.registry import get_tools_registry
from assistant.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()

_orchestrator: ConversationOrchestrator | None = None


def get_orchestrator() -> ConversationOrchestrator:
    """Get or create the conversation orchestrator."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = ConversationOrchestrator(get_llm_service(), get_tools_registry(), config=OrchestratorConfig())
    return _orchestrator


def get_tool_executor(orchestrator: ConversationOrchestrator = Depends(get_orchestrator)) -> ToolExecutor:
    return orchestrator.executor


def get_google_context(
    google_refresh_token: str | None = Cookie(default=None, alias=REFRESH_TOKEN_COOKIE),
) -> GoogleContext:
    """Per-request Google credentials from the OAuth refresh token cookie."""
    return context_from_refresh_token(google_refresh_token)


@router.post("/chat", tags=["Chat"])
async def chat(
    body: ChatRequest,
    request: Request,
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
    google: GoogleContext = Depends(get_google_context),
) -> StreamingResponse:
    """Run one chat turn and stream the assistant's response as Server-Sent Events.

    The client sends the full history; the last message must be the user's new message.
    """
    *history, latest = body.messages
    if latest.role != "user":
        raise HTTPException(status_code=400, detail="The last message must be a user message")
    if not latest.content.strip():
        raise HTTPException(status_code=400, detail="Message cannot be empty")
    try:
        orchestrator.validate_message(latest.content)
    except ValueError as e:
        logger.warning(f"Message validation error: {e}")
        raise HTTPException(status_code=400, detail=str(e)) from e

    logger.info(f"Chat turn with {len(history)} prior messages: {latest.content[:50]}...")

    conversation = orchestrator.new_conversation(history)
    context = ToolContext(google=google, timezone=orchestrator.config.timezone)
    cancellation = CancellationToken()
    events = orchestrator.run(conversation, latest, context, cancellation)

    return StreamingResponse(
        stream_events(events, cancellation, request.is_disconnected),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post("/tasks/update", tags=["Tasks"])
async def update_task(
    body: TaskUpdateRequest,
    executor: ToolExecutor = Depends(get_tool_executor),
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
    google: GoogleContext = Depends(get_google_context),
) -> JSONResponse:
    """Toggle a task's completion from the task list UI, outside of a chat turn."""
    tool_request = ToolInvocationRequest(
        id=cuid(),
        name="updateTaskStatus",
        arguments=body.model_dump(by_alias=True, exclude_none=True),
    )
    result = await executor.execute(tool_request, ToolContext(google=google, timezone=orchestrator.config.timezone))

    status_code = 200
    if result.error is not None:
        status_code = {
            ToolErrorKind.INVALID_ARGUMENTS: 422,
            ToolErrorKind.EXTERNAL_FAILURE: 502,
        }.get(result.error.kind, 500)
        logger.warning(f"Task update failed ({result.error.kind}): {result.error.message}")

    return JSONResponse(status_code=status_code, content=result.model_dump(mode="json", by_alias=True))


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        version=__version__,
    )
