"""Request and response models for the HTTP API."""

from datetime import datetime

from pydantic import BaseModel, Field

from assistant.models.chat import Message, WireModel


class ChatRequest(WireModel):
    """Request model for the chat endpoint. The client sends the full history."""

    messages: list[Message] = Field(min_length=1)


class TaskUpdateRequest(WireModel):
    """Request model for the task status shortcut used by the task list UI."""

    task_id: str
    list_id: str | None = None
    completed: bool | None = None


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    timestamp: datetime
    version: str
