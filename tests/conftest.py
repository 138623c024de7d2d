"""Shared fixtures: a scripted language model and in-memory collaborators."""

import asyncio
from collections.abc import AsyncIterator
from datetime import datetime
from typing import Any
from unittest.mock import AsyncMock

import pytest

from assistant.clients.google import GoogleContext
from assistant.models.llm import LLMMessage, LLMResponse, LLMToolDefinition, TextBlock, TextDelta, ToolUseBlock
from assistant.services.calendar import Attendee, CalendarEvent
from assistant.tools.base import ToolContext
from assistant.tools.registry import Collaborators, build_default_registry


def text_turn(text: str) -> list[Any]:
    """A model turn that only answers with text."""
    return [
        TextDelta(text=text),
        LLMResponse(content=[TextBlock(text=text)], stop_reason="end_turn", usage=None, model="stub"),
    ]


def tool_turn(*calls: tuple[str, str, dict[str, Any]], text: str = "") -> list[Any]:
    """A model turn requesting the given (id, name, arguments) tool calls."""
    content: list[Any] = [TextBlock(text=text)] if text else []
    content.extend(ToolUseBlock(id=call_id, name=name, input=args) for call_id, name, args in calls)
    items: list[Any] = [TextDelta(text=text)] if text else []
    items.append(LLMResponse(content=content, stop_reason="tool_use", usage=None, model="stub"))
    return items


class ScriptedModel:
    """Language model stub replaying scripted turns and recording what it was sent."""

    def __init__(
        self,
        turns: list[list[Any] | Exception] | None = None,
        repeat_last: bool = False,
        max_message_tokens: int = 1000,
    ):
        self.turns = list(turns or [])
        self.repeat_last = repeat_last
        self.max_message_tokens = max_message_tokens
        self.calls: list[list[LLMMessage]] = []
        self.system_prompts: list[str] = []

    def validate_message(self, content: str) -> None:
        # Same 4 characters per token estimate as the client without a tokenizer
        if len(content) // 4 > self.max_message_tokens:
            raise ValueError(f"Your message is too long. Please keep messages under {self.max_message_tokens} tokens.")

    async def stream_message(
        self, messages: list[LLMMessage], system_prompt: str, tools: list[LLMToolDefinition]
    ) -> AsyncIterator[Any]:
        self.calls.append(list(messages))
        self.system_prompts.append(system_prompt)

        index = len(self.calls) - 1
        if index >= len(self.turns):
            if not self.repeat_last or not self.turns:
                raise AssertionError(f"Model called more times than scripted ({index + 1})")
            index = len(self.turns) - 1

        turn = self.turns[index]
        if isinstance(turn, Exception):
            raise turn
        for item in turn:
            yield item


class EndlessToolModel:
    """Model stub that always asks for one more tool call."""

    def __init__(self, tool_name: str = "listTasks"):
        self.tool_name = tool_name
        self.rounds = 0

    async def stream_message(
        self, messages: list[LLMMessage], system_prompt: str, tools: list[LLMToolDefinition]
    ) -> AsyncIterator[Any]:
        self.rounds += 1
        for item in tool_turn((f"call_{self.rounds}", self.tool_name, {}), text=f"Round {self.rounds}"):
            yield item


class FakeCalendar:
    def __init__(self, events: list[CalendarEvent] | None = None, slots: list[datetime] | None = None):
        self.events = events or []
        self.slots = slots or []
        self.list_calls: list[Any] = []
        self.create_event = AsyncMock(return_value={"id": "evt_1", "meetLink": "https://meet.google.com/abc"})

    async def list_events(self, context, options):
        self.list_calls.append(options)
        return self.events

    async def get_next_available_slots(self, context, number_of_days, timezone):
        return self.slots


class FakeGeolocation:
    def __init__(self, lat: float = 35.6595, lng: float = 139.7005):
        self.location = {"location": {"lat": lat, "lng": lng}, "accuracy": 50.0}

    async def get_location(self, context):
        return self.location


class FakePlaces:
    def __init__(self):
        self.calls: list[dict[str, Any]] = []

    async def search_places(self, context, query, place_type=None, radius=None, location=None, **kwargs):
        self.calls.append({"query": query, "place_type": place_type, "radius": radius, "location": location})
        return {
            "places": [
                {"name": "Himalayan Kitchen", "address": "1-2-3 Shibuya", "rating": 4.6},
                {"name": "Everest Dining", "address": "4-5-6 Shibuya", "rating": 4.3},
            ],
            "total": 2,
        }


class SlowTasks:
    """Tasks collaborator whose calls can be delayed per task id."""

    def __init__(self, delays: dict[str, float] | None = None):
        self.delays = delays or {}
        self.completed: list[str] = []
        self.list_tasks = AsyncMock(return_value=[{"id": "t1", "title": "Buy milk", "status": "needsAction"}])
        self.create_task_list = AsyncMock(return_value={"success": True, "taskList": {"id": "l1", "title": "Home"}})
        self.create_task = AsyncMock(return_value={"success": True, "task": {"id": "t2", "title": "New"}})

    async def update_task_status(self, context, task_id, list_id="@default", completed=True):
        await asyncio.sleep(self.delays.get(task_id, 0))
        self.completed.append(task_id)
        return {"success": True, "task": {"id": task_id, "status": "completed" if completed else "needsAction"}}


@pytest.fixture
def tool_context() -> ToolContext:
    return ToolContext(google=GoogleContext(api_key="test-key"), timezone="Asia/Tokyo")


@pytest.fixture
def sample_events() -> list[CalendarEvent]:
    return [
        CalendarEvent(
            id="e1",
            title="Standup",
            start=datetime.fromisoformat("2026-10-19T10:00:00+09:00"),
            end=datetime.fromisoformat("2026-10-19T10:15:00+09:00"),
            attendees=[Attendee(email="team@example.com")],
            status="confirmed",
        ),
        CalendarEvent(
            id="e2",
            title="Design review",
            start=datetime.fromisoformat("2026-10-19T14:30:00+09:00"),
            end=datetime.fromisoformat("2026-10-19T15:30:00+09:00"),
            status="confirmed",
        ),
        CalendarEvent(
            id="e3",
            title="Dentist",
            start=datetime.fromisoformat("2026-10-21T09:00:00+09:00"),
            end=datetime.fromisoformat("2026-10-21T10:00:00+09:00"),
            location="Shibuya",
            status="confirmed",
        ),
    ]


@pytest.fixture
def collaborators(sample_events) -> Collaborators:
    return Collaborators(
        calendar=FakeCalendar(events=sample_events),
        mail=AsyncMock(),
        tasks=SlowTasks(),
        docs=AsyncMock(),
        contacts=AsyncMock(),
        places=FakePlaces(),
        geolocation=FakeGeolocation(),
        search=AsyncMock(),
    )


@pytest.fixture
def registry(collaborators):
    return build_default_registry(collaborators)
