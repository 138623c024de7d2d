"""Calendar tools: list events, check availability, schedule meetings."""

from collections.abc import Iterable
from datetime import datetime
from typing import Any, Literal
from zoneinfo import ZoneInfo

from pydantic import Field

from assistant.services.calendar import CalendarEvent, CalendarService, ListEventsOptions
from assistant.tools.base import EMAIL_PATTERN, ToolContext, ToolDefinition, ToolInput


def date_key(moment: datetime, tz: ZoneInfo) -> str:
    """Local date heading, e.g. 'Monday, October 19, 2026'."""
    local = _localize(moment, tz)
    return f"{local:%A, %B} {local.day}, {local.year}"


def time_label(moment: datetime, tz: ZoneInfo) -> str:
    """Local 12-hour time, e.g. '02:30 PM'."""
    return f"{_localize(moment, tz):%I:%M %p}"


def _localize(moment: datetime, tz: ZoneInfo) -> datetime:
    # All-day events come back as naive dates
    if moment.tzinfo is None:
        return moment.replace(tzinfo=tz)
    return moment.astimezone(tz)


def group_slots_by_date(slots: Iterable[datetime], tz: ZoneInfo) -> dict[str, list[str]]:
    grouped: dict[str, list[str]] = {}
    for slot in slots:
        grouped.setdefault(date_key(slot, tz), []).append(time_label(slot, tz))
    return grouped


def group_events_by_date(events: Iterable[CalendarEvent], tz: ZoneInfo) -> dict[str, list[dict[str, Any]]]:
    grouped: dict[str, list[dict[str, Any]]] = {}
    for event in events:
        grouped.setdefault(date_key(event.start, tz), []).append(
            {
                "id": event.id,
                "title": event.title,
                "time": time_label(event.start, tz),
                "description": event.description,
                "attendees": [a.model_dump() for a in event.attendees],
                "location": event.location,
                "status": event.status,
            }
        )
    return grouped


class ListEventsInput(ToolInput):
    """Input schema for listing calendar events."""

    time_min: datetime | None = Field(None, description="Start of the range (ISO 8601). Defaults to now.")
    time_max: datetime | None = Field(None, description="End of the range (ISO 8601)")
    max_results: int | None = Field(None, ge=1, le=100)
    order_by: Literal["startTime", "updated"] | None = None
    query: str | None = Field(None, description="Free text search within events")
    status: Literal["confirmed", "tentative", "cancelled"] | None = None
    single_events: bool | None = Field(None, description="Expand recurring events into instances")


class GetAvailabilityInput(ToolInput):
    """Input schema for availability lookup."""

    number_of_days: int = Field(..., ge=1, le=30, description="How many days ahead to look")


class CreateCalendarEventInput(ToolInput):
    """Input schema for scheduling a meeting."""

    start_time: datetime = Field(..., description="Meeting start (ISO 8601), normally one of the available slots")
    guest_name: str = Field(..., min_length=1)
    guest_email: str = Field(..., pattern=EMAIL_PATTERN)
    guest_notes: str | None = None
    event_name: str = Field(..., min_length=1, description="Short meeting title")


def create_list_events_tool(calendar: CalendarService) -> ToolDefinition:
    async def list_events(params: ListEventsInput, context: ToolContext) -> dict[str, list[dict[str, Any]]]:
        options = ListEventsOptions(
            time_min=params.time_min,
            time_max=params.time_max,
            max_results=params.max_results or 100,
            order_by=params.order_by or "startTime",
            query=params.query,
            status=params.status,
            single_events=True if params.single_events is None else params.single_events,
        )
        events = await calendar.list_events(context.google, options)
        return group_events_by_date(events, ZoneInfo(context.timezone))

    return ToolDefinition(
        name="listEvents",
        description=(
            "List calendar events with advanced filtering options. "
            "Results are grouped by local date with 12-hour start times."
        ),
        input_schema_class=ListEventsInput,
        handler=list_events,
    )


def create_get_availability_tool(calendar: CalendarService) -> ToolDefinition:
    async def get_availability(params: GetAvailabilityInput, context: ToolContext) -> dict[str, list[str]]:
        slots = await calendar.get_next_available_slots(context.google, params.number_of_days, context.timezone)
        return group_slots_by_date(slots, ZoneInfo(context.timezone))

    return ToolDefinition(
        name="getAvailability",
        description=(
            "Get available 30 minute time slots within working hours for a given number of days. "
            "Results are grouped by local date."
        ),
        input_schema_class=GetAvailabilityInput,
        handler=get_availability,
    )


def create_calendar_event_tool(calendar: CalendarService) -> ToolDefinition:
    async def create_calendar_event(params: CreateCalendarEventInput, context: ToolContext) -> dict[str, Any]:
        return await calendar.create_event(
            context.google,
            guest_name=params.guest_name,
            guest_email=params.guest_email,
            start_time=params.start_time,
            event_name=params.event_name,
            guest_notes=params.guest_notes,
            timezone=context.timezone,
        )

    return ToolDefinition(
        name="createCalendarEvent",
        description=(
            "Schedule a 30 minute calendar event with a Google Meet link and send the invitation. "
            "Returns the event details including meetLink."
        ),
        input_schema_class=CreateCalendarEventInput,
        handler=create_calendar_event,
    )
