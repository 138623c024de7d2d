"""Google Calendar collaborator: events, availability and meeting creation."""

import asyncio
from datetime import datetime, time, timedelta
from typing import Any, Literal, Protocol
from zoneinfo import ZoneInfo

from cuid2 import cuid_wrapper
from pydantic import BaseModel, Field

from assistant.clients.google import GoogleContext, build_service
from assistant.utils.logging import get_logger

logger = get_logger(__name__)

cuid = cuid_wrapper()

WORKING_HOURS_START = 11
WORKING_HOURS_END = 20
SLOT_MINUTES = 30


class Attendee(BaseModel):
    email: str
    name: str = ""


class CalendarEvent(BaseModel):
    """A calendar event as exposed to tools."""

    id: str
    title: str
    start: datetime
    end: datetime
    description: str = ""
    attendees: list[Attendee] = Field(default_factory=list)
    location: str = ""
    status: str = "unknown"


class ListEventsOptions(BaseModel):
    """Filters for listing events; all optional."""

    time_min: datetime | None = None
    time_max: datetime | None = None
    max_results: int = 100
    order_by: Literal["startTime", "updated"] = "startTime"
    query: str | None = None
    status: Literal["confirmed", "tentative", "cancelled"] | None = None
    single_events: bool = True


class CalendarService(Protocol):
    """Calendar operations used by the assistant tools."""

    async def list_events(self, context: GoogleContext, options: ListEventsOptions) -> list[CalendarEvent]: ...

    async def get_next_available_slots(
        self, context: GoogleContext, number_of_days: int, timezone: str
    ) -> list[datetime]: ...

    async def create_event(
        self,
        context: GoogleContext,
        guest_name: str,
        guest_email: str,
        start_time: datetime,
        event_name: str,
        guest_notes: str | None = None,
        duration_minutes: int = SLOT_MINUTES,
        timezone: str = "UTC",
    ) -> dict[str, Any]: ...


def next_working_start(now: datetime, tz: ZoneInfo) -> datetime:
    """Move `now` to the start of the next working window if it is outside one."""
    local = now.astimezone(tz)
    opening = time(hour=WORKING_HOURS_START)

    if local.hour < WORKING_HOURS_START:
        return datetime.combine(local.date(), opening, tzinfo=tz)
    if local.hour >= WORKING_HOURS_END:
        return datetime.combine(local.date() + timedelta(days=1), opening, tzinfo=tz)
    return local


def compute_available_slots(
    start: datetime,
    end: datetime,
    busy: list[tuple[datetime, datetime]],
    tz: ZoneInfo,
    slot_minutes: int = SLOT_MINUTES,
) -> list[datetime]:
    """Slots of `slot_minutes` starting in [start, end) within working hours that overlap no busy period.

    Args:
        start: First candidate slot start (timezone-aware)
        end: Exclusive upper bound for slot starts
        busy: Busy periods as (start, end) pairs
        tz: Timezone that defines working hours
        slot_minutes: Slot length and step

    Returns:
        Slot start times in `tz`, ascending
    """
    step = timedelta(minutes=slot_minutes)
    slots: list[datetime] = []
    current = start.astimezone(tz)

    while current < end:
        if WORKING_HOURS_START <= current.hour < WORKING_HOURS_END:
            slot_end = current + step
            overlaps = any(current < busy_end and slot_end > busy_start for busy_start, busy_end in busy)
            if not overlaps:
                slots.append(current)
        current = current + step

    return slots


def _parse_google_time(value: dict[str, Any]) -> datetime:
    # All-day events only carry a date
    if "dateTime" in value:
        return datetime.fromisoformat(value["dateTime"])
    return datetime.fromisoformat(value["date"])


class GoogleCalendarService:
    """Calendar operations backed by the Google Calendar v3 API."""

    calendar_id = "primary"

    async def list_events(self, context: GoogleContext, options: ListEventsOptions) -> list[CalendarEvent]:
        service = build_service("calendar", "v3", context)
        time_min = options.time_min or datetime.now(ZoneInfo("UTC"))

        params: dict[str, Any] = {
            "calendarId": self.calendar_id,
            "timeMin": time_min.isoformat(),
            "maxResults": options.max_results,
            "singleEvents": options.single_events,
            "showDeleted": False,
        }
        # Google rejects orderBy=startTime unless recurring events are expanded
        if options.single_events or options.order_by == "updated":
            params["orderBy"] = options.order_by
        if options.time_max:
            params["timeMax"] = options.time_max.isoformat()
        if options.query:
            params["q"] = options.query

        response = await asyncio.to_thread(service.events().list(**params).execute)
        items = response.get("items", [])
        logger.debug(f"Fetched {len(items)} calendar events")

        events = [
            CalendarEvent(
                id=item["id"],
                title=item.get("summary", "(no title)"),
                start=_parse_google_time(item["start"]),
                end=_parse_google_time(item["end"]),
                description=item.get("description", ""),
                attendees=[
                    Attendee(email=a.get("email", ""), name=a.get("displayName", ""))
                    for a in item.get("attendees", [])
                ],
                location=item.get("location", ""),
                status=item.get("status", "unknown"),
            )
            for item in items
        ]
        if options.status:
            events = [event for event in events if event.status == options.status]
        return events

    async def get_busy_periods(
        self, context: GoogleContext, start: datetime, end: datetime
    ) -> list[tuple[datetime, datetime]]:
        service = build_service("calendar", "v3", context)
        body = {"timeMin": start.isoformat(), "timeMax": end.isoformat(), "items": [{"id": self.calendar_id}]}
        response = await asyncio.to_thread(service.freebusy().query(body=body).execute)

        busy = response.get("calendars", {}).get(self.calendar_id, {}).get("busy", [])
        return [(datetime.fromisoformat(b["start"]), datetime.fromisoformat(b["end"])) for b in busy]

    async def get_next_available_slots(
        self, context: GoogleContext, number_of_days: int, timezone: str, now: datetime | None = None
    ) -> list[datetime]:
        """Free slots from now until `number_of_days` ahead."""
        tz = ZoneInfo(timezone)
        now = now or datetime.now(tz)
        end = now + timedelta(days=number_of_days)
        start = next_working_start(now, tz)

        logger.info(f"Getting available calendar slots between {start.isoformat()} and {end.isoformat()}")
        busy = await self.get_busy_periods(context, start, end)
        return compute_available_slots(start, end, busy, tz)

    async def create_event(
        self,
        context: GoogleContext,
        guest_name: str,
        guest_email: str,
        start_time: datetime,
        event_name: str,
        guest_notes: str | None = None,
        duration_minutes: int = SLOT_MINUTES,
        timezone: str = "UTC",
    ) -> dict[str, Any]:
        """Create an event with a Google Meet link and send invitations."""
        service = build_service("calendar", "v3", context)
        if start_time.tzinfo is None:
            start_time = start_time.replace(tzinfo=ZoneInfo(timezone))
        end_time = start_time + timedelta(minutes=duration_minutes)

        body: dict[str, Any] = {
            "summary": f"{guest_name}: {event_name}",
            "attendees": [{"email": guest_email, "displayName": guest_name}],
            "start": {"dateTime": start_time.isoformat(), "timeZone": timezone},
            "end": {"dateTime": end_time.isoformat(), "timeZone": timezone},
            "conferenceData": {
                "createRequest": {"requestId": cuid(), "conferenceSolutionKey": {"type": "hangoutsMeet"}}
            },
        }
        if guest_notes:
            body["description"] = f"Additional Details: {guest_notes}"

        request = service.events().insert(
            calendarId=self.calendar_id, body=body, conferenceDataVersion=1, sendUpdates="all"
        )
        event = await asyncio.to_thread(request.execute)
        logger.info(f"Created calendar event {event.get('id')} for {guest_email}")

        return {**event, "meetLink": event.get("hangoutLink")}
