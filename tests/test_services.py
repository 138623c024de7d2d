"""Tests for Google collaborator services and their pure helpers."""

import base64
import json
from datetime import datetime
from email import message_from_bytes
from unittest.mock import AsyncMock, MagicMock, Mock, patch
from zoneinfo import ZoneInfo

import httpx
import pytest
from googleapiclient.errors import HttpError

from assistant.clients.google import GoogleContext
from assistant.exceptions import GoogleNotConnectedError
from assistant.services.calendar import (
    GoogleCalendarService,
    ListEventsOptions,
    compute_available_slots,
    next_working_start,
)
from assistant.services.docs import GoogleDocsService, build_format_requests, extract_text
from assistant.services.mail import GmailService, build_raw_message
from assistant.services.places import GooglePlacesService, PlaceType, build_places_request, summarize_place
from assistant.services.tasks import status_patch
from assistant.tools.calendar import date_key, group_slots_by_date, time_label

TOKYO = ZoneInfo("Asia/Tokyo")


def tokyo(day: int, hour: int, minute: int = 0) -> datetime:
    return datetime(2026, 10, day, hour, minute, tzinfo=TOKYO)


@pytest.fixture
def google_context() -> GoogleContext:
    return GoogleContext(credentials=Mock(), api_key="test-key")


class TestAvailability:
    """Tests for free slot computation."""

    def test_slots_skip_busy_periods(self):
        """Test that slots overlapping a busy period are excluded."""
        busy = [(tokyo(19, 14), tokyo(19, 15)), (tokyo(19, 16, 10), tokyo(19, 16, 20))]

        slots = compute_available_slots(tokyo(19, 11), tokyo(19, 20), busy, TOKYO)

        labels = [f"{s:%H:%M}" for s in slots]
        assert labels[0] == "11:00"
        assert labels[-1] == "19:30"
        assert "13:30" in labels
        assert "14:00" not in labels
        assert "14:30" not in labels
        assert "15:00" in labels
        assert "16:00" not in labels
        assert "16:30" in labels
        assert len(slots) == 15

    def test_slots_stay_within_working_hours(self):
        """Test that slots spanning midnight only fall inside working hours."""
        slots = compute_available_slots(tokyo(19, 19), tokyo(20, 12), [], TOKYO)

        assert slots == [tokyo(19, 19), tokyo(19, 19, 30), tokyo(20, 11), tokyo(20, 11, 30)]

    def test_busy_in_other_timezone(self):
        """Test that busy periods reported in UTC are compared correctly."""
        utc = ZoneInfo("UTC")
        busy = [(datetime(2026, 10, 19, 2, 0, tzinfo=utc), datetime(2026, 10, 19, 3, 0, tzinfo=utc))]

        slots = compute_available_slots(tokyo(19, 11), tokyo(19, 13), busy, TOKYO)

        assert slots == [tokyo(19, 12), tokyo(19, 12, 30)]

    @pytest.mark.parametrize(
        ("now", "expected"),
        [
            (tokyo(19, 8), tokyo(19, 11)),
            (tokyo(19, 21), tokyo(20, 11)),
            (tokyo(19, 13, 17), tokyo(19, 13, 17)),
        ],
    )
    def test_next_working_start(self, now, expected):
        """Test moving the search start into working hours."""
        assert next_working_start(now, TOKYO) == expected

    @pytest.mark.asyncio
    async def test_next_available_slots_uses_free_busy(self, google_context):
        """Test that the calendar service combines free/busy data with working hours."""
        service = GoogleCalendarService()
        service.get_busy_periods = AsyncMock(return_value=[(tokyo(19, 11), tokyo(19, 12))])

        slots = await service.get_next_available_slots(google_context, 1, "Asia/Tokyo", now=tokyo(19, 9))

        start, end = service.get_busy_periods.await_args.args[1:]
        assert start == tokyo(19, 11)
        assert end == tokyo(20, 9)
        assert slots[0] == tokyo(19, 12)
        assert slots[-1] == tokyo(19, 19, 30)

    def test_slots_grouped_by_local_date(self):
        """Test grouping slots into date headings with 12-hour labels."""
        grouped = group_slots_by_date([tokyo(19, 11), tokyo(19, 14, 30), tokyo(20, 11)], TOKYO)

        assert grouped == {
            "Monday, October 19, 2026": ["11:00 AM", "02:30 PM"],
            "Tuesday, October 20, 2026": ["11:00 AM"],
        }

    def test_labels_convert_to_local_time(self):
        """Test that UTC instants are labelled in the user's timezone."""
        moment = datetime(2026, 10, 19, 16, 0, tzinfo=ZoneInfo("UTC"))
        assert date_key(moment, TOKYO) == "Tuesday, October 20, 2026"
        assert time_label(moment, TOKYO) == "01:00 AM"


class TestCalendarService:
    """Tests for the Google Calendar collaborator."""

    @pytest.mark.asyncio
    async def test_list_events_parses_and_filters(self, google_context):
        """Test that API items are parsed and filtered by status."""
        api = MagicMock()
        api.events.return_value.list.return_value.execute.return_value = {
            "items": [
                {
                    "id": "e1",
                    "summary": "Standup",
                    "start": {"dateTime": "2026-10-19T10:00:00+09:00"},
                    "end": {"dateTime": "2026-10-19T10:15:00+09:00"},
                    "attendees": [{"email": "a@example.com", "displayName": "A"}],
                    "status": "confirmed",
                },
                {
                    "id": "e2",
                    "start": {"date": "2026-10-20"},
                    "end": {"date": "2026-10-21"},
                    "status": "tentative",
                },
            ]
        }

        with patch("assistant.services.calendar.build_service", return_value=api):
            events = await GoogleCalendarService().list_events(
                google_context, ListEventsOptions(time_min=tokyo(19, 0), status="confirmed")
            )

        assert [e.id for e in events] == ["e1"]
        assert events[0].attendees[0].name == "A"
        params = api.events.return_value.list.call_args.kwargs
        assert params["orderBy"] == "startTime"
        assert params["singleEvents"] is True
        assert params["timeMin"] == "2026-10-19T00:00:00+09:00"

    @pytest.mark.asyncio
    async def test_list_events_untitled_all_day(self, google_context):
        """Test that all-day events without a summary get a placeholder title."""
        api = MagicMock()
        api.events.return_value.list.return_value.execute.return_value = {
            "items": [{"id": "e2", "start": {"date": "2026-10-20"}, "end": {"date": "2026-10-21"}}]
        }

        with patch("assistant.services.calendar.build_service", return_value=api):
            [event] = await GoogleCalendarService().list_events(google_context, ListEventsOptions())

        assert event.title == "(no title)"
        assert event.start == datetime(2026, 10, 20)

    @pytest.mark.asyncio
    async def test_create_event_requests_meet_link(self, google_context):
        """Test that meetings are created with conference data and invitations."""
        api = MagicMock()
        api.events.return_value.insert.return_value.execute.return_value = {
            "id": "evt_1",
            "hangoutLink": "https://meet.google.com/abc-defg-hij",
        }

        with patch("assistant.services.calendar.build_service", return_value=api):
            result = await GoogleCalendarService().create_event(
                google_context,
                guest_name="Alex",
                guest_email="alex@example.com",
                start_time=tokyo(20, 14),
                event_name="Project sync",
                timezone="Asia/Tokyo",
            )

        kwargs = api.events.return_value.insert.call_args.kwargs
        assert kwargs["conferenceDataVersion"] == 1
        assert kwargs["sendUpdates"] == "all"
        body = kwargs["body"]
        assert body["summary"] == "Alex: Project sync"
        assert body["end"]["dateTime"] == "2026-10-20T14:30:00+09:00"
        assert body["conferenceData"]["createRequest"]["conferenceSolutionKey"] == {"type": "hangoutsMeet"}
        assert result["meetLink"] == "https://meet.google.com/abc-defg-hij"


class TestDocs:
    """Tests for document formatting and the Docs collaborator."""

    def test_title_and_bullets(self):
        """Test that markup prefixes become heading, bold and bullet requests."""
        requests = build_format_requests("Title: Plan\n• one")

        assert requests[0] == {"insertText": {"location": {"index": 1}, "text": "Plan\n"}}
        assert requests[1]["updateParagraphStyle"]["paragraphStyle"] == {"namedStyleType": "HEADING_1"}
        assert requests[1]["updateParagraphStyle"]["range"] == {"startIndex": 1, "endIndex": 6}
        assert requests[2]["updateTextStyle"]["range"] == {"startIndex": 1, "endIndex": 5}
        assert requests[3] == {"insertText": {"location": {"index": 6}, "text": "one\n"}}
        assert requests[4]["createParagraphBullets"]["range"] == {"startIndex": 6, "endIndex": 10}

    def test_section_and_blank_lines(self):
        """Test level-2 headings and preserved blank lines."""
        requests = build_format_requests("Section: Notes\n\nplain")

        assert requests[1]["updateParagraphStyle"]["paragraphStyle"]["namedStyleType"] == "HEADING_2"
        assert requests[2] == {"insertText": {"location": {"index": 7}, "text": "\n"}}
        assert requests[3] == {"insertText": {"location": {"index": 8}, "text": "plain\n"}}

    def test_indexes_count_utf16_units(self):
        """Test that characters outside the BMP advance the index by two."""
        requests = build_format_requests("😀\nnext")

        assert requests[2] == {"insertText": {"location": {"index": 4}, "text": "next\n"}}

    def test_extract_text(self):
        """Test joining text runs of a document body."""
        document = {
            "body": {
                "content": [
                    {"sectionBreak": {}},
                    {
                        "paragraph": {
                            "elements": [{"textRun": {"content": "Hello "}}, {"textRun": {"content": "world\n"}}]
                        }
                    },
                ]
            }
        }
        assert extract_text(document) == "Hello world\n"

    @pytest.mark.asyncio
    async def test_get_doc_content_not_found(self, google_context):
        """Test that a missing document is reported as an unsuccessful payload."""
        api = MagicMock()
        api.documents.return_value.get.return_value.execute.side_effect = HttpError(
            Mock(status=404, reason="Not Found"), b"{}"
        )

        with patch("assistant.services.docs.build_service", return_value=api):
            result = await GoogleDocsService().get_doc_content(google_context, "missing")

        assert result == {"success": False, "error": "Could not retrieve document (HTTP 404)"}

    @pytest.mark.asyncio
    async def test_update_doc_replaces_body(self, google_context):
        """Test that an update deletes the old body before inserting the new text."""
        api = MagicMock()
        api.documents.return_value.get.return_value.execute.return_value = {
            "body": {"content": [{"endIndex": 1}, {"endIndex": 42}]}
        }

        with patch("assistant.services.docs.build_service", return_value=api):
            await GoogleDocsService().update_doc(google_context, "doc1", "New text")

        requests = api.documents.return_value.batchUpdate.call_args.kwargs["body"]["requests"]
        assert requests[0] == {"deleteContentRange": {"range": {"startIndex": 1, "endIndex": 41}}}
        assert requests[1] == {"insertText": {"location": {"index": 1}, "text": "New text"}}


class TestMail:
    """Tests for message encoding and the Gmail collaborator."""

    def test_build_raw_message(self):
        """Test that the raw message decodes to the expected headers and body."""
        raw = build_raw_message(
            "me@example.com", "a@example.com, b@example.com", "Hello", "Body text", cc="c@example.com"
        )

        assert "=" not in raw
        message = message_from_bytes(base64.urlsafe_b64decode(raw + "=" * (-len(raw) % 4)))
        assert message["From"] == "me@example.com"
        assert message["To"] == "a@example.com, b@example.com"
        assert message["Cc"] == "c@example.com"
        assert message["Subject"] == "Hello"
        assert message.get_payload().strip() == "Body text"

    @pytest.mark.asyncio
    async def test_send_email_uses_profile_address(self, google_context):
        """Test that mail is sent from the authenticated account."""
        api = MagicMock()
        users = api.users.return_value
        users.getProfile.return_value.execute.return_value = {"emailAddress": "me@example.com"}
        users.messages.return_value.send.return_value.execute.return_value = {"id": "m1"}

        with patch("assistant.services.mail.build_service", return_value=api):
            result = await GmailService().send_email(google_context, to="a@example.com", subject="Hi", body="Hey")

        assert result == {"success": True, "messageId": "m1"}
        raw = users.messages.return_value.send.call_args.kwargs["body"]["raw"]
        message = message_from_bytes(base64.urlsafe_b64decode(raw + "=" * (-len(raw) % 4)))
        assert message["From"] == "me@example.com"

    @pytest.mark.asyncio
    async def test_get_emails_reads_headers(self, google_context):
        """Test that message metadata is flattened into summaries."""
        api = MagicMock()
        messages = api.users.return_value.messages.return_value
        messages.list.return_value.execute.return_value = {"messages": [{"id": "m1"}]}
        messages.get.return_value.execute.return_value = {
            "snippet": "See you at 3",
            "payload": {
                "headers": [
                    {"name": "Subject", "value": "Meeting"},
                    {"name": "From", "value": "Alex <alex@example.com>"},
                    {"name": "Date", "value": "Mon, 19 Oct 2026 09:00:00 +0900"},
                ]
            },
        }

        with patch("assistant.services.mail.build_service", return_value=api):
            emails = await GmailService().get_emails(google_context, 1)

        assert emails == [
            {
                "id": "m1",
                "subject": "Meeting",
                "from": "Alex <alex@example.com>",
                "date": "Mon, 19 Oct 2026 09:00:00 +0900",
                "snippet": "See you at 3",
            }
        ]
        assert messages.list.call_args.kwargs["labelIds"] == ["INBOX"]


class TestTasks:
    """Tests for task status changes."""

    def test_complete_patch(self):
        """Test that completing a task records when it happened."""
        now = tokyo(19, 10)
        assert status_patch(True, now=now) == {"status": "completed", "completed": now.isoformat()}

    def test_reopen_patch(self):
        """Test that reopening clears the completion timestamp."""
        assert status_patch(False) == {"status": "needsAction", "completed": None}


class TestPlaces:
    """Tests for Places request building and result shaping."""

    def test_request_with_location_bias(self):
        """Test that a location produces a circular bias with the default radius."""
        body = build_places_request("ramen", place_type=PlaceType.RESTAURANT, location=(35.66, 139.70))

        assert body["textQuery"] == "ramen"
        assert body["includedType"] == "restaurant"
        assert body["locationBias"]["circle"] == {
            "center": {"latitude": 35.66, "longitude": 139.70},
            "radius": 5000.0,
        }

    def test_request_without_location(self):
        """Test that no bias is sent without a location."""
        body = build_places_request("museum", radius=1000, open_now=True)

        assert "locationBias" not in body
        assert "includedType" not in body
        assert body["openNow"] is True

    def test_summarize_place(self):
        """Test flattening a place and capping its reviews."""
        place = {
            "id": "p1",
            "displayName": {"text": "Himalayan Kitchen"},
            "formattedAddress": "1-2-3 Shibuya",
            "rating": 4.6,
            "userRatingCount": 210,
            "reviews": [
                {"authorAttribution": {"displayName": f"R{i}"}, "rating": 5, "text": {"text": "Great"}}
                for i in range(5)
            ],
        }

        summary = summarize_place(place)

        assert summary["name"] == "Himalayan Kitchen"
        assert summary["totalRatings"] == 210
        assert summary["placeId"] == "p1"
        assert [r["author"] for r in summary["reviews"]] == ["R0", "R1", "R2"]
        assert summary["photos"] == []

    @pytest.mark.asyncio
    async def test_search_places_sends_key_and_field_mask(self, google_context):
        """Test the Places request headers and the summarized response."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"places": [{"id": "p1", "displayName": {"text": "Cafe"}}]})

        real_client = httpx.AsyncClient
        with patch(
            "assistant.services.places.httpx.AsyncClient",
            lambda timeout: real_client(transport=httpx.MockTransport(handler), timeout=timeout),
        ):
            result = await GooglePlacesService().search_places(google_context, "cafe", open_now=True)

        assert seen["headers"]["X-Goog-Api-Key"] == "test-key"
        assert "places.displayName" in seen["headers"]["X-Goog-FieldMask"]
        assert seen["body"]["textQuery"] == "cafe"
        assert result["total"] == 1
        assert result["places"][0]["name"] == "Cafe"

    @pytest.mark.asyncio
    async def test_places_requires_api_key(self):
        """Test that a missing API key is reported before any request is made."""
        with pytest.raises(GoogleNotConnectedError):
            await GooglePlacesService().search_places(GoogleContext(), "cafe")
