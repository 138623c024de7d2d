"""Gmail collaborator."""

import asyncio
import base64
from email.message import EmailMessage
from email.utils import formatdate
from typing import Any, Protocol

from assistant.clients.google import GoogleContext, build_service
from assistant.utils.logging import get_logger

logger = get_logger(__name__)


class MailService(Protocol):
    async def get_emails(self, context: GoogleContext, count: int, folder: str = "INBOX") -> list[dict[str, Any]]: ...

    async def send_email(
        self,
        context: GoogleContext,
        to: str,
        subject: str,
        body: str,
        cc: str | None = None,
        bcc: str | None = None,
    ) -> dict[str, Any]: ...


def build_raw_message(
    sender: str, to: str, subject: str, body: str, cc: str | None = None, bcc: str | None = None
) -> str:
    """RFC 2822 message encoded as unpadded base64url, as Gmail expects in `raw`."""
    message = EmailMessage()
    message["From"] = sender
    message["To"] = to
    if cc:
        message["Cc"] = cc
    if bcc:
        message["Bcc"] = bcc
    message["Subject"] = subject
    message["Date"] = formatdate(usegmt=True)
    message.set_content(body)

    return base64.urlsafe_b64encode(message.as_bytes()).decode().rstrip("=")


def _header(headers: list[dict[str, str]], name: str) -> str | None:
    return next((h["value"] for h in headers if h.get("name") == name), None)


class GmailService:
    """Mail operations backed by the Gmail v1 API."""

    async def get_emails(self, context: GoogleContext, count: int, folder: str = "INBOX") -> list[dict[str, Any]]:
        service = build_service("gmail", "v1", context)
        listing = await asyncio.to_thread(
            service.users().messages().list(userId="me", maxResults=count, labelIds=[folder]).execute
        )

        emails = []
        for ref in listing.get("messages", []):
            message = await asyncio.to_thread(
                service.users()
                .messages()
                .get(userId="me", id=ref["id"], format="metadata", metadataHeaders=["Subject", "From", "Date"])
                .execute
            )
            headers = message.get("payload", {}).get("headers", [])
            emails.append(
                {
                    "id": ref["id"],
                    "subject": _header(headers, "Subject"),
                    "from": _header(headers, "From"),
                    "date": _header(headers, "Date"),
                    "snippet": message.get("snippet"),
                }
            )

        logger.debug(f"Fetched {len(emails)} emails from {folder}")
        return emails

    async def send_email(
        self,
        context: GoogleContext,
        to: str,
        subject: str,
        body: str,
        cc: str | None = None,
        bcc: str | None = None,
    ) -> dict[str, Any]:
        service = build_service("gmail", "v1", context)
        profile = await asyncio.to_thread(service.users().getProfile(userId="me").execute)

        raw = build_raw_message(profile["emailAddress"], to, subject, body, cc=cc, bcc=bcc)
        sent = await asyncio.to_thread(service.users().messages().send(userId="me", body={"raw": raw}).execute)
        logger.info(f"Sent email {sent.get('id')}")

        return {"success": True, "messageId": sent.get("id")}
