"""Email tools."""

import re
from typing import Any

from pydantic import Field, field_validator

from assistant.services.mail import MailService
from assistant.tools.base import EMAIL_PATTERN, ToolContext, ToolDefinition, ToolInput

_email_re = re.compile(EMAIL_PATTERN)


def _validate_address_list(value: str | None) -> str | None:
    """Accept comma separated addresses and normalize spacing."""
    if value is None:
        return None
    addresses = [part.strip() for part in value.split(",") if part.strip()]
    if not addresses:
        raise ValueError("At least one email address is required")
    invalid = [a for a in addresses if not _email_re.match(a)]
    if invalid:
        raise ValueError(f"Invalid email address: {', '.join(invalid)}")
    return ", ".join(addresses)


class ReadEmailsInput(ToolInput):
    """Input schema for reading recent emails."""

    count: int = Field(..., ge=1, le=50, description="Number of recent emails to fetch")
    folder: str | None = Field(None, description="Gmail label to read from, INBOX by default")


class SendEmailInput(ToolInput):
    """Input schema for sending an email."""

    to: str = Field(..., description="Recipient address, or several separated by commas")
    subject: str
    body: str
    cc: str | None = None
    bcc: str | None = None

    @field_validator("to", "cc", "bcc")
    @classmethod
    def validate_addresses(cls, v: str | None) -> str | None:
        return _validate_address_list(v)


def create_read_emails_tool(mail: MailService) -> ToolDefinition:
    async def read_emails(params: ReadEmailsInput, context: ToolContext) -> list[dict[str, Any]]:
        return await mail.get_emails(context.google, params.count, params.folder or "INBOX")

    return ToolDefinition(
        name="readEmails",
        description="Fetch recent emails (subject, sender, date and snippet) so they can be summarized.",
        input_schema_class=ReadEmailsInput,
        handler=read_emails,
    )


def create_send_email_tool(mail: MailService) -> ToolDefinition:
    async def send_email(params: SendEmailInput, context: ToolContext) -> dict[str, Any]:
        return await mail.send_email(
            context.google, to=params.to, subject=params.subject, body=params.body, cc=params.cc, bcc=params.bcc
        )

    return ToolDefinition(
        name="sendEmail",
        description="Send a plain text email. Confirm the recipient, subject and body with the user first.",
        input_schema_class=SendEmailInput,
        handler=send_email,
    )
