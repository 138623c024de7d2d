"""Google Docs and Drive collaborator."""

import asyncio
from dataclasses import dataclass
from typing import Any, Literal, Protocol

from googleapiclient.errors import HttpError

from assistant.clients.google import GoogleContext, build_service
from assistant.utils.logging import get_logger

logger = get_logger(__name__)

DOC_MIME_TYPE = "application/vnd.google-apps.document"
BULLET_PREFIXES = ("•", "-")


class DocsService(Protocol):
    async def create_doc(
        self, context: GoogleContext, title: str, content: str, folder_id: str | None = None
    ) -> dict[str, Any]: ...

    async def update_doc(self, context: GoogleContext, document_id: str, content: str) -> dict[str, Any]: ...

    async def list_docs(self, context: GoogleContext, query: str | None = None) -> list[dict[str, Any]]: ...

    async def get_doc_content(self, context: GoogleContext, document_id: str) -> dict[str, Any]: ...


@dataclass
class FormattedLine:
    text: str
    style: Literal["HEADING_1", "HEADING_2", "NORMAL_TEXT"] | None = None
    bullet: bool = False
    bold: bool = False


def _utf16_length(text: str) -> int:
    # Docs indexes are UTF-16 code units
    return len(text.encode("utf-16-le")) // 2


def parse_line(line: str) -> FormattedLine:
    """Classify one line of plain text by its lightweight markup prefix."""
    if line.startswith("Title:"):
        return FormattedLine(text=line[len("Title:") :].strip(), style="HEADING_1", bold=True)
    if line.startswith("Section:"):
        return FormattedLine(text=line[len("Section:") :].strip(), style="HEADING_2")

    stripped = line.strip()
    if stripped.startswith(BULLET_PREFIXES):
        return FormattedLine(text=stripped[1:].strip(), bullet=True)
    return FormattedLine(text=stripped, style="NORMAL_TEXT")


def build_format_requests(content: str) -> list[dict[str, Any]]:
    """Translate plain text into Docs batchUpdate requests.

    `Title:` lines become bold level-1 headings, `Section:` lines level-2
    headings, lines starting with a bullet or dash become bulleted paragraphs.

    Args:
        content: Plain text, one paragraph per line

    Returns:
        Requests in insertion order, starting at index 1
    """
    requests: list[dict[str, Any]] = []
    index = 1

    for line in content.split("\n"):
        if not line.strip():
            requests.append({"insertText": {"location": {"index": index}, "text": "\n"}})
            index += 1
            continue

        formatted = parse_line(line)
        end = index + _utf16_length(formatted.text)

        requests.append({"insertText": {"location": {"index": index}, "text": formatted.text + "\n"}})
        if formatted.style:
            requests.append(
                {
                    "updateParagraphStyle": {
                        "range": {"startIndex": index, "endIndex": end + 1},
                        "paragraphStyle": {"namedStyleType": formatted.style},
                        "fields": "namedStyleType",
                    }
                }
            )
        if formatted.bullet:
            requests.append(
                {
                    "createParagraphBullets": {
                        "range": {"startIndex": index, "endIndex": end + 1},
                        "bulletPreset": "BULLET_DISC_CIRCLE_SQUARE",
                    }
                }
            )
        if formatted.bold and end > index:
            requests.append(
                {
                    "updateTextStyle": {
                        "range": {"startIndex": index, "endIndex": end},
                        "textStyle": {"bold": True},
                        "fields": "bold",
                    }
                }
            )

        index = end + 1

    return requests


def extract_text(document: dict[str, Any]) -> str:
    """Concatenate the text runs of a Docs document body."""
    parts: list[str] = []
    for element in document.get("body", {}).get("content", []):
        for item in element.get("paragraph", {}).get("elements", []):
            text_run = item.get("textRun")
            if text_run:
                parts.append(text_run.get("content", ""))
    return "".join(parts)


def _escape_query(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


class GoogleDocsService:
    """Document operations backed by the Docs v1 and Drive v3 APIs."""

    async def create_doc(
        self, context: GoogleContext, title: str, content: str, folder_id: str | None = None
    ) -> dict[str, Any]:
        drive = build_service("drive", "v3", context)
        metadata: dict[str, Any] = {"name": title, "mimeType": DOC_MIME_TYPE}
        if folder_id:
            metadata["parents"] = [folder_id]

        created = await asyncio.to_thread(drive.files().create(body=metadata, fields="id, webViewLink").execute)
        document_id = created["id"]

        if content:
            docs = build_service("docs", "v1", context)
            requests = build_format_requests(content)
            await asyncio.to_thread(
                docs.documents().batchUpdate(documentId=document_id, body={"requests": requests}).execute
            )

        logger.info(f"Created document {document_id}")
        return {"success": True, "doc": {"id": document_id, "title": title, "link": created.get("webViewLink")}}

    async def update_doc(self, context: GoogleContext, document_id: str, content: str) -> dict[str, Any]:
        """Replace the whole body of a document with `content`."""
        docs = build_service("docs", "v1", context)
        document = await asyncio.to_thread(docs.documents().get(documentId=document_id).execute)

        body_content = document.get("body", {}).get("content", [])
        # The final newline of the body cannot be deleted
        end_index = body_content[-1].get("endIndex", 1) - 1 if body_content else 1

        requests: list[dict[str, Any]] = []
        if end_index > 1:
            requests.append({"deleteContentRange": {"range": {"startIndex": 1, "endIndex": end_index}}})
        requests.append({"insertText": {"location": {"index": 1}, "text": content}})

        request = docs.documents().batchUpdate(documentId=document_id, body={"requests": requests})
        await asyncio.to_thread(request.execute)
        return {"success": True, "message": "Document updated successfully"}

    async def list_docs(self, context: GoogleContext, query: str | None = None) -> list[dict[str, Any]]:
        drive = build_service("drive", "v3", context)
        q = f"mimeType='{DOC_MIME_TYPE}' and trashed=false"
        if query:
            q += f" and name contains '{_escape_query(query)}'"

        response = await asyncio.to_thread(
            drive.files()
            .list(q=q, fields="files(id, name, webViewLink, createdTime)", orderBy="createdTime desc", pageSize=10)
            .execute
        )
        return response.get("files", [])

    async def get_doc_content(self, context: GoogleContext, document_id: str) -> dict[str, Any]:
        docs = build_service("docs", "v1", context)
        try:
            document = await asyncio.to_thread(docs.documents().get(documentId=document_id).execute)
        except HttpError as e:
            logger.warning(f"Failed to fetch document {document_id}: HTTP {e.status_code}")
            return {"success": False, "error": f"Could not retrieve document (HTTP {e.status_code})"}

        return {
            "success": True,
            "document": {"id": document_id, "title": document.get("title", ""), "content": extract_text(document)},
        }
