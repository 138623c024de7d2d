"""Google Docs tools."""

from typing import Any

from pydantic import Field

from assistant.services.docs import DocsService
from assistant.tools.base import ToolContext, ToolDefinition, ToolInput


class CreateDocInput(ToolInput):
    title: str = Field(..., min_length=1, description="The title of the document")
    content: str = Field(
        ...,
        description=(
            "The content in plain text. Start a line with 'Title:' for the main heading, "
            "'Section:' for section headings and '•' or '-' for bullet points."
        ),
    )
    folder_id: str | None = Field(None, description="Optional Google Drive folder ID to save the document in")


class UpdateDocInput(ToolInput):
    document_id: str = Field(..., min_length=1)
    content: str


class ListDocsInput(ToolInput):
    query: str | None = Field(None, description="Search query to find specific documents by name")


class GetDocContentInput(ToolInput):
    document_id: str = Field(..., min_length=1, description="The ID of the document to retrieve")


def create_doc_tool(docs: DocsService) -> ToolDefinition:
    async def create_doc(params: CreateDocInput, context: ToolContext) -> dict[str, Any]:
        return await docs.create_doc(context.google, params.title, params.content, folder_id=params.folder_id)

    return ToolDefinition(
        name="createDoc",
        description=(
            "Create a new Google Doc. Provide the content in plain text; headings and bullet points "
            "marked with the prefixes described in the schema are formatted with Google Docs styles."
        ),
        input_schema_class=CreateDocInput,
        handler=create_doc,
    )


def create_update_doc_tool(docs: DocsService) -> ToolDefinition:
    async def update_doc(params: UpdateDocInput, context: ToolContext) -> dict[str, Any]:
        return await docs.update_doc(context.google, params.document_id, params.content)

    return ToolDefinition(
        name="updateDoc",
        description="Replace the content of an existing Google Doc.",
        input_schema_class=UpdateDocInput,
        handler=update_doc,
    )


def create_list_docs_tool(docs: DocsService) -> ToolDefinition:
    async def list_docs(params: ListDocsInput, context: ToolContext) -> list[dict[str, Any]]:
        return await docs.list_docs(context.google, params.query)

    return ToolDefinition(
        name="listDocs",
        description="Search and list Google Docs. If no query is provided, lists recent docs.",
        input_schema_class=ListDocsInput,
        handler=list_docs,
    )


def create_get_doc_content_tool(docs: DocsService) -> ToolDefinition:
    async def get_doc_content(params: GetDocContentInput, context: ToolContext) -> dict[str, Any]:
        return await docs.get_doc_content(context.google, params.document_id)

    return ToolDefinition(
        name="getDocContent",
        description="Get the text content of a Google Doc by its ID, e.g. to summarize or analyse it.",
        input_schema_class=GetDocContentInput,
        handler=get_doc_content,
    )
