"""Terminal renderers for tool invocations, selected by tool name."""

from collections.abc import Callable
from typing import Any

from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.pretty import Pretty
from rich.table import Table
from rich.text import Text

from assistant.models.chat import ToolInvocation

Renderer = Callable[[Any], RenderableType]

MAX_DOC_PREVIEW = 1200


def render_availability(result: dict[str, list[str]]) -> RenderableType:
    if not result:
        return Text("No available slots in that period.", style="yellow")
    table = Table(title="Available slots")
    table.add_column("Date", style="bold")
    table.add_column("Times")
    for day, times in result.items():
        table.add_row(day, ", ".join(times))
    return table


def render_events(result: dict[str, list[dict[str, Any]]]) -> RenderableType:
    if not result:
        return Text("No events found.", style="yellow")
    table = Table(title="Calendar")
    table.add_column("Date", style="bold")
    table.add_column("Time")
    table.add_column("Event")
    table.add_column("Location", style="dim")
    for day, events in result.items():
        for i, event in enumerate(events):
            label = day if i == 0 else ""
            table.add_row(label, event.get("time", ""), event.get("title", ""), event.get("location", ""))
    return table


def render_meeting_created(result: dict[str, Any]) -> RenderableType:
    start = result.get("start", {}).get("dateTime", "")
    lines = [Text(result.get("summary", "Meeting"), style="bold"), Text(f"Starts: {start}")]
    if result.get("meetLink"):
        lines.append(Text(f"Meet: {result['meetLink']}", style="cyan"))
    return Panel(Group(*lines), title="✅ Meeting scheduled", border_style="green")


def render_emails(result: list[dict[str, Any]]) -> RenderableType:
    if not result:
        return Text("No emails found.", style="yellow")
    table = Table(title="Recent emails")
    table.add_column("From", style="bold", max_width=30)
    table.add_column("Subject")
    table.add_column("Date", style="dim", max_width=25)
    for email in result:
        table.add_row(email.get("from") or "", email.get("subject") or "(no subject)", email.get("date") or "")
    return table


def _task_row(task: dict[str, Any]) -> tuple[str, str, str]:
    done = "✓" if task.get("status") == "completed" else "○"
    return done, task.get("title") or "", task.get("due") or ""


def render_tasks(result: Any) -> RenderableType:
    if isinstance(result, dict) and "taskList" in result:
        return Text(f"📋 Task list created: {result['taskList'].get('title')}", style="green")

    tasks = result if isinstance(result, list) else [result.get("task", {})]
    if not tasks:
        return Text("No tasks.", style="yellow")
    table = Table(title="Tasks")
    table.add_column("", width=2)
    table.add_column("Title")
    table.add_column("Due", style="dim")
    for task in tasks:
        table.add_row(*_task_row(task))
    return table


def render_docs(result: Any) -> RenderableType:
    docs = result if isinstance(result, list) else [result.get("doc", {})]
    if not docs:
        return Text("No documents found.", style="yellow")
    table = Table(title="Documents")
    table.add_column("Title", style="bold")
    table.add_column("Link", style="cyan")
    table.add_column("ID", style="dim")
    for doc in docs:
        title = doc.get("name") or doc.get("title") or ""
        table.add_row(title, doc.get("webViewLink") or doc.get("link") or "", doc.get("id", ""))
    return table


def render_doc_content(result: dict[str, Any]) -> RenderableType:
    document = result.get("document", {})
    content = document.get("content", "")
    if len(content) > MAX_DOC_PREVIEW:
        content = content[:MAX_DOC_PREVIEW] + "…"
    return Panel(content, title=f"📄 {document.get('title', 'Document')}", border_style="blue")


def render_search_results(result: dict[str, Any]) -> RenderableType:
    items = result.get("items", [])
    if not items:
        return Text("No results.", style="yellow")
    lines = []
    for item in items:
        lines.append(Text(item.get("title") or "", style="bold"))
        lines.append(Text(item.get("link") or "", style="cyan"))
        lines.append(Text(item.get("snippet") or "", style="dim"))
    return Panel(Group(*lines), title="🔎 Web results")


def render_places(result: dict[str, Any]) -> RenderableType:
    places = result.get("places", [])
    if not places:
        return Text("No places found.", style="yellow")
    table = Table(title="Places")
    table.add_column("Name", style="bold")
    table.add_column("Address")
    table.add_column("Rating", justify="right")
    for place in places:
        rating = place.get("rating")
        table.add_row(place.get("name") or "", place.get("address") or "", "" if rating is None else str(rating))
    return table


def render_default(result: Any) -> RenderableType:
    return Pretty(result, max_length=20)


RENDERERS: dict[str, Renderer] = {
    "getAvailability": render_availability,
    "listEvents": render_events,
    "createCalendarEvent": render_meeting_created,
    "readEmails": render_emails,
    "createTaskList": render_tasks,
    "createTask": render_tasks,
    "listTasks": render_tasks,
    "updateTaskStatus": render_tasks,
    "createDoc": render_docs,
    "listDocs": render_docs,
    "getDocContent": render_doc_content,
    "searchWeb": render_search_results,
    "searchPlaces": render_places,
}


def render_invocation(invocation: ToolInvocation) -> RenderableType:
    """Render any invocation state; unknown tools fall back to a generic view."""
    if invocation.state == "pending":
        return Text(f"⏳ Running {invocation.tool_name}…", style="dim")

    if invocation.state == "error":
        error = invocation.error
        message = f"{error.kind}: {error.message}" if error else "Unknown error"
        return Panel(Text(message, style="red"), title=f"❌ {invocation.tool_name}", border_style="red")

    renderer = RENDERERS.get(invocation.tool_name, render_default)
    try:
        return renderer(invocation.result)
    except (AttributeError, KeyError, TypeError):
        # Payload did not have the expected shape
        return render_default(invocation.result)
