"""Google Tasks collaborator."""

import asyncio
from datetime import UTC, datetime
from typing import Any, Protocol

from assistant.clients.google import GoogleContext, build_service
from assistant.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_LIST = "@default"


class TasksService(Protocol):
    async def create_task_list(self, context: GoogleContext, title: str) -> dict[str, Any]: ...

    async def create_task(
        self,
        context: GoogleContext,
        title: str,
        notes: str | None = None,
        due: datetime | None = None,
        list_id: str = DEFAULT_LIST,
    ) -> dict[str, Any]: ...

    async def list_tasks(
        self, context: GoogleContext, list_id: str = DEFAULT_LIST, show_completed: bool = False
    ) -> list[dict[str, Any]]: ...

    async def update_task_status(
        self, context: GoogleContext, task_id: str, list_id: str = DEFAULT_LIST, completed: bool = True
    ) -> dict[str, Any]: ...


def _task_summary(task: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": task.get("id"),
        "title": task.get("title"),
        "notes": task.get("notes"),
        "due": task.get("due"),
        "status": task.get("status"),
        "completed": task.get("completed"),
    }


def status_patch(completed: bool, now: datetime | None = None) -> dict[str, Any]:
    """Body for a status change; completion carries its timestamp."""
    if completed:
        return {"status": "completed", "completed": (now or datetime.now(UTC)).isoformat()}
    return {"status": "needsAction", "completed": None}


class GoogleTasksService:
    """Task operations backed by the Google Tasks v1 API."""

    async def create_task_list(self, context: GoogleContext, title: str) -> dict[str, Any]:
        service = build_service("tasks", "v1", context)
        created = await asyncio.to_thread(service.tasklists().insert(body={"title": title}).execute)
        return {"success": True, "taskList": {"id": created.get("id"), "title": created.get("title")}}

    async def create_task(
        self,
        context: GoogleContext,
        title: str,
        notes: str | None = None,
        due: datetime | None = None,
        list_id: str = DEFAULT_LIST,
    ) -> dict[str, Any]:
        service = build_service("tasks", "v1", context)
        body: dict[str, Any] = {"title": title, "notes": notes or "", "status": "needsAction"}
        if due:
            body["due"] = due.astimezone(UTC).isoformat()

        created = await asyncio.to_thread(service.tasks().insert(tasklist=list_id, body=body).execute)
        logger.info(f"Created task {created.get('id')} in list {list_id}")
        return {"success": True, "task": _task_summary(created)}

    async def list_tasks(
        self, context: GoogleContext, list_id: str = DEFAULT_LIST, show_completed: bool = False
    ) -> list[dict[str, Any]]:
        service = build_service("tasks", "v1", context)
        response = await asyncio.to_thread(
            service.tasks().list(tasklist=list_id, showCompleted=show_completed, maxResults=100).execute
        )
        return response.get("items", [])

    async def update_task_status(
        self, context: GoogleContext, task_id: str, list_id: str = DEFAULT_LIST, completed: bool = True
    ) -> dict[str, Any]:
        service = build_service("tasks", "v1", context)
        updated = await asyncio.to_thread(
            service.tasks().patch(tasklist=list_id, task=task_id, body=status_patch(completed)).execute
        )
        logger.info(f"Task {task_id} marked {'completed' if completed else 'needsAction'}")
        return {"success": True, "task": _task_summary(updated)}
