"""Google Tasks tools."""

from datetime import datetime
from typing import Any

from pydantic import Field

from assistant.services.tasks import DEFAULT_LIST, TasksService
from assistant.tools.base import ToolContext, ToolDefinition, ToolInput


class CreateTaskListInput(ToolInput):
    title: str = Field(..., min_length=1)


class CreateTaskInput(ToolInput):
    title: str = Field(..., min_length=1)
    notes: str | None = None
    due: datetime | None = Field(None, description="Due date (ISO 8601)")
    list_id: str | None = Field(None, description="Task list id, the default list if omitted")


class ListTasksInput(ToolInput):
    list_id: str | None = None
    show_completed: bool | None = None


class UpdateTaskStatusInput(ToolInput):
    task_id: str = Field(..., min_length=1)
    list_id: str | None = None
    completed: bool | None = Field(None, description="True to complete the task (default), false to reopen it")


def create_task_list_tool(tasks: TasksService) -> ToolDefinition:
    async def create_task_list(params: CreateTaskListInput, context: ToolContext) -> dict[str, Any]:
        return await tasks.create_task_list(context.google, params.title)

    return ToolDefinition(
        name="createTaskList",
        description="Create a new task list in Google Tasks.",
        input_schema_class=CreateTaskListInput,
        handler=create_task_list,
    )


def create_task_tool(tasks: TasksService) -> ToolDefinition:
    async def create_task(params: CreateTaskInput, context: ToolContext) -> dict[str, Any]:
        return await tasks.create_task(
            context.google,
            title=params.title,
            notes=params.notes,
            due=params.due,
            list_id=params.list_id or DEFAULT_LIST,
        )

    return ToolDefinition(
        name="createTask",
        description="Create a new task in Google Tasks.",
        input_schema_class=CreateTaskInput,
        handler=create_task,
    )


def create_list_tasks_tool(tasks: TasksService) -> ToolDefinition:
    async def list_tasks(params: ListTasksInput, context: ToolContext) -> list[dict[str, Any]]:
        return await tasks.list_tasks(
            context.google, list_id=params.list_id or DEFAULT_LIST, show_completed=bool(params.show_completed)
        )

    return ToolDefinition(
        name="listTasks",
        description="List tasks from a task list (the default list if none is given).",
        input_schema_class=ListTasksInput,
        handler=list_tasks,
    )


def create_update_task_status_tool(tasks: TasksService) -> ToolDefinition:
    async def update_task_status(params: UpdateTaskStatusInput, context: ToolContext) -> dict[str, Any]:
        return await tasks.update_task_status(
            context.google,
            task_id=params.task_id,
            list_id=params.list_id or DEFAULT_LIST,
            completed=True if params.completed is None else params.completed,
        )

    return ToolDefinition(
        name="updateTaskStatus",
        description="Mark a task as completed or reopen it.",
        input_schema_class=UpdateTaskStatusInput,
        handler=update_task_status,
    )
