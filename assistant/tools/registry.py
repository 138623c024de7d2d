"""Tools registry for managing AI assistant tools."""

from dataclasses import dataclass, field

from assistant.exceptions import DuplicateToolError
from assistant.models.llm import LLMToolDefinition
from assistant.services.calendar import CalendarService, GoogleCalendarService
from assistant.services.contacts import ContactsService, GoogleContactsService
from assistant.services.docs import DocsService, GoogleDocsService
from assistant.services.mail import GmailService, MailService
from assistant.services.places import (
    GeolocationService,
    GoogleGeolocationService,
    GooglePlacesService,
    GoogleSearchService,
    PlacesService,
    SearchService,
)
from assistant.services.tasks import GoogleTasksService, TasksService
from assistant.tools.base import ToolDefinition
from assistant.tools.calendar import create_calendar_event_tool, create_get_availability_tool, create_list_events_tool
from assistant.tools.contacts import create_contact_tool, create_search_contacts_tool, create_update_contact_tool
from assistant.tools.docs import (
    create_doc_tool,
    create_get_doc_content_tool,
    create_list_docs_tool,
    create_update_doc_tool,
)
from assistant.tools.mail import create_read_emails_tool, create_send_email_tool
from assistant.tools.places import create_get_location_tool, create_search_places_tool, create_search_web_tool
from assistant.tools.tasks import (
    create_list_tasks_tool,
    create_task_list_tool,
    create_task_tool,
    create_update_task_status_tool,
)
from assistant.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class Collaborators:
    """External services the default tools delegate to."""

    calendar: CalendarService = field(default_factory=GoogleCalendarService)
    mail: MailService = field(default_factory=GmailService)
    tasks: TasksService = field(default_factory=GoogleTasksService)
    docs: DocsService = field(default_factory=GoogleDocsService)
    contacts: ContactsService = field(default_factory=GoogleContactsService)
    places: PlacesService = field(default_factory=GooglePlacesService)
    geolocation: GeolocationService = field(default_factory=GoogleGeolocationService)
    search: SearchService = field(default_factory=GoogleSearchService)


class ToolsRegistry:
    """Registry of tool definitions, populated at startup and read-only afterwards."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolDefinition] = {}

    def register(self, tool: ToolDefinition) -> None:
        """Register a new tool.

        Raises:
            DuplicateToolError: If a tool with the same name is already registered
        """
        if tool.name in self._tools:
            raise DuplicateToolError(tool.name)
        self._tools[tool.name] = tool

    def lookup(self, name: str) -> ToolDefinition | None:
        """Find a tool by exact name."""
        return self._tools.get(name)

    def describe_all(self) -> list[LLMToolDefinition]:
        """Name, description and JSON schema of every tool, in registration order."""
        return [tool.describe() for tool in self._tools.values()]

    def get_tool_names(self) -> list[str]:
        """Get list of all registered tool names."""
        return list(self._tools.keys())

    def has_tool(self, name: str) -> bool:
        """Check if a tool is registered."""
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


def build_default_registry(collaborators: Collaborators | None = None) -> ToolsRegistry:
    """Registry holding the assistant's standard tool set."""
    collaborators = collaborators or Collaborators()
    registry = ToolsRegistry()

    tools = [
        create_list_events_tool(collaborators.calendar),
        create_get_availability_tool(collaborators.calendar),
        create_calendar_event_tool(collaborators.calendar),
        create_read_emails_tool(collaborators.mail),
        create_send_email_tool(collaborators.mail),
        create_task_list_tool(collaborators.tasks),
        create_task_tool(collaborators.tasks),
        create_list_tasks_tool(collaborators.tasks),
        create_update_task_status_tool(collaborators.tasks),
        create_doc_tool(collaborators.docs),
        create_update_doc_tool(collaborators.docs),
        create_list_docs_tool(collaborators.docs),
        create_get_doc_content_tool(collaborators.docs),
        create_contact_tool(collaborators.contacts),
        create_update_contact_tool(collaborators.contacts),
        create_search_contacts_tool(collaborators.contacts),
        create_search_places_tool(collaborators.places),
        create_get_location_tool(collaborators.geolocation),
        create_search_web_tool(collaborators.search),
    ]
    for tool in tools:
        registry.register(tool)

    logger.info(f"Registered {len(registry)} tools")
    return registry


_tools_registry: ToolsRegistry | None = None


def get_tools_registry() -> ToolsRegistry:
    """Get or create tools registry instance."""
    global _tools_registry
    if _tools_registry is None:
        _tools_registry = build_default_registry()
    return _tools_registry
