"""Tools for the conversational AI assistant."""

from assistant.tools.base import ToolContext, ToolDefinition
from assistant.tools.registry import Collaborators, ToolsRegistry, build_default_registry, get_tools_registry

__all__ = [
    "Collaborators",
    "ToolContext",
    "ToolDefinition",
    "ToolsRegistry",
    "build_default_registry",
    "get_tools_registry",
]
