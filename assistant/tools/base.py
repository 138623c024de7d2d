"""Base types and definitions for tools."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from pydantic_core import to_json

from assistant.clients.google import GoogleContext
from assistant.models.llm import LLMToolDefinition


EMAIL_PATTERN = r"^[^@\s,]+@[^@\s,]+\.[^@\s,]+$"


@dataclass(frozen=True)
class ToolContext:
    """Per-request context handed to every tool handler."""

    google: GoogleContext
    timezone: str = "UTC"


ToolHandler = Callable[[Any, ToolContext], Awaitable[Any]]


@dataclass(frozen=True)
class ToolDefinition:
    """Definition of a tool available to the AI assistant."""

    name: str
    description: str
    input_schema_class: type[BaseModel]
    handler: ToolHandler

    def get_json_schema(self) -> dict[str, Any]:
        """Get JSON schema for this tool's input."""
        return self.input_schema_class.model_json_schema(by_alias=True)

    def parse_input(self, raw_input: dict[str, Any]) -> BaseModel:
        """Parse and validate tool input.

        Arguments are checked as JSON in strict mode, so a number sent as a
        string or "yes" for a boolean is rejected rather than coerced.

        Raises:
            pydantic.ValidationError: If the arguments violate the schema
        """
        return self.input_schema_class.model_validate_json(to_json(raw_input), strict=True)

    def describe(self) -> LLMToolDefinition:
        return LLMToolDefinition(name=self.name, description=self.description, input_schema=self.get_json_schema())


class ToolInput(BaseModel):
    """Base for tool argument schemas. Field names are camelCase on the model side."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")
