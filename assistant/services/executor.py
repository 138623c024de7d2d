"""Tool executor: validates model-requested tool calls and runs them against collaborators."""

import asyncio
import re
from typing import Any

import httpx
from googleapiclient.errors import HttpError
from pydantic import ValidationError
from pydantic_core import to_jsonable_python

from assistant.exceptions import GoogleNotConnectedError
from assistant.models.chat import ToolErrorKind, ToolInvocationRequest, ToolResult
from assistant.tools.base import ToolContext
from assistant.tools.registry import ToolsRegistry
from assistant.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TOOL_TIMEOUT = 8.0
MAX_ERROR_LENGTH = 300

_secret_patterns = [
    (re.compile(r"(?i)bearer\s+[\w\-.~+/]+=*"), "Bearer [redacted]"),
    (re.compile(r"(?i)(key|token|access_token|refresh_token)=[^&\s\"']+"), r"\1=[redacted]"),
]


def format_validation_error(error: ValidationError) -> str:
    """Field-level description of schema violations, e.g. 'numberOfDays: Input should be ...'."""
    parts = []
    for detail in error.errors():
        path = ".".join(str(loc) for loc in detail["loc"]) or "arguments"
        parts.append(f"{path}: {detail['msg']}")
    return "; ".join(parts)


def sanitize_error(error: BaseException) -> str:
    """Describe a collaborator failure without leaking credentials or raw payloads."""
    if isinstance(error, HttpError):
        message = f"Google API request failed with HTTP {error.status_code}"
        reason = error.reason if isinstance(error.reason, str) else None
        if reason:
            message += f": {reason}"
    elif isinstance(error, httpx.HTTPStatusError):
        message = f"Request failed with HTTP {error.response.status_code}"
    elif isinstance(error, httpx.TimeoutException):
        message = "Request timed out"
    elif isinstance(error, GoogleNotConnectedError):
        message = str(error)
    else:
        message = str(error) or type(error).__name__

    for pattern, replacement in _secret_patterns:
        message = pattern.sub(replacement, message)

    if len(message) > MAX_ERROR_LENGTH:
        message = message[: MAX_ERROR_LENGTH - 3] + "..."
    return message


class ToolExecutor:
    """Runs one tool invocation request and always produces a terminal ToolResult."""

    def __init__(self, registry: ToolsRegistry, timeout: float = DEFAULT_TOOL_TIMEOUT):
        """Initialize executor.

        Args:
            registry: Tool definitions to resolve requests against
            timeout: Seconds each collaborator call may take
        """
        self.registry = registry
        self.timeout = timeout

    async def execute(self, request: ToolInvocationRequest, context: ToolContext) -> ToolResult:
        """Execute a tool request.

        Unknown tools, invalid arguments and collaborator failures are returned
        as error results, never raised. Only task cancellation propagates.
        """
        tool = self.registry.lookup(request.name)
        if tool is None:
            logger.warning(f"Unknown tool requested: {request.name}")
            return ToolResult.failure(request, ToolErrorKind.UNKNOWN_TOOL, f"Unknown tool: {request.name}")

        try:
            params = tool.parse_input(request.arguments)
        except ValidationError as e:
            message = format_validation_error(e)
            logger.info(f"Invalid arguments for {request.name}: {message}")
            return ToolResult.failure(request, ToolErrorKind.INVALID_ARGUMENTS, message)

        logger.debug(f"Executing tool: {request.name} ({request.id})")
        try:
            payload = await asyncio.wait_for(tool.handler(params, context), timeout=self.timeout)
        except TimeoutError:
            logger.warning(f"Tool {request.name} timed out after {self.timeout}s")
            return ToolResult.failure(
                request, ToolErrorKind.EXTERNAL_FAILURE, f"{request.name} timed out after {self.timeout:g} seconds"
            )
        except Exception as e:
            logger.error(f"Tool {request.name} failed: {type(e).__name__}", exc_info=True)
            return ToolResult.failure(request, ToolErrorKind.EXTERNAL_FAILURE, sanitize_error(e))

        return self._normalize(request, payload)

    def _normalize(self, request: ToolInvocationRequest, payload: Any) -> ToolResult:
        data = to_jsonable_python(payload, fallback=str)

        if isinstance(data, dict) and data.get("success") is False:
            error = data.get("error")
            message = error if isinstance(error, str) else f"{request.name} did not succeed"
            return ToolResult.failure(request, ToolErrorKind.EXTERNAL_FAILURE, sanitize_error(RuntimeError(message)))

        logger.debug(f"Tool {request.name} succeeded")
        return ToolResult.success(request, data)
