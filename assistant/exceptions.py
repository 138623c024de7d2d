"""Exceptions raised across the assistant service."""


class DuplicateToolError(ValueError):
    """Raised when a tool name is registered twice."""

    def __init__(self, name: str):
        super().__init__(f"Tool '{name}' is already registered")
        self.name = name


class ModelUnavailableError(RuntimeError):
    """The language model could not produce a turn (transport, auth or quota outage)."""


class GoogleNotConnectedError(RuntimeError):
    """No usable Google credentials were supplied with the request."""
