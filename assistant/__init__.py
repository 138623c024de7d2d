"""Personal assistant service orchestrating language-model tool calls."""

__version__ = "0.1.0"
