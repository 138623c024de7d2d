"""Logging configuration.

Log lines carry the id of the conversation run that produced them, so the
interleaved output of concurrent chat turns (and the tool calls they spawn)
can be told apart.
"""

import logging
import os
import sys
from contextvars import ContextVar

from pydantic import BaseModel, Field

_run_id: ContextVar[str] = ContextVar("run_id", default="-")


class LogConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    format: str = "%(asctime)s - %(name)s - %(levelname)s - [run %(run_id)s] %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    quiet_loggers: tuple[str, ...] = ("anthropic", "httpx", "googleapiclient", "uvicorn.access")


class RunContextFilter(logging.Filter):
    """Stamps each record with the current conversation run id."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = _run_id.get()
        return True


def bind_run_id(run_id: str) -> None:
    """Tag subsequent log lines of the current task (and tasks it creates) with `run_id`."""
    _run_id.set(run_id)


def current_run_id() -> str:
    return _run_id.get()


def setup_logging(config: LogConfig | None = None) -> None:
    """Set up logging configuration for the application."""
    if config is None:
        config = LogConfig()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(config.format, datefmt=config.date_format))
    handler.addFilter(RunContextFilter())

    logging.basicConfig(level=getattr(logging, config.level.upper()), handlers=[handler], force=True)

    # Client libraries log every request at INFO
    for name in config.quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str, level: str | None = None) -> logging.Logger:
    """Get a logger for a specific module.

    Args:
        name: Module name (typically __name__)
        level: Optional explicit level, defaults to LOG_LEVEL

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    log_level = level if level else os.getenv("LOG_LEVEL", "INFO")
    logger.setLevel(log_level.upper())

    return logger
