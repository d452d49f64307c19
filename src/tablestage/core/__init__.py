"""Core infrastructure: configuration, logging and the Result type."""

from tablestage.core.config import Settings, get_settings
from tablestage.core.logging import configure_logging, get_logger, log_context
from tablestage.core.result import Result

__all__ = [
    "Result",
    "Settings",
    "configure_logging",
    "get_logger",
    "get_settings",
    "log_context",
]
