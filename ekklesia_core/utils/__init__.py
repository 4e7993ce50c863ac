"""Utility modules for the Ekklesia core."""

# JSON helpers
from .json_utils import dumps

# Logging utilities
from .logger import (
    AzureQueueHandler,
    CallerContextFilter,
    ContextAwareLogger,
    configure_logging,
    get_logger,
    reset_logging,
)

__all__ = [
    "dumps",
    "AzureQueueHandler",
    "CallerContextFilter",
    "ContextAwareLogger",
    "configure_logging",
    "get_logger",
    "reset_logging",
]
