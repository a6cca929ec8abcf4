"""
Structured logging module.

Provides JSON and console logging with context propagation.
"""

from core.logging.context import (
    clear_log_context,
    get_log_context,
    set_log_context,
)
from core.logging.formatters import ConsoleFormatter, JSONFormatter
from core.logging.setup import (
    get_log_file_path,
    log_worker_startup,
    setup_logging,
)

__all__ = [
    # Setup
    "setup_logging",
    "get_log_file_path",
    "log_worker_startup",
    # Formatters
    "JSONFormatter",
    "ConsoleFormatter",
    # Context
    "set_log_context",
    "get_log_context",
    "clear_log_context",
]
