"""
Core library: infrastructure-agnostic building blocks for the pipeline.

Modules:
    resilience  - Retry decisions and backoff
    logging     - Structured JSON/console logging with context variables
    errors      - Error classification and exception hierarchy
    utils       - Worker identifiers

Design Principles:
    - No dependencies on Kafka or MongoDB clients
    - All modules are independently testable
    - Async-first where applicable
"""

from .types import ErrorCategory, RetryAction

__version__ = "0.1.0"

__all__ = [
    "ErrorCategory",
    "RetryAction",
]
