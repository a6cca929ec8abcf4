"""
Core types shared across modules.

Kept separate from the exception hierarchy so that both the errors and the
resilience packages can import the enum without circular imports.
"""

from enum import Enum


class ErrorCategory(Enum):
    """
    Classification of error types for handling decisions.

    Categories:
        TRANSIENT: Temporary failures that may succeed on a later attempt
                   (broker not ready, connection refused, timeouts)
        PERMANENT: Failures that will not succeed on retry
                   (malformed payloads, invalid configuration, unknown broker errors
                   during topic creation)
        UNKNOWN: Unclassified errors
    """

    TRANSIENT = "transient"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


class RetryAction(Enum):
    """
    What a retry loop should do with the outcome of one attempt.

    SUCCEED: treat the attempt as done (e.g. the resource already exists)
    RETRY: wait and try again, if attempts remain
    ABORT: stop immediately without further attempts
    """

    SUCCEED = "succeed"
    RETRY = "retry"
    ABORT = "abort"


__all__ = [
    "ErrorCategory",
    "RetryAction",
]
