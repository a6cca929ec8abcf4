"""
Exception hierarchy for the clickstream pipeline.

Every error raised by pipeline code is a PipelineError carrying an
ErrorCategory, so loops can decide between skip, backoff and abort without
inspecting library exception types.
"""

from core.types import ErrorCategory


class PipelineError(Exception):
    """
    Base exception for all pipeline errors.

    Attributes:
        message: Human-readable error description
        category: Error classification for retry decisions
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        self.message = message
        self.cause = cause
        self.context = context or {}
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        return self.category == ErrorCategory.TRANSIENT

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)


# =============================================================================
# Transient / Permanent
# =============================================================================


class TransientError(PipelineError):
    """Base class for transient/retriable errors."""

    category = ErrorCategory.TRANSIENT


class PermanentError(PipelineError):
    """Base class for permanent/non-retriable errors."""

    category = ErrorCategory.PERMANENT


class TimeoutError(TransientError):
    """Operation timeout error (transient, retryable)."""

    pass


class ConnectionError(TransientError):
    """Connection error (transient, retryable)."""

    pass


# =============================================================================
# Domain-Specific Errors
# =============================================================================


class KafkaError(PipelineError):
    """Error from Kafka operations (producer/consumer/admin)."""

    pass


class TopicBootstrapError(PermanentError):
    """Topic could not be ensured at startup. Always fatal."""

    def __init__(
        self,
        message: str,
        topic: str,
        attempts: int,
        cause: Exception | None = None,
    ):
        super().__init__(message, cause, {"topic": topic, "attempts": attempts})
        self.topic = topic
        self.attempts = attempts


class EventDecodeError(PermanentError):
    """Payload could not be decoded into an Event. The message is skipped."""

    def __init__(
        self,
        message: str,
        payload: bytes | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message, cause)
        self.payload = payload


class SinkWriteError(TransientError):
    """Document store rejected or failed a write."""

    pass


class ConfigurationError(PermanentError):
    """Configuration is missing or out of range."""

    pass


class RetryAbortedError(PermanentError):
    """A retry loop gave up, either on a non-retryable error or on exhaustion."""

    def __init__(
        self,
        message: str,
        attempts: int,
        exhausted: bool,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        super().__init__(message, cause, context)
        self.attempts = attempts
        self.exhausted = exhausted
