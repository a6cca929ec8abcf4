"""
Kafka error classification for admin, consumer and producer operations.

Provides consistent error handling for aiokafka exceptions, mapping them to
the PipelineError hierarchy and, for topic creation, to an explicit retry
action table.
"""

from typing import Optional

from core.errors.exceptions import (
    ConnectionError,
    KafkaError,
    PermanentError,
    PipelineError,
    TimeoutError,
    TransientError,
)
from core.types import RetryAction


# Kafka error classifications based on aiokafka exception types
KAFKA_ERROR_MAPPINGS = {
    # Transient errors (retry recommended)
    "transient": [
        "BrokerNotAvailableError",
        "KafkaConnectionError",
        "NodeNotReadyError",
        "LeaderNotAvailableError",
        "NotLeaderForPartitionError",
        "NotControllerError",
        "RequestTimedOutError",
        "KafkaTimeoutError",
        "NetworkException",
        "CorrelationIdError",
        "ConsumerStoppedError",
    ],
    # Permanent errors (don't retry)
    "permanent": [
        "UnknownTopicOrPartitionError",
        "MessageSizeTooLargeError",
        "RecordTooLargeError",
        "InvalidTopicError",
        "InvalidConfigurationError",
        "UnsupportedVersionError",
        "IllegalStateError",
        "OffsetOutOfRangeError",
        "InvalidReplicationFactorError",
        "InvalidPartitionsError",
        "RecordBatchTooLargeError",
        "TopicAuthorizationFailedError",
        "GroupAuthorizationFailedError",
        "ClusterAuthorizationFailedError",
        "SaslAuthenticationError",
    ],
}

# Outcome of a CreateTopics attempt, keyed by aiokafka exception type name.
# Anything not listed aborts bootstrap immediately.
TOPIC_CREATION_OUTCOMES: dict[str, RetryAction] = {
    # Another bootstrapper (or a previous run) already created it
    "TopicAlreadyExistsError": RetryAction.SUCCEED,
    # Controller not ready yet: the broker reports fewer live brokers than
    # the requested replication factor while it is still starting
    "InvalidReplicationFactorError": RetryAction.RETRY,
    "NotControllerError": RetryAction.RETRY,
}


def classify_kafka_error_type(error_type_name: str) -> Optional[str]:
    """
    Classify Kafka error by exception type name.

    Args:
        error_type_name: Name of the exception class

    Returns:
        Error category: "transient", "permanent", or None
    """
    for category, error_types in KAFKA_ERROR_MAPPINGS.items():
        if error_type_name in error_types:
            return category
    return None


def classify_topic_creation_error(error: Exception) -> RetryAction:
    """Map a topic creation failure to the action the bootstrapper takes."""
    return TOPIC_CREATION_OUTCOMES.get(type(error).__name__, RetryAction.ABORT)


def classify_admin_connection_error(error: Exception) -> RetryAction:
    """Any failure to reach the broker at startup is worth another attempt."""
    return RetryAction.RETRY


class KafkaErrorClassifier:
    """
    Centralized error classification for Kafka operations.

    Maps aiokafka exceptions to the PipelineError hierarchy so that the
    produce and consume loops log a consistent error_category.
    """

    @staticmethod
    def _classify(
        error: Exception, service: str, label: str, context: Optional[dict]
    ) -> PipelineError:
        if isinstance(error, PipelineError):
            return error

        error_str = str(error).lower()
        error_type = type(error).__name__
        ctx = {"service": service}
        if context:
            ctx.update(context)

        category = classify_kafka_error_type(error_type)

        if category == "permanent":
            if "topic" in error_str and "not" in error_str:
                return PermanentError(
                    f"Kafka topic does not exist: {error}", cause=error, context=ctx
                )
            if "message" in error_str and ("size" in error_str or "large" in error_str):
                return PermanentError(
                    f"Kafka message too large: {error}", cause=error, context=ctx
                )
            return PermanentError(
                f"Kafka {label} permanent error: {error}", cause=error, context=ctx
            )

        if category == "transient":
            if "timeout" in error_str or "Timeout" in error_type:
                return TimeoutError(
                    f"Kafka {label} timeout: {error}", cause=error, context=ctx
                )
            if "connection" in error_str or "Connection" in error_type:
                return ConnectionError(
                    f"Kafka {label} connection error: {error}", cause=error, context=ctx
                )
            return TransientError(
                f"Kafka {label} transient error: {error}", cause=error, context=ctx
            )

        # String-based fallback classification
        if "timeout" in error_str or "timed out" in error_str:
            return TimeoutError(f"Kafka {label} timeout: {error}", cause=error, context=ctx)

        if any(
            marker in error_str
            for marker in ("connection", "broker", "network", "node not ready", "leader")
        ):
            return ConnectionError(
                f"Kafka {label} connection error: {error}", cause=error, context=ctx
            )

        return KafkaError(f"Kafka {label} error: {error}", cause=error, context=ctx)

    @staticmethod
    def classify_consumer_error(
        error: Exception, context: Optional[dict] = None
    ) -> PipelineError:
        """
        Classify a Kafka consumer error into appropriate exception type.

        Args:
            error: Original exception from aiokafka consumer
            context: Additional context (merged with default {"service": "kafka_consumer"})

        Returns:
            Classified PipelineError subclass
        """
        return KafkaErrorClassifier._classify(error, "kafka_consumer", "consumer", context)

    @staticmethod
    def classify_producer_error(
        error: Exception, context: Optional[dict] = None
    ) -> PipelineError:
        """
        Classify a Kafka producer error into appropriate exception type.

        Args:
            error: Original exception from aiokafka producer
            context: Additional context (merged with default {"service": "kafka_producer"})

        Returns:
            Classified PipelineError subclass
        """
        return KafkaErrorClassifier._classify(error, "kafka_producer", "producer", context)
