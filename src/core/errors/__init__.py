"""
Error classification and exception hierarchy.

Provides:
- ErrorCategory enum for classifying errors
- PipelineError hierarchy for typed exceptions
- Kafka error classifiers, including the topic creation outcome table
"""

from core.errors.exceptions import (
    ConfigurationError,
    ConnectionError,
    # Enums
    ErrorCategory,
    EventDecodeError,
    KafkaError,
    PermanentError,
    # Base classes
    PipelineError,
    RetryAbortedError,
    SinkWriteError,
    TimeoutError,
    TopicBootstrapError,
    TransientError,
)
from core.errors.kafka_classifier import (
    KAFKA_ERROR_MAPPINGS,
    TOPIC_CREATION_OUTCOMES,
    KafkaErrorClassifier,
    classify_admin_connection_error,
    classify_kafka_error_type,
    classify_topic_creation_error,
)

__all__ = [
    # Enums
    "ErrorCategory",
    # Base classes
    "PipelineError",
    "TransientError",
    "PermanentError",
    "KafkaError",
    "ConnectionError",
    "TimeoutError",
    # Domain errors
    "TopicBootstrapError",
    "EventDecodeError",
    "SinkWriteError",
    "ConfigurationError",
    "RetryAbortedError",
    # Kafka classifiers
    "KAFKA_ERROR_MAPPINGS",
    "TOPIC_CREATION_OUTCOMES",
    "KafkaErrorClassifier",
    "classify_admin_connection_error",
    "classify_kafka_error_type",
    "classify_topic_creation_error",
]
