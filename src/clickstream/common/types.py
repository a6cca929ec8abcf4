"""Transport-level message types and delivery policy."""

from dataclasses import dataclass
from enum import Enum

__all__ = [
    "DeliveryPolicy",
    "PipelineMessage",
    "ProduceResult",
    "from_consumer_record",
]


class DeliveryPolicy(str, Enum):
    """When the consumer commits an offset relative to the sink write.

    AT_MOST_ONCE: commit right after the read. A failed sink write (or a crash
        before it) loses the event.
    AT_LEAST_ONCE: commit only after the sink write succeeds. A failed write
        rewinds to the same offset, so the event may be written twice.
    """

    AT_MOST_ONCE = "at_most_once"
    AT_LEAST_ONCE = "at_least_once"


@dataclass(frozen=True)
class PipelineMessage:
    """Message received from the topic."""

    topic: str
    partition: int
    offset: int
    timestamp: int
    key: bytes | None = None
    value: bytes | None = None


@dataclass(frozen=True)
class ProduceResult:
    """Confirmation of a published message."""

    topic: str
    partition: int
    offset: int


def from_consumer_record(record) -> PipelineMessage:
    """Convert aiokafka ConsumerRecord to PipelineMessage."""
    return PipelineMessage(
        topic=record.topic,
        partition=record.partition,
        offset=record.offset,
        timestamp=record.timestamp,
        key=record.key,
        value=record.value,
    )
