"""
Consumer loop: read, decode, enrich, write.

Offsets are committed according to the delivery policy:

AT_MOST_ONCE
    commit right after the read. A sink failure is logged and the event is
    lost.
AT_LEAST_ONCE
    commit after the sink write. A sink failure rewinds to the same offset
    and waits the read backoff, so the event is read again.

Malformed payloads are committed and skipped under both policies. Read errors
are logged and retried after the read backoff; the loop only exits on
shutdown or when max_messages is reached.
"""

import asyncio
import logging
from collections.abc import Callable

from clickstream.common.consumer import MessageConsumer
from clickstream.common.metrics import PipelineMetrics
from clickstream.common.signals import wait_for_shutdown
from clickstream.common.types import DeliveryPolicy, PipelineMessage
from clickstream.schemas.events import deserialize_event, enrich
from clickstream.sinks.mongo import MongoEventSink
from core.errors import EventDecodeError, KafkaErrorClassifier
from core.utils import now_ms

logger = logging.getLogger(__name__)

# Raw payloads are truncated in logs
MAX_LOGGED_PAYLOAD = 512


class ConsumerWorker:
    """Moves events from the topic into the sink until shutdown."""

    def __init__(
        self,
        consumer: MessageConsumer,
        sink: MongoEventSink,
        metrics: PipelineMetrics,
        delivery_policy: DeliveryPolicy = DeliveryPolicy.AT_MOST_ONCE,
        read_backoff_seconds: float = 1.0,
        clock: Callable[[], int] | None = None,
    ):
        self.consumer = consumer
        self.sink = sink
        self.metrics = metrics
        self.delivery_policy = DeliveryPolicy(delivery_policy)
        self.read_backoff_seconds = read_backoff_seconds
        self._clock = clock or now_ms
        self.messages_read = 0
        self.decode_failures = 0
        self.write_failures = 0

    async def run(
        self, shutdown_event: asyncio.Event, max_messages: int | None = None
    ) -> None:
        """Run until shutdown_event is set or max_messages messages were read."""
        logger.info(
            "Starting consumer loop",
            extra={
                "delivery_policy": self.delivery_policy.value,
                "max_messages": max_messages,
            },
        )

        while not shutdown_event.is_set():
            if max_messages is not None and self.messages_read >= max_messages:
                break

            try:
                message = await self.consumer.read(shutdown_event)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self._log_read_error(e)
                if await wait_for_shutdown(shutdown_event, self.read_backoff_seconds):
                    break
                continue

            if message is None:
                break

            self.messages_read += 1
            if not await self._handle(message) and self.delivery_policy is DeliveryPolicy.AT_LEAST_ONCE:
                # Read the same offset again after the backoff
                self.consumer.seek_to(message)
                if await wait_for_shutdown(shutdown_event, self.read_backoff_seconds):
                    break

        logger.info(
            "Consumer loop stopped",
            extra={
                "messages_read": self.messages_read,
                "decode_failures": self.decode_failures,
                "write_failures": self.write_failures,
                "consumed_total": self.metrics.consumed_total,
            },
        )

    async def _handle(self, message: PipelineMessage) -> bool:
        """Process one message. Returns False only when the sink write failed."""
        if self.delivery_policy is DeliveryPolicy.AT_MOST_ONCE:
            await self._commit(message)

        try:
            event = deserialize_event(message.value)
        except EventDecodeError as e:
            self.decode_failures += 1
            logger.error(
                "Skipping malformed message",
                extra={
                    "topic": message.topic,
                    "partition": message.partition,
                    "offset": message.offset,
                    "raw_payload": _payload_preview(message.value),
                    "error": str(e),
                },
            )
            if self.delivery_policy is DeliveryPolicy.AT_LEAST_ONCE:
                await self._commit(message)
            return True

        record = enrich(event, self._clock())

        try:
            inserted_id = await self.sink.insert(record)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.write_failures += 1
            logger.error(
                "Failed to write event to sink",
                extra={
                    "offset": message.offset,
                    "user_id": record.user_id,
                    "timestamp": record.timestamp,
                    "delivery_policy": self.delivery_policy.value,
                    "error": str(e),
                },
            )
            return False

        self.metrics.record_consumed()
        logger.info(
            "Stored event",
            extra={
                "inserted_id": str(inserted_id),
                "user_id": record.user_id,
                "event_type": record.event_type,
                "processing_time": record.processing_time,
                "latency_ms": record.latency_ms,
            },
        )

        if self.delivery_policy is DeliveryPolicy.AT_LEAST_ONCE:
            await self._commit(message)
        return True

    async def _commit(self, message: PipelineMessage) -> None:
        try:
            await self.consumer.commit(message)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            classified = KafkaErrorClassifier.classify_consumer_error(
                e, context={"topic": message.topic, "offset": message.offset}
            )
            logger.error(
                "Failed to commit offset",
                extra={
                    "topic": message.topic,
                    "partition": message.partition,
                    "offset": message.offset,
                    "error_category": classified.category.value,
                    "error": str(e),
                },
            )

    def _log_read_error(self, error: Exception) -> None:
        classified = KafkaErrorClassifier.classify_consumer_error(
            error, context={"group_id": self.consumer.group_id}
        )
        logger.error(
            "Failed to read message, backing off",
            extra={
                "error_category": classified.category.value,
                "classified_as": type(classified).__name__,
                "delay_seconds": self.read_backoff_seconds,
                "error": str(error),
            },
        )


def _payload_preview(payload: bytes | None) -> str:
    if payload is None:
        return ""
    text = payload.decode("utf-8", errors="replace")
    if len(text) > MAX_LOGGED_PAYLOAD:
        return text[:MAX_LOGGED_PAYLOAD] + "..."
    return text


__all__ = ["ConsumerWorker"]
