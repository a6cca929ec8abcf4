"""
Producer loop: generate, publish, count, pause.

One event is in flight at a time. A failed publish loses that event and the
loop moves on; nothing here is fatal once the loop has started.
"""

import asyncio
import logging
from collections.abc import Callable

from clickstream.common.metrics import PipelineMetrics
from clickstream.common.producer import MessageProducer
from clickstream.common.signals import wait_for_shutdown
from clickstream.generator import EventGenerator
from clickstream.schemas.events import Event, serialize_event
from core.errors import KafkaErrorClassifier

logger = logging.getLogger(__name__)


class ProducerWorker:
    """Publishes generated events to the topic until shutdown."""

    def __init__(
        self,
        producer: MessageProducer,
        generator: EventGenerator,
        metrics: PipelineMetrics,
        topic: str,
        serializer: Callable[[Event], bytes] = serialize_event,
    ):
        self.producer = producer
        self.generator = generator
        self.metrics = metrics
        self.topic = topic
        self._serialize = serializer
        self.iterations = 0
        self.failures = 0

    async def run(
        self, shutdown_event: asyncio.Event, max_iterations: int | None = None
    ) -> None:
        """Run until shutdown_event is set or max_iterations events were attempted."""
        logger.info(
            "Starting producer loop",
            extra={"topic": self.topic, "max_iterations": max_iterations},
        )

        while not shutdown_event.is_set():
            await self._produce_one()
            self.iterations += 1

            if max_iterations is not None and self.iterations >= max_iterations:
                break

            if await wait_for_shutdown(shutdown_event, self.generator.next_pause_seconds()):
                break

        logger.info(
            "Producer loop stopped",
            extra={
                "iterations": self.iterations,
                "failures": self.failures,
                "produced_total": self.metrics.produced_total,
            },
        )

    async def _produce_one(self) -> None:
        event = self.generator.generate()

        try:
            payload = self._serialize(event)
        except Exception as e:
            self.failures += 1
            logger.error(
                "Failed to serialize event, skipping",
                extra={
                    "user_id": event.user_id,
                    "event_type": event.event_type,
                    "error": str(e),
                },
                exc_info=True,
            )
            return

        try:
            result = await self.producer.send(self.topic, payload)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.failures += 1
            classified = KafkaErrorClassifier.classify_producer_error(
                e, context={"topic": self.topic}
            )
            logger.error(
                "Failed to publish event",
                extra={
                    "topic": self.topic,
                    "user_id": event.user_id,
                    "error_category": classified.category.value,
                    "classified_as": type(classified).__name__,
                    "error": str(e),
                },
            )
            return

        self.metrics.record_produced()
        logger.info(
            "Produced event",
            extra={
                "user_id": event.user_id,
                "event_type": event.event_type,
                "url": event.url,
                "timestamp": event.timestamp,
                "partition": result.partition,
                "offset": result.offset,
            },
        )


__all__ = ["ProducerWorker"]
