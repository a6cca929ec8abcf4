"""Message consumer over aiokafka with explicit, per-message offset control."""

import asyncio
import contextlib
import logging
from typing import Any

from aiokafka import AIOKafkaConsumer
from aiokafka.structs import TopicPartition

from clickstream.common.types import PipelineMessage, from_consumer_record
from clickstream.config import KafkaSettings

logger = logging.getLogger(__name__)


class MessageConsumer:
    """
    Async group consumer that hands out one message per read.

    Auto-commit is off. The caller commits (or rewinds) each message itself,
    which is how the delivery policy is applied.
    """

    def __init__(
        self,
        kafka: KafkaSettings,
        topic: str,
        group_id: str,
        auto_offset_reset: str = "earliest",
        client_id: str | None = None,
    ):
        if not topic:
            raise ValueError("A topic must be specified")

        self.kafka = kafka
        self.topic = topic
        self.group_id = group_id
        self.auto_offset_reset = auto_offset_reset
        self.client_id = client_id
        self._consumer: AIOKafkaConsumer | None = None

    def _build_kafka_config(self) -> dict:
        return {
            "bootstrap_servers": self.kafka.bootstrap_servers,
            "group_id": self.group_id,
            "client_id": self.client_id,
            "request_timeout_ms": self.kafka.request_timeout_ms,
            "metadata_max_age_ms": self.kafka.metadata_max_age_ms,
            "connections_max_idle_ms": self.kafka.connections_max_idle_ms,
            "enable_auto_commit": False,
            "auto_offset_reset": self.auto_offset_reset,
        }

    async def start(self) -> None:
        if self._consumer is not None:
            logger.warning("Consumer already started, ignoring duplicate start call")
            return

        logger.info(
            "Starting message consumer",
            extra={"topic": self.topic, "group_id": self.group_id},
        )
        consumer = AIOKafkaConsumer(self.topic, **self._build_kafka_config())
        try:
            await consumer.start()
        except BaseException:
            await self._discard(consumer)
            raise
        self._consumer = consumer

        logger.info(
            "Message consumer started successfully",
            extra={"topic": self.topic, "group_id": self.group_id},
        )

    async def _discard(self, consumer: AIOKafkaConsumer) -> None:
        # Release whatever a failed start left open
        try:
            await consumer.stop()
        except Exception as e:
            logger.warning(
                "Error releasing consumer after failed start",
                extra={"error": str(e)},
            )

    async def stop(self) -> None:
        if self._consumer is None:
            logger.debug("Consumer not running or already stopped")
            return

        logger.info("Stopping message consumer")
        try:
            await self._consumer.stop()
            logger.info("Message consumer stopped successfully")
        except Exception:
            logger.error("Error stopping message consumer", exc_info=True)
            raise
        finally:
            self._consumer = None

    async def read(self, shutdown_event: asyncio.Event) -> PipelineMessage | None:
        """
        Wait for the next message, connecting to the broker first if needed.

        Returns None if shutdown_event is set before a message arrives. Errors
        from the broker, including a failed connect, are raised to the caller;
        the next read tries to connect again.
        """
        if self._consumer is None:
            started, _ = await self._until_shutdown(self.start(), shutdown_event)
            if not started:
                return None

        received, record = await self._until_shutdown(self._consumer.getone(), shutdown_event)
        if not received:
            return None
        return from_consumer_record(record)

    @staticmethod
    async def _until_shutdown(coro, shutdown_event: asyncio.Event) -> tuple[bool, Any]:
        """Await coro unless shutdown_event is set first; (finished, result)."""
        work = asyncio.ensure_future(coro)
        stop_task = asyncio.ensure_future(shutdown_event.wait())
        try:
            done, _ = await asyncio.wait(
                {work, stop_task}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            stop_task.cancel()
            if not work.done():
                work.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await work

        if work in done:
            return True, work.result()
        return False, None

    async def commit(self, message: PipelineMessage) -> None:
        """Commit past message, so the group resumes at the next offset."""
        if self._consumer is None:
            logger.warning("Cannot commit: consumer not started")
            return

        tp = TopicPartition(message.topic, message.partition)
        await self._consumer.commit({tp: message.offset + 1})
        logger.debug(
            "Committed offset",
            extra={
                "topic": message.topic,
                "partition": message.partition,
                "offset": message.offset + 1,
                "group_id": self.group_id,
            },
        )

    def seek_to(self, message: PipelineMessage) -> None:
        """Rewind so that message is read again."""
        if self._consumer is None:
            raise RuntimeError("Consumer not started. Call start() first.")
        self._consumer.seek(TopicPartition(message.topic, message.partition), message.offset)

    @property
    def is_running(self) -> bool:
        return self._consumer is not None


__all__ = ["MessageConsumer"]
