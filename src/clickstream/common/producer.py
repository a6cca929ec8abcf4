"""Message producer over aiokafka."""

import asyncio
import logging

from aiokafka import AIOKafkaProducer

from clickstream.common.types import ProduceResult
from clickstream.config import KafkaSettings

logger = logging.getLogger(__name__)


class MessageProducer:
    """Async producer that publishes one message at a time and waits for the ack."""

    def __init__(self, kafka: KafkaSettings, acks: str = "all", client_id: str | None = None):
        self.kafka = kafka
        self.acks = acks
        self.client_id = client_id
        self._producer: AIOKafkaProducer | None = None
        self._started = False

    def _resolve_acks(self) -> int | str:
        return int(self.acks) if self.acks.isdigit() else self.acks

    async def start(self) -> None:
        if self._started:
            logger.warning("Producer already started, ignoring duplicate start call")
            return

        logger.info("Starting message producer", extra={"bootstrap_servers": self.kafka.bootstrap_servers})

        self._producer = AIOKafkaProducer(
            bootstrap_servers=self.kafka.bootstrap_servers,
            client_id=self.client_id,
            value_serializer=lambda v: v,
            request_timeout_ms=self.kafka.request_timeout_ms,
            metadata_max_age_ms=self.kafka.metadata_max_age_ms,
            connections_max_idle_ms=self.kafka.connections_max_idle_ms,
            acks=self._resolve_acks(),
            # Send each event immediately instead of batching
            linger_ms=0,
        )
        try:
            await self._producer.start()
        except BaseException:
            await self._discard()
            raise
        self._started = True

        logger.info(
            "Message producer started successfully",
            extra={"bootstrap_servers": self.kafka.bootstrap_servers},
        )

    async def _discard(self) -> None:
        # Release whatever a failed start left open
        producer, self._producer = self._producer, None
        try:
            await producer.stop()
        except Exception as e:
            logger.warning(
                "Error releasing producer after failed start",
                extra={"error": str(e)},
            )

    async def stop(self) -> None:
        # Errors during stop are logged but not re-raised to avoid masking original exceptions
        if self._producer is None:
            logger.debug("Producer already stopped")
            return

        logger.info("Stopping message producer")

        try:
            try:
                loop = asyncio.get_running_loop()
                if loop.is_closed():
                    logger.warning("Event loop is closed, skipping graceful producer shutdown")
                    return
            except RuntimeError:
                logger.warning("No running event loop, skipping graceful producer shutdown")
                return

            if self._started:
                await self._producer.flush()
            await self._producer.stop()
            logger.info("Message producer stopped successfully")
        except Exception as e:
            logger.error(
                "Error stopping message producer",
                extra={"error": str(e)},
                exc_info=True,
            )
        finally:
            self._producer = None
            self._started = False

    async def send(self, topic: str, value: bytes, key: bytes | None = None) -> ProduceResult:
        """Publish value and wait for the ack, connecting to the broker first if needed.

        A failed connect is raised like any other send error; the next send tries again.
        """
        if not self.is_started:
            await self.start()

        logger.debug("Sending message", extra={"topic": topic, "value_size": len(value)})

        metadata = await self._producer.send_and_wait(topic, key=key, value=value)

        logger.debug(
            "Message sent successfully",
            extra={
                "topic": metadata.topic,
                "partition": metadata.partition,
                "offset": metadata.offset,
            },
        )

        return ProduceResult(
            topic=metadata.topic,
            partition=metadata.partition,
            offset=metadata.offset,
        )

    @property
    def is_started(self) -> bool:
        return self._started and self._producer is not None


__all__ = ["MessageProducer"]
