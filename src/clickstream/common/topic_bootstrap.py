"""
Topic bootstrap: make sure the event topic exists before producing.

Two retry phases share one fixed-interval policy:
1. connect an admin client to the broker (any failure is retried)
2. create the topic, classified through TOPIC_CREATION_OUTCOMES
   ("already exists" counts as success, "controller not ready" is retried,
   anything else aborts at once)

Either phase giving up raises TopicBootstrapError, which is fatal for the
producer process.
"""

import asyncio
import logging
from collections.abc import Callable

from aiokafka.admin import AIOKafkaAdminClient, NewTopic
from aiokafka.errors import for_code

from clickstream.common.signals import wait_for_shutdown
from clickstream.config import BootstrapSettings, KafkaSettings, TopicSettings
from core.errors import (
    RetryAbortedError,
    TopicBootstrapError,
    classify_admin_connection_error,
    classify_topic_creation_error,
)
from core.resilience import RetryStats, run_with_retry

logger = logging.getLogger(__name__)

AdminFactory = Callable[[], AIOKafkaAdminClient]


def raise_for_topic_errors(response) -> None:
    """Raise the aiokafka error for the first non-zero code in a CreateTopics response.

    Entries are (topic, error_code) or (topic, error_code, error_message)
    depending on the protocol version.
    """
    for entry in getattr(response, "topic_errors", None) or ():
        topic, code = entry[0], entry[1]
        if code:
            message = entry[2] if len(entry) > 2 and entry[2] else f"topic {topic}"
            raise for_code(code)(message)


class TopicBootstrapper:
    """Ensures the configured topic exists. Run once, before the producer loop."""

    def __init__(
        self,
        kafka: KafkaSettings,
        topic: TopicSettings,
        bootstrap: BootstrapSettings,
        admin_factory: AdminFactory | None = None,
    ):
        self.kafka = kafka
        self.topic = topic
        self.retry_config = bootstrap.retry_config()
        self._admin_factory = admin_factory or self._default_admin
        self.connect_stats = RetryStats()
        self.create_stats = RetryStats()

    def _default_admin(self) -> AIOKafkaAdminClient:
        return AIOKafkaAdminClient(
            bootstrap_servers=self.kafka.bootstrap_servers,
            request_timeout_ms=self.kafka.request_timeout_ms,
            metadata_max_age_ms=self.kafka.metadata_max_age_ms,
            connections_max_idle_ms=self.kafka.connections_max_idle_ms,
        )

    async def run(self, shutdown_event: asyncio.Event | None = None) -> None:
        """
        Connect, then create the topic.

        Raises:
            TopicBootstrapError: a phase gave up, or shutdown was requested
                during a backoff wait
        """
        shutdown_event = shutdown_event or asyncio.Event()

        async def sleep(delay: float) -> None:
            if not await wait_for_shutdown(shutdown_event, delay):
                return
            raise TopicBootstrapError(
                f"Shutdown requested while bootstrapping topic '{self.topic.name}'",
                topic=self.topic.name,
                attempts=max(self.connect_stats.attempts, self.create_stats.attempts),
            )

        logger.info(
            "Bootstrapping topic",
            extra={
                "topic": self.topic.name,
                "bootstrap_servers": self.kafka.bootstrap_servers,
                "max_attempts": self.retry_config.max_attempts,
            },
        )

        admin = await self._connect(sleep)
        try:
            await self._create(admin, sleep)
        finally:
            await self._close(admin)

        logger.info("Topic ready", extra={"topic": self.topic.name})

    async def _connect(self, sleep) -> AIOKafkaAdminClient:
        async def attempt() -> AIOKafkaAdminClient:
            admin = self._admin_factory()
            try:
                await admin.start()
            except Exception:
                await self._close(admin)
                raise
            return admin

        try:
            return await run_with_retry(
                attempt,
                classify_admin_connection_error,
                self.retry_config,
                label="kafka admin connect",
                sleep=sleep,
                stats=self.connect_stats,
            )
        except RetryAbortedError as e:
            raise TopicBootstrapError(
                f"Could not connect to Kafka at {self.kafka.bootstrap_servers}",
                topic=self.topic.name,
                attempts=e.attempts,
                cause=e.cause,
            ) from e

    async def _create(self, admin: AIOKafkaAdminClient, sleep) -> None:
        new_topic = NewTopic(
            name=self.topic.name,
            num_partitions=self.topic.num_partitions,
            replication_factor=self.topic.replication_factor,
        )

        async def attempt() -> None:
            response = await admin.create_topics([new_topic])
            raise_for_topic_errors(response)
            logger.info(
                "Topic created",
                extra={
                    "topic": self.topic.name,
                    "num_partitions": self.topic.num_partitions,
                    "replication_factor": self.topic.replication_factor,
                },
            )

        try:
            await run_with_retry(
                attempt,
                classify_topic_creation_error,
                self.retry_config,
                label=f"create topic {self.topic.name}",
                sleep=sleep,
                stats=self.create_stats,
            )
        except RetryAbortedError as e:
            raise TopicBootstrapError(
                f"Could not create topic '{self.topic.name}'",
                topic=self.topic.name,
                attempts=e.attempts,
                cause=e.cause,
            ) from e

    @staticmethod
    async def _close(admin: AIOKafkaAdminClient) -> None:
        try:
            await admin.close()
        except Exception as e:
            logger.warning("Error closing Kafka admin client", extra={"error": str(e)})


__all__ = ["TopicBootstrapper", "raise_for_topic_errors"]
