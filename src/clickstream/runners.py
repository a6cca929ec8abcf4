"""Process runners for the producer and consumer roles.

Each runner owns the lifecycle of its clients: run the loop until shutdown,
then stop them in reverse order. Kafka clients connect on first use, so a
broker that is down at startup shows up as failed reads or publishes and is
retried by the loops. Topic bootstrap and the MongoDB ping failing propagate
to the caller, which treats them as fatal.
"""

import asyncio
import logging

from clickstream.common.consumer import MessageConsumer
from clickstream.common.metrics import PipelineMetrics
from clickstream.common.producer import MessageProducer
from clickstream.common.signals import setup_shutdown_signal_handlers
from clickstream.common.topic_bootstrap import TopicBootstrapper
from clickstream.config import PipelineConfig
from clickstream.generator import EventGenerator
from clickstream.sinks.mongo import MongoEventSink
from clickstream.workers.consumer_worker import ConsumerWorker
from clickstream.workers.producer_worker import ProducerWorker
from core.logging import log_worker_startup

logger = logging.getLogger(__name__)

ROLES = ("producer", "consumer")


async def run_producer(
    config: PipelineConfig,
    metrics: PipelineMetrics,
    shutdown_event: asyncio.Event,
    *,
    bootstrapper: TopicBootstrapper | None = None,
    producer: MessageProducer | None = None,
    generator: EventGenerator | None = None,
    max_iterations: int | None = None,
) -> None:
    log_worker_startup(
        logger,
        "clickstream producer",
        config.kafka.bootstrap_servers,
        topic=config.topic.name,
        extra_config={
            "Partitions": config.topic.num_partitions,
            "Replication factor": config.topic.replication_factor,
            "Acks": config.producer.acks,
        },
    )

    bootstrapper = bootstrapper or TopicBootstrapper(config.kafka, config.topic, config.bootstrap)
    await bootstrapper.run(shutdown_event)
    if shutdown_event.is_set():
        return

    producer = producer or MessageProducer(config.kafka, acks=config.producer.acks)
    generator = generator or EventGenerator(
        user_pool_size=config.producer.user_pool_size,
        pause_min_ms=config.producer.pause_min_ms,
        pause_max_ms=config.producer.pause_max_ms,
        pause_step_ms=config.producer.pause_step_ms,
    )
    worker = ProducerWorker(producer, generator, metrics, config.topic.name)

    try:
        await worker.run(shutdown_event, max_iterations=max_iterations)
    finally:
        await producer.stop()


async def run_consumer(
    config: PipelineConfig,
    metrics: PipelineMetrics,
    shutdown_event: asyncio.Event,
    *,
    sink: MongoEventSink | None = None,
    consumer: MessageConsumer | None = None,
    max_messages: int | None = None,
) -> None:
    log_worker_startup(
        logger,
        "clickstream consumer",
        config.kafka.bootstrap_servers,
        topic=config.topic.name,
        consumer_group=config.consumer.group_id,
        extra_config={
            "Delivery policy": config.consumer.delivery_policy.value,
            "Sink": f"{config.mongodb.database}.{config.mongodb.collection}",
        },
    )

    sink = sink or MongoEventSink(config.mongodb)
    consumer = consumer or MessageConsumer(
        config.kafka,
        config.topic.name,
        config.consumer.group_id,
        auto_offset_reset=config.consumer.auto_offset_reset,
    )
    worker = ConsumerWorker(
        consumer,
        sink,
        metrics,
        delivery_policy=config.consumer.delivery_policy,
        read_backoff_seconds=config.consumer.read_backoff_seconds,
    )

    await sink.connect()
    try:
        await worker.run(shutdown_event, max_messages=max_messages)
    finally:
        try:
            await consumer.stop()
        finally:
            await sink.close()


async def run_role(role: str, config: PipelineConfig, metrics: PipelineMetrics) -> None:
    """Run one role until SIGINT/SIGTERM."""
    if role not in ROLES:
        raise ValueError(f"Unknown role '{role}', expected one of {ROLES}")

    shutdown_event = asyncio.Event()
    setup_shutdown_signal_handlers(shutdown_event)

    if role == "producer":
        await run_producer(config, metrics, shutdown_event)
    else:
        await run_consumer(config, metrics, shutdown_event)

    logger.info("Shutdown complete")


__all__ = ["ROLES", "run_producer", "run_consumer", "run_role"]
