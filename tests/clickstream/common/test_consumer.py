"""
Tests for the Kafka message consumer.

These are unit tests that use mocks - no Docker/Kafka required.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from aiokafka.structs import ConsumerRecord, TopicPartition

from clickstream.common.consumer import MessageConsumer
from clickstream.common.types import PipelineMessage
from clickstream.config import KafkaSettings


def _record(offset=0, value=b"{}"):
    return ConsumerRecord(
        topic="user_events",
        partition=0,
        offset=offset,
        timestamp=1000,
        timestamp_type=0,
        key=None,
        value=value,
        checksum=None,
        serialized_key_size=-1,
        serialized_value_size=len(value),
        headers=(),
    )


@pytest.fixture
def mock_aiokafka_consumer():
    consumer = MagicMock()
    consumer.start = AsyncMock()
    consumer.stop = AsyncMock()
    consumer.commit = AsyncMock()
    consumer.getone = AsyncMock()
    return consumer


@pytest.fixture
def consumer():
    return MessageConsumer(
        KafkaSettings(bootstrap_servers="localhost:9092"),
        "user_events",
        "consumer-group-1",
    )


async def _start(consumer, mock_aiokafka_consumer):
    with patch("clickstream.common.consumer.AIOKafkaConsumer", return_value=mock_aiokafka_consumer):
        await consumer.start()
    return consumer


class TestInit:
    def test_requires_topic(self):
        with pytest.raises(ValueError):
            MessageConsumer(KafkaSettings(), "", "group")

    def test_kafka_config(self, consumer):
        cfg = consumer._build_kafka_config()
        assert cfg["group_id"] == "consumer-group-1"
        assert cfg["enable_auto_commit"] is False
        assert cfg["auto_offset_reset"] == "earliest"


class TestStartStop:
    @pytest.mark.asyncio
    async def test_start_subscribes_to_topic(self, consumer, mock_aiokafka_consumer):
        with patch(
            "clickstream.common.consumer.AIOKafkaConsumer", return_value=mock_aiokafka_consumer
        ) as mock_class:
            await consumer.start()

        assert mock_class.call_args.args == ("user_events",)
        mock_aiokafka_consumer.start.assert_awaited_once()
        assert consumer.is_running

    @pytest.mark.asyncio
    async def test_start_failure_leaves_consumer_stopped(self, consumer, mock_aiokafka_consumer):
        mock_aiokafka_consumer.start.side_effect = ConnectionRefusedError()
        with patch("clickstream.common.consumer.AIOKafkaConsumer", return_value=mock_aiokafka_consumer):
            with pytest.raises(ConnectionRefusedError):
                await consumer.start()
        assert not consumer.is_running
        mock_aiokafka_consumer.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stop(self, consumer, mock_aiokafka_consumer):
        started = await _start(consumer, mock_aiokafka_consumer)
        await started.stop()
        mock_aiokafka_consumer.stop.assert_awaited_once()
        mock_aiokafka_consumer.commit.assert_not_awaited()
        assert not started.is_running

    @pytest.mark.asyncio
    async def test_stop_without_start(self, consumer):
        await consumer.stop()


class TestRead:
    @pytest.mark.asyncio
    async def test_returns_message(self, consumer, mock_aiokafka_consumer):
        started = await _start(consumer, mock_aiokafka_consumer)
        mock_aiokafka_consumer.getone.return_value = _record(offset=7, value=b"abc")

        message = await started.read(asyncio.Event())

        assert message == PipelineMessage(
            topic="user_events", partition=0, offset=7, timestamp=1000, key=None, value=b"abc"
        )

    @pytest.mark.asyncio
    async def test_returns_none_on_shutdown(self, consumer, mock_aiokafka_consumer):
        started = await _start(consumer, mock_aiokafka_consumer)
        never = asyncio.Event()

        async def block():
            await never.wait()

        mock_aiokafka_consumer.getone.side_effect = block
        shutdown = asyncio.Event()
        asyncio.get_running_loop().call_later(0.01, shutdown.set)

        assert await started.read(shutdown) is None

    @pytest.mark.asyncio
    async def test_errors_propagate(self, consumer, mock_aiokafka_consumer):
        started = await _start(consumer, mock_aiokafka_consumer)
        mock_aiokafka_consumer.getone.side_effect = RuntimeError("fetch failed")
        with pytest.raises(RuntimeError, match="fetch failed"):
            await started.read(asyncio.Event())

    @pytest.mark.asyncio
    async def test_read_starts_consumer(self, consumer, mock_aiokafka_consumer):
        mock_aiokafka_consumer.getone.return_value = _record(offset=3)
        with patch("clickstream.common.consumer.AIOKafkaConsumer", return_value=mock_aiokafka_consumer):
            message = await consumer.read(asyncio.Event())

        assert message.offset == 3
        mock_aiokafka_consumer.start.assert_awaited_once()
        assert consumer.is_running

    @pytest.mark.asyncio
    async def test_failed_connect_retried_on_next_read(self, consumer, mock_aiokafka_consumer):
        mock_aiokafka_consumer.start.side_effect = [ConnectionRefusedError(), None]
        mock_aiokafka_consumer.getone.return_value = _record(offset=5)
        with patch("clickstream.common.consumer.AIOKafkaConsumer", return_value=mock_aiokafka_consumer):
            with pytest.raises(ConnectionRefusedError):
                await consumer.read(asyncio.Event())
            assert not consumer.is_running

            message = await consumer.read(asyncio.Event())

        assert message.offset == 5
        assert mock_aiokafka_consumer.start.await_count == 2
        assert consumer.is_running

    @pytest.mark.asyncio
    async def test_shutdown_interrupts_connect(self, consumer, mock_aiokafka_consumer):
        never = asyncio.Event()

        async def hang():
            await never.wait()

        mock_aiokafka_consumer.start.side_effect = hang
        shutdown = asyncio.Event()
        asyncio.get_running_loop().call_later(0.01, shutdown.set)

        with patch("clickstream.common.consumer.AIOKafkaConsumer", return_value=mock_aiokafka_consumer):
            assert await consumer.read(shutdown) is None

        assert not consumer.is_running
        mock_aiokafka_consumer.stop.assert_awaited_once()
        mock_aiokafka_consumer.getone.assert_not_awaited()


class TestOffsets:
    @pytest.mark.asyncio
    async def test_commit_next_offset(self, consumer, mock_aiokafka_consumer):
        started = await _start(consumer, mock_aiokafka_consumer)
        message = PipelineMessage(topic="user_events", partition=0, offset=7, timestamp=0)
        await started.commit(message)
        mock_aiokafka_consumer.commit.assert_awaited_once_with({TopicPartition("user_events", 0): 8})

    @pytest.mark.asyncio
    async def test_seek_to_same_offset(self, consumer, mock_aiokafka_consumer):
        started = await _start(consumer, mock_aiokafka_consumer)
        message = PipelineMessage(topic="user_events", partition=0, offset=7, timestamp=0)
        started.seek_to(message)
        mock_aiokafka_consumer.seek.assert_called_once_with(TopicPartition("user_events", 0), 7)

    @pytest.mark.asyncio
    async def test_commit_without_start_is_noop(self, consumer):
        await consumer.commit(PipelineMessage(topic="t", partition=0, offset=0, timestamp=0))
