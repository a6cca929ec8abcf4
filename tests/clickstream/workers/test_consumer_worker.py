"""
Tests for the consumer loop.

MessageConsumer and the sink are replaced by scripted fakes so the loop's
decode, enrich, write and commit ordering can be asserted step by step.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from clickstream.common.types import DeliveryPolicy, PipelineMessage
from clickstream.schemas.events import EnrichedRecord, Event, serialize_event
from clickstream.workers.consumer_worker import ConsumerWorker
from core.errors import SinkWriteError

GOOD_EVENT = Event(user_id="user_3", event_type="click", timestamp=1000, url="/home")


def _message(value: bytes, offset: int = 0) -> PipelineMessage:
    return PipelineMessage(topic="user_events", partition=0, offset=offset, timestamp=0, value=value)


class FakeConsumer:
    """Hands out scripted reads; an Exception entry is raised instead of returned."""

    def __init__(self, script, calls):
        self.script = list(script)
        self.calls = calls
        self.group_id = "consumer-group-1"

    async def read(self, shutdown_event):
        if not self.script:
            shutdown_event.set()
            return None
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        self.calls.append(("read", item.offset))
        return item

    async def commit(self, message):
        self.calls.append(("commit", message.offset))

    def seek_to(self, message):
        self.calls.append(("seek", message.offset))
        self.script.insert(0, message)


class FakeSink:
    def __init__(self, calls, failures=0):
        self.calls = calls
        self.failures = failures
        self.records: list[EnrichedRecord] = []

    async def insert(self, record):
        self.calls.append(("insert", record.user_id))
        if self.failures:
            self.failures -= 1
            raise SinkWriteError("insert failed")
        self.records.append(record)
        return f"id-{len(self.records)}"


def _make_worker(script, policy=DeliveryPolicy.AT_MOST_ONCE, sink_failures=0, metrics=None, clock=None):
    calls = []
    consumer = FakeConsumer(script, calls)
    sink = FakeSink(calls, failures=sink_failures)
    worker = ConsumerWorker(
        consumer,
        sink,
        metrics,
        delivery_policy=policy,
        read_backoff_seconds=0,
        clock=clock or (lambda: 1150),
    )
    return worker, sink, calls


class TestHappyPath:
    @pytest.mark.asyncio
    async def test_end_to_end_latency(self, metrics):
        worker, sink, _ = _make_worker([_message(serialize_event(GOOD_EVENT))], metrics=metrics)

        await worker.run(asyncio.Event())

        assert len(sink.records) == 1
        record = sink.records[0]
        assert record.base_event() == GOOD_EVENT
        assert record.processing_time == 1150
        assert record.latency_ms == 150
        assert metrics.consumed_total == 1

    @pytest.mark.asyncio
    async def test_clock_read_per_message(self, metrics):
        times = iter([2000, 3000])
        script = [
            _message(serialize_event(GOOD_EVENT), offset=0),
            _message(serialize_event(GOOD_EVENT), offset=1),
        ]
        worker, sink, _ = _make_worker(script, metrics=metrics, clock=lambda: next(times))

        await worker.run(asyncio.Event())

        assert [r.latency_ms for r in sink.records] == [1000, 2000]

    @pytest.mark.asyncio
    async def test_max_messages_bound(self, metrics):
        script = [_message(serialize_event(GOOD_EVENT), offset=i) for i in range(5)]
        worker, sink, _ = _make_worker(script, metrics=metrics)

        await worker.run(asyncio.Event(), max_messages=2)

        assert len(sink.records) == 2
        assert worker.messages_read == 2

    @pytest.mark.asyncio
    async def test_stops_when_shutdown_already_set(self, metrics):
        worker, sink, calls = _make_worker([_message(serialize_event(GOOD_EVENT))], metrics=metrics)
        shutdown = asyncio.Event()
        shutdown.set()

        await worker.run(shutdown)

        assert calls == []


class TestMalformed:
    @pytest.mark.asyncio
    async def test_malformed_then_valid(self, metrics):
        script = [_message(b"{not json", offset=0), _message(serialize_event(GOOD_EVENT), offset=1)]
        worker, sink, calls = _make_worker(script, metrics=metrics)

        await worker.run(asyncio.Event())

        assert len(sink.records) == 1
        assert metrics.consumed_total == 1
        assert worker.decode_failures == 1
        assert ("commit", 0) in calls

    @pytest.mark.asyncio
    async def test_malformed_committed_under_at_least_once(self, metrics):
        worker, sink, calls = _make_worker(
            [_message(b"", offset=4)], policy=DeliveryPolicy.AT_LEAST_ONCE, metrics=metrics
        )

        await worker.run(asyncio.Event())

        assert calls == [("read", 4), ("commit", 4)]
        assert sink.records == []
        assert metrics.consumed_total == 0


class TestReadFailures:
    @pytest.mark.asyncio
    async def test_read_error_backs_off_and_continues(self, metrics):
        script = [RuntimeError("broker gone"), RuntimeError("still gone"), _message(serialize_event(GOOD_EVENT))]
        worker, sink, _ = _make_worker(script, metrics=metrics)

        await worker.run(asyncio.Event())

        assert len(sink.records) == 1
        assert worker.messages_read == 1

    @pytest.mark.asyncio
    async def test_shutdown_during_read_backoff(self, metrics):
        worker, sink, _ = _make_worker([RuntimeError("broker gone")], metrics=metrics)
        worker.read_backoff_seconds = 60
        shutdown = asyncio.Event()
        asyncio.get_running_loop().call_later(0.01, shutdown.set)

        await asyncio.wait_for(worker.run(shutdown), timeout=5)

        assert sink.records == []


class TestAtMostOnce:
    @pytest.mark.asyncio
    async def test_commits_before_write(self, metrics):
        worker, _, calls = _make_worker([_message(serialize_event(GOOD_EVENT), offset=3)], metrics=metrics)

        await worker.run(asyncio.Event())

        assert calls == [("read", 3), ("commit", 3), ("insert", "user_3")]

    @pytest.mark.asyncio
    async def test_sink_failure_loses_event(self, metrics):
        script = [_message(serialize_event(GOOD_EVENT), offset=0), _message(serialize_event(GOOD_EVENT), offset=1)]
        worker, sink, calls = _make_worker(script, sink_failures=1, metrics=metrics)

        await worker.run(asyncio.Event())

        assert len(sink.records) == 1
        assert metrics.consumed_total == 1
        assert worker.write_failures == 1
        assert not any(c[0] == "seek" for c in calls)


class TestAtLeastOnce:
    @pytest.mark.asyncio
    async def test_commits_after_write(self, metrics):
        worker, _, calls = _make_worker(
            [_message(serialize_event(GOOD_EVENT), offset=3)],
            policy=DeliveryPolicy.AT_LEAST_ONCE,
            metrics=metrics,
        )

        await worker.run(asyncio.Event())

        assert calls == [("read", 3), ("insert", "user_3"), ("commit", 3)]

    @pytest.mark.asyncio
    async def test_sink_failure_seeks_back_and_redelivers(self, metrics):
        worker, sink, calls = _make_worker(
            [_message(serialize_event(GOOD_EVENT), offset=3)],
            policy=DeliveryPolicy.AT_LEAST_ONCE,
            sink_failures=1,
            metrics=metrics,
        )

        await worker.run(asyncio.Event())

        assert calls == [
            ("read", 3),
            ("insert", "user_3"),
            ("seek", 3),
            ("read", 3),
            ("insert", "user_3"),
            ("commit", 3),
        ]
        assert len(sink.records) == 1
        assert metrics.consumed_total == 1


class TestCommitFailure:
    @pytest.mark.asyncio
    async def test_commit_error_logged_and_processing_continues(self, metrics):
        worker, sink, _ = _make_worker([_message(serialize_event(GOOD_EVENT))], metrics=metrics)
        worker.consumer.commit = AsyncMock(side_effect=RuntimeError("coordinator moved"))

        await worker.run(asyncio.Event())

        assert len(sink.records) == 1
