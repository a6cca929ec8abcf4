"""Shared fixtures for clickstream tests."""

import pytest

from clickstream.common.metrics import PipelineMetrics
from clickstream.config import (
    BootstrapSettings,
    ConsumerSettings,
    KafkaSettings,
    PipelineConfig,
    ProducerSettings,
    TopicSettings,
)


@pytest.fixture
def metrics():
    """Fresh counters on a private registry."""
    return PipelineMetrics()


@pytest.fixture
def pipeline_config():
    """Reference defaults with zero waits so loops never sleep in tests."""
    return PipelineConfig(
        kafka=KafkaSettings(bootstrap_servers="localhost:9092"),
        topic=TopicSettings(name="user_events"),
        bootstrap=BootstrapSettings(max_attempts=5, retry_interval_seconds=0),
        producer=ProducerSettings(pause_min_ms=0, pause_max_ms=0, pause_step_ms=1),
        consumer=ConsumerSettings(read_backoff_seconds=0),
    )
