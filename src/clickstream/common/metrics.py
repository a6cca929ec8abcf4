"""
Prometheus metrics for the clickstream pipeline.

Two monotonically increasing counters, one per role:
- produced: events acknowledged by the broker
- consumed: events written to the sink by the consumer (malformed messages
  and failed writes are not counted)

Each process exposes its registry over HTTP at /metrics.
"""

import errno
import logging
import socket

from prometheus_client import CollectorRegistry, Counter, start_http_server

logger = logging.getLogger(__name__)

PRODUCED_COUNTER_NAME = "kafka_producer_events_total"
CONSUMED_COUNTER_NAME = "kafka_consumer_events_total"


class PipelineMetrics:
    """Counters for one process, registered on their own registry."""

    def __init__(
        self,
        registry: CollectorRegistry | None = None,
        produced_name: str = PRODUCED_COUNTER_NAME,
        consumed_name: str = CONSUMED_COUNTER_NAME,
    ):
        self.registry = registry if registry is not None else CollectorRegistry()
        # prometheus_client appends _total to counter samples itself, with or
        # without the suffix in the configured name
        produced_base = produced_name.removesuffix("_total")
        consumed_base = consumed_name.removesuffix("_total")
        self._produced = Counter(
            produced_base,
            "Total number of user events produced to Kafka.",
            registry=self.registry,
        )
        self._consumed = Counter(
            consumed_base,
            "Total number of user events consumed from Kafka.",
            registry=self.registry,
        )
        self._produced_sample = f"{produced_base}_total"
        self._consumed_sample = f"{consumed_base}_total"

    def record_produced(self) -> None:
        self._produced.inc()

    def record_consumed(self) -> None:
        self._consumed.inc()

    @property
    def produced_total(self) -> float:
        return self.registry.get_sample_value(self._produced_sample) or 0.0

    @property
    def consumed_total(self) -> float:
        return self.registry.get_sample_value(self._consumed_sample) or 0.0

    def start_http_server(self, preferred_port: int, port_fallback: bool = False) -> int:
        """Start the metrics endpoint.

        With port_fallback, a port already in use is replaced by a free one.
        Returns actual port number that the server is listening on."""
        try:
            start_http_server(preferred_port, registry=self.registry)
            return preferred_port
        except OSError as e:
            if e.errno != errno.EADDRINUSE or not port_fallback:
                raise

            with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
                s.bind(("", 0))
                s.listen(1)
                available_port = s.getsockname()[1]

            logger.warning(
                "Metrics port already in use, serving on a different port",
                extra={"preferred_port": preferred_port, "actual_port": available_port},
            )
            start_http_server(available_port, registry=self.registry)
            return available_port


__all__ = ["PipelineMetrics", "PRODUCED_COUNTER_NAME", "CONSUMED_COUNTER_NAME"]
