"""Kafka transport, topic bootstrap, metrics and signal handling.

Import classes directly from submodules:
    from clickstream.common.consumer import MessageConsumer
    from clickstream.common.producer import MessageProducer
    from clickstream.common.topic_bootstrap import TopicBootstrapper
"""

# Don't import concrete implementations here to avoid loading
# aiokafka and prometheus_client at package import time.

__all__: list[str] = []
