"""Producer and consumer loops."""

from clickstream.workers.consumer_worker import ConsumerWorker
from clickstream.workers.producer_worker import ProducerWorker

__all__ = ["ConsumerWorker", "ProducerWorker"]
