"""
Clickstream pipeline: synthetic user-activity events through Kafka into MongoDB.

Processes:
    producer - ensures the topic exists, then generates and publishes events
    consumer - reads events, computes ingestion latency, writes to MongoDB

Run with ``python -m clickstream producer`` or ``python -m clickstream consumer``.
"""

__version__ = "0.1.0"
