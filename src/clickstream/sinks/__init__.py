"""Document store sinks for enriched events."""

from clickstream.sinks.mongo import MongoEventSink

__all__ = ["MongoEventSink"]
