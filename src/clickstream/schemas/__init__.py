"""Event schemas for the clickstream pipeline."""

from clickstream.schemas.events import (
    EVENT_TYPES,
    URLS,
    EnrichedRecord,
    Event,
    deserialize_event,
    enrich,
    serialize_event,
)

__all__ = [
    "EVENT_TYPES",
    "URLS",
    "Event",
    "EnrichedRecord",
    "enrich",
    "serialize_event",
    "deserialize_event",
]
