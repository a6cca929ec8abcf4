"""
User-activity event schemas and the topic wire codec.

Event is what the producer publishes; EnrichedRecord is what the consumer
writes to the document store. Both are immutable once built.

Wire format (topic message value), UTF-8 JSON:
    {"user_id": str, "event_type": str, "timestamp": int, "url": str}

Sink document: the wire fields plus processing_time and latency_ms.
"""

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    StrictStr,
    model_validator,
)

from core.errors import EventDecodeError

EVENT_TYPES = ("view", "click", "purchase", "add_to_cart", "login")

URLS = ("/home", "/product/a", "/product/b", "/checkout", "/blog", "/about")


class Event(BaseModel):
    """Schema for a synthetic user-activity event.

    Attributes:
        user_id: Synthetic user identifier (user_1 .. user_N)
        event_type: Activity category (view, click, purchase, add_to_cart, login)
        timestamp: Generation time in milliseconds since the epoch
        url: Page path the activity happened on

    Example:
        >>> event = Event(user_id="user_3", event_type="click", timestamp=1000, url="/home")
        >>> deserialize_event(serialize_event(event)) == event
        True
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    user_id: StrictStr = Field(..., min_length=1, description="Synthetic user identifier")
    event_type: StrictStr = Field(..., description="Activity category")
    timestamp: StrictInt = Field(..., description="Generation time, ms since epoch")
    url: StrictStr = Field(..., description="Page path")


class EnrichedRecord(Event):
    """Event plus consumption timing, as persisted to the sink.

    latency_ms is processing_time - timestamp. It is negative when the
    consumer's clock is behind the producer's; that is kept as-is.
    """

    processing_time: StrictInt = Field(..., description="Consumption time, ms since epoch")
    latency_ms: StrictInt = Field(..., description="processing_time - timestamp")

    @model_validator(mode="after")
    def _check_latency(self) -> "EnrichedRecord":
        expected = self.processing_time - self.timestamp
        if self.latency_ms != expected:
            raise ValueError(
                f"latency_ms must equal processing_time - timestamp ({expected}), got {self.latency_ms}"
            )
        return self

    def base_event(self) -> Event:
        """The transmitted Event this record was built from."""
        return Event(
            user_id=self.user_id,
            event_type=self.event_type,
            timestamp=self.timestamp,
            url=self.url,
        )

    def to_document(self) -> dict:
        """Fresh dict for the sink. The driver may add _id to it."""
        return self.model_dump()


def enrich(event: Event, processing_time: int) -> EnrichedRecord:
    """Attach consumption time and latency to an event."""
    return EnrichedRecord(
        user_id=event.user_id,
        event_type=event.event_type,
        timestamp=event.timestamp,
        url=event.url,
        processing_time=processing_time,
        latency_ms=processing_time - event.timestamp,
    )


def serialize_event(event: Event) -> bytes:
    """Encode an event as the topic message value."""
    return event.model_dump_json().encode("utf-8")


def deserialize_event(payload: bytes | None) -> Event:
    """
    Decode a topic message value into an Event.

    Raises:
        EventDecodeError: empty payload, invalid UTF-8 or JSON, non-object
            JSON, missing fields, wrong field types or an empty user_id
    """
    if not payload:
        raise EventDecodeError("Empty event payload", payload=payload)

    try:
        return Event.model_validate_json(payload)
    except ValueError as e:
        # pydantic.ValidationError is a ValueError
        raise EventDecodeError(
            f"Invalid event payload: {e}", payload=payload, cause=e
        ) from e
