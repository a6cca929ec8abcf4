"""Worker ID generation using coolname slugs."""

from coolname import generate_slug


def generate_worker_id(prefix: str = "") -> str:
    """Generate a memorable worker ID for log context and Kafka client ids.

    Examples:
        >>> generate_worker_id()
        'brave-golden-tiger'
        >>> generate_worker_id("clickstream-consumer")
        'clickstream-consumer-swift-blue-falcon'
    """
    slug = generate_slug(3)
    return f"{prefix}-{slug}" if prefix else slug
