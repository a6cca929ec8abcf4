"""Synthetic user-activity event generator."""

import random
from collections.abc import Callable

from clickstream.schemas.events import EVENT_TYPES, URLS, Event
from core.utils import now_ms


class EventGenerator:
    """
    Builds random events from a fixed population of users.

    Randomness and time are injectable so tests can pin both:

        >>> gen = EventGenerator(rng=random.Random(7), clock=lambda: 1000)
        >>> gen.generate().timestamp
        1000
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        clock: Callable[[], int] | None = None,
        user_pool_size: int = 10,
        pause_min_ms: int = 1000,
        pause_max_ms: int = 2500,
        pause_step_ms: int = 500,
    ):
        if user_pool_size < 1:
            raise ValueError("user_pool_size must be >= 1")
        if pause_step_ms < 1 or pause_max_ms < pause_min_ms:
            raise ValueError("pause range must be non-empty with a positive step")

        self._rng = rng or random.Random()
        self._clock = clock or now_ms
        self.user_pool_size = user_pool_size
        self.pause_choices = tuple(
            ms / 1000 for ms in range(pause_min_ms, pause_max_ms + 1, pause_step_ms)
        )

    def generate(self) -> Event:
        return Event(
            user_id=f"user_{self._rng.randint(1, self.user_pool_size)}",
            event_type=self._rng.choice(EVENT_TYPES),
            timestamp=self._clock(),
            url=self._rng.choice(URLS),
        )

    def next_pause_seconds(self) -> float:
        """Seconds to wait before the next event, drawn uniformly from pause_choices."""
        return self._rng.choice(self.pause_choices)


__all__ = ["EventGenerator"]
