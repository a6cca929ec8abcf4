"""Wall-clock helpers."""

import time


def now_ms() -> int:
    """Current wall-clock time in integer milliseconds since the epoch."""
    return time.time_ns() // 1_000_000
