"""Core utility functions."""

from core.utils.clock import now_ms
from core.utils.worker_id import generate_worker_id

__all__ = ["generate_worker_id", "now_ms"]
