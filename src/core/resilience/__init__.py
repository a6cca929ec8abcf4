"""
Resilience patterns module.

Components:
    - RetryConfig: fixed or exponential backoff configuration
    - decide_retry: pure per-attempt decision (Success / Retry / Abort)
    - run_with_retry: async driver with an injectable sleep
"""

from .retry import (
    Abort,
    Retry,
    RetryConfig,
    RetryDecision,
    RetryStats,
    Success,
    decide_retry,
    run_with_retry,
)

__all__ = [
    "RetryConfig",
    "RetryStats",
    "RetryDecision",
    "Success",
    "Retry",
    "Abort",
    "decide_retry",
    "run_with_retry",
]
