"""Utility modules for the G2B bid monitor."""

from .logger import setup_logger, MonitorLogger
from .polling import PollStrategy, poll_until, RetryStrategy, with_retry

__all__ = [
    "setup_logger",
    "MonitorLogger",
    "PollStrategy",
    "poll_until",
    "RetryStrategy",
    "with_retry",
]
