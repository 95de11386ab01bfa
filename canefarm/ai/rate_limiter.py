"""
Per-provider rate limiting
"""

import time
from typing import Optional


class RateLimiter:
    """
    Rate limiter to prevent excessive LLM API calls
    """

    def __init__(self, min_interval: float = 1.0):
        """
        Initialize rate limiter

        Args:
            min_interval: Minimum seconds between API calls
        """
        self.min_interval = min_interval
        self.last_call_time: Optional[float] = None

    def should_call_llm(self, current_time: Optional[float] = None) -> bool:
        """
        Check if enough time has passed to make another LLM call

        Args:
            current_time: Current time in seconds (default: time.monotonic())

        Returns:
            True if enough time has passed since the last call; the call is
            then counted as made
        """
        if current_time is None:
            current_time = time.monotonic()
        if self.last_call_time is None or current_time - self.last_call_time >= self.min_interval:
            self.last_call_time = current_time
            return True
        return False

    def wait_time(self, current_time: Optional[float] = None) -> float:
        """Seconds until the next call is allowed"""
        if self.last_call_time is None:
            return 0.0
        if current_time is None:
            current_time = time.monotonic()
        return max(0.0, self.min_interval - (current_time - self.last_call_time))

    def reset(self):
        """Reset the rate limiter"""
        self.last_call_time = None
