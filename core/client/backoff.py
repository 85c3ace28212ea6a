# core/client/backoff.py

import threading
from typing import Optional

class Backoff:
    def __init__(self,
                 initial_delay: float = 1.0,
                 factor: float = 2.0,
                 max_attempts: int = 3):
        """
        Exponential backoff with a cancellable wait.
        
        Args:
            initial_delay: Delay before the first retry in seconds
            factor: Multiplier applied to the delay for each further attempt
            max_attempts: Number of automatic retries allowed
        """
        self.initial_delay = initial_delay
        self.factor = factor
        self.max_attempts = max_attempts
        self._cancelled = threading.Event()

    def delay_for(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (0-based): 1s, 2s, 4s..."""
        return self.initial_delay * (self.factor ** attempt)

    def can_retry(self, attempt: int) -> bool:
        return attempt < self.max_attempts

    def wait(self, attempt: int) -> bool:
        """Sleep before a retry.

        Returns:
            False if the wait was cancelled, True otherwise
        """
        if self._cancelled.is_set():
            return False
        return not self._cancelled.wait(self.delay_for(attempt))

    def cancel(self) -> None:
        """Interrupt a pending wait and make future waits return immediately"""
        self._cancelled.set()

    def reset(self) -> None:
        self._cancelled.clear()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()
