"""
Admission Module - Black Box Interface

Purpose: Cheap per-process load shedding before any account store access
Interface: AdmissionGate.try_admit(), AdmissionGate.retry_after()
Hidden: Window bookkeeping, clock source

A fixed-window request counter owned by the application instance and reset
on a monotonic clock. Advisory admission control only; it is not part of
the authentication critical section.
"""

import time
from typing import Callable, Optional


class AdmissionGate:
    """Fixed-window request counter."""

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Initialize admission gate.

        Args:
            limit: Requests admitted per window (0 disables the gate)
            window_seconds: Window length in seconds
            clock: Monotonic time source, injectable for tests
        """
        if limit < 0 or window_seconds <= 0:
            raise ValueError("limit must be >= 0 and window_seconds > 0")

        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock or time.monotonic
        self._window_start = self._clock()
        self._count = 0

    @property
    def enabled(self) -> bool:
        return self.limit > 0

    def _roll(self, now: float) -> None:
        if now - self._window_start >= self.window_seconds:
            # Windows stay on a fixed grid from the first window start
            elapsed_windows = int((now - self._window_start) // self.window_seconds)
            self._window_start += elapsed_windows * self.window_seconds
            self._count = 0

    def try_admit(self) -> bool:
        """Count one request; False when the current window is full."""
        if not self.enabled:
            return True

        self._roll(self._clock())
        if self._count >= self.limit:
            return False

        self._count += 1
        return True

    def retry_after(self) -> float:
        """Seconds until the current window resets."""
        now = self._clock()
        self._roll(now)
        return max(self._window_start + self.window_seconds - now, 0.0)

    @property
    def count(self) -> int:
        return self._count


__all__ = ["AdmissionGate"]
