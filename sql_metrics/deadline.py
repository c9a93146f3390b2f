"""Timeout and cancellation signal shared by one collection run."""

from __future__ import annotations

__all__ = ["Deadline"]

import time
from typing import Callable, Optional


class Deadline:
    """A wall-clock budget that can also be cancelled explicitly.

    ``timeout=None`` (or ``0``) means no time limit; the deadline then only
    expires once :meth:`cancel` is called, e.g. from a signal handler.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clock = clock
        self._expires_at = clock() + timeout if timeout else None
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def remaining(self) -> Optional[float]:
        """Seconds left, ``0.0`` once expired, ``None`` when unbounded."""
        if self._cancelled:
            return 0.0
        if self._expires_at is None:
            return None
        return max(self._expires_at - self._clock(), 0.0)

    def expired(self) -> bool:
        return self.remaining() == 0.0

    def cap(self, seconds: float) -> float:
        """Return ``seconds`` limited to what is left of the deadline."""
        left = self.remaining()
        return seconds if left is None else min(seconds, left)
