from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional


class CancellationToken:
    """
    Thread-safe cancel flag threaded through the upload poll loop.

    `wait()` doubles as the cooperative sleep between attempts, so a cancel
    from another thread wakes the loop right away.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Sleep up to `timeout` seconds; True if cancelled before or during the wait."""
        return self._event.wait(timeout)


@dataclass
class _BackoffConfig:
    interval: float
    backoff: float
    max_interval: float


class PollSchedule:
    """
    Delay policy between poll attempts.

    - `interval` is the first delay; each later delay is multiplied by
      `backoff` (1.0 keeps it fixed) and capped at `max_interval`.
    - `deadline` optionally bounds total elapsed seconds, measured with `clock`.
    - `sleep` and `clock` are injectable for deterministic tests.
    """

    def __init__(
        self,
        interval: float = 1.0,
        *,
        backoff: float = 1.0,
        max_interval: float = 8.0,
        deadline: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if interval < 0:
            raise ValueError("interval must be >= 0")
        if backoff < 1.0:
            raise ValueError("backoff must be >= 1.0")
        if deadline is not None and deadline <= 0:
            raise ValueError("deadline must be > 0")
        self._cfg = _BackoffConfig(interval=interval, backoff=backoff, max_interval=max(max_interval, interval))
        self._deadline = deadline
        self._sleep = sleep
        self._clock = clock

    def now(self) -> float:
        return self._clock()

    def delay_for(self, attempt: int) -> float:
        """Delay after the zero-based `attempt`."""
        delay = self._cfg.interval * (self._cfg.backoff ** attempt)
        return min(delay, self._cfg.max_interval)

    def expired(self, started: float) -> bool:
        if self._deadline is None:
            return False
        return (self._clock() - started) >= self._deadline

    def pause(self, attempt: int, cancel: Optional[CancellationToken] = None) -> bool:
        """
        Wait out the delay for `attempt`.

        Returns True when `cancel` fired before or during the wait.
        """
        delay = self.delay_for(attempt)
        if cancel is None:
            self._sleep(delay)
            return False
        return cancel.wait(delay)


__all__ = ["CancellationToken", "PollSchedule"]
