"""Exponential backoff schedule.

`ExponentialBackoff` is an immutable policy shared by every request of a
client; `BackoffState` is created per logical request and holds the attempt
counter and the elapsed-time clock.
"""

import random
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from ..config.settings import (
    DEFAULT_INITIAL_INTERVAL,
    DEFAULT_JITTER,
    DEFAULT_MAX_ELAPSED_TIME,
    DEFAULT_MAX_INTERVAL,
    DEFAULT_MAX_RETRY,
    DEFAULT_MULTIPLIER,
    BackoffSettings,
)


@dataclass(frozen=True)
class ExponentialBackoff:
    initial_interval: float = DEFAULT_INITIAL_INTERVAL
    multiplier: float = DEFAULT_MULTIPLIER
    max_interval: float = DEFAULT_MAX_INTERVAL
    max_elapsed_time: float | None = DEFAULT_MAX_ELAPSED_TIME
    max_retry: int = DEFAULT_MAX_RETRY
    jitter: float = DEFAULT_JITTER

    @classmethod
    def from_settings(cls, settings: BackoffSettings) -> "ExponentialBackoff":
        return cls(
            initial_interval=settings.initial_interval,
            multiplier=settings.multiplier,
            max_interval=settings.max_interval,
            max_elapsed_time=settings.max_elapsed_time,
            max_retry=settings.max_retry,
            jitter=settings.jitter,
        )

    def _clamp(self, value: float) -> float:
        return min(max(value, self.initial_interval), self.max_interval)

    def interval(self, attempt: int) -> float:
        """Wait after the given attempt (1-based), before jitter"""
        if attempt < 1:
            raise ValueError("attempt must be >= 1")
        exponent = attempt - 1
        try:
            value = self.initial_interval * self.multiplier**exponent
        except OverflowError:
            value = self.max_interval
        return self._clamp(value)

    def next(self, attempt: int, rng: random.Random | None = None) -> float:
        """Jittered wait after the given attempt, kept within [initial_interval, max_interval]"""
        value = self.interval(attempt)
        if self.jitter:
            delta = value * self.jitter
            value = (rng or random).uniform(value - delta, value + delta)
        return self._clamp(value)

    def done(self, attempt: int, elapsed: float, wait: float = 0.0) -> bool:
        """Whether the budget is spent after `attempt` attempts and `elapsed` seconds"""
        if self.max_retry and attempt > self.max_retry:
            return True
        if self.max_elapsed_time and elapsed + wait > self.max_elapsed_time:
            return True
        return False

    def start(
        self,
        clock: Callable[[], float] = time.monotonic,
        rng: random.Random | None = None,
    ) -> "BackoffState":
        return BackoffState(policy=self, clock=clock, rng=rng)


@dataclass
class BackoffState:
    policy: ExponentialBackoff
    clock: Callable[[], float] = time.monotonic
    rng: random.Random | None = None
    attempt: int = 0
    started_at: float | None = field(default=None)

    def begin_attempt(self) -> int:
        if self.started_at is None:
            self.started_at = self.clock()
        self.attempt += 1
        return self.attempt

    @property
    def elapsed(self) -> float:
        if self.started_at is None:
            return 0.0
        return self.clock() - self.started_at

    def next_wait(self) -> float | None:
        """Wait before the next attempt, or None once the budget is spent"""
        wait = self.policy.next(self.attempt, self.rng)
        if self.policy.done(self.attempt, self.elapsed, wait):
            return None
        return wait
