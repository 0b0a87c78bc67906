"""Jittered exponential backoff.

Delays grow as ``initial * 2**n`` up to ``ceiling`` and are multiplied by a
jitter factor drawn uniformly from ``[0.9, 1.1)`` on every call.
"""

from __future__ import annotations

import random
from collections.abc import Callable

from pysynced._constants import JITTER_LOW, JITTER_SPAN

# 2**1000 still converts to float; beyond that the delay is long since capped.
_MAX_EXPONENT = 1000


def delay_for(
    attempt: int,
    initial: float,
    ceiling: float,
    *,
    rng: Callable[[], float] = random.random,
) -> float:
    """Return the jittered delay (seconds) for retry number *attempt* (0-based)."""
    if attempt < 0:
        raise ValueError(f"attempt must be >= 0, got {attempt}")
    if initial <= 0 or ceiling <= 0:
        raise ValueError("initial and ceiling delays must be positive")
    base = min(initial * 2 ** min(attempt, _MAX_EXPONENT), ceiling)
    return base * (JITTER_LOW + rng() * JITTER_SPAN)


class Backoff:
    """Per-operation backoff state.

    Every mutation or creation owns its own instance so that concurrent
    operations never share an exponent counter.
    """

    def __init__(
        self,
        initial: float,
        ceiling: float,
        *,
        rng: Callable[[], float] = random.random,
    ) -> None:
        if initial <= 0 or ceiling <= 0:
            raise ValueError("initial and ceiling delays must be positive")
        self._initial = initial
        self._ceiling = ceiling
        self._rng = rng
        self._attempt = 0

    @property
    def attempt(self) -> int:
        """Number of delays handed out so far."""
        return self._attempt

    def next_delay(self) -> float:
        delay = delay_for(self._attempt, self._initial, self._ceiling, rng=self._rng)
        self._attempt += 1
        return delay

    def reset(self) -> None:
        self._attempt = 0

    def __iter__(self) -> Backoff:
        return self

    def __next__(self) -> float:
        return self.next_delay()
