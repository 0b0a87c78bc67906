"""Bounded retry loop shared by the mutation and creation engines."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from pysynced._backoff import Backoff
from pysynced.exceptions import RemoteCallFailure
from pysynced.remote import call_remote

_logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_remote(
    call: Callable[[], Awaitable[T | RemoteCallFailure]],
    *,
    endpoint: str,
    description: str,
    max_attempts: int,
    backoff: Backoff,
    sleep: Callable[[float], Awaitable[None]],
    on_error: Callable[[RemoteCallFailure], None],
    on_retry: Callable[[], None],
) -> T | RemoteCallFailure:
    """Call *call* up to *max_attempts* times.

    Between attempts ``on_error`` runs, then the next delay is drawn, then
    ``on_retry`` runs, then the loop sleeps. The last failure is returned,
    never raised, and the terminal transition is left to the caller.
    """
    attempts_left = max_attempts
    while True:
        result = await call_remote(endpoint, call)
        attempts_left -= 1
        if not isinstance(result, RemoteCallFailure):
            return result
        if attempts_left <= 0:
            _logger.warning("%s failed (%s); no attempts left", description, result)
            return result

        on_error(result)
        delay = backoff.next_delay()
        on_retry()
        _logger.warning(
            "%s failed (%s); retrying in %.3fs, %d attempt(s) left",
            description,
            result,
            delay,
            attempts_left,
        )
        await sleep(delay)
