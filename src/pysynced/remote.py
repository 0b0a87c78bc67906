"""Remote collaborator contract.

The engine depends on two transactional RPCs and one bulk read. Concrete
implementations live in :mod:`pysynced._transport` (HTTP) and
:mod:`pysynced.sqlite` (local SQLite database).
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any, Protocol, TypeVar

from pysynced.exceptions import RemoteCallFailure
from pysynced.models.results import UpdateResult

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class Remote(Protocol):
    """Structural interface for the remote store.

    Failures are *returned* as :class:`RemoteCallFailure` values rather than
    raised, so the retry loop only ever sees a payload or an error object.
    """

    async def transactional_update(
        self,
        keys: Sequence[Any],
        request_template: str,
    ) -> list[UpdateResult] | RemoteCallFailure:
        """Run *request_template* once per key, all-or-nothing."""
        ...

    async def transactional_insert(
        self,
        record: Mapping[str, Any],
        request_template: str,
    ) -> list[dict[str, Any]] | RemoteCallFailure:
        """Insert *record* and return the persisted row(s) including the key."""
        ...

    async def fetch_all(self, query: str) -> list[dict[str, Any]]:
        ...


async def call_remote(endpoint: str, fn: Callable[[], Awaitable[T]]) -> T | RemoteCallFailure:
    """Invoke a remote operation, converting anything it raises into a failure value."""
    try:
        return await fn()
    except RemoteCallFailure as exc:
        return exc
    except Exception as exc:
        _logger.debug("Remote %s raised", endpoint, exc_info=True)
        return RemoteCallFailure(f"{type(exc).__name__}: {exc}", endpoint=endpoint, cause=exc)
