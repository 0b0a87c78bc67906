"""Per-item network status."""

from __future__ import annotations

from enum import StrEnum


class NetworkStatus(StrEnum):
    """Where a pending change stands in its synchronization lifecycle.

    ``SYNCED`` is both the idle and the success state. ``GOT_ERROR`` and
    ``SENT_RETRY`` are distinct so observers can tell "just failed" apart
    from "about to retry". ``FAILED`` is terminal for the attempt.
    """

    SYNCED = "synced"
    SENT_REQUEST = "sent-request"
    GOT_ERROR = "got-error"
    SENT_RETRY = "sent-retry"
    FAILED = "failed"

    @property
    def is_pending(self) -> bool:
        """A remote call for this item is in flight or scheduled."""
        return self in (NetworkStatus.SENT_REQUEST, NetworkStatus.GOT_ERROR, NetworkStatus.SENT_RETRY)

    @property
    def is_error(self) -> bool:
        return self in (NetworkStatus.GOT_ERROR, NetworkStatus.SENT_RETRY, NetworkStatus.FAILED)
