"""Custom exception hierarchy for pysynced."""

from __future__ import annotations


class SyncedError(Exception):
    """Base exception for all pysynced errors."""


class SyncedConfigError(SyncedError):
    """Invalid or missing configuration."""


class UnknownItemError(SyncedError, KeyError):
    """No item with the given client-side id exists in the store."""

    def __init__(self, client_id: str) -> None:
        self.client_id = client_id
        super().__init__(f"Unknown client-side id: {client_id!r}")

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message.
        return str(self.args[0])


class RemoteCallFailure(SyncedError):
    """Any failure reported by the remote collaborator.

    The retry loop does not classify failures: validation errors, server
    errors and connectivity errors all consume one attempt.
    """

    def __init__(
        self,
        message: str,
        *,
        endpoint: str = "",
        status_code: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.status_code = status_code
        self.cause = cause
        super().__init__(message)


class RemoteTransportError(RemoteCallFailure):
    """HTTP-level failure (network, non-200, invalid JSON)."""
