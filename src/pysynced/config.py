"""Engine configuration for pysynced."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pysynced._constants import (
    BASE_URL,
    DEFAULT_CLIENT_ID_LENGTH,
    DEFAULT_INITIAL_DELAY,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_DELAY,
    DEFAULT_MAX_FAILED_REQUESTS,
    DEFAULT_REMOVAL_DELAY,
)
from pysynced.exceptions import SyncedConfigError


@dataclasses.dataclass(frozen=True)
class SyncConfig:
    """Synchronization engine configuration.

    Parameters
    ----------
    initial_delay : float
        First backoff delay in seconds (before jitter).
    max_delay : float
        Ceiling for the un-jittered backoff delay in seconds.
    max_attempts : int
        Total remote calls per operation, including the first one.
    removal_delay : float
        Seconds a terminally failed creation stays visible as ``FAILED``
        before it is removed from the store.
    client_id_length : int
        Length of generated client-side ids.
    base_url : str
        Base URL of the HTTP remote.
    request_timeout : float
        Total timeout in seconds for one HTTP remote call.
    max_failed_requests : int
        How many terminally failed mutations (and, separately, creations)
        the client remembers for a later retry. The oldest are dropped first.
    """

    initial_delay: float = DEFAULT_INITIAL_DELAY
    max_delay: float = DEFAULT_MAX_DELAY
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    removal_delay: float = DEFAULT_REMOVAL_DELAY
    client_id_length: int = DEFAULT_CLIENT_ID_LENGTH
    base_url: str = BASE_URL
    request_timeout: float = 30.0
    max_failed_requests: int = DEFAULT_MAX_FAILED_REQUESTS

    def __post_init__(self) -> None:
        if self.initial_delay <= 0:
            raise SyncedConfigError(f"initial_delay must be positive, got {self.initial_delay}")
        if self.max_delay <= 0:
            raise SyncedConfigError(f"max_delay must be positive, got {self.max_delay}")
        if self.max_attempts < 1:
            raise SyncedConfigError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.removal_delay < 0:
            raise SyncedConfigError(f"removal_delay must not be negative, got {self.removal_delay}")
        if self.client_id_length < 1:
            raise SyncedConfigError(f"client_id_length must be at least 1, got {self.client_id_length}")
        if self.request_timeout <= 0:
            raise SyncedConfigError(f"request_timeout must be positive, got {self.request_timeout}")
        if self.max_failed_requests < 1:
            raise SyncedConfigError(f"max_failed_requests must be at least 1, got {self.max_failed_requests}")

    @classmethod
    def from_env(cls, **overrides: Any) -> SyncConfig:
        """Create configuration from environment variables.

        Reads optional ``SYNC_*`` variables. Explicit keyword arguments
        override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        SyncConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_FLOAT_MAP = {
            "SYNC_INITIAL_DELAY": "initial_delay",
            "SYNC_MAX_DELAY": "max_delay",
            "SYNC_REMOVAL_DELAY": "removal_delay",
            "SYNC_REQUEST_TIMEOUT": "request_timeout",
        }
        _ENV_INT_MAP = {
            "SYNC_MAX_ATTEMPTS": "max_attempts",
            "SYNC_CLIENT_ID_LENGTH": "client_id_length",
            "SYNC_MAX_FAILED_REQUESTS": "max_failed_requests",
        }

        config_kwargs: dict[str, Any] = {}
        try:
            for env_key, field_name in _ENV_FLOAT_MAP.items():
                val = env.get(env_key)
                if val is not None and field_name not in overrides:
                    config_kwargs[field_name] = float(val)
            for env_key, field_name in _ENV_INT_MAP.items():
                val = env.get(env_key)
                if val is not None and field_name not in overrides:
                    config_kwargs[field_name] = int(val)
        except ValueError as exc:
            raise SyncedConfigError(f"Invalid numeric value in environment: {exc}") from exc

        base_url = env.get("SYNC_BASE_URL")
        if base_url is not None:
            config_kwargs["base_url"] = base_url

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
