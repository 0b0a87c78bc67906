"""Client-side identity allocation.

Ids are short opaque strings drawn from a cryptographically strong source.
Uniqueness is not enforced here; :class:`pysynced.state.store.SyncedStore`
re-draws on collision with any id it has already issued.
"""

from __future__ import annotations

import math
import secrets
import string

from pysynced._constants import DEFAULT_CLIENT_ID_LENGTH

WIDE_ALPHABET = string.ascii_letters + "123456789" + "~!@#$%^&*-_=+"


class ClientIdAllocator:
    """Produce random client-side ids of a fixed length.

    Without an alphabet, ids are lowercase hex (``secrets.token_hex``).
    """

    def __init__(self, length: int = DEFAULT_CLIENT_ID_LENGTH, alphabet: str | None = None) -> None:
        if length < 1:
            raise ValueError(f"length must be at least 1, got {length}")
        if alphabet is not None and len(set(alphabet)) < 2:
            raise ValueError("alphabet must contain at least two distinct characters")
        self._length = length
        self._alphabet = alphabet

    @property
    def length(self) -> int:
        return self._length

    def allocate(self) -> str:
        if self._alphabet is None:
            return secrets.token_hex(math.ceil(self._length / 2))[: self._length]
        return "".join(secrets.choice(self._alphabet) for _ in range(self._length))

    def __call__(self) -> str:
        return self.allocate()
