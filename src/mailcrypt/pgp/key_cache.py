"""In-process cache of generated key pairs, keyed by identity."""

import threading
from collections.abc import Iterator

from mailcrypt.pgp.models import KeyPair


class KeyCache:
    """Identity -> KeyPair store shared by one encryption service.

    Concurrent writes for the same identity are last-write-wins. The cache is
    a convenience; every operation also accepts keys directly.
    """

    def __init__(self) -> None:
        """Initialize an empty cache."""
        self._entries: dict[str, KeyPair] = {}
        self._lock = threading.Lock()

    def put(self, key_pair: KeyPair) -> None:
        """Store a key pair, replacing any entry for the same identity."""
        with self._lock:
            self._entries[key_pair.identity] = key_pair

    def get(self, identity: str) -> KeyPair | None:
        """Return the cached key pair for an identity, if any."""
        with self._lock:
            return self._entries.get(identity)

    def remove(self, identity: str) -> bool:
        """Drop one identity. Returns True if an entry was removed."""
        with self._lock:
            return self._entries.pop(identity, None) is not None

    def clear(self) -> None:
        """Remove every cached key pair."""
        with self._lock:
            self._entries.clear()

    def identities(self) -> list[str]:
        """Return the cached identities."""
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, identity: object) -> bool:
        with self._lock:
            return identity in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self.identities())
