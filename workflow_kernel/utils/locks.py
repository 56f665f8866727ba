"""Per-key mutual exclusion for the kernel's write paths."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Hashable, Iterator


class KeyedLock:
    """
    Hands out one lock per key (role name, transition name, entity id).

    Contract:
        Callers holding ``hold(k)`` exclude every other ``hold(k)`` caller;
        different keys never block each other.

    Guarantees:
        - Lock entries are reference counted and dropped once no thread holds
          or waits on them, so the registry stays proportional to the number
          of keys in active use.
        - Locks are not reentrant: a thread must not nest ``hold`` on the
          same key.
    """

    def __init__(self, name: str = "keyed") -> None:
        self.name = name
        self._registry_lock = threading.Lock()
        self._locks: dict[Hashable, list] = {}  # key -> [Lock, users]

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._registry_lock:
            entry = self._locks.get(key)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._locks[key] = entry
            entry[1] += 1
        lock = entry[0]
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._registry_lock:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def active_keys(self) -> int:
        """Number of keys currently held or awaited."""
        with self._registry_lock:
            return len(self._locks)
