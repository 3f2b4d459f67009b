"""Subscription registry: ordered, identity-keyed listener set.

Listeners are kept in registration order and compared by identity, never
by ``==``: two distinct closures (or two bound-method objects) are two
entries even if they compare equal, while registering the very same
object twice keeps a single entry.

Each entry counts the handles holding it. A handle releases its own
entry only, so the listener stays registered until every handle given
out for that entry has been called.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tabby._types import Listener


class _Entry:
    __slots__ = ("holders", "listener")

    def __init__(self, listener: Listener) -> None:
        self.listener = listener
        self.holders = 1


class Subscription:
    """One-shot handle that releases a single registration.

    Calling it again after the first call does nothing. A handle whose
    entry was already dropped (through ``SubscriptionRegistry.remove``)
    never touches a newer entry for the same listener.

    """

    __slots__ = ("_entry", "_registry")

    def __init__(self, registry: SubscriptionRegistry, entry: _Entry) -> None:
        self._registry: SubscriptionRegistry | None = registry
        self._entry = entry

    @property
    def listener(self) -> Listener:
        return self._entry.listener

    @property
    def active(self) -> bool:
        """True until this handle has been used."""
        return self._registry is not None

    def __call__(self) -> None:
        registry, self._registry = self._registry, None
        if registry is not None:
            registry._release(self._entry)

    unsubscribe = __call__


class SubscriptionRegistry:
    """Listeners attached to one store, in insertion order.

    Thread-safe: the entry list is protected by a lock, and ``snapshot()``
    hands out a copy so delivery can proceed while listeners unsubscribe.

    """

    __slots__ = ("_entries", "_lock")

    def __init__(self) -> None:
        self._entries: list[_Entry] = []
        self._lock = threading.Lock()

    def add(self, listener: Listener) -> Subscription:
        """Register ``listener``; the same object again adds a holder, not an entry."""
        with self._lock:
            entry = self._find(listener)
            if entry is None:
                entry = _Entry(listener)
                self._entries.append(entry)
            else:
                entry.holders += 1
        return Subscription(self, entry)

    def remove(self, listener: Listener) -> bool:
        """Drop ``listener`` whatever its holder count. False when absent."""
        with self._lock:
            entry = self._find(listener)
            if entry is None:
                return False
            self._entries.remove(entry)
            return True

    def _release(self, entry: _Entry) -> None:
        with self._lock:
            if not any(e is entry for e in self._entries):
                return
            entry.holders -= 1
            if entry.holders == 0:
                self._entries.remove(entry)

    def _find(self, listener: object) -> _Entry | None:
        for entry in self._entries:
            if entry.listener is listener:
                return entry
        return None

    def snapshot(self) -> tuple[Listener, ...]:
        """Current listeners in notification order."""
        with self._lock:
            return tuple(entry.listener for entry in self._entries)

    def __contains__(self, listener: object) -> bool:
        with self._lock:
            return self._find(listener) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
