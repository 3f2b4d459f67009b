"""Observable state container.

A ``Store`` owns one state record (a ``dict``) and exposes it through a
``StateProxy``. Every field write on the proxy, by attribute or by key,
goes through the store's intercept:

    1. The value is applied to the underlying record.
    2. If the store has a storage slot, the *entire* record is serialized
       and saved before anyone is told.
    3. Every listener is called with the full state, in registration order.

All three steps run synchronously in the writing thread, under the store's
re-entrant lock, so write N is fully delivered before write N+1 begins.
There is no batching and no change filtering: writing the same value twice
notifies twice, and N field writes cost N saves and N notification passes.

Interception is shallow. Mutating a nested list or dict in place
(``state.items.append(x)``) is not seen; reassigning the field is.
"""

from __future__ import annotations

import copy
import sys
import threading
from collections.abc import Iterator, Mapping, MutableMapping
from typing import TYPE_CHECKING, Any

from tabby._errors import (
    ConstructionError,
    CorruptSnapshotError,
    ListenerError,
    PersistenceError,
)
from tabby.config import TabbyConfig
from tabby.state.persistence import PersistenceAdapter, default_storage
from tabby.state.registry import Subscription, SubscriptionRegistry

if TYPE_CHECKING:
    from tabby._types import Listener
    from tabby.observability.collector import StateCollector
    from tabby.state.persistence import StorageBackend


class StateProxy(MutableMapping[str, Any]):
    """Live view of a store's record whose writes are intercepted.

    Supports ``state.count`` / ``state["count"]`` for reads and the same
    two spellings for writes and deletes. Mapping helpers (``update``,
    ``pop``, ``setdefault``, ``clear``) are built on ``__setitem__`` and
    ``__delitem__``, so each field they touch is its own write.

    Fields named like mapping methods (``keys``, ``items``, ``update``)
    must be read by key; the attribute spelling returns the method.

    """

    __slots__ = ("_data", "_store")

    def __init__(self, store: Store, data: dict[str, Any]) -> None:
        object.__setattr__(self, "_store", store)
        object.__setattr__(self, "_data", data)

    # ----- Mapping protocol -----

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._store._write(key, value)

    def __delitem__(self, key: str) -> None:
        if key not in self._data:
            raise KeyError(key)
        self._store._write(key, _DELETE)

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    # ----- Attribute spelling -----

    def __getattr__(self, name: str) -> Any:
        try:
            return self._data[name]
        except KeyError:
            msg = f"state has no field {name!r}"
            raise AttributeError(msg) from None

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_"):
            msg = f"cannot set private attribute {name!r} on state"
            raise AttributeError(msg)
        self._store._write(name, value)

    def __delattr__(self, name: str) -> None:
        if name not in self._data:
            msg = f"state has no field {name!r}"
            raise AttributeError(msg)
        self._store._write(name, _DELETE)

    def __repr__(self) -> str:
        return f"StateProxy({self._data!r})"


_DELETE = object()


class Store:
    """Observable container for one state record.

    Args:
        initial: Starting record. Shallow-copied; must be a mapping.
        storage_slot: Snapshot key. When given, a saved snapshot in that
            slot replaces ``initial`` and every write saves the full record.
        storage: Backend for snapshots. Defaults to ``default_storage()``.
        config: Policies for corrupt snapshots and listener isolation.
        collector: Optional event collector.

    Raises:
        ConstructionError: ``initial`` is not a mapping, or the saved
            snapshot is corrupt and the policy is ``"raise"``.

    """

    def __init__(
        self,
        initial: Mapping[str, Any],
        storage_slot: str | None = None,
        *,
        storage: StorageBackend | None = None,
        config: TabbyConfig | None = None,
        collector: StateCollector | None = None,
    ) -> None:
        if not isinstance(initial, Mapping):
            msg = f"initial state must be a mapping, got {type(initial).__name__}"
            raise ConstructionError(msg)

        self._config = config if config is not None else TabbyConfig()
        self._collector = collector
        self._slot = storage_slot
        self._lock = threading.RLock()
        self._registry = SubscriptionRegistry()
        self._persistence: PersistenceAdapter | None = None

        data = dict(initial)
        if storage_slot is not None:
            backend = storage if storage is not None else default_storage(self._config)
            self._persistence = PersistenceAdapter(backend, collector)
            restored = self._restore(storage_slot)
            if restored is not None:
                data = restored

        self._data = data
        self._state = StateProxy(self, data)

    def _restore(self, slot: str) -> dict[str, Any] | None:
        assert self._persistence is not None
        try:
            restored = self._persistence.load(slot)
        except CorruptSnapshotError as exc:
            if self._config.on_corrupt_snapshot == "raise":
                msg = f"Saved snapshot in slot {slot!r} is corrupt: {exc}"
                raise ConstructionError(msg) from exc
            print(f"  Discarded corrupt snapshot {slot!r}: {exc}", file=sys.stderr)
            if self._collector is not None:
                self._collector.record_discard(slot, str(exc))
            return None
        except PersistenceError as exc:
            msg = f"Cannot read snapshot in slot {slot!r}: {exc}"
            raise ConstructionError(msg) from exc
        if restored is not None and self._collector is not None:
            self._collector.record_restore(slot)
        return restored

    # ----- Public surface -----

    @property
    def state(self) -> StateProxy:
        """The intercepted state record."""
        return self._state

    @property
    def storage_slot(self) -> str | None:
        return self._slot

    @property
    def subscriber_count(self) -> int:
        return len(self._registry)

    def set(self, key: str, value: Any) -> None:
        """Explicit spelling of ``state[key] = value``."""
        self._write(key, value)

    def snapshot(self) -> dict[str, Any]:
        """Deep copy of the current record, detached from the store."""
        with self._lock:
            return copy.deepcopy(self._data)

    def subscribe(self, listener: Listener) -> Subscription:
        """Register ``listener`` and call it once with the current state.

        The replay happens synchronously, before the handle is returned.
        If the replay raises, this registration is released again (the
        caller never received a handle to do it) and the error propagates.

        Returns:
            A one-shot handle; calling it removes this listener.

        """
        with self._lock:
            subscription = self._registry.add(listener)
            try:
                listener(self._state)
            except BaseException:
                subscription()
                raise
        return subscription

    # ----- Intercept -----

    def _write(self, key: str, value: Any) -> None:
        with self._lock:
            if value is _DELETE:
                del self._data[key]
            else:
                self._data[key] = value

            save_error: PersistenceError | None = None
            if self._persistence is not None and self._slot is not None:
                try:
                    self._persistence.save(self._slot, self._data)
                except PersistenceError as exc:
                    save_error = exc

            notified = self._notify()
            if self._collector is not None:
                self._collector.record_change(
                    self._slot or "", key, listeners_notified=notified
                )

            if save_error is not None:
                raise save_error

    def _notify(self) -> int:
        listeners = self._registry.snapshot()
        if not self._config.isolate_listeners:
            for listener in listeners:
                listener(self._state)
            return len(listeners)

        errors: list[BaseException] = []
        for listener in listeners:
            try:
                listener(self._state)
            except Exception as exc:
                name = getattr(listener, "__qualname__", None) or type(listener).__qualname__
                print(f"  Listener error ({name}): {exc}", file=sys.stderr)
                if self._collector is not None:
                    self._collector.record_listener_failure(self._slot or "", name, exc)
                errors.append(exc)
        if errors:
            msg = f"{len(errors)} of {len(listeners)} listeners failed"
            raise ListenerError(msg, tuple(errors)) from errors[0]
        return len(listeners)

    def __repr__(self) -> str:
        slot = f", storage_slot={self._slot!r}" if self._slot is not None else ""
        return f"Store({self._data!r}{slot})"
