"""Persistence adapter: save/restore boundary for store snapshots.

A snapshot is the whole state record serialized as JSON text, stored under
a named slot in a durable key-value backend. Every save is a full-state
overwrite; there are no deltas.

Backends implement the small ``StorageBackend`` protocol:

- ``MemoryStorage``: process-local dict, lock-protected.
- ``FileStorage``: one ``<slot>.json`` file per slot in a directory.
"""

from __future__ import annotations

import json
import os
import re
import tempfile
import threading
import time
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from tabby._errors import CorruptSnapshotError, PersistenceError

if TYPE_CHECKING:
    from tabby.config import TabbyConfig
    from tabby.observability.collector import StateCollector

_SLOT_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


class StorageBackend(Protocol):
    """Durable string key-value surface."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def keys(self) -> Iterator[str]: ...


class MemoryStorage:
    """In-process backend. Snapshots live as long as the instance does."""

    __slots__ = ("_items", "_lock", "writes")

    def __init__(self) -> None:
        self._items: dict[str, str] = {}
        self._lock = threading.Lock()
        self.writes = 0

    def get_item(self, key: str) -> str | None:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            self._items[key] = value
            self.writes += 1

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def keys(self) -> Iterator[str]:
        with self._lock:
            names = sorted(self._items)
        return iter(names)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class FileStorage:
    """Directory backend: slot ``counter`` is stored in ``counter.json``.

    Writes go to a temporary file in the same directory and are moved into
    place with ``os.replace``, so readers never see a half-written snapshot.
    The directory is created on first write.

    """

    __slots__ = ("_root",)

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, key: str) -> Path:
        """Absolute file path for a slot, rejecting names that escape the root."""
        if not _SLOT_RE.match(key):
            msg = f"Invalid slot name {key!r}: use letters, digits, '.', '_' or '-'"
            raise PersistenceError(msg)
        return self._root / f"{key}.json"

    def get_item(self, key: str) -> str | None:
        path = self.path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            msg = f"Cannot read snapshot {key!r}: {exc}"
            raise PersistenceError(msg) from exc

    def set_item(self, key: str, value: str) -> None:
        path = self.path_for(key)
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self._root, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(value)
                os.replace(tmp, path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except (OSError, UnicodeError) as exc:
            msg = f"Cannot write snapshot {key!r}: {exc}"
            raise PersistenceError(msg) from exc

    def remove_item(self, key: str) -> None:
        self.path_for(key).unlink(missing_ok=True)

    def keys(self) -> Iterator[str]:
        if not self._root.is_dir():
            return iter(())
        return iter(sorted(p.stem for p in self._root.glob("*.json") if _SLOT_RE.match(p.stem)))


def encode_snapshot(value: Mapping[str, Any]) -> str:
    """Serialize a state record the way ``JSON.stringify`` would.

    Raises:
        PersistenceError: Values that JSON cannot represent (functions,
            sets, cyclic references).

    """
    try:
        return json.dumps(dict(value), ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError) as exc:
        msg = f"State is not serializable: {exc}"
        raise PersistenceError(msg) from exc


def decode_snapshot(text: str) -> dict[str, Any]:
    """Parse snapshot text back into a state record.

    Raises:
        CorruptSnapshotError: The text is not JSON or not a JSON object.

    """
    try:
        data = json.loads(text)
    except ValueError as exc:
        msg = f"Snapshot is not valid JSON: {exc}"
        raise CorruptSnapshotError(msg) from exc
    if not isinstance(data, dict):
        msg = f"Snapshot must be a JSON object, got {type(data).__name__}"
        raise CorruptSnapshotError(msg)
    return data


class PersistenceAdapter:
    """Loads and saves full-state snapshots on a storage backend.

    Args:
        backend: Where snapshot text is kept.
        collector: Optional event collector; saves and failures are recorded.

    """

    __slots__ = ("_backend", "_collector")

    def __init__(
        self,
        backend: StorageBackend,
        collector: StateCollector | None = None,
    ) -> None:
        self._backend = backend
        self._collector = collector

    @property
    def backend(self) -> StorageBackend:
        return self._backend

    def load_text(self, slot: str) -> str | None:
        """Raw snapshot text for a slot, or ``None`` when nothing is stored."""
        return self._backend.get_item(slot)

    def load(self, slot: str) -> dict[str, Any] | None:
        """Decoded snapshot for a slot, or ``None`` when nothing is stored.

        An empty string counts as nothing stored.

        Raises:
            CorruptSnapshotError: A snapshot exists but cannot be decoded.

        """
        text = self.load_text(slot)
        if not text:
            return None
        return decode_snapshot(text)

    def save(self, slot: str, value: Mapping[str, Any]) -> str:
        """Serialize ``value`` and overwrite the snapshot in ``slot``.

        Returns:
            The snapshot text that was written.

        Raises:
            PersistenceError: Serialization or backend write failed.

        """
        start = time.perf_counter()
        try:
            text = encode_snapshot(value)
            self._backend.set_item(slot, text)
        except PersistenceError as exc:
            if self._collector is not None:
                self._collector.record_persistence_failure(slot, exc)
            raise
        except (OSError, ValueError) as exc:
            if self._collector is not None:
                self._collector.record_persistence_failure(slot, exc)
            msg = f"Cannot write snapshot {slot!r}: {exc}"
            raise PersistenceError(msg) from exc
        if self._collector is not None:
            self._collector.record_save(
                slot,
                size=len(text),
                duration_ms=(time.perf_counter() - start) * 1000,
            )
        return text

    def clear(self, slot: str) -> None:
        """Remove a slot's snapshot. Missing slots are ignored."""
        self._backend.remove_item(slot)

    def slots(self) -> list[str]:
        """Names of all slots holding a snapshot."""
        return list(self._backend.keys())


# ---------------------------------------------------------------------------
# Process-wide default backend, created on first use
# ---------------------------------------------------------------------------

_default_backend: StorageBackend | None = None
_default_lock = threading.Lock()


def default_storage(config: TabbyConfig | None = None) -> StorageBackend:
    """Backend used by stores that name a slot but no storage.

    With a config carrying ``storage_dir`` this is a ``FileStorage`` on
    that directory; otherwise a shared ``MemoryStorage`` is created once and
    reused for the life of the process.

    """
    global _default_backend  # noqa: PLW0603
    if config is not None and config.storage_dir is not None:
        return FileStorage(config.storage_dir)
    with _default_lock:
        if _default_backend is None:
            _default_backend = MemoryStorage()
        return _default_backend


def reset_default_storage() -> None:
    """Forget the shared memory backend (used between tests)."""
    global _default_backend  # noqa: PLW0603
    with _default_lock:
        _default_backend = None
