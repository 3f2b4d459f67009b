"""State collector: records store, view and live-view events.

Stores, bindings and live views accept an optional collector and call
its ``record_*`` methods at each step of the write → persist → notify →
render flow.

Thread Safety:
    The collector delegates to ``EventLog`` which is internally locked.

"""

from __future__ import annotations

from typing import TYPE_CHECKING

from tabby.observability.events import (
    ListenerFailed,
    LiveBroadcast,
    PersistenceFailed,
    SnapshotDiscarded,
    SnapshotRestored,
    SnapshotSaved,
    StateChanged,
    TargetPatched,
    now_ns,
)
from tabby.observability.log import EventLog

if TYPE_CHECKING:
    from tabby.config import TabbyConfig


class StateCollector:
    """Event collector shared by stores and the views bound to them.

    Args:
        log: The EventLog to store events in.

    """

    __slots__ = ("_log",)

    def __init__(self, log: EventLog | None = None) -> None:
        self._log = log if log is not None else EventLog()

    @classmethod
    def from_config(cls, config: TabbyConfig) -> StateCollector:
        """Collector with a fresh log sized by ``config.max_events``."""
        return cls(EventLog(max_events=config.max_events))

    @property
    def log(self) -> EventLog:
        """The underlying event log."""
        return self._log

    # ----- Store events -----

    def record_change(self, slot: str, key: str, *, listeners_notified: int = 0) -> None:
        """Record an intercepted field write."""
        self._log.append(
            StateChanged(
                slot=slot,
                key=key,
                listeners_notified=listeners_notified,
                timestamp_ns=now_ns(),
            )
        )

    def record_listener_failure(self, slot: str, listener: str, error: BaseException) -> None:
        """Record an isolated listener failure."""
        self._log.append(
            ListenerFailed(slot=slot, listener=listener, error=repr(error), timestamp_ns=now_ns())
        )

    # ----- Persistence events -----

    def record_save(self, slot: str, *, size: int = 0, duration_ms: float = 0.0) -> None:
        """Record a snapshot save."""
        self._log.append(
            SnapshotSaved(slot=slot, size=size, duration_ms=duration_ms, timestamp_ns=now_ns())
        )

    def record_restore(self, slot: str) -> None:
        """Record a construction-time restore."""
        self._log.append(SnapshotRestored(slot=slot, timestamp_ns=now_ns()))

    def record_discard(self, slot: str, reason: str) -> None:
        """Record a discarded corrupt snapshot."""
        self._log.append(SnapshotDiscarded(slot=slot, reason=reason, timestamp_ns=now_ns()))

    def record_persistence_failure(self, slot: str, error: BaseException) -> None:
        """Record a failed save."""
        self._log.append(PersistenceFailed(slot=slot, error=repr(error), timestamp_ns=now_ns()))

    # ----- View events -----

    def record_patch(
        self,
        slot: str,
        *,
        elements: int = 0,
        replaced: int = 0,
        size: int = 0,
        render_ms: float = 0.0,
    ) -> None:
        """Record a render + patch pass of a binding."""
        self._log.append(
            TargetPatched(
                slot=slot,
                elements=elements,
                replaced=replaced,
                size=size,
                render_ms=render_ms,
                timestamp_ns=now_ns(),
            )
        )

    def record_broadcast(self, channel: str, *, clients_notified: int = 0, size: int = 0) -> None:
        """Record a live view push."""
        self._log.append(
            LiveBroadcast(
                channel=channel,
                clients_notified=clients_notified,
                size=size,
                timestamp_ns=now_ns(),
            )
        )
