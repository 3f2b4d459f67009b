"""Observability: structured events for stores, views and live views.

All events are frozen dataclasses with nanosecond timestamps, safe for
concurrent production from multiple threads.

Quick Start:
    >>> from tabby.observability import StateCollector, EventLog
    >>> log = EventLog()
    >>> collector = StateCollector(log)
    >>> # Store({"count": 0}, "counter", collector=collector)

"""

from tabby.observability.collector import StateCollector
from tabby.observability.events import (
    ListenerFailed,
    LiveBroadcast,
    PersistenceFailed,
    SnapshotDiscarded,
    SnapshotRestored,
    SnapshotSaved,
    StateChanged,
    StateEvent,
    TargetPatched,
    now_ns,
)
from tabby.observability.log import EventLog

__all__ = [
    "EventLog",
    "ListenerFailed",
    "LiveBroadcast",
    "PersistenceFailed",
    "SnapshotDiscarded",
    "SnapshotRestored",
    "SnapshotSaved",
    "StateChanged",
    "StateCollector",
    "StateEvent",
    "TargetPatched",
    "now_ns",
]
