"""Event model for store, view and live-view observability.

All events are frozen dataclasses with:
- ``timestamp_ns``: Monotonic nanosecond timestamp
- Descriptive fields for the specific event type

Thread Safety:
    All events are frozen (immutable) and safe to share across threads.

"""

import time
from dataclasses import dataclass
from typing import TypeAlias


# ---------------------------------------------------------------------------
# Store events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class StateChanged:
    """A field write went through a store's intercept.

    Attributes:
        slot: Storage slot of the store ("" when not persisted).
        key: Field that was written or deleted.
        listeners_notified: Number of listeners invoked for this write.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    slot: str
    key: str
    listeners_notified: int
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class ListenerFailed:
    """An isolated listener raised during notification.

    Attributes:
        slot: Storage slot of the store ("" when not persisted).
        listener: Qualified name of the failing callable.
        error: ``repr`` of the exception.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    slot: str
    listener: str
    error: str
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Persistence events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SnapshotSaved:
    """A full-state snapshot was written.

    Attributes:
        slot: Storage slot written.
        size: Length of the serialized snapshot in characters.
        duration_ms: Time spent serializing and writing.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    slot: str
    size: int
    duration_ms: float
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class SnapshotRestored:
    """A store started from a saved snapshot instead of its initial value."""

    slot: str
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class SnapshotDiscarded:
    """An undecodable snapshot was dropped in favour of the initial value."""

    slot: str
    reason: str
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class PersistenceFailed:
    """A snapshot save failed; in-memory state was still updated."""

    slot: str
    error: str
    timestamp_ns: int


# ---------------------------------------------------------------------------
# View events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TargetPatched:
    """A binding rendered markup and applied it to its target.

    Attributes:
        slot: Storage slot of the bound store ("" when not persisted).
        elements: Number of target elements in the selection.
        replaced: Number of elements whose children were replaced.
        size: Length of the rendered markup.
        render_ms: Time spent in the render function.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    slot: str
    elements: int
    replaced: int
    size: int
    render_ms: float
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class LiveBroadcast:
    """A live view pushed markup to SSE clients.

    Attributes:
        channel: Broadcaster channel the view publishes on.
        clients_notified: Number of connections that received the event.
        size: Length of the pushed markup.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    channel: str
    clients_notified: int
    size: int
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

StateEvent: TypeAlias = (
    StateChanged
    | ListenerFailed
    | SnapshotSaved
    | SnapshotRestored
    | SnapshotDiscarded
    | PersistenceFailed
    | TargetPatched
    | LiveBroadcast
)


def now_ns() -> int:
    """Return the current monotonic clock value in nanoseconds."""
    return time.monotonic_ns()
