"""Event log: the bounded buffer behind ``StateCollector``.

Events are keyed by the store slot they concern (live view events by
their channel), so a log shared by several stores and views can be
filtered down to one of them.

Thread Safety:
    Guarded by a ``threading.Lock``; appends and queries may come from
    any writer thread.

"""

import threading
from collections import deque

from tabby.observability.events import StateEvent


def _slot_of(event: StateEvent) -> str:
    slot = getattr(event, "slot", None)
    return slot if slot is not None else getattr(event, "channel", "")


class EventLog:
    """Ring buffer of recent events; the oldest are dropped when full.

    Args:
        max_events: Capacity of the buffer.

    """

    __slots__ = ("_events", "_lock")

    def __init__(self, max_events: int = 10_000) -> None:
        self._events: deque[StateEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._events.maxlen or 0

    def append(self, event: StateEvent) -> None:
        with self._lock:
            self._events.append(event)

    def query(
        self,
        *,
        event_type: type | None = None,
        slot: str | None = None,
        since_ns: int = 0,
        limit: int = 100,
    ) -> list[StateEvent]:
        """Matching events, newest first.

        ``slot`` matches a store's storage slot ("" for stores without
        one) or a live view's channel.
        """
        with self._lock:
            newest_first = list(reversed(self._events))
        matches = [
            event
            for event in newest_first
            if (event_type is None or isinstance(event, event_type))
            and (slot is None or _slot_of(event) == slot)
            and event.timestamp_ns >= since_ns
        ]
        return matches[:limit]

    def clear(self) -> int:
        """Drop every event; returns how many there were."""
        with self._lock:
            count = len(self._events)
            self._events.clear()
        return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
