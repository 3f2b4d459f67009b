"""Tests for tabby.observability: events, event log and collector."""

import threading

from tabby.config import TabbyConfig
from tabby.observability.collector import StateCollector
from tabby.observability.events import (
    PersistenceFailed,
    SnapshotSaved,
    StateChanged,
    TargetPatched,
    now_ns,
)
from tabby.observability.log import EventLog


def _changed(slot: str = "counter", key: str = "count") -> StateChanged:
    return StateChanged(slot=slot, key=key, listeners_notified=1, timestamp_ns=now_ns())


class TestEventLog:
    """Tests for the event log store."""

    def test_append_and_len(self) -> None:
        log = EventLog()
        assert len(log) == 0
        log.append(_changed())
        assert len(log) == 1

    def test_max_events_enforced(self) -> None:
        log = EventLog(max_events=5)
        for i in range(10):
            log.append(_changed(key=f"k{i}"))
        assert len(log) == 5
        assert log.query(limit=1)[0].key == "k9"
        assert log.capacity == 5

    def test_query_by_type(self) -> None:
        log = EventLog()
        log.append(_changed())
        log.append(SnapshotSaved(slot="counter", size=3, duration_ms=0.1, timestamp_ns=now_ns()))
        results = log.query(event_type=SnapshotSaved)
        assert len(results) == 1
        assert isinstance(results[0], SnapshotSaved)

    def test_query_by_slot(self) -> None:
        log = EventLog()
        log.append(_changed(slot="a"))
        log.append(_changed(slot="b"))
        assert [e.slot for e in log.query(slot="b")] == ["b"]

    def test_query_since(self) -> None:
        log = EventLog()
        log.append(StateChanged(slot="", key="old", listeners_notified=0, timestamp_ns=100))
        log.append(StateChanged(slot="", key="new", listeners_notified=0, timestamp_ns=200))
        assert [e.key for e in log.query(since_ns=150)] == ["new"]

    def test_query_limit_newest_first(self) -> None:
        log = EventLog()
        for i in range(5):
            log.append(_changed(key=str(i)))
        assert [e.key for e in log.query(limit=2)] == ["4", "3"]

    def test_clear(self) -> None:
        log = EventLog()
        log.append(_changed())
        assert log.clear() == 1
        assert len(log) == 0

    def test_unpersisted_store_events_use_empty_slot(self) -> None:
        log = EventLog()
        log.append(_changed(slot=""))
        log.append(_changed(slot="counter"))
        assert [e.slot for e in log.query(slot="")] == [""]

    def test_concurrent_appends(self) -> None:
        log = EventLog()

        def worker() -> None:
            for _ in range(200):
                log.append(_changed())

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(log) == 800


class TestStateCollector:
    def test_default_log(self) -> None:
        assert isinstance(StateCollector().log, EventLog)

    def test_from_config_sizes_log(self) -> None:
        collector = StateCollector.from_config(TabbyConfig(max_events=3))
        for _ in range(5):
            collector.record_change("s", "k")
        assert len(collector.log) == 3
        assert collector.log.capacity == 3

    def test_record_patch(self) -> None:
        collector = StateCollector()
        collector.record_patch("s", elements=2, replaced=1, size=10, render_ms=0.5)
        (event,) = collector.log.query()
        assert isinstance(event, TargetPatched)
        assert (event.elements, event.replaced, event.size) == (2, 1, 10)

    def test_record_persistence_failure(self) -> None:
        collector = StateCollector()
        collector.record_persistence_failure("s", OSError("disk"))
        (event,) = collector.log.query(event_type=PersistenceFailed)
        assert "disk" in event.error

    def test_broadcast_queryable_by_channel(self) -> None:
        collector = StateCollector()
        collector.record_broadcast("todo", clients_notified=2, size=5)
        assert len(collector.log.query(slot="todo")) == 1
