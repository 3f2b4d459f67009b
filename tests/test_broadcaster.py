"""Tests for tabby.live.broadcaster: SSE live views."""

from __future__ import annotations

import asyncio
import threading
import time
from pathlib import Path

import pytest

from tabby._errors import RenderError
from tabby.live.broadcaster import RENDER_EVENT, Broadcaster, LiveView, SSEConnection
from tabby.observability import LiveBroadcast, StateCollector
from tabby.state.store import Store


def _conn(client_id: str, channel: str = "counter") -> SSEConnection:
    return SSEConnection(client_id=client_id, channel=channel)


class TestSSEConnection:
    def test_frozen(self) -> None:
        conn = _conn("c1")
        with pytest.raises(AttributeError):
            conn.client_id = "other"  # type: ignore[misc]

    def test_has_queue(self) -> None:
        assert isinstance(_conn("c1").queue, asyncio.Queue)

    def test_equality_ignores_queue(self) -> None:
        assert _conn("c1") == _conn("c1")


class TestBroadcasterSubscriptions:
    def test_subscribe_and_unsubscribe(self) -> None:
        b = Broadcaster()
        conn = _conn("c1")
        b.subscribe("counter", conn)
        assert b.get_subscribers("counter") == frozenset({conn})
        assert b.get_channels() == frozenset({"counter"})
        b.unsubscribe("counter", conn)
        assert b.subscriber_count == 0
        assert b.get_channels() == frozenset()

    def test_unsubscribe_nonexistent_is_safe(self) -> None:
        Broadcaster().unsubscribe("counter", _conn("c1"))

    def test_new_channel_has_no_markup(self) -> None:
        assert Broadcaster().last_markup("counter") is None


class TestPublish:
    """publish() fans out SSE events; requires chirp."""

    @pytest.fixture(autouse=True)
    def _chirp(self) -> None:
        pytest.importorskip("chirp")

    def test_publish_to_channel_only(self) -> None:
        b = Broadcaster()
        a, other = _conn("a", "counter"), _conn("b", "todo")
        b.subscribe("counter", a)
        b.subscribe("todo", other)
        assert b.publish("counter", "<b>1</b>") == 1
        event = a.queue.get_nowait()
        assert event.data == "<b>1</b>"
        assert event.event == RENDER_EVENT
        assert other.queue.empty()

    def test_identical_markup_not_resent(self) -> None:
        b = Broadcaster()
        conn = _conn("c1")
        b.subscribe("counter", conn)
        assert b.publish("counter", "<b>1</b>") == 1
        assert b.publish("counter", "<b>1</b>") == 0
        assert conn.queue.qsize() == 1

    def test_late_subscriber_gets_replay(self) -> None:
        b = Broadcaster()
        b.publish("counter", "<b>3</b>")
        conn = _conn("late")
        b.subscribe("counter", conn)
        assert conn.queue.get_nowait().data == "<b>3</b>"

    def test_full_queue_is_dropped(self) -> None:
        b = Broadcaster()
        full = SSEConnection(client_id="full", channel="counter", queue=asyncio.Queue(maxsize=1))
        full.queue.put_nowait("stale")
        b.subscribe("counter", full)
        assert b.publish("counter", "<b>1</b>") == 0

    @pytest.mark.asyncio
    async def test_client_generator_yields_events(self) -> None:
        b = Broadcaster()
        conn = _conn("c1")
        b.subscribe("counter", conn)
        b.publish("counter", "<b>1</b>")
        gen = b.client_generator(conn)
        event = await gen.__anext__()
        assert event.data == "<b>1</b>"
        await gen.aclose()


class TestLiveView:
    @pytest.fixture(autouse=True)
    def _chirp(self) -> None:
        pytest.importorskip("chirp")

    def test_publishes_on_subscribe_and_write(self) -> None:
        b = Broadcaster()
        conn = _conn("c1")
        b.subscribe("counter", conn)
        store = Store({"count": 0})
        LiveView(store, lambda s: f"<b>{s['count']}</b>", b, "counter")
        store.state.count = 1
        assert [conn.queue.get_nowait().data for _ in range(2)] == ["<b>0</b>", "<b>1</b>"]

    @pytest.mark.asyncio
    async def test_write_from_worker_thread_wakes_loop(self) -> None:
        b = Broadcaster()
        conn = _conn("c1")
        assert conn.loop is asyncio.get_running_loop()
        store = Store({"n": 0})
        LiveView(store, lambda s: str(s["n"]), b, "counter")
        b.subscribe("counter", conn)
        assert (await conn.queue.get()).data == "0"

        def writer() -> None:
            time.sleep(0.05)
            store.state.n = 1

        thread = threading.Thread(target=writer)
        loop = asyncio.get_running_loop()
        start = loop.time()
        thread.start()
        event = await asyncio.wait_for(conn.queue.get(), timeout=2)
        thread.join()
        assert event.data == "1"
        assert loop.time() - start < 1

    def test_unchanged_markup_not_pushed(self) -> None:
        b = Broadcaster()
        conn = _conn("c1")
        b.subscribe("counter", conn)
        store = Store({"count": 0, "other": 0})
        LiveView(store, lambda s: f"<b>{s['count']}</b>", b, "counter")
        store.state.other = 1
        assert conn.queue.qsize() == 1

    def test_close(self) -> None:
        b = Broadcaster()
        store = Store({"count": 0})
        view = LiveView(store, lambda s: str(s["count"]), b, "counter")
        view.close()
        view.close()
        store.state.count = 1
        assert b.last_markup("counter") == "0"

    def test_render_error(self) -> None:
        store = Store({})
        with pytest.raises(RenderError, match="'counter'"):
            LiveView(store, lambda s: s["count"], Broadcaster(), "counter")

    def test_broadcast_events(self) -> None:
        collector = StateCollector()
        b = Broadcaster()
        b.subscribe("counter", _conn("c1"))
        store = Store({"count": 0})
        LiveView(store, lambda s: str(s["count"]), b, "counter", collector=collector)
        (event,) = collector.log.query(event_type=LiveBroadcast)
        assert event.channel == "counter"
        assert event.clients_notified == 1


class TestSSEEndpoint:
    def test_register_sse_endpoint(self, tmp_path: Path) -> None:
        chirp = pytest.importorskip("chirp")
        from tabby.live.broadcaster import register_sse_endpoint

        app = chirp.App(config=chirp.AppConfig(template_dir=tmp_path))
        register_sse_endpoint(app, Broadcaster())

        route_names = [r.name for r in app._pending_routes if hasattr(r, "name")]
        assert "tabby:events" in route_names

    def test_endpoint_path_from_config(self, tmp_path: Path) -> None:
        chirp = pytest.importorskip("chirp")
        from tabby.config import TabbyConfig
        from tabby.live.broadcaster import register_sse_endpoint

        app = chirp.App(config=chirp.AppConfig(template_dir=tmp_path))
        config = TabbyConfig(sse_endpoint="/live")
        assert register_sse_endpoint(app, Broadcaster(), config=config) == "/live"
        assert register_sse_endpoint(app, Broadcaster(), "/other") == "/other"
