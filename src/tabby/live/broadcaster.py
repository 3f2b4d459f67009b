"""SSE broadcaster: pushes rendered views to connected browsers.

A ``LiveView`` is a store listener, like a ``Binding``, but instead of
patching a local element tree it renders markup and enqueues it as a Chirp
``SSEEvent`` for every browser connected to its channel. The same
change-avoidance rule applies: markup identical to the last push is not
sent again.
"""

from __future__ import annotations

import asyncio
import threading
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from tabby._errors import RenderError
from tabby.config import TabbyConfig

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Mapping

    from chirp import App
    from chirp.http.request import Request

    from tabby._types import RenderFunc
    from tabby.observability.collector import StateCollector
    from tabby.state.registry import Subscription
    from tabby.state.store import Store

RENDER_EVENT = "tabby:render"


@dataclass(frozen=True, slots=True)
class SSEConnection:
    """A connected SSE client.

    Attributes:
        client_id: Unique identifier for this connection.
        channel: The live view channel this client follows.
        queue: asyncio.Queue[Any] for pushing events to the client's generator.
        loop: Event loop that owns ``queue``. Captured from the running loop
            when the connection is created inside one.

    """

    client_id: str
    channel: str
    queue: asyncio.Queue[Any] = field(default_factory=asyncio.Queue, compare=False, hash=False)
    loop: asyncio.AbstractEventLoop | None = field(
        default_factory=lambda: _running_loop(), compare=False, hash=False, repr=False
    )


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class Broadcaster:
    """Manages SSE connections per channel and fans out rendered markup.

    Remembers the last markup pushed on each channel so a browser that
    connects later is brought up to date immediately.

    Thread-safe: subscriber map protected by a lock.

    """

    def __init__(self) -> None:
        self._subscribers: dict[str, set[SSEConnection]] = defaultdict(set)
        self._last: dict[str, str] = {}
        self._lock = threading.Lock()

    @property
    def subscriber_count(self) -> int:
        """Total number of active SSE connections across all channels."""
        with self._lock:
            return sum(len(conns) for conns in self._subscribers.values())

    def subscribe(self, channel: str, conn: SSEConnection) -> None:
        """Register an SSE client; replays the channel's last markup."""
        with self._lock:
            self._subscribers[channel].add(conn)
            last = self._last.get(channel)
        if last is not None:
            _enqueue(conn, _render_event(last))

    def unsubscribe(self, channel: str, conn: SSEConnection) -> None:
        """Remove an SSE client."""
        with self._lock:
            self._subscribers[channel].discard(conn)
            if not self._subscribers[channel]:
                del self._subscribers[channel]

    def get_subscribers(self, channel: str) -> frozenset[SSEConnection]:
        """Get all subscribers for a channel (snapshot, no lock held on return)."""
        with self._lock:
            return frozenset(self._subscribers.get(channel, set()))

    def get_channels(self) -> frozenset[str]:
        """Get all channels that have at least one subscriber."""
        with self._lock:
            return frozenset(self._subscribers.keys())

    def last_markup(self, channel: str) -> str | None:
        with self._lock:
            return self._last.get(channel)

    def publish(self, channel: str, markup: str) -> int:
        """Send markup to every subscriber of ``channel``.

        Returns:
            Number of clients the event was queued for; 0 when the markup
            equals the last one published on the channel.

        """
        with self._lock:
            if self._last.get(channel) == markup:
                return 0
            self._last[channel] = markup
            subscribers = frozenset(self._subscribers.get(channel, set()))

        event = _render_event(markup)
        return sum(1 for conn in subscribers if _enqueue(conn, event))

    async def client_generator(self, conn: SSEConnection) -> AsyncIterator[Any]:
        """Async generator that yields events from a connection's queue.

        Used as the generator for Chirp's ``EventStream``. Catches
        ``CancelledError`` (client disconnect) and ``GeneratorExit``
        (generator cleanup) so disconnects end the stream quietly.

        """
        try:
            while True:
                event = await conn.queue.get()
                yield event
        except (asyncio.CancelledError, GeneratorExit):
            return


def _render_event(markup: str) -> Any:
    from chirp import SSEEvent

    return SSEEvent(data=markup, event=RENDER_EVENT)


def _enqueue(conn: SSEConnection, event: Any) -> bool:
    loop = conn.loop
    if loop is None or loop is _running_loop():
        return _put(conn.queue, event)
    # Store writes can come from any thread; the queue belongs to its loop.
    try:
        loop.call_soon_threadsafe(_put, conn.queue, event)
    except RuntimeError:
        return False  # Loop already closed
    return True


def _put(queue: asyncio.Queue[Any], event: Any) -> bool:
    try:
        queue.put_nowait(event)
    except asyncio.QueueFull:
        return False  # Drop if client queue is full
    return True


class LiveView:
    """Store listener that publishes rendered markup on a channel.

    Args:
        store: Store to follow.
        render_fn: Pure state → markup function.
        broadcaster: Where markup is published.
        channel: Channel name browsers connect to.
        collector: Optional event collector.

    """

    __slots__ = ("_broadcaster", "_channel", "_collector", "_render_fn", "_subscription")

    def __init__(
        self,
        store: Store,
        render_fn: RenderFunc,
        broadcaster: Broadcaster,
        channel: str,
        *,
        collector: StateCollector | None = None,
    ) -> None:
        self._render_fn = render_fn
        self._broadcaster = broadcaster
        self._channel = channel
        self._collector = collector
        self._subscription: Subscription | None = store.subscribe(self)

    @property
    def channel(self) -> str:
        return self._channel

    def __call__(self, state: Mapping[str, Any]) -> None:
        try:
            markup = self._render_fn(state)
        except Exception as exc:
            msg = f"Live view {self._channel!r} failed to render: {exc}"
            raise RenderError(msg) from exc
        count = self._broadcaster.publish(self._channel, markup)
        if self._collector is not None:
            self._collector.record_broadcast(
                self._channel, clients_notified=count, size=len(markup)
            )

    def close(self) -> None:
        """Stop following the store. Safe to call more than once."""
        if self._subscription is not None:
            self._subscription()


def register_sse_endpoint(
    app: App,
    broadcaster: Broadcaster,
    path: str | None = None,
    *,
    config: TabbyConfig | None = None,
) -> str:
    """Register the live view SSE endpoint on a Chirp app.

    Clients connect with a ``channel`` query parameter. The route returns a
    Chirp ``EventStream`` fed from the broadcaster's per-connection queue.
    Without an explicit ``path`` the route is ``config.sse_endpoint``.

    Returns:
        The path the endpoint was mounted on.

    """
    from chirp import EventStream

    if path is None:
        path = (config if config is not None else TabbyConfig()).sse_endpoint

    async def sse_handler(request: Request) -> Any:
        channel = request.query.get("channel", "default")
        conn = SSEConnection(client_id=str(uuid.uuid4()), channel=channel)
        broadcaster.subscribe(channel, conn)

        async def generate():  # type: ignore[return]
            try:
                async for event in broadcaster.client_generator(conn):
                    yield event
            finally:
                broadcaster.unsubscribe(channel, conn)

        return EventStream(generate())

    sse_handler.__name__ = "tabby_sse"
    app.route(path, name="tabby:events")(sse_handler)
    return path
