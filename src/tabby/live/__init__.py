"""Live views: stream rendered store state to browsers over SSE."""

from tabby.live.broadcaster import (
    RENDER_EVENT,
    Broadcaster,
    LiveView,
    SSEConnection,
    register_sse_endpoint,
)

__all__ = [
    "RENDER_EVENT",
    "Broadcaster",
    "LiveView",
    "SSEConnection",
    "register_sse_endpoint",
]
