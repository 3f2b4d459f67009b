"""Tabby configuration.

TabbyConfig is the central configuration object, frozen after creation.
"""

from dataclasses import dataclass
from pathlib import Path

from tabby._errors import ConfigError
from tabby._types import CorruptPolicy

_CORRUPT_POLICIES = ("raise", "discard")


@dataclass(frozen=True, slots=True)
class TabbyConfig:
    """Configuration for stores, bindings and live views.

    Attributes:
        storage_dir: Directory holding one JSON snapshot per slot. When
            ``None``, snapshots live in a process-local memory backend.
            Always resolved to an absolute path on construction.
        on_corrupt_snapshot: ``"raise"`` makes an undecodable snapshot a
            ``ConstructionError``; ``"discard"`` reports it on stderr and
            starts from the initial value.
        isolate_listeners: Run each listener in its own failure boundary
            so one failing subscriber cannot starve the ones after it.
        parser: BeautifulSoup parser used to turn markup into nodes.
        max_events: Ring buffer size of the default event log.
        sse_endpoint: Route path for live view streams.

    """

    storage_dir: Path | None = None
    on_corrupt_snapshot: CorruptPolicy = "raise"
    isolate_listeners: bool = False
    parser: str = "html.parser"
    max_events: int = 10_000
    sse_endpoint: str = "/__tabby/events"

    def __post_init__(self) -> None:
        if self.on_corrupt_snapshot not in _CORRUPT_POLICIES:
            msg = (
                f"on_corrupt_snapshot must be one of {_CORRUPT_POLICIES}, "
                f"got {self.on_corrupt_snapshot!r}"
            )
            raise ConfigError(msg)
        if self.max_events <= 0:
            msg = f"max_events must be positive, got {self.max_events}"
            raise ConfigError(msg)
        if not self.sse_endpoint.startswith("/"):
            msg = f"sse_endpoint must start with '/', got {self.sse_endpoint!r}"
            raise ConfigError(msg)
        if self.storage_dir is not None:
            path = Path(self.storage_dir)
            if not path.is_absolute():
                path = path.resolve()
            object.__setattr__(self, "storage_dir", path)
