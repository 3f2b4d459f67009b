"""State layer: observable store, subscriptions and snapshot persistence."""

from tabby.state.persistence import (
    FileStorage,
    MemoryStorage,
    PersistenceAdapter,
    StorageBackend,
    default_storage,
)
from tabby.state.registry import Subscription, SubscriptionRegistry
from tabby.state.store import StateProxy, Store

__all__ = [
    "FileStorage",
    "MemoryStorage",
    "PersistenceAdapter",
    "StateProxy",
    "StorageBackend",
    "Store",
    "Subscription",
    "SubscriptionRegistry",
    "default_storage",
]
