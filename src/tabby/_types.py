"""Shared type definitions for tabby."""

from collections.abc import Callable, Mapping
from typing import Any, Literal, TypeAlias

# A text fragment of HTML
Markup: TypeAlias = str

# Persistence key naming one snapshot
SlotKey: TypeAlias = str

# Subscriber callback; receives the store's full current state
Listener: TypeAlias = Callable[[Mapping[str, Any]], None]

# Pure function from state to markup
RenderFunc: TypeAlias = Callable[[Mapping[str, Any]], Markup]

# What a store does with a snapshot that fails to decode
CorruptPolicy: TypeAlias = Literal["raise", "discard"]
