"""Render binder: keeps a target in sync with a store.

``bind`` subscribes a ``Binding`` to the store. On every notification,
including the immediate replay, the binding calls the render function with
the full state and hands the markup to the patch rule. Unchanged markup
leaves the target untouched.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from tabby._errors import RenderError
from tabby.view.patch import apply_markup

if TYPE_CHECKING:
    from tabby._types import RenderFunc
    from tabby.observability.collector import StateCollector
    from tabby.state.registry import Subscription
    from tabby.state.store import Store
    from tabby.view.target import Target


class Binding:
    """A listener that renders state into a target.

    The render function is expected to be pure; it is called exactly once
    per notification.

    Attributes:
        renders: Number of times the render function has run.
        last_markup: Markup produced by the most recent render.

    """

    __slots__ = (
        "_collector",
        "_render_fn",
        "_store",
        "_subscription",
        "_target",
        "last_markup",
        "renders",
    )

    def __init__(
        self,
        store: Store,
        render_fn: RenderFunc,
        target: Target,
        *,
        collector: StateCollector | None = None,
    ) -> None:
        self._store = store
        self._render_fn = render_fn
        self._target = target
        self._collector = collector
        self._subscription: Subscription | None = None
        self.renders = 0
        self.last_markup: str | None = None

    @property
    def target(self) -> Target:
        return self._target

    @property
    def active(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def __call__(self, state: Mapping[str, Any]) -> None:
        start = time.perf_counter()
        try:
            markup = self._render_fn(state)
        except Exception as exc:
            name = getattr(self._render_fn, "__qualname__", repr(self._render_fn))
            msg = f"Render function {name} failed: {exc}"
            raise RenderError(msg) from exc
        render_ms = (time.perf_counter() - start) * 1000
        if not isinstance(markup, str):
            msg = f"Render function must return str, got {type(markup).__name__}"
            raise RenderError(msg)

        self.renders += 1
        self.last_markup = markup
        replaced = apply_markup(self._target, markup)

        if self._collector is not None:
            self._collector.record_patch(
                self._store.storage_slot or "",
                elements=len(self._target),
                replaced=replaced,
                size=len(markup),
                render_ms=render_ms,
            )

    def unbind(self) -> None:
        """Stop rendering. Safe to call more than once."""
        if self._subscription is not None:
            self._subscription()


def bind(
    store: Store,
    render_fn: RenderFunc,
    target: Target,
    *,
    collector: StateCollector | None = None,
) -> Binding:
    """Render ``store`` into ``target`` now and after every write.

    Raises:
        RenderError: The initial render failed; nothing stays subscribed.

    """
    binding = Binding(store, render_fn, target, collector=collector)
    binding._subscription = store.subscribe(binding)
    return binding
