"""Markdown views: render functions that produce Markdown instead of HTML.

Wraps a state → Markdown function so its output is converted to HTML by
Patitas before it reaches a binding or live view::

    counter_view = markdown_view(lambda s: f"# Count\n\n**{s['count']}**")
    bind(store, counter_view, target)
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from tabby._types import RenderFunc


def markdown_view(
    render_fn: Callable[[Mapping[str, Any]], str],
    *,
    plugins: Sequence[str] = ("table",),
) -> RenderFunc:
    """Compose ``render_fn`` with a Patitas Markdown renderer."""
    from patitas import Markdown

    md = Markdown(plugins=list(plugins))

    def render(state: Mapping[str, Any]) -> str:
        return md(render_fn(state))

    render.__qualname__ = f"markdown_view({getattr(render_fn, '__qualname__', 'render_fn')})"
    return render
