"""View layer: render store state into HTML targets."""

from tabby.view.binder import Binding, bind
from tabby.view.markdown import markdown_view
from tabby.view.patch import apply_markup, clone_nodes, parse_fragment
from tabby.view.target import Target

__all__ = [
    "Binding",
    "Target",
    "apply_markup",
    "bind",
    "clone_nodes",
    "markdown_view",
    "parse_fragment",
]
