"""Tabby: observable state with persistence and HTML view binding.

A store holds one state record. Every field write is intercepted, saved
as a full snapshot (when the store has a storage slot) and broadcast to
subscribers. A binding is a subscriber that renders the state to markup
and patches it into a target element, skipping unchanged output.

Quick start::

    from tabby import Store, Target, bind

    store = Store({"count": 0}, "counter")
    target = Target.select(page_html, "#counter")
    bind(store, lambda s: f"<b>{s['count']}</b>", target)

    store.state.count += 1      # saved, then re-rendered

"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tabby.config import TabbyConfig
    from tabby.state.store import Store
    from tabby.view.binder import bind
    from tabby.view.target import Target

# PEP 703: Declare this module as free-threading safe
_Py_mod_gil = 0

__version__ = "0.1.0"
__all__ = [
    "Store",
    "TabbyConfig",
    "Target",
    "__version__",
    "bind",
    "load_config",
]


def __getattr__(name: str) -> object:
    """Lazy imports for the public API.

    Keeps ``import tabby`` fast; BeautifulSoup is only imported once a
    view is needed.
    """
    if name == "Store":
        from tabby.state.store import Store

        return Store

    if name == "TabbyConfig":
        from tabby.config import TabbyConfig

        return TabbyConfig

    if name == "load_config":
        from tabby.config_loader import load_config

        return load_config

    if name == "bind":
        from tabby.view.binder import bind

        return bind

    if name == "Target":
        from tabby.view.target import Target

        return Target

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
