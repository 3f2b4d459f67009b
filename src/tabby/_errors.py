"""Tabby error hierarchy.

All tabby-specific errors inherit from TabbyError for easy catching.
"""


class TabbyError(Exception):
    """Base error for all tabby operations."""


class ConfigError(TabbyError):
    """Invalid or missing configuration."""


class ConstructionError(TabbyError):
    """A store could not be built from its initial value or saved snapshot."""


class PersistenceError(TabbyError):
    """A snapshot could not be saved, loaded, or serialized."""


class CorruptSnapshotError(PersistenceError):
    """A saved snapshot exists but does not decode to a state record."""


class RenderError(TabbyError):
    """A render function failed while producing markup."""


class ListenerError(TabbyError):
    """One or more isolated listeners failed during a notification pass.

    Attributes:
        errors: The exceptions raised, in listener order.

    """

    def __init__(self, message: str, errors: tuple[BaseException, ...] = ()) -> None:
        super().__init__(message)
        self.errors = errors
