"""Tests for tabby._errors."""

from tabby._errors import (
    ConfigError,
    ConstructionError,
    CorruptSnapshotError,
    ListenerError,
    PersistenceError,
    RenderError,
    TabbyError,
)


class TestErrorHierarchy:
    """All tabby errors inherit from TabbyError."""

    def test_tabby_error_is_exception(self) -> None:
        assert issubclass(TabbyError, Exception)

    def test_all_inherit(self) -> None:
        for error_cls in (
            ConfigError,
            ConstructionError,
            PersistenceError,
            CorruptSnapshotError,
            RenderError,
            ListenerError,
        ):
            assert issubclass(error_cls, TabbyError)

    def test_listener_error_carries_errors(self) -> None:
        cause = ValueError("x")
        err = ListenerError("1 of 2 listeners failed", (cause,))
        assert err.errors == (cause,)
        assert str(err) == "1 of 2 listeners failed"

    def test_listener_error_default_errors(self) -> None:
        assert ListenerError("none").errors == ()
