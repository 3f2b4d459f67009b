"""Shared test fixtures for tabby."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import pytest

from tabby.state.persistence import MemoryStorage, reset_default_storage


@pytest.fixture(autouse=True)
def _fresh_default_storage() -> Iterator[None]:
    """Each test starts with an empty process-wide memory backend."""
    reset_default_storage()
    yield
    reset_default_storage()


@pytest.fixture
def storage() -> MemoryStorage:
    """An isolated in-memory snapshot backend."""
    return MemoryStorage()


PAGE = """\
<html>
<body>
<h1>Counter</h1>
<div id="counter"><b>old</b></div>
<ul class="items"></ul>
<ul class="items"></ul>
</body>
</html>
"""


class Recorder:
    """Listener that keeps a copy of every state it receives."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []

    def __call__(self, state: Any) -> None:
        self.calls.append(dict(state))
