"""Target surface: a selection of HTML elements that bindings write into.

Wraps one or more BeautifulSoup ``Tag`` objects. A target is usually a
selection inside a larger document::

    doc = BeautifulSoup(page_html, "html.parser")
    target = Target.select(doc, "#counter")

Every replace operation is counted in ``replacements``.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from bs4 import BeautifulSoup, Tag

from tabby.config import TabbyConfig

if TYPE_CHECKING:
    from bs4 import PageElement


class Target:
    """Elements whose children are rendered into.

    Args:
        elements: A single tag or an iterable of tags.
        config: Supplies the BeautifulSoup parser used for incoming markup.

    """

    __slots__ = ("_elements", "_parser", "replacements")

    def __init__(
        self,
        elements: Tag | Iterable[Tag],
        *,
        config: TabbyConfig | None = None,
    ) -> None:
        if isinstance(elements, Tag):
            elements = (elements,)
        self._elements: tuple[Tag, ...] = tuple(elements)
        self._parser = (config if config is not None else TabbyConfig()).parser
        self.replacements = 0

    @classmethod
    def select(
        cls,
        document: BeautifulSoup | Tag | str,
        selector: str,
        *,
        config: TabbyConfig | None = None,
    ) -> Target:
        """All elements of ``document`` matching a CSS selector."""
        if isinstance(document, str):
            parser = (config if config is not None else TabbyConfig()).parser
            document = BeautifulSoup(document, parser)
        return cls(document.select(selector), config=config)

    @classmethod
    def create(
        cls,
        tag_name: str = "div",
        *,
        config: TabbyConfig | None = None,
        **attrs: str,
    ) -> Target:
        """A single new detached element."""
        soup = BeautifulSoup("", "html.parser")
        return cls(soup.new_tag(tag_name, attrs=attrs), config=config)

    @property
    def elements(self) -> tuple[Tag, ...]:
        return self._elements

    @property
    def parser(self) -> str:
        return self._parser

    def inner_html(self) -> list[str]:
        """Current inner markup of each element."""
        return [element.decode_contents() for element in self._elements]

    def set_html(self, markup: str, *, adding: bool = False) -> int:
        """Apply markup through the patch rule. Returns elements changed."""
        from tabby.view.patch import apply_markup

        return apply_markup(self, markup, adding=adding)

    def replace_children(self, element: Tag, nodes: Iterable[PageElement]) -> None:
        element.clear()
        for node in nodes:
            element.append(node)
        self.replacements += 1

    def append_children(self, element: Tag, nodes: Iterable[PageElement]) -> None:
        for node in nodes:
            element.append(node)

    def __len__(self) -> int:
        return len(self._elements)

    def __repr__(self) -> str:
        names = ", ".join(element.name for element in self._elements)
        return f"Target([{names}])"
