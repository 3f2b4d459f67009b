"""Markup patch rule: decide whether and how to replace a target's content.

For each element in a target:

- If the new markup is textually identical to the element's current inner
  markup (``Tag.decode_contents()``), the element is left alone.
- Otherwise the markup is parsed once into a detached node list and the
  element's children are replaced wholesale with fresh clones of it.

There is no element-level diffing. Any change in rendered markup replaces
the whole subtree, which loses client-side state inside it (focus, scroll
position, running animations) once the markup reaches a browser. Markup
that BeautifulSoup does not serialize back verbatim (single-quoted
attributes, unescaped ``&``, self-closing spelling) never matches and is
replaced on every pass.
"""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING

from bs4 import BeautifulSoup

if TYPE_CHECKING:
    from collections.abc import Iterable

    from bs4 import PageElement

    from tabby.view.target import Target


def parse_fragment(markup: str, parser: str = "html.parser") -> list[PageElement]:
    """Parse markup into a node sequence.

    Parsers that wrap fragments in a document (lxml, html5lib) are unwrapped
    to the children of ``<body>``.
    """
    soup = BeautifulSoup(markup, parser)
    root = soup.body if soup.body is not None else soup
    return list(root.contents)


def clone_nodes(nodes: Iterable[PageElement]) -> list[PageElement]:
    """Independent deep copies, not attached to any tree."""
    return [copy.copy(node) for node in nodes]


def apply_markup(target: Target, markup: str, *, adding: bool = False) -> int:
    """Apply ``markup`` to every element of ``target``.

    Args:
        target: Elements to update.
        markup: New inner markup.
        adding: Append clones to the existing children instead of replacing
            them. No identity check is made in this mode.

    Returns:
        Number of elements whose content was changed.

    """
    nodes: list[PageElement] | None = None
    changed = 0
    for element in target.elements:
        if not adding and element.decode_contents() == markup:
            continue
        if nodes is None:
            nodes = parse_fragment(markup, target.parser)
        if adding:
            target.append_children(element, clone_nodes(nodes))
        else:
            target.replace_children(element, clone_nodes(nodes))
        changed += 1
    return changed
