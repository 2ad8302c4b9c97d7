# src/extractor/dom/document.py
from __future__ import annotations

from typing import Iterable, List, Optional, Union

from bs4 import BeautifulSoup, NavigableString, Tag

PARSER = "html.parser"


class HtmlDocument:
    """
    Thin wrapper around a BeautifulSoup tree.

    The pipeline stages only talk to this interface: parse, query by id/tag,
    read and write attributes, replace nodes and serialize. Attributes are
    parsed as plain strings (`class="a b"` stays one value) so captured
    markup round-trips unchanged.
    """

    def __init__(self, html: str):
        self.soup = BeautifulSoup(html or "", PARSER, multi_valued_attributes=None)

    # --- Queries ---

    @property
    def body(self) -> Optional[Tag]:
        return self.soup.body

    @property
    def root(self) -> Union[Tag, BeautifulSoup]:
        """`<body>` when present, otherwise the document itself."""
        return self.soup.body or self.soup

    def find_by_id(self, element_id: str) -> Optional[Tag]:
        return self.soup.find(id=element_id)

    def find_all(self, name: str) -> List[Tag]:
        """All elements with the given tag name, in document order."""
        return self.soup.find_all(name)

    def select(self, selector: str) -> List[Tag]:
        return self.soup.select(selector)

    # --- Mutation ---

    def remove_all(self, selectors: Iterable[str]) -> int:
        """Decomposes every element matching any of the CSS selectors."""
        removed = 0
        for selector in selectors:
            for element in self.soup.select(selector):
                if element.decomposed:
                    continue
                element.decompose()
                removed += 1
        return removed

    # --- Serialization ---

    def serialize(self) -> str:
        return str(self.soup)


# --- Node helpers ---

def element_children(node: Union[Tag, BeautifulSoup]) -> List[Tag]:
    """Direct child elements; text, comments and other nodes are left out."""
    return [child for child in node.children if isinstance(child, Tag)]


def has_ancestor(element: Tag, name: str) -> bool:
    return element.find_parent(name) is not None


def outer_html(element: Tag) -> str:
    return str(element)


def inner_html(element: Tag) -> str:
    return element.decode_contents()


def replace_with_text(element: Tag, text: str) -> NavigableString:
    """Swaps the element (and its whole subtree) for a single text node."""
    placeholder = NavigableString(text)
    element.replace_with(placeholder)
    return placeholder
