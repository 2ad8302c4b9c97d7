from __future__ import annotations

import logging
from typing import Optional, Union

from bs4 import BeautifulSoup, NavigableString, PageElement, Tag
from bs4.element import PreformattedString

from extractor.dom.document import HtmlDocument
from extractor.model import TreeNode, TreeResult
from migrator.core.exceptions import ResourceMissingError
from migrator.core.managers.fragment_store import FragmentStore

logger = logging.getLogger(__name__)

DOCUMENT_TAG_NAME = "#document"


class _NodeCounter:
    """Counts every visited node, including dropped comments and blank text."""

    def __init__(self):
        self.value = 0

    def tick(self) -> None:
        self.value += 1


class TreeSerializerService:
    """
    Converts an HTML document into plain `TreeNode` objects for export.

    Comments and whitespace-only text are dropped; an element whose only
    child is text is collapsed to `text_content`. `total_nodes` counts every
    node visited, so it is an upper bound on the nodes in the returned tree.
    """

    def __init__(self, store: Optional[FragmentStore] = None):
        self.store = store

    def _convert(self, node: PageElement, counter: _NodeCounter) -> Union[TreeNode, str]:
        counter.tick()

        if isinstance(node, Tag):
            return self._convert_element(node, counter)
        # comments, doctype, CDATA, processing instructions
        if isinstance(node, PreformattedString):
            return ""
        # also <rt>, <rp>, <template>, <script> and <style> text
        if isinstance(node, NavigableString):
            return node.strip()
        return ""

    def _convert_element(self, element: Tag, counter: _NodeCounter) -> TreeNode:
        name = DOCUMENT_TAG_NAME if isinstance(element, BeautifulSoup) else element.name
        node = TreeNode(tag_name=name, attributes={k: _attr_text(v) for k, v in element.attrs.items()})

        for child in element.children:
            converted = self._convert(child, counter)
            if isinstance(converted, str):
                if converted.strip():
                    node.children.append(converted)
            elif converted is not None:
                node.children.append(converted)

        if len(node.children) == 1 and isinstance(node.children[0], str):
            node.text_content = node.children[0]
            node.children = []

        return node

    def to_tree(self, html: str) -> TreeResult:
        """Parses `html` and converts `<body>` (or the whole document) into a tree."""
        doc = HtmlDocument(html)
        counter = _NodeCounter()
        tree = self._convert(doc.root, counter)
        result = TreeResult(tree=tree, total_nodes=counter.value)

        if self.store is not None:
            result.db_id = self.store.save_tree(tree.to_api(), counter.value)
        logger.info("Converted HTML to tree (%d nodes, ID: %s)", counter.value, result.db_id)
        return result

    def convert_latest(self) -> TreeResult:
        """Converts the most recent reconstructed document held by the store."""
        if self.store is None:
            raise ResourceMissingError("No fragment store configured")
        document = self.store.get_latest_reconstructed()
        if document is None:
            raise ResourceMissingError("No reconstructed HTML found in database")
        return self.to_tree(document.html_content)


def _attr_text(value) -> str:
    if isinstance(value, (list, tuple)):
        return " ".join(value)
    return "" if value is None else str(value)
