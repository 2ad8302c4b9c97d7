from __future__ import annotations

import logging
from itertools import count
from typing import Dict, Iterable, List, Optional

from bs4 import Tag

from extractor.dom.document import (
    HtmlDocument,
    element_children,
    has_ancestor,
    outer_html,
    replace_with_text,
)
from extractor.model import WidgetExtractionResult
from migrator.core.exceptions import WidgetExtractionError
from migrator.core.managers.fragment_store import FragmentStore

logger = logging.getLogger(__name__)

WIDGET_ELEMENTS = (
    "h1", "h2", "h3", "h4", "h5", "h6", "p", "svg", "img", "image",
    "video", "span", "button", "a", "text", "wow-image", "wix-video",
    "wow-svg", "wow-icon", "wow-canvas", "main",
)


def widget_token(number: int) -> str:
    return f"{{{{widget-{number}}}}}"


class WidgetExtractionService:
    """
    Replaces leaf widgets (text, media, links, platform widgets) with
    numbered `{{widget-N}}` tokens and stores the removed markup per token.

    A `<main>` is only a widget when it sits inside a `<section>`; a
    top-level `<main>` is transparent and its children are visited instead.
    """

    def __init__(self, store: FragmentStore, widget_tags: Optional[Iterable[str]] = None):
        self.store = store
        self.widget_tags = frozenset(t.lower() for t in (widget_tags or WIDGET_ELEMENTS))

    def _is_widget(self, element: Tag) -> bool:
        name = element.name.lower()
        if name not in self.widget_tags:
            return False
        if name == "main":
            return has_ancestor(element, "section")
        return True

    def extract(self, styled_html: str) -> WidgetExtractionResult:
        try:
            doc = HtmlDocument(styled_html)
            widgets: Dict[str, str] = {}
            numbers = count(1)

            # Pre-order walk; extracted subtrees are never descended into.
            stack: List[Tag] = list(reversed(element_children(doc.root)))
            while stack:
                element = stack.pop()
                if self._is_widget(element):
                    token = widget_token(next(numbers))
                    markup = outer_html(element)
                    replace_with_text(element, token)
                    widgets[token] = markup
                    self.store.save_widget(token, markup)
                    logger.debug("Extracted <%s> as %s", element.name, token)
                    continue
                stack.extend(reversed(element_children(element)))

            modified_html = doc.serialize()
        except Exception as e:
            logger.error("Error extracting widgets: %s", e, exc_info=True)
            raise WidgetExtractionError(str(e)) from e

        logger.info("Extracted and saved %d widgets", len(widgets))
        return WidgetExtractionResult(
            widgets=widgets,
            modified_html=modified_html,
            total_widgets=len(widgets),
        )
