from __future__ import annotations

import logging
from itertools import count
from typing import Iterable, Iterator, List, Optional, Set

from bs4 import Tag

from extractor.dom.document import (
    HtmlDocument,
    element_children,
    has_ancestor,
    inner_html,
    outer_html,
    replace_with_text,
)
from extractor.model import ComponentExtractionResult, Fragment
from migrator.core.exceptions import ComponentExtractionError
from migrator.core.managers.fragment_store import FragmentStore

logger = logging.getLogger(__name__)

DEFAULT_TARGET_IDS = ("pinnedTopLeft", "pinnedTopRight", "pinnedBottomLeft")
MARKER_ATTRIBUTE = "wig-id"
REMOVED_CONTAINER_ID = "soapAfterPagesContainer"

# Removed from the template after extraction.
CLEANUP_SELECTORS = (
    "script",
    "style",
    'link[rel="stylesheet"]',
    "meta",
    "title",
    "header",
    "footer",
)

TEMPLATE_SHELL = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Extracted Content with Placeholders</title>
</head>
<body>
{body}
</body>
</html>"""

PREVIEW_SHELL = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{title}</title>
</head>
<body>
    <!-- Placeholder ID: {placeholder_id} -->
    <!-- Original ID: {original_id} -->{status}
{markup}
</body>
</html>"""

NOT_FOUND_NOTICE = """<div style="padding: 20px; border: 2px dashed red; background: #fff3f3;">
  <h2 style="color: red;">Component Not Found</h2>
  <p><strong>Original ID:</strong> {original_id}</p>
  <p><strong>Placeholder ID:</strong> {placeholder_id}</p>
  <p>This component was not found in the source HTML.</p>
</div>"""


def placeholder_id_for(number: int) -> str:
    return f"wigoh-id-{number:03d}"


def token_for(placeholder_id: str) -> str:
    return f"{{{{{placeholder_id}}}}}"


def build_preview(markup: str, original_id: str, placeholder_id: str, found: bool = True) -> str:
    """Standalone HTML page showing one component (or its not-found notice)."""
    return PREVIEW_SHELL.format(
        title=f"Component: {original_id}" if found else f"Component Not Found: {original_id}",
        placeholder_id=placeholder_id,
        original_id=original_id,
        status="" if found else "\n    <!-- STATUS: NOT FOUND -->",
        markup=markup,
    )


class ComponentExtractionService:
    """
    Pulls coarse components out of the widget-replaced page.

    Phase 1 handles a fixed list of element ids, phase 2 every top-level
    `<section>`; both share one `{{wigoh-id-NNN}}` counter. Each extracted
    root gets a marker attribute carrying its own token so a shrunk copy can
    be matched back to its slot in the template. Phase 3 strips page chrome
    and wraps what remains of `<body>` in a fresh document.
    """

    def __init__(
            self,
            store: FragmentStore,
            target_ids: Optional[Iterable[str]] = None,
            marker_attribute: str = MARKER_ATTRIBUTE,
            removed_container_id: Optional[str] = REMOVED_CONTAINER_ID,
    ):
        self.store = store
        self.target_ids = list(target_ids) if target_ids is not None else list(DEFAULT_TARGET_IDS)
        self.marker_attribute = marker_attribute
        self.removed_container_id = removed_container_id

    # -------- Phase helpers --------

    def _capture(self, element: Tag, token: str) -> str:
        """Marks the element, returns its markup and leaves the bare token in its place."""
        element[self.marker_attribute] = token
        markup = outer_html(element)
        replace_with_text(element, token)
        return markup

    def _extract_targets(self, doc: HtmlDocument, numbers: Iterator[int]) -> List[Fragment]:
        fragments: List[Fragment] = []
        for target_id in self.target_ids:
            placeholder_id = placeholder_id_for(next(numbers))
            token = token_for(placeholder_id)
            element = doc.find_by_id(target_id)

            if element is None:
                # The token is reserved but never written into the template.
                logger.warning("Target id not found: %s (reserved %s)", target_id, token)
                notice = NOT_FOUND_NOTICE.format(original_id=target_id, placeholder_id=placeholder_id)
                fragments.append(Fragment(
                    token=token,
                    placeholder_id=placeholder_id,
                    original_id=target_id,
                    kind="target-id",
                    html=notice,
                    preview_html=build_preview(notice, target_id, placeholder_id, found=False),
                    found=False,
                ))
                continue

            children_count = len(element_children(element))
            markup = self._capture(element, token)
            logger.info("Replaced #%s with %s", target_id, token)
            fragments.append(Fragment(
                token=token,
                placeholder_id=placeholder_id,
                original_id=target_id,
                kind="target-id",
                html=markup,
                preview_html=build_preview(markup, target_id, placeholder_id),
                children_count=children_count,
            ))
        return fragments

    def _extract_sections(self, doc: HtmlDocument, numbers: Iterator[int]) -> List[Fragment]:
        fragments: List[Fragment] = []
        processed: Set[str] = set()

        for index, section in enumerate(doc.find_all("section")):
            section_id = section.get("id") or f"section_{index + 1}"

            if has_ancestor(section, "section"):
                logger.debug("Skipping nested section: %s", section_id)
                continue
            if section_id in processed:
                logger.debug("Skipping already processed section: %s", section_id)
                continue
            processed.add(section_id)

            placeholder_id = placeholder_id_for(next(numbers))
            token = token_for(placeholder_id)
            children_count = len(element_children(section))
            markup = self._capture(section, token)
            logger.info("Replaced section %s with %s", section_id, token)
            fragments.append(Fragment(
                token=token,
                placeholder_id=placeholder_id,
                original_id=section_id,
                kind="section",
                html=markup,
                preview_html=build_preview(markup, section_id, placeholder_id),
                children_count=children_count,
            ))
        return fragments

    def _build_template(self, doc: HtmlDocument) -> str:
        selectors = list(CLEANUP_SELECTORS)
        if self.removed_container_id:
            selectors.append(f"#{self.removed_container_id}")
        removed = doc.remove_all(selectors)
        logger.debug("Removed %d chrome elements from the template", removed)

        body = doc.body
        body_content = inner_html(body) if body is not None else doc.serialize()
        return TEMPLATE_SHELL.format(body=body_content)

    # -------- Main entry --------

    def extract(self, widget_replaced_html: str) -> ComponentExtractionResult:
        logger.info("Starting component extraction...")
        doc = HtmlDocument(widget_replaced_html)

        numbers = count(1)
        components = self._extract_targets(doc, numbers)
        components.extend(self._extract_sections(doc, numbers))
        cleaned_html = self._build_template(doc)

        try:
            for fragment in components:
                fragment.db_id = self.store.save_component(
                    placeholder_id=fragment.placeholder_id,
                    original_id=fragment.original_id,
                    kind=fragment.kind,
                    html_content=fragment.html,
                    found=fragment.found,
                )
            template_id = self.store.save_template(cleaned_html, len(components))
        except Exception as e:
            logger.error("Error persisting components: %s", e, exc_info=True)
            raise ComponentExtractionError(str(e)) from e

        logger.info(
            "Component extraction completed: %d components (%d not found)",
            len(components), sum(1 for c in components if not c.found)
        )
        return ComponentExtractionResult(
            cleaned_html=cleaned_html,
            components=components,
            template_id=template_id,
        )
