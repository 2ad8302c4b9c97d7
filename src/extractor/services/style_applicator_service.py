from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bs4 import Tag

from extractor.dom.document import HtmlDocument, element_children
from extractor.model import StyleEntry, StyleResult, StyleStats

logger = logging.getLogger(__name__)

EXCLUDED_TAGS = frozenset({"html", "head", "meta", "title", "script", "noscript", "style", "link"})

DOCTYPE = "<!DOCTYPE html>"


def format_clean_html(html: str) -> str:
    """
    Drops <style> elements, guarantees a leading doctype and puts every tag
    on its own line with blank lines removed. Running it on its own output
    returns the same string.
    """
    doc = HtmlDocument(html)
    doc.remove_all(["style"])
    clean_html = doc.serialize()

    if DOCTYPE not in clean_html:
        clean_html = f"{DOCTYPE}\n{clean_html}"

    clean_html = re.sub(r">\s*<", ">\n<", clean_html)
    clean_html = re.sub(r"\n\s*\n", "\n", clean_html)
    lines = (line.strip() for line in clean_html.split("\n"))
    return "\n".join(line for line in lines if line)


class StyleApplicatorService:
    """
    Copies computed styles onto the raw page by position.

    The i-th qualifying element of <body> (depth-first, body included)
    receives the styles of the i-th entry of the flattened style document.
    No selector matching is attempted; drift between the two sequences is
    reported through StyleStats instead of being rejected.
    """

    def __init__(self, excluded_tags: Optional[Iterable[str]] = None):
        self.excluded_tags = frozenset(t.lower() for t in excluded_tags) if excluded_tags else EXCLUDED_TAGS

    # -------- Flattening --------

    @staticmethod
    def flatten_style_document(style_doc: Any) -> List[StyleEntry]:
        """
        Depth-first flattening of the nested style document.

        Only nodes with a non-empty `styles` object produce an entry; nodes
        without one are still descended into. A script node (by tag or by
        embedded `<script` markup) is dropped together with its subtree, so
        indexes stay dense.
        """
        entries, _ = StyleApplicatorService._flatten(style_doc)
        return entries

    @staticmethod
    def _flatten(style_doc: Any) -> Tuple[List[StyleEntry], int]:
        entries: List[StyleEntry] = []
        dropped = 0
        stack: List[Any] = [style_doc]

        while stack:
            node = stack.pop()
            if isinstance(node, list):
                stack.extend(reversed(node))
                continue
            if not isinstance(node, dict):
                continue

            styles = node.get("styles")
            if isinstance(styles, dict) and styles:
                entry = StyleEntry(
                    tag=_as_text(node.get("tag")),
                    id=_as_text(node.get("id")),
                    class_name=_as_text(node.get("className")),
                    html=_as_text(node.get("html")),
                    styles=styles,
                    index=len(entries),
                )
                if entry.is_script:
                    logger.debug("Skipping script entry in style document (tag=%s)", entry.tag)
                    dropped += 1
                    continue
                entries.append(entry)

            children = node.get("children")
            if isinstance(children, list):
                stack.extend(reversed(children))

        return entries, dropped

    # -------- HTML side --------

    def collect_elements(self, doc: HtmlDocument) -> List[Tag]:
        """Qualifying body elements in depth-first order, <body> itself first."""
        body = doc.body
        if body is None:
            logger.warning("Document has no <body>; no elements will receive styles.")
            return []
        elements: List[Tag] = []
        stack = [body]
        while stack:
            element = stack.pop()
            # html.parser keeps <noscript> content as elements; the whole subtree stays out
            if element.name.lower() in self.excluded_tags:
                continue
            elements.append(element)
            stack.extend(reversed(element_children(element)))
        return elements

    @staticmethod
    def build_declarations(styles: Dict[str, Any]) -> str:
        """Serializes usable style values as 'prop: value;' pairs."""
        parts = []
        for prop, value in styles.items():
            if isinstance(value, bool) or value is None:
                continue
            if isinstance(value, str):
                if value == "":
                    continue
            elif isinstance(value, float):
                value = int(value) if value.is_integer() else value
            elif not isinstance(value, int):
                continue
            parts.append(f"{prop}: {value};")
        return " ".join(parts)

    # -------- Main entry --------

    def apply(self, raw_html: str, style_doc: Any) -> StyleResult:
        logger.info("Starting index-based style application (body elements only)...")
        doc = HtmlDocument(raw_html)

        entries, skipped_scripts = self._flatten(style_doc)
        elements = self.collect_elements(doc)

        logger.info("Found %d body elements and %d style entries", len(elements), len(entries))

        total_matches = 0
        index_mismatches = 0

        for index, element in enumerate(elements):
            if index >= len(entries):
                logger.debug("No style entry for HTML[%d] <%s>", index, element.name)
                index_mismatches += 1
                continue

            entry = entries[index]
            if entry.is_script:
                logger.debug("Style entry %d is script-tainted; skipped", index)
                index_mismatches += 1
                continue

            declarations = self.build_declarations(entry.styles)
            if declarations:
                existing = element.get("style") or ""
                element["style"] = existing + ("; " if existing else "") + declarations
            total_matches += 1

        styled_html = format_clean_html(doc.serialize())
        total_elements = len(elements)
        rate = (total_matches / total_elements * 100) if total_elements else 0.0

        stats = StyleStats(
            total_matches=total_matches,
            total_html_elements=total_elements,
            total_json_entries=len(entries),
            index_mismatches=index_mismatches,
            skipped_script_elements=skipped_scripts,
            application_rate=f"{rate:.1f}",
        )
        logger.info(
            "Style application done: %d matches, %d mismatches, %s%% applied",
            total_matches, index_mismatches, stats.application_rate
        )
        return StyleResult(styled_html=styled_html, stats=stats)


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)
