from __future__ import annotations

import logging
import re
from typing import List, Optional

from extractor.model import ReconstructionResult
from extractor.services.component_extraction_service import MARKER_ATTRIBUTE
from migrator.core.exceptions import ResourceMissingError
from migrator.core.managers.fragment_store import FragmentStore

logger = logging.getLogger(__name__)

COMPONENT_TOKEN_PATTERN = re.compile(r"\{\{wigoh-id-\d+\}\}")


class ReconstructionService:
    """
    Rebuilds the full page from persisted state only: the latest template,
    the shrunk components and the widget fragments.

    Components go first because their markup may carry widget tokens; each
    component fills the first occurrence of its token. Widgets then replace
    every occurrence of their token. Missing pieces are logged and counted,
    never fatal.
    """

    def __init__(self, store: FragmentStore, marker_attribute: str = MARKER_ATTRIBUTE):
        self.store = store
        self.marker_pattern = re.compile(
            re.escape(marker_attribute) + r'="(\{\{wigoh-id-\d+\}\})"'
        )

    def find_marker_token(self, markup: str) -> Optional[str]:
        match = self.marker_pattern.search(markup)
        return match.group(1) if match else None

    def reconstruct(self) -> ReconstructionResult:
        logger.info("Starting HTML reconstruction...")

        template = self.store.get_latest_template()
        if template is None:
            raise ResourceMissingError("No placeholder HTML found in database")

        html = template.html_content
        logger.info("Retrieved template %s with %d placeholders", template.id, template.total_placeholders)

        # --- Components ---
        components = self.store.get_shrunk_components()
        logger.info("Retrieved %d shrunk components", len(components))

        template_tokens = COMPONENT_TOKEN_PATTERN.findall(html)
        filled = set()
        components_replaced = 0
        skipped = 0
        for component in components:
            token = self.find_marker_token(component.optimized_html)
            if token is None:
                logger.warning("No marker token found in shrunk component %s; skipped", component.id)
                skipped += 1
                continue

            if token in html:
                html = html.replace(token, component.optimized_html, 1)
                components_replaced += 1
                filled.add(token)
                logger.debug("Replaced %s with shrunk component %s", token, component.id)
            else:
                logger.warning("Placeholder %s not found in template", token)

        unmatched: List[str] = [t for t in template_tokens if t not in filled]
        for token in unmatched:
            logger.warning("Template placeholder %s has no shrunk component", token)

        # --- Widgets ---
        widgets = self.store.get_widgets()
        logger.info("Retrieved %d widgets", len(widgets))

        widgets_replaced = 0
        for widget in widgets:
            occurrences = html.count(widget.widget_key)
            if occurrences:
                html = html.replace(widget.widget_key, widget.widget_html)
                widgets_replaced += occurrences

        db_id = self.store.save_reconstructed(html, components_replaced, widgets_replaced)

        logger.info(
            "Reconstruction complete: %d components, %d widget occurrences, %d unmatched placeholders (ID: %s)",
            components_replaced, widgets_replaced, len(unmatched), db_id
        )
        return ReconstructionResult(
            reconstructed_html=html,
            total_components=components_replaced,
            total_widgets=widgets_replaced,
            skipped_components=skipped,
            unmatched_tokens=unmatched,
            db_id=db_id,
        )
