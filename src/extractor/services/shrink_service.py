from __future__ import annotations

import logging
import re
from typing import List, Optional, Protocol

from tqdm.auto import tqdm

from extractor.model import ShrinkResult
from extractor.services.component_extraction_service import MARKER_ATTRIBUTE
from migrator.core.managers.fragment_store import FragmentStore
from migrator.model import StoredComponent

logger = logging.getLogger(__name__)

WIDGET_TOKEN_PATTERN = re.compile(r"\{\{widget-\d+\}\}")


class Shrinker(Protocol):
    """Best-effort markup reduction for a single fragment."""

    def shrink(self, fragment_html: str) -> str:
        ...


def count_lines(markup: str) -> int:
    """Number of non-blank lines."""
    return sum(1 for line in markup.split("\n") if line.strip())


class ShrinkService:
    """
    Runs the shrink collaborator over every pending component.

    Each component is handled on its own: a failing call is logged, reported
    as an unsuccessful ShrinkResult and the batch moves on.
    """

    def __init__(self, store: FragmentStore, shrinker: Shrinker, marker_attribute: str = MARKER_ATTRIBUTE):
        self.store = store
        self.shrinker = shrinker
        self.marker_pattern = re.compile(re.escape(marker_attribute) + r'="([^"]+)"')

    def _marker(self, markup: str) -> Optional[str]:
        match = self.marker_pattern.search(markup)
        return match.group(1) if match else None

    def _shrink_one(self, component: StoredComponent) -> ShrinkResult:
        original_html = component.html_content
        original_lines = count_lines(original_html)

        optimized_html = self.shrinker.shrink(original_html)
        optimized_lines = count_lines(optimized_html)
        reduction = round((original_lines - optimized_lines) / original_lines * 100) if original_lines else 0

        original_marker = self._marker(original_html)
        marker_preserved = original_marker is None or self._marker(optimized_html) == original_marker
        if not marker_preserved:
            logger.warning("Marker %s is missing from shrunk %s", original_marker, component.placeholder_id)
        missing_widgets = set(WIDGET_TOKEN_PATTERN.findall(original_html)) - set(
            WIDGET_TOKEN_PATTERN.findall(optimized_html))
        if missing_widgets:
            logger.warning("Shrunk %s dropped widget tokens: %s",
                           component.placeholder_id, ", ".join(sorted(missing_widgets)))
        if optimized_html == original_html:
            logger.warning("Shrunk %s is identical to the original", component.placeholder_id)

        db_id = self.store.save_shrunk_component(
            component.id, original_html, optimized_html, original_lines, optimized_lines, reduction
        )
        logger.info("%s: %d -> %d lines (%d%% reduction)",
                    component.placeholder_id, original_lines, optimized_lines, reduction)
        return ShrinkResult(
            component_id=component.id,
            placeholder_id=component.placeholder_id,
            success=True,
            original_lines=original_lines,
            optimized_lines=optimized_lines,
            reduction_percentage=reduction,
            marker_preserved=marker_preserved,
            db_id=db_id,
        )

    def shrink_all_pending(self, show_progress: bool = True) -> List[ShrinkResult]:
        components = self.store.get_pending_components()
        if not components:
            logger.warning("No components found to shrink")
            return []

        logger.info("Shrinking %d components...", len(components))
        results: List[ShrinkResult] = []
        iterator = components
        if show_progress:
            iterator = tqdm(components, desc="Shrinking components", unit="component")

        for component in iterator:
            try:
                results.append(self._shrink_one(component))
            except Exception as e:
                logger.error("Failed to shrink %s: %s", component.placeholder_id, e)
                results.append(ShrinkResult(
                    component_id=component.id,
                    placeholder_id=component.placeholder_id,
                    success=False,
                    original_lines=count_lines(component.html_content),
                    error=str(e),
                ))

        succeeded = sum(1 for r in results if r.success)
        logger.info("Shrinking complete: %d/%d components", succeeded, len(components))
        return results
