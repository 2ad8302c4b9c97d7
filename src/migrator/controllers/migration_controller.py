# src/migrator/controllers/migration_controller.py
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from extractor.model import (
    ComponentExtractionResult,
    ReconstructionResult,
    ShrinkResult,
    StyleResult,
    TreeResult,
    WidgetExtractionResult,
)
from extractor.services.component_extraction_service import (
    DEFAULT_TARGET_IDS,
    MARKER_ATTRIBUTE,
    REMOVED_CONTAINER_ID,
    ComponentExtractionService,
)
from extractor.services.reconstruction_service import ReconstructionService
from extractor.services.shrink_service import ShrinkService, Shrinker
from extractor.services.style_applicator_service import StyleApplicatorService
from extractor.services.tree_serializer_service import TreeSerializerService
from extractor.services.widget_extraction_service import WidgetExtractionService
from migrator.core.clients.blob_source import build_blob_source
from migrator.core.clients.export_sink import LocalExportSink
from migrator.core.clients.shrink_client import build_shrinker
from migrator.core.exceptions import ResourceMissingError
from migrator.core.managers.config_manager import ConfigManager, config_manager
from migrator.core.managers.database_manager import DatabaseManager
from migrator.core.managers.fragment_store import FragmentStore
from migrator.core.utils.path_utils import PathUtils
from migrator.model import ExportResult, RawDocuments, ShrunkComponent

logger = logging.getLogger(__name__)


class MigrationController:
    """
    Orchestrates the migration stages against one fragment store.

    The style, widget and component operations start from a fresh fetch and
    run every earlier stage first, so each call is self-contained. Shrinking,
    reconstruction, tree conversion and export work purely from stored state.
    """

    def __init__(self, store: FragmentStore, blob_source, shrinker: Optional[Shrinker] = None,
                 export_sink: Optional[LocalExportSink] = None,
                 config: Optional[ConfigManager] = None):
        self.store = store
        self.blob_source = blob_source
        self._shrinker = shrinker
        self.export_sink = export_sink
        self.config = config or config_manager

        marker = self.config.get_nested("components.marker_attribute", MARKER_ATTRIBUTE)
        self.style_service = StyleApplicatorService()
        self.widget_service = WidgetExtractionService(store, self.config.get_nested("widgets.tags"))
        self.component_service = ComponentExtractionService(
            store,
            target_ids=self.config.get_nested("components.target_ids", list(DEFAULT_TARGET_IDS)),
            marker_attribute=marker,
            removed_container_id=self.config.get_nested("components.removed_container_id", REMOVED_CONTAINER_ID),
        )
        self.reconstruction_service = ReconstructionService(store, marker_attribute=marker)
        self.tree_service = TreeSerializerService(store)

    @property
    def shrinker(self) -> Shrinker:
        # Built on first use so stages that never shrink need no API key.
        if self._shrinker is None:
            self._shrinker = build_shrinker(self.config)
        return self._shrinker

    # --- FETCH & DOM STAGES ---

    def fetch_documents(self) -> RawDocuments:
        return self.blob_source.fetch_documents()

    def apply_styles(self) -> StyleResult:
        documents = self.fetch_documents()
        return self.style_service.apply(documents.html, documents.style_document)

    def extract_widgets(self) -> WidgetExtractionResult:
        styled = self.apply_styles()
        return self.widget_service.extract(styled.styled_html)

    def extract_components(self) -> ComponentExtractionResult:
        widgets = self.extract_widgets()
        return self.component_service.extract(widgets.modified_html)

    # --- STORED-STATE STAGES ---

    def shrink_components(self, show_progress: bool = True) -> List[ShrinkResult]:
        service = ShrinkService(
            self.store,
            self.shrinker,
            marker_attribute=self.config.get_nested("components.marker_attribute", MARKER_ATTRIBUTE),
        )
        return service.shrink_all_pending(show_progress=show_progress)

    def get_shrunk_component(self, shrunk_id: int) -> ShrunkComponent:
        component = self.store.get_shrunk_component(shrunk_id)
        if component is None:
            raise ResourceMissingError("Optimized component not found")
        return component

    def reconstruct(self) -> ReconstructionResult:
        return self.reconstruction_service.reconstruct()

    def html_to_tree(self) -> TreeResult:
        return self.tree_service.convert_latest()

    def export_tree(self) -> ExportResult:
        if self.export_sink is None:
            raise ResourceMissingError("No export sink configured")
        stored = self.store.get_latest_tree()
        if stored is None:
            raise ResourceMissingError("No JSON found in database")

        result = self.export_sink.upload_json(stored.json_content, total_nodes=stored.total_nodes)
        self.store.save_export(result.job_id, result.path, result.public_url, result.total_nodes)
        return result

    def run_all(self, show_progress: bool = True) -> Dict[str, Any]:
        """Runs the whole pipeline once, from fetch to export."""
        components = self.extract_components()
        shrunk = self.shrink_components(show_progress=show_progress)
        reconstruction = self.reconstruct()
        tree = self.html_to_tree()
        export = self.export_tree() if self.export_sink is not None else None

        summary = {
            "components": len(components.components),
            "componentsNotFound": sum(1 for c in components.components if not c.found),
            "shrunk": sum(1 for r in shrunk if r.success),
            "shrinkFailures": sum(1 for r in shrunk if not r.success),
            "reconstructedComponents": reconstruction.total_components,
            "reconstructedWidgets": reconstruction.total_widgets,
            "unmatchedTokens": reconstruction.unmatched_tokens,
            "totalNodes": tree.total_nodes,
            "export": export.model_dump(by_alias=True) if export else None,
        }
        logger.info("Pipeline finished: %s", summary)
        return summary


@contextmanager
def open_pipeline(config: Optional[ConfigManager] = None, html_path: Optional[str] = None,
                  style_path: Optional[str] = None, shrinker: Optional[Shrinker] = None
                  ) -> Iterator[MigrationController]:
    """
    Builds a controller with its store and collaborators for one run and
    closes the database connection afterwards.
    """
    config = config or config_manager
    db_manager = DatabaseManager(PathUtils.get_db_path(config.get_nested("storage.db_path")))
    try:
        store = FragmentStore(db_manager)
        store.init_schema()
        controller = MigrationController(
            store,
            build_blob_source(config, html_path, style_path),
            shrinker=shrinker,
            export_sink=LocalExportSink(
                PathUtils.get_export_dir(config.get_nested("export.dir")),
                config.get_nested("export.public_base_url"),
            ),
            config=config,
        )
        yield controller
    finally:
        db_manager.close()
