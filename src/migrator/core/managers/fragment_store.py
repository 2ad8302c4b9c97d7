# src/migrator/core/managers/fragment_store.py
import json
import logging
from typing import Any, Dict, List, Optional

from migrator.core.managers.database_manager import DatabaseManager
from migrator.database_schema import ALL_TABLES
from migrator.model import (
    ShrunkComponent,
    StoredComponent,
    StoredDocument,
    StoredTemplate,
    StoredTree,
    StoredWidget,
)

logger = logging.getLogger(__name__)


class FragmentStore:
    """
    Typed facade over the 'dumb' DatabaseManager.

    Holds every SQL statement the pipeline needs. Each collection is
    append-only: writes return the new row id and "latest" reads return the
    most recently written row, or None when nothing has been stored yet.
    """

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    def init_schema(self) -> None:
        self.db.init_schema()

    def clear(self) -> None:
        """Removes all stored fragments, templates and documents."""
        self.db.clear_tables(ALL_TABLES)
        logger.info("Fragment store cleared.")

    # --- COMPONENTS ---

    def save_component(
            self,
            placeholder_id: str,
            original_id: str,
            kind: str,
            html_content: str,
            found: bool = True,
    ) -> int:
        sql = """
            INSERT INTO components (placeholder_id, original_id, type, found, html_content)
            VALUES (?, ?, ?, ?, ?)
        """
        row_id = self.db.execute_insert(sql, (placeholder_id, original_id, kind, int(found), html_content))
        logger.debug("Saved component %s (ID: %s)", placeholder_id, row_id)
        return row_id

    def get_all_components(self) -> List[StoredComponent]:
        rows = self.db.fetch_all("SELECT * FROM components ORDER BY id ASC")
        return [StoredComponent(**dict(row)) for row in rows]

    def get_pending_components(self, found_only: bool = True) -> List[StoredComponent]:
        """Components that have no shrunk version yet, oldest first."""
        sql = """
            SELECT c.* FROM components c
            WHERE NOT EXISTS (
                SELECT 1 FROM optimized_components o WHERE o.component_id = c.id
            )
        """
        if found_only:
            sql += " AND c.found = 1"
        sql += " ORDER BY c.id ASC"
        rows = self.db.fetch_all(sql)
        return [StoredComponent(**dict(row)) for row in rows]

    # --- TEMPLATES ---

    def save_template(self, html_content: str, total_placeholders: int) -> int:
        sql = "INSERT INTO placeholder_html (html_content, total_placeholders) VALUES (?, ?)"
        row_id = self.db.execute_insert(sql, (html_content, total_placeholders))
        logger.debug("Saved placeholder template (ID: %s, %d placeholders)", row_id, total_placeholders)
        return row_id

    def get_latest_template(self) -> Optional[StoredTemplate]:
        row = self.db.fetch_one("SELECT * FROM placeholder_html ORDER BY id DESC LIMIT 1")
        return StoredTemplate(**dict(row)) if row else None

    # --- WIDGETS ---

    def save_widget(self, widget_key: str, widget_html: str) -> int:
        sql = "INSERT INTO widgets (widget_key, widget_html) VALUES (?, ?)"
        return self.db.execute_insert(sql, (widget_key, widget_html))

    def get_widgets(self) -> List[StoredWidget]:
        """
        One row per widget token, the latest write winning, in discovery order.
        Tokens restart at {{widget-1}} on every extraction pass.
        """
        sql = """
            SELECT id, widget_key, widget_html FROM widgets
            WHERE id IN (SELECT MAX(id) FROM widgets GROUP BY widget_key)
            ORDER BY id ASC
        """
        return [StoredWidget(**dict(row)) for row in self.db.fetch_all(sql)]

    # --- SHRUNK COMPONENTS ---

    def save_shrunk_component(
            self,
            component_id: int,
            original_html: str,
            optimized_html: str,
            original_lines: int,
            optimized_lines: int,
            reduction_percentage: float,
    ) -> int:
        sql = """
            INSERT INTO optimized_components
            (component_id, original_html, optimized_html, original_lines, optimized_lines, reduction_percentage)
            VALUES (?, ?, ?, ?, ?, ?)
        """
        return self.db.execute_insert(
            sql,
            (component_id, original_html, optimized_html, original_lines, optimized_lines, reduction_percentage)
        )

    def get_shrunk_components(self) -> List[ShrunkComponent]:
        """
        The newest shrunk version of each component placeholder, newest first.
        """
        sql = """
            SELECT o.*, c.placeholder_id AS placeholder_id
            FROM optimized_components o
            JOIN components c ON c.id = o.component_id
            WHERE o.id IN (
                SELECT MAX(o2.id)
                FROM optimized_components o2
                JOIN components c2 ON c2.id = o2.component_id
                GROUP BY c2.placeholder_id
            )
            ORDER BY o.id DESC
        """
        return [ShrunkComponent(**dict(row)) for row in self.db.fetch_all(sql)]

    def get_shrunk_component(self, shrunk_id: int) -> Optional[ShrunkComponent]:
        sql = """
            SELECT o.*, c.placeholder_id AS placeholder_id
            FROM optimized_components o
            LEFT JOIN components c ON c.id = o.component_id
            WHERE o.id = ?
        """
        row = self.db.fetch_one(sql, (shrunk_id,))
        return ShrunkComponent(**dict(row)) if row else None

    # --- RECONSTRUCTED DOCUMENTS ---

    def save_reconstructed(self, html_content: str, total_components: int, total_widgets: int) -> int:
        sql = "INSERT INTO reconstructed_html (html_content, total_components, total_widgets) VALUES (?, ?, ?)"
        return self.db.execute_insert(sql, (html_content, total_components, total_widgets))

    def get_latest_reconstructed(self) -> Optional[StoredDocument]:
        row = self.db.fetch_one("SELECT * FROM reconstructed_html ORDER BY id DESC LIMIT 1")
        return StoredDocument(**dict(row)) if row else None

    # --- TREES ---

    def save_tree(self, tree: Dict[str, Any], total_nodes: int) -> int:
        sql = "INSERT INTO html_json (json_content, total_nodes) VALUES (?, ?)"
        return self.db.execute_insert(sql, (json.dumps(tree, ensure_ascii=False), total_nodes))

    def get_latest_tree(self) -> Optional[StoredTree]:
        row = self.db.fetch_one("SELECT * FROM html_json ORDER BY id DESC LIMIT 1")
        if not row:
            return None
        data = dict(row)
        data["json_content"] = json.loads(data["json_content"])
        return StoredTree(**data)

    # --- EXPORTS ---

    def save_export(self, job_id: str, path: str, public_url: str, total_nodes: int) -> int:
        sql = "INSERT INTO exports (job_id, path, public_url, total_nodes) VALUES (?, ?, ?, ?)"
        return self.db.execute_insert(sql, (job_id, path, public_url, total_nodes))
