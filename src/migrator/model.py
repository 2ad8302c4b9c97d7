# src/migrator/model.py (Storage & collaborator layer)
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class RawDocuments(BaseModel):
    """The two inputs of a migration run as delivered by the blob source."""
    html: str
    style_document: Any


class StoredComponent(BaseModel):
    id: int
    placeholder_id: str
    original_id: str
    type: str
    found: bool = True
    html_content: str
    created_at: Optional[str] = None


class StoredTemplate(BaseModel):
    id: int
    html_content: str
    total_placeholders: int
    created_at: Optional[str] = None


class StoredWidget(BaseModel):
    id: int
    widget_key: str
    widget_html: str


class ShrunkComponent(BaseModel):
    id: int
    component_id: int
    placeholder_id: Optional[str] = None
    original_html: str
    optimized_html: str
    original_lines: Optional[int] = None
    optimized_lines: Optional[int] = None
    reduction_percentage: Optional[float] = None
    created_at: Optional[str] = None


class StoredDocument(BaseModel):
    id: int
    html_content: str
    total_components: Optional[int] = None
    total_widgets: Optional[int] = None
    created_at: Optional[str] = None


class StoredTree(BaseModel):
    id: int
    json_content: Any
    total_nodes: int
    created_at: Optional[str] = None


class ExportResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    job_id: str
    file_name: str
    path: str
    public_url: str
    total_nodes: int = 0
