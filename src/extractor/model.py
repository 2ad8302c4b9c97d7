# ============================================
# file: src/extractor/model.py
# ============================================
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for models that are serialized to API clients with camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_api(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


# --- Stage 1: StyleApplicator ---

class StyleEntry(CamelModel):
    """One flattened node of the computed-style document, in depth-first order."""
    tag: Optional[str] = None
    id: Optional[str] = None
    class_name: Optional[str] = None
    html: Optional[str] = None
    styles: Dict[str, Any] = Field(default_factory=dict)
    index: int

    @property
    def is_script(self) -> bool:
        if self.tag and self.tag.lower() == "script":
            return True
        return bool(self.html) and "<script" in self.html.lower()


class StyleStats(CamelModel):
    total_matches: int = 0
    total_html_elements: int = 0
    total_json_entries: int = 0
    index_mismatches: int = 0
    skipped_script_elements: int = 0
    application_rate: str = "0.0"


class StyleResult(CamelModel):
    styled_html: str
    stats: StyleStats


# --- Stage 2: WidgetExtractor ---

class WidgetExtractionResult(CamelModel):
    widgets: Dict[str, str] = Field(default_factory=dict)
    modified_html: str
    total_widgets: int = 0


# --- Stage 3: ComponentExtractor ---

FragmentKind = Literal["target-id", "section"]


class Fragment(CamelModel):
    """
    A component captured from the page.

    `html` is the markup that is persisted and later shrunk; `preview_html`
    is a standalone document for display. For fragments that were not found,
    both carry synthesized "not found" markup instead of captured HTML.
    """
    token: str
    placeholder_id: str
    original_id: str
    kind: FragmentKind
    html: str
    preview_html: str
    found: bool = True
    children_count: int = 0
    db_id: Optional[int] = None


class ComponentExtractionResult(CamelModel):
    cleaned_html: str
    components: List[Fragment] = Field(default_factory=list)
    template_id: Optional[int] = None


# --- Stage 4: Shrinker ---

class ShrinkResult(CamelModel):
    component_id: int
    placeholder_id: str
    success: bool
    original_lines: int = 0
    optimized_lines: int = 0
    reduction_percentage: int = 0
    marker_preserved: bool = True
    error: Optional[str] = None
    db_id: Optional[int] = None


# --- Stage 5: Reconstructor ---

class ReconstructionResult(CamelModel):
    reconstructed_html: str
    total_components: int = 0
    total_widgets: int = 0
    skipped_components: int = 0
    unmatched_tokens: List[str] = Field(default_factory=list)
    db_id: Optional[int] = None


# --- Stage 6: TreeSerializer ---

class TreeNode(CamelModel):
    """
    A plain element node. Leaf elements holding a single text child carry it
    as `text_content` with an empty `children` list.
    """
    tag_name: str
    attributes: Dict[str, str] = Field(default_factory=dict)
    children: List[Union["TreeNode", str]] = Field(default_factory=list)
    text_content: Optional[str] = None

    def to_api(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class TreeResult(CamelModel):
    tree: TreeNode
    total_nodes: int = 0
    db_id: Optional[int] = None

    def to_api(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
