import sqlite3
from unittest.mock import MagicMock

import pytest

from extractor.services.component_extraction_service import (
    ComponentExtractionService,
    build_preview,
    placeholder_id_for,
    token_for,
)
from migrator.core.exceptions import ComponentExtractionError

PAGE = (
    "<html><head><title>t</title><meta charset=\"utf-8\"></head><body>"
    "<header><nav>menu</nav></header>"
    '<div id="pinnedTopLeft"><p>{{widget-1}}</p><p>{{widget-2}}</p></div>'
    '<section id="a"><section id="b">inner</section></section>'
    "<section>c</section>"
    '<div id="soapAfterPagesContainer">legacy</div>'
    "<footer>f</footer><script>track()</script>"
    "</body></html>"
)


@pytest.fixture
def service(store):
    return ComponentExtractionService(store, target_ids=["pinnedTopLeft", "missingTarget"])


def test_placeholder_helpers():
    assert placeholder_id_for(7) == "wigoh-id-007"
    assert placeholder_id_for(1234) == "wigoh-id-1234"
    assert token_for("wigoh-id-007") == "{{wigoh-id-007}}"


def test_targets_and_sections_share_one_counter(service):
    result = service.extract(PAGE)
    components = result.components

    assert [c.placeholder_id for c in components] == [
        "wigoh-id-001", "wigoh-id-002", "wigoh-id-003", "wigoh-id-004",
    ]
    assert [c.kind for c in components] == ["target-id", "target-id", "section", "section"]
    assert [c.original_id for c in components] == ["pinnedTopLeft", "missingTarget", "a", "section_3"]


def test_nested_section_stays_inside_its_parent(service):
    result = service.extract(PAGE)
    outer = result.components[2]

    assert outer.html.startswith('<section id="a" wig-id="{{wigoh-id-003}}">')
    assert '<section id="b">inner</section>' in outer.html
    assert outer.children_count == 1
    assert 'id="b"' not in result.cleaned_html


def test_captured_target_carries_marker(service):
    target = service.extract(PAGE).components[0]
    assert target.found is True
    assert target.token == "{{wigoh-id-001}}"
    assert 'wig-id="{{wigoh-id-001}}"' in target.html
    assert target.children_count == 2
    assert "<!-- Placeholder ID: wigoh-id-001 -->" in target.preview_html


def test_missing_target_reserves_an_orphaned_token(service):
    result = service.extract(PAGE)
    missing = result.components[1]

    assert missing.found is False
    assert missing.token == "{{wigoh-id-002}}"
    assert "Component Not Found" in missing.html
    assert "STATUS: NOT FOUND" in missing.preview_html
    # Reserved but never written into the template.
    assert "{{wigoh-id-002}}" not in result.cleaned_html


def test_template_holds_found_tokens_without_chrome(service):
    cleaned = service.extract(PAGE).cleaned_html

    assert cleaned.startswith("<!DOCTYPE html>")
    for token in ("{{wigoh-id-001}}", "{{wigoh-id-003}}", "{{wigoh-id-004}}"):
        assert token in cleaned
    for chrome in ("<header", "<footer", "<script", "legacy", "menu"):
        assert chrome not in cleaned
    assert "<title>Extracted Content with Placeholders</title>" in cleaned


def test_components_and_template_are_persisted(service, store):
    result = service.extract(PAGE)

    stored = store.get_all_components()
    assert [c.placeholder_id for c in stored] == [c.placeholder_id for c in result.components]
    assert [c.db_id for c in result.components] == [c.id for c in stored]
    assert stored[1].found is False

    template = store.get_latest_template()
    assert template.id == result.template_id
    assert template.total_placeholders == 4
    assert template.html_content == result.cleaned_html

    pending = store.get_pending_components()
    assert [c.placeholder_id for c in pending] == ["wigoh-id-001", "wigoh-id-003", "wigoh-id-004"]


def test_duplicate_section_ids_are_extracted_once(store):
    page = '<body><section id="dup">one</section><section id="dup">two</section></body>'
    result = ComponentExtractionService(store, target_ids=[]).extract(page)

    assert len(result.components) == 1
    assert "one" in result.components[0].html
    assert '<section id="dup">two</section>' in result.cleaned_html


def test_build_preview_for_missing_component():
    preview = build_preview("<div>x</div>", "hero", "wigoh-id-009", found=False)
    assert "<title>Component Not Found: hero</title>" in preview
    assert "<!-- Original ID: hero -->" in preview


def test_persistence_failure_is_wrapped():
    failing_store = MagicMock()
    failing_store.save_component.side_effect = sqlite3.IntegrityError("constraint failed")

    with pytest.raises(ComponentExtractionError) as exc_info:
        ComponentExtractionService(failing_store).extract(PAGE)

    assert exc_info.value.stage == "extract components"
    assert "constraint failed" in str(exc_info.value)
    failing_store.save_template.assert_not_called()


def test_sibling_and_nested_sections_without_named_targets(store):
    page = '<body><section id="a">X</section><section id="b"><section id="c">Y</section></section></body>'
    result = ComponentExtractionService(store).extract(page)

    found = [c for c in result.components if c.found]
    missing = [c for c in result.components if not c.found]

    assert [c.original_id for c in missing] == ["pinnedTopLeft", "pinnedTopRight", "pinnedBottomLeft"]
    assert [c.placeholder_id for c in missing] == ["wigoh-id-001", "wigoh-id-002", "wigoh-id-003"]
    assert [(c.original_id, c.placeholder_id) for c in found] == [("a", "wigoh-id-004"), ("b", "wigoh-id-005")]
    assert '<section id="c">Y</section>' in found[1].html

    assert "{{wigoh-id-004}}" in result.cleaned_html
    assert "{{wigoh-id-005}}" in result.cleaned_html
    for reserved in missing:
        assert reserved.token not in result.cleaned_html
