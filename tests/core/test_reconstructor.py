import pytest

from extractor.services.reconstruction_service import ReconstructionService
from migrator.core.exceptions import ResourceMissingError


def _add_shrunk(store, placeholder_id, optimized_html, original_html=None):
    component_id = store.save_component(placeholder_id, placeholder_id, "section", original_html or optimized_html)
    return store.save_shrunk_component(component_id, original_html or optimized_html, optimized_html, 1, 1, 0)


def test_single_component_is_spliced_into_its_slot(store):
    store.save_template("<div>{{wigoh-id-001}}</div>", 1)
    _add_shrunk(store, "wigoh-id-001", '<section wig-id="{{wigoh-id-001}}"><b>Hi</b></section>')

    result = ReconstructionService(store).reconstruct()

    assert result.reconstructed_html == '<div><section wig-id="{{wigoh-id-001}}"><b>Hi</b></section></div>'
    assert result.total_components == 1
    assert result.unmatched_tokens == []
    assert result.skipped_components == 0


def test_unfilled_tokens_are_reported_and_left_in_place(store):
    store.save_template("<div>{{wigoh-id-001}}</div><div>{{wigoh-id-002}}</div>", 2)
    _add_shrunk(store, "wigoh-id-001", '<p wig-id="{{wigoh-id-001}}">one</p>')

    result = ReconstructionService(store).reconstruct()

    assert result.total_components == 1
    assert result.unmatched_tokens == ["{{wigoh-id-002}}"]
    assert "<div>{{wigoh-id-002}}</div>" in result.reconstructed_html


def test_widgets_inside_components_are_replaced_everywhere(store):
    store.save_template("<div>{{wigoh-id-001}}</div><p>{{widget-1}}</p>", 1)
    _add_shrunk(store, "wigoh-id-001", '<section wig-id="{{wigoh-id-001}}">{{widget-2}} {{widget-1}}</section>')
    store.save_widget("{{widget-1}}", "<h1>Title</h1>")
    store.save_widget("{{widget-2}}", "<img src=\"a.png\"/>")

    result = ReconstructionService(store).reconstruct()

    assert "{{widget-" not in result.reconstructed_html
    assert result.reconstructed_html.count("<h1>Title</h1>") == 2
    assert result.total_widgets == 3


def test_latest_widget_write_wins(store):
    store.save_template("<div>{{widget-1}}</div>", 0)
    store.save_widget("{{widget-1}}", "<p>old</p>")
    store.save_widget("{{widget-1}}", "<p>new</p>")

    result = ReconstructionService(store).reconstruct()
    assert result.reconstructed_html == "<div><p>new</p></div>"


def test_latest_shrunk_version_per_component_is_used(store):
    store.save_template("<div>{{wigoh-id-001}}</div>", 1)
    _add_shrunk(store, "wigoh-id-001", '<p wig-id="{{wigoh-id-001}}">first</p>')
    _add_shrunk(store, "wigoh-id-001", '<p wig-id="{{wigoh-id-001}}">second</p>')

    result = ReconstructionService(store).reconstruct()
    assert result.reconstructed_html == '<div><p wig-id="{{wigoh-id-001}}">second</p></div>'


def test_component_without_marker_is_skipped(store):
    store.save_template("<div>{{wigoh-id-001}}</div>", 1)
    _add_shrunk(store, "wigoh-id-001", "<p>lost its marker</p>")

    result = ReconstructionService(store).reconstruct()

    assert result.skipped_components == 1
    assert result.total_components == 0
    assert result.unmatched_tokens == ["{{wigoh-id-001}}"]


def test_widget_round_trip_restores_original_markup(store):
    from extractor.services.widget_extraction_service import WidgetExtractionService

    page = "<div><h2>Heading</h2><p>Body <a href=\"/x\">link</a></p></div>"
    extracted = WidgetExtractionService(store).extract(page)
    store.save_template(extracted.modified_html, 0)

    result = ReconstructionService(store).reconstruct()
    assert result.reconstructed_html == page


def test_result_is_persisted(store):
    store.save_template("<div></div>", 0)
    result = ReconstructionService(store).reconstruct()

    stored = store.get_latest_reconstructed()
    assert stored.id == result.db_id
    assert stored.html_content == result.reconstructed_html


def test_missing_template_raises(store):
    with pytest.raises(ResourceMissingError, match="No placeholder HTML found"):
        ReconstructionService(store).reconstruct()


def test_component_with_nested_widget_scenario(store):
    store.save_template("<div>{{wigoh-id-001}}</div>", 1)
    _add_shrunk(store, "wigoh-id-001", '<section wig-id="{{wigoh-id-001}}">{{widget-1}}</section>')
    store.save_widget("{{widget-1}}", "<b>Hi</b>")

    result = ReconstructionService(store).reconstruct()

    assert result.reconstructed_html == '<div><section wig-id="{{wigoh-id-001}}"><b>Hi</b></section></div>'
    assert result.total_components == 1
    assert result.total_widgets == 1
