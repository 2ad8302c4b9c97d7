from contextlib import nullcontext
from unittest.mock import MagicMock

import pytest

from extractor.model import (
    ComponentExtractionResult,
    ReconstructionResult,
    ShrinkResult,
    StyleResult,
    StyleStats,
    TreeNode,
    TreeResult,
    WidgetExtractionResult,
)
from migrator.core.exceptions import BlobNotFoundError, ResourceMissingError, WidgetExtractionError
from migrator.model import ExportResult, RawDocuments, ShrunkComponent
from migrator.server.app import create_app


@pytest.fixture
def controller():
    return MagicMock()


@pytest.fixture
def client(controller):
    app = create_app(pipeline_factory=lambda: nullcontext(controller))
    app.config["TESTING"] = True
    return app.test_client()


def test_fetch_returns_both_documents(client, controller):
    controller.fetch_documents.return_value = RawDocuments(html="<p>x</p>", style_document=[{"tag": "p"}])

    response = client.get("/api/fetch")

    assert response.status_code == 200
    assert response.get_json() == {"success": True, "data": {"html": "<p>x</p>", "css": [{"tag": "p"}]}}


def test_html_stages_answer_text_html(client, controller):
    controller.apply_styles.return_value = StyleResult(styled_html="<p>styled</p>", stats=StyleStats())
    controller.extract_widgets.return_value = WidgetExtractionResult(modified_html="<p>{{widget-1}}</p>")
    controller.extract_components.return_value = ComponentExtractionResult(cleaned_html="<div>{{wigoh-id-001}}</div>")
    controller.reconstruct.return_value = ReconstructionResult(reconstructed_html="<div>done</div>")

    for path, body in (
            ("/api/styled-html", "<p>styled</p>"),
            ("/api/widgets", "<p>{{widget-1}}</p>"),
            ("/api/components", "<div>{{wigoh-id-001}}</div>"),
            ("/api/reconstruct", "<div>done</div>"),
    ):
        response = client.get(path)
        assert response.status_code == 200
        assert response.mimetype == "text/html"
        assert response.get_data(as_text=True) == body


def test_optimize_reports_every_component(client, controller):
    controller.shrink_components.return_value = [
        ShrinkResult(component_id=1, placeholder_id="wigoh-id-001", success=True,
                     original_lines=10, optimized_lines=2, reduction_percentage=80),
        ShrinkResult(component_id=2, placeholder_id="wigoh-id-002", success=False, error="boom"),
    ]

    response = client.post("/api/optimize")
    payload = response.get_json()

    assert response.status_code == 200
    assert payload["message"] == "Successfully optimized 1 components"
    assert payload["data"][0]["reductionPercentage"] == 80
    assert payload["data"][1]["error"] == "boom"
    controller.shrink_components.assert_called_once_with(show_progress=False)


def test_optimized_component_by_id(client, controller):
    controller.get_shrunk_component.return_value = ShrunkComponent(
        id=5, component_id=1, original_html="<p>long</p>", optimized_html="<p>short</p>"
    )

    response = client.get("/api/optimized/5")

    assert response.get_data(as_text=True) == "<p>short</p>"
    controller.get_shrunk_component.assert_called_once_with(5)


def test_html_to_json_returns_bare_tree(client, controller):
    tree = TreeNode(tag_name="body", children=[TreeNode(tag_name="p", text_content="Hello")])
    controller.html_to_tree.return_value = TreeResult(tree=tree, total_nodes=3)

    response = client.get("/api/html-to-json")

    assert response.get_json() == {
        "tagName": "body",
        "attributes": {},
        "children": [{"tagName": "p", "attributes": {}, "children": [], "textContent": "Hello"}],
    }


def test_upload_json_returns_export_details(client, controller):
    controller.export_tree.return_value = ExportResult(
        job_id="job_1_abcdefg", file_name="job_1_abcdefg.json", path="/tmp/job_1_abcdefg.json",
        public_url="file:///tmp/job_1_abcdefg.json", total_nodes=3,
    )

    payload = client.post("/api/upload-json").get_json()

    assert payload["success"] is True
    assert payload["data"]["jobId"] == "job_1_abcdefg"
    assert payload["data"]["totalNodes"] == 3


@pytest.mark.parametrize("error, status", [
    (ResourceMissingError("Optimized component not found"), 404),
    (BlobNotFoundError("HTML file not found: 404 Not Found"), 404),
    (WidgetExtractionError("boom"), 500),
    (RuntimeError("unexpected"), 500),
])
def test_errors_map_to_status_codes(client, controller, error, status):
    controller.extract_widgets.side_effect = error

    response = client.get("/api/widgets")

    assert response.status_code == status
    assert response.get_json() == {"success": False, "message": str(error)}


def test_missing_pipeline_factory_is_a_server_error():
    app = create_app()
    app.config["PIPELINE_FACTORY"] = None
    response = app.test_client().get("/api/reconstruct")
    assert response.status_code == 500
    assert response.get_json()["success"] is False
