import logging

from flask import Blueprint, Response, current_app, jsonify

from migrator.core.exceptions import ResourceMissingError

logger = logging.getLogger(__name__)

migration_router = Blueprint('migration_router', __name__)


# --- HELPER FUNCTIONS ---

def get_pipeline():
    """Opens a pipeline scope using the factory stored in the Flask app config."""
    factory = current_app.config.get('PIPELINE_FACTORY')
    if not factory:
        raise RuntimeError("Pipeline factory is not set in app.config['PIPELINE_FACTORY']")
    return factory()


def html_response(markup: str) -> Response:
    return Response(markup, mimetype='text/html')


def error_response(error: Exception):
    status = 404 if isinstance(error, ResourceMissingError) else 500
    if status == 500:
        logger.error("Request failed: %s", error, exc_info=True)
    else:
        logger.warning("Request failed: %s", error)
    return jsonify({"success": False, "message": str(error)}), status


# --- API ROUTES ---

@migration_router.route('/fetch', methods=['GET'])
def fetch_documents():
    """Returns the raw page and its style document."""
    try:
        with get_pipeline() as controller:
            documents = controller.fetch_documents()
        return jsonify({"success": True, "data": {"html": documents.html, "css": documents.style_document}})
    except Exception as e:
        return error_response(e)


@migration_router.route('/styled-html', methods=['GET'])
def styled_html():
    try:
        with get_pipeline() as controller:
            result = controller.apply_styles()
        return html_response(result.styled_html)
    except Exception as e:
        return error_response(e)


@migration_router.route('/widgets', methods=['GET'])
def extract_widgets():
    try:
        with get_pipeline() as controller:
            result = controller.extract_widgets()
        return html_response(result.modified_html)
    except Exception as e:
        return error_response(e)


@migration_router.route('/components', methods=['GET'])
def extract_components():
    """Runs every stage up to component extraction and returns the template."""
    try:
        with get_pipeline() as controller:
            result = controller.extract_components()
        return html_response(result.cleaned_html)
    except Exception as e:
        return error_response(e)


@migration_router.route('/optimize', methods=['POST'])
def optimize_components():
    try:
        with get_pipeline() as controller:
            results = controller.shrink_components(show_progress=False)
        succeeded = sum(1 for r in results if r.success)
        return jsonify({
            "success": True,
            "message": f"Successfully optimized {succeeded} components",
            "data": [r.to_api() for r in results],
        })
    except Exception as e:
        return error_response(e)


@migration_router.route('/optimized/<int:shrunk_id>', methods=['GET'])
def get_optimized_component(shrunk_id: int):
    try:
        with get_pipeline() as controller:
            component = controller.get_shrunk_component(shrunk_id)
        return html_response(component.optimized_html)
    except Exception as e:
        return error_response(e)


@migration_router.route('/reconstruct', methods=['GET'])
def reconstruct():
    try:
        with get_pipeline() as controller:
            result = controller.reconstruct()
        return html_response(result.reconstructed_html)
    except Exception as e:
        return error_response(e)


@migration_router.route('/html-to-json', methods=['GET'])
def html_to_json():
    """Returns the bare tree of the latest reconstructed document."""
    try:
        with get_pipeline() as controller:
            result = controller.html_to_tree()
        return jsonify(result.tree.to_api())
    except Exception as e:
        return error_response(e)


@migration_router.route('/upload-json', methods=['POST'])
def upload_json():
    try:
        with get_pipeline() as controller:
            result = controller.export_tree()
        return jsonify({
            "success": True,
            "message": "JSON exported successfully",
            "data": result.model_dump(by_alias=True),
        })
    except Exception as e:
        return error_response(e)
