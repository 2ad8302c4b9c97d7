"""
Page Migrator - HTTP Server
Flask entry point exposing the migration stages under /api.
"""

import argparse
import logging
from typing import Callable, Optional

from flask import Flask

from migrator.controllers.migration_controller import open_pipeline
from migrator.core.managers.config_manager import config_manager
from migrator.core.utils.configure_logging import configure_logger
from migrator.server.routers.migration_router import migration_router

logger = logging.getLogger(__name__)


def create_app(pipeline_factory: Optional[Callable] = None) -> Flask:
    """
    Application factory. `pipeline_factory` returns a context manager that
    yields a MigrationController; every request opens its own scope.
    """
    flask_app = Flask(__name__)

    # Inject the pipeline factory into App Config for Blueprint access
    flask_app.config['PIPELINE_FACTORY'] = pipeline_factory or open_pipeline

    flask_app.register_blueprint(migration_router, url_prefix='/api')

    return flask_app


def run_server(host: str, port: int, debug: bool = False) -> None:
    app = create_app()

    print("\n" + "=" * 50)
    print("  PAGE MIGRATOR | HTTP server")
    print("=" * 50)
    print(f"  Listening on: http://{host}:{port}")
    print("-" * 50)

    print("\nAPI ROUTE MAPPING:")
    for rule in app.url_map.iter_rules():
        if "api" in str(rule):
            print(f"   {rule}")
    print("-" * 50 + "\n")

    # use_reloader=False prevents double-initialization of the database
    app.run(debug=debug, host=host, port=port, use_reloader=False)


def main():
    parser = argparse.ArgumentParser(description="Page Migrator HTTP Server")
    parser.add_argument("--host", type=str, default=config_manager.get_nested("server.host", "0.0.0.0"),
                        help="Host interface to bind to")
    parser.add_argument("--port", type=int, default=config_manager.get_nested("server.port", 5000),
                        help="Port to bind the server to")
    parser.add_argument("--debug", action="store_true", help="Enable the Flask debugger")
    args = parser.parse_args()

    configure_logger(
        general_level=config_manager.get_nested("debug.level", "INFO"),
        logger_levels=config_manager.get_nested("debug.logger_levels"),
    )
    run_server(args.host, args.port, debug=args.debug)


if __name__ == '__main__':
    main()
