from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Callable, Dict, List, Optional

from migrator.controllers.migration_controller import MigrationController, open_pipeline
from migrator.core.clients.shrink_client import PassthroughShrinker
from migrator.core.exceptions import MigratorError
from migrator.core.managers.config_manager import config_manager
from migrator.core.utils.configure_logging import configure_logger

logger = logging.getLogger(__name__)


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def _write_or_print(markup: str, output: Optional[str]) -> None:
    if output:
        with open(output, "w", encoding="utf-8") as fh:
            fh.write(markup)
        print(f"Written to {output}")
    else:
        print(markup)


# --- Command implementations ---

def cmd_fetch(controller: MigrationController, args: argparse.Namespace) -> int:
    documents = controller.fetch_documents()
    entries = documents.style_document if isinstance(documents.style_document, list) else [documents.style_document]
    print(f"HTML: {len(documents.html)} chars, style document: {len(entries)} top-level entries")
    return 0


def cmd_style(controller: MigrationController, args: argparse.Namespace) -> int:
    result = controller.apply_styles()
    _write_or_print(result.styled_html, args.output)
    _print_json(result.stats.to_api())
    return 0


def cmd_widgets(controller: MigrationController, args: argparse.Namespace) -> int:
    result = controller.extract_widgets()
    _write_or_print(result.modified_html, args.output)
    print(f"Extracted {result.total_widgets} widgets")
    return 0


def cmd_components(controller: MigrationController, args: argparse.Namespace) -> int:
    result = controller.extract_components()
    _write_or_print(result.cleaned_html, args.output)
    for fragment in result.components:
        status = "ok" if fragment.found else "NOT FOUND"
        print(f"{fragment.placeholder_id}  {fragment.kind:<9}  {fragment.original_id}  [{status}]")
    return 0


def cmd_shrink(controller: MigrationController, args: argparse.Namespace) -> int:
    results = controller.shrink_components()
    _print_json([r.to_api() for r in results])
    return 0 if all(r.success for r in results) else 1


def cmd_reconstruct(controller: MigrationController, args: argparse.Namespace) -> int:
    result = controller.reconstruct()
    _write_or_print(result.reconstructed_html, args.output)
    print(
        f"Components: {result.total_components}, widget occurrences: {result.total_widgets}, "
        f"skipped: {result.skipped_components}, unmatched: {', '.join(result.unmatched_tokens) or '-'}"
    )
    return 0


def cmd_tree(controller: MigrationController, args: argparse.Namespace) -> int:
    result = controller.html_to_tree()
    if args.output:
        _write_or_print(json.dumps(result.tree.to_api(), indent=2, ensure_ascii=False), args.output)
    print(f"Converted {result.total_nodes} nodes (ID: {result.db_id})")
    return 0


def cmd_export(controller: MigrationController, args: argparse.Namespace) -> int:
    result = controller.export_tree()
    _print_json(result.model_dump(by_alias=True))
    return 0


def cmd_run(controller: MigrationController, args: argparse.Namespace) -> int:
    _print_json(controller.run_all())
    return 0


COMMANDS: Dict[str, Callable[[MigrationController, argparse.Namespace], int]] = {
    "fetch": cmd_fetch,
    "style": cmd_style,
    "widgets": cmd_widgets,
    "components": cmd_components,
    "shrink": cmd_shrink,
    "reconstruct": cmd_reconstruct,
    "tree": cmd_tree,
    "export": cmd_export,
    "run": cmd_run,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="migrator", description="Migrate a rendered web page into a component tree.")
    parser.add_argument("--html", help="Read the raw HTML from this file instead of the configured URL.")
    parser.add_argument("--styles", help="Read the style document from this JSON file instead of the configured URL.")
    parser.add_argument("--db", help="SQLite database path (overrides storage.db_path).")
    parser.add_argument("--offline", action="store_true", help="Use the passthrough shrinker instead of the API.")

    subparsers = parser.add_subparsers(dest="command", required=True)
    for name in ("style", "widgets", "components", "reconstruct", "tree"):
        sub = subparsers.add_parser(name)
        sub.add_argument("--output", "-o", help="Write the result to this file.")
    for name in ("fetch", "shrink", "export", "run"):
        subparsers.add_parser(name)

    serve = subparsers.add_parser("serve", help="Start the HTTP server.")
    serve.add_argument("--host", default=config_manager.get_nested("server.host", "0.0.0.0"))
    serve.add_argument("--port", type=int, default=config_manager.get_nested("server.port", 5000))
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logger(
        general_level=config_manager.get_nested("debug.level", "INFO"),
        logger_levels=config_manager.get_nested("debug.logger_levels"),
    )
    if args.db:
        config_manager.set_nested("storage.db_path", args.db)

    if args.command == "serve":
        from migrator.server.app import run_server
        run_server(args.host, args.port)
        return 0

    shrinker = PassthroughShrinker() if args.offline else None
    try:
        with open_pipeline(config_manager, html_path=args.html, style_path=args.styles,
                           shrinker=shrinker) as controller:
            return COMMANDS[args.command](controller, args)
    except MigratorError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {e}")
        return 1
    except Exception as e:
        logger.error("Unexpected error in %s: %s", args.command, e, exc_info=True)
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
