"""CLI entry point for tagquery."""

import argparse
import sys
from pathlib import Path
from typing import NoReturn

from loguru import logger

from .. import __version__
from ..core.config import Config
from . import commands


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="tagquery",
        description="Tag-aware fuzzy search over JSON document collections",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--schema",
        type=Path,
        help="Search schema YAML file (default: $TAGQUERY_SCHEMA)",
    )
    parser.add_argument("--db", type=Path, help="Database path (default: $TAGQUERY_DB_PATH)")
    parser.add_argument(
        "-c",
        "--collection",
        help="Collection name (default: $TAGQUERY_COLLECTION or 'documents')",
    )

    subparsers = parser.add_subparsers(dest="command", required=False)

    load_parser = subparsers.add_parser("load", help="Load documents from a YAML/JSON file")
    commands.add_load_arguments(load_parser)

    parse_parser = subparsers.add_parser("parse", help="Show how a query is parsed")
    parse_parser.add_argument("query", help="Search query")

    search_parser = subparsers.add_parser("search", help="Search documents")
    commands.add_search_arguments(search_parser)

    spec_parser = subparsers.add_parser("index-spec", help="Print the index specification")
    commands.add_method_argument(spec_parser)

    reindex_parser = subparsers.add_parser("reindex", help="Recompute dynamic index values")
    commands.add_reindex_arguments(reindex_parser)

    return parser


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr, at DEBUG level if verbose."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = Config.from_env()
        if args.schema:
            config.schema_path = args.schema
        if args.db:
            config.db_path = args.db
        if args.collection:
            config.collection = args.collection

        if args.command == "load":
            commands.handle_load(args, config)
        elif args.command == "parse":
            commands.handle_parse(args, config)
        elif args.command == "search":
            commands.handle_search(args, config)
        elif args.command == "index-spec":
            commands.handle_index_spec(args, config)
        elif args.command == "reindex":
            commands.handle_reindex(args, config)
        else:
            parser.print_help()

        sys.exit(0)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
