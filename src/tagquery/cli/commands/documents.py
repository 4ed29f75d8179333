"""Document loading command for tagquery CLI."""

import asyncio
from pathlib import Path

from ...core.config import Config
from ...services import ServiceContainer
from ...store.loader import load_documents, read_items


def add_load_arguments(parser) -> None:
    """Add arguments for the load command.

    Args:
        parser: Argument parser for the command.
    """
    parser.add_argument("file", type=Path, help="YAML or JSON file holding a list of documents")


def handle_load(args, config: Config) -> None:
    """Handle load command.

    Args:
        args: Parsed command arguments.
        config: Application configuration.
    """
    asyncio.run(_handle_load_async(args, config))


async def _handle_load_async(args, config: Config) -> None:
    items = read_items(args.file)

    async with ServiceContainer(config) as services:
        result = load_documents(services.collection, items)

    print(f"Loaded {len(result.inserted)} documents into '{config.collection}'")
    for index, error in result.skipped:
        print(f"  ! item {index}: {error}")
    if result.unresolved:
        print(f"  Unresolved references: {', '.join(result.unresolved)}")
