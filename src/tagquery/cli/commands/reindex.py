"""Reindex command for tagquery CLI."""

import asyncio
import json

from ...core.config import Config
from ...core.exceptions import ConfigError
from ...core.types import ReindexProgress
from ...services import ServiceContainer


def add_reindex_arguments(parser) -> None:
    """Add arguments for the reindex command.

    Args:
        parser: Argument parser for the command.
    """
    parser.add_argument(
        "-p",
        "--parallelism",
        type=int,
        help="Concurrent workers (default: $TAGQUERY_REINDEX_PARALLELISM or 20)",
    )
    parser.add_argument("--match", help="Only reindex documents matching this JSON filter")


def handle_reindex(args, config: Config) -> None:
    """Handle reindex command.

    Args:
        args: Parsed command arguments.
        config: Application configuration.
    """
    asyncio.run(_handle_reindex_async(args, config))


def _print_progress(progress: ReindexProgress) -> None:
    print(
        f"  {progress.processed} processed, {progress.failed} failed "
        f"({progress.elapsed:.1f}s)"
    )


async def _handle_reindex_async(args, config: Config) -> None:
    match = None
    if args.match:
        try:
            match = json.loads(args.match)
        except json.JSONDecodeError as e:
            raise ConfigError(f"--match is not valid JSON: {e}") from e

    async with ServiceContainer(config) as services:
        print(f"Reindexing '{config.collection}'...")
        result = await services.search.reindex_all(
            match=match,
            parallelism=args.parallelism,
            progress=_print_progress,
        )

    print(f"Reindexed {result.updated} of {result.processed} documents")
    if result.errors:
        print(f"Errors ({result.failed}):")
        for doc_id, error in result.errors[:10]:
            print(f"  ! {doc_id}: {error}")
