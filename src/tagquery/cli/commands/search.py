"""Search commands for tagquery CLI.

Provides:
- `tagquery parse`: Show the fuzzy text, tags and filter stages of a query
- `tagquery search`: Run a query against the collection
- `tagquery index-spec`: Print the index specification for the schema
"""

import asyncio
import json

from ...core.config import Config
from ...core.exceptions import ConfigError
from ...core.types import SearchIndexSpec, SearchMethod, SearchOptions
from ...services import ServiceContainer

DEFAULT_LIMIT = 10


def add_method_argument(parser) -> None:
    """Add the --method option.

    Args:
        parser: Argument parser for the command.
    """
    parser.add_argument(
        "-m",
        "--method",
        help='Search method, "$text" or "$search" (default: $TAGQUERY_SEARCH_METHOD or "$text")',
    )


def add_search_arguments(parser) -> None:
    """Add arguments for the search command.

    Args:
        parser: Argument parser for the command.
    """
    parser.add_argument("query", help="Search query, e.g. 'luhrmann after:2000 stars:3-5'")
    parser.add_argument(
        "-l",
        "--limit",
        type=int,
        help=f"Maximum results to return (default: {DEFAULT_LIMIT}; ignored with --count)",
    )
    parser.add_argument(
        "--skip", type=int, default=0, help="Results to skip (default: 0; ignored with --count)"
    )
    parser.add_argument("--count", action="store_true", help="Only print the number of matches")
    parser.add_argument("--match", help="Additional $match filter as JSON")
    parser.add_argument("--no-tags", action="store_true", help="Treat the whole query as text")
    add_method_argument(parser)


def _dump(value) -> str:
    return json.dumps(value, indent=2, default=str, ensure_ascii=False)


def handle_parse(args, config: Config) -> None:
    """Handle parse command.

    Args:
        args: Parsed command arguments.
        config: Application configuration.
    """
    asyncio.run(_handle_parse_async(args, config))


async def _handle_parse_async(args, config: Config) -> None:
    async with ServiceContainer(config) as services:
        parsed = await services.search.parse_query(args.query)

    print(f"Fuzzy: {parsed.fuzzy or '[none]'}")
    print(f"Tags: {_dump(parsed.tags)}")
    print(f"Stages: {_dump(list(parsed.stages))}")


def handle_search(args, config: Config) -> None:
    """Handle search command.

    Args:
        args: Parsed command arguments.
        config: Application configuration.
    """
    asyncio.run(_handle_search_async(args, config))


async def _handle_search_async(args, config: Config) -> None:
    match = None
    if args.match:
        try:
            match = json.loads(args.match)
        except json.JSONDecodeError as e:
            raise ConfigError(f"--match is not valid JSON: {e}") from e
        if not isinstance(match, dict):
            raise ConfigError("--match must be a JSON object")

    # Pagination applies to result rows; a count covers every match.
    if args.count:
        skip, limit = None, None
    else:
        skip = args.skip
        limit = args.limit if args.limit is not None else DEFAULT_LIMIT

    options = SearchOptions(
        match=match,
        skip=skip,
        limit=limit,
        count=args.count,
        method=SearchMethod.parse(args.method) if args.method else None,
        tags=False if args.no_tags else None,
    )

    async with ServiceContainer(config) as services:
        results = await services.search.search(args.query, options)

    if args.count:
        print(results)
        return

    if not results:
        print("No results found")
        return
    print(_dump(results))


def handle_index_spec(args, config: Config) -> None:
    """Handle index-spec command.

    Args:
        args: Parsed command arguments.
        config: Application configuration.
    """
    asyncio.run(_handle_index_spec_async(args, config))


async def _handle_index_spec_async(args, config: Config) -> None:
    config.search.create_index = False
    async with ServiceContainer(config) as services:
        spec = services.search.index_spec(args.method)

    if isinstance(spec, SearchIndexSpec):
        print(_dump(spec.to_command()))
    else:
        print(_dump({"name": spec.name, "keys": spec.keys, "weights": spec.weights}))
