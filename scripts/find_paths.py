#!/usr/bin/env python3
"""Search a step graph exported from the flow editor.

Usage:
    python scripts/find_paths.py flow.json --start login
    python scripts/find_paths.py flow.json --start login --end checkout --via cart
    python scripts/find_paths.py flow.json --loops --roots login signup

The JSON file holds ``{"steps": [...], "connections": [...]}`` in the
editor's camelCase shape. Ctrl+C cancels a running search and prints
whatever was found so far.
"""

import argparse
import asyncio
import json
import signal
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CANCELLED = 130


async def run_search(args: argparse.Namespace) -> int:
    """Run the requested search and print its results."""
    from pydantic import ValidationError as SchemaValidationError

    from stepgraph.common.config import get_settings
    from stepgraph.common.exceptions import StepGraphError
    from stepgraph.common.logging import setup_logging
    from stepgraph.common.metrics import set_app_info
    from stepgraph.graph.model import GraphModel
    from stepgraph.graph.queries import missing_connections, shortest_path
    from stepgraph.schemas.graph import GraphSnapshot
    from stepgraph.schemas.search import ResultPageResponse, SearchRequest, SearchResultResponse
    from stepgraph.search.controller import SearchController, SearchMode, SearchStatus, infer_mode

    settings = get_settings()
    setup_logging(settings)

    # Set app info for metrics
    set_app_info(
        name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    try:
        snapshot = GraphSnapshot.from_dict(json.loads(Path(args.file).read_text()))
    except (OSError, json.JSONDecodeError, SchemaValidationError) as e:
        print(f"Error: cannot load graph from {args.file}: {e}")
        return EXIT_FAILED

    if args.missing:
        report = missing_connections(GraphModel(snapshot))
        if not report:
            print("All steps have both outgoing connections.")
        for entry in report:
            parent = f" (in {entry.parent_name})" if entry.parent_name else ""
            print(f"{entry.step.name}{parent}: {entry.status}")
        return EXIT_OK

    if args.shortest:
        if not args.start or not args.end:
            print("Error: --shortest needs --start and --end")
            return EXIT_FAILED
        path = shortest_path(GraphModel(snapshot), args.start, args.end)
        print(path.describe() if path else "No path found.")
        return EXIT_OK

    try:
        if args.loops:
            request = SearchRequest(mode=SearchMode.LOOPS, root_ids=args.roots)
        else:
            request = SearchRequest(
                mode=infer_mode(args.end, args.via),
                start_id=args.start,
                end_id=args.end,
                intermediate_id=args.via,
            )
    except SchemaValidationError as e:
        print(f"Error: {e.errors()[0]['msg']}")
        return EXIT_FAILED

    controller = SearchController(settings)

    try:
        task = controller.submit(snapshot, request)
    except StepGraphError as e:
        print(f"Error: {e.message}")
        return EXIT_FAILED

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, controller.cancel)
    except NotImplementedError:
        pass

    outcome = await task

    if args.metrics:
        from prometheus_client import generate_latest

        sys.stderr.write(generate_latest().decode())

    if args.json:
        if args.page:
            payload = ResultPageResponse.from_page(controller.page(args.page))
        else:
            payload = SearchResultResponse.from_outcome(outcome)
        print(payload.model_dump_json(by_alias=True, indent=2))
    else:
        noun = "loop" if request.mode == SearchMode.LOOPS else "path"
        page = controller.page(args.page or 1)
        if not page.total:
            print(f"No {noun}s found for the selected criteria.")
        for number, path in enumerate(page.items, start=(page.page - 1) * page.page_size + 1):
            print(f"{number:>5}. {path.describe()}")
        if page.total:
            print(f"Found {page.total} {noun}{'' if page.total == 1 else 's'} "
                  f"(page {page.page}/{page.pages}).")

    if outcome.status == SearchStatus.CANCELLED:
        print("Search cancelled.")
        return EXIT_CANCELLED
    if outcome.status == SearchStatus.FAILED:
        print(f"Error: {outcome.error}")
        return EXIT_FAILED
    return EXIT_OK


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Find paths and loops in a step graph",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python scripts/find_paths.py flow.json --start login
    python scripts/find_paths.py flow.json --start login --end done --json
    python scripts/find_paths.py flow.json --loops
    python scripts/find_paths.py flow.json --missing
        """,
    )
    parser.add_argument("file", help="Graph JSON exported from the editor")
    parser.add_argument("--start", help="Start step id")
    parser.add_argument("--end", help="End step id (default: any end step)")
    parser.add_argument("--via", help="Intermediate step id every path must include")
    parser.add_argument("--loops", action="store_true", help="Detect loops instead of paths")
    parser.add_argument("--roots", nargs="*", help="Root step ids for loop detection (default: all)")
    parser.add_argument("--shortest", action="store_true", help="Print only the shortest path")
    parser.add_argument("--missing", action="store_true", help="List steps missing connections")
    parser.add_argument("--page", type=int, default=0, help="Result page to print")
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    parser.add_argument("--metrics", action="store_true", help="Dump Prometheus metrics to stderr")

    args = parser.parse_args()

    if not (args.loops or args.missing) and not args.start:
        parser.error("--start is required unless --loops or --missing is given")

    sys.exit(asyncio.run(run_search(args)))


if __name__ == "__main__":
    main()
