"""
Operator CLI for a saved turn memory database.
Inspect, search and reset the persisted memory index.
"""

import argparse
import asyncio
import json
import sys

from .core import config
from .core.manager import ContextVectorManager


def _open_manager(args) -> ContextVectorManager:
    settings = config.load_settings(
        db_path=args.db,
        max_retrieve_count=getattr(args, "top_k", None),
        min_similarity_threshold=getattr(args, "threshold", None),
    )
    manager = ContextVectorManager(settings)
    asyncio.run(manager.load())
    return manager


def show_command(args) -> int:
    """List stored turns."""
    manager = _open_manager(args)
    turns = manager.conversation_embeddings
    if not turns:
        print(f"No saved memory in {args.db}")
        return 1

    print(f"📚 {len(turns)} turns in {args.db}")
    for turn in turns[-args.limit:] if args.limit else turns:
        print(f"  [{turn.turn_index}] ({turn.vector_type}) {turn.summary}")
    return 0


def search_command(args) -> int:
    """Run a retrieval pass over the saved memory."""
    manager = _open_manager(args)
    result = manager.retrieve_relevant_context(args.query)

    if result.is_empty():
        print("No relevant memories found.")
        return 0

    for position, memory in enumerate(result.relevant, start=1):
        print(f"{position}. turn {memory.turn_index} similarity {memory.similarity:.3f}")
        print(f"   {memory.summary}")
    return 0


def clear_command(args) -> int:
    """Overwrite the saved memory with an empty store."""
    manager = ContextVectorManager(config.load_settings(db_path=args.db))
    if not asyncio.run(manager.save()):
        print(f"❌ Failed to clear saved memory in {args.db}")
        return 1
    print(f"✅ Cleared saved memory in {args.db}")
    return 0


def health_command(args) -> int:
    """Print manager health and configuration issues as JSON."""
    manager = _open_manager(args)
    report = manager.health()
    report["config_issues"] = config.validate_config()
    print(json.dumps(report, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Turn memory operations CLI",
        prog="turnrecall"
    )
    parser.add_argument(
        "--db",
        default=config.DB_PATH,
        help=f"SQLite memory database (default: {config.DB_PATH})"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    show_parser = subparsers.add_parser("show", help="List stored turns")
    show_parser.add_argument("--limit", type=int, default=0, help="Only show the last N turns")
    show_parser.set_defaults(func=show_command)

    search_parser = subparsers.add_parser("search", help="Retrieve memories relevant to a query")
    search_parser.add_argument("query", help="Query text")
    search_parser.add_argument("--top-k", type=int, default=None, help="Maximum memories to return")
    search_parser.add_argument("--threshold", type=float, default=None, help="Minimum similarity")
    search_parser.set_defaults(func=search_command)

    clear_parser = subparsers.add_parser("clear", help="Clear the saved memory")
    clear_parser.set_defaults(func=clear_command)

    health_parser = subparsers.add_parser("health", help="Show memory health")
    health_parser.set_defaults(func=health_command)

    return parser


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        return args.func(args)
    except ValueError as e:
        print(f"❌ Invalid option: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
