#!/usr/bin/env python3
"""
Command-line interface for profile-card.
"""

import argparse
import json
import logging
import sys
from typing import Optional

from .composer import CardComposer
from .counter_store import StorageError
from .server import STATS_ACTIONS
from .store_factory import get_counter_store


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="profile-card",
        description="GitHub profile card generator and usage counters"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Server command
    server_parser = subparsers.add_parser("server", help="Start the card and statistics server")
    server_parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to run the server on (default: 8000)"
    )

    # Generate command
    generate_parser = subparsers.add_parser("generate", help="Render a profile card to SVG")
    generate_parser.add_argument("username", help="GitHub username")
    generate_parser.add_argument(
        "-o", "--output",
        help="File to write the SVG to (default: stdout)"
    )

    # Stats command
    stats_parser = subparsers.add_parser("stats", help="Read or increment usage counters")
    stats_parser.add_argument(
        "action",
        nargs="?",
        default="get_stats",
        choices=STATS_ACTIONS,
        help="Statistics action (default: get_stats)"
    )

    return parser


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    if args.command == "server":
        from .server import run_server
        try:
            run_server(port=args.port)
            return 0
        except KeyboardInterrupt:
            print("\nServer stopped by user")
            return 0
        except Exception as e:
            print(f"Server error: {e}", file=sys.stderr)
            return 1
    elif args.command == "generate":
        svg = CardComposer().compose_card(args.username)
        if args.output:
            with open(args.output, "w", encoding="utf-8") as f:
                f.write(svg)
        else:
            sys.stdout.write(svg)
        return 0
    elif args.command == "stats":
        store = get_counter_store()
        try:
            if args.action == "increment_generations":
                result = store.increment_generations()
            elif args.action == "increment_visitors":
                result = store.increment_visitors()
            else:
                result = store.get_stats()
        except StorageError as e:
            print(f"Statistics error: {e}", file=sys.stderr)
            return 1
        print(json.dumps(result, indent=2))
        return 0
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
