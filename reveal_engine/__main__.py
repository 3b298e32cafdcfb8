#!/usr/bin/env python3
"""Play a markdown message through the reveal engine in the terminal.

Usage:
    # Type out a file
    python -m reveal_engine answer.md

    # From stdin, at a fixed 30 tokens/s
    cat answer.md | python -m reveal_engine --rate 30

    # Show everything at once (no typing)
    python -m reveal_engine answer.md --no-typing
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .config import RevealConfig
from .render.console import play_message
from .render.panel import CompanionPanel


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reveal_engine",
        description="Simulate typing of a chat response with block detection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "path",
        nargs="?",
        help="Markdown file to play (default: read stdin)",
    )
    parser.add_argument(
        "--message-id",
        default="message",
        help="Message identifier shown in the title",
    )
    parser.add_argument(
        "--rate",
        type=float,
        default=None,
        help="Fixed reveal rate in tokens/s (default: estimated from length)",
    )
    parser.add_argument(
        "--no-typing",
        action="store_true",
        help="Show the whole message immediately",
    )
    parser.add_argument(
        "--no-panel",
        action="store_true",
        help="Do not auto-open the companion panel on the first block",
    )
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Path to .env file with REVEAL_* settings (default: .env)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    load_dotenv(args.env_file)

    if args.path:
        try:
            content = Path(args.path).read_text(encoding="utf-8")
        except OSError as e:
            print(f"Error: cannot read {args.path}: {e}", file=sys.stderr)
            return 1
    else:
        content = sys.stdin.read()

    overrides = {}
    if args.rate is not None:
        overrides["fixed_rate"] = args.rate
    try:
        config = RevealConfig.from_dict(overrides)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    panel = CompanionPanel(auto_type=not args.no_panel)
    try:
        asyncio.run(play_message(
            content,
            args.message_id,
            config=config,
            enabled=not args.no_typing,
            panel=panel,
        ))
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
