from __future__ import annotations

import argparse
import os
import sys

from loguru import logger

from .config import AppConfig
from .events import InputSourceError
from .tui import XpediaApp
from .wiki.client import WikiClient


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Search and read Wikipedia in the terminal"
    )
    parser.add_argument(
        "--lang",
        default="en",
        help="Wikipedia language edition (default: en)",
    )
    parser.add_argument(
        "--tick-ms",
        type=int,
        default=200,
        help="Idle redraw interval in milliseconds",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Write a diagnostic log to this file",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Debug logging and a debug strip in the footer",
    )

    args = parser.parse_args(argv)
    if args.tick_ms < 10:
        parser.error("--tick-ms must be at least 10")

    logger.remove()
    if args.log_file:
        logger.add(args.log_file, level="DEBUG" if args.verbose else "INFO")

    if not _ensure_tty_input():
        print(
            "Error: xpedia requires a terminal for input. Run it from a terminal.",
            file=sys.stderr,
        )
        return 1

    config = AppConfig(
        language=args.lang,
        tick_interval=args.tick_ms / 1000,
        debug=args.verbose,
    )
    try:
        with WikiClient(config) as client:
            XpediaApp(client, config).run()
        return 0
    except KeyboardInterrupt:
        print("\nInterrupted.")
        return 1
    except InputSourceError as exc:
        logger.error("Input failure: {}", exc)
        print(f"\nError: cannot read terminal input: {exc}", file=sys.stderr)
        return 1
    except Exception as exc:
        logger.exception("Fatal error")
        print(f"\nError: {exc}", file=sys.stderr)
        return 1


def _ensure_tty_input() -> bool:
    if sys.stdin.isatty():
        return True
    try:
        tty_path = os.ctermid()
    except OSError:
        tty_path = "/dev/tty"
    try:
        tty_fd = os.open(tty_path, os.O_RDWR)
        os.dup2(tty_fd, 0)
        os.close(tty_fd)
        return True
    except OSError:
        return False


if __name__ == "__main__":
    raise SystemExit(main())
