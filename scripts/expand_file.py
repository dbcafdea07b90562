"""Expand a rukt program and print the rendered output tokens."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from rukt import EngineError, expand_source, render
from rukt.values import kind_of


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("path", help="program file to expand, or '-' for stdin")
    parser.add_argument(
        "--recursion-limit",
        type=int,
        default=None,
        help="maximum frame depth (defaults to RUKT_RECURSION_LIMIT or 64)",
    )
    parser.add_argument("--exports", action="store_true", help="also print the root-level exports")
    parser.add_argument("--verbose", action="store_true", help="enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    source = sys.stdin.read() if args.path == "-" else Path(args.path).read_text(encoding="utf-8")
    try:
        result = expand_source(source, recursion_limit=args.recursion_limit)
    except EngineError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    print(result.render())
    if args.exports:
        for name, value in result.exports.items():
            if isinstance(value, tuple):
                print(f"{name} = {render(value)}")
            else:
                print(f"{name}: {kind_of(value).value}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
