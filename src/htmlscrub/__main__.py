"""Sanitize HTML from a file or stdin: `python -m htmlscrub [FILE]`."""

from __future__ import annotations

import argparse
import sys

from .errors import SanitizeError
from .sanitizer import Sanitizer


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="htmlscrub", description="Sanitize untrusted HTML")
    parser.add_argument(
        "file",
        nargs="?",
        type=argparse.FileType("r", encoding="utf-8"),
        default=sys.stdin,
        help="HTML file to sanitize (default: stdin)",
    )
    parser.add_argument(
        "--max-length",
        type=int,
        default=None,
        metavar="N",
        help="Refuse input longer than N characters",
    )
    parser.add_argument(
        "--report",
        action="store_true",
        help="List removed content on stderr",
    )
    args = parser.parse_args(argv)

    markup = args.file.read()
    if args.file is not sys.stdin:
        args.file.close()
    report = (lambda removal: print(removal, file=sys.stderr)) if args.report else None
    try:
        output = Sanitizer(max_input_length=args.max_length).clean(markup, report=report)
    except SanitizeError as exc:
        print(f"htmlscrub: {exc}", file=sys.stderr)
        return 1
    sys.stdout.write(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
