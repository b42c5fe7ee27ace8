#!/usr/bin/env python3
"""
Trim Manager - command-line front end for the PDF and EPUB trimmers.

Subcommands:
1. pdf-keep    keep one inclusive page range (1-based)
2. pdf-remove  drop one or more page ranges (1-based)
3. epub-keep   keep one inclusive spine range (0-based)
4. info        show the page count of a PDF or the spine of an EPUB

Every run writes a CSV log (a_trimmanager.log) next to the input unless --log-dir is given.

Usage:
  python -m doctrim.trimmanager pdf-keep book.pdf --start 12 --end 340
  python -m doctrim.trimmanager pdf-remove book.pdf -o body.pdf --range 1-11 --range 341-
  python -m doctrim.trimmanager epub-keep book.epub --start 3 --end 41
"""

from __future__ import annotations
import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from doctrim.common.custom_logger import setup_global_logger
from doctrim.common.epubtools.trim_epub import keep_spine_range, list_spine
from doctrim.common.pdftools.trim_pdf import keep_page_range, pdf_page_count, remove_page_ranges
from doctrim.common.status import LoggingStatusReporter
from doctrim.common.trim_result import TrimError, TrimErrorKind, TrimResult
from doctrim.config.trimconfig import *

EXIT_CODES = {
    TrimErrorKind.INPUT: 2,
    TrimErrorKind.RANGE: 2,
    TrimErrorKind.STRUCTURAL: 3,
    TrimErrorKind.PERSISTENCE: 4,
}


def parse_range(text: str) -> Tuple[Optional[int], Optional[int]]:
    """'3-7' -> (3, 7); '9-' -> (9, None); '-2' -> (None, 2); '5' -> (5, 5)."""
    text = text.strip()
    if "-" not in text:
        try:
            page = int(text)
        except ValueError:
            raise argparse.ArgumentTypeError(f"invalid range '{text}'")
        return page, page
    lo, hi = text.split("-", 1)
    try:
        return (int(lo) if lo.strip() else None, int(hi) if hi.strip() else None)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid range '{text}'")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Trim PDF pages or EPUB spine items down to the content you need")
    parser.add_argument("--log-dir", type=str, default=LOG_DIR,
                        help="Directory for the CSV log. Defaults to the input file's directory")
    parser.add_argument("--log-level", type=str, default=LOG_LEVEL, help="Logging level (DEBUG, INFO, ...)")
    parser.add_argument("--no-color", action="store_true", help="Plain console output")
    sub = parser.add_subparsers(dest="command", required=True)

    keep = sub.add_parser("pdf-keep", help="Keep one inclusive page range (1-based)")
    keep.add_argument("input", help="Source PDF")
    keep.add_argument("-o", "--out", default=None, help=f"Output PDF. Defaults to <input_stem>{TRIM_SUFFIX}.pdf")
    keep.add_argument("--start", type=int, default=None, help="First page to keep")
    keep.add_argument("--end", type=int, default=None, help="Last page to keep")

    remove = sub.add_parser("pdf-remove", help="Remove page ranges (1-based)")
    remove.add_argument("input", help="Source PDF")
    remove.add_argument("-o", "--out", default=None, help=f"Output PDF. Defaults to <input_stem>{TRIM_SUFFIX}.pdf")
    remove.add_argument("--range", dest="ranges", type=parse_range, action="append", required=True,
                        help="Range to remove, e.g. 1-4, 200-, -3 (repeatable)")

    epub = sub.add_parser("epub-keep", help="Keep one inclusive spine range (0-based)")
    epub.add_argument("input", help="Source EPUB")
    epub.add_argument("-o", "--out", default=None, help=f"Output EPUB. Defaults to <input_stem>{TRIM_SUFFIX}.epub")
    epub.add_argument("--start", type=int, default=None, help="First spine position to keep")
    epub.add_argument("--end", type=int, default=None, help="Last spine position to keep")

    info = sub.add_parser("info", help="Show page count (PDF) or spine listing (EPUB)")
    info.add_argument("input", help="Source PDF or EPUB")
    return parser


def run_command(args: argparse.Namespace, reporter: LoggingStatusReporter) -> TrimResult:
    if args.command == "pdf-keep":
        return keep_page_range(args.input, args.out, args.start, args.end, reporter=reporter)
    if args.command == "pdf-remove":
        return remove_page_ranges(args.input, args.out, args.ranges, reporter=reporter)
    if args.command == "epub-keep":
        return keep_spine_range(args.input, args.out, args.start, args.end, reporter=reporter)
    raise ValueError(f"Unknown command '{args.command}'")


def show_info(path: Path, logger) -> int:
    try:
        if path.suffix.lower() == PDF_EXTENSION:
            logger.info(f"{path.name}: {pdf_page_count(path)} pages (numbered from 1)")
            return 0
        items = list_spine(path)
    except TrimError as e:
        logger.error(e.message, extra={"Stage": e.kind.value, "Path": str(path)})
        return EXIT_CODES[e.kind]
    logger.info(f"{path.name}: {len(items)} spine items (numbered from 0)")
    for item in items:
        linear = "" if item.linear else " (non-linear)"
        logger.info(f"  [{item.index}] {item.idref} -> {item.href or '?'}{linear}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    input_path = Path(args.input)
    log_dir = Path(args.log_dir) if args.log_dir else input_path.resolve().parent

    script_base = os.path.splitext(os.path.basename(__file__))[0]
    logger = setup_global_logger(
        script_name=script_base,
        cwd=log_dir,
        log_level=args.log_level,
        headers=LOG_HEADER,
        color=COLOR_CONSOLE and not args.no_color,
    )

    if args.command == "info":
        return show_info(input_path, logger)

    logger.info(f"Trim Manager starting: {args.command} {input_path}")
    result = run_command(args, LoggingStatusReporter(logger))
    if result:
        logger.info(f"Wrote {result.output_path} ({result.kept} of {result.total} kept)")
        return 0
    logger.error(f"Trim failed ({result.kind.value}): {result.message}")
    return EXIT_CODES[result.kind]


if __name__ == "__main__":
    sys.exit(main())
