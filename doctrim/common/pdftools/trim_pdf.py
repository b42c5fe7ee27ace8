"""
PDF page trimmer using PyMuPDF (fitz).

Purpose: keep one contiguous page range of a PDF, or remove a set of page ranges, and
write the result to a new file. The source PDF is never modified.

Notes:
- Page numbers are 1-based inclusive everywhere in this module's public API
  (e.g., (5, 10) means pages 5..10).
- When no output path is given, the result goes to <stem>_trimmed.pdf beside the input.
- We copy kept pages to a new document rather than deleting pages in place.
- The output is written to a temp file and moved into place, so a failed save leaves no
  partial PDF behind.
"""

from __future__ import annotations
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import fitz  # PyMuPDF

from doctrim.common.file_utils import PathLike, resolve_output_path, staged_output, validate_input_path
from doctrim.common.range_utils import IndexBase, NormalizedRange, RangeRejection, normalize_range
from doctrim.common.status import StatusReporter, resolve_reporter
from doctrim.common.trim_result import TrimError, TrimErrorKind, TrimResult
from doctrim.config.trimconfig import *

PageRange = Tuple[Optional[int], Optional[int]]


def _open_pdf(src: Path) -> fitz.Document:
    try:
        return fitz.open(str(src))
    except RuntimeError as e:  # fitz.FileDataError and friends
        raise TrimError(TrimErrorKind.INPUT, f"Could not open PDF {src}: {e}") from e


def pdf_page_count(path: PathLike) -> int:
    """Number of pages in a PDF; handy for choosing a range before trimming."""
    doc = _open_pdf(Path(path))
    try:
        return doc.page_count
    finally:
        doc.close()


def _contiguous_runs(indices: Sequence[int]) -> List[Tuple[int, int]]:
    """[0, 1, 2, 5, 6] -> [(0, 2), (5, 6)]. Input must be sorted ascending."""
    runs: List[Tuple[int, int]] = []
    for i in indices:
        if runs and runs[-1][1] == i - 1:
            runs[-1] = (runs[-1][0], i)
        else:
            runs.append((i, i))
    return runs


def _carry_over_toc(doc: fitz.Document, out: fitz.Document, keep_indices: Sequence[int], reporter: StatusReporter) -> None:
    """Copy bookmarks that target kept pages, renumbered to their new positions."""
    toc = doc.get_toc(simple=True)  # [[level, title, page], ...]
    if not toc:
        return
    new_page = {old + 1: new + 1 for new, old in enumerate(keep_indices)}
    remapped = []
    prev_level = 0
    for level, title, page in toc:
        if page not in new_page:
            continue
        # set_toc wants level 1 first and no jumps of more than one level
        lvl = max(1, min(int(level), prev_level + 1))
        remapped.append([lvl, title, new_page[page]])
        prev_level = lvl
    if not remapped:
        return
    try:
        out.set_toc(remapped)
        reporter.info(f"Kept {len(remapped)} of {len(toc)} bookmarks.", stage="toc")
    except (ValueError, RuntimeError) as e:
        reporter.warning(f"Could not copy bookmarks: {e}", stage="toc")


def _write_pages(
    doc: fitz.Document,
    keep_indices: Sequence[int],
    dest: Path,
    reporter: StatusReporter,
) -> None:
    """Copy pages (0-based indices) from doc into a new PDF saved at dest."""
    out = fitz.open()
    try:
        for lo, hi in _contiguous_runs(keep_indices):
            out.insert_pdf(doc, from_page=lo, to_page=hi)
        if PRESERVE_PDF_TOC:
            _carry_over_toc(doc, out, keep_indices, reporter)
        reporter.info(f"Saving {out.page_count} pages.", stage="save", path=dest)
        try:
            with staged_output(dest) as tmp:
                out.save(str(tmp), **PDF_SAVE_OPTIONS)
        except (OSError, RuntimeError, ValueError) as e:
            raise TrimError(TrimErrorKind.PERSISTENCE, f"Error saving {dest}: \"{e}\"") from e
    finally:
        out.close()


def _require_range(start, end, total: int, reporter: StatusReporter) -> NormalizedRange:
    result = normalize_range(start, end, total, IndexBase.ONE)
    if isinstance(result, RangeRejection):
        raise TrimError(TrimErrorKind.RANGE, result.message)
    if result.start_defaulted:
        reporter.warning("Start page not specified; starting at page 1.", stage="range")
    if result.end_defaulted:
        reporter.info(f"End page not specified; using the last page, {result.end}.", stage="range")
    if result.defaulted:
        reporter.warning(f"Inclusive range is ({result.start}, {result.end}).", stage="range")
    return result


def keep_page_range(
    input_pdf_path: PathLike,
    output_pdf_path: Optional[PathLike] = None,
    start: Optional[int] = None,
    end: Optional[int] = None,
    reporter: Optional[StatusReporter] = None,
) -> TrimResult:
    """Write a new PDF holding only pages start..end (1-based, inclusive).

    Inputs
    - input_pdf_path: existing .pdf file.
    - output_pdf_path: destination; None -> <stem>_trimmed.pdf beside the input.
    - start, end: inclusive page numbers; either may be None (first/last page) but not both.
    - reporter: status observer; defaults to logging on the 'doctrim' logger.

    Returns
    - TrimResult; falsy with kind INPUT/RANGE/PERSISTENCE when nothing was written.
    """
    reporter = resolve_reporter(reporter)
    total = 0
    try:
        src = validate_input_path(input_pdf_path, PDF_EXTENSION, reporter)
        dest = resolve_output_path(src, output_pdf_path, reporter)
        reporter.info("Loading PDF document.", stage="open", path=src)
        doc = _open_pdf(src)
        try:
            total = doc.page_count
            rng = _require_range(start, end, total, reporter)
            keep_indices = list(range(rng.start - 1, rng.end))
            _write_pages(doc, keep_indices, dest, reporter)
        finally:
            doc.close()
    except TrimError as e:
        reporter.error(e.message, stage=e.kind.value, path=input_pdf_path)
        return TrimResult.failure(e, total)

    reporter.info(f"input={total} keep={rng.count} pages {rng.start}-{rng.end} -> {dest}", stage="done", path=dest)
    return TrimResult.success(dest, total, rng.count)


# ---------- remove-ranges ----------
def _is_invalid_range(rng: PageRange, total: int) -> bool:
    lo, hi = rng
    if lo is None and hi is None:
        return True
    if lo is not None and hi is not None and lo < 0 and hi < 0:
        return True
    if lo == 0:
        return True
    return hi is not None and hi > total


def _is_useless_range(rng: PageRange, total: int) -> bool:
    """A range that alone would remove every page."""
    lo, hi = rng
    lo = 1 if lo is None else lo
    hi = total if hi is None else hi
    return lo == 1 and hi == total


def _build_removal_mask(ranges: Sequence[PageRange], total: int) -> List[bool]:
    """Boolean mask indexed by 1-based page number (slot 0 unused); True = remove."""
    remove = [False] * (total + 1)
    for lo, hi in ranges:
        first = max(1, 1 if lo is None else lo)
        last = min(total, total if hi is None else hi)
        for page in range(first, last + 1):
            remove[page] = True
    return remove


def remove_page_ranges(
    input_pdf_path: PathLike,
    output_pdf_path: Optional[PathLike],
    remove_ranges: Sequence[PageRange],
    reporter: Optional[StatusReporter] = None,
) -> TrimResult:
    """Write a new PDF with every page in `remove_ranges` dropped.

    Inputs
    - input_pdf_path: existing .pdf file.
    - output_pdf_path: destination; None -> <stem>_trimmed.pdf beside the input.
    - remove_ranges: 1-based inclusive ranges, e.g. [(1, 2), (9, 10)]. A None start means
      page 1, a None end means the last page. Bounds are clamped to the document.
    - reporter: status observer.

    Returns
    - TrimResult. The whole batch is rejected (RANGE) if any range is invalid, if any
      single range spans the whole document, or if the union removes every page.
    """
    reporter = resolve_reporter(reporter)
    ranges = [tuple(r) for r in remove_ranges]
    total = 0
    try:
        src = validate_input_path(input_pdf_path, PDF_EXTENSION, reporter)
        dest = resolve_output_path(src, output_pdf_path, reporter)
        reporter.info("Loading PDF document.", stage="open", path=src)
        doc = _open_pdf(src)
        try:
            total = doc.page_count
            if not ranges:
                raise TrimError(TrimErrorKind.RANGE, "No ranges to remove were given.")

            invalid = [r for r in ranges if _is_invalid_range(r, total)]
            if invalid:
                raise TrimError(TrimErrorKind.RANGE, f"One or more invalid ranges provided: {invalid}")

            useless = [r for r in ranges if _is_useless_range(r, total)]
            if useless:
                raise TrimError(TrimErrorKind.RANGE, f"Trying to remove all {total} pages is invalid: {useless}")

            remove = _build_removal_mask(ranges, total)
            keep_indices = [p - 1 for p in range(1, total + 1) if not remove[p]]
            if not keep_indices:
                raise TrimError(TrimErrorKind.RANGE, "All pages would be removed; adjust the ranges.")

            reporter.info(f"Removing {total - len(keep_indices)} pages in {len(ranges)} ranges.", stage="range")
            _write_pages(doc, keep_indices, dest, reporter)
        finally:
            doc.close()
    except TrimError as e:
        reporter.error(e.message, stage=e.kind.value, path=input_pdf_path)
        return TrimResult.failure(e, total)

    reporter.info(f"input={total} keep={len(keep_indices)} ({len(ranges)} ranges removed) -> {dest}", stage="done", path=dest)
    return TrimResult.success(dest, total, len(keep_indices))
