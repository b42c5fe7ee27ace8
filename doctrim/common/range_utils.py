"""
Range normalization shared by the PDF and EPUB trimmers.

Purpose: turn a caller-supplied (start, end) pair, either bound possibly None, into
inclusive bounds inside a document with `total` content units, or a rejection.

Notes:
- The index base is explicit: IndexBase.ONE for PDF page numbers (1..N),
  IndexBase.ZERO for EPUB spine positions (0..N-1).
- A range covering the whole document is rejected as a no-op request.
- No I/O and no logging here; callers report the outcome.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional, Union


class IndexBase(IntEnum):
    ZERO = 0
    ONE = 1


class RangeRejectReason(str, Enum):
    MISSING = "missing"
    NEGATIVE = "negative"
    BELOW_FIRST = "below_first"
    END_TOO_HIGH = "end_too_high"
    WHOLE_DOCUMENT = "whole_document"
    INVERTED = "inverted"
    EMPTY_DOCUMENT = "empty_document"


@dataclass(frozen=True)
class NormalizedRange:
    start: int
    end: int
    start_defaulted: bool = False
    end_defaulted: bool = False

    @property
    def defaulted(self) -> bool:
        return self.start_defaulted or self.end_defaulted

    @property
    def count(self) -> int:
        return self.end - self.start + 1

    def to_slice(self, base: IndexBase) -> slice:
        """Zero-based Python slice covering the inclusive range."""
        return slice(self.start - base, self.end - base + 1)


@dataclass(frozen=True)
class RangeRejection:
    reason: RangeRejectReason
    message: str


def first_index(base: IndexBase) -> int:
    return int(base)


def last_index(total: int, base: IndexBase) -> int:
    return total - 1 + int(base)


def normalize_range(
    start: Optional[int],
    end: Optional[int],
    total: int,
    base: IndexBase = IndexBase.ONE,
) -> Union[NormalizedRange, RangeRejection]:
    """Normalize a keep-range against a document of `total` units.

    Inputs
    - start, end: inclusive bounds in `base` convention; None means "from the first" / "to the last".
    - total: number of content units in the source document.
    - base: index convention of start/end.

    Returns
    - NormalizedRange on success, RangeRejection otherwise. Never raises for bad input.
    """
    if start is None and end is None:
        return RangeRejection(RangeRejectReason.MISSING, "Neither a start nor an end was given; nothing to trim.")

    if (start is not None and start < 0) or (end is not None and end < 0):
        return RangeRejection(RangeRejectReason.NEGATIVE, "Negative positions are not valid.")

    first = first_index(base)
    if total <= 0:
        return RangeRejection(RangeRejectReason.EMPTY_DOCUMENT, "The document has no content to trim.")
    last = last_index(total, base)

    if start is not None and start < first:
        return RangeRejection(
            RangeRejectReason.BELOW_FIRST,
            f"Start {start} is before the first position ({first}).",
        )

    start_defaulted = start is None
    end_defaulted = end is None
    lo = first if start is None else int(start)
    hi = last if end is None else int(end)

    if not end_defaulted and hi > last:
        return RangeRejection(
            RangeRejectReason.END_TOO_HIGH,
            f"End {hi} is past the last position ({last}); the document has {total} units.",
        )

    if lo == first and hi == last:
        return RangeRejection(
            RangeRejectReason.WHOLE_DOCUMENT,
            f"Range ({lo}, {hi}) is the entire document; nothing would be trimmed.",
        )

    if hi < lo:
        return RangeRejection(RangeRejectReason.INVERTED, f"End {hi} is less than start {lo}.")

    return NormalizedRange(lo, hi, start_defaulted, end_defaulted)
