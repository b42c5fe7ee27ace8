from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

"""Result and error types shared by the PDF and EPUB trimmers.

Every trim entry point returns a TrimResult. Failures carry a TrimErrorKind so callers
branch on the kind instead of parsing messages or catching exception types.
"""


class TrimErrorKind(str, Enum):
    INPUT = "input"              # missing file, wrong extension
    RANGE = "range"              # absent/negative/out-of-bounds/whole-document/inverted range
    STRUCTURAL = "structural"    # malformed container (EPUB manifest wiring, unreadable archive)
    PERSISTENCE = "persistence"  # failure writing the output container


class TrimError(Exception):
    """Raised inside a trim operation; converted to a failed TrimResult at the entry point."""

    def __init__(self, kind: TrimErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


@dataclass
class TrimResult:
    output_path: Optional[Path] = None
    kind: Optional[TrimErrorKind] = None
    message: str = ""
    total: int = 0
    kept: int = 0

    @property
    def ok(self) -> bool:
        return self.kind is None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, output_path: Path, total: int, kept: int) -> "TrimResult":
        return cls(output_path=Path(output_path), total=total, kept=kept)

    @classmethod
    def failure(cls, error: TrimError, total: int = 0) -> "TrimResult":
        return cls(kind=error.kind, message=error.message, total=total)
