from __future__ import annotations
import os
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

from doctrim.common.status import StatusReporter
from doctrim.common.trim_result import TrimError, TrimErrorKind
from doctrim.config.trimconfig import TRIM_SUFFIX

PathLike = Union[str, os.PathLike]


def validate_input_path(path: PathLike, extension: str, reporter: StatusReporter) -> Path:
    """Check the source exists and carries `extension` (case-insensitive); raise INPUT otherwise."""
    src = Path(path)
    if not src.is_file():
        raise TrimError(TrimErrorKind.INPUT, f"Input file not found: {src}")
    if src.suffix.lower() != extension.lower():
        raise TrimError(
            TrimErrorKind.INPUT,
            f"Expected a {extension} file, got '{src.suffix or '(no extension)'}': {src}",
        )
    reporter.info("Found a valid document.", stage="input", path=src)
    return src


def default_output_path(src: Path, suffix: str = TRIM_SUFFIX) -> Path:
    """report.pdf -> report_trimmed.pdf, in the same directory as the source."""
    return src.with_name(f"{src.stem}{suffix}{src.suffix}")


def resolve_output_path(src: Path, output: Optional[PathLike], reporter: StatusReporter) -> Path:
    if output is not None:
        return Path(output)
    dest = default_output_path(src)
    reporter.warning(f"No output path given; writing to {dest}", stage="output", path=dest)
    return dest


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


def _match_output_mode(tmp: Path, dest: Path) -> None:
    """mkstemp files are 0600; give tmp the mode a plain open() of dest would have."""
    if dest.exists():
        shutil.copymode(dest, tmp)
    else:
        os.chmod(tmp, 0o666 & ~_current_umask())


@contextmanager
def staged_output(dest: Path) -> Iterator[Path]:
    """Yield a temp path beside `dest`; move it over `dest` only if the block completes.

    On any exception the temp file is removed and `dest` is left as it was.
    """
    dest.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{dest.stem}.", suffix=dest.suffix, dir=str(dest.parent))
    os.close(fd)
    tmp = Path(tmp_name)
    try:
        yield tmp
        _match_output_mode(tmp, dest)
        os.replace(tmp, dest)
    finally:
        if tmp.exists():
            tmp.unlink()


@contextmanager
def direct_output(dest: Path, reporter: StatusReporter) -> Iterator[Path]:
    """Delete any existing `dest`, then let the block write it in place.

    A failed write removes the partial file, so nothing is left at `dest`.
    """
    dest.parent.mkdir(parents=True, exist_ok=True)
    if dest.exists():
        reporter.warning("Output file exists and is being overwritten.", stage="output", path=dest)
        dest.unlink()
    try:
        yield dest
    except BaseException:
        if dest.exists():
            dest.unlink()
        raise
