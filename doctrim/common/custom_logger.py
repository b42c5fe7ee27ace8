import os
import inspect
import logging
from pathlib import Path
from typing import List, Tuple, Union
import sys

from doctrim.common.status import LOGGER_NAME
from doctrim.config.trimconfig import COLOR_CONSOLE, LOG_HEADER, LOG_LEVEL

############### LOGGING ###############

# RGB foregrounds per level
LEVEL_COLORS = {
    logging.DEBUG: (229, 229, 229),     # grey
    logging.INFO: (214, 230, 255),      # light blue
    logging.WARNING: (249, 227, 182),   # yellow
    logging.ERROR: (234, 0, 30),        # red
    logging.CRITICAL: (234, 0, 30),
}
ANSI_RESET = "\u001b[0m"


def rgb_foreground(r: int, g: int, b: int) -> str:
    return f"\u001b[38;2;{r};{g};{b}m"


class ColorFormatter(logging.Formatter):
    """Console formatter that wraps each line in a 24-bit ANSI color chosen by level."""

    def format(self, record):
        text = super().format(record)
        color = LEVEL_COLORS.get(record.levelno)
        if color is None:
            return text
        return f"{rgb_foreground(*color)}{text}{ANSI_RESET}"


# One CSV row per record: Date, Level, Message, then one column per trim field
# (Stage, Path) read from the record's `extra` attributes.
class CSVFormatter(logging.Formatter):
    def __init__(self, columns, datefmt=None):
        super().__init__(datefmt=datefmt or '%m-%d %H:%M')
        self.extra_columns = [str(c) for c in columns[3:]]

    @staticmethod
    def _cell(value) -> str:
        # Tracebacks and multi-line messages must stay on one CSV line
        text = '' if value is None else str(value)
        text = ' '.join(text.splitlines())
        return '"' + text.replace('"', '""') + '"'

    def format(self, record):
        message = record.getMessage()
        if record.exc_info:
            message = f"{message} | {self.formatException(record.exc_info)}"
        cells = [self.formatTime(record, self.datefmt), record.levelname, message]
        cells.extend(getattr(record, col, '') for col in self.extra_columns)
        return ','.join(self._cell(c) for c in cells)


def _check_headers(headers) -> None:
    """CSV header must open with Date, Level, Message; Stage/Path and friends follow."""
    if not isinstance(headers, (list, tuple)) or len(headers) < 3:
        raise ValueError("headers must be a list/tuple starting with Date, Level, Message")
    lead = tuple(str(h).strip().lower() for h in headers[:3])
    if lead not in (('date', 'level', 'message'), ('date', 'level', 'msg')):
        raise ValueError(f"headers must start with Date, Level, Message; got {list(headers[:3])}")


# --- Global Logging Setup ---
def setup_global_logger(
    script_name: str = None,
    cwd: Path = None,
    log_level: Union[int, str] = LOG_LEVEL,
    headers: Union[List[str], Tuple[str, ...]] = None,
    logger_name: str = LOGGER_NAME,
    color: bool = COLOR_CONSOLE,
) -> logging.Logger:
    """
    Configure the 'doctrim' logger for one trim run.

    Console gets colored `LEVEL: message` lines. The CSV log `a_<script>.log` in `cwd`
    is truncated each run and records every level; its columns default to LOG_HEADER,
    so trim status events land with their Stage and Path filled in.
    """
    if cwd is None:
        raise ValueError("setup_global_logger needs 'cwd', the directory for the CSV log")
    headers = list(LOG_HEADER if headers is None else headers)
    _check_headers(headers)
    if isinstance(log_level, str):
        log_level = getattr(logging, log_level.upper(), logging.INFO)
    if script_name is None:
        script_name = os.path.basename(inspect.stack()[1].filename)
    log_path = Path(cwd) / f"a_{os.path.splitext(script_name)[0]}.log"

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_fmt = '%(levelname)s: %(message)s'
    console_handler.setFormatter(ColorFormatter(console_fmt) if color else logging.Formatter(console_fmt))

    # Header goes through the handler's stream; reopening the file would truncate it again
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_path, mode='w', encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(CSVFormatter(headers))
    file_handler.stream.write(','.join(headers) + '\n')
    file_handler.stream.flush()

    logger = logging.getLogger(logger_name)
    # Re-running setup in one process must not stack handlers
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()
    logger.setLevel(log_level)
    logger.propagate = False
    logger.addHandler(console_handler)
    logger.addHandler(file_handler)

    logger.debug(f"Logger initialized: {log_path}")
    return logger
