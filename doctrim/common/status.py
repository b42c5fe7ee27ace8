from __future__ import annotations
import logging
from pathlib import Path
from typing import Optional, Union

"""Status reporting for trim operations.

Trimmers emit human-readable progress through a StatusReporter. Reporters only observe:
nothing they do changes a trim decision or its result. The base class is a no-op so the
core runs with no reporter at all.
"""

LOGGER_NAME = "doctrim"


class StatusReporter:
    """No-op reporter. Subclass and override info/warning/error."""

    def info(self, message: str, stage: str = "", path: Union[str, Path, None] = None) -> None:
        pass

    def warning(self, message: str, stage: str = "", path: Union[str, Path, None] = None) -> None:
        pass

    def error(self, message: str, stage: str = "", path: Union[str, Path, None] = None) -> None:
        pass


class LoggingStatusReporter(StatusReporter):
    """Forward status events to a logger, filling the Stage/Path CSV columns via `extra`."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(LOGGER_NAME)

    def _extra(self, stage: str, path) -> dict:
        return {"Stage": stage, "Path": "" if path is None else str(path)}

    def info(self, message, stage="", path=None):
        self.logger.info(message, extra=self._extra(stage, path))

    def warning(self, message, stage="", path=None):
        self.logger.warning(message, extra=self._extra(stage, path))

    def error(self, message, stage="", path=None):
        self.logger.error(message, extra=self._extra(stage, path))


def resolve_reporter(reporter: Optional[StatusReporter]) -> StatusReporter:
    return reporter if reporter is not None else LoggingStatusReporter()
