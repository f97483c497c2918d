"""Progress and diagnostic sinks handed to the loader."""
import logging
from typing import List, Optional

logger = logging.getLogger(__name__)


def format_bytes(count: int) -> str:
    """Human readable byte count, e.g. ``"1.5 MB"``."""
    if count < 1024:
        return f"{count} B"
    kilobytes = count / 1024
    if kilobytes < 100:
        return f"{kilobytes:.1f} KB"
    if kilobytes < 1024:
        return f"{kilobytes:.0f} KB"
    megabytes = kilobytes / 1024
    if megabytes < 100:
        return f"{megabytes:.1f} MB"
    return f"{megabytes:.0f} MB"


class NullProgress:
    """Progress sink that records state but reports nothing."""

    def __init__(self):
        self.title = ""
        self.total_work = 0
        self.worked = 0
        self.label: Optional[str] = None
        self.finished = False
        self._canceled = False

    def set_title(self, title: str) -> None:
        self.title = title

    def set_total_work(self, units: int) -> None:
        self.total_work = units

    def set_worked(self, units: int, label: Optional[str] = None) -> None:
        self.worked = units
        if label is not None:
            self.label = label

    def is_canceled(self) -> bool:
        return self._canceled

    def cancel(self) -> None:
        """Request cancellation; observed by the loader on its next fragment."""
        self._canceled = True

    def done(self) -> None:
        self.finished = True


class LoggingProgress(NullProgress):
    """Progress sink that reports through the logging module."""

    def __init__(self, log: logging.Logger = logger, step_percent: int = 10):
        super().__init__()
        self._log = log
        self._step = step_percent
        self._last_percent = -step_percent

    def set_title(self, title: str) -> None:
        super().set_title(title)
        self._log.info(title)

    def set_worked(self, units: int, label: Optional[str] = None) -> None:
        super().set_worked(units, label)
        if not self.total_work:
            return
        percent = int(units * 100 / self.total_work)
        if percent >= self._last_percent + self._step or percent < self._last_percent:
            self._last_percent = percent
            self._log.info("%s %d%%%s", self.title, percent, f" ({label})" if label else "")
        else:
            self._log.debug("%s %d/%d", self.title, units, self.total_work)

    def done(self) -> None:
        if not self.finished:
            self._log.info("%s done", self.title or "Progress")
        super().done()


class ConsoleDiagnostics:
    """Diagnostic sink for user-visible failures."""

    def __init__(self, log: logging.Logger = logger):
        self._log = log
        self.messages: List[str] = []

    def error(self, message: str) -> None:
        self.messages.append(message)
        self._log.error(message)
