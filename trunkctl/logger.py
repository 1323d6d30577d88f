"""Thread-safe application log written to a file and to the console."""

from __future__ import annotations

import sys
import threading
from datetime import datetime
from enum import IntEnum
from pathlib import Path
from typing import Callable, TextIO

_MONTHS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

LOG_START_MARKER = "[Log start]\n"


class LogLevel(IntEnum):
    """Severity of a log message."""

    INFO = 0
    DEBUG = 1
    WARNING = 2
    CRITICAL = 3
    FATAL = 4

    @property
    def label(self) -> str:
        return self.name.capitalize()


def default_log_path() -> Path:
    """Location of the log file when none is given."""
    return Path.home() / ".config" / "trunkctl" / "trunkctl.log"


def _timestamp(now: datetime) -> str:
    return (
        f"{now.day}/{_MONTHS[now.month - 1]}/{now.year} "
        f"{now:%H:%M:%S}.{now.microsecond // 1000:03d}"
    )


class Logger:
    """Writes timestamped messages to stdout/stderr, a file and listeners.

    Listeners receive every formatted line unless console logging is on.
    """

    def __init__(self, path: str | Path | None = None, console_log: bool = False) -> None:
        self.path = Path(path) if path is not None else default_log_path()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            self.path.write_text(LOG_START_MARKER, encoding="utf-8")
        self._file: TextIO | None = self.path.open("a", encoding="utf-8")
        self._console_log = console_log
        self._listeners: list[Callable[[str], None]] = []
        self._lock = threading.Lock()

    @property
    def console_log(self) -> bool:
        return self._console_log

    def set_console_log(self, value: bool) -> None:
        """Turn console-only mode on or off; when on, listeners are not notified."""
        self._console_log = bool(value)

    def add_listener(self, callback: Callable[[str], None]) -> None:
        """Register a callable that receives each formatted log line."""
        self._listeners.append(callback)

    def log(self, level: LogLevel | int, message: str) -> str:
        """Log a message and return the formatted line."""
        level = LogLevel(level)
        with self._lock:
            text = f"[{_timestamp(datetime.now())}] [{level.label}] {message}"
            stream = sys.stderr if level >= LogLevel.CRITICAL else sys.stdout
            print(text, file=stream, flush=True)
            if self._file is not None:
                self._file.write(text + "\n")
                self._file.flush()
            notify = not self._console_log
            listeners = list(self._listeners)
        if notify:
            for callback in listeners:
                callback(text)
        return text

    def close(self) -> None:
        """Close the log file; later messages go to the console only."""
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None

    def __enter__(self) -> "Logger":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()