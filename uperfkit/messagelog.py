"""Verbosity-filtered printing and a deduplicating error/warning log."""

from __future__ import annotations

import errno
import os
import sys
import threading
from dataclasses import dataclass
from enum import IntEnum
from typing import TextIO

NUM_ERR_STR = 256
ERR_STR_LEN = 512


class LogLevel(IntEnum):
    """Verbosity levels."""

    NONVERBOSE = 0
    VERBOSE = 2


class MessageType(IntEnum):
    """Kinds of logged message."""

    ERROR = 0
    QUIT = 1
    ABORT = 2
    INFO = 3
    DEBUG = 4
    WARN = 5


_log_level = LogLevel.NONVERBOSE


def set_log_level(level: LogLevel) -> None:
    """Set the verbosity above which printer() stays silent."""
    global _log_level
    _log_level = LogLevel(level)


def printer(level: LogLevel, msg_type: MessageType, text: str) -> None:
    """Write ``text`` to stdout if ``level`` is within the current verbosity."""
    if level <= _log_level:
        sys.stdout.write(text)


@dataclass
class LogEntry:
    """One distinct logged message and how often it was seen."""

    err: int
    msg_type: MessageType
    count: int
    text: str

    def _error_text(self) -> str:
        return " " if self.err == 0 else os.strerror(self.err)


class MessageLog:
    """Thread-safe log that merges repeated messages and flushes when full."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._lock = threading.RLock()
        self._entries: list[LogEntry] = []
        self._stream = stream

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def log(self, msg_type: MessageType, err: int, message: str | None) -> None:
        """Record a message; identical messages only bump their count.

        Messages carrying EINTR are ignored.
        """
        if message is None or err == errno.EINTR:
            return
        text = message[: ERR_STR_LEN - 2]
        with self._lock:
            if len(self._entries) >= NUM_ERR_STR:
                self.flush(self._stream)
            for entry in self._entries:
                if entry.text == text:
                    entry.count += 1
                    return
            self._entries.append(LogEntry(err, MessageType(msg_type), 1, text))

    def flush(self, stream: TextIO | None = None) -> None:
        """Print every recorded message to ``stream`` (stdout by default) and clear."""
        out = stream if stream is not None else sys.stdout
        with self._lock:
            for entry in self._entries:
                if not entry.text:
                    continue
                error_text = entry._error_text()
                if entry.count > 2:
                    kind = "Warnings" if entry.msg_type == MessageType.WARN else "Errors"
                    out.write(f"** {entry.count} {kind} {entry.text} {error_text}\n")
                else:
                    prefix = "** Warning: " if entry.msg_type == MessageType.WARN else "** "
                    out.write(f"{prefix}{entry.text} {error_text}\n")
            self._entries.clear()

    def flush_to_string(self) -> str:
        """Render every recorded message as text without clearing the log."""
        parts = []
        with self._lock:
            for entry in self._entries:
                if not entry.text:
                    continue
                error_text = entry._error_text()
                if entry.count > 2:
                    kind = "Warnings" if entry.msg_type == MessageType.WARN else "Errors"
                    parts.append(f"{entry.count} {kind}  {entry.text} {error_text}\n")
                else:
                    prefix = "Warning: " if entry.msg_type == MessageType.WARN else " "
                    parts.append(f"{prefix}{entry.text} {error_text}\n")
        return "".join(parts)