"""Bounded in-memory activity log.

:class:`ActivityLog` is a :class:`logging.Handler` that keeps the most
recent records emitted under the ``reauth`` logger and notifies listeners
as they arrive. It lets an embedding application show what the
re-authentication core did (logins, retries, aborted cycles) without
parsing log files.

Example::

    log = install_activity_log()
    log.add_listener(lambda entry: print(entry))
    ...
    for entry in log.entries():
        print(entry.level, entry.message)
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

logger = logging.getLogger(__name__)

MAX_ENTRIES = 1000


@dataclass(frozen=True)
class ActivityEntry:
    """One formatted log record."""

    timestamp: datetime
    level: str
    logger_name: str
    message: str

    def __str__(self) -> str:
        return f"[{self.timestamp:%H:%M:%S}] [{self.level}] {self.message}"


ActivityListener = Callable[[ActivityEntry], None]


class ActivityLog(logging.Handler):
    """Keep the last *max_entries* records and fan them out to listeners.

    Listener exceptions are reported through this module's logger and never
    reach the code that emitted the record.
    """

    def __init__(self, max_entries: int = MAX_ENTRIES, level: int = logging.DEBUG) -> None:
        super().__init__(level)
        self._entries: deque[ActivityEntry] = deque(maxlen=max_entries)
        self._listeners: list[ActivityListener] = []
        self._entries_lock = threading.Lock()
        self._notifying = threading.local()

    def emit(self, record: logging.LogRecord) -> None:
        # A failing listener logs through reauth.activity; don't recurse.
        if getattr(self._notifying, "active", False):
            return
        try:
            entry = ActivityEntry(
                timestamp=datetime.fromtimestamp(record.created),
                level=record.levelname,
                logger_name=record.name,
                message=record.getMessage(),
            )
        except Exception:
            self.handleError(record)
            return

        with self._entries_lock:
            self._entries.append(entry)
            listeners = list(self._listeners)

        self._notifying.active = True
        try:
            for listener in listeners:
                try:
                    listener(entry)
                except Exception:
                    logger.exception("Activity listener %r failed", listener)
        finally:
            self._notifying.active = False

    def entries(self, level: Optional[int] = None) -> list[ActivityEntry]:
        """Return a snapshot of the entries, oldest first, optionally from *level* up."""
        with self._entries_lock:
            entries = list(self._entries)
        if level is None:
            return entries
        return [e for e in entries if logging.getLevelName(e.level) >= level]

    def clear(self) -> None:
        with self._entries_lock:
            self._entries.clear()

    def add_listener(self, listener: ActivityListener) -> None:
        with self._entries_lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: ActivityListener) -> None:
        with self._entries_lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def __len__(self) -> int:
        return len(self._entries)


def install_activity_log(
    max_entries: int = MAX_ENTRIES,
    logger_name: str = "reauth",
    level: int = logging.DEBUG,
) -> ActivityLog:
    """Attach a new :class:`ActivityLog` to *logger_name* and return it.

    The logger's level is lowered to *level* if it is not already as verbose.
    """
    handler = ActivityLog(max_entries=max_entries, level=level)
    target = logging.getLogger(logger_name)
    target.addHandler(handler)
    if target.level == logging.NOTSET or target.level > level:
        target.setLevel(level)
    return handler
