"""
Console: the user-facing event log.

Every entry is appended to storage, mirrored to the Python logger, and pushed
to all observers as a ``console`` message.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from homebound.models import LogEntry, Severity
from homebound.utils import clock_stamp

_log = logging.getLogger("homebound.console")

_LEVELS = {"info": logging.INFO, "warning": logging.WARNING, "error": logging.ERROR}

Publish = Callable[[Dict[str, Any]], Any]


class Console:
    def __init__(self, storage, publish: Optional[Publish] = None) -> None:
        self._storage = storage
        self._publish = publish

    def add(self, message: str, severity: Severity = "info") -> LogEntry:
        entry = LogEntry(timestamp=clock_stamp(), message=message, severity=severity)
        _log.log(_LEVELS.get(severity, logging.INFO), message)
        try:
            self._storage.append_log(entry)
        except Exception:
            _log.warning("Failed to store console entry", exc_info=True)
        self._emit({"type": "console", "data": {
            "timestamp": entry.timestamp, "message": entry.message, "severity": entry.severity,
        }})
        return entry

    def info(self, message: str) -> LogEntry:
        return self.add(message, "info")

    def warning(self, message: str) -> LogEntry:
        return self.add(message, "warning")

    def error(self, message: str) -> LogEntry:
        return self.add(message, "error")

    def clear(self) -> None:
        self._storage.clear_log()
        self._emit({"type": "consoleClear"})

    def _emit(self, msg: Dict[str, Any]) -> None:
        if self._publish is None:
            return
        try:
            self._publish(msg)
        except Exception:
            _log.debug("Console publish failed", exc_info=True)
