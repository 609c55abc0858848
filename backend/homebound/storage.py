"""
Settings and console-log storage.

Settings are persisted to a JSON file under DATA_DIR so a restart keeps the
last target; the console log is an in-memory ring of the most recent entries.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from homebound.config import (
    DEFAULT_AGENT_NAME, DEFAULT_HOME_X, DEFAULT_HOME_Y, DEFAULT_HOME_Z,
    LOG_CAPACITY, PLACEHOLDER_TARGET, SETTINGS_PATH,
)
from homebound.models import Coordinate, LogEntry, Settings
from homebound.utils import read_json, write_json_atomic

_log = logging.getLogger(__name__)


def default_settings() -> Settings:
    return Settings(
        connect_target=PLACEHOLDER_TARGET,
        agent_name=DEFAULT_AGENT_NAME,
        home=Coordinate(DEFAULT_HOME_X, DEFAULT_HOME_Y, DEFAULT_HOME_Z),
    )


class Storage:
    def __init__(self, settings_path: Optional[Path] = SETTINGS_PATH, log_capacity: int = LOG_CAPACITY) -> None:
        self._settings_path = settings_path
        self._settings = default_settings()
        self._log: List[LogEntry] = []
        self._log_max = log_capacity
        self._load_settings()

    # --- Settings ---

    def get_settings(self) -> Settings:
        return self._settings

    def update_settings(self, settings: Settings) -> Settings:
        self._settings = settings
        self._save_settings()
        return self._settings

    def _load_settings(self) -> None:
        if self._settings_path is None:
            return
        try:
            data = read_json(self._settings_path)
            if data:
                self._settings = Settings.from_dict(data)
        except Exception:
            _log.warning("Failed to load settings from %s", self._settings_path, exc_info=True)

    def _save_settings(self) -> None:
        if self._settings_path is None:
            return
        try:
            write_json_atomic(self._settings_path, self._settings.to_dict())
        except Exception:
            _log.warning("Failed to save settings to %s", self._settings_path, exc_info=True)

    # --- Console log ---

    def get_log(self) -> List[LogEntry]:
        return list(self._log)

    def append_log(self, entry: LogEntry) -> None:
        self._log.append(entry)
        if len(self._log) > self._log_max:
            del self._log[: len(self._log) - self._log_max]

    def clear_log(self) -> None:
        self._log = []
