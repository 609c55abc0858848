"""
Centralized configuration: environment variables, paths, and scheduler constants.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple

_log = logging.getLogger(__name__)

DATA_DIR = Path(os.getenv("DATA_DIR", "./data")).resolve()
DATA_DIR.mkdir(parents=True, exist_ok=True)
SETTINGS_PATH = DATA_DIR / "settings.json"

# Shipped default target; refused by start() until replaced.
PLACEHOLDER_TARGET = "mc.example.com"
DEFAULT_AGENT_NAME = os.getenv("AGENT_NAME", "HomeboundBot").strip() or "HomeboundBot"
DEFAULT_HOME_X = int(os.getenv("HOME_X", "0"))
DEFAULT_HOME_Y = int(os.getenv("HOME_Y", "64"))
DEFAULT_HOME_Z = int(os.getenv("HOME_Z", "0"))

WORLD_PORT = int(os.getenv("WORLD_PORT", "25565"))
WORLD_POLL_SECONDS = float(os.getenv("WORLD_POLL_SECONDS", "0.5"))
WORLD_HTTP_TIMEOUT_SECONDS = float(os.getenv("WORLD_HTTP_TIMEOUT_SECONDS", "10"))

LOG_CAPACITY = 100
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"

ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "").strip()

# Time-of-day ticks (0..23999)
NIGHT_START = 13000
NIGHT_END = 23000

BACKEND_VERSION = "1.0.0"


@dataclass(frozen=True)
class Timings:
    """All delays used by the schedulers, in seconds."""

    connect_timeout: float = 10.0
    post_spawn_check: float = 5.0
    boundary_interval: float = 1.0
    wander_delay_min: float = 5.0
    wander_delay_max: float = 8.0
    wander_backoff: float = 3.0
    control_release: float = 1.0
    watchdog_interval: float = 10.0
    watchdog_starvation: float = 8.0
    rest_check_interval: float = 2.0
    wake_cascade: Tuple[float, ...] = field(default=(0.0, 0.5, 1.5, 3.0))
    wake_retry_limit: int = 5
    wake_retry_base: float = 0.5
    wake_retry_step: float = 0.3
    rest_search_radius: int = 10
    rest_approach_range: int = 1

    def scaled(self, factor: float) -> "Timings":
        """Return a copy with every delay multiplied by ``factor``."""
        return Timings(
            connect_timeout=self.connect_timeout * factor,
            post_spawn_check=self.post_spawn_check * factor,
            boundary_interval=self.boundary_interval * factor,
            wander_delay_min=self.wander_delay_min * factor,
            wander_delay_max=self.wander_delay_max * factor,
            wander_backoff=self.wander_backoff * factor,
            control_release=self.control_release * factor,
            watchdog_interval=self.watchdog_interval * factor,
            watchdog_starvation=self.watchdog_starvation * factor,
            rest_check_interval=self.rest_check_interval * factor,
            wake_cascade=tuple(o * factor for o in self.wake_cascade),
            wake_retry_limit=self.wake_retry_limit,
            wake_retry_base=self.wake_retry_base * factor,
            wake_retry_step=self.wake_retry_step * factor,
            rest_search_radius=self.rest_search_radius,
            rest_approach_range=self.rest_approach_range,
        )


DEFAULT_TIMINGS = Timings()


def validate_config() -> None:
    """Log warnings for missing/insecure configuration. Called once at startup."""
    if not ADMIN_PASSWORD:
        _log.warning(
            "ADMIN_PASSWORD is empty; /api/login will reject every attempt. "
            "Set ADMIN_PASSWORD env var to enable the dashboard login."
        )
    if not SETTINGS_PATH.exists():
        _log.info(
            "No saved settings at %s; starting with placeholder target '%s'.",
            SETTINGS_PATH, PLACEHOLDER_TARGET,
        )
    if WORLD_POLL_SECONDS <= 0:
        _log.warning("WORLD_POLL_SECONDS=%s is not positive; world sessions will spin.", WORLD_POLL_SECONDS)
