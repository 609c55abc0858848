"""
Connection lifecycle: Idle -> Connecting -> Active -> Idle.

``start()`` refuses empty or placeholder targets before any connection is
attempted. A connect timer rolls the attempt back if the world never confirms
spawn. Every failure path ends in ``rollback()``, which leaves RunState idle.
"""
from __future__ import annotations

import logging
from typing import Callable, List

from homebound.config import PLACEHOLDER_TARGET, Timings
from homebound.console import Console
from homebound.models import Phase, RunState
from homebound.scheduler import TaskGroup
from homebound.session import EventCallback, WorldSession

_log = logging.getLogger(__name__)

SessionFactory = Callable[[str, str, EventCallback], WorldSession]

_UNRESOLVABLE = ("ENOTFOUND", "Name or service not known", "getaddrinfo", "NameResolutionError",
                 "nodename nor servname", "Failed to resolve")
_TIMED_OUT = ("ETIMEDOUT", "timed out", "Timeout")
_REFUSED = ("ECONNREFUSED", "Connection refused", "actively refused")


def classify_error(message: str, target: str) -> List[str]:
    """Turn a low-level connection error into user-facing hints."""
    msg = message or ""
    if any(k in msg for k in _UNRESOLVABLE):
        return [
            f"Server '{target}' does not exist or cannot be reached.",
            "Please update settings with a valid server address.",
        ]
    if any(k in msg for k in _TIMED_OUT):
        return ["Connection timed out. Server may be offline or unreachable."]
    if any(k in msg for k in _REFUSED):
        return [f"Server '{target}' refused the connection. Check the address and port."]
    return []


class ConnectionLifecycle:
    def __init__(
        self,
        run: RunState,
        storage,
        console: Console,
        tasks: TaskGroup,
        timings: Timings,
        session_factory: SessionFactory,
        dispatch: EventCallback,
        notify: Callable[[], None],
        on_active: Callable[[], None],
        on_idle: Callable[[], None],
    ) -> None:
        self._run = run
        self._storage = storage
        self._console = console
        self._tasks = tasks
        self._timings = timings
        self._session_factory = session_factory
        self._dispatch = dispatch
        self._notify = notify
        self._on_active = on_active
        self._on_idle = on_idle

    def start(self) -> bool:
        if self._run.running:
            self._console.warning("Agent is already running")
            return False

        settings = self._storage.get_settings()
        self._run.settings = settings
        target = (settings.connect_target or "").strip()
        if not target:
            self._console.error("ERROR: Invalid server address. Please set a server address in settings.")
            self._notify()
            return False
        if target == PLACEHOLDER_TARGET:
            self._console.error(
                f"ERROR: Invalid server address. '{PLACEHOLDER_TARGET}' is only a placeholder; "
                "update settings with a real server address."
            )
            self._notify()
            return False

        self._run.running = True
        self._run.phase = Phase.CONNECTING
        self._notify()
        self._console.info(f"Starting agent with username {settings.agent_name}")
        self._console.info(f"Connecting to server {target}...")
        self._tasks.call_later("connect-timeout", self._timings.connect_timeout, self._on_connect_timeout)
        try:
            session = self._session_factory(target, settings.agent_name, self._dispatch)
            self._run.session = session
            session.open()
        except Exception as e:
            self.on_failed(str(e))
            return False
        return True

    def stop(self) -> None:
        if not self._run.running:
            self._console.info("Agent is already stopped")
            return
        self._console.info("Stopping agent and disconnecting from server...")
        session = self._run.session
        self._run.running = False
        self._run.phase = Phase.IDLE
        self._tasks.cancel_all()
        self._on_idle()
        if session is not None:
            try:
                session.set_goal(None)
                session.quit()
            except Exception as e:
                self._console.error(f"Error during session quit: {e}")
        self._run.session = None
        self._run.home = None
        self._notify()
        self._console.info("Agent stopped successfully")

    def on_spawned(self) -> None:
        self._tasks.cancel("connect-timeout")
        settings = self._run.settings or self._storage.get_settings()
        self._run.phase = Phase.ACTIVE
        self._run.home = settings.home
        home = self._run.home
        self._console.info("Agent has spawned in the world")
        self._console.info(f"Setting home position to X:{home.x} Y:{home.y} Z:{home.z}")
        self._notify()
        self._on_active()

    def on_failed(self, message: str) -> None:
        self._tasks.cancel("connect-timeout")
        target = self._run.settings.connect_target if self._run.settings else ""
        self._console.error(f"CONNECTION ERROR: {message}")
        for hint in classify_error(message, target):
            self._console.error(hint)
        self.rollback()

    def on_kicked(self, reason: str) -> None:
        self._console.error(f"Agent was kicked: {reason}")
        self.rollback()

    def _on_connect_timeout(self) -> None:
        if not self._run.running or self._run.phase is not Phase.CONNECTING:
            return
        target = self._run.settings.connect_target if self._run.settings else "unknown server"
        self._console.error(f"CONNECTION FAILED: Could not connect to {target}")
        self._console.error("Please check the server address and make sure the server is online.")
        self.rollback()

    def rollback(self) -> None:
        session = self._run.session
        self._run.reset()
        self._tasks.cancel_all()
        self._on_idle()
        if session is not None:
            try:
                session.quit()
            except Exception:
                _log.debug("session.quit() during rollback failed", exc_info=True)
        self._notify()
