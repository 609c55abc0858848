"""
Agent controller: the one object the API layer talks to.

It owns the RunState, the task group, and the three behavior components, and
routes every session event through a single phase-keyed dispatch table.
Public methods never raise; failures become console entries and the status
snapshot reflects whatever state remains.
"""
from __future__ import annotations

import logging
import random
from typing import Any, Callable, Dict, List, Optional, Type

from homebound.area import AreaScheduler, area_mask
from homebound.config import DEFAULT_TIMINGS, NIGHT_START, Timings
from homebound.console import Console
from homebound.events import (
    GoalReached, Kicked, Moved, ParticipantJoined, ParticipantLeft,
    SessionEvent, SessionFailed, Spawned, TimeChanged,
)
from homebound.lifecycle import ConnectionLifecycle, SessionFactory
from homebound.models import LogEntry, Phase, RunState, Settings, StatusSnapshot
from homebound.rest import RestScheduler
from homebound.scheduler import TaskGroup
from homebound.world_client import HttpWorldSession

_log = logging.getLogger(__name__)


class AgentController:
    def __init__(
        self,
        storage,
        broadcaster=None,
        session_factory: SessionFactory = HttpWorldSession,
        timings: Timings = DEFAULT_TIMINGS,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._storage = storage
        self._broadcaster = broadcaster
        self.run = RunState()
        self.tasks = TaskGroup()
        self.console = Console(storage, self._publish)
        self.rest = RestScheduler(self.run, self.console, self.tasks, timings, self.broadcast_status)
        self.area = AreaScheduler(self.run, self.console, self.tasks, timings, rest=self.rest, rng=rng)
        self.lifecycle = ConnectionLifecycle(
            self.run, storage, self.console, self.tasks, timings,
            session_factory, self.dispatch, self.broadcast_status, self._on_active, self.rest.reset,
        )
        self._timings = timings
        self._handlers: Dict[Phase, Dict[Type[Any], Callable[[Any], None]]] = {
            Phase.CONNECTING: {
                Spawned: lambda e: self.lifecycle.on_spawned(),
                SessionFailed: lambda e: self.lifecycle.on_failed(e.message),
                Kicked: lambda e: self.lifecycle.on_kicked(e.reason),
            },
            Phase.ACTIVE: {
                SessionFailed: lambda e: self.lifecycle.on_failed(e.message),
                Kicked: lambda e: self.lifecycle.on_kicked(e.reason),
                ParticipantJoined: self._on_joined,
                ParticipantLeft: self._on_left,
                TimeChanged: self._on_time,
                Moved: lambda e: self.broadcast_status(),
                GoalReached: lambda e: self.rest.on_goal_reached(),
            },
        }
        self.console.info("Agent controller initialized")

    # --- Public API ---

    async def start(self) -> None:
        try:
            self.lifecycle.start()
        except Exception as e:
            _log.warning("start() failed", exc_info=True)
            self.console.error(f"CRITICAL ERROR STARTING AGENT: {e}")
            self.lifecycle.rollback()

    async def stop(self) -> None:
        try:
            self.lifecycle.stop()
        except Exception as e:
            _log.warning("stop() failed", exc_info=True)
            self.console.error(f"Error during agent stop: {e}")
            self.run.reset()
            self.tasks.cancel_all()
            self.rest.reset()
            self.broadcast_status()

    async def update_settings(self, settings: Settings) -> Settings:
        try:
            saved = self._storage.update_settings(settings)
        except Exception as e:
            _log.warning("update_settings() failed", exc_info=True)
            self.console.error(f"Failed to save settings: {e}")
            return self._storage.get_settings()
        self.run.settings = saved
        self.console.info("Agent settings updated")
        if self.run.running and self.run.home is not None:
            self.run.home = saved.home
            h = saved.home
            self.console.info(f"Home position updated to X:{h.x} Y:{h.y} Z:{h.z}")
            self.broadcast_status()
        return saved

    async def clear_log(self) -> None:
        try:
            self.console.clear()
        except Exception:
            _log.warning("clear_log() failed", exc_info=True)
        self.console.info("Console cleared")

    def get_settings(self) -> Settings:
        return self._storage.get_settings()

    def get_log(self) -> List[LogEntry]:
        return self._storage.get_log()

    def get_status(self) -> StatusSnapshot:
        status = StatusSnapshot(connected=self.run.active)
        session = self.run.session
        if not self.run.active:
            return status
        status.activity = "Sleeping" if session.is_sleeping else "Wandering"
        pos = session.position
        if pos is not None:
            status.position = pos.block()
        tod = session.time_of_day
        if tod is not None:
            status.time_of_day = "day" if 0 <= tod < NIGHT_START else "night"
        status.participants = session.others()
        status.area_mask = area_mask(pos, self.run.home)
        return status

    async def add_client(self, ws) -> None:
        if self._broadcaster is None:
            return
        await self._broadcaster.connect(ws)
        await self._broadcaster.send(ws, self._status_message())

    async def remove_client(self, ws) -> None:
        if self._broadcaster is None:
            return
        await self._broadcaster.disconnect(ws)

    # --- Events ---

    def dispatch(self, event: SessionEvent) -> None:
        handler = self._handlers.get(self.run.phase, {}).get(type(event))
        if handler is None or not self.run.running:
            _log.debug("Ignoring %s in phase %s", type(event).__name__, self.run.phase.value)
            return
        try:
            handler(event)
        except Exception as e:
            _log.warning("Handler for %s failed", type(event).__name__, exc_info=True)
            self.console.error(f"Agent error: {e}")

    def _on_active(self) -> None:
        self.rest.check_conditions()
        self.area.start()
        self.tasks.call_later("post-spawn-check", self._timings.post_spawn_check, self.rest.check_conditions)
        self.tasks.call_every("rest-check", self._timings.rest_check_interval, self.rest.periodic_check)

    def _on_joined(self, event: ParticipantJoined) -> None:
        self.console.info(f"Player {event.name} joined the game")
        self.broadcast_status()
        self.rest.check_conditions()

    def _on_left(self, event: ParticipantLeft) -> None:
        self.console.info(f"Player {event.name} left the game")
        self.broadcast_status()
        self.rest.on_participant_left(event.name)

    def _on_time(self, event: TimeChanged) -> None:
        self.broadcast_status()
        self.rest.check_conditions()

    # --- Broadcasting ---

    def _status_message(self) -> dict:
        return {"type": "status", "data": self.get_status().to_dict()}

    def broadcast_status(self) -> None:
        self._publish(self._status_message())

    def _publish(self, msg: dict) -> None:
        if self._broadcaster is None:
            return
        try:
            self._broadcaster.publish(msg)
        except Exception:
            _log.debug("publish failed", exc_info=True)
