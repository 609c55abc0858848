"""
HTTP world session: joins a world gateway, polls its state, issues actions.

Gateway API:
  POST {base}/world/actions  {"agent_id", "agent_name", "action", "params"}
       action in join | leave | goal | movements | control | control_clear | look | sleep | wake
  GET  {base}/world?agent_id=<name>
       {"time_of_day": int,
        "agents": [{"agent_id", "x", "y", "z", "sleeping"}],
        "blocks": [{"name", "x", "y", "z"}],
        "kicked": "<reason>"  (present only when the agent was removed)}

Blocking requests calls run in a worker thread; snapshot diffs become session
events on the event loop.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

import requests

from homebound.config import WORLD_HTTP_TIMEOUT_SECONDS, WORLD_POLL_SECONDS, WORLD_PORT
from homebound.events import (
    GoalReached, Kicked, Moved, ParticipantJoined, ParticipantLeft,
    SessionFailed, Spawned, TimeChanged,
)
from homebound.models import Block, Coordinate, Goal, GoalBlock, GoalNear, Position
from homebound.session import EventCallback, WorldSession, block_distance

_log = logging.getLogger(__name__)


class WorldActionError(Exception):
    """The gateway rejected an action."""


def base_url(host: str, port: int = WORLD_PORT) -> str:
    h = (host or "").strip().rstrip("/")
    if h.startswith(("http://", "https://")):
        return h
    if ":" in h:
        return f"http://{h}"
    return f"http://{h}:{port}"


def _goal_params(goal: Optional[Goal]) -> Optional[dict]:
    if goal is None:
        return None
    t = goal.target
    rng = goal.range if isinstance(goal, GoalNear) else 0
    return {"x": t.x, "y": t.y, "z": t.z, "range": rng}


def goal_reached(goal: Goal, pos: Position) -> bool:
    if isinstance(goal, GoalBlock):
        return pos.block() == goal.target
    return block_distance(pos, goal.target) <= goal.range


class HttpWorldSession(WorldSession):
    def __init__(
        self,
        host: str,
        username: str,
        on_event: EventCallback,
        port: int = WORLD_PORT,
        poll_seconds: float = WORLD_POLL_SECONDS,
        timeout: float = WORLD_HTTP_TIMEOUT_SECONDS,
        http: Optional[requests.Session] = None,
    ) -> None:
        super().__init__(host, username, on_event)
        self.base = base_url(host, port)
        self._http = http or requests.Session()
        self._http.headers["Content-Type"] = "application/json"
        self._timeout = timeout
        self._poll_seconds = poll_seconds
        self._task: Optional[asyncio.Task] = None
        self._closed = False
        self._spawned = False
        self._position: Optional[Position] = None
        self._players: List[str] = []
        self._time: Optional[int] = None
        self._sleeping = False
        self._blocks: List[Block] = []
        self._goal: Optional[Goal] = None
        self._outbox: List[Dict[str, Any]] = []

    # --- State ---

    @property
    def position(self) -> Optional[Position]:
        return self._position

    @property
    def players(self) -> List[str]:
        return list(self._players)

    @property
    def time_of_day(self) -> Optional[int]:
        return self._time

    @property
    def is_sleeping(self) -> bool:
        return self._sleeping

    # --- Lifecycle ---

    def open(self) -> None:
        self._task = asyncio.get_running_loop().create_task(self._run())

    def quit(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._task is not None:
            self._task.cancel()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        loop.create_task(self._leave())

    async def _leave(self) -> None:
        try:
            await asyncio.to_thread(self._post, "leave", {})
        except (requests.RequestException, WorldActionError):
            _log.debug("leave request to %s failed", self.base, exc_info=True)

    async def _run(self) -> None:
        try:
            await asyncio.to_thread(self._post, "join", {})
            while not self._closed:
                snapshot = await asyncio.to_thread(self._get_world)
                if self._closed:
                    break
                self.apply_snapshot(snapshot)
                await self._flush()
                await asyncio.sleep(self._poll_seconds)
        except asyncio.CancelledError:
            raise
        except (requests.RequestException, WorldActionError, ValueError) as e:
            self._fail(str(e))
        except Exception as e:
            _log.warning("world session %s crashed", self.base, exc_info=True)
            self._fail(f"{type(e).__name__}: {e}")

    def _fail(self, message: str) -> None:
        if not self._closed:
            self._closed = True
            self.emit(SessionFailed(message))

    # --- Transport ---

    def _post(self, action: str, params: Optional[dict]) -> dict:
        payload = {
            "agent_id": self.username,
            "agent_name": self.username,
            "action": action,
            "params": params,
        }
        r = self._http.post(f"{self.base}/world/actions", json=payload, timeout=self._timeout)
        if r.status_code >= 400:
            raise WorldActionError(f"{action} failed {r.status_code} {r.text[:200]}")
        return r.json() if r.content else {}

    def _get_world(self) -> dict:
        r = self._http.get(f"{self.base}/world", params={"agent_id": self.username}, timeout=self._timeout)
        r.raise_for_status()
        data = r.json()
        if not isinstance(data, dict):
            raise ValueError(f"unexpected world payload: {type(data).__name__}")
        return data

    async def _flush(self) -> None:
        pending, self._outbox = self._outbox, []
        for cmd in pending:
            try:
                await asyncio.to_thread(self._post, cmd["action"], cmd["params"])
            except WorldActionError as e:
                _log.warning("world action %s rejected: %s", cmd["action"], e)

    def _queue(self, action: str, params: Optional[dict]) -> None:
        self._outbox.append({"action": action, "params": params})

    # --- Snapshot diffing ---

    def apply_snapshot(self, snapshot: dict) -> None:
        if snapshot.get("kicked"):
            self._closed = True
            self.emit(Kicked(str(snapshot.get("kicked"))))
            return
        agents = snapshot.get("agents") or []
        me = next((a for a in agents if str(a.get("agent_id") or "") == self.username), None)
        if me is None:
            return
        players = [str(a.get("agent_id")) for a in agents if a.get("agent_id")]
        position = Position(float(me.get("x") or 0), float(me.get("y") or 0), float(me.get("z") or 0))
        raw_time = snapshot.get("time_of_day")
        tod = int(raw_time) if raw_time is not None else None
        self._sleeping = bool(me.get("sleeping"))
        self._blocks = [
            Block(str(b.get("name") or ""), Coordinate(int(b.get("x") or 0), int(b.get("y") or 0), int(b.get("z") or 0)))
            for b in (snapshot.get("blocks") or [])
        ]

        if not self._spawned:
            self._spawned = True
            self._players, self._time, self._position = players, tod, position
            self.emit(Spawned())
            return

        old_players, old_time, old_position = self._players, self._time, self._position
        self._players, self._time, self._position = players, tod, position

        for name in players:
            if name not in old_players and not self._closed:
                self.emit(ParticipantJoined(name))
        for name in old_players:
            if name not in players and not self._closed:
                self.emit(ParticipantLeft(name))
        if tod != old_time and tod is not None and not self._closed:
            self.emit(TimeChanged(tod))
        if position != old_position and not self._closed:
            self.emit(Moved())
            if self._goal is not None and goal_reached(self._goal, position):
                self._goal = None
                self.emit(GoalReached())

    # --- Commands ---

    def set_goal(self, goal: Optional[Goal]) -> None:
        self._goal = goal
        self._queue("goal", _goal_params(goal))

    def set_movement_options(self, can_dig: bool, allow_sprinting: bool, allow_towers: bool) -> None:
        self._queue("movements", {
            "can_dig": can_dig, "allow_sprinting": allow_sprinting, "allow_towers": allow_towers,
        })

    def set_control_state(self, control: str, state: bool) -> None:
        self._queue("control", {"control": control, "state": state})

    def clear_control_states(self) -> None:
        self._queue("control_clear", {})

    def look_at(self, target: Position) -> None:
        self._queue("look", {"x": target.x, "y": target.y, "z": target.z})

    def find_block(self, matching: Callable[[str], bool], max_distance: int) -> Optional[Block]:
        if self._position is None:
            return None
        candidates = [
            b for b in self._blocks
            if matching(b.name) and block_distance(self._position, b.position) <= max_distance
        ]
        if not candidates:
            return None
        return min(candidates, key=lambda b: block_distance(self._position, b.position))

    async def sleep(self, block: Block) -> None:
        p = block.position
        await asyncio.to_thread(self._post, "sleep", {"x": p.x, "y": p.y, "z": p.z})
        self._sleeping = True

    async def wake(self) -> None:
        await asyncio.to_thread(self._post, "wake", {})
        self._sleeping = False
