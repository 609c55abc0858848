"""
Shared fixtures for backend tests.
Points DATA_DIR at a temp dir before any homebound import so tests never
touch real data, and provides an in-memory world session.
"""
from __future__ import annotations

import os
import tempfile

os.environ["DATA_DIR"] = tempfile.mkdtemp(prefix="homebound_test_")
os.environ["ADMIN_PASSWORD"] = "test-password"

import asyncio  # noqa: E402
import random  # noqa: E402
from typing import Callable, List, Optional  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from homebound.config import DEFAULT_TIMINGS, Timings  # noqa: E402
from homebound.controller import AgentController  # noqa: E402
from homebound.events import Spawned  # noqa: E402
from homebound.models import Block, Coordinate, Position, Settings  # noqa: E402
from homebound.session import WorldSession, block_distance  # noqa: E402
from homebound.storage import Storage  # noqa: E402

AGENT = "Warden"


class FakeSession(WorldSession):
    def __init__(self, host, username, on_event, auto_spawn: bool = True, open_error: Optional[Exception] = None):
        super().__init__(host, username, on_event)
        self.auto_spawn = auto_spawn
        self.open_error = open_error
        self.opened = False
        self._position: Optional[Position] = Position(0.5, 64.0, 0.5)
        self._players: List[str] = [username]
        self._time: Optional[int] = 1000
        self._sleeping = False
        self.blocks: List[Block] = []
        self.goals: list = []
        self.controls: list = []
        self.looks: list = []
        self.movement_options: Optional[dict] = None
        self.quit_calls = 0
        self.sleep_calls = 0
        self.wake_calls = 0
        self.sleep_error: Optional[Exception] = None
        self.last_bed: Optional[Block] = None
        self.wake_failures = 0
        self.wake_gate: Optional[asyncio.Event] = None

    # state
    @property
    def position(self):
        return self._position

    @property
    def players(self):
        return list(self._players)

    @property
    def time_of_day(self):
        return self._time

    @property
    def is_sleeping(self):
        return self._sleeping

    # helpers for tests
    def place(self, x: float, z: float, y: float = 64.0) -> None:
        self._position = Position(x, y, z)

    def set_players(self, *names: str) -> None:
        self._players = [self.username, *names]

    def set_time(self, tod: int) -> None:
        self._time = tod

    def force_sleeping(self, value: bool = True) -> None:
        self._sleeping = value

    def step_toward_goal(self) -> None:
        """Move one block along each axis toward the current goal."""
        goal = self.goals[-1] if self.goals else None
        if goal is None or self._position is None:
            return
        t = goal.target
        cur = self._position.block()
        nx = cur.x + (t.x > cur.x) - (t.x < cur.x)
        nz = cur.z + (t.z > cur.z) - (t.z < cur.z)
        self._position = Position(nx + 0.5, self._position.y, nz + 0.5)

    # contract
    def open(self):
        self.opened = True
        if self.open_error is not None:
            raise self.open_error
        if self.auto_spawn:
            self.emit(Spawned())

    def quit(self):
        self.quit_calls += 1

    def set_goal(self, goal):
        self.goals.append(goal)

    def set_movement_options(self, can_dig, allow_sprinting, allow_towers):
        self.movement_options = {"can_dig": can_dig, "allow_sprinting": allow_sprinting, "allow_towers": allow_towers}

    def set_control_state(self, control, state):
        self.controls.append((control, state))

    def clear_control_states(self):
        self.controls.append(("*", False))

    def look_at(self, target):
        self.looks.append(target)

    def find_block(self, matching, max_distance):
        hits = [b for b in self.blocks if matching(b.name) and block_distance(self._position, b.position) <= max_distance]
        return min(hits, key=lambda b: block_distance(self._position, b.position)) if hits else None

    async def sleep(self, block):
        self.sleep_calls += 1
        self.last_bed = block
        if self.sleep_error is not None:
            raise self.sleep_error
        self._sleeping = True

    async def wake(self):
        self.wake_calls += 1
        gate, self.wake_gate = self.wake_gate, None
        if gate is not None:
            await gate.wait()
        if self.wake_failures > 0:
            self.wake_failures -= 1
            raise RuntimeError("wake rejected")
        self._sleeping = False


class FakeBroadcaster:
    def __init__(self) -> None:
        self.messages: list = []
        self.clients: list = []

    def publish(self, msg):
        self.messages.append(msg)

    async def connect(self, ws):
        self.clients.append(ws)

    async def disconnect(self, ws):
        self.clients = [c for c in self.clients if c is not ws]

    async def send(self, ws, msg):
        self.messages.append(msg)

    def of_type(self, kind: str) -> list:
        return [m for m in self.messages if m.get("type") == kind]


class Harness:
    def __init__(self, controller: AgentController, broadcaster: FakeBroadcaster, sessions: List[FakeSession]):
        self.ctl = controller
        self.broadcaster = broadcaster
        self.sessions = sessions

    @property
    def session(self) -> FakeSession:
        return self.sessions[-1]

    def messages(self) -> List[str]:
        return [e.message for e in self.ctl.get_log()]

    def log_since(self, n: int) -> List[str]:
        return self.messages()[n:]


@pytest.fixture
def make_controller() -> Callable[..., Harness]:
    def _make(
        target: str = "world.test",
        home: Coordinate = Coordinate(0, 64, 0),
        timings: Timings = DEFAULT_TIMINGS,
        auto_spawn: bool = True,
        open_error: Optional[Exception] = None,
        seed: int = 7,
    ) -> Harness:
        storage = Storage(settings_path=None)
        storage.update_settings(Settings(connect_target=target, agent_name=AGENT, home=home))
        sessions: List[FakeSession] = []

        def factory(host, username, on_event):
            s = FakeSession(host, username, on_event, auto_spawn=auto_spawn, open_error=open_error)
            sessions.append(s)
            return s

        broadcaster = FakeBroadcaster()
        ctl = AgentController(
            storage, broadcaster=broadcaster, session_factory=factory,
            timings=timings, rng=random.Random(seed),
        )
        return Harness(ctl, broadcaster, sessions)

    return _make


@pytest.fixture
def client(tmp_path):
    """TestClient over a fresh app whose world sessions are FakeSessions.

    Entering the client runs the lifespan, so the controller and its timers
    share one event loop for the whole test.
    """
    from homebound.main import create_app

    sessions: List[FakeSession] = []

    def factory(host, username, on_event):
        s = FakeSession(host, username, on_event)
        sessions.append(s)
        return s

    app = create_app(storage=Storage(settings_path=tmp_path / "settings.json"), session_factory=factory)
    with TestClient(app) as c:
        c.sessions = sessions
        yield c
