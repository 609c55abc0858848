"""
Area scheduler: keeps the agent wandering inside the 3x3 block around home.

Three timers drive it while the connection is active:
  * ``boundary``: every tick, walk back to home when Chebyshev distance > 1
  * ``wander``: one random in-bounds step, re-armed after each step
  * ``watchdog``: forces a step when wandering has stalled
"""
from __future__ import annotations

import logging
import math
import random
from typing import List, Optional

from homebound.config import Timings
from homebound.console import Console
from homebound.models import Coordinate, GoalBlock, Position, RunState
from homebound.scheduler import TaskGroup
from homebound.utils import chebyshev, clamp

_log = logging.getLogger(__name__)


def area_mask(position: Optional[Position], home: Optional[Coordinate]) -> List[bool]:
    """Row-major 3x3 grid (z rows, x columns) with the agent's cell marked.

    Offsets beyond the grid are clamped to its edge, so exactly one cell is set
    whenever both position and home are known.
    """
    mask = [False] * 9
    if position is None or home is None:
        return mask
    dx = clamp(math.floor(position.x) - home.x, -1, 1)
    dz = clamp(math.floor(position.z) - home.z, -1, 1)
    mask[(dz + 1) * 3 + (dx + 1)] = True
    return mask


class AreaScheduler:
    def __init__(
        self,
        run: RunState,
        console: Console,
        tasks: TaskGroup,
        timings: Timings,
        rest=None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._run = run
        self._console = console
        self._tasks = tasks
        self._timings = timings
        self.rest = rest
        self._rng = rng or random.Random()
        self.last_step_at: Optional[float] = None

    def start(self) -> None:
        session = self._run.session
        if not self._run.active:
            return
        self._console.info("Starting wandering behavior in 3x3 area")
        session.set_movement_options(can_dig=False, allow_sprinting=False, allow_towers=False)
        self._tasks.call_every("boundary", self._timings.boundary_interval, self.enforce_boundary)
        self.wander_step()
        self._tasks.call_every("watchdog", self._timings.watchdog_interval, self.watchdog)

    def distance_from_home(self) -> Optional[int]:
        session, home = self._run.session, self._run.home
        if session is None or home is None or session.position is None:
            return None
        pos = session.position
        return chebyshev(pos.x, pos.z, home.x, home.z)

    def enforce_boundary(self) -> bool:
        """Issue a correction toward home if the agent left the area. Returns True if it did."""
        if not self._run.active:
            return False
        distance = self.distance_from_home()
        if distance is None or distance <= 1:
            return False
        home = self._run.home
        session = self._run.session
        self._console.warning("Agent escaped 3x3 area! Returning to home position")
        session.set_goal(None)
        session.set_goal(GoalBlock(home))
        return True

    def wander_step(self) -> None:
        if not self._run.active:
            return
        self.last_step_at = self._tasks.now()

        if self.rest is not None and self.rest.should_rest():
            self._console.info("Night time detected with players online - should sleep")
            self.rest.seek_rest()
            return

        home = self._run.home
        target = Coordinate(
            home.x + self._rng.randint(-1, 1),
            home.y,
            home.z + self._rng.randint(-1, 1),
        )
        try:
            self._console.info(f"Wandering to position X:{target.x} Y:{target.y} Z:{target.z}")
            self.move_directly(target)
            delay = self._rng.uniform(self._timings.wander_delay_min, self._timings.wander_delay_max)
            self._tasks.call_later("wander", delay, self.wander_step)
        except Exception as e:
            self._console.error(f"Error during wandering: {e}")
            self._tasks.call_later("wander", self._timings.wander_backoff, self.wander_step)

    def move_directly(self, target: Coordinate) -> None:
        """Face one axis toward ``target`` and walk forward briefly."""
        session = self._run.session
        if session is None or not self._run.running:
            return
        try:
            session.set_goal(None)
            pos = session.position
            dx = target.x - math.floor(pos.x)
            dz = target.z - math.floor(pos.z)
            look: Optional[Position] = None
            if dx > 0:
                look = Position(pos.x + 1, pos.y, pos.z)
            elif dx < 0:
                look = Position(pos.x - 1, pos.y, pos.z)
            elif dz > 0:
                look = Position(pos.x, pos.y, pos.z + 1)
            elif dz < 0:
                look = Position(pos.x, pos.y, pos.z - 1)
            if look is not None:
                session.set_control_state("forward", True)
                session.look_at(look)
            self._tasks.call_later("release-controls", self._timings.control_release, self._release_controls, session)
            self._console.info(f"Moving directly to X:{target.x} Y:{target.y} Z:{target.z}")
        except Exception:
            try:
                session.clear_control_states()
            except Exception:
                _log.debug("clear_control_states failed", exc_info=True)
            raise

    def _release_controls(self, session) -> None:
        if self._run.session is not session:
            return
        session.set_control_state("forward", False)

    def watchdog(self) -> None:
        if not self._run.active:
            return
        session = self._run.session
        if session.is_sleeping or (self.rest is not None and self.rest.should_rest()):
            return
        if self.last_step_at is not None and self._tasks.now() - self.last_step_at <= self._timings.watchdog_starvation:
            return
        self._console.info("No movement detected for a while, forcing new wander step")
        self.wander_step()
