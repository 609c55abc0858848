"""
Rest scheduler: sleep at night while others are online, wake when alone.

Waking is idempotent and is triggered from participant events, from the
periodic check, and from the emergency cascade that retries at fixed offsets
after the last participant leaves. The agent must never stay asleep alone.
"""
from __future__ import annotations

import itertools
import logging
from typing import Callable, List, Optional

from homebound.config import NIGHT_END, NIGHT_START, Timings
from homebound.console import Console
from homebound.models import Block, GoalNear, RunState
from homebound.scheduler import TaskGroup
from homebound.utils import is_rest_hours

_log = logging.getLogger(__name__)


def is_bed(name: str) -> bool:
    return "bed" in name


class RestScheduler:
    def __init__(
        self,
        run: RunState,
        console: Console,
        tasks: TaskGroup,
        timings: Timings,
        notify: Callable[[], None],
    ) -> None:
        self._run = run
        self._console = console
        self._tasks = tasks
        self._timings = timings
        self._notify = notify
        self.pending_bed: Optional[Block] = None
        self._chain = itertools.count(1)

    def reset(self) -> None:
        """Forget continuations that belong to the session being torn down."""
        self.pending_bed = None

    # --- Conditions ---

    def others(self) -> List[str]:
        session = self._run.session
        return session.others() if session is not None else []

    def is_night(self) -> bool:
        session = self._run.session
        return session is not None and is_rest_hours(session.time_of_day, NIGHT_START, NIGHT_END)

    def should_rest(self) -> bool:
        if not self._run.active:
            return False
        return not self._run.session.is_sleeping and self.is_night() and bool(self.others())

    def check_conditions(self) -> None:
        if not self._run.active:
            return
        session = self._run.session
        resting = session.is_sleeping
        others = self.others()
        night = self.is_night()

        if resting and not others:
            self._console.warning("WAKE UP TRIGGER: No players online while sleeping!")
            self.emergency_wake()
            return

        if resting and not night:
            self._console.info("Daytime detected - waking up from bed")
            self._tasks.spawn(self._standard_wake(session))
        elif not resting and night and others:
            self.seek_rest()

    def periodic_check(self) -> None:
        if not self._run.active:
            return
        if self._run.session.is_sleeping:
            self.emergency_wake()
        self.check_conditions()

    # --- Going to bed ---

    def seek_rest(self) -> None:
        if not self._run.active:
            return
        session = self._run.session
        self._console.info("Looking for a bed to sleep in...")
        bed = session.find_block(is_bed, max_distance=self._timings.rest_search_radius)
        if bed is None:
            self._console.warning("No bed found nearby")
            return
        p = bed.position
        self._console.info(f"Found a bed at X:{p.x} Y:{p.y} Z:{p.z}")
        try:
            session.set_goal(None)
            session.set_goal(GoalNear(p, self._timings.rest_approach_range))
            # Replaces any earlier search; only the latest bed is slept in.
            self.pending_bed = bed
        except Exception as e:
            self._console.error(f"Error trying to sleep: {e}")

    def on_goal_reached(self) -> None:
        bed, self.pending_bed = self.pending_bed, None
        if bed is None or not self._run.active:
            return
        if not self.should_rest():
            self._console.info("Rest conditions no longer hold; not entering bed")
            return
        self._console.info("Reached the bed, attempting to sleep")
        self._tasks.spawn(self._enter_rest(self._run.session, bed))

    async def _enter_rest(self, session, bed: Block) -> None:
        try:
            await session.sleep(bed)
        except Exception as e:
            self._console.error(f"Failed to sleep in bed: {e}")
            return
        if self._run.session is session:
            self._console.info("Agent is now sleeping in bed")
            self._notify()

    # --- Waking up ---

    def emergency_wake(self) -> None:
        if not self._run.active:
            return
        session = self._run.session
        if not session.is_sleeping:
            return
        others = self.others()
        self._console.warning(f"FORCE WAKE CHECK: Agent is sleeping. Players online: {len(others)}")
        if others:
            return
        self._console.warning("EMERGENCY WAKE UP NOW - No players online!")
        self.wake_cascade()

    def wake_cascade(self) -> None:
        """Attempt a wake now and at each cascade offset. Timer names are unique per cascade."""
        chain = next(self._chain)
        for i, offset in enumerate(self._timings.wake_cascade):
            if offset <= 0:
                self.wake_attempt()
            else:
                self._tasks.call_later(f"wake-cascade-{chain}-{i}", offset, self.wake_attempt)

    def wake_attempt(self, retry: int = 0) -> None:
        if not self._run.active:
            return
        session = self._run.session
        if not session.is_sleeping or self.others():
            return
        self._tasks.spawn(self._emergency_wake(session, retry))

    async def _emergency_wake(self, session, retry: int) -> None:
        try:
            await session.wake()
        except Exception as e:
            self._console.error(f"Failed to wake agent (attempt {retry + 1}): {e}")
            if retry < self._timings.wake_retry_limit:
                delay = self._timings.wake_retry_base + retry * self._timings.wake_retry_step
                self._console.warning(f"Retrying wake in {int(delay * 1000)}ms...")
                self._tasks.call_later(f"wake-retry-{next(self._chain)}", delay, self.wake_attempt, retry + 1)
            return
        if self._run.session is session:
            self._console.info("Successfully woke up agent from emergency wake")
            self._notify()

    async def _standard_wake(self, session) -> None:
        try:
            await session.wake()
        except Exception as e:
            self._console.error(f"Error waking up: {e}")
            return
        if self._run.session is session:
            self._notify()

    # --- Events ---

    def on_participant_left(self, name: str) -> None:
        if not self._run.active:
            return
        if not self.others():
            self._console.warning("CRITICAL EVENT: Last player left the game - checking sleep status")
            self.wake_cascade()
        self.check_conditions()
