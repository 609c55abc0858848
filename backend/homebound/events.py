"""
Events a world session reports to the controller.

The set is closed: the controller's dispatch table maps each variant to a
handler per lifecycle phase, and anything not in the table is dropped.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Spawned:
    pass


@dataclass(frozen=True)
class Kicked:
    reason: str = ""


@dataclass(frozen=True)
class SessionFailed:
    message: str


@dataclass(frozen=True)
class ParticipantJoined:
    name: str


@dataclass(frozen=True)
class ParticipantLeft:
    name: str


@dataclass(frozen=True)
class TimeChanged:
    time_of_day: int


@dataclass(frozen=True)
class Moved:
    pass


@dataclass(frozen=True)
class GoalReached:
    pass


SessionEvent = Union[
    Spawned, Kicked, SessionFailed, ParticipantJoined,
    ParticipantLeft, TimeChanged, Moved, GoalReached,
]
