"""
World session contract.

A session is the agent's presence in the remote world. Commands are
fire-and-forget except ``sleep``/``wake``, which complete when the world
acknowledges them. Everything the world reports comes back through the single
``on_event`` callback given at construction.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from homebound.events import SessionEvent
from homebound.models import Block, Coordinate, Goal, Position

EventCallback = Callable[[SessionEvent], None]


class WorldSession(ABC):
    def __init__(self, host: str, username: str, on_event: EventCallback) -> None:
        self.host = host
        self.username = username
        self._on_event = on_event

    def emit(self, event: SessionEvent) -> None:
        self._on_event(event)

    @abstractmethod
    def open(self) -> None:
        """Begin connecting. Spawn or failure is reported as an event."""

    @abstractmethod
    def quit(self) -> None:
        ...

    @property
    @abstractmethod
    def position(self) -> Optional[Position]:
        ...

    @property
    @abstractmethod
    def players(self) -> List[str]:
        """Names of everyone in the world, the agent included."""

    @property
    @abstractmethod
    def time_of_day(self) -> Optional[int]:
        ...

    @property
    @abstractmethod
    def is_sleeping(self) -> bool:
        ...

    @abstractmethod
    def set_goal(self, goal: Optional[Goal]) -> None:
        ...

    @abstractmethod
    def set_movement_options(self, can_dig: bool, allow_sprinting: bool, allow_towers: bool) -> None:
        ...

    @abstractmethod
    def set_control_state(self, control: str, state: bool) -> None:
        ...

    @abstractmethod
    def clear_control_states(self) -> None:
        ...

    @abstractmethod
    def look_at(self, target: Position) -> None:
        ...

    @abstractmethod
    def find_block(self, matching: Callable[[str], bool], max_distance: int) -> Optional[Block]:
        ...

    @abstractmethod
    async def sleep(self, block: Block) -> None:
        ...

    @abstractmethod
    async def wake(self) -> None:
        ...

    def others(self) -> List[str]:
        return [p for p in self.players if p != self.username]


def block_distance(a: Position, b: Coordinate) -> float:
    return max(abs(a.x - b.x), abs(a.y - b.y), abs(a.z - b.z))
