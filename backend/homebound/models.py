"""
All data models: dataclasses for internal state, Pydantic models for API requests.
"""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, Field

# --- Type aliases ---
Severity = Literal["info", "warning", "error"]
Activity = Literal["Idle", "Wandering", "Sleeping"]
TimeOfDay = Literal["day", "night"]


class Phase(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    ACTIVE = "active"


# --- Internal state dataclasses ---

@dataclass(frozen=True)
class Coordinate:
    x: int
    y: int
    z: int

    @classmethod
    def floor_of(cls, x: float, y: float, z: float) -> "Coordinate":
        return cls(math.floor(x), math.floor(y), math.floor(z))


@dataclass(frozen=True)
class Position:
    """Continuous position reported by the world."""

    x: float
    y: float
    z: float

    def block(self) -> Coordinate:
        return Coordinate.floor_of(self.x, self.y, self.z)


@dataclass
class Settings:
    connect_target: str
    agent_name: str
    home: Coordinate

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "Settings":
        home = d.get("home") or {}
        return cls(
            connect_target=str(d.get("connect_target") or ""),
            agent_name=str(d.get("agent_name") or ""),
            home=Coordinate(int(home.get("x", 0)), int(home.get("y", 0)), int(home.get("z", 0))),
        )


@dataclass(frozen=True)
class LogEntry:
    timestamp: str
    message: str
    severity: Severity


@dataclass
class StatusSnapshot:
    connected: bool = False
    activity: Activity = "Idle"
    position: Coordinate = field(default_factory=lambda: Coordinate(0, 0, 0))
    time_of_day: TimeOfDay = "day"
    participants: List[str] = field(default_factory=list)
    area_mask: List[bool] = field(default_factory=lambda: [False] * 9)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class Block:
    name: str
    position: Coordinate


@dataclass(frozen=True)
class GoalBlock:
    """Stand exactly on ``target``."""

    target: Coordinate


@dataclass(frozen=True)
class GoalNear:
    """Get within ``range`` blocks of ``target``."""

    target: Coordinate
    range: int = 1


Goal = Union[GoalBlock, GoalNear]


@dataclass
class RunState:
    running: bool = False
    phase: Phase = Phase.IDLE
    session: Optional[Any] = None
    home: Optional[Coordinate] = None
    settings: Optional[Settings] = None

    @property
    def active(self) -> bool:
        return self.running and self.phase is Phase.ACTIVE and self.session is not None and self.home is not None

    def reset(self) -> None:
        self.running = False
        self.phase = Phase.IDLE
        self.session = None
        self.home = None


# --- API request models ---

class CoordinateModel(BaseModel):
    x: int
    y: int
    z: int


class SettingsRequest(BaseModel):
    connect_target: str = Field(min_length=1)
    agent_name: str = Field(min_length=1)
    home: CoordinateModel

    def to_settings(self) -> Settings:
        return Settings(
            connect_target=self.connect_target.strip(),
            agent_name=self.agent_name.strip(),
            home=Coordinate(self.home.x, self.home.y, self.home.z),
        )


class LoginRequest(BaseModel):
    password: str = ""
