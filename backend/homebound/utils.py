"""
Shared utility functions: JSON file I/O, grid math, clock formatting.
"""
from __future__ import annotations

import json
import math
import time
from pathlib import Path
from typing import Optional


def read_json(path: Path) -> Optional[dict]:
    if not path.exists():
        return None
    data = json.loads(path.read_text(encoding="utf-8", errors="replace") or "{}")
    return data if isinstance(data, dict) else None


def write_json_atomic(path: Path, obj: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(obj, ensure_ascii=False, indent=2), encoding="utf-8")
    tmp.replace(path)


def clamp(v: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, v))


def chebyshev(ax: float, az: float, bx: int, bz: int) -> int:
    """Horizontal Chebyshev distance between the block at (ax, az) and (bx, bz)."""
    return max(abs(math.floor(ax) - bx), abs(math.floor(az) - bz))


def clock_stamp(now: Optional[float] = None) -> str:
    return time.strftime("%H:%M:%S", time.localtime(now if now is not None else time.time()))


def is_rest_hours(time_of_day: Optional[int], start: int, end: int) -> bool:
    if time_of_day is None:
        return False
    return start <= time_of_day <= end
