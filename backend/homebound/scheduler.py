"""
Named delayed and recurring tasks on the running asyncio loop.

A ``TaskGroup`` owns every timer the controller arms. Scheduling under a name
that is already pending replaces the earlier timer, and ``cancel_all()`` drops
every timer and in-flight coroutine at once when the controller goes idle.
Callbacks may be plain functions or coroutine functions.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine, Dict, List, Set

_log = logging.getLogger(__name__)


class TaskGroup:
    def __init__(self) -> None:
        self._handles: Dict[str, asyncio.TimerHandle] = {}
        self._tasks: Set[asyncio.Task] = set()

    @staticmethod
    def now() -> float:
        return asyncio.get_running_loop().time()

    @property
    def names(self) -> List[str]:
        return sorted(self._handles)

    def pending(self, name: str) -> bool:
        return name in self._handles

    def call_later(self, name: str, delay: float, fn: Callable[..., Any], *args: Any) -> None:
        self.cancel(name)
        loop = asyncio.get_running_loop()
        self._handles[name] = loop.call_later(max(0.0, delay), self._fire_once, name, fn, args)

    def call_every(self, name: str, interval: float, fn: Callable[..., Any], *args: Any) -> None:
        self.cancel(name)
        loop = asyncio.get_running_loop()
        self._handles[name] = loop.call_later(interval, self._fire_repeating, name, interval, fn, args)

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def cancel(self, name: str) -> bool:
        handle = self._handles.pop(name, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> None:
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()
        current = asyncio.current_task() if _loop_running() else None
        for task in list(self._tasks):
            if task is not current:
                task.cancel()
        self._tasks = {t for t in self._tasks if t is current}

    def _fire_once(self, name: str, fn: Callable[..., Any], args: tuple) -> None:
        self._handles.pop(name, None)
        self._invoke(name, fn, args)

    def _fire_repeating(self, name: str, interval: float, fn: Callable[..., Any], args: tuple) -> None:
        loop = asyncio.get_running_loop()
        self._handles[name] = loop.call_later(interval, self._fire_repeating, name, interval, fn, args)
        self._invoke(name, fn, args)

    def _invoke(self, name: str, fn: Callable[..., Any], args: tuple) -> None:
        try:
            result = fn(*args)
        except Exception:
            _log.warning("Scheduled task %r failed", name, exc_info=True)
            return
        if asyncio.iscoroutine(result):
            self.spawn(result)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _log.warning("Background task failed", exc_info=exc)


def _loop_running() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True
