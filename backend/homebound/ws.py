"""
WebSocket manager for broadcasting agent status and console entries.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Set

from fastapi import WebSocket

_log = logging.getLogger(__name__)


class WSManager:
    def __init__(self) -> None:
        self._connections: List[WebSocket] = []
        self._lock = asyncio.Lock()
        self._pending: Set[asyncio.Task] = set()

    async def connect(self, ws: WebSocket) -> None:
        await ws.accept()
        async with self._lock:
            self._connections.append(ws)

    async def disconnect(self, ws: WebSocket) -> None:
        async with self._lock:
            self._connections = [c for c in self._connections if c is not ws]

    async def send(self, ws: WebSocket, msg: Dict[str, Any]) -> None:
        try:
            await ws.send_json(msg)
        except Exception:
            await self.disconnect(ws)

    async def broadcast(self, msg: Dict[str, Any]) -> None:
        async with self._lock:
            conns = list(self._connections)
        for ws in conns:
            try:
                await ws.send_json(msg)
            except Exception:
                await self.disconnect(ws)

    def publish(self, msg: Dict[str, Any]) -> Optional[asyncio.Task]:
        """Schedule a broadcast from synchronous code; no-op without a running loop."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            _log.debug("publish(%s) outside event loop dropped", msg.get("type"))
            return None
        task = loop.create_task(self.broadcast(msg))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task
