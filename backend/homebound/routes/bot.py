"""Routes: agent settings, start/stop, status, console, and the observer socket."""
from __future__ import annotations

import logging
from dataclasses import asdict

from fastapi import APIRouter, Request, WebSocket, WebSocketDisconnect

from homebound.models import SettingsRequest

_log = logging.getLogger(__name__)
router = APIRouter()


def _controller(request: Request):
    return request.app.state.controller


@router.get("/health")
def health(request: Request):
    return {"ok": True, "connected": _controller(request).get_status().connected}


@router.get("/api/bot/settings")
def get_settings(request: Request):
    return _controller(request).get_settings().to_dict()


@router.post("/api/bot/settings")
async def update_settings(req: SettingsRequest, request: Request):
    try:
        saved = await _controller(request).update_settings(req.to_settings())
    except Exception as e:
        _log.warning("settings endpoint failed", exc_info=True)
        return {"error": "settings_update_failed", "detail": str(e)[:200]}
    return saved.to_dict()


@router.post("/api/bot/start")
async def start(request: Request):
    ctl = _controller(request)
    try:
        await ctl.start()
    except Exception as e:
        _log.warning("start endpoint failed", exc_info=True)
        return {"error": "start_failed", "detail": str(e)[:200]}
    if ctl.run.running:
        return {"message": "Agent starting"}
    return {"message": "Agent not started; see console for details"}


@router.post("/api/bot/stop")
async def stop(request: Request):
    try:
        await _controller(request).stop()
    except Exception:
        _log.warning("stop endpoint failed", exc_info=True)
    return {"message": "Agent stopped successfully"}


@router.get("/api/bot/status")
def status(request: Request):
    return _controller(request).get_status().to_dict()


@router.get("/api/bot/console")
def console(request: Request):
    return [asdict(e) for e in _controller(request).get_log()]


@router.post("/api/bot/console/clear")
async def clear_console(request: Request):
    await _controller(request).clear_log()
    return {"message": "Console cleared successfully"}


@router.websocket("/ws")
async def observer_socket(ws: WebSocket):
    ctl = ws.app.state.controller
    await ctl.add_client(ws)
    try:
        while True:
            msg = await ws.receive_json()
            kind = msg.get("type") if isinstance(msg, dict) else None
            if kind == "getStatus":
                await ws.send_json({"type": "status", "data": ctl.get_status().to_dict()})
            else:
                _log.debug("Unknown websocket message type: %s", kind)
    except WebSocketDisconnect:
        await ctl.remove_client(ws)
    except Exception:
        _log.debug("websocket closed with error", exc_info=True)
        await ctl.remove_client(ws)
