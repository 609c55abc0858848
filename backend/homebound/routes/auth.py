"""Routes: dashboard login."""
from __future__ import annotations

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from homebound import auth as _auth
from homebound.models import LoginRequest

_log = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/login")
def login(req: LoginRequest):
    if _auth.check_password(req.password):
        return {"success": True}
    _log.info("Rejected dashboard login attempt")
    return JSONResponse(status_code=401, content={"message": "Invalid password"})
