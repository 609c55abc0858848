"""
Register all route modules with the FastAPI app.
"""
from __future__ import annotations

from fastapi import FastAPI


def register_routes(app: FastAPI) -> None:
    from homebound.routes import auth, bot
    app.include_router(bot.router)
    app.include_router(auth.router)
