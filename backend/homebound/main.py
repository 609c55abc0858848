"""
FastAPI application: builds one controller per process and exposes it.

Run with ``uvicorn homebound.main:app``.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from homebound.config import BACKEND_VERSION, DEFAULT_TIMINGS, LOG_LEVEL, Timings, validate_config
from homebound.controller import AgentController
from homebound.lifecycle import SessionFactory
from homebound.routes import register_routes
from homebound.storage import Storage
from homebound.world_client import HttpWorldSession
from homebound.ws import WSManager

_log = logging.getLogger(__name__)


def create_app(
    storage: Optional[Storage] = None,
    session_factory: SessionFactory = HttpWorldSession,
    timings: Timings = DEFAULT_TIMINGS,
) -> FastAPI:
    logging.getLogger("homebound").setLevel(LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        validate_config()
        ws_manager = WSManager()
        app.state.ws_manager = ws_manager
        app.state.controller = AgentController(
            storage or Storage(),
            broadcaster=ws_manager,
            session_factory=session_factory,
            timings=timings,
        )
        _log.info("Homebound backend %s ready", BACKEND_VERSION)
        try:
            yield
        finally:
            await app.state.controller.stop()

    app = FastAPI(title="Homebound Agent Backend", version=BACKEND_VERSION, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_routes(app)
    return app


app = create_app()
