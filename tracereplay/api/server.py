"""
Trace Replay API Server
=======================

HTTP surface over the replay backend: run listing, run content and
per-slot replay sessions.

Endpoints:
- GET  /health                       -> Backend status
- GET  /runs                         -> Run listing
- GET  /runs/{run_id}/dsl            -> Run content (meta, initial graph, frames)
- GET  /runs/{run_id}/refresh        -> Initial graph only
- POST /sessions/{slot}              -> Open a run in a slot
- GET  /sessions/{slot}              -> Playback state and current graph
- DELETE /sessions/{slot}            -> Close the session in a slot
- POST /sessions/{slot}/{action}     -> Navigation and playback control
- PUT  /sessions/{slot}/settings     -> Speed and stepwise mode
- GET  /sessions/{slot}/topology     -> Structural metrics of the current graph

Endpoints are coroutines so that auto-play timers are scheduled on the
server's event loop.

Usage:
    uvicorn tracereplay.api.server:app --reload
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from ..contracts.base import (
    ReplayError, RunFormatError, RunNotFoundError, SessionNotFoundError,
)
from ..engine import BackendConfig, ReplayBackend, ReplaySession
from ..observability.log_config import configure_logging, describe_error, log_exception
from .mapper import map_result_to_dto, map_run_to_dto, map_session_to_dto

logger = logging.getLogger(__name__)

# =============================================================================
# INFRASTRUCTURE SETUP
# =============================================================================

# Global Backend Instance
backend_instance: Optional[ReplayBackend] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the replay backend on startup."""
    global backend_instance

    config = BackendConfig.from_env()
    configure_logging(config.log_level)
    logger.info("Initializing replay backend with runs from %s", config.run_dir)

    try:
        backend_instance = ReplayBackend(config)
    except Exception as e:
        log_exception(logger, e, show_traceback=True)
        raise

    yield

    logger.info("Shutting down replay backend")
    backend_instance.close_all()
    backend_instance = None

app = FastAPI(
    title="Trace Replay API",
    version="0.1.0",
    description="Step-by-step replay of recorded graph traces",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
)


# =============================================================================
# REQUEST MODELS
# =============================================================================

class OpenRunRequest(BaseModel):
    run_id: str


class PlayRequest(BaseModel):
    reverse: Optional[bool] = None


class SettingsRequest(BaseModel):
    speed_ms: Optional[int] = Field(default=None, gt=0)
    stepwise: Optional[bool] = None


# =============================================================================
# HELPERS
# =============================================================================

def _backend() -> ReplayBackend:
    if not backend_instance:
        raise HTTPException(status_code=503, detail="Backend not initialized")
    return backend_instance


def _http_error(exc: ReplayError) -> HTTPException:
    if isinstance(exc, (RunNotFoundError, SessionNotFoundError)):
        status = 404
    elif isinstance(exc, RunFormatError):
        status = 422
    else:
        status = 400
    logger.info("Request failed: %s", describe_error(exc.error))
    return HTTPException(status_code=status, detail=exc.error.message)


def _session(slot: int) -> ReplaySession:
    try:
        return _backend().session(slot)
    except SessionNotFoundError as e:
        raise _http_error(e)


def _navigation_response(session: ReplaySession, result) -> dict:
    return {"result": map_result_to_dto(result), "session": map_session_to_dto(session)}


# =============================================================================
# RUN ENDPOINTS
# =============================================================================

@app.get("/health")
async def health_check():
    """System status."""
    backend = _backend()
    return {"status": "online", "open_slots": backend.open_slots}


@app.get("/runs")
async def list_runs():
    return [{"name": r.name, "file": r.file} for r in _backend().list_runs()]


@app.get("/runs/{run_id}/dsl")
async def get_run(run_id: str):
    try:
        run = _backend().repository.load(run_id)
    except ReplayError as e:
        raise _http_error(e)
    return map_run_to_dto(run)


@app.get("/runs/{run_id}/refresh")
async def refresh_run(run_id: str):
    try:
        snapshot = _backend().repository.refresh(run_id)
    except ReplayError as e:
        raise _http_error(e)
    return snapshot.to_dict()


# =============================================================================
# SESSION ENDPOINTS
# =============================================================================

@app.post("/sessions/{slot}")
async def open_session(slot: int, request: OpenRunRequest):
    try:
        session = _backend().open_run(slot, request.run_id)
    except ReplayError as e:
        raise _http_error(e)
    return map_session_to_dto(session)


@app.get("/sessions/{slot}")
async def get_session(slot: int):
    return map_session_to_dto(_session(slot))


@app.delete("/sessions/{slot}")
async def close_session(slot: int):
    _session(slot)
    _backend().close(slot)
    return {"closed": slot}


@app.post("/sessions/{slot}/next-step")
async def next_step(slot: int):
    session = _session(slot)
    return _navigation_response(session, session.do_step())


@app.post("/sessions/{slot}/next-frame")
async def next_frame(slot: int):
    session = _session(slot)
    return _navigation_response(session, session.do_frame())


@app.post("/sessions/{slot}/prev-step")
async def prev_step(slot: int):
    session = _session(slot)
    return _navigation_response(session, session.prev_step())


@app.post("/sessions/{slot}/prev-frame")
async def prev_frame(slot: int):
    session = _session(slot)
    return _navigation_response(session, session.prev_frame())


@app.post("/sessions/{slot}/reset")
async def reset_session(slot: int):
    """Reload the initial graph from disk and return to the start."""
    _session(slot)
    try:
        session = _backend().refresh(slot)
    except ReplayError as e:
        raise _http_error(e)
    return map_session_to_dto(session)


@app.post("/sessions/{slot}/play")
async def play(slot: int, request: Optional[PlayRequest] = None):
    session = _session(slot)
    session.play(request.reverse if request else None)
    return map_session_to_dto(session)


@app.post("/sessions/{slot}/toggle")
async def toggle_play(slot: int, request: Optional[PlayRequest] = None):
    """Play/pause button: pauses when already playing in that direction."""
    session = _session(slot)
    session.toggle_play(bool(request and request.reverse))
    return map_session_to_dto(session)


@app.post("/sessions/{slot}/pause")
async def pause(slot: int):
    session = _session(slot)
    session.pause()
    return map_session_to_dto(session)


@app.put("/sessions/{slot}/settings")
async def update_settings(slot: int, request: SettingsRequest):
    session = _session(slot)
    if request.speed_ms is not None:
        session.set_speed(request.speed_ms)
    if request.stepwise is not None:
        session.set_stepwise(request.stepwise)
    return map_session_to_dto(session)


@app.get("/sessions/{slot}/topology")
async def get_topology(slot: int):
    return _session(slot).topology().to_dict()
