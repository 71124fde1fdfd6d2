"""
Volley View - live volleyball board API.

Each viewer opens a session, polls its board, and reports the three
inbound events (select match, change filter, visibility).
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from config.settings import settings
from volleyview.live_feed import (
    Classification,
    LiveSession,
    SessionLimitReached,
    SessionRegistry,
    close_live_feed_client,
)

# Version tracking
APP_VERSION = "v0.1.0"
APP_NAME = "Volley View"
APP_STAGE = "Pre-Alpha"

registry = SessionRegistry()


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Stop every poll timer and release every wake lock on shutdown
    registry.close_all()
    close_live_feed_client()


app = FastAPI(
    title=f"{APP_NAME} ({APP_STAGE})",
    description="Live volleyball scores with serve tracking",
    version=APP_VERSION,
    lifespan=lifespan,
)


class SelectMatchRequest(BaseModel):
    """Toggle focus on a match; null clears focus."""
    key: Optional[str] = None


class FilterRequest(BaseModel):
    category: Classification


class VisibilityRequest(BaseModel):
    visible: bool


def _get_session(session_id: str) -> LiveSession:
    session = registry.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
    return session


@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "ok", "source": settings.feed_base_url, "sessions": len(registry)}


@app.get("/version")
def version_info():
    """Get application version info"""
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "stage": APP_STAGE,
    }


# ===== LIVE BOARD =====

@app.post("/api/live/sessions", status_code=201)
def open_session():
    """Open a viewer session and start polling the feeds."""
    try:
        session = registry.create()
    except SessionLimitReached as e:
        raise HTTPException(status_code=429, detail=str(e))
    return {"sessionId": session.session_id}


@app.get("/api/live/sessions/{session_id}")
def get_board(session_id: str):
    """Current board for the session."""
    return _get_session(session_id).board().to_dict()


@app.post("/api/live/sessions/{session_id}/select")
def select_match(session_id: str, request: SelectMatchRequest):
    session = _get_session(session_id)
    session.select_match(request.key)
    return session.board().to_dict()


@app.post("/api/live/sessions/{session_id}/filter")
def set_filter(session_id: str, request: FilterRequest):
    session = _get_session(session_id)
    session.set_active_filter(request.category)
    return session.board().to_dict()


@app.post("/api/live/sessions/{session_id}/visibility")
def visibility_changed(session_id: str, request: VisibilityRequest):
    session = _get_session(session_id)
    session.document_visibility_changed(request.visible)
    return {"keepAwake": session.wake_lock.held}


@app.delete("/api/live/sessions/{session_id}")
def close_session(session_id: str):
    """Tear the session down. Closing an unknown or closed session is not an error."""
    closed = registry.close(session_id)
    return {"sessionId": session_id, "closed": closed}
