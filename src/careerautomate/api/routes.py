from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from careerautomate.api.deps import get_clock, get_controls, get_session_id, get_session_store, get_watchdog
from careerautomate.api.schemas import ActivityRequest, ActivityResponse, SessionStatusResponse
from careerautomate.core.clock import Clock
from careerautomate.core.guards import LOGIN_URL, SESSION_EXPIRED_URL
from careerautomate.core.session_store import SessionStore
from careerautomate.core.session_timeout import SessionTimeoutWatchdog
from careerautomate.core.system_controls import CHANNEL, SystemControlsStore
from careerautomate.db.models import UISession
from careerautomate.db.repositories import as_utc
from careerautomate.types import SystemControlsSnapshot

router = APIRouter(prefix="/api", tags=["api"])


@router.get("/system-controls", response_model=SystemControlsSnapshot)
def get_system_controls(controls: SystemControlsStore = Depends(get_controls)) -> SystemControlsSnapshot:
    return controls.snapshot


@router.websocket("/system-controls/stream")
async def stream_system_controls(websocket: WebSocket) -> None:
    await websocket.accept()
    controls: SystemControlsStore = websocket.app.state.controls
    # subscribe before the first send so a change in between is not lost
    with controls.event_bus.subscribe(CHANNEL) as events:
        try:
            await websocket.send_json(controls.snapshot.model_dump())
            async for event in events:
                await websocket.send_json(event)
        except WebSocketDisconnect:
            return


def _status(last_activity: datetime, watchdog: SessionTimeoutWatchdog, now: datetime) -> dict:
    return {
        "authenticated": True,
        "phase": watchdog.phase(last_activity, now),
        "remaining_sec": int(watchdog.remaining(last_activity, now).total_seconds()),
        "warning_before_sec": int(watchdog.warning_before.total_seconds()),
    }


def _expire(sessions: SessionStore, row: UISession) -> SessionStatusResponse:
    sessions.sign_out(row.id)
    return SessionStatusResponse(authenticated=False, phase="expired", login_url=SESSION_EXPIRED_URL)


@router.get("/session/status", response_model=SessionStatusResponse)
def session_status(
    session_id: str | None = Depends(get_session_id),
    sessions: SessionStore = Depends(get_session_store),
    watchdog: SessionTimeoutWatchdog = Depends(get_watchdog),
    clock: Clock = Depends(get_clock),
) -> SessionStatusResponse:
    row = sessions.get(session_id)
    if row is None:
        return SessionStatusResponse(authenticated=False, login_url=LOGIN_URL)

    now = clock.now()
    last_activity = as_utc(row.last_activity_at)
    if watchdog.is_expired(last_activity, now):
        return _expire(sessions, row)
    return SessionStatusResponse(**_status(last_activity, watchdog, now))


@router.post("/session/activity", response_model=ActivityResponse)
def session_activity(
    payload: ActivityRequest,
    session_id: str | None = Depends(get_session_id),
    sessions: SessionStore = Depends(get_session_store),
    watchdog: SessionTimeoutWatchdog = Depends(get_watchdog),
    clock: Clock = Depends(get_clock),
) -> ActivityResponse:
    row = sessions.get(session_id)
    if row is None:
        return ActivityResponse(authenticated=False, login_url=LOGIN_URL)

    now = clock.now()
    last_activity = as_utc(row.last_activity_at)
    if watchdog.is_expired(last_activity, now):
        expired = _expire(sessions, row)
        return ActivityResponse(**expired.model_dump())

    updated = watchdog.register_activity(last_activity, payload.event, now)
    if updated is not None:
        sessions.touch(row.id)
        last_activity = updated
    return ActivityResponse(accepted=updated is not None, **_status(last_activity, watchdog, now))
