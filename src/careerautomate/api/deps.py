from __future__ import annotations

from collections.abc import Generator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from careerautomate.config import Settings
from careerautomate.core.clock import Clock
from careerautomate.core.guards import RouteGate
from careerautomate.core.session_store import SessionStore
from careerautomate.core.session_timeout import SessionTimeoutWatchdog
from careerautomate.core.system_controls import SystemControlsStore
from careerautomate.db.session import get_db_session
from careerautomate.services.registry import Services


def get_db() -> Generator[Session, None, None]:
    yield from get_db_session()


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_controls(request: Request) -> SystemControlsStore:
    return request.app.state.controls


def get_watchdog(request: Request) -> SessionTimeoutWatchdog:
    return request.app.state.watchdog


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_session_id(request: Request) -> str | None:
    return request.cookies.get(request.app.state.settings.session_cookie_name)


def get_session_store(
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
    clock: Clock = Depends(get_clock),
) -> SessionStore:
    return SessionStore(db, auth=services.auth, backend=services.backend, clock=clock)


def get_gate(
    sessions: SessionStore = Depends(get_session_store),
    services: Services = Depends(get_services),
    watchdog: SessionTimeoutWatchdog = Depends(get_watchdog),
    clock: Clock = Depends(get_clock),
) -> RouteGate:
    return RouteGate(sessions, services.onboarding, watchdog, clock)
