from __future__ import annotations

from pydantic import BaseModel, Field

from careerautomate.types import TimeoutPhase


class ActivityRequest(BaseModel):
    event: str = Field(min_length=1, max_length=32)


class SessionStatusResponse(BaseModel):
    authenticated: bool
    phase: TimeoutPhase | None = None
    remaining_sec: int = 0
    warning_before_sec: int = 0
    login_url: str | None = None


class ActivityResponse(SessionStatusResponse):
    accepted: bool = False
