from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from careerautomate.config import Settings
from careerautomate.types import TimeoutPhase

ACTIVITY_EVENTS = frozenset(
    {
        "mousedown",
        "mousemove",
        "keypress",
        "keydown",
        "scroll",
        "touchstart",
        "click",
        "wheel",
    }
)


def _utc(value: datetime) -> datetime:
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


@dataclass(slots=True, frozen=True)
class SessionTimeoutWatchdog:
    """Idle-logout arithmetic over a stored last-activity time.

    Only qualifying input events move the timer. Reading the phase, showing
    the warning or dismissing it never does.
    """

    timeout: timedelta = timedelta(minutes=15)
    warning_before: timedelta = timedelta(minutes=2)
    throttle: timedelta = timedelta(seconds=1)

    @classmethod
    def from_settings(cls, settings: Settings) -> SessionTimeoutWatchdog:
        return cls(
            timeout=timedelta(minutes=settings.session_timeout_min),
            warning_before=timedelta(minutes=settings.session_warning_min),
            throttle=timedelta(seconds=settings.activity_throttle_sec),
        )

    @property
    def warning_at(self) -> timedelta:
        return self.timeout - self.warning_before

    def register_activity(self, last_activity: datetime, event_type: str, now: datetime) -> datetime | None:
        """New activity time, or None when the event is ignored."""
        if event_type not in ACTIVITY_EVENTS:
            return None
        last_activity, now = _utc(last_activity), _utc(now)
        if self.phase(last_activity, now) == "expired":
            return None
        if now - last_activity < self.throttle:
            return None
        return now

    def remaining(self, last_activity: datetime, now: datetime) -> timedelta:
        elapsed = _utc(now) - _utc(last_activity)
        return max(timedelta(0), self.timeout - elapsed)

    def phase(self, last_activity: datetime, now: datetime) -> TimeoutPhase:
        elapsed = _utc(now) - _utc(last_activity)
        if elapsed >= self.timeout:
            return "expired"
        if elapsed >= self.warning_at:
            return "warning"
        return "active"

    def is_expired(self, last_activity: datetime, now: datetime) -> bool:
        return self.phase(last_activity, now) == "expired"
